import json
from pathlib import Path

import click

from zexe_core.errors import ZexeError

from .logic import convert_snapshot, extract_resources, inspect_image

CANONICAL_JSON_KW = {"sort_keys": True, "separators": (",", ":"), "ensure_ascii": False}


@click.group()
def main():
    pass


@main.command("bundle")
@click.argument("path", type=click.Path(dir_okay=False, path_type=Path))
def bundle_cmd(path: Path):
    result = inspect_image(path)
    click.echo(json.dumps(result, **CANONICAL_JSON_KW))
    if result["status"] != "PASS":
        raise SystemExit(1)


@main.command("extract")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("out", type=click.Path(file_okay=False, path_type=Path))
def extract_cmd(path: Path, out: Path):
    try:
        written = extract_resources(path, out)
    except ZexeError as e:
        click.echo(f"FATAL: {e}")
        raise SystemExit(1)
    if not written:
        click.echo("No embedded resources.")
    for name, target in written.items():
        click.echo(f"{name}: {target}")


@main.command("convert")
@click.argument("snapshot", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("out", type=click.Path(dir_okay=False, path_type=Path))
def convert_cmd(snapshot: Path, out: Path):
    try:
        canonical = convert_snapshot(snapshot, out)
    except ZexeError as e:
        click.echo(f"FATAL: {e}")
        raise SystemExit(1)
    click.echo(f"{out}: {canonical.machine.value}, {len(canonical)} bytes")


if __name__ == "__main__":
    main()

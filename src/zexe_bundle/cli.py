"""zexe - Snapshot to runnable image bundler."""
from __future__ import annotations

import os
from pathlib import Path

import click

from zexe_core.container import build_bundle
from zexe_core.errors import MissingInputError, ZexeError
from zexe_core.snapshot import to_canonical
from zexe_bundle.assets import default_output, default_runner, find_asset

EXECUTABLE_MODE = 0o755


def _read_input(path: Path, what: str) -> bytes:
    if not path.is_file():
        raise MissingInputError(f"Failed to open {what}: {path}")
    return path.read_bytes()


def bundle_snapshot(
    input_path: Path,
    output_path: Path | None = None,
    runner_path: Path | None = None,
    shader_path: Path | None = None,
    pokes_path: Path | None = None,
    config_path: Path | None = None,
    verify: bool = False,
    cwd: Path | None = None,
) -> Path:
    """Bundle a snapshot and its assets onto a runner image.

    Every input is read before the output file is created, so a missing
    input leaves nothing behind.
    """
    input_path = Path(input_path)
    output_path = Path(output_path) if output_path else default_output(input_path)
    runner_path = Path(runner_path) if runner_path else default_runner()

    if output_path.resolve() == input_path.resolve():
        raise ZexeError(f"Output {output_path} would overwrite the input snapshot; pass --output")

    print(f"Bundling {input_path}...")

    # 1. Snapshot
    snapshot = _read_input(input_path, "input snapshot")
    print(f"Snapshot size: {len(snapshot)} bytes")
    if verify:
        canonical = to_canonical(snapshot)
        print(f"Snapshot decodes as {canonical.machine.value} ({len(canonical)} bytes canonical)")

    # 2. Runner
    runner = _read_input(runner_path, "runner executable")
    print(f"Runner template size: {len(runner)} bytes")

    # 3. Optional assets
    assets: dict[str, bytes | None] = {}
    for kind, explicit in (("shader", shader_path), ("pokes", pokes_path), ("config", config_path)):
        path = find_asset(input_path, kind, explicit=explicit, cwd=cwd)
        if path is None:
            assets[kind] = None
            continue
        print(f"Embedding {kind} from {path}...")
        assets[kind] = _read_input(path, f"{kind} file")

    # 4. Assemble and write
    data = build_bundle(runner, snapshot, assets["shader"], assets["pokes"], assets["config"])
    output_path.write_bytes(data)

    if os.name == "posix":
        os.chmod(output_path, EXECUTABLE_MODE)
        print(f"Set executable permissions on {output_path}")

    print(f"Successfully created {output_path} (Total size: {output_path.stat().st_size} bytes)")
    return output_path


@click.command()
@click.argument("snapshot", type=click.Path(path_type=Path))
@click.option("-o", "--output", type=click.Path(path_type=Path), help="Output image (default: input name)")
@click.option("-r", "--runner", type=click.Path(path_type=Path), help="Runner executable template")
@click.option("-s", "--shader", type=click.Path(path_type=Path), help="GLSL shader to embed (default: <input>.glsl, shader.glsl)")
@click.option("-p", "--pokes", type=click.Path(path_type=Path), help="POK file to embed (default: <input>.pok)")
@click.option("-c", "--config", type=click.Path(path_type=Path), help="JSON config to embed (default: <input>.json, config.json)")
@click.option("--verify", is_flag=True, help="Decode the snapshot before bundling")
def main(
    snapshot: Path,
    output: Path | None,
    runner: Path | None,
    shader: Path | None,
    pokes: Path | None,
    config: Path | None,
    verify: bool,
) -> None:
    """Bundle a Z80/SZX/SNA snapshot into a runnable image."""
    try:
        bundle_snapshot(snapshot, output, runner, shader, pokes, config, verify=verify)
    except (OSError, ValueError) as e:
        # Fail closed, with a single-line reason.
        print(f"FATAL: {e}")
        raise SystemExit(1)


if __name__ == "__main__":
    main()

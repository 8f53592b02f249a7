from __future__ import annotations

import os
from pathlib import Path

# ext -> shared fallback name in the working directory (None: no fallback)
ASSET_KINDS = {
    "shader": ("glsl", "shader.glsl"),
    "pokes": ("pok", None),
    "config": ("json", "config.json"),
}


def find_asset(
    input_path: Path,
    kind: str,
    explicit: Path | None = None,
    cwd: Path | None = None,
) -> Path | None:
    """Locate an auxiliary asset for ``input_path``.

    Search order: explicit path, ``<input>.<ext>``, shared name in ``cwd``.
    An explicit path is returned even if it does not exist so the caller can
    report it.
    """
    if explicit is not None:
        return Path(explicit)

    ext, shared_name = ASSET_KINDS[kind]
    auto = Path(input_path).with_suffix("." + ext)
    if auto.is_file():
        return auto

    if shared_name is not None:
        shared = Path(cwd or Path.cwd()) / shared_name
        if shared.is_file():
            return shared
    return None


def default_output(input_path: Path) -> Path:
    return Path(input_path).with_suffix(".exe" if os.name == "nt" else "")


def default_runner() -> Path:
    return Path("zexe-runner.exe" if os.name == "nt" else "zexe-runner")

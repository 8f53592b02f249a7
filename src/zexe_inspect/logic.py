import warnings
from dataclasses import asdict
from pathlib import Path

from zexe_core.container import Bundle, read_bundle_file
from zexe_core.errors import ERRORS, ZexeError
from zexe_core.pokes import parse_pokes
from zexe_core.sna import CanonicalSnapshot, read_pc
from zexe_core.snapshot import detect_format, to_canonical

from .digest import resource_digest

RESOURCE_FILES = {
    "shader": "shader.glsl",
    "pokes": "pokes.pok",
    "config": "config.json",
}


def _fail(errors, report):
    report.update({"status": "FAIL", "error_count": len(errors), "errors": errors})
    return report


def _resource_bytes(bundle: Bundle) -> dict:
    out = {}
    if bundle.snapshot is not None:
        out["snapshot"] = bundle.snapshot
    for name, text in (("shader", bundle.shader), ("pokes", bundle.pokes), ("config", bundle.config_text)):
        if text is not None:
            out[name] = text.encode("utf-8")
    return out


def describe_snapshot(data: bytes) -> dict:
    canonical = to_canonical(data)
    return {
        "format": detect_format(data),
        "machine": canonical.machine.value,
        "canonical_size": len(canonical),
        "pc": read_pc(canonical.data),
    }


def inspect_image(path: Path) -> dict:
    errors = []
    report = {"path": str(path)}

    if not path.is_file():
        errors.append({"code": "E_INPUT_MISSING", "message": ERRORS["E_INPUT_MISSING"], "path": str(path)})
        return _fail(errors, report)

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        try:
            bundle = read_bundle_file(path)
        except ZexeError as e:
            errors.append(e.as_dict())
            return _fail(errors, report)

    report["warnings"] = [str(w.message) for w in caught]
    report["file_size"] = path.stat().st_size
    report["embedded"] = bundle.embedded
    report["base_size"] = bundle.base_size

    if not bundle.embedded:
        report.update({"status": "PASS", "error_count": 0, "errors": []})
        return report

    contents = _resource_bytes(bundle)
    resources = {}
    for name, size in bundle.trailer.sizes.items():
        if not size:
            continue
        entry = {"offset": bundle.offsets[name], "compressed_size": size, "present": name in contents}
        if name in contents:
            entry["size"] = len(contents[name])
            entry["sha256"] = resource_digest(contents[name])
        resources[name] = entry
    report["resources"] = resources

    if bundle.pokes is not None:
        report["pokes"] = len(parse_pokes(bundle.pokes))
    if bundle.config_text is not None:
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            report["config"] = asdict(bundle.config)
        report["warnings"] += [str(w.message) for w in caught]

    if bundle.snapshot is not None:
        try:
            report["snapshot"] = describe_snapshot(bundle.snapshot)
        except ZexeError as e:
            errors.append(e.as_dict())
            return _fail(errors, report)

    report.update({"status": "PASS", "error_count": 0, "errors": []})
    return report


def extract_resources(path: Path, out_dir: Path) -> dict:
    """Write every embedded resource of ``path`` into ``out_dir``."""
    bundle = read_bundle_file(path)
    written = {}
    if not bundle.embedded:
        return written

    out_dir.mkdir(parents=True, exist_ok=True)
    if bundle.snapshot is not None:
        target = out_dir / f"snapshot.{detect_format(bundle.snapshot)}"
        target.write_bytes(bundle.snapshot)
        written["snapshot"] = target
    for name, text in (("shader", bundle.shader), ("pokes", bundle.pokes), ("config", bundle.config_text)):
        if text is None:
            continue
        target = out_dir / RESOURCE_FILES[name]
        target.write_text(text, encoding="utf-8")
        written[name] = target
    return written


def convert_snapshot(src: Path, dst: Path) -> CanonicalSnapshot:
    canonical = to_canonical(src.read_bytes())
    dst.write_bytes(canonical.data)
    return canonical

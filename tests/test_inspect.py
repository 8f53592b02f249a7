import hashlib
import struct
import zlib

from zexe_core.container import Trailer, build_bundle
from zexe_core.sna import Machine
from zexe_inspect.digest import resource_digest
from zexe_inspect.logic import convert_snapshot, extract_resources, inspect_image

PAGE = 0x4000


def z80_48k(pc=0x8000) -> bytes:
    header = struct.pack(
        "<BBHHHHBBBHHHHBBHHBBB",
        0, 0, 0, 0, pc, 0xFF00, 0, 0, 0x02, 0, 0, 0, 0, 0, 0, 0, 0, 1, 1, 1,
    )
    return header + bytes(3 * PAGE)


def test_plain_file_passes_without_resources(tmp_path):
    path = tmp_path / "runner"
    path.write_bytes(b"no trailer here")
    report = inspect_image(path)
    assert report["status"] == "PASS"
    assert report["embedded"] is False
    assert report["base_size"] == 15


def test_missing_file(tmp_path):
    report = inspect_image(tmp_path / "nope")
    assert report["status"] == "FAIL"
    assert report["errors"][0]["code"] == "E_INPUT_MISSING"


def test_report_describes_resources(tmp_path):
    snap = z80_48k()
    path = tmp_path / "game"
    path.write_bytes(build_bundle(b"BASE", snap, config=b'{"volume": 999}'))

    report = inspect_image(path)
    assert report["status"] == "PASS"
    assert report["resources"]["snapshot"]["offset"] == 4
    assert report["resources"]["snapshot"]["sha256"] == hashlib.sha256(snap).hexdigest()
    assert report["config"]["volume"] == 100
    assert any("volume" in w for w in report["warnings"])
    assert report["snapshot"] == {"format": "z80", "machine": "48k", "canonical_size": 49179, "pc": 0x8000}
    assert "root" not in report


def test_corrupt_snapshot_fails(tmp_path):
    path = tmp_path / "game"
    path.write_bytes(b"BASE" + b"junk" + Trailer(snapshot_size=4).pack())
    report = inspect_image(path)
    assert report["status"] == "FAIL"
    assert report["errors"][0]["code"] == "E_DECOMPRESS"


def test_undecodable_snapshot_fails(tmp_path):
    path = tmp_path / "game"
    path.write_bytes(build_bundle(b"BASE", b"ZXST\x01\x04\x63\x00"))
    report = inspect_image(path)
    assert report["status"] == "FAIL"
    assert report["errors"][0]["code"] == "E_MALFORMED_INPUT"


def test_dropped_shader_is_a_warning(tmp_path):
    snap = zlib.compress(z80_48k())
    path = tmp_path / "game"
    path.write_bytes(b"BASE" + snap + b"xx" + Trailer(len(snap), 2, 0, 0).pack())
    report = inspect_image(path)
    assert report["status"] == "PASS"
    assert report["resources"]["shader"]["present"] is False
    assert any("shader" in w for w in report["warnings"])


def test_extract_and_convert(tmp_path):
    snap = z80_48k()
    image = tmp_path / "game"
    image.write_bytes(build_bundle(b"BASE", snap, pokes=b"M 0 30000 1 0"))

    written = extract_resources(image, tmp_path / "out")
    assert set(written) == {"snapshot", "pokes"}
    assert written["snapshot"].name == "snapshot.z80"
    assert (tmp_path / "out" / "pokes.pok").read_text() == "M 0 30000 1 0"

    canonical = convert_snapshot(written["snapshot"], tmp_path / "game.sna")
    assert canonical.machine is Machine.SINCLAIR_48K
    assert (tmp_path / "game.sna").stat().st_size == 49179


def test_extract_plain_file(tmp_path):
    image = tmp_path / "runner"
    image.write_bytes(b"plain")
    assert extract_resources(image, tmp_path / "out") == {}
    assert not (tmp_path / "out").exists()


def test_digest_is_hex_sha256():
    assert resource_digest(b"abc") == hashlib.sha256(b"abc").hexdigest()

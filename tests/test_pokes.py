from zexe_core.container import build_bundle, read_bundle
from zexe_core.pokes import PokeEntry, PokeSet, parse_pokes

POK = """NInfinite lives
M 0 32768 201 62
Z 8 35899 0 1
Y
NNo enemies
M 0 40000 256 0
M 0 65536 1 0
M 0 -5 1 0
M 0 30000 1
X 1 2 3 4
M 0 0x4000 1 0
Z 0 +23606 60 0
"""


def test_single_memory_patch():
    assert parse_pokes("M 0 32768 201 62") == [PokeEntry(32768, 201, 62)]


def test_other_lines_are_ignored():
    assert parse_pokes("X 1 2 3") == []
    assert parse_pokes("NInfinite lives\nY\n") == []
    assert parse_pokes("") == []


def test_invalid_numbers_are_skipped():
    assert parse_pokes(POK) == [
        PokeEntry(32768, 201, 62),
        PokeEntry(35899, 0, 1),
        PokeEntry(23606, 60, 0),
    ]


def test_bank_field_is_not_validated():
    assert parse_pokes("M banked 16384 1 2") == [PokeEntry(16384, 1, 2)]


def test_toggle_applies_then_restores():
    pokes = PokeSet.from_text("M 0 32768 201 62\nM 0 32769 0 5")
    assert not pokes.enabled

    assert pokes.toggle() == [(32768, 201), (32769, 0)]
    assert pokes.enabled
    assert pokes.toggle() == [(32768, 62), (32769, 5)]
    assert not pokes.enabled


def test_toggle_with_no_entries_is_a_no_op():
    pokes = PokeSet.from_text(None)
    assert pokes.toggle() == []
    assert not pokes.enabled


def test_initially_enabled_applies_patched_values():
    memory = bytearray(0x10000)
    PokeSet.from_text("M 0 32768 201 62", enabled=True).apply(memory)
    assert memory[32768] == 201


def test_from_bundle_follows_cheats_enabled():
    snapshot = bytes(49179)
    pok = b"M 0 32768 201 62"

    on = read_bundle(build_bundle(b"BASE", snapshot, pokes=pok, config=b'{"cheats_enabled": true}'))
    pokes = PokeSet.from_bundle(on)
    assert pokes.enabled
    assert pokes.actions() == [(32768, 201)]

    off = read_bundle(build_bundle(b"BASE", snapshot, pokes=pok))
    assert not PokeSet.from_bundle(off).enabled

    plain = read_bundle(b"BASE")
    assert PokeSet.from_bundle(plain).entries == []

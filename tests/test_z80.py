import struct

import pytest

from zexe_core.errors import MalformedInputError
from zexe_core.rle import compress_block
from zexe_core.sna import Machine
from zexe_core.z80 import convert_z80_to_sna, machine_for_hardware_mode, parse_header

PAGE = 0x4000


def z80_header(pc=0x8000, sp=0xFF40, flags1=0x05, iff2=1, flags2=0x01) -> bytes:
    return struct.pack(
        "<BBHHHHBBBHHHHBBHHBBB",
        0x12, 0x34,          # A, F
        0x2211, 0x4433,      # BC, HL
        pc, sp,
        0x3F, 0x05, flags1,  # I, R, flags
        0x6655,              # DE
        0x8877, 0xAA99, 0xCCBB,  # BC', DE', HL'
        0xDD, 0xEE,          # A', F'
        0x1357, 0x2468,      # IY, IX
        1, iff2, flags2,
    )


def ext_header(length, pc, hw, port) -> bytes:
    return struct.pack("<HHBB", length, pc, hw, port) + bytes(length - 4)


def ram_48k() -> bytearray:
    ram = bytearray(3 * PAGE)
    ram[0] = 0xAB
    ram[PAGE] = 0xCD
    ram[2 * PAGE] = 0xEF
    return ram


def test_short_input_is_malformed():
    with pytest.raises(MalformedInputError):
        convert_z80_to_sna(bytes(29))


def test_v1_uncompressed_48k_layout():
    snap = convert_z80_to_sna(z80_header(flags1=0x05) + bytes(ram_48k()))

    assert snap.machine is Machine.SINCLAIR_48K
    assert len(snap.data) == 49179
    d = snap.data
    assert d[0] == 0x3F                          # I
    assert d[1:3] == bytes([0xBB, 0xCC])         # HL'
    assert d[3:5] == bytes([0x99, 0xAA])         # DE'
    assert d[5:7] == bytes([0x77, 0x88])         # BC'
    assert d[7:9] == bytes([0xEE, 0xDD])         # AF' (F' low)
    assert d[9:11] == bytes([0x33, 0x44])        # HL
    assert d[11:13] == bytes([0x55, 0x66])       # DE
    assert d[13:15] == bytes([0x11, 0x22])       # BC
    assert d[15:17] == bytes([0x57, 0x13])       # IY
    assert d[17:19] == bytes([0x68, 0x24])       # IX
    assert d[19] == 0x06                         # IFF2 + base bit
    assert d[20] == 0x85                         # R with bit 7 from flags
    assert d[21:23] == bytes([0x34, 0x12])       # AF
    assert d[25] == 1                            # IM
    assert d[26] == 2                            # border

    # Pages 5, 2, 0 in order.
    assert d[27] == 0xAB
    assert d[27 + PAGE] == 0xCD
    assert d[27 + 2 * PAGE] == 0xEF

    # PC pushed at SP-2.
    assert struct.unpack_from("<H", d, 23)[0] == 0xFF3E
    off = 27 + 0xFF3E - 0x4000
    assert d[off:off + 2] == bytes([0x00, 0x80])


def test_v1_compressed_body():
    ram = ram_48k()
    ram[0x1000:0x1800] = bytes([0x42]) * 0x800
    body = compress_block(bytes(ram)) + bytes([0x00, 0xED, 0xED, 0x00])
    # SP just above ROM: the pushed PC would land in ROM, so RAM is untouched.
    snap = convert_z80_to_sna(z80_header(sp=0x4000, flags1=0x20) + body)

    assert len(snap.data) == 49179
    assert snap.data[27:] == bytes(ram)
    assert struct.unpack_from("<H", snap.data, 23)[0] == 0x3FFE


def test_flags_255_means_one():
    header = parse_header(z80_header(flags1=0xFF))
    assert header.border == 0
    assert not header.compressed
    assert header.regs.r == 0x85


def test_v3_128k_pages_and_extension_header():
    port = 0x01
    out = bytearray(z80_header(pc=0) + ext_header(54, 0xBEEF, 4, port))
    for bank in range(8):
        page = bytes([0x10 + bank]) * PAGE
        if bank % 2:
            out += struct.pack("<HB", 0xFFFF, bank + 3) + page
        else:
            block = compress_block(page)
            out += struct.pack("<HB", len(block), bank + 3) + block

    header = parse_header(bytes(out))
    assert header.version == 3
    assert header.hardware_mode == 4

    snap = convert_z80_to_sna(bytes(out))
    assert snap.machine is Machine.SINCLAIR_128K
    assert len(snap.data) == 131103

    d = snap.data
    assert struct.unpack_from("<H", d, 23)[0] == 0xFF40  # SP untouched
    assert d[27] == 0x15
    assert d[27 + PAGE] == 0x12
    assert d[27 + 2 * PAGE] == 0x11                      # active page 1
    assert d[49179:49183] == bytes([0xEF, 0xBE, port, 0])
    rest = [d[49183 + k * PAGE] for k in range(5)]
    assert rest == [0x10, 0x13, 0x14, 0x16, 0x17]


def test_v2_48k_page_ids_and_ignored_blocks():
    out = bytearray(z80_header(pc=0) + ext_header(23, 0x6000, 0, 0))
    for page_id, fill in ((8, 0x55), (4, 0x22), (5, 0x00), (11, 0x99)):
        out += struct.pack("<HB", 0xFFFF, page_id) + bytes([fill or 0x01]) * PAGE

    header = parse_header(bytes(out))
    assert header.version == 2
    assert header.machine is Machine.SINCLAIR_48K

    d = convert_z80_to_sna(bytes(out)).data
    assert len(d) == 49179
    assert d[27] == 0x55
    assert d[27 + PAGE] == 0x22
    assert d[27 + 2 * PAGE] == 0x01
    assert 0x99 not in d[27:27 + 0x100]


def test_unknown_extended_length_reads_as_v2():
    out = z80_header(pc=0) + ext_header(30, 0x6000, 0, 0)
    header = parse_header(out)
    assert header.version == 2
    assert header.body_offset == 30 + 2 + 30


def test_block_past_end_stops_body():
    out = bytearray(z80_header(pc=0) + ext_header(23, 0x6000, 0, 0))
    out += struct.pack("<HB", 0xFFFF, 8) + bytes([0x77]) * PAGE
    out += struct.pack("<HB", 0xFFFF, 4) + bytes([0x66]) * 100

    d = convert_z80_to_sna(bytes(out)).data
    assert d[27] == 0x77
    assert d[27 + PAGE] == 0x00


def test_truncated_extended_header_is_malformed():
    with pytest.raises(MalformedInputError):
        convert_z80_to_sna(z80_header(pc=0) + bytes([23, 0]))


def test_truncated_block_header_is_malformed():
    out = z80_header(pc=0) + ext_header(23, 0x6000, 0, 0) + bytes([0xFF])
    with pytest.raises(MalformedInputError):
        convert_z80_to_sna(out)


@pytest.mark.parametrize(
    "mode, machine",
    [
        (0, Machine.SINCLAIR_48K),
        (1, Machine.SINCLAIR_48K),
        (2, Machine.SINCLAIR_48K),
        (3, Machine.SINCLAIR_128K),
        (13, Machine.SINCLAIR_128K),
        (14, Machine.SINCLAIR_48K),
    ],
)
def test_hardware_mode_selects_machine(mode, machine):
    assert machine_for_hardware_mode(mode) is machine

"""Z80 snapshot decoder.

Reads version 1, 2 and 3 files and converts them to the canonical SNA
layout. Reference: https://worldofspectrum.org/faq/reference/z80format.htm
"""
from __future__ import annotations

import struct
from dataclasses import dataclass
from types import MappingProxyType

from . import rle
from .errors import MalformedInputError
from .protocol import (
    PAGE_COUNT_128K,
    PAGE_SIZE,
    RAM_48K_SIZE,
    Z80_BLOCK_HEADER_FMT,
    Z80_BLOCK_HEADER_LEN,
    Z80_EXT_LEN_V2,
    Z80_EXT_LEN_V3,
    Z80_FLAGS_COMPRESSED,
    Z80_HEADER_FMT,
    Z80_HEADER_LEN,
    Z80_RAW_BLOCK,
)
from .sna import CanonicalSnapshot, Machine, Registers, build_sna

# Block page id -> RAM bank, per machine variant. Unlisted ids are ROMs or
# interface pages and are ignored.
PAGE_TABLES = MappingProxyType({
    Machine.SINCLAIR_48K: MappingProxyType({8: 5, 4: 2, 5: 0}),
    Machine.SINCLAIR_128K: MappingProxyType({pid: pid - 3 for pid in range(3, 11)}),
})

HARDWARE_128K = range(3, 14)


def machine_for_hardware_mode(mode: int) -> Machine:
    """0/1 are 48K (plain, with Interface 1); 3..13 are the 128K family.

    Anything else, SamRam included, loads as 48K.
    """
    if mode in HARDWARE_128K:
        return Machine.SINCLAIR_128K
    return Machine.SINCLAIR_48K


def has_extended_header(data: bytes) -> bool:
    """True when ``data`` opens with a v2/v3 header: PC zero, known extension length."""
    if len(data) < Z80_HEADER_LEN + 2:
        return False
    pc, = struct.unpack_from("<H", data, 6)
    ext_len, = struct.unpack_from("<H", data, Z80_HEADER_LEN)
    return pc == 0 and (ext_len == Z80_EXT_LEN_V2 or ext_len in Z80_EXT_LEN_V3)


@dataclass
class Z80Header:
    version: int
    regs: Registers
    border: int
    compressed: bool
    hardware_mode: int
    port_7ffd: int
    machine: Machine
    body_offset: int


def _need(data: bytes, pos: int, n: int, what: str) -> None:
    if pos + n > len(data):
        raise MalformedInputError(f"Z80 {what} truncated at offset {pos}")


def parse_header(data: bytes) -> Z80Header:
    if len(data) < Z80_HEADER_LEN:
        raise MalformedInputError(f"Z80 file too short ({len(data)} bytes)")

    (a, f, bc, hl, pc, sp, i, r, flags1, de, bc_alt, de_alt, hl_alt,
     a_alt, f_alt, iy, ix, _iff1, iff2, flags2) = struct.unpack_from(Z80_HEADER_FMT, data)

    # Old writers store 255 here; it means 1.
    if flags1 == 0xFF:
        flags1 = 0x01

    regs = Registers(
        af=(a << 8) | f,
        bc=bc,
        de=de,
        hl=hl,
        af_alt=(a_alt << 8) | f_alt,
        bc_alt=bc_alt,
        de_alt=de_alt,
        hl_alt=hl_alt,
        ix=ix,
        iy=iy,
        sp=sp,
        pc=pc,
        i=i,
        # Bit 7 of R lives in bit 0 of the flags byte.
        r=(r & 0x7F) | ((flags1 & 0x01) << 7),
        iff2=bool(iff2),
        im=flags2 & 0x03,
    )

    pos = Z80_HEADER_LEN
    version = 1
    hardware_mode = 0
    port_7ffd = 0

    if pc == 0:
        _need(data, pos, 4, "extended header")
        ext_len, regs.pc = struct.unpack_from("<HH", data, pos)
        pos += 4
        consumed = 2
        if ext_len >= 3:
            _need(data, pos, 1, "extended header")
            hardware_mode = data[pos]
            pos += 1
            consumed = 3
        if ext_len >= 4:
            _need(data, pos, 1, "extended header")
            port_7ffd = data[pos]
            pos += 1
            consumed = 4
        if ext_len < 2:
            consumed = 0

        skip = max(ext_len - consumed, 0)
        _need(data, pos, skip, "extended header")
        pos += skip

        # 23 is v2, 54/55 is v3; anything else is read as v2.
        version = 3 if ext_len in Z80_EXT_LEN_V3 else 2

    return Z80Header(
        version=version,
        regs=regs,
        border=(flags1 >> 1) & 0x07,
        compressed=bool(flags1 & Z80_FLAGS_COMPRESSED),
        hardware_mode=hardware_mode,
        port_7ffd=port_7ffd,
        machine=machine_for_hardware_mode(hardware_mode),
        body_offset=pos,
    )


def read_pages(data: bytes, header: Z80Header) -> dict[int, bytearray]:
    """Load the memory body into a bank number -> 16K page map."""
    pos = header.body_offset

    if header.version == 1:
        body = data[pos:]
        if header.compressed:
            ram = rle.decompress_block(body, RAM_48K_SIZE)
        else:
            ram = bytearray(RAM_48K_SIZE)
            n = min(len(body), RAM_48K_SIZE)
            ram[:n] = body[:n]
        return {
            5: ram[0:PAGE_SIZE],
            2: ram[PAGE_SIZE:2 * PAGE_SIZE],
            0: ram[2 * PAGE_SIZE:3 * PAGE_SIZE],
        }

    # Banks that never show up in the stream stay zeroed.
    pages = {n: bytearray(PAGE_SIZE) for n in range(PAGE_COUNT_128K)}
    table = PAGE_TABLES[header.machine]

    while pos < len(data):
        _need(data, pos, Z80_BLOCK_HEADER_LEN, "block header")
        block_len, page_id = struct.unpack_from(Z80_BLOCK_HEADER_FMT, data, pos)
        pos += Z80_BLOCK_HEADER_LEN

        raw = block_len == Z80_RAW_BLOCK
        end = pos + (PAGE_SIZE if raw else block_len)
        if end > len(data):
            break
        chunk = data[pos:end]
        pos = end

        bank = table.get(page_id)
        if bank is None:
            continue
        if raw:
            pages[bank][:] = chunk
        else:
            rle.decompress_into(chunk, pages[bank])

    return pages


def convert_z80_to_sna(data: bytes) -> CanonicalSnapshot:
    header = parse_header(data)
    pages = read_pages(data, header)
    return build_sna(header.regs, header.border, pages, header.machine, header.port_7ffd)

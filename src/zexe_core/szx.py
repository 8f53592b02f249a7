"""SZX (zx-state) snapshot decoder.

The file is an 8-byte header followed by tagged chunks. Only the register,
RAM page and special register chunks matter for the canonical image; every
other chunk is skipped by its declared length.
"""
from __future__ import annotations

import struct
from warnings import warn

from . import codec
from .errors import MalformedInputError
from .protocol import (
    PAGE_SIZE,
    SZX_CHUNK_FMT,
    SZX_CHUNK_HEADER_LEN,
    SZX_HEADER_FMT,
    SZX_HEADER_LEN,
    SZX_RAMP_COMPRESSED,
    SZX_RAMP_HEADER_FMT,
    SZX_RAMP_HEADER_LEN,
    SZX_REGS_LEN,
    SZX_SIGNATURE,
    SZX_TAG_RAM_PAGE,
    SZX_TAG_REGS,
    SZX_TAG_SPECREGS,
)
from .sna import CanonicalSnapshot, Machine, Registers, build_sna

# Machine id byte -> variant. 1: 48K, 2: 48K NTSC, 3: 128K, 4: +2, 5: +2A, 6: +3.
MACHINES = {
    1: Machine.SINCLAIR_48K,
    2: Machine.SINCLAIR_48K,
    3: Machine.SINCLAIR_128K,
    4: Machine.SINCLAIR_128K,
    5: Machine.SINCLAIR_128K,
    6: Machine.SINCLAIR_128K,
}


def registers_from_chunk(regs: bytes) -> Registers:
    """Decode a Z80R chunk body (padded to its full size)."""
    (af, bc, de, hl, af_alt, bc_alt, de_alt, hl_alt,
     ix, iy, sp, pc) = struct.unpack_from("<12H", regs)
    return Registers(
        af=af, bc=bc, de=de, hl=hl,
        af_alt=af_alt, bc_alt=bc_alt, de_alt=de_alt, hl_alt=hl_alt,
        ix=ix, iy=iy, sp=sp, pc=pc,
        i=regs[0x18],
        r=regs[0x19],
        iff2=regs[0x1B] != 0,
        im=regs[0x1C],
    )


def _slice(data: bytes, pos: int, n: int, what: str) -> bytes:
    if pos + n > len(data):
        raise MalformedInputError(f"SZX {what} truncated at offset {pos}")
    return data[pos:pos + n]


def parse_szx(data: bytes) -> tuple[Machine, Registers, int, int, dict[int, bytes]]:
    """Walk the chunk stream.

    Returns (machine, registers, border, port_7ffd, pages).
    """
    if len(data) < SZX_HEADER_LEN:
        raise MalformedInputError(f"SZX file too short ({len(data)} bytes)")
    signature, _major, _minor, machine_id, _flags = struct.unpack_from(SZX_HEADER_FMT, data)
    if signature != SZX_SIGNATURE:
        raise MalformedInputError(f"Invalid SZX signature {signature!r}")
    machine = MACHINES.get(machine_id)
    if machine is None:
        raise MalformedInputError(f"Unsupported machine ID in SZX: {machine_id}")

    regs = bytearray(SZX_REGS_LEN)
    pages: dict[int, bytes] = {}
    border = 0
    port_7ffd = 0

    pos = SZX_HEADER_LEN
    while pos < len(data):
        if pos + 4 > len(data):
            break
        tag, size = struct.unpack(
            SZX_CHUNK_FMT, _slice(data, pos, SZX_CHUNK_HEADER_LEN, "chunk header")
        )
        body = pos + SZX_CHUNK_HEADER_LEN

        if tag == SZX_TAG_REGS:
            n = min(size, SZX_REGS_LEN)
            regs[:n] = _slice(data, body, n, "Z80R chunk")

        elif tag == SZX_TAG_RAM_PAGE:
            if size < SZX_RAMP_HEADER_LEN:
                raise MalformedInputError(f"SZX RAMP chunk too short ({size} bytes)")
            flags, page_no = struct.unpack(
                SZX_RAMP_HEADER_FMT, _slice(data, body, SZX_RAMP_HEADER_LEN, "RAMP chunk")
            )
            payload = _slice(data, body + SZX_RAMP_HEADER_LEN, size - SZX_RAMP_HEADER_LEN, "RAMP chunk")
            if flags & SZX_RAMP_COMPRESSED:
                payload = codec.decompress(payload, f"RAM page {page_no}")
            if len(payload) == PAGE_SIZE:
                pages[page_no] = payload
            else:
                warn(f"Ignoring RAM page {page_no}: {len(payload)} bytes, expected {PAGE_SIZE}")

        elif tag == SZX_TAG_SPECREGS:
            border, port_7ffd = _slice(data, body, 2, "SPCR chunk")

        pos = body + size

    return machine, registers_from_chunk(bytes(regs)), border, port_7ffd, pages


def convert_szx_to_sna(data: bytes) -> CanonicalSnapshot:
    machine, regs, border, port_7ffd, pages = parse_szx(data)
    return build_sna(regs, border, pages, machine, port_7ffd)

"""Canonical snapshot (SNA layout) builder.

Every decoder converges here: registers, border colour and a page map go in,
one flat SNA image plus its machine variant comes out.

48K:  [header 27] [page 5] [page 2] [page 0]
128K: [header 27] [page 5] [page 2] [active page] [PC | port | 0] [other pages]
"""
from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import Enum
from typing import Mapping

from .errors import MalformedInputError, MissingPageError
from .protocol import (
    PAGE_COUNT_128K,
    PAGE_SIZE,
    SNA_128K_DUP_LEN,
    SNA_128K_LEN,
    SNA_48K_LEN,
    SNA_EXT_HEADER_FMT,
    SNA_HEADER_FMT,
    SNA_HEADER_LEN,
    SNA_IFF2_BIT,
    SNA_IFF_BASE,
    SNA_SP_OFFSET,
)


class Machine(str, Enum):
    SINCLAIR_48K = "48k"
    SINCLAIR_128K = "128k"


# Pages the 48K layout carries, in file order.
PAGES_48K = (5, 2, 0)


@dataclass
class Registers:
    """Z80 register file as 16-bit pairs (AF holds A in the high byte)."""

    af: int = 0
    bc: int = 0
    de: int = 0
    hl: int = 0
    af_alt: int = 0
    bc_alt: int = 0
    de_alt: int = 0
    hl_alt: int = 0
    ix: int = 0
    iy: int = 0
    sp: int = 0
    pc: int = 0
    i: int = 0
    r: int = 0
    iff2: bool = False
    im: int = 0


@dataclass(frozen=True)
class CanonicalSnapshot:
    data: bytes
    machine: Machine

    def __len__(self) -> int:
        return len(self.data)


def pack_header(regs: Registers, border: int, sp: int | None = None) -> bytes:
    """Serialize the 27-byte canonical header field by field."""
    iff = (SNA_IFF2_BIT if regs.iff2 else 0) | SNA_IFF_BASE
    return struct.pack(
        SNA_HEADER_FMT,
        regs.i & 0xFF,
        regs.hl_alt & 0xFFFF,
        regs.de_alt & 0xFFFF,
        regs.bc_alt & 0xFFFF,
        regs.af_alt & 0xFFFF,
        regs.hl & 0xFFFF,
        regs.de & 0xFFFF,
        regs.bc & 0xFFFF,
        regs.iy & 0xFFFF,
        regs.ix & 0xFFFF,
        iff,
        regs.r & 0xFF,
        regs.af & 0xFFFF,
        (regs.sp if sp is None else sp) & 0xFFFF,
        regs.im & 0xFF,
        border & 0x07,
    )


def unpack_header(data: bytes) -> tuple[Registers, int]:
    """Read registers and border back out of a canonical header.

    PC is not part of the header; see :func:`read_pc`.
    """
    if len(data) < SNA_HEADER_LEN:
        raise MalformedInputError(f"SNA header truncated ({len(data)} bytes)")
    (i, hl_alt, de_alt, bc_alt, af_alt, hl, de, bc, iy, ix,
     iff, r, af, sp, im, border) = struct.unpack_from(SNA_HEADER_FMT, data)
    regs = Registers(
        af=af, bc=bc, de=de, hl=hl,
        af_alt=af_alt, bc_alt=bc_alt, de_alt=de_alt, hl_alt=hl_alt,
        ix=ix, iy=iy, sp=sp, i=i, r=r,
        iff2=bool(iff & SNA_IFF2_BIT), im=im,
    )
    return regs, border


def machine_for_length(length: int) -> Machine | None:
    if length == SNA_48K_LEN:
        return Machine.SINCLAIR_48K
    if length in (SNA_128K_LEN, SNA_128K_DUP_LEN):
        return Machine.SINCLAIR_128K
    return None


def read_pc(data: bytes) -> int | None:
    """Program counter of a canonical image.

    128K images store it in the extension header. 48K images keep it on the
    stack, so it is peeked at SP; ``None`` when SP points outside RAM.
    """
    machine = machine_for_length(len(data))
    if machine is Machine.SINCLAIR_128K:
        pc, = struct.unpack_from("<H", data, SNA_48K_LEN)
        return pc
    if machine is None:
        return None
    sp, = struct.unpack_from("<H", data, SNA_SP_OFFSET)
    if not 0x4000 <= sp <= 0xFFFE:
        return None
    off = SNA_HEADER_LEN + sp - 0x4000
    return data[off] | (data[off + 1] << 8)


def _page(pages: Mapping[int, bytes], n: int) -> bytes:
    page = pages.get(n)
    if page is None:
        raise MissingPageError(n)
    if len(page) != PAGE_SIZE:
        raise MalformedInputError(f"RAM page {n} is {len(page)} bytes, expected {PAGE_SIZE}")
    return bytes(page)


def push_pc(ram: bytearray, sp: int, pc: int) -> int:
    """Push ``pc`` onto the stack held in a 48K RAM image and return the new SP.

    The write is skipped when the new SP falls in ROM or at the last byte of
    RAM; SP is decremented regardless.
    """
    new_sp = (sp - 2) & 0xFFFF
    if new_sp >= 0x4000:
        off = new_sp - 0x4000
        if off + 1 < len(ram):
            ram[off] = pc & 0xFF
            ram[off + 1] = (pc >> 8) & 0xFF
    return new_sp


def build_sna(
    regs: Registers,
    border: int,
    pages: Mapping[int, bytes],
    machine: Machine,
    port_7ffd: int = 0,
) -> CanonicalSnapshot:
    """Assemble the canonical image for ``machine`` from a page map."""
    if machine is Machine.SINCLAIR_48K:
        ram = bytearray()
        for n in PAGES_48K:
            ram += _page(pages, n)
        sp = push_pc(ram, regs.sp, regs.pc)
        data = pack_header(regs, border, sp=sp) + bytes(ram)
        return CanonicalSnapshot(data, machine)

    active = port_7ffd & 0x07
    out = bytearray(pack_header(regs, border))
    for n in (5, 2, active):
        out += _page(pages, n)
    out += struct.pack(SNA_EXT_HEADER_FMT, regs.pc & 0xFFFF, port_7ffd & 0xFF, 0)
    for n in range(PAGE_COUNT_128K):
        if n in (5, 2, active):
            continue
        out += _page(pages, n)
    return CanonicalSnapshot(bytes(out), machine)


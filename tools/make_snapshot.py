import random
import struct
import zlib
from pathlib import Path

from zexe_core import rle
from zexe_core.protocol import (
    PAGE_SIZE,
    SZX_SIGNATURE,
    SZX_TAG_RAM_PAGE,
    SZX_TAG_REGS,
    SZX_TAG_SPECREGS,
    Z80_HEADER_FMT,
)

# --- CONFIGURATION ---
DEMO_PC = 0x8000
DEMO_SP = 0xFF40
DEMO_BORDER = 1
DEMO_PORT_7FFD = 0x03  # page 3 at 0xC000


def make_page(rng: random.Random, bank: int) -> bytes:
    """A 16K page that compresses well but is not all zeros."""
    page = bytearray(PAGE_SIZE)
    if bank == 5:
        # Bitmap stripes + white paper / black ink attributes.
        for i in range(6144):
            page[i] = 0xAA if (i // 256) % 2 else 0x55
        page[6144:6912] = bytes([0x38]) * 768
    else:
        for i in range(0, PAGE_SIZE, 512):
            page[i] = bank
            page[i + 1] = rng.randint(0, 255)
    # Force a few ED runs so the codec sees its own marker byte.
    page[100:103] = b"\xed\xed\xed"
    page[200] = 0xED
    return bytes(page)


def z80_base_header(pc: int, compressed: bool) -> bytes:
    flags1 = (DEMO_BORDER << 1) | (0x20 if compressed else 0)
    return struct.pack(
        Z80_HEADER_FMT,
        0x12, 0x34,          # A, F
        0x1111, 0x2222,      # BC, HL
        pc, DEMO_SP,         # PC, SP
        0x3F, 0x05, flags1,  # I, R, flags
        0x3333,              # DE
        0x4444, 0x5555, 0x6666,  # BC', DE', HL'
        0x77, 0x88,          # A', F'
        0x5C3A, 0x9999,      # IY, IX
        1, 1, 1,             # IFF1, IFF2, IM 1
    )


def make_z80_v1(rng: random.Random) -> bytes:
    ram = make_page(rng, 5) + make_page(rng, 2) + make_page(rng, 0)
    body = rle.compress_block(ram) + b"\x00\xed\xed\x00"
    return z80_base_header(DEMO_PC, compressed=True) + body


def make_z80_v3_128k(rng: random.Random) -> bytes:
    ext = struct.pack("<HHBB", 54, DEMO_PC, 4, DEMO_PORT_7FFD) + bytes(50)
    out = bytearray(z80_base_header(0, compressed=False) + ext)
    for bank in range(8):
        block = rle.compress_block(make_page(rng, bank))
        out += struct.pack("<HB", len(block), bank + 3) + block
    return bytes(out)


def szx_chunk(tag: bytes, body: bytes) -> bytes:
    return struct.pack("<4sI", tag, len(body)) + body


def make_szx_48k(rng: random.Random) -> bytes:
    regs = bytearray(0x25)
    struct.pack_into(
        "<12H", regs, 0,
        0x1234, 0x1111, 0x3333, 0x2222,
        0x7788, 0x4444, 0x5555, 0x6666,
        0x9999, 0x5C3A, DEMO_SP, DEMO_PC,
    )
    regs[0x18] = 0x3F  # I
    regs[0x19] = 0x05  # R
    regs[0x1A] = 1     # IFF1
    regs[0x1B] = 1     # IFF2
    regs[0x1C] = 1     # IM
    out = bytearray(struct.pack("<4sBBBB", SZX_SIGNATURE, 1, 4, 1, 0))
    out += szx_chunk(b"CRTR", b"make_snapshot".ljust(32, b"\x00") + b"\x00\x01\x00\x00")
    out += szx_chunk(SZX_TAG_REGS, bytes(regs))
    out += szx_chunk(SZX_TAG_SPECREGS, bytes([DEMO_BORDER, 0]) + bytes(6))
    for bank in (5, 2, 0):
        packed = zlib.compress(make_page(rng, bank))
        out += szx_chunk(SZX_TAG_RAM_PAGE, struct.pack("<HB", 1, bank) + packed)
    return bytes(out)


KINDS = {
    "z80": ("demo48.z80", make_z80_v1),
    "z80-128": ("demo128.z80", make_z80_v3_128k),
    "szx": ("demo48.szx", make_szx_48k),
}


def generate(output_dir: str, kinds: list[str], seed: int = 48) -> list[Path]:
    rng = random.Random(seed)
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)
    written = []
    for kind in kinds:
        name, make = KINDS[kind]
        path = out / name
        path.write_bytes(make(rng))
        print(f"GENERATED: {path}")
        written.append(path)
    return written


if __name__ == "__main__":
    import sys

    # Usage:
    #   python tools/make_snapshot.py OUT_DIR [--kind z80|z80-128|szx] [--seed N]

    args = [a for a in sys.argv[1:] if a]

    def pop_option(arg_list: list[str], name: str) -> tuple[str | None, list[str]]:
        """Remove ``name VALUE`` from an argv-style list."""
        if name not in arg_list:
            return None, arg_list
        i = arg_list.index(name)
        if i + 1 >= len(arg_list):
            raise SystemExit(f"{name} requires a value")
        return arg_list[i + 1], arg_list[:i] + arg_list[i + 2:]

    kind, args = pop_option(args, "--kind")
    seed, args = pop_option(args, "--seed")

    if kind is not None and kind not in KINDS:
        raise SystemExit(f"Unknown kind {kind!r}; choose from {', '.join(KINDS)}")

    out = args[0] if args else "demo_snapshots"
    generate(out, [kind] if kind else list(KINDS), seed=int(seed) if seed else 48)

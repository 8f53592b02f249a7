"""Z80 memory block run-length codec.

A block is a byte stream where ``ED ED nn vv`` stands for ``nn`` copies of
``vv`` and every other byte stands for itself. Blocks carry no end marker;
the decoder is bounded by the size of the output it is asked to fill.
"""
from __future__ import annotations

from .protocol import RLE_MARKER

MAX_RUN = 0xFF
MIN_RUN = 5


def decompress_into(data: bytes, out: bytearray) -> int:
    """Expand ``data`` into ``out`` and return the number of bytes written.

    Stops when ``out`` is full or ``data`` is exhausted. A marker cut short by
    the end of the input (fewer than four bytes left) is copied as-is.
    """
    size = len(out)
    n = len(data)
    i = 0
    j = 0
    while i < n and j < size:
        if i + 4 <= n and data[i] == RLE_MARKER and data[i + 1] == RLE_MARKER:
            count = data[i + 2]
            value = data[i + 3]
            i += 4
            run = min(count, size - j)
            out[j:j + run] = bytes((value,)) * run
            j += run
        else:
            out[j] = data[i]
            j += 1
            i += 1
    return j


def decompress_block(data: bytes, size: int) -> bytearray:
    """Expand ``data`` into a zero-filled buffer of exactly ``size`` bytes."""
    out = bytearray(size)
    decompress_into(data, out)
    return out


def compress_block(data: bytes) -> bytes:
    """Encode ``data`` so that :func:`decompress_block` gives it back.

    Runs of five or more, and any run of two or more ``ED`` bytes, become
    markers. The byte following a lone ``ED`` is always written literally so
    the pair can never be mistaken for a marker.
    """
    out = bytearray()
    n = len(data)
    i = 0
    after_single_ed = False
    while i < n:
        value = data[i]
        if after_single_ed:
            out.append(value)
            i += 1
            after_single_ed = False
            continue

        run = 1
        while i + run < n and run < MAX_RUN and data[i + run] == value:
            run += 1

        if run >= MIN_RUN or (value == RLE_MARKER and run >= 2):
            out += bytes((RLE_MARKER, RLE_MARKER, run, value))
        elif value == RLE_MARKER:
            out.append(value)
            after_single_ed = True
        else:
            out += bytes((value,)) * run
        i += run
    return bytes(out)

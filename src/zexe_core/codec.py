"""Generic resource compression (zlib) used for every container block."""
from __future__ import annotations

import zlib

from .errors import DecompressionError


def compress(data: bytes) -> bytes:
    return zlib.compress(data, zlib.Z_DEFAULT_COMPRESSION)


def decompress(data: bytes, what: str = "block") -> bytes:
    try:
        return zlib.decompress(data)
    except zlib.error as e:
        raise DecompressionError(f"Failed to decompress {what}: {e}") from e

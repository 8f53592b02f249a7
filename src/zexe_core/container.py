"""Runnable image container: base image + compressed resources + trailer.

Layout on disk, base image first:

    [base image] [snapshot] [shader] [pokes] [config] [trailer 20]

Resource offsets are not stored. The reader walks backward from the trailer
using the declared sizes (config innermost, snapshot outermost).
"""
from __future__ import annotations

import io
import struct
from dataclasses import dataclass, field
from functools import cached_property
from pathlib import Path
from typing import BinaryIO
from warnings import warn

from . import codec
from .config import Config, parse_config
from .errors import DecompressionError, MalformedInputError
from .protocol import (
    MAX_RESOURCE_SIZE,
    RESOURCE_ORDER,
    TRAILER_FMT,
    TRAILER_LEN,
    TRAILER_MAGIC,
)


@dataclass(frozen=True)
class Trailer:
    snapshot_size: int = 0
    shader_size: int = 0
    pokes_size: int = 0
    config_size: int = 0
    magic: bytes = TRAILER_MAGIC

    @property
    def valid(self) -> bool:
        return self.magic == TRAILER_MAGIC

    @property
    def sizes(self) -> dict[str, int]:
        return {
            "snapshot": self.snapshot_size,
            "shader": self.shader_size,
            "pokes": self.pokes_size,
            "config": self.config_size,
        }

    @property
    def payload_size(self) -> int:
        return sum(self.sizes.values())

    def pack(self) -> bytes:
        for name, size in self.sizes.items():
            if not 0 <= size <= MAX_RESOURCE_SIZE:
                raise ValueError(f"{name} block size {size} does not fit the trailer")
        return struct.pack(
            TRAILER_FMT,
            self.magic,
            self.snapshot_size,
            self.shader_size,
            self.pokes_size,
            self.config_size,
        )

    @classmethod
    def unpack(cls, raw: bytes) -> "Trailer":
        if len(raw) != TRAILER_LEN:
            raise MalformedInputError(f"Trailer must be {TRAILER_LEN} bytes, got {len(raw)}")
        magic, snapshot, shader, pokes, config = struct.unpack(TRAILER_FMT, raw)
        return cls(snapshot, shader, pokes, config, magic=magic)

    def offsets(self, file_len: int) -> dict[str, int]:
        """Absolute start offset of every resource block in a file of ``file_len``."""
        out: dict[str, int] = {}
        cur = file_len - TRAILER_LEN
        for name in reversed(RESOURCE_ORDER):
            cur -= self.sizes[name]
            out[name] = cur
        if cur < 0:
            raise MalformedInputError(
                f"Trailer sizes ({self.payload_size} bytes) exceed file length {file_len}"
            )
        return {name: out[name] for name in RESOURCE_ORDER}


@dataclass
class Bundle:
    """Resources recovered from a runnable image.

    ``trailer`` is ``None`` for a plain image with nothing embedded.
    """

    base_size: int
    trailer: Trailer | None = None
    snapshot: bytes | None = None
    shader: str | None = None
    pokes: str | None = None
    config_text: str | None = None
    offsets: dict[str, int] = field(default_factory=dict)

    @property
    def embedded(self) -> bool:
        return self.trailer is not None

    @cached_property
    def config(self) -> Config | None:
        """Parsed on first access; field warnings are emitted once."""
        if self.config_text is None:
            return None
        return parse_config(self.config_text)


def build_bundle(
    base: bytes,
    snapshot: bytes,
    shader: bytes | None = None,
    pokes: bytes | None = None,
    config: bytes | None = None,
) -> bytes:
    """Return ``base`` with every present resource compressed and appended."""
    blocks = {"snapshot": codec.compress(snapshot)}
    for name, data in (("shader", shader), ("pokes", pokes), ("config", config)):
        # Empty resources are treated as absent.
        if data:
            blocks[name] = codec.compress(data)

    trailer = Trailer(
        snapshot_size=len(blocks["snapshot"]),
        shader_size=len(blocks.get("shader", b"")),
        pokes_size=len(blocks.get("pokes", b"")),
        config_size=len(blocks.get("config", b"")),
    )

    out = bytearray(base)
    for name in RESOURCE_ORDER:
        out += blocks.get(name, b"")
    out += trailer.pack()
    return bytes(out)


def read_trailer(f: BinaryIO, file_len: int) -> Trailer | None:
    """Trailer at the end of ``f``, or ``None`` if the magic does not match."""
    if file_len < TRAILER_LEN:
        return None
    f.seek(file_len - TRAILER_LEN)
    trailer = Trailer.unpack(f.read(TRAILER_LEN))
    if not trailer.valid:
        return None
    return trailer


def _read_block(f: BinaryIO, offset: int, size: int) -> bytes:
    f.seek(offset)
    blob = f.read(size)
    if len(blob) != size:
        raise MalformedInputError(f"Torn resource block at offset {offset}")
    return blob


def _optional_text(blob: bytes, name: str) -> str | None:
    try:
        return codec.decompress(blob, name).decode("utf-8")
    except (DecompressionError, UnicodeDecodeError) as e:
        warn(f"Dropping embedded {name}: {e}")
        return None


def read_bundle_stream(f: BinaryIO, file_len: int) -> Bundle:
    trailer = read_trailer(f, file_len)
    if trailer is None:
        return Bundle(base_size=file_len)

    offsets = trailer.offsets(file_len)
    bundle = Bundle(base_size=offsets["snapshot"], trailer=trailer, offsets=offsets)

    if trailer.snapshot_size:
        blob = _read_block(f, offsets["snapshot"], trailer.snapshot_size)
        bundle.snapshot = codec.decompress(blob, "snapshot")

    texts = {}
    for name in ("shader", "pokes", "config"):
        size = trailer.sizes[name]
        if size:
            texts[name] = _optional_text(_read_block(f, offsets[name], size), name)

    bundle.shader = texts.get("shader")
    bundle.pokes = texts.get("pokes")
    bundle.config_text = texts.get("config")
    return bundle


def read_bundle(data: bytes) -> Bundle:
    return read_bundle_stream(io.BytesIO(data), len(data))


def read_bundle_file(path: Path) -> Bundle:
    with open(path, "rb") as f:
        file_len = f.seek(0, io.SEEK_END)
        return read_bundle_stream(f, file_len)

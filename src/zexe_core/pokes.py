"""POK cheat files: reversible single-byte memory patches.

Only memory patch lines are understood::

    M <bank> <address> <value> <original>
    Z <bank> <address> <value> <original>

Anything else, including malformed numbers, is skipped.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field

from .container import Bundle

_NUMBER = re.compile(r"\+?[0-9]+")
PATCH_MARKERS = ("M", "Z")


@dataclass(frozen=True)
class PokeEntry:
    addr: int
    value: int
    original: int


def _parse_uint(text: str, limit: int) -> int | None:
    if not _NUMBER.fullmatch(text):
        return None
    n = int(text)
    return n if n <= limit else None


def parse_pokes(content: str) -> list[PokeEntry]:
    pokes: list[PokeEntry] = []
    for line in content.splitlines():
        parts = line.split()
        if len(parts) < 5 or parts[0] not in PATCH_MARKERS:
            continue
        addr = _parse_uint(parts[2], 0xFFFF)
        value = _parse_uint(parts[3], 0xFF)
        original = _parse_uint(parts[4], 0xFF)
        if addr is None or value is None or original is None:
            continue
        pokes.append(PokeEntry(addr, value, original))
    return pokes


@dataclass
class PokeSet:
    """Pokes for a running session plus whether they are currently applied."""

    entries: list[PokeEntry] = field(default_factory=list)
    enabled: bool = False

    @classmethod
    def from_text(cls, content: str | None, enabled: bool = False) -> "PokeSet":
        return cls(parse_pokes(content) if content else [], enabled)

    @classmethod
    def from_bundle(cls, bundle: Bundle) -> "PokeSet":
        """Embedded pokes, applied from the start when the config enables cheats."""
        config = bundle.config
        return cls.from_text(bundle.pokes, enabled=bool(config and config.cheats_enabled))

    def actions(self) -> list[tuple[int, int]]:
        """Memory writes that bring RAM in line with the current state."""
        if self.enabled:
            return [(p.addr, p.value) for p in self.entries]
        return [(p.addr, p.original) for p in self.entries]

    def toggle(self) -> list[tuple[int, int]]:
        """Flip the state and return the writes to perform.

        With no entries nothing changes and there is nothing to write.
        """
        if not self.entries:
            return []
        self.enabled = not self.enabled
        return self.actions()

    def apply(self, memory: bytearray) -> None:
        """Perform the current writes on a flat 64K address space."""
        for addr, value in self.actions():
            memory[addr] = value

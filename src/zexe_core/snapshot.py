"""Route raw snapshot bytes to the right decoder."""
from __future__ import annotations

from .errors import MalformedInputError
from .protocol import SZX_SIGNATURE
from .sna import CanonicalSnapshot, Machine, machine_for_length
from .szx import convert_szx_to_sna
from .z80 import convert_z80_to_sna, has_extended_header


def detect_format(data: bytes) -> str:
    """Return ``"sna"``, ``"szx"`` or ``"z80"``.

    SNA has no signature, so it is recognised by its exact size. A 128K-sized
    file that opens with a v2/v3 Z80 header is Z80, since the 128K Z80 body
    can land on the same length. Anything that is neither SNA-sized nor
    ZXST-tagged is assumed to be Z80.
    """
    machine = machine_for_length(len(data))
    if machine is Machine.SINCLAIR_128K and has_extended_header(data):
        return "z80"
    if machine is not None:
        return "sna"
    if data.startswith(SZX_SIGNATURE):
        return "szx"
    return "z80"


def to_canonical(data: bytes) -> CanonicalSnapshot:
    if not data:
        raise MalformedInputError("Empty snapshot")
    fmt = detect_format(data)
    if fmt == "sna":
        return CanonicalSnapshot(bytes(data), machine_for_length(len(data)))
    if fmt == "szx":
        return convert_szx_to_sna(data)
    return convert_z80_to_sna(data)

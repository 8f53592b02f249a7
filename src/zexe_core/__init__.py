"""zexe core - snapshot decoding and runnable image containers."""
from .config import Config, parse_config, resolve_settings
from .container import Bundle, Trailer, build_bundle, read_bundle, read_bundle_file
from .errors import (
    DecompressionError,
    MalformedInputError,
    MissingInputError,
    MissingPageError,
    ZexeError,
)
from .pokes import PokeEntry, PokeSet, parse_pokes
from .sna import CanonicalSnapshot, Machine
from .snapshot import detect_format, to_canonical

__all__ = [
    "Bundle",
    "CanonicalSnapshot",
    "Config",
    "DecompressionError",
    "Machine",
    "MalformedInputError",
    "MissingInputError",
    "MissingPageError",
    "PokeEntry",
    "PokeSet",
    "Trailer",
    "ZexeError",
    "build_bundle",
    "detect_format",
    "parse_config",
    "parse_pokes",
    "read_bundle",
    "read_bundle_file",
    "resolve_settings",
    "to_canonical",
]

"""Error codes and exception types shared by every zexe tool."""
from __future__ import annotations

ERRORS = {
    "E_MALFORMED_INPUT": "Input is malformed or truncated",
    "E_MISSING_PAGE": "Required memory page missing",
    "E_DECOMPRESS": "Compressed block failed to inflate",
    "E_INPUT_MISSING": "Required input file missing",
}


class ZexeError(ValueError):
    """Base class for fatal conversion, bundle and extract failures."""

    code = "E_MALFORMED_INPUT"

    def as_dict(self) -> dict:
        return {"code": self.code, "message": ERRORS[self.code], "detail": str(self)}


class MalformedInputError(ZexeError):
    code = "E_MALFORMED_INPUT"


class MissingPageError(ZexeError):
    code = "E_MISSING_PAGE"

    def __init__(self, page: int):
        super().__init__(f"Missing RAM page {page}")
        self.page = page


class DecompressionError(ZexeError):
    code = "E_DECOMPRESS"


class MissingInputError(ZexeError):
    code = "E_INPUT_MISSING"

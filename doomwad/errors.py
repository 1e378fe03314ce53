"""Exception types raised while reading WAD archives and their lumps."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

E_INVALID_HEADER = "E_INVALID_HEADER"
E_OUT_OF_RANGE = "E_OUT_OF_RANGE"
E_INVALID_FORMAT = "E_INVALID_FORMAT"
E_MAP_NOT_FOUND = "E_MAP_NOT_FOUND"
E_TRUNCATED_TABLE = "E_TRUNCATED_TABLE"
E_LUMP_NOT_FOUND = "E_LUMP_NOT_FOUND"


@dataclass(eq=False)
class WadError(Exception):
    code: str
    message: str
    context: Optional[dict[str, Any]] = None

    def __str__(self) -> str:
        return f"{self.code}: {self.message}" + (
            f" | ctx={self.context}" if self.context else ""
        )


class InvalidHeader(WadError):
    pass


class OutOfRange(WadError):
    pass


class InvalidFormat(WadError):
    pass


class TruncatedTable(WadError):
    pass


class MapNotFound(WadError, KeyError):
    pass


class LumpNotFound(WadError, KeyError):
    pass


def invalid_header(message: str, **context: Any) -> InvalidHeader:
    return InvalidHeader(code=E_INVALID_HEADER, message=message, context=context or None)


def out_of_range(message: str, **context: Any) -> OutOfRange:
    return OutOfRange(code=E_OUT_OF_RANGE, message=message, context=context or None)


def invalid_format(message: str, **context: Any) -> InvalidFormat:
    return InvalidFormat(code=E_INVALID_FORMAT, message=message, context=context or None)


def truncated_table(message: str, **context: Any) -> TruncatedTable:
    return TruncatedTable(code=E_TRUNCATED_TABLE, message=message, context=context or None)


def map_not_found(name: str) -> MapNotFound:
    return MapNotFound(code=E_MAP_NOT_FOUND, message=f"Map lump not found: {name!r}")


def lump_not_found(name: str) -> LumpNotFound:
    return LumpNotFound(code=E_LUMP_NOT_FOUND, message=f"Lump not found: {name!r}")


__all__ = [
    "WadError",
    "InvalidHeader",
    "OutOfRange",
    "InvalidFormat",
    "TruncatedTable",
    "MapNotFound",
    "LumpNotFound",
    "invalid_header",
    "out_of_range",
    "invalid_format",
    "truncated_table",
    "map_not_found",
    "lump_not_found",
    "E_INVALID_HEADER",
    "E_OUT_OF_RANGE",
    "E_INVALID_FORMAT",
    "E_MAP_NOT_FOUND",
    "E_TRUNCATED_TABLE",
    "E_LUMP_NOT_FOUND",
]

from __future__ import annotations

from typing import Optional


class LibraryDataError(Exception):
    """Base exception."""


class ParseError(LibraryDataError):
    """Raised when delimited source text can not be turned into records.

    Args:
        msg           Descriptive message of the error
        line_number   1-based line of the source text, if the error is tied to one
        source        Name of the source (e.g. "books.csv"), if known
    """

    def __init__(self, msg: str, line_number: Optional[int] = None, source: Optional[str] = None):
        super().__init__(msg)
        self.line_number = line_number
        self.source = source

    def __str__(self) -> str:
        msg = super().__str__()
        where = []
        if self.source:
            where.append(self.source)
        if self.line_number is not None:
            where.append(f"line {self.line_number}")
        return f"{msg} ({', '.join(where)})" if where else msg


class ExportError(LibraryDataError):
    """Raised when a report artifact could not be written."""

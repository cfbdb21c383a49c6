"""Exceptions raised by the file readers.

All parse failures are fatal: a reader that raises returns no partial result.
File-access problems are left to the built-in ``OSError`` family.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class ParseError(ValueError):
    """Raised when a file's content does not fit its format."""

    def __init__(
        self,
        message: str,
        *,
        path: Optional[str | Path] = None,
        line_no: Optional[int] = None,
        line: Optional[str] = None,
    ) -> None:
        self.path = str(path) if path is not None else None
        self.line_no = line_no
        self.line = line
        self.reason = message

        where = ""
        if self.path is not None:
            where = self.path if line_no is None else f"{self.path}:{line_no}"
        msg = f"{where}: {message}" if where else message
        if line is not None:
            msg += f"\n  offending line: {line.rstrip()!r}"
        super().__init__(msg)


class MalformedLineError(ParseError):
    """A line has the wrong number of columns or a field fails to parse."""


class DimensionMismatchError(ParseError):
    """Counts declared in a HapMatrix header disagree with the rows present."""


class PatternMismatchError(ParseError):
    """A VCF data line matches none of the supported caller dialects."""

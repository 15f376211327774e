"""Exception types raised by changeguard."""

from __future__ import annotations

from typing import Optional


class ChangeGuardError(Exception):
    """Base class for all changeguard errors."""


class ParseError(ChangeGuardError):
    """Source text could not be parsed by a strict (syntactic) extractor."""

    def __init__(self, filename: str, message: str, line: Optional[int] = None) -> None:
        self.filename = filename
        self.line = line
        self.message = message
        location = f"{filename}:{line}" if line is not None else filename
        super().__init__(f"failed to parse {location}: {message}")


class SessionClosedError(ChangeGuardError):
    """An analysis session was used after :meth:`close`."""

"""Common extraction interface implemented by every language backend."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from .models import Symbol


class SymbolExtractor(ABC):
    """Abstract base class for per-language symbol extractors.

    Implementations are stateless: ``extract`` may be called concurrently
    from several threads.  Grammar-backed extractors raise
    :class:`~changeguard.errors.ParseError` on invalid input; pattern-based
    ones never raise.
    """

    language: str = "unknown"

    @abstractmethod
    def extract(self, filename: str, source: str) -> List[Symbol]:
        """Return every symbol declared in *source*."""
        ...


def normalize_whitespace(text: str) -> str:
    """Collapse every whitespace run in *text* to a single space."""
    return " ".join(text.split())

"""Symbol extraction entry point.

Selects a per-language :class:`~changeguard.base.SymbolExtractor` by file
extension:

- Go is parsed with Tree-sitter and rejects syntactically invalid source.
- TypeScript/JavaScript, Python, Rust and Java use line-anchored patterns
  and never fail.
- Anything else yields an empty symbol list.
"""

from __future__ import annotations

import logging
from pathlib import PurePosixPath
from typing import Dict, List, Optional

from .base import SymbolExtractor
from .go_parser import GoExtractor
from .heuristics import HEURISTIC_EXTRACTORS
from .models import Symbol

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Language <-> file-extension mapping
# ---------------------------------------------------------------------------
LANGUAGE_MAP: Dict[str, str] = {
    ".go": "go",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".py": "python",
    ".rs": "rust",
    ".java": "java",
}

LANG_UNKNOWN = "unknown"


def detect_language(filename: str) -> str:
    """Determine the language from the file extension."""
    ext = PurePosixPath(filename.replace("\\", "/")).suffix.lower()
    return LANGUAGE_MAP.get(ext, LANG_UNKNOWN)


def get_language_from_filename(filename: str) -> str:
    """Like :func:`detect_language` but returns ``""`` for unsupported files."""
    language = detect_language(filename)
    return "" if language == LANG_UNKNOWN else language


class SymbolParser:
    """Dispatch extraction to the extractor registered for each language.

    Extractors can be swapped per language with :meth:`register` without
    touching the breaking-change detector or the impact analyzer.
    """

    def __init__(self, extractors: Optional[Dict[str, SymbolExtractor]] = None) -> None:
        if extractors is None:
            extractors = {"go": GoExtractor(), **HEURISTIC_EXTRACTORS}
        self._extractors: Dict[str, SymbolExtractor] = dict(extractors)

    def register(self, language: str, extractor: SymbolExtractor) -> None:
        self._extractors[language] = extractor

    def supports_language(self, language: str) -> bool:
        return language in self._extractors

    def parse_file(self, filename: str, content: str) -> List[Symbol]:
        """Extract symbols from *content*.

        Raises:
            ParseError: the language has a strict extractor and *content*
                is not syntactically valid.
        """
        language = detect_language(filename)
        extractor = self._extractors.get(language)
        if extractor is None:
            logger.debug("No extractor for %s (language: %s)", filename, language)
            return []
        return extractor.extract(filename, content)


_default_parser = SymbolParser()


def extract_symbols(filename: str, content: str) -> List[Symbol]:
    """Extract symbols using the default extractor set."""
    return _default_parser.parse_file(filename, content)

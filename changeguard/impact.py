"""Cross-file impact analysis.

An :class:`ImpactAnalyzer` is one analysis session.  It owns a symbol table
and a reference index that grow as files are indexed with
:meth:`ImpactAnalyzer.index_file`; :meth:`ImpactAnalyzer.analyze_impact`
then reports which other files reference the symbols changed in one file.

Reference discovery is textual: a line references every known symbol
name that appears in it as a whole word.  Only names known when a file is
indexed are looked for, so index definitions before their users (or index
everything twice) when order matters.
"""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from .breaking import build_symbol_map, parse_old_revision
from .config import AnalysisConfig
from .errors import SessionClosedError
from .models import (
    IMPACT_CRITICAL,
    IMPACT_HIGH,
    IMPACT_LOW,
    IMPACT_MEDIUM,
    IMPACT_SEVERITY_ORDER,
    SYMBOL_FUNCTION,
    SYMBOL_METHOD,
    FileImpact,
    Impact,
    Reference,
    Symbol,
    SymbolKey,
)
from .parser import SymbolParser

logger = logging.getLogger(__name__)

_WORD = re.compile(r"\w+")


@dataclass
class SymbolTable:
    """Every symbol and reference seen during one session."""

    symbols: Dict[str, List[Symbol]] = field(default_factory=dict)  # name -> symbols
    by_file: Dict[str, List[Symbol]] = field(default_factory=dict)  # path -> symbols
    references: Dict[str, List[Reference]] = field(default_factory=dict)  # name -> refs

    def clear(self) -> None:
        self.symbols.clear()
        self.by_file.clear()
        self.references.clear()


def symbol_changed(old: Symbol, new: Symbol) -> bool:
    """True when the declaration's API surface differs between revisions."""
    return (
        old.signature != new.signature
        or old.parameters != new.parameters
        or old.return_type != new.return_type
        or old.exported != new.exported
    )


def calculate_overall_severity(impacts: List[Impact]) -> str:
    """Highest impact severity; ``low`` when there are no impacts."""
    overall = IMPACT_LOW
    for imp in impacts:
        if IMPACT_SEVERITY_ORDER.get(imp.severity, 0) > IMPACT_SEVERITY_ORDER[overall]:
            overall = imp.severity
    return overall


class ImpactAnalyzer:
    """Index a codebase and compute the cross-file impact of changes.

    Index mutation and queries are serialized with a re-entrant lock, so a
    session may be shared between threads.  Use it as a context manager,
    or call :meth:`close`, to discard the index.
    """

    def __init__(
        self,
        parser: Optional[SymbolParser] = None,
        config: Optional[AnalysisConfig] = None,
    ) -> None:
        self.parser = parser or SymbolParser()
        self.config = config or AnalysisConfig()
        self.symbol_table = SymbolTable()
        self._dependencies: Dict[str, List[str]] = {}  # file -> files it depends on
        self._dependents: Dict[str, List[str]] = {}  # file -> files that depend on it
        self._lock = threading.RLock()
        self._closed = False

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def __enter__(self) -> "ImpactAnalyzer":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        with self._lock:
            self.symbol_table.clear()
            self._dependencies.clear()
            self._dependents.clear()
            self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_open(self) -> None:
        if self._closed:
            raise SessionClosedError("analysis session is closed")

    # ------------------------------------------------------------------
    # Indexing
    # ------------------------------------------------------------------

    def index_file(self, filename: str, content: str) -> None:
        """Add *filename*'s symbols to the index and record its references.

        Raises:
            ParseError: *content* cannot be parsed.
            SessionClosedError: the session was closed.
        """
        self._ensure_open()
        symbols = self.parser.parse_file(filename, content)

        with self._lock:
            self._ensure_open()
            table = self.symbol_table
            if self.config.replace_on_reindex and filename in table.by_file:
                self._remove_file_locked(filename)

            table.by_file[filename] = list(symbols)
            for sym in symbols:
                table.symbols.setdefault(sym.name, []).append(sym)

            # Files already referencing these names now depend on this one.
            for sym in symbols:
                for ref in table.references.get(sym.name, []):
                    if ref.file_path != filename:
                        self._add_edge(ref.file_path, filename)

            found = self._find_references(filename, content)

        logger.debug("Indexed %s: %d symbols, %d references", filename, len(symbols), found)

    def remove_file(self, filename: str) -> None:
        """Drop every symbol, reference and dependency edge contributed by *filename*."""
        with self._lock:
            self._ensure_open()
            self._remove_file_locked(filename)

    def _remove_file_locked(self, filename: str) -> None:
        table = self.symbol_table
        table.by_file.pop(filename, None)

        for name in list(table.symbols):
            kept = [s for s in table.symbols[name] if s.file_path != filename]
            if kept:
                table.symbols[name] = kept
            else:
                del table.symbols[name]

        for name in list(table.references):
            kept_refs = [r for r in table.references[name] if r.file_path != filename]
            if kept_refs:
                table.references[name] = kept_refs
            else:
                del table.references[name]

        for target in self._dependencies.pop(filename, []):
            dependents = self._dependents.get(target, [])
            if filename in dependents:
                dependents.remove(filename)
        for source in self._dependents.pop(filename, []):
            deps = self._dependencies.get(source, [])
            if filename in deps:
                deps.remove(filename)

    def _find_references(self, filename: str, content: str) -> int:
        """Record references in *content* to every currently known symbol name."""
        table = self.symbol_table
        markers = tuple(self.config.comment_markers)
        found = 0

        for line_no, line in enumerate(content.split("\n"), start=1):
            stripped = line.strip()
            if markers and stripped.startswith(markers):
                continue

            seen: Set[str] = set()
            for word in _WORD.findall(line):
                if word in seen or word not in table.symbols:
                    continue
                seen.add(word)
                # A definition site is not a reference.
                if any(s.file_path == filename and s.start_line == line_no for s in table.symbols[word]):
                    continue
                table.references.setdefault(word, []).append(
                    Reference(file_path=filename, line=line_no, context=stripped)
                )
                self._record_dependency(filename, word)
                found += 1

        return found

    def _record_dependency(self, filename: str, symbol_name: str) -> None:
        for sym in self.symbol_table.symbols.get(symbol_name, []):
            target = sym.file_path
            if target != filename:
                self._add_edge(filename, target)

    def _add_edge(self, source: str, target: str) -> None:
        """Record that *source* depends on *target*."""
        deps = self._dependencies.setdefault(source, [])
        if target not in deps:
            deps.append(target)
        dependents = self._dependents.setdefault(target, [])
        if source not in dependents:
            dependents.append(source)

    # ------------------------------------------------------------------
    # Impact analysis
    # ------------------------------------------------------------------

    def analyze_impact(self, old_content: str, new_content: str, filename: str) -> FileImpact:
        """Report the cross-file impact of changing *filename*.

        Uses only references recorded by earlier :meth:`index_file` calls.

        Raises:
            ParseError: *new_content* cannot be parsed.
            SessionClosedError: the session was closed.
        """
        self._ensure_open()
        old_symbols = parse_old_revision(self.parser, filename, old_content)
        new_symbols = self.parser.parse_file(filename, new_content)

        old_map = build_symbol_map(old_symbols)
        new_map = build_symbol_map(new_symbols)

        changed: List[Symbol] = []
        for key, old_sym in old_map.items():
            new_sym = new_map.get(key)
            if new_sym is None:
                changed.append(old_sym)
            elif symbol_changed(old_sym, new_sym):
                changed.append(new_sym)
        for key, new_sym in new_map.items():
            if key not in old_map:
                changed.append(new_sym)

        file_impact = FileImpact(file_path=filename, changed_symbols=changed)
        with self._lock:
            self._ensure_open()
            for sym in changed:
                file_impact.impacts.append(self._analyze_symbol_impact(sym, old_map, new_map))

        affected: List[str] = []
        for imp in file_impact.impacts:
            file_impact.total_references += len(imp.references)
            for path in imp.affected_files:
                if path != filename and path not in affected:
                    affected.append(path)
        file_impact.affected_files = affected
        file_impact.overall_severity = calculate_overall_severity(file_impact.impacts)

        logger.debug(
            "Impact of %s: %d changed symbols, %d references, severity %s",
            filename, len(changed), file_impact.total_references, file_impact.overall_severity,
        )
        return file_impact

    def _analyze_symbol_impact(
        self,
        sym: Symbol,
        old_map: Dict[SymbolKey, Symbol],
        new_map: Dict[SymbolKey, Symbol],
    ) -> Impact:
        refs = list(self.symbol_table.references.get(sym.name, []))
        impact = Impact(changed_symbol=sym, references=refs)

        for ref in refs:
            if ref.file_path != sym.file_path and ref.file_path not in impact.affected_files:
                impact.affected_files.append(ref.file_path)
        impact.affected_symbols = self._enclosing_symbols(refs, sym.file_path)

        old_sym = old_map.get(sym.key)
        if sym.key not in new_map:
            impact.severity = IMPACT_HIGH
            impact.description = f"Symbol '{sym.name}' was removed"
            if sym.exported:
                impact.severity = IMPACT_CRITICAL
                impact.description += " (was exported/public)"
        elif old_sym is None:
            impact.severity = IMPACT_LOW
            impact.description = f"New symbol '{sym.name}' added"
        else:
            impact.severity = IMPACT_MEDIUM
            changes: List[str] = []
            if old_sym.signature != sym.signature:
                changes.append("signature")
            if old_sym.parameters != sym.parameters:
                changes.append("parameters")
            if len(old_sym.parameters) != len(sym.parameters):
                impact.severity = IMPACT_HIGH
            if old_sym.return_type != sym.return_type:
                changes.append("return type")
                impact.severity = IMPACT_HIGH
            if old_sym.exported != sym.exported:
                changes.append("visibility")
                if old_sym.exported and not sym.exported:
                    impact.severity = IMPACT_CRITICAL
            impact.description = f"Symbol '{sym.name}' modified: {', '.join(changes)}"

        if len(refs) > self.config.reference_critical_threshold:
            impact.severity = IMPACT_CRITICAL
        elif len(refs) > self.config.reference_high_threshold and impact.severity == IMPACT_MEDIUM:
            impact.severity = IMPACT_HIGH

        return impact

    def _enclosing_symbols(self, refs: List[Reference], own_file: str) -> List[Symbol]:
        """Functions and methods in other files whose bodies contain a reference."""
        result: List[Symbol] = []
        for ref in refs:
            if ref.file_path == own_file:
                continue
            best: Optional[Symbol] = None
            for candidate in self.symbol_table.by_file.get(ref.file_path, []):
                if candidate.kind not in (SYMBOL_FUNCTION, SYMBOL_METHOD):
                    continue
                if not candidate.start_line <= ref.line <= candidate.end_line:
                    continue
                if best is None or candidate.start_line > best.start_line:
                    best = candidate
            if best is not None and best not in result:
                result.append(best)
        return result

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_symbols_in_file(self, filename: str) -> List[Symbol]:
        with self._lock:
            return list(self.symbol_table.by_file.get(filename, []))

    def get_symbol_references(self, symbol_name: str) -> List[Reference]:
        with self._lock:
            return list(self.symbol_table.references.get(symbol_name, []))

    def find_symbol(self, name: str) -> List[Symbol]:
        with self._lock:
            return list(self.symbol_table.symbols.get(name, []))

    def get_dependents(self, filename: str) -> List[str]:
        """Files that reference symbols defined in *filename*."""
        with self._lock:
            return list(self._dependents.get(filename, []))

    def get_dependencies(self, filename: str) -> List[str]:
        """Files defining symbols that *filename* references."""
        with self._lock:
            return list(self._dependencies.get(filename, []))

    def format_report(self, impact: FileImpact) -> str:
        return format_impact_report(impact, self.config.max_listed_references)


# ===================================================================
# Plain-text rendering
# ===================================================================

def format_impact_report(impact: FileImpact, max_listed_references: int = 10) -> str:
    """Render a :class:`FileImpact` as markdown-flavoured text."""
    lines: List[str] = [
        f"## Impact Analysis for {impact.file_path}",
        "",
        f"**Overall Severity:** {impact.overall_severity.upper()}",
        f"**Changed Symbols:** {len(impact.changed_symbols)}",
        f"**Total References:** {impact.total_references}",
        f"**Affected Files:** {len(impact.affected_files)}",
        "",
    ]

    if impact.affected_files:
        lines.append("### Affected Files")
        lines.extend(f"- {path}" for path in impact.affected_files)
        lines.append("")

    if impact.impacts:
        lines.append("### Symbol Changes")
        for imp in impact.impacts:
            lines.append("")
            lines.append(f"#### {imp.changed_symbol.kind} `{imp.changed_symbol.name}`")
            lines.append(f"- **Severity:** {imp.severity}")
            lines.append(f"- **Description:** {imp.description}")
            lines.append(f"- **References:** {len(imp.references)}")
            if 0 < len(imp.references) <= max_listed_references:
                lines.append("- **Used in:**")
                lines.extend(f"  - {ref.file_path}:{ref.line}" for ref in imp.references)

    return "\n".join(lines) + "\n"

"""Breaking API change detection for a single file.

Compares the symbols of two revisions of one file and classifies every
incompatibility by severity (``warning`` < ``error`` < ``critical``).
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from .errors import ParseError
from .models import (
    BREAKING_PARAMETER_CHANGE,
    BREAKING_REMOVAL,
    BREAKING_REQUIRED_PARAMETER,
    BREAKING_RETURN_TYPE_CHANGE,
    BREAKING_SIGNATURE_CHANGE,
    BREAKING_VISIBILITY_CHANGE,
    SEVERITY_CRITICAL,
    SEVERITY_ERROR,
    SEVERITY_WARNING,
    BreakingChange,
    BreakingChangeReport,
    Symbol,
    SymbolKey,
)
from .parser import SymbolParser

logger = logging.getLogger(__name__)

_VISIBILITY_SUGGESTION = (
    "This breaks all external consumers. Consider keeping it exported or deprecating first"
)


def build_symbol_map(symbols: List[Symbol]) -> Dict[SymbolKey, Symbol]:
    """Index symbols by ``(name, kind, parent)``.

    Declarations sharing a key (overloads) collapse onto the last one.
    """
    result: Dict[SymbolKey, Symbol] = {}
    for sym in symbols:
        result[sym.key] = sym
    return result


def parse_old_revision(parser: SymbolParser, filename: str, content: str) -> List[Symbol]:
    """Parse the pre-change revision; a parse failure means the file is new."""
    try:
        return parser.parse_file(filename, content)
    except ParseError as exc:
        logger.warning("Treating old revision of %s as empty: %s", filename, exc)
        return []


class BreakingChangeDetector:
    """Detect breaking API changes between two revisions of one file."""

    def __init__(self, parser: Optional[SymbolParser] = None) -> None:
        self.parser = parser or SymbolParser()

    def detect_breaking_changes(
        self,
        old_content: str,
        new_content: str,
        filename: str,
    ) -> BreakingChangeReport:
        """Compare *old_content* and *new_content* of *filename*.

        Raises:
            ParseError: *new_content* cannot be parsed.
        """
        old_symbols = parse_old_revision(self.parser, filename, old_content)
        new_symbols = self.parser.parse_file(filename, new_content)

        report = BreakingChangeReport(file_name=filename)

        old_map = build_symbol_map(old_symbols)
        new_map = build_symbol_map(new_symbols)

        # Removed symbols
        for key, old_sym in old_map.items():
            if key in new_map or not old_sym.exported:
                continue
            renamed = self._find_case_rename(old_sym, new_symbols)
            if renamed is not None:
                report.changes.append(BreakingChange(
                    type=BREAKING_VISIBILITY_CHANGE,
                    symbol=renamed,
                    old_value="exported",
                    new_value="unexported",
                    file_path=filename,
                    line=renamed.start_line,
                    severity=SEVERITY_CRITICAL,
                    description=(
                        f"{old_sym.kind} '{old_sym.name}' changed from exported to unexported "
                        f"(renamed to '{renamed.name}')"
                    ),
                    suggestion=_VISIBILITY_SUGGESTION,
                ))
            else:
                report.changes.append(BreakingChange(
                    type=BREAKING_REMOVAL,
                    symbol=old_sym,
                    old_value=old_sym.signature,
                    file_path=filename,
                    line=old_sym.start_line,
                    severity=SEVERITY_CRITICAL,
                    description=f"Exported {old_sym.kind} '{old_sym.name}' was removed",
                    suggestion="If this removal is intentional, consider deprecating first or updating documentation",
                ))

        # Modified symbols; additions are never breaking.
        for key, new_sym in new_map.items():
            old_sym = old_map.get(key)
            if old_sym is None:
                continue
            if not old_sym.exported and not new_sym.exported:
                continue
            report.changes.extend(self._compare(old_sym, new_sym, filename))

        self._finalize(report)
        logger.debug("%s: %s", filename, report.summary)
        return report

    # ------------------------------------------------------------------
    # Per-symbol comparison
    # ------------------------------------------------------------------

    @staticmethod
    def _find_case_rename(old_sym: Symbol, new_symbols: List[Symbol]) -> Optional[Symbol]:
        """Same kind, same name ignoring case, different spelling (``GetUser`` -> ``getUser``)."""
        for new_sym in new_symbols:
            if (
                new_sym.kind == old_sym.kind
                and new_sym.name != old_sym.name
                and new_sym.name.casefold() == old_sym.name.casefold()
            ):
                return new_sym
        return None

    def _compare(self, old_sym: Symbol, new_sym: Symbol, filename: str) -> List[BreakingChange]:
        if old_sym.exported and not new_sym.exported:
            return [BreakingChange(
                type=BREAKING_VISIBILITY_CHANGE,
                symbol=new_sym,
                old_value="exported",
                new_value="unexported",
                file_path=filename,
                line=new_sym.start_line,
                severity=SEVERITY_CRITICAL,
                description=f"{new_sym.kind} '{new_sym.name}' changed from exported to unexported",
                suggestion=_VISIBILITY_SUGGESTION,
            )]

        changes = self.detect_parameter_changes(old_sym, new_sym)

        if old_sym.return_type != new_sym.return_type and old_sym.return_type and new_sym.return_type:
            changes.append(BreakingChange(
                type=BREAKING_RETURN_TYPE_CHANGE,
                symbol=new_sym,
                old_value=old_sym.return_type,
                new_value=new_sym.return_type,
                file_path=filename,
                line=new_sym.start_line,
                severity=SEVERITY_ERROR,
                description=(
                    f"{new_sym.kind} '{new_sym.name}' return type changed from "
                    f"'{old_sym.return_type}' to '{new_sym.return_type}'"
                ),
                suggestion="Consider if this change is backward compatible or create a new function",
            ))

        # Catch-all, only when nothing more specific was reported.
        if (
            not changes
            and old_sym.signature != new_sym.signature
            and old_sym.signature
            and new_sym.signature
        ):
            changes.append(BreakingChange(
                type=BREAKING_SIGNATURE_CHANGE,
                symbol=new_sym,
                old_value=old_sym.signature,
                new_value=new_sym.signature,
                file_path=filename,
                line=new_sym.start_line,
                severity=SEVERITY_WARNING,
                description=f"{new_sym.kind} '{new_sym.name}' signature changed",
                suggestion="Review if this change affects callers",
            ))

        return changes

    @staticmethod
    def detect_parameter_changes(old_sym: Symbol, new_sym: Symbol) -> List[BreakingChange]:
        """Parameter count and positional parameter differences."""
        changes: List[BreakingChange] = []
        old_params = old_sym.parameters
        new_params = new_sym.parameters

        if len(new_params) > len(old_params):
            added = len(new_params) - len(old_params)
            changes.append(BreakingChange(
                type=BREAKING_REQUIRED_PARAMETER,
                symbol=new_sym,
                old_value=f"{len(old_params)} parameters",
                new_value=f"{len(new_params)} parameters",
                file_path=new_sym.file_path,
                line=new_sym.start_line,
                severity=SEVERITY_ERROR,
                description=f"{new_sym.kind} '{new_sym.name}' added {added} required parameter(s)",
                suggestion="Consider making new parameters optional or provide a new overload",
            ))
        elif len(new_params) < len(old_params):
            removed = len(old_params) - len(new_params)
            changes.append(BreakingChange(
                type=BREAKING_PARAMETER_CHANGE,
                symbol=new_sym,
                old_value=f"{len(old_params)} parameters",
                new_value=f"{len(new_params)} parameters",
                file_path=new_sym.file_path,
                line=new_sym.start_line,
                severity=SEVERITY_WARNING,
                description=f"{new_sym.kind} '{new_sym.name}' removed {removed} parameter(s)",
                suggestion="Verify callers don't rely on removed parameters",
            ))

        for i, (old_param, new_param) in enumerate(zip(old_params, new_params)):
            if old_param == new_param:
                continue
            changes.append(BreakingChange(
                type=BREAKING_PARAMETER_CHANGE,
                symbol=new_sym,
                old_value=old_param,
                new_value=new_param,
                file_path=new_sym.file_path,
                line=new_sym.start_line,
                severity=SEVERITY_ERROR,
                description=(
                    f"{new_sym.kind} '{new_sym.name}' parameter {i + 1} changed "
                    f"from '{old_param}' to '{new_param}'"
                ),
                suggestion="Consider if this change is backward compatible",
            ))

        return changes

    # ------------------------------------------------------------------
    # Totals
    # ------------------------------------------------------------------

    @staticmethod
    def _finalize(report: BreakingChangeReport) -> None:
        for change in report.changes:
            if change.severity == SEVERITY_CRITICAL:
                report.critical_count += 1
            elif change.severity == SEVERITY_ERROR:
                report.error_count += 1
            elif change.severity == SEVERITY_WARNING:
                report.warning_count += 1
        report.total_changes = len(report.changes)
        report.summary = generate_summary(report)


def generate_summary(report: BreakingChangeReport) -> str:
    if report.total_changes == 0:
        return "No breaking changes detected"

    parts: List[str] = []
    if report.critical_count:
        parts.append(f"{report.critical_count} critical")
    if report.error_count:
        parts.append(f"{report.error_count} error")
    if report.warning_count:
        parts.append(f"{report.warning_count} warning")
    return f"Found {report.total_changes} breaking changes: {', '.join(parts)}"


def is_breaking(report: BreakingChangeReport) -> bool:
    return report.has_breaking


def get_breaking_changes(report: BreakingChangeReport) -> List[BreakingChange]:
    """Only the critical and error level changes."""
    return [c for c in report.changes if c.severity in (SEVERITY_CRITICAL, SEVERITY_ERROR)]


# ===================================================================
# Plain-text rendering
# ===================================================================

_SECTIONS = (
    (SEVERITY_CRITICAL, "### 🔴 Critical Breaking Changes"),
    (SEVERITY_ERROR, "### 🟠 Error-Level Breaking Changes"),
    (SEVERITY_WARNING, "### 🟡 Warnings"),
)


def format_breaking_change_report(report: BreakingChangeReport) -> str:
    """Render *report* grouped by severity; empty when there is nothing to show."""
    if not report.has_breaking and report.warning_count == 0:
        return ""

    lines: List[str] = [
        "## ⚠️ Breaking Change Analysis",
        "",
        f"**File:** `{report.file_name}`",
        f"**Summary:** {report.summary}",
        "",
    ]
    for severity, heading in _SECTIONS:
        matching = [c for c in report.changes if c.severity == severity]
        if not matching:
            continue
        lines.append(heading)
        lines.append("")
        for change in matching:
            lines.extend(_format_change(change))
    return "\n".join(lines)


def _format_change(change: BreakingChange) -> List[str]:
    lines = [
        f"**{change.type}** `{change.symbol.name}` (line {change.line})",
        f"- {change.description}",
    ]
    if change.old_value and change.new_value:
        lines.append(f"- Changed: `{change.old_value}` → `{change.new_value}`")
    if change.suggestion:
        lines.append(f"- 💡 {change.suggestion}")
    lines.append("")
    return lines

"""Core data models shared by extraction, breaking-change detection and impact analysis."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Tuple

# ---------------------------------------------------------------------------
# Symbol kinds
# ---------------------------------------------------------------------------
SYMBOL_FUNCTION = "function"
SYMBOL_METHOD = "method"
SYMBOL_CLASS = "class"
SYMBOL_INTERFACE = "interface"
SYMBOL_STRUCT = "struct"
SYMBOL_VARIABLE = "variable"
SYMBOL_CONSTANT = "constant"
SYMBOL_TYPE = "type"
SYMBOL_IMPORT = "import"

# ---------------------------------------------------------------------------
# Breaking change types
# ---------------------------------------------------------------------------
BREAKING_REMOVAL = "removal"
BREAKING_SIGNATURE_CHANGE = "signature_change"
BREAKING_TYPE_CHANGE = "type_change"
BREAKING_VISIBILITY_CHANGE = "visibility_change"
BREAKING_PARAMETER_CHANGE = "parameter_change"
BREAKING_RETURN_TYPE_CHANGE = "return_type_change"
BREAKING_REQUIRED_PARAMETER = "required_parameter"
BREAKING_BEHAVIOR_CHANGE = "behavior_change"

# Breaking-change severity scale: warning < error < critical
SEVERITY_WARNING = "warning"
SEVERITY_ERROR = "error"
SEVERITY_CRITICAL = "critical"

# Impact severity scale (distinct from the breaking-change scale)
IMPACT_LOW = "low"
IMPACT_MEDIUM = "medium"
IMPACT_HIGH = "high"
IMPACT_CRITICAL = "critical"

IMPACT_SEVERITY_ORDER: Dict[str, int] = {
    IMPACT_LOW: 0,
    IMPACT_MEDIUM: 1,
    IMPACT_HIGH: 2,
    IMPACT_CRITICAL: 3,
}

SymbolKey = Tuple[str, str, str]


@dataclass(frozen=True)
class Symbol:
    """A named declaration found in source text."""

    name: str
    kind: str
    start_line: int
    end_line: int
    file_path: str
    signature: str = ""
    exported: bool = False
    parameters: Tuple[str, ...] = ()
    return_type: str = ""
    parent: str = ""  # receiver / owner type, methods only

    @property
    def key(self) -> SymbolKey:
        """Identity of the declaration across revisions."""
        return (self.name, self.kind, self.parent)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["parameters"] = list(self.parameters)
        return data


@dataclass
class Reference:
    file_path: str
    line: int
    context: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BreakingChange:
    type: str
    symbol: Symbol
    file_path: str
    line: int
    severity: str
    description: str
    old_value: str = ""
    new_value: str = ""
    suggestion: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["symbol"] = self.symbol.to_dict()
        return data


@dataclass
class BreakingChangeReport:
    file_name: str
    changes: List[BreakingChange] = field(default_factory=list)
    total_changes: int = 0
    critical_count: int = 0
    error_count: int = 0
    warning_count: int = 0
    summary: str = ""

    @property
    def has_breaking(self) -> bool:
        # Warnings alone never make a report breaking.
        return self.critical_count > 0 or self.error_count > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file_name": self.file_name,
            "total_changes": self.total_changes,
            "critical_count": self.critical_count,
            "error_count": self.error_count,
            "warning_count": self.warning_count,
            "changes": [c.to_dict() for c in self.changes],
            "summary": self.summary,
            "has_breaking": self.has_breaking,
        }


@dataclass
class Impact:
    changed_symbol: Symbol
    severity: str = IMPACT_LOW
    description: str = ""
    affected_files: List[str] = field(default_factory=list)
    affected_symbols: List[Symbol] = field(default_factory=list)
    references: List[Reference] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "changed_symbol": self.changed_symbol.to_dict(),
            "affected_files": list(self.affected_files),
            "affected_symbols": [s.to_dict() for s in self.affected_symbols],
            "references": [r.to_dict() for r in self.references],
            "severity": self.severity,
            "description": self.description,
        }


@dataclass
class FileImpact:
    file_path: str
    changed_symbols: List[Symbol] = field(default_factory=list)
    impacts: List[Impact] = field(default_factory=list)
    total_references: int = 0
    affected_files: List[str] = field(default_factory=list)
    overall_severity: str = IMPACT_LOW

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file_path": self.file_path,
            "changed_symbols": [s.to_dict() for s in self.changed_symbols],
            "impacts": [i.to_dict() for i in self.impacts],
            "total_references": self.total_references,
            "affected_files": list(self.affected_files),
            "overall_severity": self.overall_severity,
        }

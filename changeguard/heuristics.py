"""Line-anchored pattern extractors for languages without a strict parser.

Each language is scanned with one compiled regular expression per
declaration form.  These extractors are best-effort: malformed input yields
fewer symbols, never an exception.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Pattern, Set

from .base import SymbolExtractor, normalize_whitespace
from .models import (
    SYMBOL_CLASS,
    SYMBOL_CONSTANT,
    SYMBOL_FUNCTION,
    SYMBOL_INTERFACE,
    SYMBOL_METHOD,
    SYMBOL_STRUCT,
    SYMBOL_TYPE,
    Symbol,
)

logger = logging.getLogger(__name__)

_M = re.MULTILINE

# ---------------------------------------------------------------------------
# TypeScript / JavaScript
# ---------------------------------------------------------------------------
TS_CLASS = re.compile(r"^(?P<mod>export\s+)?(?:default\s+)?(?:abstract\s+)?class\s+(?P<name>\w+)", _M)
TS_FUNCTION = re.compile(
    r"^(?P<mod>export\s+)?(?:default\s+)?(?:async\s+)?function\s*\*?\s*(?P<name>\w+)\s*(?:<[^>]*>)?"
    r"\s*\((?P<params>[^)]*)\)(?:[ \t]*:[ \t]*(?P<ret>[^{;\n]+))?",
    _M,
)
TS_METHOD = re.compile(
    r"^[ \t]+(?:(?P<access>public|private|protected)\s+)?(?:static\s+)?(?:readonly\s+)?(?:async\s+)?"
    r"(?P<name>\w+)\s*\((?P<params>[^)]*)\)(?:[ \t]*:[ \t]*(?P<ret>[^{;\n]+?))?\s*\{",
    _M,
)
TS_INTERFACE = re.compile(r"^(?P<mod>export\s+)?interface\s+(?P<name>\w+)", _M)
TS_TYPE = re.compile(r"^(?P<mod>export\s+)?type\s+(?P<name>\w+)", _M)
TS_CONST = re.compile(r"^(?P<mod>export\s+)?const\s+(?P<name>\w+)", _M)
TS_ARROW = re.compile(
    r"^(?P<mod>export\s+)?const\s+(?P<name>\w+)\s*=\s*(?:async\s+)?\((?P<params>[^)]*)\)"
    r"(?:[ \t]*:[ \t]*(?P<ret>[^=\n]+?))?\s*=>",
    _M,
)

# Control-flow keywords that look like ``name(...) {`` inside class bodies.
_TS_NON_METHODS = {"if", "for", "while", "switch", "catch", "function", "return", "with", "else"}

# ---------------------------------------------------------------------------
# Python
# ---------------------------------------------------------------------------
PY_CLASS = re.compile(r"^class\s+(?P<name>\w+)", _M)
PY_FUNCTION = re.compile(
    r"^(?:async\s+)?def\s+(?P<name>\w+)\s*\((?P<params>[^)]*)\)(?:\s*->\s*(?P<ret>[^:\n]+))?", _M
)
PY_METHOD = re.compile(
    r"^(?P<indent>[ \t]+)(?:async\s+)?def\s+(?P<name>\w+)\s*\((?P<params>[^)]*)\)"
    r"(?:\s*->\s*(?P<ret>[^:\n]+))?",
    _M,
)
PY_CONST = re.compile(r"^(?P<name>[A-Z][A-Z0-9_]*)(?:[ \t]*:[^=\n]+)?[ \t]*=(?!=)", _M)

# ---------------------------------------------------------------------------
# Rust
# ---------------------------------------------------------------------------
_RS_VIS = r"(?P<mod>pub(?:\([^)]*\))?\s+)?"
RS_STRUCT = re.compile(r"^" + _RS_VIS + r"struct\s+(?P<name>\w+)", _M)
RS_ENUM = re.compile(r"^" + _RS_VIS + r"enum\s+(?P<name>\w+)", _M)
RS_TRAIT = re.compile(r"^" + _RS_VIS + r"(?:unsafe\s+)?trait\s+(?P<name>\w+)", _M)
RS_TYPE = re.compile(r"^" + _RS_VIS + r"type\s+(?P<name>\w+)", _M)
RS_FUNCTION = re.compile(
    r"^" + _RS_VIS + r"(?:const\s+)?(?:async\s+)?(?:unsafe\s+)?(?:extern\s+\"[^\"]*\"\s+)?"
    r"fn\s+(?P<name>\w+)\s*(?:<[^>]*>)?\s*\((?P<params>[^)]*)\)(?:\s*->\s*(?P<ret>[^{;\n]+))?",
    _M,
)
RS_METHOD = re.compile(
    r"^[ \t]+" + _RS_VIS + r"(?:const\s+)?(?:async\s+)?(?:unsafe\s+)?"
    r"fn\s+(?P<name>\w+)\s*(?:<[^>]*>)?\s*\((?P<params>[^)]*)\)(?:\s*->\s*(?P<ret>[^{;\n]+))?",
    _M,
)
RS_IMPL = re.compile(
    r"^(?:unsafe\s+)?impl(?:<[^>]*>)?\s+(?:(?P<trait>[\w:]+(?:<[^>]*>)?)\s+for\s+)?(?P<name>\w+)", _M
)
RS_CONST = re.compile(r"^" + _RS_VIS + r"const\s+(?P<name>\w+)", _M)
_RS_SELF = re.compile(r"&?(?:'\w+\s+)?(?:mut\s+)?self(?:\s*:.*)?", re.DOTALL)

# ---------------------------------------------------------------------------
# Java
# ---------------------------------------------------------------------------
_JAVA_MODS = r"(?P<mod>(?:(?:public|protected|private|abstract|final|static|sealed|strictfp)\s+)*)"
JAVA_CLASS = re.compile(r"^[ \t]*" + _JAVA_MODS + r"class\s+(?P<name>\w+)", _M)
JAVA_INTERFACE = re.compile(r"^[ \t]*" + _JAVA_MODS + r"interface\s+(?P<name>\w+)", _M)
# At least one modifier is required, which also keeps statements such as
# ``return foo(x)`` from matching.  Constructors have no return type and
# are not matched.
JAVA_METHOD = re.compile(
    r"^[ \t]+(?P<mod>(?:(?:public|private|protected|static|final|abstract|synchronized|native|default)\s+)+)"
    r"(?:<[^>]*>\s+)?(?P<ret>[\w.]+(?:<[^>]*>)?(?:\[\])*)\s+(?P<name>\w+)\s*\((?P<params>[^)]*)\)",
    _M,
)


@dataclass
class _Container:
    """A class-like block that owns indented methods."""

    name: str
    start_line: int
    end_line: int
    exported: bool = False
    body_indent: Optional[int] = None


# ===================================================================
# Shared helpers
# ===================================================================

def count_lines(text: str) -> int:
    """1-based line number of the position right after *text*."""
    return text.count("\n") + 1


def find_block_end(lines: List[str], start_index: int) -> int:
    """Return the 1-based line on which the brace block opened at *start_index* closes.

    Falls back to the start line when no balanced block is found or the
    declaration ends with ``;`` before any block opens.
    """
    if start_index >= len(lines):
        return start_index + 1

    depth = 0
    started = False
    for i in range(start_index, len(lines)):
        for ch in lines[i]:
            if ch == ";" and not started:
                return start_index + 1
            if ch == "{":
                depth += 1
                started = True
            elif ch == "}":
                depth -= 1
                if started and depth == 0:
                    return i + 1
    return start_index + 1


def python_block_end(lines: List[str], header_start: int, header_end: int) -> int:
    """Return the last line of the indented block whose header spans *header_start*..*header_end*."""
    indent = _indent_of(lines[header_start - 1])
    end = header_end
    for i in range(header_end, len(lines)):
        line = lines[i]
        if not line.strip():
            continue
        if _indent_of(line) <= indent:
            break
        end = i + 1
    return end


def split_parameters(text: Optional[str]) -> List[str]:
    """Split a parameter list on top-level commas, ignoring nested brackets."""
    if not text or not text.strip():
        return []
    params: List[str] = []
    depth = 0
    current: List[str] = []
    for ch in text:
        if ch in "([{<":
            depth += 1
        elif ch in ")]}>" and depth > 0:
            depth -= 1
        if ch == "," and depth == 0:
            params.append("".join(current))
            current = []
            continue
        current.append(ch)
    params.append("".join(current))
    return [normalize_whitespace(p) for p in params if p.strip()]


def _indent_of(line: str) -> int:
    return len(line.expandtabs(4)) - len(line.expandtabs(4).lstrip())


def _clean_return(value: Optional[str]) -> str:
    if not value:
        return ""
    return normalize_whitespace(value)


def _innermost(containers: Iterable[_Container], line: int) -> Optional[_Container]:
    found: Optional[_Container] = None
    for container in containers:
        if container.start_line < line <= container.end_line:
            if found is None or container.start_line > found.start_line:
                found = container
    return found


# ===================================================================
# Pattern extractor base
# ===================================================================

class PatternExtractor(SymbolExtractor):
    """Shared plumbing for regex-driven extractors."""

    def _symbol(
        self,
        match: "re.Match[str]",
        content: str,
        filename: str,
        kind: str,
        exported: bool,
        end_line: Optional[int] = None,
        parameters: Iterable[str] = (),
        return_type: str = "",
        parent: str = "",
    ) -> Symbol:
        start_line = count_lines(content[: match.start()])
        # Indented matches start at column 0; report the declaration's own line.
        start_line += content[match.start(): match.start("name")].count("\n")
        signature = normalize_whitespace(match.group(0)).rstrip("{").rstrip()
        return Symbol(
            name=match.group("name"),
            kind=kind,
            start_line=start_line,
            end_line=max(end_line or start_line, start_line),
            file_path=filename,
            signature=signature,
            exported=exported,
            parameters=tuple(parameters),
            return_type=return_type,
            parent=parent,
        )

    @staticmethod
    def _sorted(symbols: List[Symbol]) -> List[Symbol]:
        return sorted(symbols, key=lambda s: s.start_line)

    def _collect(
        self,
        pattern: Pattern[str],
        content: str,
        filename: str,
        kind: str,
        marker: str = "mod",
    ) -> List[Symbol]:
        """Emit one symbol per match; exported when the *marker* group matched."""
        return [
            self._symbol(m, content, filename, kind, exported=bool(m.group(marker)))
            for m in pattern.finditer(content)
        ]


# ===================================================================
# TypeScript / JavaScript
# ===================================================================

class TypeScriptExtractor(PatternExtractor):
    """TypeScript and JavaScript share one set of patterns."""

    def __init__(self, language: str = "typescript") -> None:
        self.language = language

    def extract(self, filename: str, source: str) -> List[Symbol]:
        lines = source.split("\n")
        symbols: List[Symbol] = []
        classes: List[_Container] = []

        for m in TS_CLASS.finditer(source):
            line = count_lines(source[: m.start()])
            end = find_block_end(lines, line - 1)
            sym = self._symbol(m, source, filename, SYMBOL_CLASS, bool(m.group("mod")), end_line=end)
            symbols.append(sym)
            classes.append(_Container(sym.name, line, end, sym.exported))

        symbols.extend(self._collect(TS_INTERFACE, source, filename, SYMBOL_INTERFACE))

        for m in TS_FUNCTION.finditer(source):
            line = count_lines(source[: m.start()])
            symbols.append(self._symbol(
                m, source, filename, SYMBOL_FUNCTION, bool(m.group("mod")),
                end_line=find_block_end(lines, line - 1),
                parameters=split_parameters(m.group("params")),
                return_type=_clean_return(m.group("ret")),
            ))

        arrow_names: Set[str] = set()
        for m in TS_ARROW.finditer(source):
            arrow_names.add(m.group("name"))
            symbols.append(self._symbol(
                m, source, filename, SYMBOL_FUNCTION, bool(m.group("mod")),
                parameters=split_parameters(m.group("params")),
                return_type=_clean_return(m.group("ret")),
            ))

        symbols.extend(self._collect(TS_TYPE, source, filename, SYMBOL_TYPE))

        # Arrow functions were already captured above.
        for m in TS_CONST.finditer(source):
            if m.group("name") in arrow_names:
                continue
            symbols.append(self._symbol(m, source, filename, SYMBOL_CONSTANT, bool(m.group("mod"))))

        for m in TS_METHOD.finditer(source):
            name = m.group("name")
            if name in _TS_NON_METHODS:
                continue
            line = count_lines(source[: m.start()])
            owner = _innermost(classes, line)
            if owner is None:
                continue
            symbols.append(self._symbol(
                m, source, filename, SYMBOL_METHOD,
                exported=m.group("access") != "private" and not name.startswith("_"),
                end_line=find_block_end(lines, line - 1),
                parameters=split_parameters(m.group("params")),
                return_type=_clean_return(m.group("ret")),
                parent=owner.name,
            ))

        return self._sorted(symbols)


# ===================================================================
# Python
# ===================================================================

class PythonExtractor(PatternExtractor):
    language = "python"

    def extract(self, filename: str, source: str) -> List[Symbol]:
        lines = source.split("\n")
        symbols: List[Symbol] = []
        classes: List[_Container] = []

        for m in PY_CLASS.finditer(source):
            name = m.group("name")
            line = count_lines(source[: m.start()])
            end = python_block_end(lines, line, line)
            symbols.append(self._symbol(
                m, source, filename, SYMBOL_CLASS, not name.startswith("_"), end_line=end,
            ))
            body_indent = next(
                (_indent_of(l) for l in lines[line:end] if l.strip()),
                None,
            )
            classes.append(_Container(name, line, end, body_indent=body_indent))

        for m in PY_FUNCTION.finditer(source):
            name = m.group("name")
            line = count_lines(source[: m.start()])
            header_end = count_lines(source[: m.end()])
            symbols.append(self._symbol(
                m, source, filename, SYMBOL_FUNCTION, not name.startswith("_"),
                end_line=python_block_end(lines, line, header_end),
                parameters=split_parameters(m.group("params")),
                return_type=_clean_return(m.group("ret")),
            ))

        for m in PY_METHOD.finditer(source):
            name = m.group("name")
            line = count_lines(source[: m.start()])
            owner = _innermost(classes, line)
            # Only direct members of a class body; nested helpers are skipped.
            if owner is None or _indent_of(m.group("indent")) != owner.body_indent:
                continue
            params = split_parameters(m.group("params"))
            if params and params[0] in ("self", "cls"):
                params = params[1:]
            header_end = count_lines(source[: m.end()])
            symbols.append(self._symbol(
                m, source, filename, SYMBOL_METHOD, not name.startswith("_"),
                end_line=python_block_end(lines, line, header_end),
                parameters=params,
                return_type=_clean_return(m.group("ret")),
                parent=owner.name,
            ))

        for m in PY_CONST.finditer(source):
            name = m.group("name")
            symbols.append(self._symbol(m, source, filename, SYMBOL_CONSTANT, not name.startswith("_")))

        return self._sorted(symbols)


# ===================================================================
# Rust
# ===================================================================

def _rust_public(modifier: Optional[str]) -> bool:
    # ``pub(crate)`` and ``pub(super)`` are not part of the public API.
    return bool(modifier) and "(" not in modifier


class RustExtractor(PatternExtractor):
    language = "rust"

    def extract(self, filename: str, source: str) -> List[Symbol]:
        lines = source.split("\n")
        symbols: List[Symbol] = []
        containers: List[_Container] = []

        simple = (
            (RS_STRUCT, SYMBOL_STRUCT),
            (RS_ENUM, SYMBOL_TYPE),
            (RS_TYPE, SYMBOL_TYPE),
            (RS_CONST, SYMBOL_CONSTANT),
        )
        for pattern, kind in simple:
            for m in pattern.finditer(source):
                line = count_lines(source[: m.start()])
                end = find_block_end(lines, line - 1) if kind == SYMBOL_STRUCT else line
                symbols.append(self._symbol(m, source, filename, kind, _rust_public(m.group("mod")), end_line=end))

        for m in RS_TRAIT.finditer(source):
            line = count_lines(source[: m.start()])
            end = find_block_end(lines, line - 1)
            sym = self._symbol(m, source, filename, SYMBOL_INTERFACE, _rust_public(m.group("mod")), end_line=end)
            symbols.append(sym)
            containers.append(_Container(sym.name, line, end, sym.exported))

        for m in RS_IMPL.finditer(source):
            line = count_lines(source[: m.start()])
            # Trait impl members are public whenever the trait is.
            containers.append(_Container(
                m.group("name"), line, find_block_end(lines, line - 1), exported=bool(m.group("trait")),
            ))

        for m in RS_FUNCTION.finditer(source):
            line = count_lines(source[: m.start()])
            symbols.append(self._symbol(
                m, source, filename, SYMBOL_FUNCTION, _rust_public(m.group("mod")),
                end_line=find_block_end(lines, line - 1),
                parameters=split_parameters(m.group("params")),
                return_type=_rust_return(m.group("ret")),
            ))

        for m in RS_METHOD.finditer(source):
            line = count_lines(source[: m.start()]) + source[m.start(): m.start("name")].count("\n")
            owner = _innermost(containers, line)
            if owner is None:
                continue
            params = [p for p in split_parameters(m.group("params")) if not _RS_SELF.fullmatch(p)]
            symbols.append(self._symbol(
                m, source, filename, SYMBOL_METHOD,
                exported=_rust_public(m.group("mod")) or owner.exported,
                end_line=find_block_end(lines, line - 1),
                parameters=params,
                return_type=_rust_return(m.group("ret")),
                parent=owner.name,
            ))

        return self._sorted(symbols)


def _rust_return(value: Optional[str]) -> str:
    ret = _clean_return(value)
    return re.split(r"\s+where\b", ret, maxsplit=1)[0].strip()


# ===================================================================
# Java
# ===================================================================

def _java_public(modifiers: Optional[str]) -> bool:
    return "public" in (modifiers or "").split()


class JavaExtractor(PatternExtractor):
    language = "java"

    def extract(self, filename: str, source: str) -> List[Symbol]:
        lines = source.split("\n")
        symbols: List[Symbol] = []
        containers: List[_Container] = []

        for pattern, kind in ((JAVA_CLASS, SYMBOL_CLASS), (JAVA_INTERFACE, SYMBOL_INTERFACE)):
            for m in pattern.finditer(source):
                line = count_lines(source[: m.start()])
                end = find_block_end(lines, line - 1)
                sym = self._symbol(m, source, filename, kind, _java_public(m.group("mod")), end_line=end)
                symbols.append(sym)
                containers.append(_Container(sym.name, line, end, sym.exported))

        for m in JAVA_METHOD.finditer(source):
            line = count_lines(source[: m.start()])
            owner = _innermost(containers, line)
            symbols.append(self._symbol(
                m, source, filename, SYMBOL_METHOD, _java_public(m.group("mod")),
                end_line=find_block_end(lines, line - 1),
                parameters=split_parameters(m.group("params")),
                return_type=normalize_whitespace(m.group("ret")),
                parent=owner.name if owner else "",
            ))

        return self._sorted(symbols)


HEURISTIC_EXTRACTORS: Dict[str, SymbolExtractor] = {
    "typescript": TypeScriptExtractor("typescript"),
    "javascript": TypeScriptExtractor("javascript"),
    "python": PythonExtractor(),
    "rust": RustExtractor(),
    "java": JavaExtractor(),
}

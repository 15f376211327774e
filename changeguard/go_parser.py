"""Go symbol extraction built on Tree-sitter.

Go is the one language parsed with a real grammar: a tree containing
``ERROR`` or ``MISSING`` nodes is rejected with :class:`ParseError` instead
of yielding partial results.  Signatures are re-rendered from the syntax
tree so that whitespace-only edits never look like API changes.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional

import tree_sitter_go as tsgo
from tree_sitter import Language, Parser as TSParser

from .base import SymbolExtractor, normalize_whitespace
from .errors import ParseError
from .models import (
    SYMBOL_CONSTANT,
    SYMBOL_FUNCTION,
    SYMBOL_INTERFACE,
    SYMBOL_METHOD,
    SYMBOL_STRUCT,
    SYMBOL_TYPE,
    SYMBOL_VARIABLE,
    Symbol,
)

logger = logging.getLogger(__name__)

GO_LANGUAGE = Language(tsgo.language())

_PARAMETER_NODES = ("parameter_declaration", "variadic_parameter_declaration")


class GoExtractor(SymbolExtractor):
    """Extract top-level Go declarations from a Tree-sitter syntax tree."""

    language = "go"

    def extract(self, filename: str, source: str) -> List[Symbol]:
        # Parser objects are not shared so extraction stays thread-safe.
        parser = TSParser(GO_LANGUAGE)
        tree = parser.parse(source.encode("utf-8"))
        root = tree.root_node

        if root.has_error:
            line = _first_error_line(root)
            raise ParseError(filename, "syntax error", line)

        symbols: List[Symbol] = []
        for child in root.named_children:
            if child.type in ("function_declaration", "method_declaration"):
                symbols.append(self._function_symbol(child, filename))
            elif child.type == "type_declaration":
                symbols.extend(self._type_symbols(child, filename))
            elif child.type in ("var_declaration", "const_declaration"):
                symbols.extend(self._value_symbols(child, filename))

        logger.debug("Extracted %d Go symbols from %s", len(symbols), filename)
        return symbols

    # ------------------------------------------------------------------
    # Functions and methods
    # ------------------------------------------------------------------

    def _function_symbol(self, node: Any, filename: str) -> Symbol:
        name = _text(node.child_by_field_name("name"))
        parameters = _render_parameters(node.child_by_field_name("parameters"))
        results = _render_results(node.child_by_field_name("result"))

        kind = SYMBOL_FUNCTION
        parent = ""
        receiver = node.child_by_field_name("receiver")
        receiver_params = _render_parameters(receiver)
        if receiver_params:
            kind = SYMBOL_METHOD
            parent = _receiver_type_name(receiver)

        return Symbol(
            name=name,
            kind=kind,
            start_line=node.start_point[0] + 1,
            end_line=node.end_point[0] + 1,
            file_path=filename,
            signature=_build_signature(node, name, receiver_params, parameters, results),
            exported=_is_exported(name),
            parameters=tuple(parameters),
            return_type=", ".join(results),
            parent=parent,
        )

    # ------------------------------------------------------------------
    # type / var / const declarations
    # ------------------------------------------------------------------

    def _type_symbols(self, decl: Any, filename: str) -> List[Symbol]:
        symbols: List[Symbol] = []
        for spec in decl.named_children:
            if spec.type not in ("type_spec", "type_alias"):
                continue
            name = _text(spec.child_by_field_name("name"))
            type_node = spec.child_by_field_name("type")

            if spec.type == "type_alias":
                kind = SYMBOL_TYPE
                signature = f"type {name} = {_render_type(type_node)}"
            elif type_node is not None and type_node.type == "struct_type":
                kind = SYMBOL_STRUCT
                signature = f"type {name} struct"
            elif type_node is not None and type_node.type == "interface_type":
                kind = SYMBOL_INTERFACE
                signature = f"type {name} interface"
            else:
                kind = SYMBOL_TYPE
                signature = f"type {name} {_render_type(type_node)}"

            symbols.append(Symbol(
                name=name,
                kind=kind,
                start_line=spec.start_point[0] + 1,
                end_line=spec.end_point[0] + 1,
                file_path=filename,
                signature=signature,
                exported=_is_exported(name),
            ))
        return symbols

    def _value_symbols(self, decl: Any, filename: str) -> List[Symbol]:
        if decl.type == "const_declaration":
            kind, keyword, spec_type = SYMBOL_CONSTANT, "const", "const_spec"
        else:
            kind, keyword, spec_type = SYMBOL_VARIABLE, "var", "var_spec"

        specs: List[Any] = []
        for child in decl.named_children:
            if child.type == spec_type:
                specs.append(child)
            elif child.type == "var_spec_list":
                specs.extend(c for c in child.named_children if c.type == spec_type)

        symbols: List[Symbol] = []
        for spec in specs:
            type_str = _render_type(spec.child_by_field_name("type"))
            for name_node in spec.children_by_field_name("name"):
                name = _text(name_node)
                if name == "_":
                    continue
                line = name_node.start_point[0] + 1
                signature = f"{keyword} {name} {type_str}" if type_str else f"{keyword} {name}"
                symbols.append(Symbol(
                    name=name,
                    kind=kind,
                    start_line=line,
                    end_line=line,
                    file_path=filename,
                    signature=signature,
                    exported=_is_exported(name),
                ))
        return symbols


# ===================================================================
# Rendering helpers
# ===================================================================

def _text(node: Optional[Any]) -> str:
    if node is None:
        return ""
    return node.text.decode("utf-8")


def _is_exported(name: str) -> bool:
    return name[:1].isupper()


def _first_error_line(root: Any) -> Optional[int]:
    """Return the 1-based line of the first ERROR or MISSING node."""
    stack = [root]
    while stack:
        node = stack.pop()
        if node.is_error or node.is_missing:
            return node.start_point[0] + 1
        # Depth-first, left to right, only into subtrees that contain errors.
        stack.extend(reversed([c for c in node.children if c.has_error or c.is_missing]))
    return None


def _render_type(node: Optional[Any]) -> str:
    """Render a type node canonically (independent of source whitespace)."""
    if node is None:
        return ""
    kind = node.type

    if kind == "pointer_type":
        return "*" + _render_type(node.named_children[-1])
    if kind == "slice_type":
        return "[]" + _render_type(node.child_by_field_name("element"))
    if kind == "array_type":
        length = "".join(_text(node.child_by_field_name("length")).split())
        return f"[{length}]" + _render_type(node.child_by_field_name("element"))
    if kind == "map_type":
        key = _render_type(node.child_by_field_name("key"))
        value = _render_type(node.child_by_field_name("value"))
        return f"map[{key}]{value}"
    if kind == "channel_type":
        value = node.child_by_field_name("value")
        prefix = node.text[: value.start_byte - node.start_byte].decode("utf-8")
        return "".join(prefix.split()) + " " + _render_type(value)
    if kind == "qualified_type":
        package = _text(node.child_by_field_name("package"))
        return f"{package}.{_text(node.child_by_field_name('name'))}"
    if kind == "generic_type":
        args_node = node.child_by_field_name("type_arguments")
        args = [_render_type(a) for a in args_node.named_children] if args_node is not None else []
        return _render_type(node.child_by_field_name("type")) + "[" + ", ".join(args) + "]"
    if kind in ("type_elem", "type_constraint", "constraint_elem"):
        return " | ".join(_render_type(c) for c in node.named_children if c.type != "comment")
    if kind in ("negated_type", "constraint_term") and node.named_children:
        return "~" + _render_type(node.named_children[-1])
    if kind == "parenthesized_type":
        return "(" + _render_type(node.named_children[0]) + ")"
    if kind == "function_type":
        params = _render_parameters(node.child_by_field_name("parameters"))
        return "func(" + ", ".join(params) + ")" + _render_result_suffix(
            _render_results(node.child_by_field_name("result"))
        )
    if kind == "interface_type":
        members = [_render_interface_member(c) for c in node.named_children if c.type != "comment"]
        return "interface{" + "; ".join(members) + "}"
    if kind == "struct_type":
        field_list = node.named_children[0] if node.named_children else None
        fields = field_list.named_children if field_list is not None else []
        return "struct{" + "; ".join(_render_field(f) for f in fields if f.type == "field_declaration") + "}"
    return normalize_whitespace(_text(node))


def _render_interface_member(node: Any) -> str:
    """``M(a int) error`` for methods; embedded types and constraints as types."""
    if node.type in ("method_elem", "method_spec"):
        params = _render_parameters(node.child_by_field_name("parameters"))
        results = _render_results(node.child_by_field_name("result"))
        name = _text(node.child_by_field_name("name"))
        return f"{name}({', '.join(params)})" + _render_result_suffix(results)
    return _render_type(node)


def _render_field(decl: Any) -> str:
    """``A, B int`` for named fields, ``*T`` for embedded ones; tags kept verbatim."""
    type_str = _render_type(decl.child_by_field_name("type"))
    names = [_text(n) for n in decl.children_by_field_name("name")]
    if names:
        rendered = ", ".join(names) + " " + type_str
    elif any(c.type == "*" for c in decl.children):
        rendered = "*" + type_str
    else:
        rendered = type_str
    tag = decl.child_by_field_name("tag")
    if tag is not None:
        rendered += " " + _text(tag)
    return rendered


def _render_type_parameters(node: Optional[Any]) -> str:
    """``[K comparable, V any]``, one entry per type parameter name."""
    if node is None:
        return ""
    params: List[str] = []
    for decl in node.named_children:
        if decl.type != "type_parameter_declaration":
            continue
        constraint = _render_type(decl.child_by_field_name("type"))
        params.extend(f"{_text(n)} {constraint}" for n in decl.children_by_field_name("name"))
    return "[" + ", ".join(params) + "]"


def _render_parameters(param_list: Optional[Any]) -> List[str]:
    """Render a parameter list as ``"name type"`` (per name) or ``"type"``."""
    params: List[str] = []
    if param_list is None:
        return params
    for decl in param_list.named_children:
        if decl.type not in _PARAMETER_NODES:
            continue
        type_str = _render_type(decl.child_by_field_name("type"))
        if decl.type == "variadic_parameter_declaration":
            type_str = "..." + type_str
        names = decl.children_by_field_name("name")
        if names:
            params.extend(f"{_text(n)} {type_str}" for n in names)
        else:
            params.append(type_str)
    return params


def _render_results(result: Optional[Any]) -> List[str]:
    """Render result types; one entry per returned value."""
    if result is None:
        return []
    if result.type != "parameter_list":
        return [_render_type(result)]
    results: List[str] = []
    for decl in result.named_children:
        if decl.type not in _PARAMETER_NODES:
            continue
        type_str = _render_type(decl.child_by_field_name("type"))
        results.extend([type_str] * max(len(decl.children_by_field_name("name")), 1))
    return results


def _render_result_suffix(results: List[str]) -> str:
    if not results:
        return ""
    if len(results) > 1:
        return " (" + ", ".join(results) + ")"
    return " " + results[0]


def _receiver_type_name(receiver: Any) -> str:
    """``(u *List[T])`` -> ``List``."""
    for decl in receiver.named_children:
        if decl.type == "parameter_declaration":
            rendered = _render_type(decl.child_by_field_name("type"))
            return rendered.lstrip("*").split("[", 1)[0]
    return ""


def _build_signature(
    node: Any,
    name: str,
    receiver_params: List[str],
    parameters: List[str],
    results: List[str],
) -> str:
    sig = "func "
    if receiver_params:
        sig += f"({receiver_params[0]}) "
    sig += name
    sig += _render_type_parameters(node.child_by_field_name("type_parameters"))
    sig += "(" + ", ".join(parameters) + ")"
    return sig + _render_result_suffix(results)

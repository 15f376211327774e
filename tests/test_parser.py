"""Tests for language detection and Go symbol extraction."""

import pytest

from changeguard.base import SymbolExtractor
from changeguard.errors import ParseError
from changeguard.go_parser import GoExtractor
from changeguard.models import (
    SYMBOL_CONSTANT,
    SYMBOL_FUNCTION,
    SYMBOL_INTERFACE,
    SYMBOL_METHOD,
    SYMBOL_STRUCT,
    SYMBOL_TYPE,
    SYMBOL_VARIABLE,
    Symbol,
)
from changeguard.parser import (
    LANG_UNKNOWN,
    SymbolParser,
    detect_language,
    extract_symbols,
    get_language_from_filename,
)


def _by_name(symbols, name):
    matches = [s for s in symbols if s.name == name]
    assert len(matches) == 1, f"expected one {name}, got {matches}"
    return matches[0]


@pytest.mark.parametrize(
    "filename,language",
    [
        ("main.go", "go"),
        ("src/app.ts", "typescript"),
        ("src/App.tsx", "typescript"),
        ("lib/index.js", "javascript"),
        ("lib/View.jsx", "javascript"),
        ("lib/mod.mjs", "javascript"),
        ("pkg/service.py", "python"),
        ("src/lib.rs", "rust"),
        ("com/acme/Main.java", "java"),
        ("README.md", LANG_UNKNOWN),
        ("Makefile", LANG_UNKNOWN),
    ],
)
def test_detect_language(filename, language):
    assert detect_language(filename) == language


def test_get_language_from_filename_unknown_is_empty():
    assert get_language_from_filename("notes.txt") == ""
    assert get_language_from_filename("main.go") == "go"


def test_unknown_extension_yields_no_symbols():
    assert extract_symbols("notes.txt", "func Main() {") == []


def test_go_functions_and_methods(sample_go_code: str):
    symbols = extract_symbols("store.go", sample_go_code)

    new_store = _by_name(symbols, "NewStore")
    assert new_store.kind == SYMBOL_FUNCTION
    assert new_store.parent == ""
    assert new_store.exported is True
    assert new_store.return_type == "*Store"
    assert new_store.signature == "func NewStore() *Store"

    get = _by_name(symbols, "Get")
    assert get.kind == SYMBOL_METHOD
    assert get.parent == "Store"
    assert get.parameters == ("ctx context.Context", "id ID")
    assert get.return_type == "*Item, error"
    assert get.signature == "func (s *Store) Get(ctx context.Context, id ID) (*Item, error)"
    assert (get.start_line, get.end_line) == (35, 37)

    length = _by_name(symbols, "Len")
    assert length.parent == "Store"
    assert length.signature == "func (s Store) Len() int"


def test_go_parameter_rendering(sample_go_code: str):
    symbols = extract_symbols("store.go", sample_go_code)

    join = _by_name(symbols, "Join")
    assert join.parameters == ("sep string", "parts ...string")

    split = _by_name(symbols, "split")
    assert split.exported is False
    assert split.parameters == ("a int", "b int")
    assert split.return_type == "int, int"
    assert split.signature == "func split(a int, b int) (int, int)"


def test_go_type_declarations(sample_go_code: str):
    symbols = extract_symbols("store.go", sample_go_code)

    assert _by_name(symbols, "Item").kind == SYMBOL_STRUCT
    assert _by_name(symbols, "Store").kind == SYMBOL_STRUCT
    assert _by_name(symbols, "Repository").kind == SYMBOL_INTERFACE

    alias = _by_name(symbols, "ID")
    assert alias.kind == SYMBOL_TYPE
    assert alias.signature == "type ID = int64"

    status = _by_name(symbols, "Status")
    assert status.kind == SYMBOL_TYPE
    assert status.signature == "type Status string"


def test_go_values(sample_go_code: str):
    symbols = extract_symbols("store.go", sample_go_code)

    max_items = _by_name(symbols, "MaxItems")
    assert max_items.kind == SYMBOL_CONSTANT
    assert max_items.exported is True
    assert max_items.start_line == 6

    assert _by_name(symbols, "defaultName").exported is False

    registry = _by_name(symbols, "Registry")
    assert registry.kind == SYMBOL_VARIABLE
    assert registry.signature == "var Registry map[string]*Item"

    # The blank identifier is never a symbol.
    assert not [s for s in symbols if s.name == "_"]


def test_go_only_top_level_declarations(sample_go_code: str):
    symbols = extract_symbols("store.go", sample_go_code)
    # Interface members are not reported on their own.
    assert [s.parent for s in symbols if s.name == "Get"] == ["Store"]


def test_go_signature_ignores_whitespace():
    compact = "package p\n\nfunc Add(a int, b int) int { return a + b }\n"
    spaced = "package p\n\nfunc  Add( a int,\n\tb   int )   int {\n\treturn a + b\n}\n"

    old = _by_name(extract_symbols("math.go", compact), "Add")
    new = _by_name(extract_symbols("math.go", spaced), "Add")
    assert old.signature == new.signature == "func Add(a int, b int) int"
    assert old.parameters == new.parameters


@pytest.mark.parametrize(
    "decl,parameters",
    [
        ("func Use(x interface{ M();  N() int }) {}", ("x interface{M(); N() int}",)),
        ("func Use(x interface {\n}) {}", ("x interface{}",)),
        ("func Use(p struct {\n\tA    int\n\tB string\n}) {}", ("p struct{A int; B string}",)),
        ("func Use(p struct{}) {}", ("p struct{}",)),
        ("func Use(c  chan<-   int) {}", ("c chan<- int",)),
        ("func Use(f func( int )int) {}", ("f func(int) int",)),
    ],
)
def test_go_composite_parameter_rendering(decl, parameters):
    use = _by_name(extract_symbols("use.go", f"package p\n\n{decl}\n"), "Use")
    assert use.parameters == parameters


def test_go_type_parameter_rendering():
    code = "package p\n\nfunc Map[K comparable,V  any](m map[K]V) {}\n"
    fn = _by_name(extract_symbols("map.go", code), "Map")
    assert fn.signature == "func Map[K comparable, V any](m map[K]V)"


def test_go_grouped_parameter_names():
    code = "package p\n\nfunc Move(x, y int, label string) {}\n"
    move = _by_name(extract_symbols("move.go", code), "Move")
    assert move.parameters == ("x int", "y int", "label string")
    assert move.return_type == ""


def test_go_generic_receiver_parent():
    code = "package p\n\ntype List[T any] struct{}\n\nfunc (l *List[T]) Push(v T) {}\n"
    push = _by_name(extract_symbols("list.go", code), "Push")
    assert push.kind == SYMBOL_METHOD
    assert push.parent == "List"


def test_go_syntax_error_raises():
    with pytest.raises(ParseError) as excinfo:
        extract_symbols("broken.go", "package main\n\nfunc Broken( {\n")
    assert excinfo.value.filename == "broken.go"
    assert "broken.go" in str(excinfo.value)


def test_go_extractor_language():
    assert GoExtractor().language == "go"


def test_symbol_key_and_to_dict(sample_go_code: str):
    get = _by_name(extract_symbols("store.go", sample_go_code), "Get")
    assert get.key == ("Get", SYMBOL_METHOD, "Store")

    data = get.to_dict()
    assert data["parameters"] == ["ctx context.Context", "id ID"]
    assert data["file_path"] == "store.go"


def test_register_custom_extractor():
    class StubExtractor(SymbolExtractor):
        language = "go"

        def extract(self, filename, source):
            return [Symbol(name="Only", kind=SYMBOL_FUNCTION, start_line=1, end_line=1, file_path=filename)]

    parser = SymbolParser()
    parser.register("go", StubExtractor())
    assert [s.name for s in parser.parse_file("x.go", "not go at all")] == ["Only"]


def test_supports_language():
    parser = SymbolParser()
    for language in ("go", "typescript", "javascript", "python", "rust", "java"):
        assert parser.supports_language(language)
    assert not parser.supports_language(LANG_UNKNOWN)

import pytest

from gotree import parse, unit
from gostyle.adapter import build_source_unit, byte_to_char_offsets, decode_string_literal
from gostyle.errors import MalformedInputError
from gostyle.source import DeclKind, ScopeKind

SOURCE = """// Package widget builds widgets.
package widget

import (
	"fmt"
	"strings"

	"github.com/acme/log"
)

// MaxSize bounds a widget.
const MaxSize = 10

// Widget is a widget.
type Widget struct {
	name string
}

// Name returns the widget name.
func (w *Widget) Name() string {
	if w.name == "" {
		return strings.ToUpper("anon")
	}
	return w.name
}

func build(count int) error {
	for i := 0; i < count; i++ {
		label := fmt.Sprintf("w%d", i)
		log.Print(label)
	}
	return nil
}
"""


def test_package_clause_and_comment():
    source_unit = unit(SOURCE)

    assert source_unit.package_name == "widget"
    assert source_unit.package_doc.text == "Package widget builds widgets."
    assert source_unit.text_at(source_unit.package_span) == "package widget"


def test_exported_declarations_and_docs():
    source_unit = unit(SOURCE)

    exported = [decl.name for decl in source_unit.exported_declarations()]
    assert exported == ["MaxSize", "Widget", "Name"]

    max_size = source_unit.find_declarations("MaxSize")[0]
    assert max_size.kind is DeclKind.CONSTANT
    assert max_size.doc.text == "MaxSize bounds a widget."
    assert source_unit.find_declarations("build")[0].doc is None

    method = source_unit.find_declarations("Name")[0]
    assert method.kind is DeclKind.METHOD
    assert method.receiver.name == "w"
    assert method.receiver.type_name == "Widget"
    assert method.receiver.pointer is True
    assert method.results == ("string",)


def test_scope_tree_tracks_nesting_and_extent():
    source_unit = unit(SOURCE)

    label = source_unit.find_declarations("label")[0]
    loop = source_unit.scope(label.scope_id)
    assert loop.kind is ScopeKind.BLOCK
    assert loop.depth == 1
    assert loop.line_count == 4
    assert source_unit.scope(loop.parent).kind is ScopeKind.FUNCTION
    assert source_unit.find_declarations("i")[0].scope_id == loop.id

    count = source_unit.find_declarations("count")[0]
    assert count.is_parameter
    assert source_unit.scope(count.scope_id).kind is ScopeKind.FUNCTION

    for decl in source_unit.declarations:
        assert decl.scope_id < len(source_unit.scopes)
    assert source_unit.root.parent is None


def test_import_groups_split_on_blank_lines():
    source_unit = unit(SOURCE)

    [decl] = source_unit.import_decls
    assert decl.parenthesized
    assert [[entry.path for entry in group.entries] for group in decl.groups] == [
        ["fmt", "strings"],
        ["github.com/acme/log"],
    ]
    assert source_unit.text_at(decl.body_span).startswith("\n\t\"fmt\"")


def test_call_sites_record_context_and_targets():
    source_unit = unit(SOURCE)
    calls = {call.callee: call for call in source_unit.calls}

    assert calls["fmt.Sprintf"].context == "define"
    assert calls["fmt.Sprintf"].targets == ("label",)
    assert calls["fmt.Sprintf"].args[0].value == "w%d"
    assert calls["log.Print"].context == "expr"
    assert calls["strings.ToUpper"].context == "return"


def test_selector_identifiers_are_marked():
    source_unit = unit(SOURCE)

    assert all(ident.selector for ident in source_unit.occurrences("Print"))
    assert not any(ident.selector for ident in source_unit.occurrences("label"))


def test_detached_comment_is_recorded_separately():
    source_unit = unit("package widget\n\n// Helper does things.\n\nfunc Helper() {}\n")

    helper = source_unit.find_declarations("Helper")[0]
    assert helper.doc is None
    assert helper.detached_doc.text == "Helper does things."


def test_trailing_comment_annotates_call():
    source_unit = unit(
        "package store\n\nimport \"os\"\n\nfunc clean(path string) {\n\t_ = os.Remove(path) // best effort\n}\n"
    )

    [call] = source_unit.calls
    assert call.annotation == "best effort"


def test_non_ascii_source_maps_byte_offsets():
    text = 'package widget\n\n// Greeting says héllo.\nconst Greeting = "héllo"\n\nvar Count = 1\n'
    source_unit = unit(text)

    count = source_unit.find_declarations("Count")[0]
    assert source_unit.text_at(count.name_span) == "Count"
    greeting = source_unit.find_declarations("Greeting")[0]
    assert greeting.init_call is None
    assert greeting.doc.text == "Greeting says héllo."


def test_byte_to_char_offsets_maps_multibyte_characters():
    assert byte_to_char_offsets("aé b") == [0, 1, 1, 2, 3, 4]
    assert byte_to_char_offsets("") == [0]


def test_columns_count_characters_after_non_ascii_text():
    text = 'package widget\n\nconst Suffix = "!"\n\nfunc greet() string {\n\treturn "héllo" + Suffix\n}\n'
    source_unit = unit(text)

    use = source_unit.occurrences("Suffix")[-1]
    assert source_unit.text_at(use.span) == "Suffix"
    assert use.span.start.line == 6
    assert use.span.start.column == source_unit.line_text(6).index("Suffix") + 1
    assert use.span.end.column == use.span.start.column + len("Suffix")


def test_line_that_disagrees_with_offset_is_malformed_input():
    tree = parse(SOURCE)
    tree["decls"][1]["pos"] = dict(tree["decls"][1]["pos"], line=99)

    with pytest.raises(MalformedInputError, match="does not match"):
        build_source_unit("widget/widget.go", SOURCE, tree)


def test_missing_positions_raise_malformed_input():
    tree = parse(SOURCE)
    del tree["decls"][1]["pos"]

    with pytest.raises(MalformedInputError):
        build_source_unit("widget/widget.go", SOURCE, tree)


def test_root_must_be_a_file_node():
    with pytest.raises(MalformedInputError):
        build_source_unit("widget/widget.go", "package widget\n", {"kind": "BlockStmt"})


def test_decode_string_literal():
    assert decode_string_literal('"a\\tb"') == "a\tb"
    assert decode_string_literal('"caf\\u00e9"') == "café"
    assert decode_string_literal("`raw\\n`") == "raw\\n"

from gotree import unit
from gostyle.config import Settings
from gostyle.engine import analyze


def _rule(text, rule_id, path="inventory/inventory.go", **settings):
    source_unit = unit(text, path)
    return source_unit, analyze(source_unit, settings=Settings(**settings)).by_rule(rule_id)


def test_long_function():
    text = """package inventory

func count(items []int) int {
	total := 0
	for _, item := range items {
		total += item
	}
	return total
}

func empty() {}
"""
    source_unit, findings = _rule(text, "ORG001", max_function_lines=5)

    [finding] = findings
    assert source_unit.text_at(finding.span) == "count"
    assert "7 lines long (limit 5)" in finding.message
    assert finding.severity.value == "suggestion"


def test_too_many_parameters():
    text = """package inventory

func restock(a, b, c int, d string, e bool, f float64) {}

func move(from, to string) {}
"""
    source_unit, findings = _rule(text, "ORG002")

    [finding] = findings
    assert source_unit.text_at(finding.span) == "restock"
    assert "6 parameters" in finding.message


def test_deep_nesting_reported_once_at_the_threshold():
    text = """package inventory

func walk(items []int) int {
	total := 0
	for _, item := range items {
		if item > 0 {
			if item > 10 {
				if item > 100 {
					total += item
				}
			}
		}
	}
	return total
}
"""
    source_unit, findings = _rule(text, "ORG003", max_nesting_depth=2)

    [finding] = findings
    assert finding.span.start.offset == finding.span.end.offset
    assert finding.span.start.line == 7
    assert source_unit.text[finding.span.start.offset:].startswith("if item > 10")
    assert "nested 3 levels deep (limit 2)" in finding.message

    _, relaxed = _rule(text, "ORG003")
    assert relaxed == []


def test_exported_mutable_globals():
    text = """package inventory

import "errors"

var ErrEmpty = errors.New("empty inventory")

var Capacity = 100

var defaultSize = 10

const Limit = 5
"""
    source_unit, findings = _rule(text, "ORG004")

    assert [source_unit.text_at(finding.span) for finding in findings] == ["Capacity"]


def test_init_functions_outside_tests():
    text = """package inventory

var registry map[string]int

func init() {
	registry = map[string]int{}
}
"""
    source_unit, findings = _rule(text, "ORG005")

    [finding] = findings
    assert source_unit.text_at(finding.span) == "init"

    _, in_test = _rule(text, "ORG005", path="inventory/inventory_test.go")
    assert in_test == []

from gotree import unit
from gostyle.config import Settings
from gostyle.engine import analyze
from gostyle.fixes import apply_patches
from gostyle.rules.imports import ImportCategory, classify


def _findings(text, path="relay/relay.go"):
    return analyze(unit(text, path)).findings


def _imports(findings):
    return [finding for finding in findings if finding.category == "imports"]


MIXED = """package relay

import (
	"github.com/acme/log"
	"fmt"

	"os"
)

func Run() {
	log.Print(fmt.Sprint(os.Args))
}
"""


def test_mixed_group_is_reordered():
    findings = _findings(MIXED)
    [finding] = [finding for finding in findings if finding.rule_id == "IMP001"]

    assert "mixes standard, third-party" in finding.message
    fixed = apply_patches(MIXED, [finding.patch])
    assert 'import (\n\t"fmt"\n\t"os"\n\n\t"github.com/acme/log"\n)' in fixed
    assert not [item for item in _findings(fixed) if item.rule_id == "IMP001"]


def test_groups_are_contiguous_after_correction():
    result = analyze(unit(MIXED, "relay/relay.go"))
    fixed_unit = unit(apply_patches(MIXED, result.patches), "relay/relay.go")
    settings = Settings()

    for group in fixed_unit.import_groups:
        assert len({classify(entry, settings) for entry in group.entries}) == 1


def test_out_of_order_groups():
    text = """package relay

import (
	"github.com/acme/log"

	"fmt"
)
"""
    [finding] = [finding for finding in _findings(text) if finding.rule_id == "IMP001"]

    assert "out of order" in finding.message
    assert apply_patches(text, [finding.patch]).endswith('import (\n\t"fmt"\n\n\t"github.com/acme/log"\n)\n')


def test_canonical_layout_passes():
    text = """package main

import (
	"fmt"
	"os"

	"github.com/acme/log"

	foopb "github.com/acme/api/foo_go_proto"

	_ "github.com/lib/pq"
)
"""
    assert _imports(_findings(text, "cmd/main.go")) == []


def test_dot_import_is_an_error():
    [finding] = _imports(_findings('package relay\n\nimport . "strings"\n'))

    assert finding.rule_id == "IMP002"
    assert finding.severity.value == "error"


def test_side_effect_import_outside_main():
    text = """package store

import (
	_ "embed"
	_ "github.com/lib/pq"
)
"""
    findings = _imports(_findings(text, "store/store.go"))

    assert [finding.rule_id for finding in findings] == ["IMP003"]
    assert "github.com/lib/pq" in findings[0].message
    assert _imports(_findings(text.replace("package store", "package main"), "cmd/main.go")) == []
    assert _imports(_findings(text, "store/store_test.go")) == []


def test_redundant_alias_is_removed():
    text = """package relay

import (
	"errors"
	fmt "fmt"
)
"""
    [finding] = _imports(_findings(text))

    assert finding.rule_id == "IMP004"
    assert apply_patches(text, [finding.patch]) == text.replace('fmt "fmt"', '"fmt"')


def test_generated_import_needs_pb_alias():
    text = """package relay

import (
	"github.com/acme/api/foo_go_proto"
)
"""
    [finding] = _imports(_findings(text))

    assert finding.rule_id == "IMP005"


def test_classification_honours_settings():
    source_unit = unit('package relay\n\nimport (\n\t"corp/internal/db"\n\t"github.com/acme/foopb"\n)\n')
    entries = [entry for group in source_unit.import_groups for entry in group.entries]

    assert classify(entries[0], Settings()) is ImportCategory.THIRD_PARTY
    assert classify(entries[0], Settings(extra_stdlib=frozenset({"corp"}))) is ImportCategory.STANDARD
    assert classify(entries[1], Settings()) is ImportCategory.GENERATED

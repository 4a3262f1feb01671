import pytest

from gotree import unit
from gostyle.engine import analyze
from gostyle.errors import PatchConflictError
from gostyle.fixes import DEMOTION_NOTE, FixSynthesizer, apply_patches, check_conflicts
from gostyle.result import Finding, FixRequest, Patch, TextEdit
from gostyle.severity import Severity

RELAY = """// Package relay forwards packets
package relay

import (
	"github.com/acme/log"
	fmt "fmt"
)

const MAX_PACKET_SIZE = 1500

var errTooBig = fmt.Errorf("Packet too big.")

// Peer is a relay peer.
type Peer struct {
	name string
}

func (p *Peer) GetName() string {
	return p.name
}

// Send forwards data to the peer.
func Send(p *Peer, data []byte) error {
	if len(data) > MAX_PACKET_SIZE {
		log.Print(p.GetName())
		return errTooBig
	}
	return nil
}
"""

CONSTANT = "package relay\n\nconst MAX_SIZE = 1\n"


def _finding(source_unit, rule_id, severity, fix):
    return Finding(
        rule_id=rule_id,
        category="naming",
        severity=severity,
        path=source_unit.path,
        span=fix.span,
        message=rule_id,
        guidance="Rename it.",
        fix=fix,
    )


def test_apply_patches_rejects_overlap():
    source_unit = unit(CONSTANT, "relay/relay.go")
    start = CONSTANT.index("MAX_SIZE")
    span = source_unit.span_of(start, start + len("MAX_SIZE"))
    first = Patch(rule_id="NAM001", edits=(TextEdit(span, "MaxSize"),))
    second = Patch(rule_id="NAM006", edits=(TextEdit(span, "MAXSize"),))

    with pytest.raises(PatchConflictError) as raised:
        apply_patches(CONSTANT, [first, second])
    assert raised.value.first == "NAM001"
    assert raised.value.second == "NAM006"
    assert apply_patches(CONSTANT, [first]) == "package relay\n\nconst MaxSize = 1\n"
    check_conflicts([first])


def test_overlapping_patch_of_lower_severity_is_demoted():
    source_unit = unit(CONSTANT, "relay/relay.go")
    start = CONSTANT.index("MAX_SIZE")
    span = source_unit.span_of(start, start + len("MAX_SIZE"))
    suggestion = _finding(
        source_unit, "NAM006", Severity.SUGGESTION, FixRequest(template="replace", span=span, replacement="MAXSIZE")
    )
    warning = _finding(
        source_unit,
        "NAM001",
        Severity.WARNING,
        FixRequest(template="rename", span=span, old_name="MAX_SIZE", new_name="MaxSize"),
    )

    kept, demoted = FixSynthesizer(source_unit).synthesize([warning, suggestion])

    assert kept.patch is not None
    assert kept.patch.edits[0].new_text == "MaxSize"
    assert demoted.patch is None
    assert demoted.guidance.endswith(DEMOTION_NOTE)
    assert "withheld" in demoted.guidance


def test_findings_without_patches_pass_through_conflict_resolution():
    source_unit = unit(CONSTANT, "relay/relay.go")
    start = CONSTANT.index("MAX_SIZE")
    span = source_unit.span_of(start, start + len("MAX_SIZE"))
    suggestion = _finding(
        source_unit, "NAM006", Severity.SUGGESTION, FixRequest(template="replace", span=span, replacement="MAXSIZE")
    )
    warning = _finding(
        source_unit,
        "NAM001",
        Severity.WARNING,
        FixRequest(template="rename", span=span, old_name="MAX_SIZE", new_name="MaxSize"),
    )
    guidance_only = Finding(
        rule_id="DOC002",
        category="documentation",
        severity=Severity.ERROR,
        path=source_unit.path,
        span=source_unit.package_span,
        message="package relay has no package comment",
        guidance="Add a package comment.",
    )

    result = FixSynthesizer(source_unit).synthesize([suggestion, guidance_only, warning])

    assert [finding.rule_id for finding in result] == ["NAM006", "DOC002", "NAM001"]
    assert result[1] == guidance_only
    assert result[0].patch is None
    assert result[0].guidance.endswith(DEMOTION_NOTE)
    assert result[2].patch.edits[0].new_text == "MaxSize"


def test_import_reorder_may_not_change_content(caplog):
    text = 'package relay\n\nimport (\n\t"os"\n\t"fmt"\n)\n'
    source_unit = unit(text, "relay/relay.go")
    body = source_unit.span_of(text.index("(") + 1, text.index(")"))
    finding = _finding(
        source_unit,
        "IMP001",
        Severity.WARNING,
        FixRequest(template="reorder-imports", span=body, replacement='\n\t"fmt"\n\t"io"\n'),
    )

    [result] = FixSynthesizer(source_unit).synthesize([finding])

    assert result.patch is None
    assert "change content" in caplog.text


def test_applied_patches_leave_nothing_to_fix():
    result = analyze(unit(RELAY, "relay/relay.go"))
    applied = {finding.rule_id for finding in result.findings if finding.patch is not None}

    assert {"NAM001", "NAM007", "ERR003", "IMP001", "DOC003"} <= applied
    [alias] = result.by_rule("IMP004")
    assert alias.patch is None
    assert DEMOTION_NOTE in alias.guidance

    fixed = apply_patches(RELAY, result.patches)
    assert "const MaxPacketSize = 1500" in fixed
    assert "log.Print(p.Name())" in fixed
    assert 'fmt.Errorf("packet too big")' in fixed
    assert fixed.startswith("// Package relay forwards packets.\n")

    again = analyze(unit(fixed, "relay/relay.go"))
    assert not [finding for finding in again.findings if finding.rule_id in applied]


def test_output_is_deterministic():
    first = analyze(unit(RELAY, "relay/relay.go"))
    second = analyze(unit(RELAY, "relay/relay.go"))

    assert [finding.to_dict() for finding in first.findings] == [finding.to_dict() for finding in second.findings]
    assert [finding.ordinal for finding in first.findings] == list(range(1, len(first.findings) + 1))
    offsets = [finding.span.start.offset for finding in first.findings]
    assert offsets == sorted(offsets)

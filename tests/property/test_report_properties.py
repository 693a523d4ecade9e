"""
Property-based tests for Report update ordering.

**Feature: secret-scanner, Property 6: Newest Update Wins**
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from passcan.core.matcher import Finding
from passcan.core.report import Report
from passcan.core.rules import Severity

PATH = "/repo/app.env"


def make_finding(line: int) -> Finding:
    return Finding(
        path=PATH,
        line=line,
        column=1,
        match="secret",
        rule_id="test-rule",
        rule_label="Test Rule",
        severity=Severity.HIGH,
        confidence=0.8,
        entropy=3.5,
    )


# Each update is (as_of, lines) where an empty line list is a removal
update_strategy = st.tuples(
    st.floats(min_value=0, max_value=1e9, allow_nan=False),
    st.lists(st.integers(min_value=1, max_value=500), max_size=5, unique=True),
)


@given(updates=st.lists(update_strategy, min_size=1, max_size=20, unique_by=lambda u: u[0]))
@settings(max_examples=100)
def test_newest_update_wins_regardless_of_arrival_order(updates):
    """
    **Feature: secret-scanner, Property 6: Newest Update Wins**

    Whatever order versioned updates for a path arrive in, the report ends
    up holding the update with the newest timestamp.
    """
    report = Report("/repo")
    for as_of, lines in updates:
        if lines:
            report.replace_file(PATH, [make_finding(line) for line in lines], as_of=as_of)
        else:
            report.remove_file(PATH, as_of=as_of)

    _, newest_lines = max(updates, key=lambda u: u[0])
    assert [f.line for f in report.findings_for(PATH)] == sorted(newest_lines)
    assert (PATH in report) == bool(newest_lines)


@given(lines=st.lists(st.integers(min_value=1, max_value=500), min_size=1, max_size=20))
@settings(max_examples=100)
def test_findings_always_sorted_and_totals_consistent(lines):
    """Findings for a path are ordered by line and counted once each."""
    report = Report("/repo")
    report.replace_file(PATH, [make_finding(line) for line in lines])

    stored = [f.line for f in report.findings_for(PATH)]
    assert stored == sorted(stored)
    assert report.total_findings == len(stored)
    assert report.summary()["files_with_findings"] == 1

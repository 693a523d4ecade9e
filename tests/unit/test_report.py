"""
Unit tests for Report merge operations.

Covers per-path replace/remove semantics, deltas, skip bookkeeping and
timestamp precedence between full-scan and incremental updates.
"""

import json
import threading

from passcan.core.matcher import Finding
from passcan.core.report import Report, SkipReason
from passcan.core.rules import Severity


def make_finding(path: str, line: int, column: int = 1, match: str = "secret") -> Finding:
    return Finding(
        path=path,
        line=line,
        column=column,
        match=match,
        rule_id="test-rule",
        rule_label="Test Rule",
        severity=Severity.HIGH,
        confidence=0.8,
        entropy=3.5,
    )


class TestReplaceAndRemove:
    def test_replace_orders_by_line_then_column(self):
        report = Report("/root")
        report.replace_file("a.txt", [make_finding("a.txt", 5), make_finding("a.txt", 2, 9), make_finding("a.txt", 2, 3)])

        assert [(f.line, f.column) for f in report.findings_for("a.txt")] == [(2, 3), (2, 9), (5, 1)]

    def test_replace_is_wholesale(self):
        report = Report("/root")
        report.replace_file("a.txt", [make_finding("a.txt", 1), make_finding("a.txt", 2)])
        report.replace_file("a.txt", [make_finding("a.txt", 7)])

        assert [f.line for f in report.findings_for("a.txt")] == [7]

    def test_replace_with_nothing_drops_path(self):
        report = Report("/root")
        report.replace_file("a.txt", [make_finding("a.txt", 1)])
        report.replace_file("a.txt", [])

        assert "a.txt" not in report
        assert report.paths() == []

    def test_remove_file(self):
        report = Report("/root")
        report.replace_file("a.txt", [make_finding("a.txt", 1)])
        report.record_skip("b.bin", SkipReason.BINARY)

        report.remove_file("a.txt")
        report.remove_file("b.bin")

        assert "a.txt" not in report
        assert report.skipped == []

    def test_replace_is_idempotent(self):
        report = Report("/root")
        findings = [make_finding("a.txt", 1), make_finding("a.txt", 3)]
        report.replace_file("a.txt", findings)
        snapshot = report.to_dict()["findings"]

        delta = report.replace_file("a.txt", findings)

        assert delta.is_empty()
        assert report.to_dict()["findings"] == snapshot


class TestDeltas:
    def test_delta_lists_added_and_removed(self):
        report = Report("/root")
        kept = make_finding("a.txt", 1)
        gone = make_finding("a.txt", 2)
        new = make_finding("a.txt", 3)
        report.replace_file("a.txt", [kept, gone])

        delta = report.replace_file("a.txt", [kept, new])

        assert delta.added == (new,)
        assert delta.removed == (gone,)

    def test_remove_delta(self):
        report = Report("/root")
        finding = make_finding("a.txt", 1)
        report.replace_file("a.txt", [finding])

        delta = report.remove_file("a.txt")

        assert delta.removed == (finding,)
        assert delta.added == ()


class TestVersioning:
    def test_stale_update_is_ignored(self):
        report = Report("/root")
        report.replace_file("a.txt", [make_finding("a.txt", 9)], as_of=200.0)

        delta = report.replace_file("a.txt", [make_finding("a.txt", 1)], as_of=100.0)

        assert delta is None
        assert [f.line for f in report.findings_for("a.txt")] == [9]

    def test_removal_blocks_older_full_scan_result(self):
        report = Report("/root")
        report.remove_file("a.txt", as_of=200.0)

        delta = report.replace_file("a.txt", [make_finding("a.txt", 1)], as_of=150.0)

        assert delta is None
        assert "a.txt" not in report

    def test_newer_update_wins(self):
        report = Report("/root")
        report.replace_file("a.txt", [make_finding("a.txt", 1)], as_of=100.0)
        report.replace_file("a.txt", [make_finding("a.txt", 4)], as_of=300.0)

        assert [f.line for f in report.findings_for("a.txt")] == [4]

    def test_unversioned_update_always_applies(self):
        report = Report("/root")
        report.replace_file("a.txt", [make_finding("a.txt", 1)], as_of=100.0)
        report.replace_file("a.txt", [make_finding("a.txt", 2)])

        assert [f.line for f in report.findings_for("a.txt")] == [2]


class TestSkipsAndSummary:
    def test_skip_replaces_findings(self):
        report = Report("/root")
        report.replace_file("a.txt", [make_finding("a.txt", 1)])

        report.record_skip("a.txt", SkipReason.TOO_LARGE, "too big")

        assert "a.txt" not in report
        assert [(s.path, s.reason) for s in report.skipped] == [("a.txt", SkipReason.TOO_LARGE)]

    def test_findings_clear_skip(self):
        report = Report("/root")
        report.record_skip("a.txt", SkipReason.UNREADABLE)
        report.replace_file("a.txt", [make_finding("a.txt", 1)])

        assert report.skipped == []

    def test_all_skipped_report_distinguishable_from_clean(self):
        report = Report("/root")
        report.record_skip("a.bin", SkipReason.BINARY)
        report.record_skip("b.bin", SkipReason.BINARY)
        report.finish(0.5)

        summary = report.summary()
        assert summary["files_scanned"] == 0
        assert summary["files_skipped"] == 2
        assert summary["total_findings"] == 0

    def test_to_dict_is_json_serializable(self):
        report = Report("/root", started_at=0.0)
        report.replace_file("a.txt", [make_finding("a.txt", 1)])
        report.record_skip("b.bin", SkipReason.BINARY, "binary content detected")
        report.mark_scanned(1)
        report.finish(1.25)

        data = json.loads(json.dumps(report.to_dict()))

        assert data["summary"]["total_findings"] == 1
        assert data["summary"]["files_with_findings"] == 1
        assert data["skipped"] == [{"path": "b.bin", "reason": "binary", "detail": "binary content detected"}]
        assert data["metadata"]["root_path"] == "/root"
        assert data["findings"]["a.txt"][0]["severity"] == "high"

    def test_concurrent_inserts(self):
        report = Report("/root")

        def insert(index: int) -> None:
            path = f"file{index}.txt"
            report.replace_file(path, [make_finding(path, 1)])
            report.mark_scanned()

        threads = [threading.Thread(target=insert, args=(i,)) for i in range(50)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert report.total_findings == 50
        assert report.metadata.files_scanned == 50

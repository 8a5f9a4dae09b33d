"""Tests for report generators."""

import logging
import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from pathlib import Path

import pytest

from suite_runner.errors import ReportGenerationError
from suite_runner.models.report import AggregateReport, CategorySummary
from suite_runner.models.result import SuiteCounts
from suite_runner.reports import (
    get_report_format,
    render_console,
    render_html,
    render_junit,
    resolve_report_format,
    write_report,
)
from suite_runner.reports.base import Renderer
from suite_runner.testing.factories import ExecutionResultFactory, TestSuiteFactory

GENERATED_AT = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)


@pytest.fixture
def report() -> AggregateReport:
    passing = ExecutionResultFactory.build(
        suite=TestSuiteFactory.build(suite_id="unit/test_backup.sh"),
        counts=SuiteCounts(run=10, passed=10),
        duration=1.5,
        output="Tests Run: 10\n",
    )
    failing = ExecutionResultFactory.build(
        suite=TestSuiteFactory.build(
            suite_id="integration/test_deploy.sh", category="integration"
        ),
        status="failed",
        exit_code=1,
        counts=SuiteCounts(run=3, passed=1, failed=1, skipped=1),
        duration=2.0,
        output="<deploy> & failed\x07\n",
    )
    return AggregateReport(
        totals=SuiteCounts(run=13, passed=11, failed=1, skipped=1),
        categories={
            "validation": CategorySummary(category="validation", missing=True),
            "unit": CategorySummary(
                category="unit", counts=passing.counts, suites=1
            ),
            "integration": CategorySummary(
                category="integration",
                counts=failing.counts,
                suites=1,
                failed_suites=1,
            ),
        },
        results=(passing, failing),
        exit_code=1,
    )


@pytest.fixture
def passing_report() -> AggregateReport:
    return AggregateReport(
        totals=SuiteCounts(run=1, passed=1),
        categories={},
        results=(ExecutionResultFactory.build(counts=SuiteCounts(run=1, passed=1)),),
        exit_code=0,
    )


class TestConsoleReport:
    """Tests for the console report."""

    def test_shows_totals_and_rate(self, report: AggregateReport) -> None:
        """Totals and the floored success rate are printed."""
        text = render_console(report, GENERATED_AT)

        assert "Total Tests Run:    13" in text
        assert "Passed:             11" in text
        assert "Failed:             1" in text
        assert "Skipped:            1" in text
        assert "Success Rate:       84%" in text

    def test_shows_categories_and_failures(self, report: AggregateReport) -> None:
        """Missing categories are skipped, failed suites are listed."""
        text = render_console(report, GENERATED_AT)

        assert "validation: skipped (test directory not found)" in text
        assert "unit: 1 suite(s), ok" in text
        assert "integration: 1 suite(s), 1 failed" in text
        assert "integration/test_deploy.sh failed (exit code: 1)" in text
        assert "FAIL: Some tests failed!" in text

    def test_pass_banner(self, passing_report: AggregateReport) -> None:
        """A successful run ends with the PASS banner."""
        text = render_console(passing_report, GENERATED_AT)

        assert "PASS: All tests passed!" in text
        assert "Failed suites" not in text

    def test_zero_tests_has_zero_rate(self) -> None:
        """An empty run has a 0% success rate instead of an error."""
        empty = AggregateReport(
            totals=SuiteCounts(), categories={}, results=(), exit_code=0
        )

        assert "Success Rate:       0%" in render_console(empty, GENERATED_AT)


class TestJUnitReport:
    """Tests for the JUnit XML report."""

    def test_counters_equal_totals(self, report: AggregateReport) -> None:
        """Suite-level counters match the aggregated totals exactly."""
        root = ET.fromstring(render_junit(report, GENERATED_AT))
        testsuite = root.find("testsuite")

        assert testsuite is not None
        assert testsuite.get("tests") == str(report.totals.run)
        assert testsuite.get("failures") == str(report.totals.failed)
        assert testsuite.get("skipped") == str(report.totals.skipped)
        assert testsuite.get("timestamp") == "2024-05-01T12:30:00+00:00"

    def test_one_testcase_per_suite(self, report: AggregateReport) -> None:
        """Each executed suite becomes a testcase, failures are marked."""
        root = ET.fromstring(render_junit(report, GENERATED_AT))
        cases = root.findall("testsuite/testcase")

        assert [case.get("name") for case in cases] == [
            "unit/test_backup.sh",
            "integration/test_deploy.sh",
        ]
        assert cases[0].find("failure") is None
        failure = cases[1].find("failure")
        assert failure is not None
        assert failure.get("type") == "failed"
        system_out = cases[1].find("system-out")
        assert system_out is not None
        assert system_out.text == "<deploy> & failed\n"

    def test_starts_with_declaration(self, report: AggregateReport) -> None:
        """The document declares UTF-8 regardless of the locale."""
        xml = render_junit(report, GENERATED_AT)

        assert xml.startswith('<?xml version="1.0" encoding="UTF-8"?>\n')


class TestHtmlReport:
    """Tests for the HTML report."""

    def test_contains_totals_and_timestamp(self, report: AggregateReport) -> None:
        """The page shows the totals, banner and generation time."""
        page = render_html(report, GENERATED_AT)

        assert "<p>Total Tests: 13</p>" in page
        assert '<p class="passed">Passed: 11</p>' in page
        assert '<p class="failed">Failed: 1</p>' in page
        assert "Success Rate: 84%" in page
        assert '<h2 class="failed">Some tests failed</h2>' in page
        assert "Generated on: 2024-05-01T12:30:00+00:00" in page

    def test_escapes_suite_names(self) -> None:
        """Suite identifiers are HTML-escaped."""
        result = ExecutionResultFactory.build(
            suite=TestSuiteFactory.build(suite_id="unit/test_<x>.sh")
        )
        report = AggregateReport(
            totals=SuiteCounts(), categories={}, results=(result,), exit_code=0
        )

        page = render_html(report, GENERATED_AT)

        assert "unit/test_&lt;x&gt;.sh" in page
        assert '<h2 class="passed">All tests passed</h2>' in page


@pytest.mark.parametrize("render", [render_console, render_junit, render_html])
def test_generators_are_deterministic(
    render: Renderer, report: AggregateReport
) -> None:
    """Rendering twice gives identical output, only the timestamp varies."""
    first = render(report, GENERATED_AT)
    second = render(report, GENERATED_AT)
    later = render(report, datetime(2025, 1, 1, tzinfo=timezone.utc))

    assert first == second
    assert first.replace("2024-05-01T12:30:00", "2025-01-01T00:00:00") == later


class TestFormatLookup:
    """Tests for report format lookup."""

    @pytest.mark.parametrize(
        ("name", "filename"),
        [
            ("console", "test_results.txt"),
            ("junit", "test_results.xml"),
            ("xml", "test_results.xml"),
            ("HTML", "test_results.html"),
        ],
    )
    def test_known_formats(self, name: str, filename: str) -> None:
        """Known names and aliases resolve to their formats."""
        assert get_report_format(name).filename == filename

    def test_unknown_format_raises(self) -> None:
        """Strict lookup rejects unknown names."""
        with pytest.raises(ReportGenerationError, match="Unknown report format"):
            get_report_format("pdf")

    def test_unknown_format_falls_back_to_console(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Lenient lookup warns and uses the console format."""
        with caplog.at_level(logging.WARNING):
            report_format = resolve_report_format("pdf")

        assert report_format.name == "console"
        assert "Unknown report format 'pdf'" in caplog.text


class TestWriteReport:
    """Tests for writing report artifacts."""

    def test_writes_into_created_reports_dir(
        self, tmp_path: Path, report: AggregateReport
    ) -> None:
        """The reports directory is created and the artifact named by format."""
        reports_dir = tmp_path / "reports" / "nested"

        target = write_report(report, "html", reports_dir, GENERATED_AT)

        assert target == reports_dir / "test_results.html"
        assert target.read_text() == render_html(report, GENERATED_AT)

    def test_console_is_printed(
        self,
        tmp_path: Path,
        report: AggregateReport,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """The console report goes to stdout and to a text file."""
        target = write_report(report, "console", tmp_path, GENERATED_AT)

        assert capsys.readouterr().out == render_console(report, GENERATED_AT)
        assert target == tmp_path / "test_results.txt"

    def test_unknown_format_writes_console(
        self,
        tmp_path: Path,
        report: AggregateReport,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """An unknown format is not fatal."""
        target = write_report(report, "pdf", tmp_path, GENERATED_AT)

        assert target == tmp_path / "test_results.txt"
        assert "Total Tests Run:    13" in capsys.readouterr().out

    def test_write_failure_is_logged(
        self,
        tmp_path: Path,
        report: AggregateReport,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """An unwritable reports directory does not raise."""
        blocker = tmp_path / "reports"
        blocker.write_text("not a directory")

        with caplog.at_level(logging.ERROR):
            target = write_report(report, "junit", blocker, GENERATED_AT)

        assert target is None
        assert "Could not write junit report" in caplog.text

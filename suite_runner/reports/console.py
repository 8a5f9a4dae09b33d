"""Plain text summary printed at the end of a run."""

from datetime import datetime

from suite_runner.models.report import AggregateReport, CategorySummary

RULE = "=" * 42


def render_console(report: AggregateReport, generated_at: datetime) -> str:
    """Render totals, per-category lines and a PASS/FAIL banner."""
    totals = report.totals
    lines = [
        RULE,
        "Test Suite Results",
        RULE,
        f"Total Tests Run:    {totals.run}",
        f"Passed:             {totals.passed}",
        f"Failed:             {totals.failed}",
        f"Skipped:            {totals.skipped}",
        f"Success Rate:       {report.success_rate}%",
        RULE,
    ]

    if report.categories:
        lines.append("Categories:")
        lines.extend(
            f"  {_category_line(summary)}" for summary in report.categories.values()
        )
        lines.append(RULE)

    if failed := report.failed_results:
        lines.append("Failed suites:")
        lines.extend(f"  {result.error()}" for result in failed)
        lines.append(RULE)

    if report.exit_code == 0:
        lines.append("PASS: All tests passed!")
    else:
        lines.append("FAIL: Some tests failed!")
        lines.append("Check the output above for details.")
    lines.append(f"Generated on: {generated_at.isoformat(timespec='seconds')}")
    return "\n".join(lines) + "\n"


def _category_line(summary: CategorySummary) -> str:
    if summary.missing:
        return f"{summary.category}: skipped (test directory not found)"
    if summary.suites == 0:
        return f"{summary.category}: skipped (no test files found)"
    counts = summary.counts
    status = "ok" if summary.succeeded else f"{summary.failed_suites} failed"
    return (
        f"{summary.category}: {summary.suites} suite(s), {status} "
        f"(run {counts.run}, passed {counts.passed}, "
        f"failed {counts.failed}, skipped {counts.skipped})"
    )

"""Lookup of report formats and writing of report artifacts."""

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from pathlib import Path

from suite_runner.errors import ReportGenerationError
from suite_runner.models.report import AggregateReport
from suite_runner.reports.base import ReportFormat
from suite_runner.reports.console import render_console
from suite_runner.reports.html_page import render_html
from suite_runner.reports.junit import render_junit

log = logging.getLogger(__name__)

CONSOLE = ReportFormat(
    name="console", filename="test_results.txt", render=render_console
)
JUNIT = ReportFormat(name="junit", filename="test_results.xml", render=render_junit)
HTML = ReportFormat(name="html", filename="test_results.html", render=render_html)

REPORT_FORMATS: Mapping[str, ReportFormat] = {
    "console": CONSOLE,
    "junit": JUNIT,
    "xml": JUNIT,
    "html": HTML,
}


def get_report_format(name: str) -> ReportFormat:
    """Look up a report format by name.

    Raises:
        ReportGenerationError: If no format with the given name exists

    """
    try:
        return REPORT_FORMATS[name.strip().lower()]
    except KeyError:
        raise ReportGenerationError(
            f"Unknown report format '{name}'. "
            f"Available formats: {sorted(REPORT_FORMATS)}"
        ) from None


def resolve_report_format(name: str) -> ReportFormat:
    """Look up a report format, falling back to the console format."""
    try:
        return get_report_format(name)
    except ReportGenerationError as exc:
        log.warning("%s; using console report", exc)
        return CONSOLE


def write_report(
    report: AggregateReport,
    format_name: str,
    reports_dir: Path,
    generated_at: datetime | None = None,
) -> Path | None:
    """Render a report and write it into the reports directory.

    The console format is also printed to standard output. Write failures are
    logged and do not raise.

    Returns:
        Path of the written artifact, or None if it could not be written

    """
    report_format = resolve_report_format(format_name)
    generated_at = generated_at or datetime.now(timezone.utc)
    content = report_format.render(report, generated_at)

    if report_format is CONSOLE:
        print(content, end="")

    target = reports_dir / report_format.filename
    try:
        reports_dir.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    except OSError as exc:
        log.error(
            "Could not write %s report to %s: %s", report_format.name, target, exc
        )
        return None

    log.info("%s report generated: %s", report_format.name, target)
    return target

"""Report generators."""

from suite_runner.reports.base import ReportFormat
from suite_runner.reports.console import render_console
from suite_runner.reports.html_page import render_html
from suite_runner.reports.junit import render_junit
from suite_runner.reports.loading import (
    REPORT_FORMATS,
    get_report_format,
    resolve_report_format,
    write_report,
)

__all__ = [
    "REPORT_FORMATS",
    "ReportFormat",
    "get_report_format",
    "render_console",
    "render_html",
    "render_junit",
    "resolve_report_format",
    "write_report",
]

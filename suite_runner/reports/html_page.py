"""Static, self-contained HTML report."""

from datetime import datetime
from html import escape

from suite_runner.models.report import AggregateReport
from suite_runner.models.result import ExecutionResult

STYLE = """\
body { font-family: Arial, sans-serif; margin: 20px; }
.summary { background: #f5f5f5; padding: 20px; border-radius: 5px; }
.passed { color: green; }
.failed { color: red; }
.skipped { color: orange; }
table { border-collapse: collapse; margin-top: 20px; }
th, td { border: 1px solid #ddd; padding: 6px 12px; text-align: left; }
"""

STATUS_CLASSES = {
    "succeeded": "passed",
    "failed": "failed",
    "timed_out": "failed",
}


def render_html(report: AggregateReport, generated_at: datetime) -> str:
    """Render the report as a single HTML page."""
    totals = report.totals
    banner_class = "passed" if report.exit_code == 0 else "failed"
    banner = "All tests passed" if report.exit_code == 0 else "Some tests failed"
    rows = "\n".join(_suite_row(result) for result in report.results)

    return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>Test Results</title>
<style>
{STYLE}</style>
</head>
<body>
<h1>Test Results</h1>
<div class="summary">
<h2 class="{banner_class}">{banner}</h2>
<p>Total Tests: {totals.run}</p>
<p class="passed">Passed: {totals.passed}</p>
<p class="failed">Failed: {totals.failed}</p>
<p class="skipped">Skipped: {totals.skipped}</p>
<p>Success Rate: {report.success_rate}%</p>
</div>
<table>
<tr>
<th>Suite</th><th>Category</th><th>Status</th><th>Run</th>
<th>Passed</th><th>Failed</th><th>Skipped</th><th>Duration</th>
</tr>
{rows}
</table>
<p>Generated on: {escape(generated_at.isoformat(timespec="seconds"))}</p>
</body>
</html>
"""


def _suite_row(result: ExecutionResult) -> str:
    counts = result.counts
    css = STATUS_CLASSES[result.status]
    return (
        f"<tr><td>{escape(result.suite.suite_id)}</td>"
        f"<td>{result.suite.category}</td>"
        f'<td class="{css}">{result.status}</td>'
        f"<td>{counts.run}</td><td>{counts.passed}</td>"
        f"<td>{counts.failed}</td><td>{counts.skipped}</td>"
        f"<td>{result.duration:.2f}s</td></tr>"
    )

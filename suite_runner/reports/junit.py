"""JUnit-style XML summary."""

import re
import xml.etree.ElementTree as ET
from datetime import datetime

from suite_runner.models.report import AggregateReport
from suite_runner.models.result import ExecutionResult

SUITE_NAME = "Test Suite"

# Characters XML 1.0 does not allow, even escaped.
INVALID_XML_CHARS = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]")


def render_junit(report: AggregateReport, generated_at: datetime) -> str:
    """Render the report as JUnit XML.

    The ``tests``, ``failures`` and ``skipped`` attributes of the suite
    element are the aggregated test counters, one ``testcase`` is written per
    executed suite.
    """
    totals = report.totals
    duration = f"{sum(result.duration for result in report.results):.3f}"
    counters = {
        "tests": str(totals.run),
        "failures": str(totals.failed),
        "skipped": str(totals.skipped),
        "errors": "0",
        "time": duration,
    }

    root = ET.Element("testsuites", {"name": SUITE_NAME, **counters})
    testsuite = ET.SubElement(
        root,
        "testsuite",
        {
            "name": SUITE_NAME,
            **counters,
            "timestamp": generated_at.isoformat(timespec="seconds"),
        },
    )
    for result in report.results:
        _add_testcase(testsuite, result)

    ET.indent(root)
    body = ET.tostring(root, encoding="unicode")
    return f'<?xml version="1.0" encoding="UTF-8"?>\n{body}\n'


def _add_testcase(parent: ET.Element, result: ExecutionResult) -> None:
    testcase = ET.SubElement(
        parent,
        "testcase",
        {
            "name": result.suite.suite_id,
            "classname": result.suite.category,
            "time": f"{result.duration:.3f}",
        },
    )
    if error := result.error():
        failure = ET.SubElement(
            testcase, "failure", {"message": str(error), "type": result.status}
        )
        failure.text = str(error)
    if result.output:
        system_out = ET.SubElement(testcase, "system-out")
        system_out.text = INVALID_XML_CHARS.sub("", result.output)

"""Extract summary counters from suite output.

A suite reports its results by printing four labelled counters, for example::

    Tests Run:    5
    Passed:       4
    Failed:       1
    Skipped:      0

Labels are matched case-insensitively, in any order, with any amount of
whitespace around the colon. Suites may print interim progress, so only the
last occurrence of each label counts.
"""

import re
from collections.abc import Mapping
from typing import Protocol

from suite_runner.models.result import SuiteCounts

ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;]*[A-Za-z]")


class SummaryParser(Protocol):
    """Turns captured suite output into counters."""

    version: str

    def parse(self, output: str) -> SuiteCounts | None:
        """Return the counters, or None when the output has no summary."""
        ...


class LabelledCounterParser:
    """Parser for the ``<label>: <count>`` summary contract."""

    version = "1"

    LABELS: Mapping[str, str] = {
        "run": r"tests\s+run",
        "passed": r"passed",
        "failed": r"failed",
        "skipped": r"skipped",
    }

    def __init__(self) -> None:
        self._patterns = {
            field: re.compile(rf"\b{label}[ \t]*:[ \t]*(\d+)", re.IGNORECASE)
            for field, label in self.LABELS.items()
        }

    def parse(self, output: str) -> SuiteCounts | None:
        text = ANSI_ESCAPE.sub("", output)
        values: dict[str, int] = {}
        for field, pattern in self._patterns.items():
            matches = pattern.findall(text)
            if matches:
                values[field] = int(matches[-1])

        if not values:
            return None
        return SuiteCounts(**values)

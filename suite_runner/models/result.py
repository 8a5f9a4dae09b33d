"""Models for suite execution results."""

from dataclasses import dataclass, field
from typing import Literal, TypeAlias

from suite_runner.errors import (
    SuiteExecutionError,
    SuiteOutputParseWarning,
    SuiteTimeoutError,
)
from suite_runner.models.suite import TestSuite

SuiteStatus: TypeAlias = Literal["succeeded", "failed", "timed_out"]


@dataclass(frozen=True, kw_only=True)
class SuiteCounts:
    """Test counters reported by a suite in its summary."""

    run: int = 0
    passed: int = 0
    failed: int = 0
    skipped: int = 0

    def __add__(self, other: "SuiteCounts") -> "SuiteCounts":
        return SuiteCounts(
            run=self.run + other.run,
            passed=self.passed + other.passed,
            failed=self.failed + other.failed,
            skipped=self.skipped + other.skipped,
        )

    @property
    def success_rate(self) -> int:
        """Integer-floor percentage of passed tests, 0 when nothing ran."""
        if self.run == 0:
            return 0
        return self.passed * 100 // self.run


@dataclass(frozen=True, kw_only=True)
class ExecutionResult:
    """Outcome of running one suite.

    The status comes from the process exit behaviour only; the counts are
    whatever the suite reported about itself and may disagree with it.
    """

    suite: TestSuite
    status: SuiteStatus
    exit_code: int | None
    output: str
    counts: SuiteCounts = field(default_factory=SuiteCounts)
    duration: float = 0.0
    warnings: tuple[SuiteOutputParseWarning, ...] = ()

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"

    def error(self) -> SuiteExecutionError | SuiteTimeoutError | None:
        """Describe why the suite did not succeed, if it did not."""
        if self.status == "timed_out":
            return SuiteTimeoutError(self.suite.suite_id, self.duration)
        if self.status == "failed":
            return SuiteExecutionError(self.suite.suite_id, self.exit_code)
        return None

"""Error taxonomy for a test run.

Only EnvironmentAcquireError stops a run. Every other class describes a
problem that is isolated to the suite or step that produced it.
"""


class EnvironmentAcquireError(Exception):
    """Raised when shared fixtures cannot be prepared before the run."""


class EnvironmentReleaseWarning(Exception):
    """A cleanup step failed while releasing shared fixtures."""

    def __init__(self, step: str, reason: str) -> None:
        super().__init__(f"Cleanup step '{step}' failed: {reason}")
        self.step = step
        self.reason = reason


class SuiteExecutionError(Exception):
    """A suite exited with a nonzero status."""

    def __init__(self, suite_id: str, exit_code: int | None) -> None:
        if exit_code is None:
            message = f"{suite_id} could not be started"
        else:
            message = f"{suite_id} failed (exit code: {exit_code})"
        super().__init__(message)
        self.suite_id = suite_id
        self.exit_code = exit_code


class SuiteTimeoutError(Exception):
    """A suite exceeded its deadline and was terminated."""

    def __init__(self, suite_id: str, elapsed: float) -> None:
        super().__init__(f"{suite_id} timed out after {elapsed:.1f}s")
        self.suite_id = suite_id
        self.elapsed = elapsed


class SuiteOutputParseWarning(Exception):
    """A suite's output did not carry a usable summary."""

    def __init__(self, suite_id: str, reason: str) -> None:
        super().__init__(f"{suite_id}: {reason}")
        self.suite_id = suite_id
        self.reason = reason


class ReportGenerationError(Exception):
    """Raised when a report format is unknown or cannot be produced."""

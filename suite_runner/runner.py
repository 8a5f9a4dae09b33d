"""Run controller sequencing environment, execution and reporting."""

import logging
from enum import StrEnum

from suite_runner.aggregator import ResultAggregator
from suite_runner.discovery import category_dir, discover_all
from suite_runner.environment import EnvironmentController
from suite_runner.errors import EnvironmentAcquireError
from suite_runner.executor import SuiteExecutor
from suite_runner.models.config import RunConfiguration
from suite_runner.models.report import AggregateReport
from suite_runner.reports import write_report
from suite_runner.scheduler import SuiteRunner, SuiteScheduler

log = logging.getLogger(__name__)


class RunState(StrEnum):
    """Lifecycle of a run."""

    IDLE = "idle"
    PREPARING = "preparing"
    ABORTED = "aborted"
    RUNNING = "running"
    REPORTING = "reporting"
    RELEASING = "releasing"
    DONE = "done"


class Runner:
    """Drives one test run from environment setup to exit code.

    ``idle -> preparing -> (aborted | running) -> reporting -> releasing -> done``

    Once the environment has been acquired it is released on every path,
    including errors and cancellation of the run.
    """

    def __init__(
        self,
        config: RunConfiguration,
        *,
        environment: EnvironmentController | None = None,
        run_suite: SuiteRunner | None = None,
    ) -> None:
        self.config = config
        self.environment = environment or EnvironmentController(
            config.environment, cleanup=config.cleanup
        )
        self._run_suite = run_suite
        self.state = RunState.IDLE
        self.history: list[RunState] = [RunState.IDLE]
        self.report: AggregateReport | None = None

    async def run(self) -> int:
        """Execute the run and return the process exit code."""
        self._transition(RunState.PREPARING)
        try:
            await self.environment.acquire()
        except EnvironmentAcquireError as exc:
            log.error("Aborting test run: %s", exc)
            self._transition(RunState.ABORTED)
            self._transition(RunState.DONE)
            return 1
        except BaseException:
            self._transition(RunState.ABORTED)
            self._transition(RunState.DONE)
            raise

        try:
            self._transition(RunState.RUNNING)
            report = await self._execute()
            self._transition(RunState.REPORTING)
            self._report(report)
        finally:
            self._transition(RunState.RELEASING)
            await self.environment.release()
            self._transition(RunState.DONE)

        if report.exit_code == 0:
            log.info("All test categories completed successfully")
        else:
            log.error("Some test categories failed")
        return report.exit_code

    async def _execute(self) -> AggregateReport:
        config = self.config
        aggregator = ResultAggregator()
        for category in config.categories:
            if not category_dir(config.tests_root, category).is_dir():
                aggregator.mark_missing(category)
        suites = discover_all(config.tests_root, config.categories, config.pattern)

        if config.coverage:
            log.info("Coverage enabled, collection is delegated to the suites")

        scheduler = SuiteScheduler(
            run_suite=self._run_suite or self._default_executor().run,
            aggregator=aggregator,
            mode=config.mode,
            jobs=config.jobs,
            verbose=config.verbose,
        )
        await scheduler.run_categories(
            suites,
            {
                category: config.timeout_for(category)
                for category in config.categories
            },
        )
        self.report = aggregator.finalize()
        return self.report

    def _default_executor(self) -> SuiteExecutor:
        config = self.config
        env = self.environment.suite_env()
        env.update(
            {
                "TEST_VERBOSE": _flag(config.verbose),
                "TEST_DEBUG": _flag(config.debug),
                "COVERAGE_ENABLED": _flag(config.coverage),
            }
        )
        return SuiteExecutor(
            kill_grace=config.kill_grace,
            env=env,
            cwd=config.environment.project_root,
        )

    def _report(self, report: AggregateReport) -> None:
        log.info("Generating test reports")
        write_report(report, self.config.report_format, self.config.reports_dir)
        for result in report.failed_results:
            log.error("Failed: %s", result.error())
        if self.config.coverage:
            log.info(
                "Coverage report expected at %s",
                self.config.reports_dir / "coverage.html",
            )

    def _transition(self, state: RunState) -> None:
        log.debug("Run state: %s -> %s", self.state, state)
        self.state = state
        self.history.append(state)


def _flag(value: bool) -> str:
    return "true" if value else "false"

"""Scheduling of suite executions within and across categories."""

import asyncio
import logging
from typing import TypeAlias
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass

from suite_runner.aggregator import ResultAggregator
from suite_runner.models.config import ConcurrencyMode
from suite_runner.models.result import ExecutionResult
from suite_runner.models.suite import CATEGORY_ORDER, Category, TestSuite

log = logging.getLogger(__name__)

SuiteRunner: TypeAlias = Callable[[TestSuite, float], Awaitable[ExecutionResult]]


@dataclass(frozen=True, kw_only=True)
class SuiteScheduler:
    """Runs the suites of each category and feeds their results to an aggregator.

    Categories always run one after another in priority order. Within a
    category suites run either one at a time in discovery order, or all at
    once followed by a join barrier before the next category starts.
    """

    run_suite: SuiteRunner
    aggregator: ResultAggregator
    mode: ConcurrencyMode = "sequential"
    jobs: int | None = None
    verbose: bool = False

    async def run_categories(
        self,
        suites: Mapping[Category, Sequence[TestSuite]],
        timeouts: Mapping[Category, float],
    ) -> Sequence[ExecutionResult]:
        """Run every given category in priority order.

        Args:
            suites: Discovered suites per selected category
            timeouts: Per-suite timeout for each category

        Returns:
            All execution results, one per suite

        """
        results: list[ExecutionResult] = []
        for category in CATEGORY_ORDER:
            if category not in suites:
                continue
            results.extend(
                await self.run_category(category, suites[category], timeouts[category])
            )
        return results

    async def run_category(
        self,
        category: Category,
        suites: Sequence[TestSuite],
        timeout: float,
    ) -> Sequence[ExecutionResult]:
        """Run all suites of one category and wait for every one of them."""
        if not suites:
            self.aggregator.mark_empty(category)
            return []

        log.info("Running %s tests", category)
        if self.mode == "parallel" and len(suites) > 1:
            log.info("Running %d suites in parallel", len(suites))
            results = await self._run_parallel(suites, timeout)
        else:
            log.info("Running tests sequentially")
            results = [await self._run_one(suite, timeout) for suite in suites]

        log.info("Completed %s tests", category)
        return results

    async def _run_parallel(
        self, suites: Sequence[TestSuite], timeout: float
    ) -> Sequence[ExecutionResult]:
        limit = asyncio.Semaphore(self.jobs or len(suites))

        async def worker(suite: TestSuite) -> ExecutionResult:
            async with limit:
                return await self._run_one(suite, timeout)

        return await asyncio.gather(*(worker(suite) for suite in suites))

    async def _run_one(self, suite: TestSuite, timeout: float) -> ExecutionResult:
        """Run one suite, turning unexpected errors into a failed result."""
        try:
            result = await self.run_suite(suite, timeout)
        except Exception as exc:
            log.error(
                "Suite %s crashed the runner: %s", suite.suite_id, exc, exc_info=exc
            )
            result = ExecutionResult(
                suite=suite,
                status="failed",
                exit_code=None,
                output=f"{type(exc).__name__}: {exc}\n",
            )

        await self.aggregator.add(result)
        self._report_inline(result)
        return result

    def _report_inline(self, result: ExecutionResult) -> None:
        name = result.suite.suite_id
        if error := result.error():
            marker = "⏱" if result.status == "timed_out" else "✗"
            log.error("%s %s", marker, error)
            if result.output:
                log.info("Output of %s:\n%s", name, result.output.rstrip())
            return

        log.info("✓ %s completed successfully (%.2fs)", name, result.duration)
        if self.verbose and result.output:
            log.info("Output of %s:\n%s", name, result.output.rstrip())

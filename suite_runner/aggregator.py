"""Concurrency-safe accumulation of suite results."""

import asyncio
import logging
from collections.abc import Sequence

from suite_runner.models.report import AggregateReport, CategorySummary
from suite_runner.models.result import ExecutionResult, SuiteCounts
from suite_runner.models.suite import Category

log = logging.getLogger(__name__)


class ResultAggregator:
    """Single accumulation point for the results of a run.

    Workers hand over each result through ``add``; updates are serialized so
    that concurrent completions never lose an update. ``finalize`` freezes the
    accumulated state into an ``AggregateReport``.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._results: list[ExecutionResult] = []
        self._totals = SuiteCounts()
        self._category_counts: dict[Category, SuiteCounts] = {}
        self._category_suites: dict[Category, int] = {}
        self._category_failures: dict[Category, int] = {}
        self._missing: set[Category] = set()
        self._seen: list[Category] = []
        self._finalized: AggregateReport | None = None

    async def add(self, result: ExecutionResult) -> None:
        """Fold one suite's result into the totals."""
        async with self._lock:
            self._check_open()
            category = result.suite.category
            self._track(category)
            self._results.append(result)
            self._totals = self._totals + result.counts
            self._category_counts[category] = (
                self._category_counts.get(category, SuiteCounts()) + result.counts
            )
            self._category_suites[category] = self._category_suites.get(category, 0) + 1
            if not result.succeeded:
                self._category_failures[category] = (
                    self._category_failures.get(category, 0) + 1
                )

    def mark_missing(self, category: Category) -> None:
        """Record that a selected category had no directory."""
        self._check_open()
        self._track(category)
        self._missing.add(category)

    def mark_empty(self, category: Category) -> None:
        """Record that a selected category had no suites."""
        self._check_open()
        self._track(category)

    @property
    def totals(self) -> SuiteCounts:
        return self._totals

    @property
    def results(self) -> Sequence[ExecutionResult]:
        return tuple(self._results)

    def finalize(self) -> AggregateReport:
        """Freeze the accumulated results. Further updates are rejected."""
        if self._finalized is not None:
            return self._finalized

        categories = {
            category: CategorySummary(
                category=category,
                counts=self._category_counts.get(category, SuiteCounts()),
                suites=self._category_suites.get(category, 0),
                failed_suites=self._category_failures.get(category, 0),
                missing=category in self._missing,
            )
            for category in self._seen
        }
        exit_code = 0 if all(result.succeeded for result in self._results) else 1
        self._finalized = AggregateReport(
            totals=self._totals,
            categories=categories,
            results=tuple(self._results),
            exit_code=exit_code,
        )
        log.debug(
            "Aggregate finalized: run=%d passed=%d failed=%d skipped=%d exit=%d",
            self._totals.run,
            self._totals.passed,
            self._totals.failed,
            self._totals.skipped,
            exit_code,
        )
        return self._finalized

    def _track(self, category: Category) -> None:
        if category not in self._seen:
            self._seen.append(category)

    def _check_open(self) -> None:
        if self._finalized is not None:
            raise RuntimeError("Aggregate report already finalized")

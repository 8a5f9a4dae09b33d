"""Models for the aggregated outcome of a run."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from suite_runner.models.result import ExecutionResult, SuiteCounts
from suite_runner.models.suite import Category


@dataclass(frozen=True, kw_only=True)
class CategorySummary:
    """Counts and suite outcomes for one category."""

    category: Category
    counts: SuiteCounts = field(default_factory=SuiteCounts)
    suites: int = 0
    failed_suites: int = 0
    missing: bool = False

    @property
    def succeeded(self) -> bool:
        return self.failed_suites == 0


@dataclass(frozen=True, kw_only=True)
class AggregateReport:
    """Finalized result of a run, consumed by report generators."""

    totals: SuiteCounts
    categories: Mapping[Category, CategorySummary]
    results: Sequence[ExecutionResult]
    exit_code: int

    @property
    def success_rate(self) -> int:
        return self.totals.success_rate

    @property
    def failed_results(self) -> Sequence[ExecutionResult]:
        return [result for result in self.results if not result.succeeded]

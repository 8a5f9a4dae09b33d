"""Models for discovered test suites."""

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, TypeAlias

Category: TypeAlias = Literal["unit", "integration", "validation"]

# Validation gates environment sanity before the more expensive categories.
CATEGORY_ORDER: Sequence[Category] = ("validation", "unit", "integration")


@dataclass(frozen=True, kw_only=True)
class TestSuite:
    """An independently executable test suite belonging to a category."""

    __test__ = False

    suite_id: str
    category: Category
    path: Path

    @property
    def name(self) -> str:
        """File name of the suite executable."""
        return self.path.name

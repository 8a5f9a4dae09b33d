"""Discover test suites in category directories."""

import logging
from collections.abc import Mapping, Sequence
from pathlib import Path

from suite_runner.models.suite import Category, TestSuite

log = logging.getLogger(__name__)


def category_dir(tests_root: Path, category: Category) -> Path:
    """Directory holding the suites of a category."""
    return tests_root / category


def discover_suites(
    tests_root: Path,
    category: Category,
    pattern: str = "test_*.sh",
) -> Sequence[TestSuite]:
    """Find the suites of a category, sorted by their path.

    Args:
        tests_root: Directory containing one sub-directory per category
        category: Category to look up
        pattern: File name glob a suite must match, searched recursively

    Returns:
        Suites in lexicographic order. Empty when the category directory is
        missing or holds no matching files; both cases only log a warning.

    """
    directory = category_dir(tests_root, category)
    if not directory.is_dir():
        log.warning("Test directory not found: %s", directory)
        return []

    paths = sorted(path for path in directory.rglob(pattern) if path.is_file())
    if not paths:
        log.warning("No test files found in %s", directory)
        return []

    return [
        TestSuite(
            suite_id=path.relative_to(tests_root).as_posix(),
            category=category,
            path=path,
        )
        for path in paths
    ]


def discover_all(
    tests_root: Path,
    categories: Sequence[Category],
    pattern: str = "test_*.sh",
) -> Mapping[Category, Sequence[TestSuite]]:
    """Discover suites for several categories, keeping their given order."""
    return {
        category: discover_suites(tests_root, category, pattern)
        for category in categories
    }

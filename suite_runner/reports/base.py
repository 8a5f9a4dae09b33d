"""Report format definition."""

from typing import TypeAlias
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from suite_runner.models.report import AggregateReport

Renderer: TypeAlias = Callable[[AggregateReport, datetime], str]


@dataclass(frozen=True, kw_only=True)
class ReportFormat:
    """A named report format and the artifact it produces.

    Renderers are pure: the same report and timestamp always give the same
    text.
    """

    name: str
    filename: str
    render: Renderer

"""Models for run configuration, loaded from CLI flags and settings files."""

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Literal, TypeAlias

from pydantic import Field, PositiveFloat, PositiveInt, field_validator

from suite_runner.models.base import Model
from suite_runner.models.suite import CATEGORY_ORDER, Category

ConcurrencyMode: TypeAlias = Literal["sequential", "parallel"]


class EnvironmentSettings(Model):
    """Shared fixtures prepared before suites run and restored afterwards."""

    project_root: Path = Field(
        default=Path("."), description="Root of the project under test"
    )
    snapshot_files: Sequence[Path] = Field(
        default=(Path(".env"), Path("docker-compose.yml")),
        description="Files to back up before the run, relative to project_root",
    )
    backup_dir: Path | None = Field(
        default=None,
        description="Where snapshots are kept (a temporary directory if unset)",
    )
    network: str | None = Field(
        default="n8n-test",
        description="Isolated docker network provided to suites (None disables)",
    )
    container_prefix: str = Field(
        default="test_",
        min_length=1,
        description="Name prefix of docker resources removed on cleanup",
    )
    temp_prefix: str = Field(
        default="n8n_test_",
        min_length=1,
        description="Prefix of temporary directories removed on cleanup",
    )
    docker_bin: str = Field(default="docker", description="Docker CLI executable")
    docker_timeout: PositiveFloat = Field(
        default=60, description="Timeout for each docker CLI call in seconds"
    )


class RunConfiguration(Model):
    """Complete, immutable configuration of a single test run."""

    categories: Sequence[Category] = Field(
        default=CATEGORY_ORDER, description="Categories selected for this run"
    )
    mode: ConcurrencyMode = Field(
        default="sequential", description="How suites within a category run"
    )
    jobs: PositiveInt | None = Field(
        default=None,
        description="Maximum concurrent suites in parallel mode (None = no cap)",
    )
    timeout: PositiveFloat = Field(default=300, description="Per-suite timeout")
    category_timeouts: Mapping[Category, PositiveFloat] = Field(
        default_factory=dict, description="Per-category timeout overrides"
    )
    kill_grace: PositiveFloat = Field(
        default=5,
        description="Seconds between the termination request and a forced kill",
    )
    cleanup: bool = Field(default=True, description="Remove test resources after run")
    report_format: str = Field(default="console", description="Report format name")
    verbose: bool = False
    debug: bool = False
    coverage: bool = Field(
        default=False, description="Ask suites to collect coverage data"
    )
    tests_root: Path = Field(
        default=Path("tests"), description="Directory holding the category dirs"
    )
    reports_dir: Path = Field(
        default=Path("tests/reports"), description="Where report artifacts go"
    )
    pattern: str = Field(default="test_*.sh", description="Suite file name glob")
    environment: EnvironmentSettings = Field(default_factory=EnvironmentSettings)

    @field_validator("categories")
    @classmethod
    def _order_categories(cls, value: Sequence[Category]) -> Sequence[Category]:
        """Keep the fixed priority order regardless of how they were selected."""
        return tuple(category for category in CATEGORY_ORDER if category in value)

    def timeout_for(self, category: Category) -> float:
        """Timeout applying to suites of the given category."""
        return self.category_timeouts.get(category, self.timeout)

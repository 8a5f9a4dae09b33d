"""Fixtures for integration tests."""

import stat
import tempfile
from pathlib import Path
from typing import Protocol

import pytest

from suite_runner.models.suite import Category, TestSuite

FAKE_DOCKER = """#!/bin/sh
# Records every call and answers "ls" commands from files next to it.
dir="$(dirname "$0")"
echo "$*" >> "$dir/calls.log"

filter=""
for arg in "$@"; do
  case "$arg" in
    name=*) filter="${arg#name=}" ;;
  esac
done

list() {
  if [ -f "$dir/$1" ]; then
    grep -F -- "$filter" "$dir/$1"
  fi
  return 0
}

pause() {
  if [ -f "$dir/slow_$1" ]; then
    exec sleep 30
  fi
}

refuse() {
  if [ -f "$dir/fail_$1" ]; then
    echo "$1 refused by daemon" >&2
    exit 1
  fi
}

case "$1 $2" in
  "network ls") list networks ;;
  "network create") pause create; refuse create ;;
  "network rm") refuse network_rm ;;
  "ps -a") list containers ;;
  "volume ls") list volumes ;;
  "rm -f") refuse rm ;;
esac
exit 0
"""


class WriteSuiteFn(Protocol):
    """Protocol for suite creation function."""

    def __call__(
        self, name: str, body: str, *, category: Category = "unit"
    ) -> TestSuite:
        """Write a shell suite and return it."""


class FakeDocker:
    """Handle on the fake docker CLI written by the ``fake_docker`` fixture."""

    def __init__(self, directory: Path) -> None:
        self.directory = directory
        self.bin = directory / "docker"

    @property
    def calls(self) -> list[str]:
        log = self.directory / "calls.log"
        if not log.exists():
            return []
        return log.read_text().splitlines()

    def existing(self, kind: str, *names: str) -> None:
        """Make ``ls`` report the given networks, containers or volumes."""
        (self.directory / kind).write_text("".join(f"{n}\n" for n in names))

    def refuse(self, command: str) -> None:
        """Make a docker command fail with a non-zero exit code."""
        (self.directory / f"fail_{command}").touch()

    def slow(self, command: str) -> None:
        """Make a docker command hang until it is killed."""
        (self.directory / f"slow_{command}").touch()


@pytest.fixture
def tests_root(tmp_path: Path) -> Path:
    """Directory holding the category directories."""
    root = tmp_path / "tests"
    root.mkdir()
    return root


@pytest.fixture
def write_suite(tests_root: Path) -> WriteSuiteFn:
    """Return a function that writes shell suites below tests_root.

    Suites are written without the executable bit, the runner adds it.
    """

    def _write(name: str, body: str, *, category: Category = "unit") -> TestSuite:
        path = tests_root / category / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(f"#!/bin/sh\n{body}\n")
        path.chmod(stat.S_IRUSR | stat.S_IWUSR)
        return TestSuite(
            suite_id=path.relative_to(tests_root).as_posix(),
            category=category,
            path=path,
        )

    return _write


@pytest.fixture
def fake_docker(tmp_path: Path) -> FakeDocker:
    """Write a fake docker CLI that records its calls."""
    directory = tmp_path / "fake-docker"
    directory.mkdir()
    docker = FakeDocker(directory)
    docker.bin.write_text(FAKE_DOCKER)
    docker.bin.chmod(0o755)
    return docker


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """Project with configuration files that suites may modify."""
    root = tmp_path / "project"
    root.mkdir()
    (root / ".env").write_text("N8N_PORT=5678\n")
    (root / "docker-compose.yml").write_text("services: {}\n")
    return root


@pytest.fixture(autouse=True)
def isolated_tempdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep backups and swept temporary directories inside tmp_path."""
    directory = tmp_path / "tmp"
    directory.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(directory))
    return directory

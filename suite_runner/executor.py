"""Run a single suite as an isolated child process."""

import asyncio
import logging
import os
import signal
import stat
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from suite_runner.errors import SuiteOutputParseWarning
from suite_runner.models.result import ExecutionResult, SuiteCounts, SuiteStatus
from suite_runner.models.suite import TestSuite
from suite_runner.parser import LabelledCounterParser, SummaryParser

log = logging.getLogger(__name__)

READ_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True, kw_only=True)
class SuiteExecutor:
    """Spawns suites, enforces their timeout and parses their summary.

    Every suite runs in its own process session so that a timeout can signal
    the whole process group, including anything the suite spawned itself.
    """

    parser: SummaryParser = field(default_factory=LabelledCounterParser)
    kill_grace: float = 5.0
    env: Mapping[str, str] = field(default_factory=dict)
    cwd: Path | None = None

    async def run(self, suite: TestSuite, timeout: float) -> ExecutionResult:
        """Execute a suite and wait for it, at most ``timeout`` seconds.

        Args:
            suite: Suite to execute
            timeout: Seconds before the suite is terminated

        Returns:
            The execution result. Spawn errors produce a failed result
            instead of raising.

        """
        log.info("Executing test file: %s", suite.suite_id)
        loop = asyncio.get_running_loop()
        started = loop.time()

        try:
            ensure_executable(suite.path)
            process = await asyncio.create_subprocess_exec(
                str(suite.path.resolve()),
                cwd=self.cwd,
                env=self._child_env(suite, timeout),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                start_new_session=True,
            )
        except OSError as exc:
            return self._build_result(
                suite,
                status="failed",
                exit_code=None,
                output=f"Failed to start {suite.suite_id}: {exc}\n",
                duration=loop.time() - started,
            )

        assert process.stdout is not None
        buffer = bytearray()
        reader = asyncio.create_task(_drain(process.stdout, buffer))

        status: SuiteStatus
        try:
            await asyncio.wait_for(process.wait(), timeout=timeout)
        except TimeoutError:
            status = "timed_out"
            log.warning(
                "Suite %s exceeded timeout of %.1fs, terminating",
                suite.suite_id,
                timeout,
            )
            await self._terminate(process)
        except asyncio.CancelledError:
            await self._terminate(process)
            reader.cancel()
            raise
        else:
            status = "succeeded" if process.returncode == 0 else "failed"
            # Background children left by the suite would keep the output open.
            _signal_group(process, signal.SIGKILL)

        await self._finish_reading(suite, reader)

        return self._build_result(
            suite,
            status=status,
            exit_code=process.returncode,
            output=buffer.decode(errors="replace"),
            duration=loop.time() - started,
        )

    def _child_env(self, suite: TestSuite, timeout: float) -> dict[str, str]:
        env = dict(os.environ)
        env.update(self.env)
        env["TEST_CATEGORY"] = suite.category
        env["TEST_TIMEOUT"] = f"{timeout:g}"
        return env

    async def _terminate(self, process: asyncio.subprocess.Process) -> None:
        """Ask the process group to stop, then kill whatever is left."""
        _signal_group(process, signal.SIGTERM)
        try:
            await asyncio.wait_for(process.wait(), timeout=self.kill_grace)
        except TimeoutError:
            log.warning(
                "Process %d ignored SIGTERM for %.1fs, killing it",
                process.pid,
                self.kill_grace,
            )
        # Children of the suite may outlive it and keep the output pipe open.
        _signal_group(process, signal.SIGKILL)
        await process.wait()

    async def _finish_reading(
        self, suite: TestSuite, reader: asyncio.Task[None]
    ) -> None:
        try:
            await asyncio.wait_for(reader, timeout=self.kill_grace)
        except TimeoutError:
            log.warning(
                "Output of %s still open after exit, keeping what was captured",
                suite.suite_id,
            )

    def _build_result(
        self,
        suite: TestSuite,
        *,
        status: SuiteStatus,
        exit_code: int | None,
        output: str,
        duration: float,
    ) -> ExecutionResult:
        counts = self.parser.parse(output)
        warnings: list[SuiteOutputParseWarning] = []
        if counts is None:
            counts = SuiteCounts()
            warnings.append(
                SuiteOutputParseWarning(
                    suite.suite_id, "no summary counters in output, counting 0 tests"
                )
            )
        elif counts.run == 0 and status == "succeeded":
            warnings.append(SuiteOutputParseWarning(suite.suite_id, "no tests found"))

        for warning in warnings:
            log.warning("%s", warning)

        return ExecutionResult(
            suite=suite,
            status=status,
            exit_code=exit_code,
            output=output,
            counts=counts,
            duration=duration,
            warnings=tuple(warnings),
        )


async def _drain(stream: asyncio.StreamReader, buffer: bytearray) -> None:
    while chunk := await stream.read(READ_CHUNK_SIZE):
        buffer.extend(chunk)


def _signal_group(process: asyncio.subprocess.Process, sig: signal.Signals) -> None:
    try:
        os.killpg(process.pid, sig)
    except ProcessLookupError:
        pass
    except PermissionError:
        # The group leader is gone and its pid was reused elsewhere.
        log.debug("Cannot signal process group %d", process.pid)


def ensure_executable(path: Path) -> None:
    """Add the executable bits to a suite file that lacks them."""
    mode = path.stat().st_mode
    if not mode & stat.S_IXUSR:
        path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)

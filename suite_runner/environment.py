"""Setup and teardown of fixtures shared by all suites of a run."""

import asyncio
import logging
import shutil
import tempfile
from collections.abc import AsyncGenerator, Awaitable, Callable, Sequence
from contextlib import asynccontextmanager
from pathlib import Path

from suite_runner.errors import EnvironmentAcquireError, EnvironmentReleaseWarning
from suite_runner.models.config import EnvironmentSettings

log = logging.getLogger(__name__)

BACKUP_SUFFIX = ".test_backup"
BACKUP_DIR_PREFIX = "suite_runner_backup_"


class EnvironmentController:
    """Owns the configuration snapshots and the docker network of a run.

    Suites only ever see references to these fixtures (paths and names passed
    through their environment), never the controller itself.

    Usage::

        controller = EnvironmentController(settings)
        async with controller.prepared():
            ...  # run suites with controller.suite_env()
    """

    def __init__(self, settings: EnvironmentSettings, *, cleanup: bool = True) -> None:
        self.settings = settings
        self.cleanup = cleanup
        self._snapshots: dict[Path, Path] = {}
        self._backup_dir: Path | None = None
        self._owns_backup_dir = False
        self._created_network: str | None = None
        self._acquired = False

    @property
    def acquired(self) -> bool:
        return self._acquired

    @property
    def backup_dir(self) -> Path | None:
        return self._backup_dir

    @asynccontextmanager
    async def prepared(self) -> AsyncGenerator["EnvironmentController", None]:
        """Acquire the fixtures and release them on every way out."""
        await self.acquire()
        try:
            yield self
        finally:
            await self.release()

    async def acquire(self) -> None:
        """Snapshot configuration files and provision the test network.

        Raises:
            EnvironmentAcquireError: If any fixture cannot be prepared. Whatever
                was already acquired is rolled back first.

        """
        if self._acquired:
            raise RuntimeError("Environment already acquired")

        log.info("Setting up test environment")
        try:
            self._prepare_backup_dir()
            for file in self.settings.snapshot_files:
                self._snapshot(self._resolve(file))
            if self.settings.network:
                await self._provision_network(self.settings.network)
        except (OSError, RuntimeError) as exc:
            log.error("Failed to set up test environment: %s", exc)
            await self._rollback()
            raise EnvironmentAcquireError(
                f"Failed to set up test environment: {exc}"
            ) from exc
        except BaseException:
            log.warning("Setup of test environment interrupted, rolling back")
            await self._rollback()
            raise

        self._acquired = True

    async def release(self) -> Sequence[EnvironmentReleaseWarning]:
        """Restore snapshots and tear down provisioned resources.

        Every step is attempted even if an earlier one failed. Failures are
        logged and returned, never raised. Calling it again is a no-op.
        """
        if not self._acquired:
            log.debug("Environment not acquired, nothing to release")
            return []

        log.info("Cleaning up test environment")
        warnings = await self._teardown(sweep=self.cleanup)
        for warning in warnings:
            log.warning("%s", warning)
        self._acquired = False
        return warnings

    async def _rollback(self) -> None:
        for warning in await self._teardown(sweep=False):
            log.warning("%s", warning)

    def suite_env(self) -> dict[str, str]:
        """Read-only references to the fixtures, passed to every suite."""
        env = {
            "PROJECT_ROOT": str(self.settings.project_root.resolve()),
            "TEST_DOCKER_PREFIX": self.settings.container_prefix,
        }
        if self.settings.network:
            env["TEST_DOCKER_NETWORK"] = self.settings.network
        if self._backup_dir is not None:
            env["TEST_BACKUP_DIR"] = str(self._backup_dir)
        return env

    def _resolve(self, file: Path) -> Path:
        if file.is_absolute():
            return file
        return self.settings.project_root / file

    def _prepare_backup_dir(self) -> None:
        if self.settings.backup_dir is None:
            self._backup_dir = Path(tempfile.mkdtemp(prefix=BACKUP_DIR_PREFIX))
            self._owns_backup_dir = True
        else:
            self.settings.backup_dir.mkdir(parents=True, exist_ok=True)
            self._backup_dir = self.settings.backup_dir

    def _snapshot(self, path: Path) -> None:
        if not path.is_file():
            log.debug("No config to back up at %s", path)
            return
        assert self._backup_dir is not None
        backup = self._backup_dir / f"{len(self._snapshots)}_{path.name}{BACKUP_SUFFIX}"
        shutil.copy2(path, backup)
        self._snapshots[path] = backup
        log.debug("Backed up config: %s", path)

    async def _provision_network(self, network: str) -> None:
        if network in await self._list_names("network", network):
            log.info("Reusing existing docker network %s", network)
            return
        try:
            await self._docker("network", "create", network)
        except asyncio.CancelledError:
            # The daemon may still complete the request.
            self._created_network = network
            raise
        self._created_network = network
        log.info("Created docker network %s", network)

    async def _teardown(self, *, sweep: bool) -> list[EnvironmentReleaseWarning]:
        steps: list[tuple[str, Callable[[], Awaitable[None]]]] = [
            ("restore snapshots", self._restore_snapshots),
        ]
        if self._created_network is not None:
            steps.append(("remove network", self._remove_network))
        if sweep:
            steps.append(("remove docker resources", self._sweep_docker))
            steps.append(("remove temporary directories", self._sweep_temp_dirs))
        if self._owns_backup_dir:
            steps.append(("remove backup directory", self._remove_backup_dir))

        warnings: list[EnvironmentReleaseWarning] = []
        for step, action in steps:
            try:
                await action()
            except Exception as exc:
                warnings.append(EnvironmentReleaseWarning(step, str(exc)))
        return warnings

    async def _restore_snapshots(self) -> None:
        failed: list[str] = []
        for original, backup in list(self._snapshots.items()):
            try:
                shutil.copy2(backup, original)
                backup.unlink()
            except OSError as exc:
                failed.append(f"{original}: {exc}")
                continue
            del self._snapshots[original]
            log.debug("Restored config: %s", original)
        if failed:
            raise OSError("; ".join(failed))

    async def _remove_network(self) -> None:
        assert self._created_network is not None
        await self._docker("network", "rm", self._created_network)
        log.info("Removed docker network %s", self._created_network)
        self._created_network = None

    async def _sweep_docker(self) -> None:
        prefix = self.settings.container_prefix
        containers = await self._list_prefixed("ps", prefix)
        if containers:
            await self._docker("rm", "-f", *containers)
        networks = await self._list_prefixed("network", prefix)
        if networks:
            await self._docker("network", "rm", *networks)
        volumes = await self._list_prefixed("volume", prefix)
        if volumes:
            await self._docker("volume", "rm", *volumes)
        log.debug(
            "Removed %d container(s), %d network(s), %d volume(s) with prefix %s",
            len(containers),
            len(networks),
            len(volumes),
            prefix,
        )

    async def _sweep_temp_dirs(self) -> None:
        for path in Path(tempfile.gettempdir()).glob(f"{self.settings.temp_prefix}*"):
            if path.is_dir():
                shutil.rmtree(path)
                log.debug("Cleaned up temporary directory: %s", path)

    async def _remove_backup_dir(self) -> None:
        if self._snapshots:
            # Keep backups that could not be restored.
            log.warning("Keeping backups in %s", self._backup_dir)
            return
        assert self._backup_dir is not None
        shutil.rmtree(self._backup_dir)
        self._owns_backup_dir = False

    async def _list_prefixed(self, kind: str, prefix: str) -> Sequence[str]:
        """List docker object names starting with a prefix.

        The docker name filter matches anywhere in the name, so the listing is
        narrowed down to real prefix matches here.
        """
        names = await self._list_names(kind, prefix)
        return [name for name in names if name.startswith(prefix)]

    async def _list_names(self, kind: str, name_filter: str) -> Sequence[str]:
        """List docker object names matching a name filter."""
        if kind == "ps":
            args = ["ps", "-a"]
            template = "{{.Names}}"
        else:
            args = [kind, "ls"]
            template = "{{.Name}}"
        output = await self._docker(
            *args, "--filter", f"name={name_filter}", "--format", template
        )
        return [line for line in output.splitlines() if line]

    async def _docker(self, *args: str) -> str:
        """Run a docker CLI command and return its standard output."""
        process = await asyncio.create_subprocess_exec(
            self.settings.docker_bin,
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=self.settings.docker_timeout
            )
        except TimeoutError:
            process.kill()
            await process.wait()
            raise RuntimeError(
                f"docker {' '.join(args)} timed out after "
                f"{self.settings.docker_timeout:g}s"
            ) from None
        except asyncio.CancelledError:
            process.kill()
            await process.wait()
            raise

        if process.returncode != 0:
            raise RuntimeError(
                f"docker {' '.join(args)} failed: {stderr.decode().strip()}"
            )
        return stdout.decode()

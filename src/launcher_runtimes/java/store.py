"""Runtime store contract and the filesystem-backed Java store.

Each installed build lives in its own ``<root>/<uuid>/`` directory next to a
``Java.toml`` file describing it. The directory name is the build id.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import uuid
from pathlib import Path
from typing import Protocol, runtime_checkable

import toml
from filelock import FileLock, Timeout
from pydantic import ValidationError

from launcher_runtimes.java.download import archive_format, directory_size, download_archive, extract_archive
from launcher_runtimes.java.errors import (
    InstallFailed,
    InvalidIndexRange,
    NotFound,
    RuntimeStoreError,
    StoreUnavailable,
    UpdateFailed,
)
from launcher_runtimes.java.metadata import MetadataClient
from launcher_runtimes.java.models import (
    AvailableBuild,
    Environment,
    InstalledRuntime,
    RuntimeBuildRecord,
    detect_environment,
    version_key,
)

logger = logging.getLogger(__name__)

METADATA_FILE = "Java.toml"
LOCK_FILE = ".lock"
DOWNLOADS_DIR = ".downloads"


@runtime_checkable
class RuntimeStoreClient(Protocol):
    """Operations the orchestrator needs from a runtime store."""

    async def count(self) -> int: ...

    async def get(self, index: int) -> RuntimeBuildRecord: ...

    async def install(self, major: int) -> None: ...

    async def update(self, build_id: str) -> None: ...

    async def uninstall(self, build_id: str) -> None: ...


def read_installed(directory: Path) -> InstalledRuntime | None:
    """Load ``Java.toml`` from ``directory``; None if missing or invalid."""
    path = directory / METADATA_FILE
    if not path.is_file():
        return None
    try:
        return InstalledRuntime.model_validate(toml.load(path))
    except (OSError, toml.TomlDecodeError, ValidationError) as exc:
        logger.debug("Skipping %s: %s", directory, exc)
        return None


def write_installed(directory: Path, info: InstalledRuntime) -> None:
    with (directory / METADATA_FILE).open("w", encoding="utf-8") as handle:
        toml.dump(info.model_dump(mode="json"), handle)


class LocalRuntimeStore:
    """Java builds installed under a local directory."""

    def __init__(
        self,
        root: Path,
        metadata: MetadataClient,
        *,
        environment: Environment | None = None,
        lock_timeout: float = 30.0,
    ) -> None:
        self.root = root
        self.metadata = metadata
        self._environment = environment
        self._lock = FileLock(root / LOCK_FILE, timeout=lock_timeout, thread_local=False)

    @property
    def environment(self) -> Environment:
        if self._environment is None:
            self._environment = detect_environment()
        return self._environment

    # ── Queries ───────────────────────────────────────────────────

    def list_installed(self) -> list[tuple[str, InstalledRuntime]]:
        """Installed builds ordered by (major, provider, id).

        Raises:
            StoreUnavailable: If the store directory exists but cannot be read.
        """
        if not self.root.exists():
            return []
        try:
            directories = [entry for entry in self.root.iterdir() if entry.is_dir() and not entry.name.startswith(".")]
        except OSError as exc:
            raise StoreUnavailable(f"Cannot read Java store at {self.root}: {exc}") from exc

        installed = []
        for directory in directories:
            info = read_installed(directory)
            if info is not None:
                installed.append((directory.name, info))
        installed.sort(key=lambda item: (item[1].major, item[1].provider, item[0]))
        return installed

    def find(self, build_id: str) -> InstalledRuntime | None:
        if not build_id or build_id.startswith(".") or "/" in build_id or "\\" in build_id:
            return None
        return read_installed(self.root / build_id)

    def executable_path(self, build_id: str) -> Path:
        info = self.find(build_id)
        if info is None:
            raise NotFound(build_id)
        return self.root / build_id / info.executable

    async def count(self) -> int:
        return len(await asyncio.to_thread(self.list_installed))

    async def get(self, index: int) -> RuntimeBuildRecord:
        installed = await asyncio.to_thread(self.list_installed)
        if not 0 <= index < len(installed):
            raise InvalidIndexRange(index, len(installed))
        build_id, info = installed[index]
        return info.to_record(build_id)

    # ── Mutations ─────────────────────────────────────────────────

    async def install(self, major: int) -> None:
        """Install the latest build of ``major`` unless one is already present."""
        await self._acquire()
        try:
            installed = await asyncio.to_thread(self.list_installed)
            if any(info.major == major for _, info in installed):
                logger.debug("Java %s already installed, nothing to do", major)
                return
            build = await self._fetch(major, InstallFailed)
            if build is None:
                raise InstallFailed(f"No Java {major} build is published for {self.environment.slug}")
            await self._install_build(build, InstallFailed)
        finally:
            self._lock.release()

    async def update(self, build_id: str) -> None:
        """Replace ``build_id`` with the newest build of the same major and provider."""
        await self._acquire()
        try:
            current = await asyncio.to_thread(self.find, build_id)
            if current is None:
                raise NotFound(build_id)
            build = await self._fetch(current.major, UpdateFailed)
            if build is None:
                raise UpdateFailed(f"No Java {current.major} build is published for {self.environment.slug}")
            if build.provider != current.provider:
                logger.info(
                    "Latest Java %s build comes from %s, keeping %s build %s",
                    current.major,
                    build.provider,
                    current.provider,
                    build_id,
                )
                return
            if version_key(build.version) <= version_key(current.version):
                logger.debug("Java build %s is up to date (%s)", build_id, current.version)
                return
            await self._install_build(build, UpdateFailed)
        finally:
            self._lock.release()

    async def uninstall(self, build_id: str) -> None:
        await self._acquire()
        try:
            if await asyncio.to_thread(self.find, build_id) is None:
                raise NotFound(build_id)
            await asyncio.to_thread(self._remove, build_id)
        finally:
            self._lock.release()

    # ── Internal ──────────────────────────────────────────────────

    async def _acquire(self) -> None:
        try:
            await asyncio.to_thread(self._ensure_root)
            await asyncio.to_thread(self._lock.acquire)
        except Timeout as exc:
            raise StoreUnavailable(
                f"Cannot acquire lock on {self.root}. Another launcher process may be installing Java."
            ) from exc
        except OSError as exc:
            raise StoreUnavailable(f"Cannot open Java store at {self.root}: {exc}") from exc

    def _ensure_root(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    async def _fetch(self, major: int, failure: type[RuntimeStoreError]) -> AvailableBuild | None:
        try:
            return await self.metadata.fetch_build(major, self.environment)
        except StoreUnavailable:
            raise
        except ValueError as exc:
            raise failure(str(exc)) from exc
        except RuntimeStoreError as exc:
            raise failure(f"Cannot resolve Java {major}: {exc}") from exc

    async def _install_build(self, build: AvailableBuild, failure: type[RuntimeStoreError]) -> str:
        build_id = str(uuid.uuid4())
        target = self.root / build_id
        downloads = self.root / DOWNLOADS_DIR
        archive = downloads / f"{build_id}-{build.name}"

        try:
            fmt = archive_format(build.name)
            async with self.metadata.client() as client:
                await download_archive(client, build, archive)
            await asyncio.to_thread(extract_archive, archive, fmt, target)
            size = await asyncio.to_thread(directory_size, target)
            await asyncio.to_thread(write_installed, target, build.to_installed(size))
        except StoreUnavailable:
            await asyncio.to_thread(shutil.rmtree, target, True)
            raise
        except (RuntimeStoreError, OSError) as exc:
            await asyncio.to_thread(shutil.rmtree, target, True)
            if isinstance(exc, failure):
                raise
            raise failure(f"Failed to install Java {build.major} ({build.version}): {exc}") from exc
        finally:
            archive.unlink(missing_ok=True)

        logger.info("Installed %s Java %s as %s", build.provider, build.version, build_id)

        for other_id, info in await asyncio.to_thread(self.list_installed):
            if other_id != build_id and info.major == build.major and info.provider == build.provider:
                logger.info("Removing superseded Java build %s (%s)", other_id, info.version)
                try:
                    await asyncio.to_thread(self._remove, other_id)
                except RuntimeStoreError as exc:
                    logger.warning("Could not remove superseded Java build %s: %s", other_id, exc)
        return build_id

    def _remove(self, build_id: str) -> None:
        try:
            shutil.rmtree(self.root / build_id)
        except FileNotFoundError as exc:
            raise NotFound(build_id) from exc
        except OSError as exc:
            raise StoreUnavailable(f"Failed to remove Java build {build_id}: {exc}") from exc
        logger.info("Removed Java build %s", build_id)

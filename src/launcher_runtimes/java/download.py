"""Download, verify and unpack Java build archives."""

from __future__ import annotations

import hashlib
import logging
import os
import shutil
import stat
import tarfile
import zipfile
from pathlib import Path

import httpx

from launcher_runtimes.java.errors import ChecksumMismatch, InstallFailed, StoreUnavailable, UnsupportedArchive
from launcher_runtimes.java.models import AvailableBuild
from launcher_runtimes.java.net import send_with_retry

logger = logging.getLogger(__name__)

ARCHIVE_FORMATS: dict[str, str] = {
    ".tar.gz": "tar.gz",
    ".tgz": "tar.gz",
    ".tar.xz": "tar.xz",
    ".zip": "zip",
}

_CHUNK_SIZE = 1024 * 256


def archive_format(name: str) -> str:
    """Return the archive format for ``name`` based on its suffix."""
    lower = name.lower()
    for suffix, fmt in ARCHIVE_FORMATS.items():
        if lower.endswith(suffix):
            return fmt
    raise UnsupportedArchive(f"Could not determine archive format: {name}")


async def download_archive(client: httpx.AsyncClient, build: AvailableBuild, destination: Path) -> Path:
    """Stream ``build`` into ``destination``, verifying its SHA-256 as it arrives.

    The data is written to a ``.part`` file first and only renamed into place
    once the checksum matches. Server and network errors are retried.

    Raises:
        StoreUnavailable: If the download host cannot be reached.
        InstallFailed: On HTTP errors or local write failures.
        ChecksumMismatch: If the downloaded bytes do not match ``build.checksum``.
    """
    destination.parent.mkdir(parents=True, exist_ok=True)
    temp_target = destination.with_name(destination.name + ".part")
    hasher = hashlib.sha256()
    received = 0

    try:
        response = await send_with_retry(client, "GET", build.download, stream=True)
        try:
            if not response.is_success:
                raise InstallFailed(f"Download of {build.name} failed with HTTP {response.status_code}")
            with temp_target.open("wb") as handle:
                async for chunk in response.aiter_bytes(_CHUNK_SIZE):
                    hasher.update(chunk)
                    handle.write(chunk)
                    received += len(chunk)
        finally:
            await response.aclose()
    except httpx.TransportError as exc:
        temp_target.unlink(missing_ok=True)
        raise StoreUnavailable(f"Cannot download {build.download}: {exc}") from exc
    except httpx.HTTPError as exc:
        temp_target.unlink(missing_ok=True)
        raise InstallFailed(f"Download of {build.name} failed: {exc}") from exc
    except OSError as exc:
        temp_target.unlink(missing_ok=True)
        raise InstallFailed(f"Failed to store {build.name}: {exc}") from exc
    except InstallFailed:
        temp_target.unlink(missing_ok=True)
        raise

    digest = hasher.hexdigest()
    if digest != build.checksum:
        temp_target.unlink(missing_ok=True)
        raise ChecksumMismatch(f"Checksum mismatch for {build.name}: expected {build.checksum}, got {digest}")

    os.replace(temp_target, destination)
    logger.debug("Downloaded %s (%d bytes)", build.name, received)
    return destination


def _is_within(root: Path, candidate: Path) -> bool:
    try:
        candidate.resolve().relative_to(root.resolve())
    except ValueError:
        return False
    return True


def _extract_zip(archive: Path, target: Path) -> None:
    with zipfile.ZipFile(archive) as bundle:
        for member in bundle.namelist():
            if not _is_within(target, target / member):
                raise InstallFailed(f"Archive member escapes the install directory: {member}")
        bundle.extractall(target)

    if os.name != "nt":
        for binary in target.glob("**/bin/*"):
            if binary.is_file():
                mode = binary.stat().st_mode
                binary.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


def extract_archive(archive: Path, fmt: str, destination: Path) -> Path:
    """Unpack ``archive`` into ``destination``.

    Builds are usually packed inside one top-level directory; that directory
    is flattened so executable paths are relative to ``destination``.
    """
    if destination.exists():
        raise InstallFailed(f"Install directory already exists: {destination}")

    staging = destination.with_name(destination.name + ".extract")
    shutil.rmtree(staging, ignore_errors=True)
    staging.mkdir(parents=True)
    try:
        if fmt == "zip":
            _extract_zip(archive, staging)
        elif fmt in ("tar.gz", "tar.xz"):
            mode = "r:gz" if fmt == "tar.gz" else "r:xz"
            with tarfile.open(archive, mode) as bundle:
                bundle.extractall(staging, filter="data")
        else:
            raise UnsupportedArchive(f"Unknown archive format: {fmt}")

        entries = list(staging.iterdir())
        if len(entries) == 1 and entries[0].is_dir():
            os.replace(entries[0], destination)
        else:
            os.replace(staging, destination)
    except (OSError, tarfile.TarError, zipfile.BadZipFile) as exc:
        shutil.rmtree(destination, ignore_errors=True)
        raise InstallFailed(f"Failed to extract {archive.name}: {exc}") from exc
    finally:
        shutil.rmtree(staging, ignore_errors=True)

    return destination


def directory_size(path: Path) -> int:
    """Total size in bytes of regular files below ``path``."""
    return sum(entry.stat().st_size for entry in path.rglob("*") if entry.is_file() and not entry.is_symlink())

"""Tests for archive download, verification and extraction."""

from __future__ import annotations

import io
import os
import zipfile
from pathlib import Path

import httpx
import pytest

from launcher_runtimes.java.download import (
    archive_format,
    directory_size,
    download_archive,
    extract_archive,
)
from launcher_runtimes.java.errors import ChecksumMismatch, InstallFailed, StoreUnavailable, UnsupportedArchive
from launcher_runtimes.java.models import AvailableBuild


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("zulu17.44.53-ca-jre17.0.8.1-linux_x64.tar.gz", "tar.gz"),
        ("build.TGZ", "tar.gz"),
        ("build.tar.xz", "tar.xz"),
        ("zulu8-jre-win_x64.zip", "zip"),
    ],
)
def test_archive_format(name: str, expected: str) -> None:
    assert archive_format(name) == expected


def test_archive_format_unknown() -> None:
    with pytest.raises(UnsupportedArchive):
        archive_format("zulu17.dmg")


@pytest.mark.asyncio
async def test_download_verifies_checksum(tmp_path: Path, metadata_server, document_factory, tar_archive) -> None:
    document = document_factory(archive=tar_archive)
    metadata_server.publish(document, tar_archive)
    build = AvailableBuild.model_validate(document)
    target = tmp_path / "downloads" / build.name

    async with httpx.AsyncClient(transport=metadata_server.transport()) as client:
        result = await download_archive(client, build, target)

    assert result == target
    assert target.read_bytes() == tar_archive
    assert not target.with_name(target.name + ".part").exists()


@pytest.mark.asyncio
async def test_download_checksum_mismatch_removes_partial_file(
    tmp_path: Path, metadata_server, document_factory, tar_archive
) -> None:
    document = document_factory(archive=tar_archive, checksum="0" * 64)
    metadata_server.publish(document, tar_archive)
    build = AvailableBuild.model_validate(document)
    target = tmp_path / build.name

    async with httpx.AsyncClient(transport=metadata_server.transport()) as client:
        with pytest.raises(ChecksumMismatch):
            await download_archive(client, build, target)

    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_download_http_error(tmp_path: Path, metadata_server, document_factory, tar_archive) -> None:
    build = AvailableBuild.model_validate(document_factory(archive=tar_archive))

    async with httpx.AsyncClient(transport=metadata_server.transport()) as client:
        with pytest.raises(InstallFailed, match="HTTP 404"):
            await download_archive(client, build, tmp_path / build.name)

    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_download_unreachable_host(tmp_path: Path, metadata_server, document_factory, tar_archive) -> None:
    metadata_server.error = httpx.ConnectTimeout("timed out")
    build = AvailableBuild.model_validate(document_factory(archive=tar_archive))

    async with httpx.AsyncClient(transport=metadata_server.transport()) as client:
        with pytest.raises(StoreUnavailable):
            await download_archive(client, build, tmp_path / build.name)


def test_extract_tar_flattens_single_top_level_directory(tmp_path: Path, tar_archive) -> None:
    archive = tmp_path / "build.tar.gz"
    archive.write_bytes(tar_archive)
    destination = tmp_path / "install"

    extract_archive(archive, "tar.gz", destination)

    java = destination / "bin" / "java"
    assert java.is_file()
    assert (destination / "release").is_file()
    if os.name != "nt":
        assert os.access(java, os.X_OK)
    assert not (tmp_path / "install.extract").exists()
    assert directory_size(destination) == len(b"#!/bin/sh\necho java\n") + len(b'JAVA_VERSION="17.0.8"\n')


def _zip_bytes(members: dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as bundle:
        for name, data in members.items():
            bundle.writestr(name, data)
    return buffer.getvalue()


def test_extract_zip_keeps_multiple_top_level_entries(tmp_path: Path) -> None:
    archive = tmp_path / "build.zip"
    archive.write_bytes(_zip_bytes({"bin/javaw.exe": b"MZ", "lib/modules": b"mods"}))
    destination = tmp_path / "install"

    extract_archive(archive, "zip", destination)

    assert (destination / "bin" / "javaw.exe").read_bytes() == b"MZ"
    assert (destination / "lib" / "modules").is_file()


def test_extract_zip_rejects_path_traversal(tmp_path: Path) -> None:
    archive = tmp_path / "evil.zip"
    archive.write_bytes(_zip_bytes({"../escape.txt": b"nope"}))
    destination = tmp_path / "install"

    with pytest.raises(InstallFailed):
        extract_archive(archive, "zip", destination)

    assert not destination.exists()
    assert not (tmp_path / "escape.txt").exists()


def test_extract_corrupt_archive(tmp_path: Path) -> None:
    archive = tmp_path / "broken.tar.gz"
    archive.write_bytes(b"not a tarball")

    with pytest.raises(InstallFailed):
        extract_archive(archive, "tar.gz", tmp_path / "install")

    assert not (tmp_path / "install").exists()
    assert not (tmp_path / "install.extract").exists()


def test_extract_refuses_existing_destination(tmp_path: Path, tar_archive) -> None:
    archive = tmp_path / "build.tar.gz"
    archive.write_bytes(tar_archive)
    (tmp_path / "install").mkdir()

    with pytest.raises(InstallFailed, match="already exists"):
        extract_archive(archive, "tar.gz", tmp_path / "install")


@pytest.mark.asyncio
async def test_download_redirect_loop_fails_cleanly(tmp_path: Path, document_factory, tar_archive) -> None:
    build = AvailableBuild.model_validate(document_factory(archive=tar_archive))

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(302, headers={"Location": str(request.url)})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler), follow_redirects=True) as client:
        with pytest.raises(InstallFailed):
            await download_archive(client, build, tmp_path / build.name)

    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_download_retries_server_error(tmp_path: Path, document_factory, tar_archive) -> None:
    build = AvailableBuild.model_validate(document_factory(archive=tar_archive))
    responses = [httpx.Response(502, text="bad gateway"), httpx.Response(200, content=tar_archive)]

    async with httpx.AsyncClient(transport=httpx.MockTransport(lambda request: responses.pop(0))) as client:
        target = await download_archive(client, build, tmp_path / build.name)

    assert target.read_bytes() == tar_archive
    assert responses == []

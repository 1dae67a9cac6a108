"""Shared fixtures for launcher_runtimes tests."""

from __future__ import annotations

import asyncio
import hashlib
import io
import tarfile
from pathlib import Path
from typing import Callable

import httpx
import pytest

from launcher_runtimes.java.errors import InvalidIndexRange, NotFound
from launcher_runtimes.java.models import Environment, RuntimeBuildRecord

LINUX_X64 = Environment(os="linux", arch="x64")
SERVER_URL = "https://meta.example.test"


class FakeRuntimeStore:
    """In-memory store that records every call made against it.

    ``failures`` maps ``(operation, target)`` to the exception to raise.
    When ``gate`` is set, mutating calls wait for it before doing anything.
    """

    def __init__(self, records: list[RuntimeBuildRecord] | None = None) -> None:
        self.records: list[RuntimeBuildRecord] = list(records or [])
        self.calls: list[tuple[str, object]] = []
        self.failures: dict[tuple[str, object], BaseException] = {}
        self.gate: asyncio.Event | None = None

    async def _pause(self) -> None:
        if self.gate is not None:
            await self.gate.wait()
        else:
            await asyncio.sleep(0)

    def _maybe_fail(self, operation: str, target: object) -> None:
        error = self.failures.get((operation, target))
        if error is not None:
            raise error

    def _index_of(self, build_id: str) -> int | None:
        for index, record in enumerate(self.records):
            if record.id == build_id:
                return index
        return None

    async def count(self) -> int:
        self.calls.append(("count", None))
        await asyncio.sleep(0)
        self._maybe_fail("count", None)
        return len(self.records)

    async def get(self, index: int) -> RuntimeBuildRecord:
        self.calls.append(("get", index))
        await asyncio.sleep(0)
        if not 0 <= index < len(self.records):
            raise InvalidIndexRange(index, len(self.records))
        return self.records[index]

    async def install(self, major: int) -> None:
        self.calls.append(("install", major))
        await self._pause()
        self._maybe_fail("install", major)
        if not any(record.major == major for record in self.records):
            self.records.append(RuntimeBuildRecord(f"java-{major}", "Zulu", f"{major}.0.1", major))

    async def update(self, build_id: str) -> None:
        self.calls.append(("update", build_id))
        await self._pause()
        self._maybe_fail("update", build_id)
        index = self._index_of(build_id)
        if index is None:
            raise NotFound(build_id)
        record = self.records[index]
        self.records[index] = RuntimeBuildRecord(record.id, record.provider, record.version + "-updated", record.major)

    async def uninstall(self, build_id: str) -> None:
        self.calls.append(("uninstall", build_id))
        await self._pause()
        self._maybe_fail("uninstall", build_id)
        index = self._index_of(build_id)
        if index is None:
            raise NotFound(build_id)
        del self.records[index]

    def operations(self, name: str) -> list[object]:
        return [target for operation, target in self.calls if operation == name]


def make_record(build_id: str, major: int = 17, provider: str = "Zulu", version: str | None = None) -> RuntimeBuildRecord:
    return RuntimeBuildRecord(build_id, provider, version or f"{major}.0.1", major)


@pytest.fixture
def fake_store() -> FakeRuntimeStore:
    return FakeRuntimeStore()


@pytest.fixture
def record_factory() -> Callable[..., RuntimeBuildRecord]:
    return make_record


def build_tar_gz(top_level: str = "zulu-jre") -> bytes:
    """A tiny tar.gz shaped like a real Java build (one top-level directory)."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as archive:
        payloads = {
            f"{top_level}/bin/java": (b"#!/bin/sh\necho java\n", 0o755),
            f"{top_level}/release": (b'JAVA_VERSION="17.0.8"\n', 0o644),
        }
        for name, (data, mode) in payloads.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = mode
            archive.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


def build_document(
    *,
    major: int = 17,
    version: str = "17.0.8",
    provider: str = "Zulu",
    archive: bytes,
    name: str = "zulu17-jre-linux_x64.tar.gz",
    checksum: str | None = None,
) -> dict:
    return {
        "provider": provider,
        "version": version,
        "major": major,
        "edition": "jre",
        "environment": {"os": "linux", "arch": "x64"},
        "executable": "bin/java",
        "download": f"{SERVER_URL}/downloads/{name}",
        "name": name,
        "size": len(archive),
        "checksum": checksum or hashlib.sha256(archive).hexdigest(),
    }


class MetadataServer:
    """Handler for ``httpx.MockTransport`` serving build documents and archives."""

    def __init__(self) -> None:
        self.documents: dict[str, dict] = {}
        self.files: dict[str, bytes] = {}
        self.requests: list[str] = []
        self.error: Exception | None = None

    def publish(self, document: dict, archive: bytes) -> None:
        major = document["major"]
        self.documents[f"/java/{major}/linux-x64.json"] = document
        self.files[f"/downloads/{document['name']}"] = archive

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request.url.path)
        if self.error is not None:
            raise self.error
        path = request.url.path
        if path in self.documents:
            return httpx.Response(200, json=self.documents[path])
        if path in self.files:
            return httpx.Response(200, content=self.files[path])
        return httpx.Response(404, text="not found")

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture(autouse=True)
def no_retry_delay(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("launcher_runtimes.java.net.RETRY_BASE_DELAY", 0.0)


@pytest.fixture
def metadata_server() -> MetadataServer:
    return MetadataServer()


@pytest.fixture
def launcher_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    home = tmp_path / "launcher"
    monkeypatch.setenv("LAUNCHER_HOME", str(home))
    return home


@pytest.fixture
def environment() -> Environment:
    return LINUX_X64


@pytest.fixture
def server_url() -> str:
    return SERVER_URL


@pytest.fixture
def tar_archive() -> bytes:
    return build_tar_gz()


@pytest.fixture
def document_factory() -> Callable[..., dict]:
    return build_document

"""Data models for installed and installable Java builds.

``RuntimeBuildRecord`` is the plain value the orchestrator caches and hands to
callers. ``InstalledRuntime`` is the ``Java.toml`` document stored next to an
extracted build, and ``AvailableBuild`` is the document the metadata server
publishes for one major version and platform.
"""

from __future__ import annotations

import platform
import re
from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, Field, field_validator

_CHECKSUM_RE = re.compile(r"^[0-9a-f]{64}$")


@dataclass(frozen=True, slots=True)
class RuntimeBuildRecord:
    """One installed Java build as seen in a store snapshot."""

    id: str
    provider: str
    version: str
    major: int

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "provider": self.provider,
            "version": self.version,
            "major": self.major,
        }


class JavaEdition(str, Enum):
    """JREs are preferred; they are roughly a third of the size of a JDK."""

    JRE = "jre"
    JDK = "jdk"


class Environment(BaseModel):
    """Operating system and architecture a build targets."""

    os: str
    arch: str

    @property
    def slug(self) -> str:
        return f"{self.os}-{self.arch}"


_OS_ALIASES = {
    "darwin": "macos",
    "linux": "linux",
    "windows": "windows",
}

_ARCH_ALIASES = {
    "x86_64": "x64",
    "amd64": "x64",
    "arm64": "aarch64",
    "aarch64": "aarch64",
}


def detect_environment() -> Environment:
    """Return the environment of the running interpreter.

    Raises:
        ValueError: If the platform has no published Java builds.
    """
    system = platform.system().lower()
    machine = platform.machine().lower()
    os_name = _OS_ALIASES.get(system)
    arch = _ARCH_ALIASES.get(machine)
    if os_name is None or arch is None:
        raise ValueError(f"Unsupported platform for Java builds: {system}/{machine}")
    return Environment(os=os_name, arch=arch)


class InstalledRuntime(BaseModel):
    """Metadata stored inside an extracted installation (``Java.toml``)."""

    provider: str = Field(..., min_length=1)
    version: str = Field(..., min_length=1)
    major: int = Field(..., ge=0)
    edition: JavaEdition = JavaEdition.JRE
    size: int = Field(default=0, ge=0, description="Size of the installation on disk in bytes")
    executable: str = Field(..., min_length=1, description="Path of java/javaw relative to the install directory")

    def to_record(self, build_id: str) -> RuntimeBuildRecord:
        return RuntimeBuildRecord(
            id=build_id,
            provider=self.provider,
            version=self.version,
            major=self.major,
        )


class AvailableBuild(BaseModel):
    """A single downloadable build of Java."""

    provider: str = Field(..., min_length=1)
    version: str = Field(..., min_length=1)
    major: int = Field(..., ge=0)
    edition: JavaEdition = JavaEdition.JRE
    environment: Environment
    executable: str = Field(..., min_length=1)
    download: str = Field(..., min_length=1, description="URL of the archive file")
    name: str = Field(..., min_length=1, description="File name of the archive")
    size: int = Field(..., ge=0, description="Size of the archive in bytes")
    checksum: str = Field(..., description="Hex SHA-256 of the archive")

    @field_validator("checksum")
    @classmethod
    def _validate_checksum(cls, value: str) -> str:
        value = value.strip().lower()
        if not _CHECKSUM_RE.match(value):
            raise ValueError("checksum must be a 64 character hex SHA-256 digest")
        return value

    def to_installed(self, size: int) -> InstalledRuntime:
        return InstalledRuntime(
            provider=self.provider,
            version=self.version,
            major=self.major,
            edition=self.edition,
            size=size,
            executable=self.executable,
        )


def version_key(version: str) -> tuple[int, ...]:
    """Numeric sort key for Java version strings like ``17.0.8+7`` or ``1.8.0_382``."""
    return tuple(int(part) for part in re.findall(r"\d+", version))

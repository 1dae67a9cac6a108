"""Error taxonomy for managed Java runtime operations."""

from __future__ import annotations


class RuntimeStoreError(RuntimeError):
    """Base exception for runtime store and orchestration errors."""


class StoreUnavailable(RuntimeStoreError):
    """Raised when the backend store (or its remote source) cannot be reached."""


class NotFound(RuntimeStoreError):
    """Raised when a build id no longer exists in the store."""

    def __init__(self, target: str, message: str | None = None) -> None:
        self.target = target
        super().__init__(message or f"Java build not found: {target}")


class InstallFailed(RuntimeStoreError):
    """Raised when installing a build for a major version fails."""


class UpdateFailed(RuntimeStoreError):
    """Raised when updating an installed build fails."""


class ChecksumMismatch(InstallFailed):
    """Raised when a downloaded archive does not match its SHA-256 checksum."""


class UnsupportedArchive(InstallFailed):
    """Raised when an archive name has no known extraction format."""


class MetadataError(RuntimeStoreError):
    """Raised when the metadata server returns an unusable response."""


class Busy(RuntimeStoreError):
    """Raised when a batch is requested while another batch is running."""

    def __init__(self, requested: str, running: str | None = None) -> None:
        self.requested = requested
        self.running = running
        detail = f" ({running} in progress)" if running else ""
        super().__init__(f"Cannot start {requested}: another Java batch is running{detail}")


class InvalidIndexRange(RuntimeStoreError, IndexError):
    """Raised when an enumeration range over the store would be invalid."""

    def __init__(self, index: int, count: int) -> None:
        self.index = index
        self.count = count
        super().__init__(f"Index {index} outside of store range [0, {count})")

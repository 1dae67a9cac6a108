"""Managed Java runtime installations.

Core Components:
    - InstallationOrchestrator: busy/idle guarded batches against a store
    - SelectionState: ids the user wants to act upon
    - RequirementPolicy: required majors and "needed for" labels
    - LocalRuntimeStore: filesystem store fed by the metadata server

Usage:
    from launcher_runtimes.java import InstallationOrchestrator, LocalRuntimeStore, MetadataClient

    store = LocalRuntimeStore(root, MetadataClient(server_url))
    result = await InstallationOrchestrator(store).ensure_required()
"""

from launcher_runtimes.java.errors import (
    Busy,
    ChecksumMismatch,
    InstallFailed,
    InvalidIndexRange,
    MetadataError,
    NotFound,
    RuntimeStoreError,
    StoreUnavailable,
    UnsupportedArchive,
    UpdateFailed,
)
from launcher_runtimes.java.metadata import MetadataClient
from launcher_runtimes.java.models import AvailableBuild, Environment, InstalledRuntime, RuntimeBuildRecord
from launcher_runtimes.java.orchestrator import (
    BatchKind,
    BatchResult,
    InstallationOrchestrator,
    ItemOutcome,
    OutcomeStatus,
    RunState,
)
from launcher_runtimes.java.policy import DEFAULT_POLICY, RequirementPolicy, needed_for, required_majors
from launcher_runtimes.java.selection import SelectionState
from launcher_runtimes.java.store import LocalRuntimeStore, RuntimeStoreClient

__all__ = [
    # Orchestration
    "InstallationOrchestrator",
    "BatchKind",
    "BatchResult",
    "ItemOutcome",
    "OutcomeStatus",
    "RunState",
    "SelectionState",
    # Policy
    "DEFAULT_POLICY",
    "RequirementPolicy",
    "needed_for",
    "required_majors",
    # Store
    "RuntimeStoreClient",
    "LocalRuntimeStore",
    "MetadataClient",
    # Models
    "AvailableBuild",
    "Environment",
    "InstalledRuntime",
    "RuntimeBuildRecord",
    # Exceptions
    "RuntimeStoreError",
    "StoreUnavailable",
    "NotFound",
    "InstallFailed",
    "UpdateFailed",
    "ChecksumMismatch",
    "UnsupportedArchive",
    "MetadataError",
    "Busy",
    "InvalidIndexRange",
]

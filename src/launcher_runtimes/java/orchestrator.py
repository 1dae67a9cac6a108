"""Installation orchestrator for managed Java builds.

Turns user intent (install the required majors, update or uninstall the
selected builds) into sequential calls against a ``RuntimeStoreClient``:

    - Busy/idle guard: exactly one batch runs at a time; others get ``Busy``
    - Sequential items: store calls are awaited one after another, never gathered
    - Best-effort batches: per-item failures are collected, not raised
    - Reconciliation: every batch ends with one refresh of the cached snapshot

Usage:
    orchestrator = InstallationOrchestrator(store)
    await orchestrator.refresh()
    orchestrator.selection.select(orchestrator.snapshot[0].id)
    result = await orchestrator.update_selected()
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum

from launcher_runtimes.java.errors import (
    Busy,
    InstallFailed,
    InvalidIndexRange,
    NotFound,
    RuntimeStoreError,
    UpdateFailed,
)
from launcher_runtimes.java.models import RuntimeBuildRecord
from launcher_runtimes.java.policy import DEFAULT_POLICY, RequirementPolicy
from launcher_runtimes.java.selection import SelectionState
from launcher_runtimes.java.store import RuntimeStoreClient

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    IDLE = "idle"
    BUSY = "busy"


class BatchKind(str, Enum):
    REFRESH = "refresh"
    ENSURE_REQUIRED = "ensure_required"
    UPDATE = "update"
    UNINSTALL = "uninstall"


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class ItemOutcome:
    """Result of one store call within a batch."""

    target: str
    status: OutcomeStatus
    error: RuntimeStoreError | None = None
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS


@dataclass
class BatchResult:
    """Aggregate outcome of a batch, keyed by target in attempt order."""

    kind: BatchKind
    outcomes: dict[str, ItemOutcome] = field(default_factory=dict)
    snapshot: tuple[RuntimeBuildRecord, ...] = ()
    refresh_error: RuntimeStoreError | None = None

    def record(self, outcome: ItemOutcome) -> None:
        self.outcomes[outcome.target] = outcome

    @property
    def succeeded(self) -> list[str]:
        return [target for target, outcome in self.outcomes.items() if outcome.ok]

    @property
    def failed(self) -> dict[str, RuntimeStoreError | None]:
        return {target: outcome.error for target, outcome in self.outcomes.items() if not outcome.ok}

    @property
    def ok(self) -> bool:
        return self.refresh_error is None and not self.failed


class InstallationOrchestrator:
    """Serializes install/update/uninstall batches and reconciles the snapshot."""

    def __init__(
        self,
        store: RuntimeStoreClient,
        *,
        policy: RequirementPolicy = DEFAULT_POLICY,
        selection: SelectionState | None = None,
    ) -> None:
        self._store = store
        self.policy = policy
        self.selection = selection if selection is not None else SelectionState()
        self._snapshot: tuple[RuntimeBuildRecord, ...] = ()
        self._state = RunState.IDLE
        self._running: BatchKind | None = None

    @property
    def snapshot(self) -> tuple[RuntimeBuildRecord, ...]:
        """Records from the last completed refresh, in store order."""
        return self._snapshot

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def is_busy(self) -> bool:
        return self._state is RunState.BUSY

    def needed_for(self, record: RuntimeBuildRecord) -> str:
        return self.policy.needed_for(record.major)

    # ── Batches ───────────────────────────────────────────────────

    async def refresh(self) -> tuple[RuntimeBuildRecord, ...]:
        """Replace the cached snapshot with the store's current builds.

        Raises:
            Busy: If another batch is running.
            RuntimeStoreError: If the store cannot be enumerated; the previous
                snapshot is kept.
        """
        self._begin(BatchKind.REFRESH)
        try:
            return await self._refresh()
        finally:
            self._end()

    async def ensure_required(self) -> BatchResult:
        """Install every required major, in policy order, then refresh once."""
        self._begin(BatchKind.ENSURE_REQUIRED)
        try:
            result = BatchResult(BatchKind.ENSURE_REQUIRED)
            for major in self.policy.required_majors():
                outcome = await self._attempt(str(major), lambda major=major: self._store.install(major), InstallFailed)
                result.record(outcome)
            await self._reconcile(result)
            return result
        finally:
            self._end()

    async def update_selected(self, ids: Iterable[str] | None = None) -> BatchResult:
        """Update ``ids`` (default: the current selection) in ascending id order."""
        self._begin(BatchKind.UPDATE)
        try:
            targets = self._capture(ids)
            result = BatchResult(BatchKind.UPDATE)
            for build_id in targets:
                outcome = await self._attempt(build_id, lambda build_id=build_id: self._store.update(build_id), UpdateFailed)
                result.record(outcome)
            await self._reconcile(result)
            return result
        finally:
            self._end()

    async def uninstall_selected(self, ids: Iterable[str] | None = None) -> BatchResult:
        """Uninstall ``ids`` (default: the current selection) in ascending id order.

        An id that is already gone counts as removed.
        """
        self._begin(BatchKind.UNINSTALL)
        try:
            targets = self._capture(ids)
            result = BatchResult(BatchKind.UNINSTALL)
            for build_id in targets:
                outcome = await self._attempt(
                    build_id,
                    lambda build_id=build_id: self._store.uninstall(build_id),
                    RuntimeStoreError,
                    absent_ok=True,
                )
                result.record(outcome)

            for build_id in result.succeeded:
                self.selection.deselect(build_id)
            await self._reconcile(result)
            return result
        finally:
            self._end()

    # ── Internal ──────────────────────────────────────────────────

    def _begin(self, kind: BatchKind) -> None:
        # No await between the check and the assignment.
        if self._state is RunState.BUSY:
            raise Busy(kind.value, self._running.value if self._running else None)
        self._state = RunState.BUSY
        self._running = kind
        logger.debug("Java batch %s started", kind.value)

    def _end(self) -> None:
        logger.debug("Java batch %s finished", self._running.value if self._running else "?")
        self._running = None
        self._state = RunState.IDLE

    def _capture(self, ids: Iterable[str] | None) -> tuple[str, ...]:
        source = self.selection.all() if ids is None else ids
        return tuple(sorted(set(source)))

    async def _attempt(
        self,
        target: str,
        call: Callable[[], Awaitable[None]],
        failure: type[RuntimeStoreError],
        *,
        absent_ok: bool = False,
    ) -> ItemOutcome:
        try:
            await call()
        except NotFound as exc:
            if absent_ok:
                logger.debug("Java build %s already absent", target)
                return ItemOutcome(target, OutcomeStatus.SUCCESS, detail="already absent")
            logger.warning("Java %s failed for %s: %s", self._running_name, target, exc)
            return ItemOutcome(target, OutcomeStatus.FAILED, error=exc)
        except RuntimeStoreError as exc:
            logger.warning("Java %s failed for %s: %s", self._running_name, target, exc)
            return ItemOutcome(target, OutcomeStatus.FAILED, error=exc)
        except Exception as exc:
            wrapped = failure(f"{type(exc).__name__}: {exc}")
            wrapped.__cause__ = exc
            logger.warning("Java %s failed for %s: %s", self._running_name, target, wrapped)
            return ItemOutcome(target, OutcomeStatus.FAILED, error=wrapped)
        return ItemOutcome(target, OutcomeStatus.SUCCESS)

    @property
    def _running_name(self) -> str:
        return self._running.value if self._running else "batch"

    async def _reconcile(self, result: BatchResult) -> None:
        try:
            await self._refresh()
        except RuntimeStoreError as exc:
            logger.warning("Refreshing Java builds after %s failed: %s", result.kind.value, exc)
            result.refresh_error = exc
        except Exception as exc:
            wrapped = RuntimeStoreError(f"{type(exc).__name__}: {exc}")
            wrapped.__cause__ = exc
            logger.warning("Refreshing Java builds after %s failed: %s", result.kind.value, wrapped)
            result.refresh_error = wrapped
        result.snapshot = self._snapshot
        logger.info(
            "Java %s finished: %d succeeded, %d failed",
            result.kind.value,
            len(result.succeeded),
            len(result.failed),
        )

    async def _refresh(self) -> tuple[RuntimeBuildRecord, ...]:
        count = await self._store.count()
        records = tuple(await self._read_builds(count))
        self._snapshot = records
        dropped = self.selection.retain(record.id for record in records)
        if dropped:
            logger.debug("Dropped vanished Java builds from selection: %s", sorted(dropped))
        return records

    async def _read_builds(self, count: int) -> list[RuntimeBuildRecord]:
        if count < 0:
            raise InvalidIndexRange(count, count)
        if count == 0:
            return []
        records = []
        for index in range(count):
            records.append(await self._store.get(index))
        return records

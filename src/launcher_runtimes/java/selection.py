"""Set of installed build ids the user intends to act upon."""

from __future__ import annotations

from collections.abc import Iterable, Iterator


class SelectionState:
    """Caller-owned selection of build ids.

    The orchestrator prunes ids that disappear from the store after every
    refresh; this class itself enforces nothing about the snapshot.
    """

    def __init__(self, ids: Iterable[str] = ()) -> None:
        self._ids: set[str] = set(ids)

    def select(self, build_id: str) -> None:
        self._ids.add(build_id)

    def deselect(self, build_id: str) -> None:
        self._ids.discard(build_id)

    def clear(self) -> None:
        self._ids.clear()

    def contains(self, build_id: str) -> bool:
        return build_id in self._ids

    def all(self) -> frozenset[str]:
        return frozenset(self._ids)

    def retain(self, ids: Iterable[str]) -> set[str]:
        """Keep only ids present in ``ids`` and return the ones dropped."""
        present = set(ids)
        dropped = self._ids - present
        self._ids &= present
        return dropped

    def __contains__(self, build_id: object) -> bool:
        return build_id in self._ids

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._ids))

    def __len__(self) -> int:
        return len(self._ids)

    def __repr__(self) -> str:
        return f"SelectionState({sorted(self._ids)!r})"

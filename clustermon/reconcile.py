"""Keyed enter/update/exit partition between two entity snapshots."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Hashable, Iterable, Optional, TypeVar

T = TypeVar("T")

KeyFunc = Callable[[Any], Hashable]


@dataclass
class Reconciliation(Generic[T]):
    entered: list[T] = field(default_factory=list)
    updated: list[tuple[T, T]] = field(default_factory=list)
    exited: list[T] = field(default_factory=list)

    @property
    def unchanged(self) -> bool:
        return not self.entered and not self.exited

    def summary(self, key: Optional[KeyFunc] = None) -> dict:
        """Counts, or key lists when ``key`` is given, for JSON responses."""
        if key is None:
            return {
                "entered": len(self.entered),
                "updated": len(self.updated),
                "exited": len(self.exited),
            }
        return {
            "entered": [key(item) for item in self.entered],
            "updated": [key(new) for _old, new in self.updated],
            "exited": [key(item) for item in self.exited],
        }


def reconcile(
    previous: Iterable[T],
    current: Iterable[T],
    key: Optional[KeyFunc] = None,
) -> Reconciliation[T]:
    """Partition ``current`` against ``previous``.

    With ``key`` the match is by key equality only: an entity whose key is in
    both snapshots is always *updated*, whatever its attributes.  Without a
    key, entities are matched by position.  When a key repeats, only its first
    occurrence is matched; later copies are entered (in ``current``) or exited
    (in ``previous``).
    """
    old = list(previous)
    new = list(current)

    if key is None:
        shared = min(len(old), len(new))
        return Reconciliation(
            entered=new[shared:],
            updated=list(zip(old[:shared], new[:shared])),
            exited=old[shared:],
        )

    old_keys = [key(item) for item in old]
    first_seen: dict[Hashable, int] = {}
    for index, item_key in enumerate(old_keys):
        first_seen.setdefault(item_key, index)

    result: Reconciliation[T] = Reconciliation()
    matched: set[int] = set()
    for item in new:
        index = first_seen.get(key(item))
        if index is None or index in matched:
            result.entered.append(item)
        else:
            matched.add(index)
            result.updated.append((old[index], item))

    result.exited = [item for index, item in enumerate(old) if index not in matched]
    return result


class KeyedReconciler(Generic[T]):
    """Remembers the previous snapshot and diffs each new one against it."""

    def __init__(self, key: Optional[KeyFunc] = None) -> None:
        self.key = key
        self._previous: list[T] = []

    @property
    def previous(self) -> list[T]:
        return list(self._previous)

    def step(self, current: Iterable[T]) -> Reconciliation[T]:
        items = list(current)
        result = reconcile(self._previous, items, self.key)
        self._previous = items
        return result


__all__ = ["KeyFunc", "KeyedReconciler", "Reconciliation", "reconcile"]

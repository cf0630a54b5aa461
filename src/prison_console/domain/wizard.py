"""Draft state for the multi-step prisoner wizard."""

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import IntEnum, StrEnum
from typing import Generic, TypeVar

T = TypeVar("T")


class WizardStep(IntEnum):
    BASIC_DETAILS = 1
    PHOTOS = 2
    BODY_MARKS = 3
    FAMILY_MEMBERS = 4
    COMPLETE = 5


class WizardMode(StrEnum):
    CREATE = "create"
    EDIT = "edit"


class Provenance(StrEnum):
    EXISTING = "existing-unmodified"
    EXISTING_MODIFIED = "existing-modified"
    NEW = "new"


@dataclass(frozen=True)
class Existing(Generic[T]):
    """Persisted on the backend and untouched locally."""

    remote_id: int
    payload: T
    provenance: Provenance = field(default=Provenance.EXISTING, init=False)


@dataclass(frozen=True)
class ExistingModified(Generic[T]):
    """Persisted on the backend with local edits still to send."""

    remote_id: int
    payload: T
    provenance: Provenance = field(default=Provenance.EXISTING_MODIFIED, init=False)


@dataclass(frozen=True)
class New(Generic[T]):
    """Only known locally; created on the backend when its step is submitted."""

    payload: T
    provenance: Provenance = field(default=Provenance.NEW, init=False)


DraftItem = Existing[T] | ExistingModified[T] | New[T]


@dataclass
class DraftCollection(Generic[T]):
    """Dependent items keyed by a stable local index.

    Keys are never reused, so a key handed out to a caller keeps pointing at
    the same item (or at nothing) for the lifetime of the draft.
    """

    _items: dict[int, DraftItem[T]] = field(default_factory=dict)
    _next_key: int = 1

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[tuple[int, DraftItem[T]]]:
        return iter(list(self._items.items()))

    def get(self, key: int) -> DraftItem[T] | None:
        return self._items.get(key)

    def add(self, payload: T) -> int:
        """Queue a new item and return its key."""
        return self._insert(New(payload))

    def seed(self, remote_id: int, payload: T) -> int:
        """Record an item already persisted on the backend."""
        return self._insert(Existing(remote_id=remote_id, payload=payload))

    def edit(self, key: int, payload: T) -> DraftItem[T]:
        """Replace an item's payload, flagging persisted items as modified."""
        item = self._require(key)
        if isinstance(item, New):
            updated: DraftItem[T] = New(payload)
        else:
            updated = ExistingModified(remote_id=item.remote_id, payload=payload)
        self._items[key] = updated
        return updated

    def mark_persisted(self, key: int, remote_id: int) -> None:
        """Record that the backend now holds this item as-is."""
        item = self._require(key)
        self._items[key] = Existing(remote_id=remote_id, payload=item.payload)

    def discard(self, key: int) -> DraftItem[T]:
        return self._items.pop(key)

    def pending_updates(self) -> list[tuple[int, ExistingModified[T]]]:
        return [
            (key, item)
            for key, item in self._items.items()
            if isinstance(item, ExistingModified)
        ]

    def pending_additions(self) -> list[tuple[int, New[T]]]:
        return [
            (key, item) for key, item in self._items.items() if isinstance(item, New)
        ]

    def payloads(self) -> list[T]:
        return [item.payload for item in self._items.values()]

    def _insert(self, item: DraftItem[T]) -> int:
        key = self._next_key
        self._next_key += 1
        self._items[key] = item
        return key

    def _require(self, key: int) -> DraftItem[T]:
        item = self._items.get(key)
        if item is None:
            raise KeyError(f"No draft item with key {key}")
        return item

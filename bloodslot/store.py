from __future__ import annotations

import copy
import random
import time
from typing import Any, Protocol

from bloodslot.domain import PersistenceError, StoreError

# Realtime-database push ids: 8 chars of millisecond timestamp followed by 12
# random chars, all from a 64-char alphabet that sorts lexicographically.
PUSH_CHARS = "-0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ_abcdefghijklmnopqrstuvwxyz"


class PushIdGenerator:
    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()
        self._last_ms = -1
        self._last_random: list[int] = []

    def __call__(self, now_ms: int | None = None) -> str:
        if now_ms is None:
            now_ms = int(time.time() * 1000)

        if now_ms == self._last_ms:
            # Same millisecond: bump the random tail so ids stay ordered.
            i = len(self._last_random) - 1
            while i >= 0 and self._last_random[i] == 63:
                self._last_random[i] = 0
                i -= 1
            if i >= 0:
                self._last_random[i] += 1
        else:
            self._last_random = [self._rng.randrange(64) for _ in range(12)]
        self._last_ms = now_ms

        stamp = []
        remaining = now_ms
        for _ in range(8):
            stamp.append(PUSH_CHARS[remaining % 64])
            remaining //= 64
        return "".join(reversed(stamp)) + "".join(PUSH_CHARS[n] for n in self._last_random)


generate_push_id = PushIdGenerator()


def push_id_timestamp_ms(push_id: str) -> int | None:
    if len(push_id) != 20:
        return None
    value = 0
    for ch in push_id[:8]:
        index = PUSH_CHARS.find(ch)
        if index < 0:
            return None
        value = value * 64 + index
    return value


class DocumentStore(Protocol):
    async def read_many(self, path: str) -> list[dict[str, Any]]:
        """All child records under ``path``, each with its key under ``"id"``."""
        ...

    async def append_record(self, collection_path: str, record: dict[str, Any]) -> str:
        """Store ``record`` under a fresh child id of ``collection_path`` and return the id."""
        ...

    def current_user_id(self) -> str | None: ...


def split_path(path: str) -> list[str]:
    parts = [p for p in path.strip("/").split("/") if p]
    if not parts:
        raise StoreError(f"Invalid store path: {path!r}")
    return parts


def children_as_records(node: Any) -> list[dict[str, Any]]:
    """Flatten a collection node ({id: record} or a sparse list) into records."""
    if node is None:
        return []
    if isinstance(node, list):
        items = [(str(i), v) for i, v in enumerate(node) if v is not None]
    elif isinstance(node, dict):
        items = list(node.items())
    else:
        raise StoreError(f"Expected a collection, got {type(node).__name__}")

    records: list[dict[str, Any]] = []
    for key, value in items:
        if not isinstance(value, dict):
            continue
        records.append({**value, "id": str(key)})
    return records


class InMemoryStore:
    def __init__(self, *, user_id: str | None = None, data: dict[str, Any] | None = None) -> None:
        self.user_id = user_id
        self.data: dict[str, Any] = data if data is not None else {}

    def _node(self, path: str, *, create: bool) -> Any:
        node: Any = self.data
        for part in split_path(path):
            if not isinstance(node, dict):
                raise StoreError(f"Path {path!r} crosses a non-collection value")
            if part not in node:
                if not create:
                    return None
                node[part] = {}
            node = node[part]
        return node

    async def read_many(self, path: str) -> list[dict[str, Any]]:
        return copy.deepcopy(children_as_records(self._node(path, create=False)))

    async def append_record(self, collection_path: str, record: dict[str, Any]) -> str:
        collection = self._node(collection_path, create=True)
        if not isinstance(collection, dict):
            raise PersistenceError(f"Cannot append to {collection_path!r}: not a collection")
        record_id = generate_push_id()
        collection[record_id] = copy.deepcopy(record)
        return record_id

    def current_user_id(self) -> str | None:
        return self.user_id

from __future__ import annotations

import json
import logging
import os
import tempfile
from typing import Any

from bloodslot.domain import PersistenceError, StoreError
from bloodslot.store import children_as_records, generate_push_id, split_path

logger = logging.getLogger(__name__)


class JsonFileStore:
    """Document tree kept in a single JSON file. Meant for local development."""

    def __init__(self, path: str, *, user_id: str | None = None) -> None:
        self.path = path
        self.user_id = user_id

    def _load(self) -> dict[str, Any]:
        if not os.path.exists(self.path):
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except json.JSONDecodeError as e:
            raise StoreError(f"Store file {self.path} is not valid JSON: {e}") from e

        if not isinstance(raw, dict):
            raise StoreError(f"Store file {self.path} must contain a JSON object")
        return raw

    def _save(self, data: dict[str, Any]) -> None:
        folder = os.path.dirname(os.path.abspath(self.path))
        if folder and not os.path.exists(folder):
            os.makedirs(folder, exist_ok=True)

        # Atomic write
        with tempfile.NamedTemporaryFile("w", delete=False, encoding="utf-8", dir=folder, suffix=".tmp") as tf:
            json.dump(data, tf, ensure_ascii=False, indent=2)
            tmp_name = tf.name

        os.replace(tmp_name, self.path)

    async def read_many(self, path: str) -> list[dict[str, Any]]:
        node: Any = self._load()
        for part in split_path(path):
            if not isinstance(node, dict):
                return []
            node = node.get(part)
        return children_as_records(node)

    async def append_record(self, collection_path: str, record: dict[str, Any]) -> str:
        try:
            data = self._load()
        except StoreError as e:
            raise PersistenceError(str(e)) from e

        node = data
        for part in split_path(collection_path):
            child = node.setdefault(part, {})
            if not isinstance(child, dict):
                raise PersistenceError(f"Cannot append to {collection_path!r}: not a collection")
            node = child

        record_id = generate_push_id()
        node[record_id] = record

        try:
            self._save(data)
        except OSError as e:
            raise PersistenceError(f"Failed to write {self.path}: {e}") from e

        logger.info("Appended record %s to %s in %s", record_id, collection_path, self.path)
        return record_id

    def current_user_id(self) -> str | None:
        return self.user_id

"""Temporary stores that carry redirect state across a navigation.

A redirect tears the process down; whatever the resumed flow needs must be
written here before navigating away. Keys live in `TemporaryCacheKeys`.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class TemporaryCacheKeys(str, Enum):
    ORIGIN_URI = "origin-uri"
    INTERACTION_STATUS = "interaction-status-flag"
    RETURNED_HASH = "returned-hash"
    REQUEST_STATE = "request-state"
    CODE_VERIFIER = "code-verifier"
    NONCE = "nonce"
    REQUEST_SCOPES = "request-scopes"


class InteractionStatus(str, Enum):
    NONE = "none"
    IN_PROGRESS = "interaction_in_progress"


class TemporaryStore(Protocol):
    """Key/value store scoped to one tab or session."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


def _key(key: str | TemporaryCacheKeys) -> str:
    return key.value if isinstance(key, TemporaryCacheKeys) else key


class MemoryStore:
    """Store that lives only as long as the process."""

    def __init__(self, namespace: str = "authflow"):
        self.namespace = namespace
        self._items: dict[str, str] = {}

    def get_item(self, key: str | TemporaryCacheKeys) -> str | None:
        return self._items.get(f"{self.namespace}.{_key(key)}")

    def set_item(self, key: str | TemporaryCacheKeys, value: str) -> None:
        self._items[f"{self.namespace}.{_key(key)}"] = value

    def remove_item(self, key: str | TemporaryCacheKeys) -> None:
        self._items.pop(f"{self.namespace}.{_key(key)}", None)


class JsonFileStore:
    """Store backed by a JSON file, so state survives a process restart.

    Every write replaces the file atomically: content goes to a temporary
    file in the same directory, which is then renamed into place with
    ``0o600`` permissions.
    """

    def __init__(self, path: str | Path, namespace: str = "authflow"):
        self.path = Path(path)
        self.namespace = namespace

    def get_item(self, key: str | TemporaryCacheKeys) -> str | None:
        return self._load().get(f"{self.namespace}.{_key(key)}")

    def set_item(self, key: str | TemporaryCacheKeys, value: str) -> None:
        items = self._load()
        items[f"{self.namespace}.{_key(key)}"] = value
        self._write(items)

    def remove_item(self, key: str | TemporaryCacheKeys) -> None:
        items = self._load()
        if items.pop(f"{self.namespace}.{_key(key)}", None) is not None:
            self._write(items)

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Discarding unreadable redirect store {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, items: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=self.path.parent,
            prefix=f".{self.path.name}.",
            delete=False,
        ) as handle:
            json.dump(items, handle)
            handle.flush()
            os.fsync(handle.fileno())
            tmp_name = handle.name
        os.chmod(tmp_name, 0o600)
        os.replace(tmp_name, self.path)


@dataclass(frozen=True)
class PendingRedirectState:
    """Snapshot of the redirect state held in a store."""

    origin_uri: str | None = None
    interaction_status: InteractionStatus = InteractionStatus.NONE
    returned_hash: str | None = None

    @classmethod
    def load(cls, store: TemporaryStore) -> PendingRedirectState:
        raw_status = store.get_item(TemporaryCacheKeys.INTERACTION_STATUS)
        status = (
            InteractionStatus.IN_PROGRESS
            if raw_status == InteractionStatus.IN_PROGRESS.value
            else InteractionStatus.NONE
        )
        return cls(
            origin_uri=store.get_item(TemporaryCacheKeys.ORIGIN_URI),
            interaction_status=status,
            returned_hash=store.get_item(TemporaryCacheKeys.RETURNED_HASH),
        )

    @property
    def is_in_progress(self) -> bool:
        return self.interaction_status is InteractionStatus.IN_PROGRESS

    @property
    def has_valid_origin(self) -> bool:
        # Browsers stringify a missing location as "null"
        return bool(self.origin_uri) and self.origin_uri != "null"

    @staticmethod
    def clear(store: TemporaryStore) -> None:
        for key in (
            TemporaryCacheKeys.INTERACTION_STATUS,
            TemporaryCacheKeys.ORIGIN_URI,
            TemporaryCacheKeys.RETURNED_HASH,
        ):
            store.remove_item(key)

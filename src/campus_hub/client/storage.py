"""Persistent client-side key/value storage for the bearer token."""

import json
import os
from pathlib import Path
from typing import Protocol, runtime_checkable

import structlog

logger = structlog.get_logger(__name__)


@runtime_checkable
class TokenStorage(Protocol):
    """String key/value storage surviving client restarts."""

    def get_item(self, key: str) -> str | None:
        """Return the stored value, or None if absent or unreadable."""
        ...

    def set_item(self, key: str, value: str) -> None:
        ...

    def remove_item(self, key: str) -> None:
        ...


class MemoryTokenStorage:
    """Process-local storage, for tests and throwaway scripts."""

    def __init__(self, items: dict[str, str] | None = None) -> None:
        self._items = dict(items or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class FileTokenStorage:
    """Storage backed by a single JSON object on disk.

    Reads never raise: a missing, unreadable or corrupt file behaves like an
    empty store and is logged as a warning.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("token_storage_read_failed", path=str(self._path), error=str(e))
            return {}
        if not isinstance(data, dict):
            logger.warning("token_storage_read_failed", path=str(self._path), error="not a JSON object")
            return {}
        return data

    def _dump(self, items: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(items), encoding="utf-8")
        os.replace(tmp, self._path)

    def get_item(self, key: str) -> str | None:
        value = self._load().get(key)
        return value if isinstance(value, str) else None

    def set_item(self, key: str, value: str) -> None:
        items = self._load()
        items[key] = value
        self._dump(items)

    def remove_item(self, key: str) -> None:
        items = self._load()
        if items.pop(key, None) is not None:
            self._dump(items)


def read_token(storage: TokenStorage, key: str) -> str | None:
    """Read the bearer token, treating any storage failure as "no token"."""
    try:
        return storage.get_item(key) or None
    except Exception as e:
        logger.warning("token_storage_read_failed", key=key, error=str(e))
        return None


def bearer_value(token: str | None) -> str:
    """``Bearer <token>`` or the empty string when there is no token."""
    return f"Bearer {token}" if token else ""

# pmapi/services/token_store.py
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Dict, Optional, Protocol, Union

ACCESS_TOKEN_KEY = "access_token"


class KeyValueStorage(Protocol):
    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    """Process-local storage with the same surface as LocalStorage."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = str(value)

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def clear(self) -> None:
        self._items.clear()


class LocalStorage:
    """
    Key/value strings persisted as one JSON object on disk.

    Every read goes back to the file; nothing is cached, so a token written
    by another process (or another client instance) is seen on the next call.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(os.path.expanduser(str(path)))

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError):
            # unreadable store behaves like an empty one
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, items: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(items, f, indent=2)
        os.replace(tmp, self.path)

    def get_item(self, key: str) -> Optional[str]:
        value = self._load().get(key)
        return None if value is None else str(value)

    def set_item(self, key: str, value: str) -> None:
        items = self._load()
        items[key] = str(value)
        self._save(items)

    def remove_item(self, key: str) -> None:
        items = self._load()
        if key in items:
            del items[key]
            self._save(items)

    def clear(self) -> None:
        self._save({})


def get_token(storage: KeyValueStorage) -> Optional[str]:
    """Current bearer token, or None. Read fresh on every call."""
    token = storage.get_item(ACCESS_TOKEN_KEY)
    return token or None

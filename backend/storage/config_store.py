"""JSON-file backed key-value store for persisted settings."""

import json
import logging
import threading
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class ConfigStore:
    """Persists a flat key-value document to a single JSON file.

    Every mutation is written through to disk. Load and save failures are
    logged and leave the in-memory state in place, so callers always get a
    usable (possibly default) value back.
    """

    def __init__(self, path: Path):
        self._path = Path(path)
        self._data: dict[str, Any] = {}
        self._lock = threading.Lock()
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> None:
        if not self._path.exists():
            return

        try:
            data = json.loads(self._path.read_text())
            if isinstance(data, dict):
                self._data = data
            else:
                logger.error(f"Ignoring malformed config file {self._path}")
        except Exception as e:
            logger.error(f"Failed to load config {self._path}: {e}")

    def _save(self) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(".tmp")
            tmp.write_text(json.dumps(self._data, indent=2))
            tmp.replace(self._path)
        except Exception as e:
            logger.error(f"Failed to save config {self._path}: {e}")

    def get(self, key: str, default: Any = "") -> Any:
        with self._lock:
            return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Store a value; None and empty strings, lists or maps remove the key."""
        with self._lock:
            if value is None or (isinstance(value, (str, list, dict)) and not value):
                if self._data.pop(key, None) is None:
                    return
            else:
                self._data[key] = value
            self._save()

    def delete(self, key: str) -> None:
        self.set(key, None)

    def get_str(self, key: str) -> str:
        value = self.get(key)
        return value if isinstance(value, str) else ""

    def get_list(self, key: str) -> list[str]:
        value = self.get(key, [])
        if not isinstance(value, list):
            return []
        return [v for v in value if isinstance(v, str)]

    def get_map(self, key: str) -> dict[str, str]:
        value = self.get(key, {})
        if not isinstance(value, dict):
            return {}
        return {k: v for k, v in value.items() if isinstance(v, str)}

    def set_map_item(self, key: str, item: str, value: str) -> None:
        """Update one entry of a nested map; an empty value removes it."""
        with self._lock:
            current = self._data.get(key)
            mapping = dict(current) if isinstance(current, dict) else {}
            if value:
                if mapping.get(item) == value:
                    return
                mapping[item] = value
            elif mapping.pop(item, None) is None:
                return
            if mapping:
                self._data[key] = mapping
            else:
                self._data.pop(key, None)
            self._save()

"""Namespaced key/value preferences with optional JSON persistence."""

from __future__ import annotations

import copy
import json
import os
import tempfile
from pathlib import Path
from typing import Any

TARE_NAMESPACE = "tare"


class PreferenceStore:
    """A small namespaced preference store.

    With a path, every change is written to a JSON file; without one,
    the values live in memory only.
    """

    def __init__(self, path: str | os.PathLike | None = None) -> None:
        self._path = Path(path) if path is not None else None
        self._data: dict[str, dict[str, Any]] = {}
        if self._path is not None and self._path.exists():
            with self._path.open(encoding="utf-8") as fh:
                loaded = json.load(fh)
            if not isinstance(loaded, dict) or not all(
                isinstance(v, dict) for v in loaded.values()
            ):
                raise ValueError(f"{self._path} does not hold a preference store")
            self._data = loaded

    def get(self, namespace: str, key: str, default: Any = None) -> Any:
        """Return the stored value, or ``default`` when it is absent."""
        try:
            value = self._data[namespace][key]
        except KeyError:
            return default
        return copy.deepcopy(value)

    def put(self, namespace: str, key: str, value: Any) -> None:
        """Store ``value`` under ``namespace``/``key``."""
        self._data.setdefault(namespace, {})[key] = copy.deepcopy(value)
        self._flush()

    def remove(self, namespace: str, key: str) -> bool:
        """Remove a key; return whether it was present."""
        entries = self._data.get(namespace)
        if entries is None or key not in entries:
            return False
        del entries[key]
        if not entries:
            del self._data[namespace]
        self._flush()
        return True

    def _flush(self) -> None:
        if self._path is None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(self._data, fh, indent=2, sort_keys=True)
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


class StorageManager:
    """Keeps per-sensor tare values in a preference store."""

    def __init__(self, store: PreferenceStore) -> None:
        self._store = store

    @staticmethod
    def _key(sensor_id: int) -> str:
        return f"tare{sensor_id}"

    def save_tare_value(self, sensor_id: int, tare_value: float) -> None:
        self._store.put(TARE_NAMESPACE, self._key(sensor_id), float(tare_value))

    def load_tare_value(self, sensor_id: int) -> float:
        return float(self._store.get(TARE_NAMESPACE, self._key(sensor_id), 0.0))
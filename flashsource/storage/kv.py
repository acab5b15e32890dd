"""Key-value storage backends for small persisted values.

``JsonFileStorage`` keeps all keys in one JSON object on disk and rewrites it
atomically (temp file in the same directory, then ``os.replace``).
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path

from flashsource.domain.exceptions import PersistenceError

__all__ = ["JsonFileStorage", "MemoryStorage"]

logger = logging.getLogger(__name__)


class MemoryStorage:
    """Process-local storage, used by tests and throwaway sessions."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileStorage:
    """Persist string values under keys in a single JSON file.

    Args:
        path: Location of the JSON file; parent directories are created on
            first write.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path).expanduser()
        self._lock = threading.Lock()

    def _read_all(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise PersistenceError(
                f"Could not read storage file {self.path}",
                cause=exc,
                context={"path": str(self.path)},
            ) from exc
        if not isinstance(data, dict):
            raise PersistenceError(
                f"Storage file {self.path} does not contain a JSON object",
                context={"path": str(self.path)},
            )
        return data

    def get(self, key: str) -> str | None:
        with self._lock:
            value = self._read_all().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        with self._lock:
            try:
                data = self._read_all()
            except PersistenceError:
                logger.warning("Discarding unreadable storage file %s", self.path)
                data = {}
            data[key] = value
            self._write_all(data)

    def _write_all(self, data: dict[str, str]) -> None:
        tmp_path: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2, sort_keys=True)
            os.replace(tmp_path, self.path)
            tmp_path = None
        except OSError as exc:
            raise PersistenceError(
                f"Could not write storage file {self.path}",
                cause=exc,
                context={"path": str(self.path)},
            ) from exc
        finally:
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except OSError:
                    pass

import json
import os
import tempfile
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import structlog

logger = structlog.get_logger(__name__)


class FileStorage:
    """
    Small persistent key/value store backed by one JSON file.

    Every write replaces the file atomically, so several keys changed in one
    call are either all visible after a crash or none are.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._data: dict[str, Any] | None = None

    def get(self, key: str, default: Any = None) -> Any:
        return self._load().get(key, default)

    def set_many(self, values: dict[str, Any]) -> None:
        data = dict(self._load())
        data.update(values)
        self._write(data)

    def remove_many(self, keys: Iterable[str]) -> None:
        data = dict(self._load())
        removed = False
        for key in keys:
            if key in data:
                del data[key]
                removed = True
        if removed:
            self._write(data)

    def _load(self) -> dict[str, Any]:
        if self._data is not None:
            return self._data
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            self._data = {}
            return self._data
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("client_storage_corrupt", path=str(self.path))
            data = {}
        self._data = data if isinstance(data, dict) else {}
        return self._data

    def _write(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=".session-", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f)
            os.replace(tmp, self.path)
        except BaseException:
            os.unlink(tmp)
            raise
        self._data = data

"""
Infrastructure adapter: a single JSON file -> IKeyValueStore.

The file holds one object mapping string keys to JSON-text values, so cached
snapshots survive restarts of the dashboard process. Writes go to a temporary
file in the same directory and are swapped in with os.replace.

Every call reads or writes the whole file synchronously on the calling
thread, which is the event loop for the dashboard. The file only ever holds
a few small snapshots.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from src.domain.ports.key_value_store_port import IKeyValueStore

logger = logging.getLogger(__name__)


class JsonFileKeyValueStore(IKeyValueStore):
    def __init__(self, path: Union[str, Path]) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning(f"Ignoring unreadable store {self._path}: {exc}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring store {self._path}: top level is not an object")
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write(self, data: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self._path.parent, prefix=".store-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh)
            os.replace(tmp_path, self._path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def get_item(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove_item(self, key: str) -> None:
        data = self._read()
        if data.pop(key, None) is not None:
            self._write(data)

"""Key-value persistence for the last uploaded ledger.

The analytics core never reads or writes here; the API layer saves the raw
ledger text, the serialised last result and an update timestamp after each
successful upload and reloads them on start-up.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional


logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "team-dashboard"


class KeyValueStore:
    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError


class MemoryStore(KeyValueStore):
    def __init__(self) -> None:
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore(KeyValueStore):
    """All keys in one JSON object on disk, rewritten atomically on every change."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("Store file %s is unreadable, starting empty", self.path)
            return {}
        return {str(k): str(v) for k, v in data.items()} if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=self.path.name, dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle)
            os.replace(tmp_name, self.path)
        except Exception:
            os.unlink(tmp_name)
            raise

    def get(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def delete(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)


@dataclass(frozen=True)
class StoredUpload:
    content: str
    result: Optional[dict]
    last_update: Optional[str]
    file_name: Optional[str] = None


class UploadCache:
    def __init__(self, store: KeyValueStore, namespace: str = DEFAULT_NAMESPACE) -> None:
        self.store = store
        self.namespace = namespace

    @property
    def keys(self) -> Dict[str, str]:
        return {
            "content": f"{self.namespace}-csv",
            "result": f"{self.namespace}-data",
            "last_update": f"{self.namespace}-lastUpdate",
            "file_name": f"{self.namespace}-filename",
        }

    def has_upload(self) -> bool:
        return bool(self.store.get(self.keys["content"]))

    def save(
        self,
        content: str,
        result: dict,
        *,
        file_name: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> StoredUpload:
        keys = self.keys
        last_update = (now or datetime.now()).isoformat(timespec="seconds")
        self.store.set(keys["content"], content)
        self.store.set(keys["result"], json.dumps(result))
        self.store.set(keys["last_update"], last_update)
        if file_name:
            self.store.set(keys["file_name"], file_name)
        else:
            self.store.delete(keys["file_name"])
        return StoredUpload(content=content, result=result, last_update=last_update, file_name=file_name)

    def load(self) -> Optional[StoredUpload]:
        keys = self.keys
        content = self.store.get(keys["content"])
        if not content:
            return None
        result = None
        raw_result = self.store.get(keys["result"])
        if raw_result:
            try:
                result = json.loads(raw_result)
            except ValueError:
                logger.warning("Stored result under %s is not valid JSON, ignoring it", keys["result"])
        return StoredUpload(
            content=content,
            result=result,
            last_update=self.store.get(keys["last_update"]),
            file_name=self.store.get(keys["file_name"]),
        )

    def clear(self) -> None:
        for key in self.keys.values():
            self.store.delete(key)

"""
State Store - durable key-value persistence

Backs hibernation snapshots and skill configuration records. Every call is
atomic for its key.
"""

from __future__ import annotations

import asyncio
import copy
import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any
from urllib.parse import quote, unquote


class StateStore(ABC):
    @abstractmethod
    async def save(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Return the value under ``key`` or None."""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove ``key``; returns whether it existed."""

    @abstractmethod
    async def list_keys(self, prefix: str = "") -> list[str]:
        """Keys starting with ``prefix``, sorted."""


class MemoryStateStore(StateStore):
    """In-process store. Values are deep-copied in and out."""

    def __init__(self) -> None:
        self._store: dict[str, Any] = {}

    async def save(self, key: str, value: Any) -> None:
        self._store[key] = copy.deepcopy(value)

    async def get(self, key: str) -> Any | None:
        value = self._store.get(key)
        return copy.deepcopy(value) if value is not None else None

    async def delete(self, key: str) -> bool:
        return self._store.pop(key, None) is not None

    async def list_keys(self, prefix: str = "") -> list[str]:
        return sorted(k for k in self._store if k.startswith(prefix))


class FileStateStore(StateStore):
    """One JSON document per key under ``root``; writes go through os.replace."""

    SUFFIX = ".json"

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.root / (quote(key, safe="") + self.SUFFIX)

    async def save(self, key: str, value: Any) -> None:
        data = json.dumps(value, ensure_ascii=False)
        await asyncio.to_thread(self._write, self._path(key), data)

    def _write(self, path: Path, data: str) -> None:
        fd, tmp = tempfile.mkstemp(dir=self.root, prefix=".tmp-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    async def get(self, key: str) -> Any | None:
        path = self._path(key)
        text = await asyncio.to_thread(self._read, path)
        return None if text is None else json.loads(text)

    @staticmethod
    def _read(path: Path) -> str | None:
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    async def delete(self, key: str) -> bool:
        path = self._path(key)
        try:
            await asyncio.to_thread(path.unlink)
        except FileNotFoundError:
            return False
        return True

    async def list_keys(self, prefix: str = "") -> list[str]:
        names = await asyncio.to_thread(lambda: [p.name for p in self.root.glob("*" + self.SUFFIX)])
        keys = (unquote(n[: -len(self.SUFFIX)]) for n in names if not n.startswith(".tmp-"))
        return sorted(k for k in keys if k.startswith(prefix))

"""JSON-file key/value storage, one file per key."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, AsyncIterator, Callable, TypeVar

from voxline.errors import InvalidKeyError, RecordCorruptError, RecordNotFoundError, StoreError

T = TypeVar("T")


class DataStore:
    """Map string keys to JSON documents stored under ``base_dir``.

    ``read`` never raises: a missing, unreadable or corrupt record yields the
    caller's default. ``write`` replaces the record atomically and lets I/O
    and serialization errors reach the caller.
    """

    def __init__(self, base_dir: str | os.PathLike[str]):
        self.base_dir = Path(base_dir)
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    def _ensure_dir(self) -> None:
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        base = self.base_dir.resolve()
        try:
            path = (base / key).resolve()
        except (ValueError, OSError) as exc:
            raise InvalidKeyError(f"malformed key {key!r}: {exc}", key) from exc
        if path.parent != base:
            raise InvalidKeyError(f"key escapes the data directory: {key!r}", key)
        return path

    @contextlib.asynccontextmanager
    async def _locked(self, key: str) -> AsyncIterator[None]:
        # locks are dropped once no coroutine holds or waits on them
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                del self._locks[key]

    def _load_sync(self, key: str) -> Any:
        self._ensure_dir()
        path = self._path(key)
        try:
            raw = path.read_bytes()
        except FileNotFoundError as exc:
            raise RecordNotFoundError(f"no record for {key!r}", key) from exc
        except OSError as exc:
            raise StoreError(f"cannot read record {key!r}: {exc}", key) from exc
        try:
            return json.loads(raw.decode("utf-8"))
        except ValueError as exc:
            raise RecordCorruptError(f"record {key!r} is not valid JSON: {exc}", key) from exc

    def _write_sync(self, key: str, payload: str) -> None:
        self._ensure_dir()
        path = self._path(key)
        fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp, path)
        except BaseException:
            try:
                os.unlink(tmp)
            except OSError:
                pass
            raise

    async def load(self, key: str) -> Any:
        """Load the record for *key*.

        Raises RecordNotFoundError, RecordCorruptError, InvalidKeyError or a
        plain StoreError for other read failures.
        """
        return await asyncio.to_thread(self._load_sync, key)

    async def read(self, key: str, default: T) -> Any | T:
        try:
            return await self.load(key)
        except RecordNotFoundError:
            return default
        except RecordCorruptError as exc:
            logging.warning("falling back to default: %s", exc)
            return default
        except StoreError as exc:
            logging.warning("store read failed: %s", exc)
            return default
        except OSError as exc:
            # mkdir of the base directory failed
            logging.warning("store read failed for %s: %s", key, exc)
            return default

    async def write(self, key: str, value: Any) -> None:
        payload = json.dumps(value, indent=2, ensure_ascii=False)
        async with self._locked(key):
            await asyncio.to_thread(self._write_sync, key, payload)
        logging.debug("wrote record %s (%d bytes)", key, len(payload))

    async def update(self, key: str, default: T, mutate: Callable[[Any], Any]) -> Any:
        """Read-modify-write *key* while holding its lock.

        ``mutate`` gets the current value (or ``default``) and returns the
        value to store, which is also returned to the caller.
        """
        async with self._locked(key):
            current = await self.read(key, default)
            value = mutate(current)
            payload = json.dumps(value, indent=2, ensure_ascii=False)
            await asyncio.to_thread(self._write_sync, key, payload)
        return value

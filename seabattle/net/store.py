"""Durable key-value store contract and implementations."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol, TypeAlias

from seabattle.infra.json_codec import clone, dumps_bytes, loads
from seabattle.runtime.scheduler import Scheduler

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StoreReply:
    """Continuation payload. ``value is None`` means the key is absent."""

    value: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


StoreCallback: TypeAlias = "Callable[[StoreReply], None]"


class DurableStore(Protocol):
    """Continuation-callback key-value store shared by both players."""

    def get_global_variable(self, key: str, callback: StoreCallback) -> None: ...

    def set_global_variable(self, key: str, value: Any, callback: StoreCallback | None = None) -> None: ...

    def get_user_variable(self, index: int, key: str, callback: StoreCallback) -> None: ...

    def set_user_variable(
        self, index: int, key: str, value: Any, callback: StoreCallback | None = None
    ) -> None: ...


class InMemoryDurableStore:
    """Process-local store. Values are deep-copied on the way in and out.

    With a scheduler, replies arrive after ``latency_seconds`` of scheduler time.
    """

    def __init__(self, *, scheduler: Scheduler | None = None, latency_seconds: float = 0.0) -> None:
        if latency_seconds < 0.0:
            raise ValueError("latency_seconds must be >= 0")
        self._scheduler = scheduler
        self._latency = latency_seconds
        self._global: dict[str, Any] = {}
        self._users: dict[int, dict[str, Any]] = {}
        self._pending_failures: list[str] = []

    def fail_next(self, message: str) -> None:
        """Make the next operation reply with an error instead of touching data."""
        self._pending_failures.append(message)

    def get_global_variable(self, key: str, callback: StoreCallback) -> None:
        self._reply(callback, lambda: self._global.get(key))

    def set_global_variable(self, key: str, value: Any, callback: StoreCallback | None = None) -> None:
        self._reply(callback, lambda: self._put(self._global, key, value))

    def get_user_variable(self, index: int, key: str, callback: StoreCallback) -> None:
        self._reply(callback, lambda: self._users.get(index, {}).get(key))

    def set_user_variable(
        self, index: int, key: str, value: Any, callback: StoreCallback | None = None
    ) -> None:
        self._reply(callback, lambda: self._put(self._users.setdefault(index, {}), key, value))

    def user_keys(self, index: int) -> list[str]:
        return sorted(self._users.get(index, {}))

    @staticmethod
    def _put(bucket: dict[str, Any], key: str, value: Any) -> None:
        if value is None:
            bucket.pop(key, None)
        else:
            bucket[key] = clone(value)

    def _reply(self, callback: StoreCallback | None, operation: Callable[[], Any]) -> None:
        if self._pending_failures:
            reply = StoreReply(error=self._pending_failures.pop(0))
        else:
            value = operation()
            reply = StoreReply(value=None if value is None else clone(value))
        if callback is None:
            if not reply.ok:
                logger.warning("store_write_failed error=%s", reply.error)
            return
        if self._scheduler is None:
            callback(reply)
            return
        self._scheduler.call_later(self._latency, lambda: callback(reply))


class JsonFileDurableStore:
    """One JSON document per session under a saves directory."""

    def __init__(self, root: Path, session_id: str) -> None:
        if not _SESSION_ID.fullmatch(session_id):
            raise ValueError(f"invalid session id: {session_id!r}")
        self._root = root
        self._root.mkdir(parents=True, exist_ok=True)
        self._path = root / f"{session_id}.json"

    @property
    def path(self) -> Path:
        return self._path

    def clear(self) -> None:
        """Delete the session document."""
        self._path.unlink(missing_ok=True)

    def get_global_variable(self, key: str, callback: StoreCallback) -> None:
        callback(self._read(lambda doc: doc["global"].get(key)))

    def set_global_variable(self, key: str, value: Any, callback: StoreCallback | None = None) -> None:
        self._finish(callback, self._write(lambda doc: _assign(doc["global"], key, value)))

    def get_user_variable(self, index: int, key: str, callback: StoreCallback) -> None:
        callback(self._read(lambda doc: doc["users"].get(str(index), {}).get(key)))

    def set_user_variable(
        self, index: int, key: str, value: Any, callback: StoreCallback | None = None
    ) -> None:
        self._finish(
            callback,
            self._write(lambda doc: _assign(doc["users"].setdefault(str(index), {}), key, value)),
        )

    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            return {"global": {}, "users": {}}
        document = loads(self._path.read_bytes())
        if not isinstance(document, dict):
            raise ValueError("session document must be an object")
        document.setdefault("global", {})
        document.setdefault("users", {})
        if not isinstance(document["global"], dict):
            raise ValueError("session 'global' must be an object")
        users = document["users"]
        if not isinstance(users, dict):
            raise ValueError("session 'users' must be an object")
        for index, bucket in users.items():
            if not isinstance(bucket, dict):
                raise ValueError(f"session user {index!r} must be an object")
        return document

    def _read(self, select: Callable[[dict[str, Any]], Any]) -> StoreReply:
        try:
            return StoreReply(value=select(self._load()))
        except (OSError, ValueError) as exc:
            logger.warning("store_read_failed path=%s error=%s", self._path, exc)
            return StoreReply(error=str(exc))

    def _write(self, mutate: Callable[[dict[str, Any]], None]) -> StoreReply:
        try:
            document = self._load()
            mutate(document)
            tmp = self._path.with_suffix(".json.tmp")
            tmp.write_bytes(dumps_bytes(document, pretty=True, sort_keys=True))
            tmp.replace(self._path)
            return StoreReply()
        except (OSError, ValueError, TypeError) as exc:
            logger.warning("store_write_failed path=%s error=%s", self._path, exc)
            return StoreReply(error=str(exc))

    @staticmethod
    def _finish(callback: StoreCallback | None, reply: StoreReply) -> None:
        if callback is not None:
            callback(reply)


def fetch_user_variables(
    store: DurableStore,
    index: int,
    keys: Iterable[str],
    on_done: Callable[[dict[str, Any], dict[str, str]], None],
) -> None:
    """Read several user variables, then call ``on_done(values, errors)`` once."""
    wanted = list(dict.fromkeys(keys))
    values: dict[str, Any] = {}
    errors: dict[str, str] = {}
    remaining = len(wanted)
    if remaining == 0:
        on_done(values, errors)
        return

    def _collect(key: str, reply: StoreReply) -> None:
        nonlocal remaining
        if reply.ok:
            if reply.value is not None:
                values[key] = reply.value
        else:
            errors[key] = reply.error or "unknown error"
        remaining -= 1
        if remaining == 0:
            on_done(values, errors)

    for key in wanted:
        store.get_user_variable(index, key, lambda reply, key=key: _collect(key, reply))


_SESSION_ID = re.compile(r"[A-Za-z0-9_-]{1,64}")


def _assign(bucket: dict[str, Any], key: str, value: Any) -> None:
    if value is None:
        bucket.pop(key, None)
    else:
        bucket[key] = value

"""Simple file-backed storage backend.

Values are stored as text files under ``<data_dir>/objects/<name>``,
counters under ``<data_dir>/counters/<name>`` and absolute expiry times
(epoch seconds) under ``<data_dir>/expires/<name>``, where ``<name>`` is
the percent-encoded key. Writes are atomic: the
content goes to a temporary file which is then renamed over the target.

Counter updates are serialized with a process-local lock only; use a Redis
backend when several processes increment the same counter.
"""
from __future__ import annotations

import logging
import os
import time
from contextlib import contextmanager
from pathlib import Path
from threading import RLock
from typing import Any, Callable, Iterator, Optional
from urllib.parse import quote

from ..exceptions import BackendError
from ..expiry import NEVER_EXPIRE, coerce_ttl
from .base import Backend, config_digest

logger = logging.getLogger(__name__)

OBJECTS = "objects"
COUNTERS = "counters"
EXPIRES = "expires"


def file_name_for(key: str) -> str:
    """Percent-encode ``key`` into a single file name.

    Dots are encoded too, so no key maps to ``.``, ``..`` or a
    ``.tmp`` name used while writing.
    """
    return quote(key, safe="").replace(".", "%2E")


@contextmanager
def translate_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except OSError as exc:
        raise BackendError(f"File store {operation} failed: {exc}") from exc


class FileBackend(Backend):
    def __init__(self, data_dir: str | Path = "./data/ephemera", clock: Callable[[], float] = time.time) -> None:
        self.data_dir = Path(data_dir)
        self._clock = clock
        self._lock = RLock()
        for space in (OBJECTS, COUNTERS, EXPIRES):
            (self.data_dir / space).mkdir(parents=True, exist_ok=True)
        self._config_key = config_digest("file", str(self.data_dir.resolve()))

    @property
    def config_key(self) -> str:
        return self._config_key

    def _path_for(self, space: str, key: str) -> Path:
        return self.data_dir / space / file_name_for(key)

    def _read(self, space: str, key: str) -> Optional[str]:
        path = self._path_for(space, key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def _write(self, space: str, key: str, value: str) -> None:
        path = self._path_for(space, key)
        tmp = path.with_name(path.name + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            f.write(value)
            f.flush()
            os.fsync(f.fileno())
        tmp.replace(path)

    def _remove(self, space: str, key: str) -> None:
        try:
            self._path_for(space, key).unlink()
        except FileNotFoundError:
            pass

    def _expires_at(self, key: str) -> Optional[float]:
        raw = self._read(EXPIRES, key)
        if raw is None:
            return None
        try:
            return float(raw)
        except ValueError:
            logger.warning("Discarding unreadable expiry for %s: %r", key, raw)
            self._remove(EXPIRES, key)
            return None

    def _reap(self, key: str) -> None:
        expires_at = self._expires_at(key)
        if expires_at is not None and expires_at <= self._clock():
            for space in (OBJECTS, COUNTERS, EXPIRES):
                self._remove(space, key)

    def _set_expiry(self, key: str, expiry: Any) -> None:
        seconds = coerce_ttl(expiry)
        if seconds is NEVER_EXPIRE:
            self._remove(EXPIRES, key)
        else:
            self._write(EXPIRES, key, repr(self._clock() + seconds))

    def _live(self, space: str, key: str) -> Optional[str]:
        self._reap(key)
        return self._read(space, key)

    def _drop_orphan_expiry(self, key: str) -> None:
        if not self._path_for(OBJECTS, key).exists() and not self._path_for(COUNTERS, key).exists():
            self._remove(EXPIRES, key)

    # Hashes
    def get(self, key: str, expiry: Optional[int] = NEVER_EXPIRE) -> Optional[str]:
        with self._lock, translate_errors("get"):
            return self._live(OBJECTS, key)

    def set(self, key: str, value: str, expiry: Optional[int] = NEVER_EXPIRE) -> Any:
        coerce_ttl(expiry)
        with self._lock, translate_errors("set"):
            self._write(OBJECTS, key, value)
            self._set_expiry(key, expiry)
            return True

    def delete(self, key: str) -> None:
        with self._lock, translate_errors("delete"):
            self._remove(OBJECTS, key)
            self._drop_orphan_expiry(key)

    def exists(self, key: str) -> bool:
        with self._lock, translate_errors("exists"):
            return self._live(OBJECTS, key) is not None

    # Counters
    def getc(self, key: str, expiry: Optional[int] = NEVER_EXPIRE) -> Optional[int]:
        with self._lock, translate_errors("getc"):
            raw = self._live(COUNTERS, key)
            return None if raw is None else int(raw)

    def setc(self, key: str, value: int, expiry: Optional[int] = NEVER_EXPIRE) -> Any:
        coerce_ttl(expiry)
        with self._lock, translate_errors("setc"):
            self._write(COUNTERS, key, str(int(value)))
            self._set_expiry(key, expiry)
            return True

    def deletec(self, key: str) -> None:
        with self._lock, translate_errors("deletec"):
            self._remove(COUNTERS, key)
            self._drop_orphan_expiry(key)

    def existsc(self, key: str) -> bool:
        with self._lock, translate_errors("existsc"):
            return self._live(COUNTERS, key) is not None

    def incrby(self, key: str, amount: int, expiry: Optional[int] = NEVER_EXPIRE) -> int:
        seconds = coerce_ttl(expiry)
        with self._lock, translate_errors("incrby"):
            raw = self._live(COUNTERS, key)
            value = (0 if raw is None else int(raw)) + int(amount)
            self._write(COUNTERS, key, str(value))
            if seconds is not NEVER_EXPIRE:
                self._set_expiry(key, seconds)
            return value

    def decrby(self, key: str, amount: int, expiry: Optional[int] = NEVER_EXPIRE) -> int:
        return self.incrby(key, -int(amount), expiry)

    # Expiry/TTL
    def expire(self, key: str, ttl: Any) -> Any:
        seconds = coerce_ttl(ttl)
        if seconds is NEVER_EXPIRE:
            return False
        with self._lock, translate_errors("expire"):
            self._reap(key)
            if not self._path_for(OBJECTS, key).exists() and not self._path_for(COUNTERS, key).exists():
                return False
            self._set_expiry(key, seconds)
            self._reap(key)
            return True

    def ttl(self, key: str) -> Optional[int]:
        with self._lock, translate_errors("ttl"):
            self._reap(key)
            expires_at = self._expires_at(key)
            if expires_at is None:
                return None
            return int(expires_at - self._clock())

    def flush(self) -> None:
        with self._lock, translate_errors("flush"):
            for space in (OBJECTS, COUNTERS, EXPIRES):
                for path in (self.data_dir / space).iterdir():
                    if path.is_file():
                        path.unlink()

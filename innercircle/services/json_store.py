from __future__ import annotations

import fcntl
import json
import logging
import os
import threading
import time
from contextlib import contextmanager
from typing import Callable

logger = logging.getLogger("innercircle.store")


class JsonArrayStore:
    """A JSON array kept in one file, rewritten whole on every change.

    Reads never fail: a missing, unreadable or corrupt file reads as ``[]``.
    Writers are serialised with a thread lock plus an ``flock`` on a sidecar
    lock file, so concurrent appends from threads or processes never drop
    records. A corrupt file is moved aside before it is overwritten.
    """

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()

    def _load(self) -> tuple[list[dict], bool]:
        try:
            with open(self.path, "r", encoding="utf-8") as handle:
                data = json.load(handle)
        except FileNotFoundError:
            return [], False
        except (OSError, ValueError) as exc:
            logger.warning("Unreadable store %s, treating as empty: %s", self.path, exc)
            return [], True
        if not isinstance(data, list):
            logger.warning("Store %s does not hold a JSON array, treating as empty", self.path)
            return [], True
        return [item for item in data if isinstance(item, dict)], False

    def read(self) -> list[dict]:
        items, _corrupt = self._load()
        return items

    def find(self, predicate: Callable[[dict], bool]) -> dict | None:
        for item in self.read():
            if predicate(item):
                return item
        return None

    @contextmanager
    def _exclusive(self):
        with self._lock:
            store_dir = os.path.dirname(self.path)
            if store_dir:
                os.makedirs(store_dir, exist_ok=True)
            lock_file = open(f"{self.path}.lock", "w")
            try:
                fcntl.flock(lock_file, fcntl.LOCK_EX)
                yield
            finally:
                try:
                    fcntl.flock(lock_file, fcntl.LOCK_UN)
                finally:
                    lock_file.close()

    def _set_aside_corrupt(self) -> None:
        backup = f"{self.path}.corrupt-{int(time.time())}"
        try:
            os.replace(self.path, backup)
            logger.warning("Moved corrupt store %s to %s", self.path, backup)
        except OSError as exc:
            logger.warning("Could not move corrupt store %s aside: %s", self.path, exc)

    def _write(self, items: list[dict]) -> None:
        tmp_path = f"{self.path}.{os.getpid()}.{threading.get_ident()}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as handle:
            json.dump(items, handle, indent=2)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, self.path)

    def append(self, item: dict) -> dict:
        with self._exclusive():
            items, corrupt = self._load()
            if corrupt:
                self._set_aside_corrupt()
            items.append(item)
            self._write(items)
        return item

    def remove_where(self, predicate: Callable[[dict], bool]) -> list[dict]:
        with self._exclusive():
            items, corrupt = self._load()
            if corrupt:
                return []
            kept = []
            removed = []
            for item in items:
                (removed if predicate(item) else kept).append(item)
            if removed:
                self._write(kept)
        return removed

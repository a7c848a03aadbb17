from __future__ import annotations

import atexit
import logging
import os
import threading

from ..metrics import SUSPICIOUS_FLUSHES

logger = logging.getLogger("innercircle.suspicious")

SUSPICIOUS_PREFIXES = ("/.env", "/cgi-bin/", "/wp")


def is_suspicious_path(url: str) -> bool:
    """Probe patterns: dotenv files, CGI, WordPress, admin panels and the bare root."""
    return url == "/" or url.startswith(SUSPICIOUS_PREFIXES) or "admin" in url.lower()


class SuspiciousRequestLog:
    """In-memory set of probe attempts, appended to a flat file in batches.

    ``flush`` swaps the pending set out under the lock and writes the snapshot
    without holding it, so request threads are never blocked on disk I/O.
    """

    def __init__(self, path: str, interval_seconds: float = 300):
        self.path = path
        self.interval_seconds = interval_seconds
        self._entries: set[str] = set()
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._atexit_registered = False

    def record(self, ip: str | None, url: str) -> str:
        entry = f'{ip or "unknown"} | tried accessing "{url}"'
        with self._lock:
            self._entries.add(entry)
        logger.info("Suspicious request: %s", entry)
        return entry

    def pending(self) -> list[str]:
        with self._lock:
            return sorted(self._entries)

    def flush(self) -> int:
        with self._lock:
            batch = sorted(self._entries)
            self._entries.clear()
        if not batch:
            return 0

        try:
            log_dir = os.path.dirname(self.path)
            if log_dir:
                os.makedirs(log_dir, exist_ok=True)
            with open(self.path, "a", encoding="utf-8") as handle:
                handle.write("\n".join(batch) + "\n")
        except OSError as exc:
            logger.error("Failed to flush suspicious requests to %s: %s", self.path, exc)
            with self._lock:
                self._entries.update(batch)
            if SUSPICIOUS_FLUSHES is not None:
                SUSPICIOUS_FLUSHES.labels("error").inc()
            return 0

        if SUSPICIOUS_FLUSHES is not None:
            SUSPICIOUS_FLUSHES.labels("ok").inc()
        logger.info("Flushed %d suspicious request entries", len(batch))
        return len(batch)

    def _run(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            try:
                self.flush()
            except Exception as exc:
                logger.warning("Suspicious log flush failed: %s", exc)

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="suspicious-log-flush", daemon=True)
        self._thread.start()
        if not self._atexit_registered:
            atexit.register(self.stop)
            self._atexit_registered = True

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None
        self.flush()

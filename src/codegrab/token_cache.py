"""Background token estimation for displayed files."""

from __future__ import annotations

import os
import threading
from queue import Full, Queue
from typing import TYPE_CHECKING

from codegrab.exceptions import FileReadError
from codegrab.file_manipulation import is_text_file
from codegrab.logging import logger

if TYPE_CHECKING:
    from pathlib import Path

    from codegrab.file_cache import FileCache

_STOP = None


def estimate_tokens(text: str) -> int:
    """Rough token count: one token per four characters, newlines counted as spaces."""
    return len(text.replace("\n", " ")) // 4


class TokenCache:
    """Token counts per path, computed by a small pool of daemon threads.

    ``get_tokens`` never blocks: on a miss the path is queued and ``(0, False)`` is
    returned. A request is dropped when the path is already queued or the queue is
    full; the caller simply asks again later.
    """

    def __init__(self, file_cache: FileCache, workers: int = 2, queue_size: int = 100) -> None:
        self._file_cache = file_cache
        self._lock = threading.Lock()
        self._counts: dict[str, tuple[int, int]] = {}
        self._queued: set[str] = set()
        self._queue: Queue[str | None] = Queue(maxsize=queue_size)
        self._closed = False
        self._threads = [
            threading.Thread(target=self._worker, name=f"codegrab-tokens-{i}", daemon=True) for i in range(workers)
        ]
        for thread in self._threads:
            thread.start()

    def get_tokens(self, path: str | Path) -> tuple[int, bool]:
        """Return ``(tokens, ready)`` for ``path``, queueing it when not computed yet."""
        key = os.fspath(path)
        with self._lock:
            cached = self._counts.get(key)
            if cached is not None and cached[0] == _mtime_ns(key):
                return cached[1], True
            if self._closed or key in self._queued:
                return 0, False
            try:
                self._queue.put_nowait(key)
            except Full:
                return 0, False
            self._queued.add(key)
        return 0, False

    def invalidate(self, path: str | Path) -> None:
        with self._lock:
            self._counts.pop(os.fspath(path), None)

    def clear(self) -> None:
        with self._lock:
            self._counts.clear()

    def stats(self) -> tuple[int, int]:
        """Return ``(cached, queued)``."""
        with self._lock:
            return len(self._counts), len(self._queued)

    def wait_idle(self) -> None:
        """Block until every queued path has been processed."""
        self._queue.join()

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        for _ in self._threads:
            self._queue.put(_STOP)
        for thread in self._threads:
            thread.join()

    def _worker(self) -> None:
        while True:
            key = self._queue.get()
            try:
                if key is _STOP:
                    return
                mtime_ns = _mtime_ns(key)
                tokens = self._count(key)
                with self._lock:
                    self._counts[key] = (mtime_ns, tokens)
                    self._queued.discard(key)
            finally:
                self._queue.task_done()

    def _count(self, key: str) -> int:
        try:
            if not self._file_cache.get_text_file_status(key, is_text_file):
                return 0
            return estimate_tokens(self._file_cache.read_text(key))
        except (OSError, FileReadError) as e:
            logger.warning("token_estimation_failed", path=key, error=str(e))
            return 0


def _mtime_ns(path: str) -> int:
    try:
        return os.stat(path).st_mtime_ns
    except OSError:
        return -1

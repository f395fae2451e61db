"""Freshness-checked, size and count bounded store of file contents.

Entries are keyed by the path string the caller passes in. An entry is fresh while
the file's ``st_mtime_ns`` and ``st_size`` still equal the values recorded when it
was loaded. Least recently accessed entries are evicted first; both content hits
and text/binary classification hits count as an access. Content larger than the
byte ceiling is handed back without being stored.
"""

from __future__ import annotations

import os
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from codegrab.exceptions import FileReadError

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    TextClassifier = Callable[[str], bool]

DEFAULT_MAX_BYTES = 100 * 1024 * 1024
DEFAULT_MAX_ITEMS = 10_000


@dataclass
class CacheEntry:
    """Cached state for one path.

    Attributes:
        mtime_ns: Modification time recorded when the entry was created.
        size: File size recorded when the entry was created.
        content: File bytes, or None when only the classification is cached.
        is_text: Text/binary classification, or None when unknown.
        load_time: Monotonic time of the entry creation.
    """

    mtime_ns: int
    size: int
    content: bytes | None = None
    is_text: bool | None = None
    load_time: float = field(default_factory=time.monotonic)

    def matches(self, st: os.stat_result) -> bool:
        return st.st_mtime_ns == self.mtime_ns and st.st_size == self.size


class FileCache:
    """Thread-safe content cache with LRU eviction.

    A single lock guards all state. Hits take it too because they move the entry
    to the most recently used end.
    """

    def __init__(self, max_bytes: int = DEFAULT_MAX_BYTES, max_items: int = DEFAULT_MAX_ITEMS) -> None:
        self.max_bytes = max_bytes
        self.max_items = max_items
        self._lock = threading.Lock()
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._size = 0

    @classmethod
    def default(cls) -> FileCache:
        return cls(DEFAULT_MAX_BYTES, DEFAULT_MAX_ITEMS)

    def get(self, path: str | Path) -> bytes:
        """Return the content of ``path``, reading it from disk when not cached or stale.

        Args:
            path (str | Path): the file to read.

        Raises:
            FileReadError: if the file cannot be read; nothing is cached in that case.

        Returns:
            bytes: the file content.
        """
        key = os.fspath(path)
        with self._lock:
            entry = self._fresh_entry(key)
            if entry is not None and entry.content is not None:
                self._touch(key)
                return entry.content
            return self._load(key, entry)

    def read_text(self, path: str | Path) -> str:
        """Return the content of ``path`` decoded as UTF-8, undecodable bytes replaced."""
        return self.get(path).decode("utf-8", errors="replace")

    def get_text_file_status(self, path: str | Path, classify: TextClassifier) -> bool:
        """Return the cached text/binary classification of ``path``.

        On a miss or a stale entry ``classify`` is called once and its answer stored.
        Exceptions raised by ``classify`` propagate and nothing is cached.

        Args:
            path (str | Path): the file to classify.
            classify (TextClassifier): callable returning True for text files.

        Returns:
            bool: True if the file is text.
        """
        key = os.fspath(path)
        with self._lock:
            entry = self._fresh_entry(key)
            if entry is not None and entry.is_text is not None:
                self._touch(key)
                return entry.is_text

        # classification reads the file, keep it outside the lock
        is_text = classify(key)

        try:
            st = os.stat(key)
        except OSError:
            return is_text

        with self._lock:
            entry = self._entries.get(key)
            if entry is None or not entry.matches(st):
                self._remove(key)
                self._evict_for(0)
                entry = CacheEntry(mtime_ns=st.st_mtime_ns, size=st.st_size)
                self._entries[key] = entry
            entry.is_text = is_text
            self._touch(key)
            return is_text

    def preload(self, path: str | Path) -> None:
        self.get(path)

    def contains(self, path: str | Path) -> bool:
        """Tell whether a fresh entry with loaded content exists for ``path``."""
        key = os.fspath(path)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or entry.content is None:
                return False
            try:
                st = os.stat(key)
            except OSError:
                return False
            return entry.matches(st)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._size = 0

    def stats(self) -> tuple[int, int]:
        """Return ``(items, size_bytes)``."""
        with self._lock:
            return len(self._entries), self._size

    # The helpers below expect the lock to be held.

    def _fresh_entry(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        try:
            st = os.stat(key)
        except OSError:
            self._remove(key)
            return None
        if not entry.matches(st):
            self._remove(key)
            return None
        return entry

    def _load(self, key: str, entry: CacheEntry | None) -> bytes:
        try:
            with open(key, "rb") as fh:
                content = fh.read()
        except OSError as e:
            raise FileReadError(path=key, reason=e.strerror or str(e)) from e

        try:
            st = os.stat(key)
        except OSError:
            return content

        if entry is not None and not entry.matches(st):
            self._remove(key)
            entry = None
        if len(content) > self.max_bytes:
            return content
        if entry is not None:
            # classification-only entry, replaced below with its is_text carried over
            self._remove(key)
        self._evict_for(len(content))

        new_entry = CacheEntry(mtime_ns=st.st_mtime_ns, size=st.st_size, content=content)
        if entry is not None:
            new_entry.is_text = entry.is_text
        self._entries[key] = new_entry
        self._size += len(content)
        return content

    def _evict_for(self, incoming: int) -> None:
        while self._entries and (self._size + incoming > self.max_bytes or len(self._entries) >= self.max_items):
            oldest = next(iter(self._entries))
            self._remove(oldest)

    def _touch(self, key: str) -> None:
        self._entries.move_to_end(key)

    def _remove(self, key: str) -> None:
        entry = self._entries.pop(key, None)
        if entry is not None and entry.content is not None:
            self._size -= len(entry.content)

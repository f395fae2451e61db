from __future__ import annotations

import codecs
import os
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from codegrab.config import FileItem
from codegrab.exceptions import NotADirectoryRootError
from codegrab.logging import logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from codegrab.file_cache import FileCache
    from codegrab.filters import Visibility

TEXT_SAMPLE_SIZE = 512


def relpath(path: Path, root: Path) -> str:
    """Send the relative path of path from root.

    Args:
        path (Path): the path to "relativise"
        root (Path): the root to relativise from

    Returns:
        str: the relative path from root to path, with POSIX separators.
            If path is not under root, returns the original path as a string.
    """
    try:
        return str(path.relative_to(root)).replace("\\", "/")
    except ValueError:
        return str(path)


def is_text_file(path: str | Path) -> bool:
    """Check if a file is probably text.

    Reads the first 512 bytes: an empty file is text, a NUL byte means binary, and
    otherwise the sample must be valid UTF-8 (a multi-byte sequence cut by the sample
    boundary is accepted).

    Args:
        path (str | Path): the file to sniff.

    Raises:
        OSError: on I/O errors other than a permission error.

    Returns:
        bool: True if the file is probably text, False otherwise.
    """
    try:
        with open(path, "rb") as f:
            chunk = f.read(TEXT_SAMPLE_SIZE)
    except PermissionError:
        logger.warning("permission_denied_checking_type", path=str(path))
        return False
    if not chunk:
        return True
    if b"\x00" in chunk:
        return False
    try:
        codecs.getincrementaldecoder("utf-8")().decode(chunk, final=False)
    except UnicodeDecodeError:
        return False
    return True


def ensure_root(root: Path) -> Path:
    """Resolve ``root`` and check that it is an existing directory.

    Raises:
        NotADirectoryRootError: if the root is missing or is a file.

    Returns:
        Path: the absolute, resolved root.
    """
    resolved = root.expanduser().resolve()
    if not resolved.is_dir():
        raise NotADirectoryRootError(folder=resolved)
    return resolved


def walk_directory(
    root: Path,
    visibility: Visibility,
    cache: FileCache,
    *,
    max_workers: int | None = None,
) -> list[FileItem]:
    """Walk ``root`` and list the directories and text files visible under ``visibility``.

    Hidden and gitignored directories are pruned before descending. Files are dropped
    when hidden, gitignored, larger than the size limit, rejected by the glob filter or
    classified as binary. Classification goes through the content cache on a thread
    pool; the result is sorted by path so the listing does not depend on scheduling.

    Args:
        root (Path): the absolute project root.
        visibility (Visibility): the current visibility rules.
        cache (FileCache): cache holding text/binary classifications.
        max_workers (int | None): thread pool size, defaults to the executor's choice.

    Returns:
        list[FileItem]: the visible entries, sorted by path.
    """
    root = ensure_root(root)
    items: list[FileItem] = []
    candidates: list[tuple[str, Path, int]] = []

    def on_error(err: OSError) -> None:
        logger.warning("walk_skipped", path=str(err.filename), error=str(err))

    for current, dirs, files in os.walk(root, onerror=on_error):
        base = Path(current)
        kept: list[str] = []
        for d in sorted(dirs):
            rel = relpath(base / d, root)
            if visibility.is_filtered_out(rel):
                continue
            kept.append(d)
            size = _safe_size(base / d)
            items.append(FileItem(path=rel, is_dir=True, size=size))
        dirs[:] = kept

        for f in files:
            full = base / f
            rel = relpath(full, root)
            try:
                st = full.stat()
            except OSError as e:
                on_error(e)
                continue
            if not full.is_file():
                continue
            if not visibility.is_visible(rel, st.st_size):
                continue
            candidates.append((rel, full, st.st_size))

    def classify(candidate: tuple[str, Path, int]) -> FileItem | None:
        rel, full, size = candidate
        try:
            if not cache.get_text_file_status(full, is_text_file):
                return None
        except OSError as e:
            logger.warning("text_check_failed", path=rel, error=str(e))
            return None
        return FileItem(path=rel, is_dir=False, size=size)

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        items.extend(item for item in pool.map(classify, candidates) if item is not None)

    return sorted(items, key=lambda item: item.path)


def _safe_size(path: Path) -> int:
    try:
        return path.stat().st_size
    except OSError:
        return 0


def build_tree_lines(root_name: str, rel_paths: Sequence[str]) -> list[str]:
    """Build a visual tree representation of file paths.

    Args:
        root_name (str): the name to use for the root of the tree
        rel_paths (Sequence[str]): the list of file paths relative to the root, using POSIX separators (e.g. "src/main.go")

    Returns:
        list[str]: a list of strings representing the tree structure, suitable for printing
    """
    rels = sorted(
        {p.strip("/").replace("\\", "/") for p in rel_paths if p.strip()},
        key=str.lower,
    )
    tree: dict[str, Any] = {}
    for rp in rels:
        cur = tree
        parts = rp.split("/")
        for i, part in enumerate(parts):
            if i == len(parts) - 1:
                cur.setdefault("__files__", set()).add(part)
            else:
                cur = cur.setdefault(part, {})

    lines: list[str] = [f"{root_name}/"]

    def walk(node: dict[str, Any], prefix: str) -> None:
        dirs = sorted([k for k in node if k != "__files__"], key=str.lower)
        files = sorted(node.get("__files__", set()), key=str.lower)
        entries: list[tuple[str, str, Any]] = []
        entries.extend(("dir", d, node[d]) for d in dirs)
        entries.extend(("file", f, None) for f in files)
        for idx, (kind, name, child) in enumerate(entries):
            last = idx == len(entries) - 1
            branch = "└── " if last else "├── "
            lines.append(prefix + branch + name + ("/" if kind == "dir" else ""))
            if kind == "dir":
                ext = "    " if last else "│   "
                walk(child, prefix + ext)

    walk(tree, "")
    return lines


def now_iso() -> str:
    """Return the current date and time in ISO 8601 format with timezone.

    Returns:
        str: the current date and time in ISO 8601 format with timezone
    """
    return datetime.now(UTC).astimezone().isoformat(timespec="seconds")

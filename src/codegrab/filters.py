from __future__ import annotations

import fnmatch
import os
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

import pathspec

from codegrab.logging import logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence


def is_hidden_path(path: str) -> bool:
    """Check whether any component of a relative path starts with a dot.

    Args:
        path (str): slash or OS separated relative path.

    Returns:
        bool: True if the path or one of its parents is hidden.
    """
    parts = PurePosixPath(path.replace("\\", "/")).parts
    return any(part.startswith(".") and part not in {".", ".."} for part in parts)


def _normalize_gitignore_line(line: str) -> str:
    return line.strip().removesuffix("/")


class GitIgnoreManager:
    """Gitignore matcher rooted at a project directory."""

    def __init__(self, root: Path, patterns: Sequence[str] = ()) -> None:
        self.root = root
        self.patterns = list(patterns)
        self._spec = pathspec.GitIgnoreSpec.from_lines(self.patterns)

    @classmethod
    def from_root(cls, root: Path) -> GitIgnoreManager:
        """Read ``root/.gitignore`` if present.

        Args:
            root (Path): the project root.

        Returns:
            GitIgnoreManager: a matcher, empty when there is no .gitignore.
        """
        gitignore = root / ".gitignore"
        if not gitignore.is_file():
            return cls(root)
        lines = gitignore.read_text(encoding="utf-8", errors="ignore").splitlines()
        patterns = [
            norm for norm in (_normalize_gitignore_line(ln) for ln in lines) if norm and not norm.startswith("#")
        ]
        return cls(root, patterns)

    def is_ignored(self, path: str | Path) -> bool:
        """Check a path, absolute or relative to the root, against the ignore rules."""
        p = Path(path)
        if p.is_absolute():
            try:
                rel = p.relative_to(self.root).as_posix()
            except ValueError:
                return False
        else:
            rel = p.as_posix()
        rel = rel.removesuffix("/")
        if not rel or rel == ".":
            return False
        return self._spec.match_file(rel)


def expand_braces(pattern: str) -> list[str]:
    """Expand ``{a,b}`` groups of a glob pattern, nested and repeated groups included.

    An unbalanced brace is kept literally.
    """
    start = pattern.find("{")
    if start == -1:
        return [pattern]
    depth = 0
    options: list[str] = []
    last = start + 1
    for idx in range(start, len(pattern)):
        ch = pattern[idx]
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                options.append(pattern[last:idx])
                prefix, suffix = pattern[:start], pattern[idx + 1 :]
                out: list[str] = []
                for opt in options:
                    out.extend(expand_braces(prefix + opt.strip() + suffix))
                return out
        elif ch == "," and depth == 1:
            options.append(pattern[last:idx])
            last = idx + 1
    return [pattern]


def matches_pattern(pattern: str, path: str) -> bool:
    """Match a glob against both the full relative path and its base name."""
    base = PurePosixPath(path).name
    for expanded in expand_braces(pattern):
        if fnmatch.fnmatch(path, expanded) or fnmatch.fnmatch(base, expanded):
            return True
    return False


@dataclass
class FilterManager:
    """Glob include/exclude filter.

    Patterns starting with ``!`` exclude. When at least one positive pattern exists a
    path must match one of them to be included.
    """

    patterns: list[str] = field(default_factory=list)

    @classmethod
    def from_patterns(cls, patterns: Iterable[str], root: Path) -> FilterManager:
        manager = cls()
        for raw in patterns:
            normalized = normalize_glob_pattern(raw, root)
            if normalized is not None:
                manager.add_glob_pattern(normalized)
        return manager

    def add_glob_pattern(self, pattern: str) -> None:
        self.patterns.append(pattern)

    def should_include(self, path: str) -> bool:
        if not self.patterns:
            return True
        positives = [p for p in self.patterns if not p.startswith("!")]
        negatives = [p[1:] for p in self.patterns if p.startswith("!")]
        if any(matches_pattern(p, path) for p in negatives):
            return False
        if not positives:
            return True
        return any(matches_pattern(p, path) for p in positives)


def normalize_glob_pattern(pattern: str, root: Path) -> str | None:
    """Normalize a command-line glob to a pattern matched against relative paths.

    Args:
        pattern (str): raw pattern, optionally prefixed with ``!`` or ``\\!``.
        root (Path): absolute project root, used for absolute patterns.

    Returns:
        str | None: the normalized pattern, or None when it must be ignored.
    """
    original = pattern
    negative = pattern.startswith(("!", "\\!"))
    body = pattern.removeprefix("\\").removeprefix("!") if negative else pattern

    if os.path.isabs(body):
        rel = os.path.relpath(body, root)
        if rel == "." or rel == ".." or rel.startswith(".." + os.sep):
            logger.warning("glob_outside_root", pattern=original, root=str(root))
            return None
        body = rel
    else:
        body = body.removeprefix("./")

    body = body.replace("\\", "/")
    if not body:
        if original not in {"./", "!./", "\\!./"}:
            logger.warning("glob_empty_after_normalization", pattern=original)
        return None
    return f"!{body}" if negative else body


@dataclass
class Visibility:
    """Current visibility rules shared by the walker and the selection engine."""

    gitignore: GitIgnoreManager
    filters: FilterManager = field(default_factory=FilterManager)
    use_gitignore: bool = True
    show_hidden: bool = False
    max_file_size: int | None = None

    def is_filtered_out(self, path: str) -> bool:
        """Hidden or gitignored under the current toggles."""
        if not self.show_hidden and is_hidden_path(path):
            return True
        return self.use_gitignore and self.gitignore.is_ignored(path)

    def is_visible(self, path: str, size: int | None = None) -> bool:
        """Pass every predicate: hidden, gitignore, glob and size."""
        if self.is_filtered_out(path):
            return False
        if not self.filters.should_include(path):
            return False
        return not (self.max_file_size is not None and size is not None and size > self.max_file_size)

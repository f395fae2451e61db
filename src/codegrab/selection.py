"""Selection state machine and dependency closure.

The engine owns three path sets:

- ``selected``: paths in the output set, picked directly or pulled in as dependencies.
- ``deselected``: overrides excluding a path although an ancestor directory is selected.
- ``is_dependency``: paths that are selected only because a selected file imports them.

A path is never in ``selected`` and ``deselected`` at the same time, and an override is
only kept while one of its ancestor directories is selected. Every mutation path below
clears the opposite set entry to keep that true.

Dependencies are expanded breadth first from the files a toggle newly selects, up to
``max_depth`` resolver hops. The edges found on the way are remembered; after any
deselection a mark-and-sweep over those edges, starting from the directly selected
files, drops dependencies nothing selected reaches anymore.
"""

from __future__ import annotations

from collections import deque
from enum import StrEnum, auto
from pathlib import PurePosixPath
from typing import TYPE_CHECKING

from codegrab.config import QueuedDep
from codegrab.exceptions import ResolverError
from codegrab.logging import logger

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from codegrab.config import FileItem
    from codegrab.dependencies import ResolverRegistry
    from codegrab.filters import Visibility


class SelectionStatus(StrEnum):
    """Display state of a path, derived from the three selection sets."""

    UNSELECTED = auto()
    SELECTED_DIRECT = auto()
    SELECTED_DEPENDENCY = auto()
    DESELECTED_OVERRIDE = auto()


def normalize_rel_path(path: str) -> str:
    """Normalize a user supplied relative path to the slash form used as key."""
    p = path.replace("\\", "/").strip()
    while p.startswith("./"):
        p = p[2:]
    return p.strip("/")


def fuzzy_match(query: str, target: str) -> bool:
    """Case-insensitive subsequence match; an empty query matches everything."""
    q = query.strip().lower()
    if not q:
        return True
    it = iter(target.lower())
    return all(ch in it for ch in q)


def find_parent_directory(path: str, selected: set[str] | frozenset[str]) -> str | None:
    """Return the nearest ancestor directory of ``path`` that is selected, if any."""
    for parent in PurePosixPath(path).parents:
        key = parent.as_posix()
        if key == ".":
            break
        if key in selected:
            return key
    return None


class SelectionEngine:
    """Mutable selection state for one interactive session.

    Not thread-safe; all mutations are expected on the session's event loop.
    """

    def __init__(
        self,
        root: Path,
        visibility: Visibility,
        registry: ResolverRegistry,
        *,
        resolve_deps: bool = False,
        max_depth: int = 1,
        module_context: str = "",
    ) -> None:
        self.root = root
        self.visibility = visibility
        self.registry = registry
        self.resolve_deps = resolve_deps
        self.max_depth = max_depth
        self.module_context = module_context
        self.warnings: list[str] = []

        self._selected: set[str] = set()
        self._deselected: set[str] = set()
        self._is_dependency: set[str] = set()
        self._edges: dict[str, set[str]] = {}
        self._files: list[FileItem] = []
        self._search_results: set[str] | None = None

    @property
    def selected(self) -> frozenset[str]:
        return frozenset(self._selected)

    @property
    def deselected(self) -> frozenset[str]:
        return frozenset(self._deselected)

    @property
    def is_dependency(self) -> frozenset[str]:
        return frozenset(self._is_dependency)

    @property
    def files(self) -> list[FileItem]:
        return list(self._files)

    @property
    def closure_enabled(self) -> bool:
        return self.resolve_deps and self.max_depth > 0

    def is_selected(self, path: str) -> bool:
        return path in self._selected

    def status(self, path: str) -> SelectionStatus:
        if path in self._selected:
            if path in self._is_dependency:
                return SelectionStatus.SELECTED_DEPENDENCY
            return SelectionStatus.SELECTED_DIRECT
        if path in self._deselected:
            return SelectionStatus.DESELECTED_OVERRIDE
        return SelectionStatus.UNSELECTED

    def set_files(self, files: Iterable[FileItem]) -> None:
        """Install a new walk snapshot; selection and dependency state are kept."""
        self._files = list(files)

    def reset(self) -> None:
        self._selected.clear()
        self._deselected.clear()
        self._is_dependency.clear()
        self._edges.clear()
        self.warnings = []

    def selected_files(self) -> list[str]:
        """Selected paths that are regular files, sorted."""
        return sorted(p for p in self._selected if (self.root / p).is_file())

    # ---------------------------------------------------------------- search

    def update_search(self, query: str) -> list[str]:
        """Scope directory selection to files fuzzy-matching ``query``.

        Args:
            query (str): the search text; blank clears the search.

        Returns:
            list[str]: the matching file paths, in walk order.
        """
        if not query.strip():
            self._search_results = None
            return []
        matches = [item.path for item in self._files if not item.is_dir and fuzzy_match(query, item.path)]
        self._search_results = set(matches)
        return matches

    def clear_search(self) -> None:
        self._search_results = None

    # ---------------------------------------------------------------- toggling

    def toggle(self, path: str, is_dir: bool) -> None:
        """Flip the selection of ``path`` and update dependencies accordingly.

        Args:
            path (str): project-relative path of a file or directory.
            is_dir (bool): whether ``path`` is a directory.
        """
        path = normalize_rel_path(path)
        if not path:
            return
        self.warnings = []
        if not (self.root / path).exists():
            logger.warning("toggle_target_missing", path=path)
            self.warnings.append(f"cannot access {path}")
            return

        if is_dir:
            if path in self._selected:
                self._deselect_directory(path)
            else:
                self._select_directory(path)
        elif path in self._selected:
            self._deselect_file(path)
        else:
            self._select_file(path)

    def _select_file(self, path: str) -> None:
        self._selected.add(path)
        self._deselected.discard(path)
        self._is_dependency.discard(path)
        self._run_closure([QueuedDep(path=path, depth=0)])

    def _deselect_file(self, path: str) -> None:
        self._selected.discard(path)
        self._is_dependency.discard(path)
        self._set_override(path)
        self._prune_unreachable_dependencies()

    def _select_directory(self, path: str) -> None:
        self._selected.add(path)
        self._deselected.discard(path)
        self._is_dependency.discard(path)

        prefix = path + "/"
        scoped = self._search_results or None
        removed = False
        frontier: list[QueuedDep] = []
        for item in self._files:
            if not item.path.startswith(prefix):
                continue
            if item.is_dir:
                if not self.visibility.is_filtered_out(item.path):
                    self._selected.add(item.path)
                    self._deselected.discard(item.path)
                continue
            if not self.visibility.is_visible(item.path, item.size):
                continue
            if scoped is not None and item.path not in scoped:
                removed = removed or item.path in self._selected
                self._selected.discard(item.path)
                self._is_dependency.discard(item.path)
                self._deselected.add(item.path)
                continue
            if item.path not in self._selected:
                frontier.append(QueuedDep(path=item.path, depth=0))
            self._selected.add(item.path)
            self._deselected.discard(item.path)
            self._is_dependency.discard(item.path)

        if removed:
            self._prune_unreachable_dependencies()
        self._run_closure(frontier)

    def _deselect_directory(self, path: str) -> None:
        prefix = path + "/"
        removed = [p for p in self._selected if p == path or p.startswith(prefix)]
        for p in removed:
            self._selected.discard(p)
            self._is_dependency.discard(p)

        stale_overrides = [p for p in self._deselected if p.startswith(prefix)]
        for p in {*removed, *stale_overrides}:
            self._set_override(p)
        self._prune_unreachable_dependencies()

    def _set_override(self, path: str) -> None:
        """Record an override for an unselected path only while an ancestor is selected."""
        if find_parent_directory(path, self._selected) is not None:
            self._deselected.add(path)
        else:
            self._deselected.discard(path)

    # ---------------------------------------------------------------- closure

    def _run_closure(self, frontier: list[QueuedDep]) -> None:
        if not self.closure_enabled or not frontier:
            return
        queue: deque[QueuedDep] = deque(frontier)
        processed = {item.path for item in frontier}
        added = 0

        while queue:
            current = queue.popleft()
            if current.depth >= self.max_depth:
                continue
            deps = self._resolve(current.path)
            if deps is None:
                continue

            accepted: set[str] = set()
            for dep in sorted(deps):
                if not self._is_candidate(dep):
                    continue
                accepted.add(dep)
                if dep in self._selected:
                    self._deselected.discard(dep)
                    continue
                self._selected.add(dep)
                self._is_dependency.add(dep)
                self._deselected.discard(dep)
                added += 1
                logger.info("dependency_added", path=dep, depth=current.depth + 1, required_by=current.path)
                if dep not in processed:
                    processed.add(dep)
                    queue.append(QueuedDep(path=dep, depth=current.depth + 1))
            self._edges[current.path] = accepted

        logger.info("closure_completed", seeds=len(frontier), added=added, selected=len(self._selected))

    def _resolve(self, path: str) -> set[str] | None:
        """Direct dependencies of ``path``; None when it cannot be read or parsed."""
        if self.registry.get(path) is None:
            return set()
        try:
            content = (self.root / path).read_bytes()
        except OSError as e:
            logger.warning("dependency_read_failed", path=path, error=str(e))
            self.warnings.append(f"cannot read {path} for dependency resolution: {e}")
            return None
        try:
            deps = self.registry.resolve(content, path, self.root, self.module_context)
        except ResolverError as e:
            logger.warning("dependency_resolution_failed", path=path, error=str(e))
            self.warnings.append(str(e))
            return None
        return {normalize_rel_path(d) for d in deps}

    def _is_candidate(self, dep: str) -> bool:
        full = self.root / dep
        try:
            st = full.stat()
        except OSError:
            return False
        if not full.is_file():
            return False
        return self.visibility.is_visible(dep, st.st_size)

    def _prune_unreachable_dependencies(self) -> None:
        """Drop dependencies no longer reachable from a directly selected file.

        Reachability follows the recorded edges through selected paths only, at most
        ``max_depth`` hops. A dependency under a selected directory is kept.
        """
        if not self._is_dependency:
            return
        roots = [p for p in self._selected if p not in self._is_dependency]
        seen = set(roots)
        queue: deque[QueuedDep] = deque(QueuedDep(path=p, depth=0) for p in roots)
        limit = max(self.max_depth, 0)
        while queue:
            current = queue.popleft()
            if current.depth >= limit:
                continue
            for dep in self._edges.get(current.path, ()):
                if dep in self._selected and dep not in seen:
                    seen.add(dep)
                    queue.append(QueuedDep(path=dep, depth=current.depth + 1))

        for dep in sorted(self._is_dependency - seen):
            if find_parent_directory(dep, self._selected) is not None:
                continue
            self._selected.discard(dep)
            self._is_dependency.discard(dep)
            self._deselected.discard(dep)
            logger.info("dependency_pruned", path=dep)

    # ---------------------------------------------------------------- visibility

    def filter_selections(self) -> None:
        """Purge paths that are hidden or gitignored under the current visibility toggles."""
        for p in list(self._selected):
            if self.visibility.is_filtered_out(p):
                self._selected.discard(p)
                self._is_dependency.discard(p)
                self._edges.pop(p, None)
        for p in list(self._deselected):
            if self.visibility.is_filtered_out(p):
                self._deselected.discard(p)

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Self

from codegrab.dependencies import ResolverRegistry, sniff_module_context
from codegrab.file_cache import FileCache
from codegrab.file_manipulation import ensure_root, relpath, walk_directory
from codegrab.filters import FilterManager, GitIgnoreManager, Visibility
from codegrab.logging import logger
from codegrab.selection import SelectionEngine
from codegrab.token_cache import TokenCache

if TYPE_CHECKING:
    from types import TracebackType

    from codegrab.config import FileItem
    from codegrab.settings import Settings


class GrabSession:
    """Application state of one codegrab run.

    Owns the content cache, the token cache, the visibility rules, the resolver
    registry and the selection engine, and keeps the file listing in sync with
    the visibility toggles.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        cache: FileCache | None = None,
        registry: ResolverRegistry | None = None,
    ) -> None:
        self.settings = settings
        self.root = ensure_root(Path(settings.root))
        self.cache = cache or FileCache(settings.cache_max_bytes, settings.cache_max_items)
        self.registry = registry or ResolverRegistry.default()
        self.tokens = TokenCache(self.cache, workers=settings.token_workers, queue_size=settings.token_queue_size)
        self.visibility = Visibility(
            gitignore=GitIgnoreManager.from_root(self.root),
            filters=FilterManager.from_patterns(settings.glob, self.root),
            use_gitignore=not settings.no_gitignore,
            show_hidden=settings.show_hidden,
            max_file_size=settings.max_file_size,
        )
        self.engine = SelectionEngine(
            self.root,
            self.visibility,
            self.registry,
            resolve_deps=settings.deps,
            max_depth=settings.max_depth,
            module_context=sniff_module_context(self.root),
        )
        self.files: list[FileItem] = []
        self.reload_files()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def reload_files(self) -> list[FileItem]:
        """Walk the root again and hand the new listing to the selection engine."""
        self.files = walk_directory(self.root, self.visibility, self.cache)
        self.engine.set_files(self.files)
        logger.info("files_loaded", root=str(self.root), count=len(self.files))
        return self.files

    def toggle(self, path: str, is_dir: bool | None = None) -> None:
        """Toggle ``path``; directory-ness is read from disk when not given."""
        if Path(path).is_absolute():
            path = relpath(Path(path).resolve(), self.root)
        if is_dir is None:
            is_dir = (self.root / path).is_dir()
        self.engine.toggle(path, is_dir)

    def select_all(self) -> None:
        """Select every listed file that is not selected yet."""
        for item in self.files:
            if not item.is_dir and not self.engine.is_selected(item.path):
                self.engine.toggle(item.path, False)

    def toggle_hidden(self) -> bool:
        self.visibility.show_hidden = not self.visibility.show_hidden
        self.engine.filter_selections()
        self.reload_files()
        return self.visibility.show_hidden

    def toggle_gitignore(self) -> bool:
        self.visibility.use_gitignore = not self.visibility.use_gitignore
        self.engine.filter_selections()
        self.reload_files()
        return self.visibility.use_gitignore

    def toggle_dependency_resolution(self) -> bool:
        """Flip dependency resolution; it applies to the next toggles only."""
        self.engine.resolve_deps = not self.engine.resolve_deps
        logger.info("dependency_resolution_toggled", enabled=self.engine.resolve_deps)
        return self.engine.resolve_deps

    def close(self) -> None:
        self.tokens.close()

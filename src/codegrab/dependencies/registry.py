from __future__ import annotations

import os
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable


class Resolver(Protocol):
    """Finds the direct, project-local dependencies of one source file.

    Implementations return paths relative to ``project_root`` with ``/`` separators,
    never the file itself, and raise ``ResolverError`` when the source does not parse.
    The same input bytes must always produce the same set.
    """

    def resolve(
        self,
        content: bytes,
        file_path: str,
        project_root: Path,
        module_context: str,
    ) -> set[str]: ...


RESOLVERS: dict[str, Callable[[], Resolver]] = {}


def register_resolver(extensions: str | list[str]) -> Callable[[type], type]:
    """Class decorator registering a resolver for one or more file extensions.

    Args:
        extensions (str | list[str]): extension(s) including the dot, e.g. ``".go"``.

    Returns:
        Callable[[type], type]: a decorator that records the class in ``RESOLVERS``
        and returns it unchanged.
    """

    def decorator(cls: type) -> type:
        keys = [extensions] if isinstance(extensions, str) else extensions
        for key in keys:
            RESOLVERS[key.lower()] = cls
        return cls

    return decorator


class ResolverRegistry:
    """Extension-keyed dispatch to resolver instances."""

    def __init__(self, resolvers: dict[str, Resolver] | None = None) -> None:
        self._resolvers: dict[str, Resolver] = dict(resolvers or {})

    @classmethod
    def default(cls) -> ResolverRegistry:
        """Build a registry holding one instance of every decorated resolver class."""
        instances: dict[type, Resolver] = {}
        resolvers: dict[str, Resolver] = {}
        for ext, factory in RESOLVERS.items():
            if factory not in instances:
                instances[factory] = factory()
            resolvers[ext] = instances[factory]
        return cls(resolvers)

    @property
    def extensions(self) -> list[str]:
        return sorted(self._resolvers)

    def register(self, extensions: str | Iterable[str], resolver: Resolver) -> None:
        keys = [extensions] if isinstance(extensions, str) else list(extensions)
        for key in keys:
            self._resolvers[key.lower()] = resolver

    def get(self, file_path: str) -> Resolver | None:
        return self._resolvers.get(PurePosixPath(file_path).suffix.lower())

    def resolve(self, content: bytes, file_path: str, project_root: Path, module_context: str = "") -> set[str]:
        """Resolve ``file_path`` with the resolver registered for its extension.

        Unknown extensions have no dependencies.
        """
        resolver = self.get(file_path)
        if resolver is None:
            return set()
        return resolver.resolve(content, file_path, project_root, module_context)


def is_project_local(abs_path: Path, project_root: Path) -> bool:
    try:
        rel = abs_path.relative_to(project_root)
    except ValueError:
        return False
    return str(rel) != "."


def file_exists(abs_path: Path) -> bool:
    return abs_path.is_file()


def normalize_path(path: str | Path, containing_dir: str | Path, project_root: Path) -> str | None:
    """Turn an import target into a project-relative slash path.

    Args:
        path (str | Path): absolute path, or path relative to ``containing_dir``.
        containing_dir (str | Path): directory relative paths are joined onto.
        project_root (Path): absolute project root.

    Returns:
        str | None: the relative path, or None when it points outside the project.
    """
    candidate = Path(path)
    if not candidate.is_absolute():
        candidate = Path(containing_dir) / candidate
    candidate = Path(os.path.normpath(candidate))
    if not is_project_local(candidate, project_root):
        return None
    return candidate.relative_to(project_root).as_posix()

from __future__ import annotations

import ast
from pathlib import Path, PurePosixPath

from codegrab.dependencies.registry import normalize_path, register_resolver
from codegrab.exceptions import ResolverError

SOURCE_DIRS = ("", "src")


def _module_files(module_dir: Path, project_root: Path) -> set[str]:
    """Files standing for a package directory: its ``__init__.py``, else every module in it."""
    init = module_dir / "__init__.py"
    if init.is_file():
        rel = normalize_path(init, project_root, project_root)
        return {rel} if rel else set()
    out: set[str] = set()
    for entry in sorted(module_dir.glob("*.py")):
        if entry.is_file():
            rel = normalize_path(entry, project_root, project_root)
            if rel:
                out.add(rel)
    return out


def _resolve_dotted(base: Path, dotted: str, project_root: Path) -> set[str]:
    """Resolve ``a.b.c`` below ``base`` to ``a/b/c.py`` or the ``a/b/c`` package."""
    target = base.joinpath(*dotted.split("."))
    module_file = target.with_name(target.name + ".py")
    if module_file.is_file():
        rel = normalize_path(module_file, project_root, project_root)
        return {rel} if rel else set()
    if target.is_dir() and normalize_path(target, project_root, project_root) is not None:
        return _module_files(target, project_root)
    return set()


@register_resolver(".py")
class PyResolver:
    """Resolve Python imports that point at modules inside the project.

    Absolute imports are looked up from the project root and from ``src/``; anything
    not found there (standard library, installed packages) is ignored.
    """

    def resolve(self, content: bytes, file_path: str, project_root: Path, module_context: str) -> set[str]:  # noqa: ARG002
        if not content.strip():
            return set()
        try:
            tree = ast.parse(content, filename=file_path)
        except (SyntaxError, ValueError) as e:
            raise ResolverError(path=file_path, reason=str(e)) from e

        roots = [project_root / d for d in SOURCE_DIRS if (project_root / d).is_dir()]
        package_dir = project_root / PurePosixPath(file_path).parent
        deps: set[str] = set()

        for node in ast.walk(tree):
            if isinstance(node, ast.Import):
                for alias in node.names:
                    for root in roots:
                        deps |= _resolve_dotted(root, alias.name, project_root)
            elif isinstance(node, ast.ImportFrom):
                module = node.module or ""
                if node.level:
                    bases = [package_dir.joinpath(*[".."] * (node.level - 1))]
                else:
                    bases = roots
                for base in bases:
                    if module:
                        deps |= _resolve_dotted(base, module, project_root)
                    elif (base / "__init__.py").is_file():
                        init = normalize_path(base / "__init__.py", project_root, project_root)
                        if init:
                            deps.add(init)
                    for alias in node.names:
                        if alias.name == "*":
                            continue
                        submodule = f"{module}.{alias.name}" if module else alias.name
                        deps |= _resolve_dotted(base, submodule, project_root)

        deps.discard(PurePosixPath(file_path).as_posix())
        return deps

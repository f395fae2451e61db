from __future__ import annotations

from pathlib import Path

from codegrab.dependencies.registry import normalize_path, register_resolver
from codegrab.dependencies.treesitter import iter_nodes, node_text, parse


def _import_paths(content: bytes, file_path: str) -> list[str]:
    tree = parse(content, file_path, "go")
    paths: list[str] = []
    for spec in iter_nodes(tree.root_node, {"import_spec"}):
        literal = spec.child_by_field_name("path")
        if literal is None:
            continue
        value = node_text(content, literal).strip('"`')
        if value:
            paths.append(value)
    return paths


@register_resolver(".go")
class GoResolver:
    """Resolve Go imports to the non-test ``.go`` files of the imported package directory."""

    def resolve(self, content: bytes, file_path: str, project_root: Path, module_context: str) -> set[str]:
        containing_dir = (project_root / file_path).parent
        self_path = Path(file_path).as_posix()
        deps: set[str] = set()

        for import_path in _import_paths(content, file_path):
            if import_path.startswith(("./", "../")):
                resolved_dir = normalize_path(import_path, containing_dir, project_root)
            elif module_context and (import_path == module_context or import_path.startswith(module_context + "/")):
                rel = import_path.removeprefix(module_context).lstrip("/") or "."
                resolved_dir = "." if rel == "." else normalize_path(rel, project_root, project_root)
            else:
                # standard library (no dot in the first element) or third party
                continue
            if resolved_dir is None:
                continue

            package_dir = project_root / resolved_dir
            try:
                entries = sorted(package_dir.iterdir())
            except OSError:
                continue
            for entry in entries:
                name = entry.name
                if not name.endswith(".go") or name.endswith("_test.go") or not entry.is_file():
                    continue
                dep = name if resolved_dir == "." else f"{resolved_dir}/{name}"
                if dep != self_path:
                    deps.add(dep)
        return deps

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from codegrab.dependencies.registry import file_exists, normalize_path, register_resolver
from codegrab.dependencies.treesitter import iter_nodes, node_text, parse

if TYPE_CHECKING:
    from tree_sitter import Node

JS_EXTENSIONS = [".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs", ""]

_STATEMENT_TYPES = {"import_statement", "export_statement"}
_CALL_TYPES = {"call_expression"}


def _string_value(content: bytes, node: Node | None) -> str | None:
    if node is None or node.type != "string":
        return None
    return node_text(content, node)[1:-1]


def _is_require_or_import(content: bytes, function: Node | None) -> bool:
    if function is None:
        return False
    if function.type == "import":
        return True
    if function.type == "identifier":
        return node_text(content, function) == "require"
    if function.type == "member_expression":
        prop = function.child_by_field_name("property")
        return prop is not None and node_text(content, prop) == "require"
    return False


def import_specifiers(content: bytes, file_path: str) -> list[str]:
    """Collect module specifiers from imports, re-exports, ``require`` and ``import()``.

    Raises:
        ResolverError: if the file does not parse.
    """
    tree = parse(content, file_path, "tsx")
    specifiers: list[str] = []
    for node in iter_nodes(tree.root_node, _STATEMENT_TYPES | _CALL_TYPES):
        if node.type in _STATEMENT_TYPES:
            value = _string_value(content, node.child_by_field_name("source"))
        elif _is_require_or_import(content, node.child_by_field_name("function")):
            arguments = node.child_by_field_name("arguments")
            first = arguments.named_children[0] if arguments is not None and arguments.named_children else None
            value = _string_value(content, first)
        else:
            value = None
        if value:
            specifiers.append(value)
    return specifiers


def resolve_js_path(import_path: str, containing_dir: Path, project_root: Path) -> str | None:
    """Resolve a relative specifier to an existing file, trying extensions then ``index`` files."""
    base = containing_dir / import_path
    for ext in JS_EXTENSIONS:
        candidate = Path(f"{base}{ext}")
        if file_exists(candidate):
            return normalize_path(candidate, containing_dir, project_root)
    if base.is_dir():
        for ext in JS_EXTENSIONS:
            candidate = base / f"index{ext}"
            if file_exists(candidate):
                return normalize_path(candidate, containing_dir, project_root)
    return None


@register_resolver([".js", ".jsx", ".mjs", ".cjs", ".ts", ".tsx"])
class JSResolver:
    """Resolve relative JavaScript / TypeScript module specifiers.

    Bare specifiers (packages, path aliases) are treated as external.
    """

    def resolve(self, content: bytes, file_path: str, project_root: Path, module_context: str) -> set[str]:  # noqa: ARG002
        containing_dir = (project_root / file_path).parent
        self_path = Path(file_path).as_posix()
        deps: set[str] = set()
        for specifier in import_specifiers(content, file_path):
            if not specifier.startswith(("./", "../")):
                continue
            resolved = resolve_js_path(specifier, containing_dir, project_root)
            if resolved is not None and resolved != self_path:
                deps.add(resolved)
        return deps

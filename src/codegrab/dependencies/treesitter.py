"""Thin helpers over tree-sitter shared by the Go and JS/TS resolvers."""

from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING

from tree_sitter_language_pack import get_parser

from codegrab.exceptions import ResolverError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from tree_sitter import Node, Parser, Tree


@lru_cache(maxsize=8)
def load_parser(language_name: str) -> Parser:
    return get_parser(language_name)


def parse(content: bytes, file_path: str, language_name: str) -> Tree:
    """Parse ``content`` and reject trees containing syntax errors.

    Raises:
        ResolverError: if parsing fails or the tree has error nodes.
    """
    try:
        tree = load_parser(language_name).parse(content)
    except Exception as e:  # noqa: BLE001
        raise ResolverError(path=file_path, reason=f"{language_name} parser failed: {e}") from e
    if tree.root_node.has_error:
        raise ResolverError(path=file_path, reason=f"syntax error in {language_name} source")
    return tree


def node_text(source: bytes, node: Node) -> str:
    return source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")


def iter_nodes(root: Node, types: set[str]) -> Iterator[Node]:
    """Yield every descendant of ``root`` whose type is in ``types``, in source order."""
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type in types:
            yield node
        stack.extend(reversed(node.children))

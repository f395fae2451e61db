"""Per-language resolvers turning source bytes into project-relative dependency paths."""

from codegrab.dependencies import go_resolver, js_resolver, py_resolver
from codegrab.dependencies.module_context import read_go_mod_file, sniff_module_context
from codegrab.dependencies.registry import (
    RESOLVERS,
    Resolver,
    ResolverRegistry,
    file_exists,
    is_project_local,
    normalize_path,
    register_resolver,
)

GoResolver = go_resolver.GoResolver
JSResolver = js_resolver.JSResolver
PyResolver = py_resolver.PyResolver

__all__ = [
    "RESOLVERS",
    "GoResolver",
    "JSResolver",
    "PyResolver",
    "Resolver",
    "ResolverRegistry",
    "file_exists",
    "is_project_local",
    "normalize_path",
    "read_go_mod_file",
    "register_resolver",
    "sniff_module_context",
]

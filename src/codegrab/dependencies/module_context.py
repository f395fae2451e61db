from __future__ import annotations

from pathlib import Path


def read_go_mod_file(root: Path) -> str:
    """Read the module name declared in ``root/go.mod``.

    Args:
        root (Path): the project root.

    Returns:
        str: the module path, or empty string when there is no readable declaration.
    """
    go_mod = Path(root).resolve() / "go.mod"
    try:
        lines = go_mod.read_text(encoding="utf-8", errors="ignore").splitlines()
    except OSError:
        return ""
    for line in lines:
        if line.startswith("module "):
            parts = line.split()
            if len(parts) == 2:  # noqa: PLR2004
                return parts[1].strip('"')
    return ""


def sniff_module_context(root: Path) -> str:
    """Module context handed to resolvers; currently the Go module name."""
    return read_go_mod_file(root)

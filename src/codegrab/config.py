from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePosixPath

from pydantic import BaseModel, ConfigDict, Field, computed_field

EXT2LANG: dict[str, str] = {
    ".bash": "bash",
    ".c": "c",
    ".cc": "cpp",
    ".cfg": "ini",
    ".cjs": "javascript",
    ".conf": "ini",
    ".cpp": "cpp",
    ".css": "css",
    ".go": "go",
    ".h": "c",
    ".hpp": "cpp",
    ".html": "html",
    ".ini": "ini",
    ".java": "java",
    ".js": "javascript",
    ".json": "json",
    ".jsx": "jsx",
    ".md": "markdown",
    ".mjs": "javascript",
    ".php": "php",
    ".py": "python",
    ".rs": "rust",
    ".sh": "bash",
    ".sql": "sql",
    ".toml": "toml",
    ".ts": "typescript",
    ".tsx": "tsx",
    ".xml": "xml",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".zsh": "bash",
}

SPECIAL_NAMES: dict[str, str] = {
    "dockerfile": "dockerfile",
    "makefile": "makefile",
    "go.mod": "go",
}


def guess_language(path: str) -> str:
    """Get the suggested code fence language for a project-relative path.

    Args:
        path (str): slash-separated path of the file.

    Returns:
        str: the fence language, or empty string if unknown.
    """
    pure = PurePosixPath(path)
    special = SPECIAL_NAMES.get(pure.name.lower())
    if special:
        return special
    return EXT2LANG.get(pure.suffix.lower(), "")


class FileItem(BaseModel):
    """One entry of a directory walk.

    Attributes:
        path: Path relative to the project root, slash separated, unique key.
        is_dir: Whether the entry is a directory.
        size: Size in bytes as reported by stat.
        level: Nesting level, the number of slashes in ``path``.
    """

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., min_length=1, description="Project-relative slash path")
    is_dir: bool = Field(default=False, description="Directory flag")
    size: int = Field(default=0, ge=0, description="Size in bytes")

    @computed_field
    @property
    def level(self) -> int:
        """Nesting level of the entry below the root."""
        return self.path.count("/")

    @computed_field
    @property
    def name(self) -> str:
        """Base name of the entry."""
        return PurePosixPath(self.path).name


@dataclass(frozen=True)
class QueuedDep:
    """A frontier entry of the dependency closure.

    ``depth`` counts resolver hops from the nearest directly toggled file.
    """

    path: str
    depth: int

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class CodegrabError(Exception):
    """Base exception for errors in the codegrab package."""

    def __str__(self) -> str:
        message = getattr(self, "message", "")
        return message or self.__class__.__name__


@dataclass(frozen=True)
class FileReadError(CodegrabError):
    """Raised when a file cannot be read from disk."""

    path: Path
    reason: str

    def __str__(self) -> str:
        return f"failed to read file {self.path}: {self.reason}"


@dataclass(frozen=True)
class ResolverError(CodegrabError):
    """Raised when a dependency resolver cannot parse a source file."""

    path: str
    reason: str

    def __str__(self) -> str:
        return f"cannot resolve dependencies for {self.path}: {self.reason}"


@dataclass(frozen=True)
class InvalidSizeError(CodegrabError, ValueError):
    """Raised when a human-readable size string cannot be parsed."""

    value: str
    message: str = "Invalid size string."

    def __str__(self) -> str:
        return f"{self.message} ({self.value!r})"


@dataclass(frozen=True)
class NoFilesSelectedError(CodegrabError):
    """Raised when generation is requested with an empty selection."""

    message: str = "No files selected, skipping generation."


@dataclass(frozen=True)
class NotADirectoryRootError(CodegrabError):
    """Raised when the project root does not exist or is not a directory."""

    folder: Path
    message: str = "The specified root is not a directory."

    def __str__(self) -> str:
        return f"{self.message} ({self.folder})"

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

from dotenv import dotenv_values, find_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

from codegrab.exceptions import InvalidSizeError

ENV_FILE = find_dotenv(usecwd=True)
ENV_PREFIX = "CODEGRAB_"

_SIZE_PATTERN = re.compile(r"^(?P<number>\d+(?:\.\d+)?|\.\d+)\s*(?P<unit>[a-z]*)$")
_SIZE_UNITS: dict[str, int] = {
    "": 1,
    "b": 1,
    "k": 1024,
    "kb": 1024,
    "m": 1024**2,
    "mb": 1024**2,
    "g": 1024**3,
    "gb": 1024**3,
    "t": 1024**4,
    "tb": 1024**4,
}


def parse_size_string(value: str) -> int:
    """Convert a human-readable size (``"100kb"``, ``"2MB"``, ``"1.5g"``) into bytes.

    Args:
        value (str): the size string; the unit is optional and case-insensitive.

    Raises:
        InvalidSizeError: if the string is empty, negative, or uses an unknown unit.

    Returns:
        int: the size in bytes, truncated towards zero.
    """
    text = value.strip().lower()
    if not text:
        raise InvalidSizeError(value=value, message="Size string cannot be empty.")
    match = _SIZE_PATTERN.match(text)
    if match is None:
        raise InvalidSizeError(value=value)
    unit = match.group("unit")
    if unit not in _SIZE_UNITS:
        raise InvalidSizeError(value=value, message="Invalid size unit.")
    return int(float(match.group("number")) * _SIZE_UNITS[unit])


class Settings(BaseModel):
    """Configuration settings for a codegrab run."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    root: Path = Field(default_factory=Path.cwd, description="Project root.")
    output: Path | None = Field(default=None, description="Output file (.md or .jsonl).")
    format: str = Field(default="", description="Force format (md or jsonl).")
    log_file: str = Field(default="", description="Log file path.")

    deps: bool = Field(default=False, description="Include project-local dependencies.")
    max_depth: int = Field(default=1, description="Dependency hops to follow; <= 0 disables.")
    max_file_size: int | None = Field(default=None, description="Skip files above this size.")
    glob: list[str] = Field(default_factory=list, description="Include / !exclude glob.")
    select: list[str] = Field(default_factory=list, description="Paths to toggle on.")
    no_gitignore: bool = Field(default=False, description="Do not honor .gitignore.")
    show_hidden: bool = Field(default=False, description="Include dot files.")

    cache_max_bytes: int = Field(default=100 * 1024 * 1024, gt=0, description="Content cache byte ceiling.")
    cache_max_items: int = Field(default=10_000, gt=0, description="Content cache item ceiling.")
    token_workers: int = Field(default=2, ge=1, description="Token estimation workers.")
    token_queue_size: int = Field(default=100, ge=1, description="Token estimation queue bound.")

    chunk_chars: int = Field(default=24_000, gt=0, description="Chunk size for jsonl.")
    compact: bool = Field(default=False, description="Reduce markdown verbosity.")

    @field_validator("max_file_size", mode="before")
    @classmethod
    def _parse_max_file_size(cls, value: Any) -> Any:  # noqa: ANN401
        if value is None or isinstance(value, int):
            return value
        if isinstance(value, str):
            if value.strip().lower() in {"", "none", "unlimited"}:
                return None
            return parse_size_string(value)
        return value

    @field_validator("format", mode="before")
    @classmethod
    def _normalize_format(cls, value: str) -> str:
        return (value or "").strip().lower()

    @classmethod
    def from_env(cls, **overrides: Any) -> Settings:  # noqa: ANN401
        """Build settings from ``CODEGRAB_*`` keys in the .env file and the environment.

        Process environment wins over the .env file, explicit overrides win over both.
        List fields accept comma separated values.

        Returns:
            Settings: the merged configuration.
        """
        raw: dict[str, Any] = {}
        sources = [dotenv_values(ENV_FILE) if ENV_FILE else {}, os.environ]
        for source in sources:
            for key, val in source.items():
                if not key.startswith(ENV_PREFIX) or val is None:
                    continue
                name = key.removeprefix(ENV_PREFIX).lower()
                if name not in cls.model_fields:
                    continue
                if name in {"glob", "select"}:
                    raw[name] = [part.strip() for part in val.split(",") if part.strip()]
                else:
                    raw[name] = val
        raw.update(overrides)
        return cls(**raw)

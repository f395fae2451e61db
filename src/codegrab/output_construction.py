from __future__ import annotations

import io
import json
from typing import TYPE_CHECKING

from codegrab.config import guess_language
from codegrab.exceptions import FileReadError, NoFilesSelectedError
from codegrab.file_manipulation import build_tree_lines, is_text_file, now_iso
from codegrab.logging import logger
from codegrab.token_cache import estimate_tokens

if TYPE_CHECKING:
    from collections.abc import Collection, Iterator, Sequence
    from pathlib import Path

    from codegrab.file_cache import FileCache
    from codegrab.session import GrabSession
    from codegrab.settings import Settings

FORMATS = ("md", "jsonl")


def _read_selected(root: Path, paths: Sequence[str], cache: FileCache) -> Iterator[tuple[str, str]]:
    """Yield ``(path, text)`` for each readable text file, skipping the rest with a warning."""
    for rel in paths:
        full = root / rel
        try:
            if not cache.get_text_file_status(full, is_text_file):
                logger.warning("binary_file_skipped", path=rel)
                continue
            yield rel, cache.read_text(full)
        except (OSError, FileReadError) as e:
            logger.warning("file_skipped", path=rel, error=str(e))


def build_markdown(
    root: Path,
    paths: Sequence[str],
    cache: FileCache,
    *,
    dependencies: Collection[str] = (),
    compact: bool = False,
) -> str:
    """Build a markdown bundle of the selected files.

    The bundle has a header, a visual tree of the selected paths and one fenced block
    per text file. Files pulled in by dependency resolution are annotated as such.

    Args:
        root (Path): the project root
        paths (Sequence[str]): selected file paths relative to the root
        cache (FileCache): content cache used to read the files
        dependencies (Collection[str]): paths selected as dependencies
        compact (bool): whether to drop the blank line between file sections

    Returns:
        str: the generated markdown
    """
    files = list(_read_selected(root, paths, cache))

    out = io.StringIO()
    out.write("# Project Export for LLM\n")
    out.write(f"root={root}\n")
    out.write(f"generated_at={now_iso()}\n")
    out.write(f"files={len(files)}\n\n")

    tree_lines = build_tree_lines(root.name, [rel for rel, _ in files])
    out.write("## Structure\n")
    out.write("```text\n")
    out.write("\n".join(tree_lines))
    out.write("\n```\n\n")

    for rel, text in files:
        suffix = " (dependency)" if rel in dependencies else ""
        out.write(f"## {rel}{suffix}\n")
        lang = guess_language(rel) or "text"
        body = text.rstrip("\n")
        if compact:
            out.write(f"```{lang}\n{body}\n```\n")
        else:
            out.write(f"```{lang}\n{body}\n```\n\n")

    return out.getvalue().rstrip() + "\n"


def chunk_content(text: str, chunk_chars: int) -> Iterator[tuple[int, int, str]]:
    """Chunk a text string into pieces of at most `chunk_chars` characters, splitting on line boundaries.

    A single line longer than `chunk_chars` is kept whole in its own chunk.

    Args:
        text (str): the text to chunk
        chunk_chars (int): the maximum number of characters in each chunk

    Yields:
        Iterator[tuple[int, int, str]]: an iterator of tuples containing the start line number,
            end line number, and chunk text for each chunk
    """
    if not text:
        yield (0, 0, "")
        return
    lines = text.splitlines()
    buf: list[str] = []
    cur = 0
    start_line = 1
    for i, ln in enumerate(lines, start=1):
        ln2 = ln + "\n"
        if cur + len(ln2) > chunk_chars and buf:
            yield (start_line, i - 1, "".join(buf))
            buf = []
            cur = 0
            start_line = i
        buf.append(ln2)
        cur += len(ln2)
    if buf:
        yield (start_line, start_line + len(buf) - 1, "".join(buf))


def build_jsonl(
    root: Path,
    paths: Sequence[str],
    cache: FileCache,
    *,
    chunk_chars: int,
    dependencies: Collection[str] = (),
) -> str:
    """Build a JSONL stream with one object per chunk of each selected text file."""
    buf = io.StringIO()
    for rel, text in _read_selected(root, paths, cache):
        for idx, (start, end, chunk) in enumerate(chunk_content(text, chunk_chars=chunk_chars)):
            item = {
                "root": str(root),
                "path": rel,
                "language": guess_language(rel),
                "dependency": rel in dependencies,
                "chunk": idx,
                "start_line": start,
                "end_line": end,
                "text": chunk,
            }
            buf.write(json.dumps(item, ensure_ascii=False) + "\n")
    return buf.getvalue()


def resolve_format(fmt: str, output: Path | None) -> str:
    """Pick the output format: explicit wins, else the output suffix, else markdown."""
    fmt = (fmt or "").strip().lower()
    if fmt:
        if fmt not in FORMATS:
            msg = f"Unknown output format: {fmt}"
            raise ValueError(msg)
        return fmt
    if output is not None and output.suffix.lower() == ".jsonl":
        return "jsonl"
    return "md"


def generate(session: GrabSession, settings: Settings) -> tuple[str, str, int]:
    """Render the current selection of ``session``.

    Raises:
        NoFilesSelectedError: if no file is selected.

    Returns:
        tuple[str, str, int]: the content, its format and its estimated token count.
    """
    paths = session.engine.selected_files()
    if not paths:
        raise NoFilesSelectedError
    fmt = resolve_format(settings.format, settings.output)
    dependencies = session.engine.is_dependency
    if fmt == "jsonl":
        content = build_jsonl(
            session.root,
            paths,
            session.cache,
            chunk_chars=settings.chunk_chars,
            dependencies=dependencies,
        )
    else:
        content = build_markdown(
            session.root,
            paths,
            session.cache,
            dependencies=dependencies,
            compact=settings.compact,
        )
    tokens = estimate_tokens(content)
    logger.info("bundle_generated", format=fmt, files=len(paths), tokens=tokens)
    return content, fmt, tokens

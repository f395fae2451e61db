"""
codegrab: bundle selected project files, and the local files they import, for an LLM.

Overview
--------
The non-interactive entry point walks the project root, applies the visibility
rules (gitignore, hidden files, globs, size limit), toggles the requested paths
through the selection engine and writes the resulting bundle:

1) **Markdown (`--format md`)**: a tree of the selected files followed by one
   fenced code block per file; files pulled in as dependencies are annotated.

2) **JSONL (`--format jsonl`)**: one JSON object per chunk of each file.

With `--deps`, Go, JavaScript/TypeScript and Python imports pointing inside the
project are followed up to `--max-depth` hops (`-1` for unlimited).

Usage
-----
    - Whole project as markdown:
        codegrab --output bundle.md

    - One file and what it imports, two levels deep:
        codegrab --select cmd/main.go --deps --max-depth 2 --output bundle.md

    - Only Go sources, excluding tests, as JSONL:
        codegrab --glob "*.go" --glob "!*_test.go" --output corpus.jsonl
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from codegrab import __version__
from codegrab.exceptions import CodegrabError, NoFilesSelectedError
from codegrab.logging import logger, setup_logging
from codegrab.output_construction import generate
from codegrab.session import GrabSession
from codegrab.settings import Settings

if TYPE_CHECKING:
    from collections.abc import Sequence


def parse_args(argv: Sequence[str] | None = None) -> Settings:
    p = argparse.ArgumentParser(
        prog="codegrab",
        description="Bundle project files and their local dependencies for LLM consumption (md/jsonl).",
    )
    p.add_argument("root", nargs="?", default=None, help="Project root. Defaults to the current directory.")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument(
        "-o",
        "--output",
        type=str,
        default="",
        help="Output file (.md or .jsonl). Defaults to codegrab-output.<format> in the root.",
    )
    p.add_argument(
        "--format",
        type=str,
        choices=["md", "jsonl"],
        default="",
        help="Force format.",
    )
    p.add_argument("--log-file", type=str, default="", help="Log file path.")

    p.add_argument(
        "-s",
        "--select",
        action="append",
        default=[],
        help="Path to select, file or directory (repeatable). Defaults to every file.",
    )
    p.add_argument(
        "-g",
        "--glob",
        action="append",
        default=[],
        help="Include glob, or exclude glob when prefixed with ! (repeatable).",
    )
    p.add_argument(
        "--deps",
        action="store_true",
        help="Also select project-local files imported by the selection.",
    )
    p.add_argument(
        "--max-depth",
        type=int,
        default=1,
        help="Dependency hops to follow, -1 for unlimited.",
    )
    p.add_argument(
        "--max-file-size",
        type=str,
        default="",
        help="Skip files larger than this (e.g. 100kb, 2MB).",
    )
    p.add_argument("--no-gitignore", action="store_true", help="Do not honor .gitignore.")
    p.add_argument("--show-hidden", action="store_true", help="Include dot files and directories.")
    p.add_argument("--compact", action="store_true", help="Reduce markdown verbosity.")
    p.add_argument(
        "--chunk-chars",
        type=int,
        default=24_000,
        help="Chunk size for jsonl.",
    )
    args = p.parse_args(argv)

    # only flags given explicitly override CODEGRAB_* environment values
    values = {k: v for k, v in vars(args).items() if v != p.get_default(k)}
    if values.get("max_depth", 0) < 0:
        values["max_depth"] = sys.maxsize
    if "output" in values:
        values["output"] = Path(values["output"])
    if "root" in values:
        values["root"] = Path(values["root"])
    return Settings.from_env(**values)


def main(argv: Sequence[str] | None = None) -> int:
    settings = parse_args(argv)
    if settings.log_file:
        setup_logging(settings.log_file)

    try:
        with GrabSession(settings) as session:
            if settings.select:
                for path in settings.select:
                    session.toggle(path)
                    for warning in session.engine.warnings:
                        print(f"warning: {warning}", file=sys.stderr)
            else:
                session.select_all()

            content, fmt, tokens = generate(session, settings)
            out_path = settings.output or session.root / f"codegrab-output.{fmt}"
            out_path.write_text(content, encoding="utf-8")
            files = len(session.engine.selected_files())
    except NoFilesSelectedError as e:
        print(str(e), file=sys.stderr)
        return 1
    except CodegrabError as e:
        logger.error("codegrab_failed", error=str(e))
        print(f"error: {e}", file=sys.stderr)
        return 2

    logger.info("output_written", path=str(out_path), format=fmt, files=files, tokens=tokens)
    print(f"Wrote {out_path} format={fmt} files={files} tokens={tokens}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

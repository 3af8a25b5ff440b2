"""
codepack: pack a project directory into a single AI-readable artifact.

Nine output formats are available: enhanced markdown (`markdown`), JSON,
YAML, TOML, a base64 MessagePack archive (`msgpack`), markdown with YAML
frontmatter (`mdyaml`), a terse line grammar (`dsl`), JSON-LD (`jsonld`) and
an optimized markdown (`mdopt`).

Usage
-----
Run `codepack --help` for full options. Common examples:
    - Markdown of the current directory:
        codepack -o context.md

    - Smart, grouped markdown of another project:
        codepack ../app -s -o app.md

    - Every format at once, without writing anything:
        codepack --all-formats -d -o out/pack.md

    - Log to a file:
        codepack -f json -o pack.json --log-file codepack.log
"""

from __future__ import annotations

import argparse
import sys
from typing import TYPE_CHECKING

from pydantic import ValidationError

from codepack import __version__
from codepack.config import OutputFormat
from codepack.exceptions import CodePackError
from codepack.logging import logger, setup_logging
from codepack.orchestrator import run
from codepack.reporting import format_summary
from codepack.settings import Settings

if TYPE_CHECKING:
    from collections.abc import Sequence

    from codepack.config import ProgressEvent


def split_patterns(raw: str | None) -> list[str]:
    """Split a comma-separated pattern list, dropping blanks."""
    return [p.strip() for p in (raw or "").split(",") if p.strip()]


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="codepack",
        description="Compress entire codebases into AI-friendly single files with 9 output formats.",
    )
    p.add_argument("input", nargs="?", default=None, help="Input directory (defaults to the current directory).")
    p.add_argument("-i", "--input", dest="input_opt", default=None, help="Input directory (alternative to positional).")
    p.add_argument("-o", "--output", default="codepack-output.md", help="Output file path.")
    p.add_argument("-e", "--exclude", default="", help="Extra exclude patterns (comma-separated).")
    p.add_argument(
        "--no-default-excludes",
        action="store_true",
        help="Do not apply the built-in exclude patterns.",
    )
    p.add_argument("-c", "--compact", action="store_true", help="Compact mode: minimize output size.")
    p.add_argument("-s", "--smart", action="store_true", help="Smart mode: aggressive, grouped output.")
    p.add_argument("-m", "--max-size", type=int, default=500, help="Maximum file size in KB.")
    p.add_argument("-v", "--verbose", action="store_true", help="Verbose logging.")
    p.add_argument(
        "--no-respect-gitignore",
        action="store_true",
        help="Do not apply the root .gitignore.",
    )
    p.add_argument(
        "-f",
        "--format",
        default="markdown",
        help=f"Output format: {'|'.join(OutputFormat)}.",
    )
    p.add_argument(
        "--all-formats",
        action="store_true",
        help="Generate every output format next to --output.",
    )
    p.add_argument("-d", "--dry-run", action="store_true", help="Report sizes without writing.")
    p.add_argument("--log-file", type=str, default=None, help="Log file path.")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p


def parse_args(argv: Sequence[str] | None = None) -> Settings:
    parser = build_parser()
    args = parser.parse_args(argv)
    fields = {
        "input": args.input or args.input_opt or ".",
        "output": args.output,
        "exclude": split_patterns(args.exclude),
        "use_default_excludes": not args.no_default_excludes,
        "compact": args.compact,
        "smart": args.smart,
        "max_size_kb": args.max_size,
        "format": args.format,
        "all_formats": args.all_formats,
        "dry_run": args.dry_run,
        "respect_gitignore": not args.no_respect_gitignore,
        "verbose": args.verbose,
    }
    if args.log_file is not None:
        fields["log_file"] = args.log_file
    try:
        return Settings(**fields)
    except ValidationError as e:
        parser.error(str(e))


def log_progress(event: ProgressEvent) -> None:
    logger.debug("progress", stage=str(event.stage), current=event.current, total=event.total, detail=event.detail)


def main(argv: Sequence[str] | None = None) -> int:
    settings = parse_args(argv)
    if settings.log_file or settings.verbose:
        setup_logging(settings.log_file or None, verbose=settings.verbose)

    try:
        report = run(settings, progress=log_progress)
    except CodePackError as e:
        logger.error("run_failed", error=e.message)
        print(f"❌ {e.message}", file=sys.stderr)
        return 1

    print(format_summary(report), end="")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

from __future__ import annotations

import io
from typing import TYPE_CHECKING

from codepack.file_manipulation import round_kb

if TYPE_CHECKING:
    from collections.abc import Sequence

    from codepack.config import ProcessingError, SkippedFile
    from codepack.orchestrator import FormatResult, RunReport

SINGLE_SKIPPED_PREVIEW = 10
SINGLE_ERROR_PREVIEW = 5
ALL_SKIPPED_PREVIEW = 5
ALL_ERROR_PREVIEW = 3
RULE_WIDTH = 60


def _preview(lines: Sequence[str], cap: int) -> list[str]:
    out = [f"   - {line}" for line in lines[:cap]]
    if len(lines) > cap:
        out.append(f"   ... and {len(lines) - cap} more")
    return out


def skipped_section(skipped: Sequence[SkippedFile], max_file_size: int, cap: int) -> list[str]:
    """Capped preview of files left out for size, empty when there are none."""
    if not skipped:
        return []
    header = f"⚠️  Skipped {len(skipped)} large files (>{round_kb(max_file_size)}KB):"
    return [header, *_preview([f"{s.name} ({s.size}KB)" for s in skipped], cap)]


def errors_section(errors: Sequence[ProcessingError], cap: int) -> list[str]:
    """Capped preview of processing errors, empty when there are none."""
    if not errors:
        return []
    return ["⚠️  Errors encountered:", *_preview([e.message for e in errors], cap)]


def size_comparison(results: Sequence[FormatResult]) -> list[str]:
    """Table of generated formats sorted by size, with the ratio to the smallest.

    Args:
        results (Sequence[FormatResult]): successful format results

    Returns:
        list[str]: table lines, empty unless at least two formats have a size
    """
    sized = sorted((r for r in results if r.size), key=lambda r: r.size)
    if len(sized) < 2:  # noqa: PLR2004
        return []
    smallest = sized[0].size
    lines = ["📊 SIZE COMPARISON:", "Format     Size (KB)  Ratio   Description", "-" * 70]
    for r in sized:
        ratio = f"{r.size / smallest:.1f}"
        lines.append(f"{r.format:<10} {round_kb(r.size):>6}KB  {ratio:>5}x  {r.format.description}")
    return lines


def single_format_summary(report: RunReport) -> str:
    out = io.StringIO()
    result = report.results[0]
    size_kb = round_kb(result.size)
    if report.dry_run:
        out.write("🗺️ Dry run results:\n")
        out.write(f"📊 Would compress {report.total_files} files\n")
        out.write(f"📁 Output would be {size_kb}KB\n")
        out.write(f"📋 Output would be written to: {result.path}\n")
        out.write(f"📦 Format: {result.format}\n")
        if report.smart:
            out.write("🧠 Mode: Smart\n")
        elif report.compact:
            out.write("📉 Mode: Compact\n")
    else:
        out.write(f"✅ CodePack completed! Output saved to: {result.path}\n")
        out.write(f"📊 Compressed {report.total_files} files ({size_kb}KB)\n")

    for section in (
        skipped_section(report.skipped_files, report.max_file_size, SINGLE_SKIPPED_PREVIEW),
        errors_section(report.errors, SINGLE_ERROR_PREVIEW),
    ):
        if section:
            out.write("\n" + "\n".join(section) + "\n")
    return out.getvalue()


def all_formats_summary(report: RunReport) -> str:
    """Summary of an all-formats run.

    Lists successes and failures, the combined size, each target path and the
    size comparison table, then capped previews of skipped files and errors.
    """
    successful = report.successful
    failed = report.failed
    total = len(report.results)

    out = io.StringIO()
    out.write("=" * RULE_WIDTH + "\n")
    out.write("📋 ALL FORMATS GENERATION SUMMARY\n")
    out.write("=" * RULE_WIDTH + "\n")
    out.write(f"✅ Successful: {len(successful)}/{total}\n")
    out.write(f"❌ Failed: {len(failed)}/{total}\n")
    out.write(f"📊 Total size: {round_kb(report.total_size)}KB\n\n")
    out.write("🗺️ Dry run - no files written\n" if report.dry_run else "📁 Files generated:\n")

    for r in successful:
        icon = "🗺️" if report.dry_run else "✅"
        out.write(f"  {icon} {r.format:<10} - {r.path} ({round_kb(r.size)}KB)\n")
        out.write(f"     {r.format.description}\n")

    if failed:
        out.write("\n❌ Failed formats:\n")
        for r in failed:
            out.write(f"  ❌ {r.format:<10} - {r.error}\n")

    if not report.dry_run:
        table = size_comparison(successful)
        if table:
            out.write("\n" + "\n".join(table) + "\n")

    for section in (
        skipped_section(report.skipped_files, report.max_file_size, ALL_SKIPPED_PREVIEW),
        errors_section(report.errors, ALL_ERROR_PREVIEW),
    ):
        if section:
            out.write("\n" + "\n".join(section) + "\n")
    return out.getvalue()


def format_summary(report: RunReport) -> str:
    """Human-readable summary of a finished run."""
    if report.all_formats:
        return all_formats_summary(report)
    return single_format_summary(report)

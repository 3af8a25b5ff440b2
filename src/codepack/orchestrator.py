from __future__ import annotations

from collections import Counter
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, computed_field

from codepack.analysis import analyze_project
from codepack.config import (
    Analysis,
    OutputFormat,
    ProcessingError,
    ProgressEvent,
    ProgressStage,
    RunMetadata,
    RunOptions,
    SkippedFile,
)
from codepack.content_processing import load_records
from codepack.exceptions import CodePackError, FileAccessError, OutputTooLargeError, RenderError
from codepack.file_manipulation import classify_files, discover_files, now_utc, validate_input_path
from codepack.logging import logger
from codepack.output_construction import resolve_format
from codepack.rendering import render_document

if TYPE_CHECKING:
    from collections.abc import Sequence

    from codepack.config import FileRecord, OutputDocument, ProgressCallback
    from codepack.settings import Settings


class FormatStatus(StrEnum):
    """Outcome of one format in a run."""

    COMPLETED = "completed"
    DRY_RUN = "dry-run"
    FAILED = "failed"


class FormatResult(BaseModel):
    """What happened to one output format."""

    model_config = ConfigDict(frozen=True)

    format: OutputFormat
    path: Path
    status: FormatStatus
    size: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status != FormatStatus.FAILED


class RunReport(BaseModel):
    """Everything the summary needs once a run has finished."""

    model_config = ConfigDict(frozen=True)

    source: Path
    total_files: int
    all_formats: bool = False
    dry_run: bool = False
    compact: bool = False
    smart: bool = False
    max_file_size: int
    analysis: Analysis = Field(default_factory=Analysis)
    results: list[FormatResult] = Field(default_factory=list)
    skipped_files: list[SkippedFile] = Field(default_factory=list)
    errors: list[ProcessingError] = Field(default_factory=list)

    @computed_field
    @property
    def total_size(self) -> int:
        """Combined byte size of every successfully generated document."""
        return sum(r.size for r in self.results if r.ok)

    @property
    def successful(self) -> list[FormatResult]:
        return [r for r in self.results if r.ok]

    @property
    def failed(self) -> list[FormatResult]:
        return [r for r in self.results if not r.ok]


def output_path_for(output: Path, fmt: OutputFormat, *, all_formats: bool) -> Path:
    """Target path of one format.

    Single-format runs write to `output` unchanged; all-formats runs replace
    its suffix with the format's own (`out.md` becomes `out.dsl.txt`).

    Args:
        output (Path): the configured output path
        fmt (OutputFormat): the format being written
        all_formats (bool): whether the run produces every format

    Returns:
        Path: where the document goes
    """
    if not all_formats:
        return output
    base = output.with_suffix("")
    return base.with_name(f"{base.name}.{fmt.suffix}")


def build_run_metadata(
    settings: Settings,
    root: Path,
    records: Sequence[FileRecord],
    skipped: Sequence[SkippedFile],
    errors: Sequence[ProcessingError],
) -> RunMetadata:
    """Freeze the per-run facts shared by every renderer; the timestamp is taken once here."""
    counts = Counter(str(r.file_type) for r in records)
    return RunMetadata(
        generated_at=now_utc(),
        source=str(root),
        total_files=len(records),
        file_type_counts=dict(counts),
        options=RunOptions(
            compact=settings.compact,
            smart=settings.smart,
            max_file_size=settings.max_file_size,
            respect_gitignore=settings.respect_gitignore,
        ),
        skipped_files=list(skipped),
        errors=list(errors),
    )


def check_output_size(doc: OutputDocument, limit: int) -> None:
    """Raise `OutputTooLargeError` when a document exceeds the aggregate ceiling."""
    if doc.byte_length > limit:
        raise OutputTooLargeError(format=str(doc.format), size=doc.byte_length, limit=limit)


def write_document(doc: OutputDocument, target: Path) -> None:
    """Write a document, creating parent directories first.

    Raises:
        FileAccessError: if the directory or the file cannot be written.
    """
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(doc.text, encoding="utf-8", newline="")
    except OSError as e:
        raise FileAccessError(path=str(target), reason=str(e), action="write") from e


def produce_format(
    fmt: OutputFormat,
    records: Sequence[FileRecord],
    analysis: Analysis,
    meta: RunMetadata,
    *,
    target: Path,
    limit: int,
    dry_run: bool,
) -> FormatResult:
    """Generate, size-check and persist one format.

    The size check happens before any write, so an oversized document leaves
    nothing behind.

    Raises:
        RenderError: if the renderer fails or its text is not valid UTF-8.
        OutputTooLargeError: if the document exceeds `limit`.
        FileAccessError: if the document cannot be written.
    """
    try:
        doc = render_document(fmt, records, analysis, meta)
        size = doc.byte_length
    except ValueError as e:
        raise RenderError(format=str(fmt), reason=str(e)) from e
    check_output_size(doc, limit)
    if dry_run:
        logger.info("format_dry_run", format=str(fmt), size=size, path=str(target))
        return FormatResult(format=fmt, path=target, status=FormatStatus.DRY_RUN, size=size)
    write_document(doc, target)
    logger.info("format_written", format=str(fmt), size=size, path=str(target))
    return FormatResult(format=fmt, path=target, status=FormatStatus.COMPLETED, size=size)


def run(settings: Settings, progress: ProgressCallback | None = None) -> RunReport:
    """Run codepack end to end.

    Validates the input root, resolves the format, discovers and classifies
    files, loads their content once, analyzes the project and renders the
    requested format (or all nine).

    In a single-format run any `CodePackError` aborts the run. In an
    all-formats run a failing format is recorded and the loop moves on.

    Args:
        settings (Settings): the run configuration
        progress (ProgressCallback | None): optional progress callback

    Raises:
        InvalidPathError: if the input is missing or not a directory.
        RestrictedPathError: if the input lies under a restricted location.
        UnsupportedFormatError: if the requested format is unknown.
        OutputTooLargeError: if the single requested document is too large.

    Returns:
        RunReport: per-format outcomes plus skipped files and errors
    """

    def emit(stage: ProgressStage, current: int = 0, total: int = 0, detail: str = "") -> None:
        if progress is not None:
            progress(ProgressEvent(stage=stage, current=current, total=total, detail=detail))

    root = validate_input_path(settings.input)
    formats = list(OutputFormat) if settings.all_formats else [resolve_format(settings.format)]

    errors: list[ProcessingError] = []
    candidates = discover_files(
        root,
        settings.exclude_patterns,
        respect_gitignore=settings.respect_gitignore,
        errors=errors,
    )
    scan = classify_files(root, candidates, max_file_size=settings.max_file_size)
    errors.extend(scan.errors)
    logger.info(
        "files_discovered",
        root=str(root),
        included=len(scan.included),
        skipped=len(scan.skipped_files),
        errors=len(errors),
    )
    emit(ProgressStage.FILES_DISCOVERED, len(scan.included), len(scan.included))

    records = load_records(root, scan.included, mode=settings.content_mode, errors=errors, progress=progress)
    analysis = analyze_project([r.path for r in records])
    meta = build_run_metadata(settings, root, records, scan.skipped_files, errors)

    results: list[FormatResult] = []
    for idx, fmt in enumerate(formats, start=1):
        target = output_path_for(settings.output, fmt, all_formats=settings.all_formats)
        kwargs = {"target": target, "limit": settings.total_size_limit, "dry_run": settings.dry_run}
        if settings.all_formats:
            try:
                result = produce_format(fmt, records, analysis, meta, **kwargs)
            except CodePackError as e:
                logger.error("format_failed", format=str(fmt), error=e.message)
                result = FormatResult(format=fmt, path=target, status=FormatStatus.FAILED, error=e.message)
        else:
            result = produce_format(fmt, records, analysis, meta, **kwargs)
        results.append(result)
        emit(ProgressStage.FORMAT_GENERATED, idx, len(formats), str(fmt))

    emit(ProgressStage.RUN_COMPLETE, len(formats), len(formats))
    return RunReport(
        source=root,
        total_files=meta.total_files,
        all_formats=settings.all_formats,
        dry_run=settings.dry_run,
        compact=settings.compact,
        smart=settings.smart,
        max_file_size=settings.max_file_size,
        analysis=analysis,
        results=results,
        skipped_files=meta.skipped_files,
        errors=meta.errors,
    )

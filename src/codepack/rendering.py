from __future__ import annotations

from typing import TYPE_CHECKING

from codepack.config import RENDERERS, OutputDocument, OutputFormat
from codepack.exceptions import UnsupportedFormatError
from codepack.markdown_construction import MARKDOWN_FORMATS
from codepack.output_construction import STRUCTURED_FORMATS

if TYPE_CHECKING:
    from collections.abc import Sequence

    from codepack.config import Analysis, FileRecord, RunMetadata

HANDLED_FORMATS: frozenset[OutputFormat] = frozenset((*STRUCTURED_FORMATS, *MARKDOWN_FORMATS))


def render_document(
    fmt: OutputFormat,
    files: Sequence[FileRecord],
    analysis: Analysis,
    meta: RunMetadata,
) -> OutputDocument:
    """Dispatch to the renderer registered for `fmt`.

    Args:
        fmt (OutputFormat): the format to produce
        files (Sequence[FileRecord]): the loaded records
        analysis (Analysis): the project analysis
        meta (RunMetadata): per-run facts

    Raises:
        UnsupportedFormatError: if no renderer is registered for `fmt`.

    Returns:
        OutputDocument: the generated document
    """
    renderer = RENDERERS.get(fmt) if fmt in HANDLED_FORMATS else None
    if renderer is None:
        raise UnsupportedFormatError(format=str(fmt))
    return OutputDocument(format=fmt, text=renderer(files, analysis, meta))

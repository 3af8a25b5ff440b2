"""Content loading and mode-driven text normalization.

Compact and smart modes are regex based and explicitly lossy: comment-like
sequences inside string literals (for example `"http://host"`) are stripped
like real comments. The output shape is kept as is.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from codepack.config import (
    FILE_DESCRIPTIONS,
    ContentMode,
    FileRecord,
    FileType,
    ProcessingError,
    ProgressEvent,
    ProgressStage,
)
from codepack.exceptions import FileAccessError
from codepack.logging import logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from codepack.config import ProgressCallback

PACKAGE_MARKER_NAME = "__init__.py"

SCRIPT_FAMILY = frozenset({"js", "jsx", "ts", "tsx"})
STYLESHEET_FAMILY = frozenset({"css", "scss"})

_BLOCK_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)
_LINE_COMMENT = re.compile(r"//.*$", re.MULTILINE)
_TRAILING_WHITESPACE = re.compile(r"[ \t]+$", re.MULTILINE)
_EXTRA_NEWLINES = re.compile(r"\n{3,}")

_DESTRUCTURED_IMPORT = re.compile(r"""import\s*\{\s*([^}]+)\s*\}\s*from\s*['"]([^'"]+)['"]""")
_SCRIPT_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\s*=\s*"), "="),
    (re.compile(r"\s*\(\s*"), "("),
    (re.compile(r"\s*\)\s*"), ")"),
    (re.compile(r"\s*\{\s*"), "{"),
    (re.compile(r"\s*\}\s*"), "}"),
    (re.compile(r"\s*,\s*"), ","),
    (re.compile(r"\s*;\s*"), ";"),
    (re.compile(r"function\s+(\w+)\s*\("), r"function \1("),
    (re.compile(r"\)\s*\{\s*"), "){"),
    (re.compile(r"\n{2,}"), "\n"),
)
_STYLESHEET_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\s*\{\s*"), "{"),
    (re.compile(r"\s*\}\s*"), "}"),
    (re.compile(r"\s*:\s*"), ":"),
    (re.compile(r"\s*;\s*"), ";"),
    (re.compile(r"\n+"), ""),
)


def _normalize_once(text: str) -> str:
    text = _BLOCK_COMMENT.sub("", text)
    text = _LINE_COMMENT.sub("", text)
    text = _TRAILING_WHITESPACE.sub("", text)
    text = _EXTRA_NEWLINES.sub("\n\n", text)
    return text.strip()


def compact_normalize(text: str) -> str:
    """Strip comments and redundant whitespace.

    Block and line comments are removed, trailing whitespace is stripped (which
    empties whitespace-only lines), runs of three or more newlines collapse to
    a single blank line, and the result is trimmed. The pass is repeated until
    the text stops changing, so `compact_normalize` is idempotent. Every pass
    only deletes characters, so the loop terminates.

    Args:
        text (str): the raw file body

    Returns:
        str: the normalized body
    """
    current = text
    while True:
        nxt = _normalize_once(current)
        if nxt == current:
            return nxt
        current = nxt


def _compact_import(match: re.Match[str]) -> str:
    items = [i.strip() for i in match.group(1).split(",") if i.strip()]
    return f"import{{{','.join(items)}}}from'{match.group(2)}'"


def smart_optimize(text: str, extension: str) -> str:
    """Aggressively minify a file body.

    Compact normalization is applied first. Scripting-language files then get
    destructured imports folded onto one line and whitespace around operators,
    braces and punctuation removed; stylesheets get whitespace around selectors
    and declarations removed along with every newline. Other files only receive
    the base normalization.

    Args:
        text (str): the raw file body
        extension (str): the file extension, with or without the leading dot

    Returns:
        str: the minified body
    """
    content = compact_normalize(text)
    family = extension.lower().removeprefix(".")
    if family in SCRIPT_FAMILY:
        content = _DESTRUCTURED_IMPORT.sub(_compact_import, content)
        for pattern, repl in _SCRIPT_RULES:
            content = pattern.sub(repl, content)
    elif family in STYLESHEET_FAMILY:
        for pattern, repl in _STYLESHEET_RULES:
            content = pattern.sub(repl, content)
    return content.strip()


def transform_content(text: str, extension: str, mode: ContentMode) -> str:
    """Apply the run's content mode to one file body; raw mode returns `text` unchanged."""
    if mode == ContentMode.SMART:
        return smart_optimize(text, extension)
    if mode == ContentMode.COMPACT:
        return compact_normalize(text)
    return text


def is_package_marker(rel: str, size: int) -> bool:
    """Check whether a file is a zero-byte Python package marker."""
    return Path(rel).name == PACKAGE_MARKER_NAME and size == 0


def classify_file_type(rel: str, raw_content: str) -> FileType:
    """Derive the classification tag of a file.

    Args:
        rel (str): the root-relative path
        raw_content (str): the untransformed file body

    Returns:
        FileType: the classification tag
    """
    p = Path(rel)
    if p.name == PACKAGE_MARKER_NAME:
        if raw_content.strip():
            return FileType.PYTHON_PACKAGE_INIT_WITH_CODE
        return FileType.PYTHON_PACKAGE_MARKER

    match p.suffix:
        case ".py":
            return FileType.PYTHON_SOURCE
        case ".js":
            if ".config." in rel or ".test." in rel:
                return FileType.JAVASCRIPT_CONFIG
            return FileType.JAVASCRIPT_SOURCE
        case ".ts":
            return FileType.TYPESCRIPT_SOURCE
        case ".tsx":
            return FileType.REACT_TYPESCRIPT_COMPONENT
        case ".jsx":
            return FileType.REACT_COMPONENT
        case ".json":
            return FileType.JSON_CONFIG
        case ".md":
            return FileType.DOCUMENTATION
        case ".yml" | ".yaml":
            return FileType.YAML_CONFIG
        case ".css":
            return FileType.STYLESHEET
        case ".html":
            return FileType.HTML_TEMPLATE
        case _:
            return FileType.SOURCE_CODE


def describe_file(rel: str) -> str | None:
    """Return the human label of a well-known file, keyed by basename."""
    return FILE_DESCRIPTIONS.get(Path(rel).name)


def load_record(root: Path, rel: str, mode: ContentMode) -> FileRecord:
    """Read one included file and build its record.

    Args:
        root (Path): the input root
        rel (str): the root-relative path
        mode (ContentMode): the run's content mode

    Raises:
        FileAccessError: if the file cannot be stat-ed or read.

    Returns:
        FileRecord: the immutable record shared by every output format
    """
    path = root / rel
    try:
        st = path.stat()
        raw = path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise FileAccessError(path=rel, reason=str(e), action="read") from e

    marker = is_package_marker(rel, st.st_size)
    extension = Path(rel).suffix
    return FileRecord(
        path=rel,
        absolute_path=path,
        size=st.st_size,
        extension=extension,
        content=transform_content(raw, extension, mode),
        last_modified=datetime.fromtimestamp(st.st_mtime, tz=UTC),
        file_type=FileType.PYTHON_PACKAGE_MARKER if marker else classify_file_type(rel, raw),
        is_package_marker=marker,
        description=describe_file(rel),
    )


def load_records(
    root: Path,
    included: Sequence[str],
    *,
    mode: ContentMode,
    errors: list[ProcessingError],
    progress: ProgressCallback | None = None,
) -> list[FileRecord]:
    """Load and transform every included file once for the whole run.

    Read failures are appended to `errors` and the path is dropped.

    Args:
        root (Path): the input root
        included (Sequence[str]): root-relative paths that passed classification
        mode (ContentMode): the run's content mode
        errors (list[ProcessingError]): run error log
        progress (ProgressCallback | None): optional progress callback

    Returns:
        list[FileRecord]: records in the order of `included`
    """
    records: list[FileRecord] = []
    total = len(included)
    for idx, rel in enumerate(included, start=1):
        try:
            records.append(load_record(root, rel, mode))
        except FileAccessError as e:
            errors.append(ProcessingError(message=e.message))
            logger.warning("file_read_failed", path=rel, error=e.reason)
            continue
        if progress is not None:
            progress(ProgressEvent(stage=ProgressStage.FILE_PROCESSED, current=idx, total=total, detail=rel))
    return records

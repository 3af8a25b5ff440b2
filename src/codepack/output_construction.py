from __future__ import annotations

import base64
import io
import json
import re
from typing import TYPE_CHECKING, Any

import msgpack
import tomlkit
import yaml

from codepack import __version__
from codepack.analysis import prioritize
from codepack.config import (
    PACKAGE_MARKER_NOTE,
    OutputFormat,
    register_renderer,
)
from codepack.exceptions import UnsupportedFormatError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from codepack.config import Analysis, FileRecord, RunMetadata

MSGPACK_START = "MSGPACK_BASE64_START"
MSGPACK_END = "MSGPACK_BASE64_END"
DSL_PREAMBLE = "CODEPACK_DSL_V1"
DSL_AI_CONTEXT = "Empty __init__.py files are normal Python package markers, not errors"
JSONLD_VOCAB = "https://schema.codepack.ai/"
_RULE = "# " + "═" * 67
STRUCTURED_FORMATS = (
    OutputFormat.JSON,
    OutputFormat.YAML,
    OutputFormat.TOML,
    OutputFormat.JSONLD,
    OutputFormat.MSGPACK,
    OutputFormat.DSL,
)
_MSGPACK_BODY = re.compile(rf"^{MSGPACK_START}\n(.*?)\n{MSGPACK_END}$", re.MULTILINE | re.DOTALL)


class _LiteralDumper(yaml.SafeDumper):
    """SafeDumper emitting multi-line strings as literal blocks."""


def _str_presenter(dumper: yaml.SafeDumper, data: str) -> yaml.ScalarNode:
    if "\n" in data:
        return dumper.represent_scalar("tag:yaml.org,2002:str", data, style="|")
    return dumper.represent_scalar("tag:yaml.org,2002:str", data)


_LiteralDumper.add_representer(str, _str_presenter)


def dump_yaml(data: Any) -> str:  # noqa: ANN401
    """Serialize `data` to block-style YAML, keeping key order and unicode."""
    return yaml.dump(data, Dumper=_LiteralDumper, sort_keys=False, allow_unicode=True, width=2**31 - 1)


def resolve_format(tag: str | OutputFormat) -> OutputFormat:
    """Map a user-supplied format tag to its `OutputFormat`.

    Args:
        tag (str | OutputFormat): the requested tag, case-insensitive

    Raises:
        UnsupportedFormatError: if the tag names no known format.

    Returns:
        OutputFormat: the matching format
    """
    try:
        return OutputFormat(str(tag).strip().lower())
    except ValueError as e:
        raise UnsupportedFormatError(format=str(tag)) from e


def package_markers(files: Sequence[FileRecord]) -> list[str]:
    """Paths of the zero-byte package markers, in input order."""
    return [f.path for f in files if f.is_package_marker]


def _iso(rec: FileRecord) -> str:
    return rec.last_modified.isoformat(timespec="milliseconds")


def file_entry(rec: FileRecord) -> dict[str, Any]:
    """Structured representation of one file shared by the JSON-like formats."""
    entry: dict[str, Any] = {
        "path": rec.path,
        "relativePath": rec.path,
        "size": rec.size,
        "extension": rec.extension,
        "content": rec.content,
        "lastModified": _iso(rec),
    }
    if rec.description is not None:
        entry["description"] = rec.description
    entry["fileType"] = str(rec.file_type)
    entry["isEmpty"] = rec.is_empty
    entry["isPackageInit"] = rec.is_package_marker
    return entry


def _options(meta: RunMetadata) -> dict[str, Any]:
    return {
        "compact": meta.options.compact,
        "smart": meta.options.smart,
        "maxFileSize": meta.options.max_file_size,
        "respectGitignore": meta.options.respect_gitignore,
    }


def _ai_context(files: Sequence[FileRecord]) -> dict[str, Any]:
    return {"note": PACKAGE_MARKER_NOTE, "emptyInitFiles": package_markers(files)}


def build_metadata(files: Sequence[FileRecord], meta: RunMetadata) -> dict[str, Any]:
    """Metadata block of the JSON-like formats.

    Args:
        files (Sequence[FileRecord]): the loaded records
        meta (RunMetadata): per-run facts

    Returns:
        dict[str, Any]: camelCase metadata mapping
    """
    markers = package_markers(files)
    return {
        "generatedAt": meta.generated_iso,
        "source": meta.source,
        "totalFiles": meta.total_files,
        "filesWithContent": sum(1 for f in files if not f.is_empty),
        "emptyPackageMarkers": len(markers),
        "skippedCount": len(meta.skipped_files),
        "errorCount": len(meta.errors),
        "fileTypeBreakdown": dict(meta.file_type_counts),
        "options": _options(meta),
        "aiContext": _ai_context(files),
    }


def build_payload(files: Sequence[FileRecord], analysis: Analysis, meta: RunMetadata) -> dict[str, Any]:
    """Build the document shared by the JSON, YAML and message-pack formats.

    Args:
        files (Sequence[FileRecord]): the loaded records, in lexical path order
        analysis (Analysis): the project analysis
        meta (RunMetadata): per-run facts

    Returns:
        dict[str, Any]: a JSON-compatible mapping with `metadata`, `analysis`,
            `files`, `skippedFiles` and `errors` keys
    """
    return {
        "metadata": build_metadata(files, meta),
        "analysis": analysis.model_dump(),
        "files": [file_entry(f) for f in files],
        "skippedFiles": [s.model_dump() for s in meta.skipped_files],
        "errors": [e.message for e in meta.errors],
    }


@register_renderer(OutputFormat.JSON)
def render_json(files: Sequence[FileRecord], analysis: Analysis, meta: RunMetadata) -> str:
    payload = build_payload(files, analysis, meta)
    if meta.options.compact:
        return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
    return json.dumps(payload, ensure_ascii=False, indent=2)


@register_renderer(OutputFormat.YAML)
def render_yaml(files: Sequence[FileRecord], analysis: Analysis, meta: RunMetadata) -> str:
    return dump_yaml(build_payload(files, analysis, meta))


_TOML_UNSAFE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def _toml_safe(value: Any) -> Any:  # noqa: ANN401
    """Spell out control characters that TOML 1.0 readers reject as `\\uXXXX` text."""
    if isinstance(value, str):
        return _TOML_UNSAFE.sub(lambda m: f"\\u{ord(m.group()):04x}", value)
    if isinstance(value, dict):
        return {k: _toml_safe(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_toml_safe(v) for v in value]
    return value


@register_renderer(OutputFormat.TOML)
def render_toml(files: Sequence[FileRecord], analysis: Analysis, meta: RunMetadata) -> str:
    """Render the TOML variant.

    TOML has no null, so `description` is never emitted; `relativePath` is
    dropped and the run options are flattened into `metadata`. Nested tables
    are placed last in each table so scalar keys stay attached to their parent.
    Control characters other than tab, newline and carriage return are written
    as `\\uXXXX` text.
    """
    markers = package_markers(files)
    metadata: dict[str, Any] = {
        "generatedAt": meta.generated_iso,
        "source": meta.source,
        "totalFiles": meta.total_files,
        "filesWithContent": sum(1 for f in files if not f.is_empty),
        "emptyPackageMarkers": len(markers),
        "skippedCount": len(meta.skipped_files),
        "errorCount": len(meta.errors),
        **_options(meta),
        "fileTypeBreakdown": dict(meta.file_type_counts),
        "aiContext": _ai_context(files),
    }
    entries = []
    for rec in files:
        entry = file_entry(rec)
        entry.pop("relativePath")
        entry.pop("description", None)
        entries.append(entry)

    doc = tomlkit.document()
    doc["metadata"] = _toml_safe(metadata)
    doc["analysis"] = _toml_safe(analysis.model_dump())
    doc["skippedFiles"] = _toml_safe([s.model_dump() for s in meta.skipped_files])
    doc["errors"] = _toml_safe([e.message for e in meta.errors])
    doc["files"] = _toml_safe(entries)
    return tomlkit.dumps(doc)


@register_renderer(OutputFormat.JSONLD)
def render_jsonld(files: Sequence[FileRecord], analysis: Analysis, meta: RunMetadata) -> str:
    context = {
        "CodePack": JSONLD_VOCAB,
        **{
            term: f"{JSONLD_VOCAB}{term}"
            for term in (
                "SourceFile",
                "ProjectMetadata",
                "path",
                "content",
                "fileType",
                "isEmpty",
                "isPackageInit",
            )
        },
    }
    entries = [{"@type": "SourceFile", "@id": f.path, **file_entry(f)} for f in files]
    payload = {
        "@context": context,
        "@type": "CodePack",
        "@id": meta.source,
        "metadata": {"@type": "ProjectMetadata", **build_metadata(files, meta)},
        "analysis": analysis.model_dump(),
        "files": entries,
        "skippedFiles": [s.model_dump() for s in meta.skipped_files],
        "errors": [e.message for e in meta.errors],
    }
    if meta.options.compact:
        return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
    return json.dumps(payload, ensure_ascii=False, indent=2)


def pack_payload(payload: dict[str, Any]) -> bytes:
    """Encode a JSON-compatible payload with MessagePack."""
    return msgpack.packb(payload, use_bin_type=True)


def extract_msgpack_payload(text: str) -> dict[str, Any]:
    """Decode the payload embedded between the archive sentinels.

    Args:
        text (str): a message-pack archive document

    Returns:
        dict[str, Any]: the decoded payload
    """
    match = _MSGPACK_BODY.search(text)
    if match is None:
        msg = "No message-pack payload between the archive sentinels"
        raise ValueError(msg)
    return msgpack.unpackb(base64.b64decode(match.group(1)), raw=False)


def _msgpack_header(files: Sequence[FileRecord], meta: RunMetadata, original: int, packed: int) -> list[str]:
    ratio = (1 - packed / original) * 100 if original else 0.0
    return [
        "# 📦 CodePack MessagePack Archive",
        "#",
        "# This file contains a complete codebase compressed using MessagePack binary format",
        "# and encoded as Base64 for text-safe transmission and storage.",
        "#",
        _RULE,
        "# 📊 COMPRESSION STATISTICS",
        _RULE,
        f"# Original JSON size:  {original:,} bytes ({original / 1024:.1f} KB)",
        f"# Compressed size:     {packed:,} bytes ({packed / 1024:.1f} KB)",
        f"# Compression ratio:   {ratio:.1f}% reduction",
        "# Encoding:            MessagePack → Base64",
        f"# Files included:      {len(files)} files",
        f"# Generated:           {meta.generated_iso}",
        "#",
        _RULE,
        "# 🔧 DECODING INSTRUCTIONS",
        _RULE,
        "#",
        "# JavaScript/Node.js:",
        "# const msgpack = require('msgpack5')();",
        "# const fs = require('fs');",
        "# const data = fs.readFileSync('archive.txt', 'utf8');",
        f"# const base64Data = data.split('\\n{MSGPACK_START}\\n')[1].split('\\n{MSGPACK_END}')[0].trim();",
        "# const decoded = msgpack.decode(Buffer.from(base64Data, 'base64'));",
        "#",
        "# Python:",
        "# import base64, msgpack",
        "# with open('archive.txt', encoding='utf-8') as f:",
        "#     content = f.read()",
        f"# base64_data = content.split('\\n{MSGPACK_START}\\n')[1].split('\\n{MSGPACK_END}')[0].strip()",
        "# decoded = msgpack.unpackb(base64.b64decode(base64_data), raw=False)",
        "#",
        _RULE,
        "# 📋 DATA STRUCTURE",
        _RULE,
        "# The decoded data contains:",
        "# - metadata: Project information, file counts, AI context",
        "# - analysis: Architecture detection, technologies, patterns",
        "# - files: Array of file objects with path, content, metadata",
        "# - skippedFiles: Large files that were excluded",
        "# - errors: Any processing errors encountered",
        "#",
        _RULE,
    ]


@register_renderer(OutputFormat.MSGPACK)
def render_msgpack(files: Sequence[FileRecord], analysis: Analysis, meta: RunMetadata) -> str:
    """Render the base64 message-pack archive.

    The packed payload is exactly the plain JSON payload, so decoding the
    archive yields the same structure as parsing the JSON document.
    """
    payload = build_payload(files, analysis, meta)
    packed = pack_payload(payload)
    original = len(json.dumps(payload, ensure_ascii=False, separators=(",", ":")).encode("utf-8"))

    lines = _msgpack_header(files, meta, original, len(packed))
    lines += [
        "",
        MSGPACK_START,
        base64.b64encode(packed).decode("ascii"),
        MSGPACK_END,
        "",
        _RULE,
        "# End of CodePack MessagePack Archive",
        f"# Generated by CodePack v{__version__}",
        _RULE,
    ]
    return "\n".join(lines) + "\n"


@register_renderer(OutputFormat.DSL)
def render_dsl(files: Sequence[FileRecord], analysis: Analysis, meta: RunMetadata) -> str:
    """Render the line-oriented grammar.

    One preamble line, one `META:` line, the AI context line and an optional
    `EMPTY_INITS:` line, then one `FILE:`/`END` block per file in priority order.
    """
    by_path = {f.path: f for f in files}
    markers = package_markers(files)

    out = io.StringIO()
    out.write(f"{DSL_PREAMBLE}\n")
    out.write(
        f"META: files={meta.total_files}, tech={'|'.join(analysis.technologies)}, arch={analysis.architecture}\n",
    )
    out.write(f"AI_CONTEXT: {DSL_AI_CONTEXT}\n")
    if markers:
        out.write(f"EMPTY_INITS: {'|'.join(markers)}\n")
    out.write("\n")

    for path in prioritize(list(by_path)):
        rec = by_path[path]
        out.write(f"FILE: {rec.path} [{rec.file_type}, {rec.size / 1024:.1f}KB]\n")
        if rec.content:
            tag = rec.extension.removeprefix(".") or "text"
            out.write(f"```{tag}\n{rec.content}\n```\n")
        out.write("END\n\n")
    return out.getvalue()

"""Markdown-family renderers.

Plain, compact and smart renderings share the `markdown` tag and are chosen by
the run options; `mdyaml` and `mdopt` have their own tags. Every renderer lists
files in priority order, except the smart rendering which lists them by purpose.
"""

from __future__ import annotations

import io
import re
from pathlib import Path
from typing import TYPE_CHECKING

from codepack.analysis import file_stats, group_by_purpose, prioritize
from codepack.config import (
    ENTRY_POINT_BASENAMES,
    FILE_DESCRIPTIONS,
    PACKAGE_MARKER_NOTE,
    OutputFormat,
    guess_language,
    register_renderer,
)
from codepack.file_manipulation import build_compact_tree, build_tree_lines
from codepack.output_construction import dump_yaml, package_markers

if TYPE_CHECKING:
    from collections.abc import Sequence

    from codepack.config import Analysis, FileRecord, RunMetadata

ARCHITECTURE_DIAGRAMS: dict[str, tuple[str, ...]] = {
    "Next.js/React App": (
        "A[Frontend - Next.js/React] --> B[API Routes]",
        "B --> C[Backend Services]",
        "C --> D[Database]",
        "A --> E[Components]",
        "A --> F[Pages/Routes]",
    ),
    "Python Backend": (
        "A[Client] --> B[FastAPI/Flask]",
        "B --> C[Business Logic]",
        "C --> D[Database]",
        "B --> E[External APIs]",
    ),
    "Node.js Server": (
        "A[Client] --> B[Express/Node.js]",
        "B --> C[Middleware]",
        "C --> D[Routes]",
        "D --> E[Database]",
    ),
}
GENERIC_DIAGRAM = (
    "A[Application] --> B[Core Logic]",
    "B --> C[Data Layer]",
    "A --> D[User Interface]",
)

SETUP_SNIPPETS: dict[str, str] = {
    "Node.js/JavaScript": "# Install dependencies\nnpm install\n\n# Start development\nnpm run dev\n# or\nnpm start",
    "Python": (
        "# Create virtual environment\n"
        "python -m venv venv\n"
        "source venv/bin/activate  # or venv\\Scripts\\activate on Windows\n\n"
        "# Install dependencies\n"
        "pip install -r requirements.txt\n\n"
        "# Run application\n"
        "python main.py\n"
        "# or\n"
        "python app.py"
    ),
    "Docker": "# Build and run with Docker\ndocker-compose up --build\n# or\ndocker build -t app .\ndocker run -p 8080:8080 app",
}

MARKDOWN_FORMATS = (OutputFormat.MARKDOWN, OutputFormat.MDYAML, OutputFormat.MDOPT)
_ANCHOR_STRIP = re.compile(r"[^a-zA-Z0-9\s]")


def _ordered(files: Sequence[FileRecord]) -> list[FileRecord]:
    by_path = {f.path: f for f in files}
    return [by_path[p] for p in prioritize(list(by_path))]


def _fence(rec: FileRecord, lang: str | None = None) -> str:
    return f"```{lang or guess_language(rec.path)}\n{rec.content}\n```\n"


def _group_anchor(label: str) -> str:
    return "-".join(_ANCHOR_STRIP.sub("", label).strip().lower().split())


def render_toc(paths: Sequence[str]) -> str:
    """Table of contents: fixed quick navigation then per-group file counts."""
    out = io.StringIO()
    out.write("## 📋 Table of Contents\n\n")
    out.write("### 🧭 Quick Navigation\n\n")
    out.write("- [🚀 Quick Start](#-quick-start)\n")
    out.write("- [📂 Project Structure](#-project-structure)\n")
    out.write("- [🔍 Project Overview](#-project-overview)\n")
    out.write("- [🏗️ Architecture](#️-architecture-overview)\n")
    out.write("- [📄 File Contents](#-file-contents)\n\n")
    out.write("### 📁 File Categories\n\n")
    for group, members in group_by_purpose(paths).items():
        if members:
            out.write(f"- [{group}](#{_group_anchor(group)}) ({len(members)} files)\n")
    out.write("\n---\n\n")
    return out.getvalue()


def render_quick_start(paths: Sequence[str], analysis: Analysis) -> str:
    """Quick-start section: key entry points and setup commands per technology."""
    out = io.StringIO()
    out.write("## 🚀 Quick Start\n\n")
    entry_points = [p for p in paths if p.rsplit("/", 1)[-1] in ENTRY_POINT_BASENAMES]
    if entry_points:
        out.write("### 🎯 Key Entry Points\n\n")
        for path in entry_points:
            description = FILE_DESCRIPTIONS.get(path.rsplit("/", 1)[-1])
            out.write(f"- **{path}**{f' - {description}' if description else ''}\n")
        out.write("\n")

    snippets = [SETUP_SNIPPETS[t] for t in analysis.technologies if t in SETUP_SNIPPETS]
    if analysis.technologies:
        out.write("### ⚡ Quick Setup\n\n")
        for snippet in snippets:
            out.write(f"```bash\n{snippet}\n```\n\n")
    out.write("---\n\n")
    return out.getvalue()


def render_overview(paths: Sequence[str], analysis: Analysis) -> str:
    out = io.StringIO()
    out.write("## 🔍 Project Overview\n\n")
    if analysis.technologies:
        out.write("**Technologies detected:**\n")
        for tech in analysis.technologies:
            out.write(f"- {tech}\n")
        out.write("\n")
    out.write("**File Statistics:**\n")
    for ext, count in file_stats(paths).items():
        out.write(f"- {ext}: {count} files\n")
    out.write("\n")
    return out.getvalue()


def render_architecture(analysis: Analysis) -> str:
    """Architecture overview: mermaid diagram, design patterns and technology stack."""
    out = io.StringIO()
    out.write("## 🏗️ Architecture Overview\n\n")
    out.write("### 📐 System Architecture\n\n")
    out.write("```mermaid\ngraph TB\n")
    for edge in ARCHITECTURE_DIAGRAMS.get(analysis.architecture, GENERIC_DIAGRAM):
        out.write(f"    {edge}\n")
    out.write("```\n\n")

    if analysis.patterns:
        out.write("### 🎨 Design Patterns\n\n")
        for pattern in analysis.patterns:
            out.write(f"- **{pattern}**\n")
        out.write("\n")

    out.write("### 🛠️ Technology Stack\n\n")
    if analysis.technologies:
        for tech in analysis.technologies:
            out.write(f"- {tech}\n")
    else:
        out.write("- Technologies detected automatically\n")
    out.write("\n---\n\n")
    return out.getvalue()


def render_file_sections(files: Sequence[FileRecord]) -> str:
    """One `###` section per file with its description and fenced content."""
    out = io.StringIO()
    for rec in _ordered(files):
        out.write(f"### {rec.path}\n\n")
        if rec.description:
            out.write(f"*{rec.description}*\n\n")
        out.write(_fence(rec))
        out.write("\n")
    return out.getvalue()


def _tree_block(root_name: str, paths: Sequence[str]) -> str:
    return "```text\n" + "\n".join(build_tree_lines(root_name, paths)) + "\n```\n\n"


def render_plain(files: Sequence[FileRecord], analysis: Analysis, meta: RunMetadata) -> str:
    """Render the full markdown document.

    Args:
        files (Sequence[FileRecord]): the loaded records
        analysis (Analysis): the project analysis
        meta (RunMetadata): per-run facts

    Returns:
        str: header, table of contents, quick start, tree, overview,
            architecture and file contents
    """
    paths = [f.path for f in files]
    root_name = Path(meta.source).name or meta.source

    out = io.StringIO()
    out.write("# 📦 CodePack Analysis\n\n")
    out.write(f"**Generated:** {meta.generated_iso}\n")
    out.write(f"**Source:** {meta.source}\n")
    out.write(f"**Files:** {meta.total_files}\n\n")
    markers = package_markers(files)
    if markers:
        out.write(f"> {PACKAGE_MARKER_NOTE}\n\n")
    out.write(render_toc(paths))
    out.write(render_quick_start(paths, analysis))
    out.write("## 📂 Project Structure\n\n")
    out.write(_tree_block(root_name, paths))
    out.write(render_overview(paths, analysis))
    out.write(render_architecture(analysis))
    out.write("## 📄 File Contents\n\n")
    out.write(render_file_sections(files))
    return out.getvalue()


def render_compact(files: Sequence[FileRecord], analysis: Analysis, meta: RunMetadata) -> str:
    out = io.StringIO()
    out.write("# CodePack\n")
    out.write(f"Generated: {meta.generated_at.date().isoformat()}\n")
    out.write(f"Files: {meta.total_files}\n\n")
    if analysis.technologies:
        out.write(f"Tech: {', '.join(analysis.technologies)}\n\n")
    for rec in _ordered(files):
        out.write(f"## {rec.path}\n")
        out.write(_fence(rec))
    return out.getvalue()


def render_smart(files: Sequence[FileRecord], analysis: Analysis, meta: RunMetadata) -> str:
    """Render files grouped by purpose, headed by basename only."""
    by_path = {f.path: f for f in files}
    out = io.StringIO()
    out.write("# CodePack\n")
    out.write(f"{analysis.architecture} | {','.join(analysis.technologies)} | {meta.total_files} files\n\n")
    for group, members in group_by_purpose(prioritize(list(by_path))).items():
        if not members:
            continue
        out.write(f"## {group}\n")
        for path in members:
            rec = by_path[path]
            out.write(f"### {rec.name}\n")
            out.write(_fence(rec))
    return out.getvalue()


@register_renderer(OutputFormat.MARKDOWN)
def render_markdown(files: Sequence[FileRecord], analysis: Analysis, meta: RunMetadata) -> str:
    """Pick the smart, compact or plain rendering from the run options; smart wins."""
    if meta.options.smart:
        return render_smart(files, analysis, meta)
    if meta.options.compact:
        return render_compact(files, analysis, meta)
    return render_plain(files, analysis, meta)


@register_renderer(OutputFormat.MDYAML)
def render_mdyaml(files: Sequence[FileRecord], analysis: Analysis, meta: RunMetadata) -> str:
    """Render markdown behind a YAML frontmatter block carrying metadata and analysis."""
    markers = package_markers(files)
    frontmatter = {
        "metadata": {
            "generatedAt": meta.generated_iso,
            "source": meta.source,
            "totalFiles": meta.total_files,
            "filesWithContent": sum(1 for f in files if not f.is_empty),
            "emptyPackageMarkers": len(markers),
            "skippedCount": len(meta.skipped_files),
            "errorCount": len(meta.errors),
            "fileTypeBreakdown": dict(meta.file_type_counts),
        },
        "analysis": analysis.model_dump(),
        "aiContext": {"note": PACKAGE_MARKER_NOTE, "emptyInitFiles": markers},
    }
    paths = [f.path for f in files]
    root_name = Path(meta.source).name or meta.source

    out = io.StringIO()
    out.write("---\n")
    out.write(dump_yaml(frontmatter))
    out.write("---\n\n")
    out.write("# CodePack Output\n\n")
    out.write(f"Generated: {meta.generated_iso}\n")
    out.write(f"Source: {meta.source}\n")
    out.write(f"Files: {meta.total_files}\n\n")
    out.write("## 📂 Structure\n\n")
    out.write(_tree_block(root_name, paths))
    out.write("## 📄 Files\n\n")
    out.write(render_file_sections(files))
    return out.getvalue()


@register_renderer(OutputFormat.MDOPT)
def render_mdopt(files: Sequence[FileRecord], analysis: Analysis, meta: RunMetadata) -> str:
    """Render the terse markdown: date-only header, indented tree, basename headers."""
    ordered = _ordered(files)
    out = io.StringIO()
    out.write("# CodePack\n")
    out.write(f"Gen:{meta.generated_at.date().isoformat()} Files:{meta.total_files}\n\n")
    if analysis.technologies:
        out.write(f"Tech:{','.join(analysis.technologies)}\n\n")
    out.write("## Structure\n```\n")
    out.write(build_compact_tree([f.path for f in ordered]))
    out.write("```\n\n")
    for rec in ordered:
        out.write(f"## {rec.name}\n")
        out.write(_fence(rec, rec.extension.removeprefix(".") or "txt"))
    return out.getvalue()

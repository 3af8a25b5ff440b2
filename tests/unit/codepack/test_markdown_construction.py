from datetime import UTC, datetime
from pathlib import Path

import pytest
import yaml

from codepack.config import Analysis, FileRecord, FileType, OutputFormat, RunMetadata, RunOptions
from codepack.markdown_construction import (
    render_architecture,
    render_quick_start,
    render_toc,
)
from codepack.rendering import render_document

STAMP = datetime(2024, 5, 1, 12, 30, tzinfo=UTC)


def _record(path: str, content: str, file_type: FileType = FileType.SOURCE_CODE, **extra: object) -> FileRecord:
    return FileRecord(
        path=path,
        absolute_path=Path("/work/demo") / path,
        size=len(content),
        extension=Path(path).suffix,
        content=content,
        last_modified=STAMP,
        file_type=file_type,
        **extra,
    )


@pytest.fixture
def records() -> list[FileRecord]:
    return [
        _record("package.json", '{"name": "demo"}', FileType.JSON_CONFIG, description="Project dependencies and configuration"),
        _record("src/components/Nav.jsx", "export const Nav = () => null", FileType.REACT_COMPONENT),
        _record("src/index.js", "import './app'", FileType.JAVASCRIPT_SOURCE),
        _record("README.md", "# Demo", FileType.DOCUMENTATION),
    ]


@pytest.fixture
def analysis() -> Analysis:
    return Analysis(architecture="React SPA", technologies=["Node.js/JavaScript"], patterns=["API Routes"])


def _meta(records: list[FileRecord], **options: object) -> RunMetadata:
    return RunMetadata(
        generated_at=STAMP,
        source="/work/demo",
        total_files=len(records),
        options=RunOptions(**options),
    )


def _render(fmt: OutputFormat, records: list[FileRecord], analysis: Analysis, **options: object) -> str:
    return render_document(fmt, records, analysis, _meta(records, **options)).text


@pytest.mark.unit
def test_plain_markdown_sections_in_order(records: list[FileRecord], analysis: Analysis) -> None:
    text = _render(OutputFormat.MARKDOWN, records, analysis)

    headings = [
        "# 📦 CodePack Analysis",
        "## 📋 Table of Contents",
        "## 🚀 Quick Start",
        "## 📂 Project Structure",
        "## 🔍 Project Overview",
        "## 🏗️ Architecture Overview",
        "## 📄 File Contents",
    ]
    positions = [text.index(h) for h in headings]
    assert positions == sorted(positions)
    assert "**Files:** 4" in text
    assert "**Source:** /work/demo" in text


@pytest.mark.unit
def test_plain_markdown_lists_files_in_priority_order(records: list[FileRecord], analysis: Analysis) -> None:
    text = _render(OutputFormat.MARKDOWN, records, analysis)
    body = text.split("## 📄 File Contents", 1)[1]

    order = [body.index(f"### {p}\n") for p in ("README.md", "package.json", "src/index.js", "src/components/Nav.jsx")]
    assert order == sorted(order)
    assert "*Project dependencies and configuration*" in body
    assert "```javascript\nimport './app'\n```" in body
    assert "```jsx\nexport const Nav" in body


@pytest.mark.unit
def test_plain_markdown_renders_tree(records: list[FileRecord], analysis: Analysis) -> None:
    text = _render(OutputFormat.MARKDOWN, records, analysis)

    assert "```text\ndemo\n├── src/\n" in text
    assert "│   ├── components/\n" in text


@pytest.mark.unit
def test_compact_markdown(records: list[FileRecord], analysis: Analysis) -> None:
    text = _render(OutputFormat.MARKDOWN, records, analysis, compact=True)

    assert text.startswith("# CodePack\nGenerated: 2024-05-01\nFiles: 4\n\nTech: Node.js/JavaScript\n\n")
    assert "## README.md\n```markdown\n# Demo\n```\n## package.json\n" in text
    assert "Table of Contents" not in text


@pytest.mark.unit
def test_smart_markdown_groups_by_purpose(records: list[FileRecord], analysis: Analysis) -> None:
    text = _render(OutputFormat.MARKDOWN, records, analysis, smart=True, compact=True)

    assert text.startswith("# CodePack\nReact SPA | Node.js/JavaScript | 4 files\n\n")
    config = text.index("## ⚙️ Configuration\n### package.json\n")
    entry = text.index("## 🎯 Entry Points\n### index.js\n")
    components = text.index("## 🧩 Components\n### Nav.jsx\n")
    other = text.index("## 📄 Other\n### README.md\n")
    assert config < entry < components < other
    assert "## 🧪 Tests" not in text


@pytest.mark.unit
def test_mdyaml_frontmatter_is_valid_yaml(records: list[FileRecord], analysis: Analysis) -> None:
    text = _render(OutputFormat.MDYAML, records, analysis)

    assert text.startswith("---\n")
    front, body = text[4:].split("\n---\n\n", 1)
    data = yaml.safe_load(front)
    assert data["metadata"]["totalFiles"] == 4
    assert data["analysis"]["architecture"] == "React SPA"
    assert data["aiContext"]["emptyInitFiles"] == []
    assert body.startswith("# CodePack Output\n")
    assert "## 📂 Structure" in body
    assert "### package.json\n\n*Project dependencies and configuration*" in body


@pytest.mark.unit
def test_mdopt_is_terse(records: list[FileRecord], analysis: Analysis) -> None:
    text = _render(OutputFormat.MDOPT, records, analysis)

    assert text.startswith("# CodePack\nGen:2024-05-01 Files:4\n\nTech:Node.js/JavaScript\n\n## Structure\n```\n")
    assert "## Nav.jsx\n```jsx\n" in text
    assert "### " not in text


@pytest.mark.unit
def test_toc_counts_groups() -> None:
    toc = render_toc(["package.json", "src/index.js", "src/main.ts"])

    assert "- [⚙️ Configuration](#configuration) (1 files)" in toc
    assert "- [🎯 Entry Points](#entry-points) (2 files)" in toc
    assert "Components" not in toc


@pytest.mark.unit
def test_quick_start_lists_entry_points_and_setup() -> None:
    analysis = Analysis(technologies=["Python", "Docker"])

    text = render_quick_start(["app.py", "lib/util.py"], analysis)

    assert "- **app.py**\n" in text
    assert "pip install -r requirements.txt" in text
    assert "docker-compose up --build" in text
    assert "npm install" not in text


@pytest.mark.unit
@pytest.mark.parametrize(
    ("architecture", "edge"),
    [
        ("Next.js/React App", "A[Frontend - Next.js/React] --> B[API Routes]"),
        ("Python Backend", "A[Client] --> B[FastAPI/Flask]"),
        ("Node.js Server", "A[Client] --> B[Express/Node.js]"),
        ("Unknown", "A[Application] --> B[Core Logic]"),
    ],
)
def test_architecture_diagram_follows_label(architecture: str, edge: str) -> None:
    text = render_architecture(Analysis(architecture=architecture))

    assert "```mermaid\ngraph TB\n" in text
    assert f"    {edge}\n" in text
    assert "- Technologies detected automatically" in text

import json
from collections.abc import Callable
from pathlib import Path

import pytest

from codepack import cli
from codepack.config import OutputFormat

PROJECT = {
    "README.md": "# Shop\n",
    "package.json": '{"name": "shop", "dependencies": {"express": "4"}}\n',
    "server.js": "const express = require('express');\n",
    "routes/api.js": "module.exports = {};\n",
    "node_modules/express/index.js": "module.exports = 1;\n",
    ".gitignore": "secret.txt\n",
    "secret.txt": "password\n",
}


def test_end_to_end_markdown_export(make_tree: Callable[..., Path], tmp_path: Path) -> None:
    root = make_tree(PROJECT)
    output = tmp_path / "context.md"

    exit_code = cli.main([str(root), "-o", str(output)])

    assert exit_code == 0
    text = output.read_text(encoding="utf-8")
    assert text.startswith("# 📦 CodePack Analysis\n")
    assert "### routes/api.js" in text
    assert "password" not in text
    assert "node_modules" not in text


def test_end_to_end_all_formats(
    make_tree: Callable[..., Path],
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    root = make_tree(PROJECT)
    output = tmp_path / "out" / "pack.md"

    exit_code = cli.main([str(root), "-o", str(output), "--all-formats", "-s"])

    assert exit_code == 0
    written = sorted(p.name for p in (tmp_path / "out").iterdir())
    assert written == sorted(f"pack.{fmt.suffix}" for fmt in OutputFormat)
    data = json.loads((tmp_path / "out" / "pack.json").read_text(encoding="utf-8"))
    assert data["analysis"]["architecture"] == "Node.js Server"
    out = capsys.readouterr().out
    assert f"✅ Successful: {len(OutputFormat)}/{len(OutputFormat)}" in out
    assert "📊 SIZE COMPARISON:" in out


def test_end_to_end_output_too_large(
    make_tree: Callable[..., Path],
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.setenv("CODEPACK_MAX_OUTPUT_MB", "1")
    root = make_tree({f"part{i}.txt": "z" * (400 * 1024) for i in range(3)})
    output = tmp_path / "pack.json"

    exit_code = cli.main([str(root), "-o", str(output), "-f", "json"])

    assert exit_code == 1
    assert "❌ Output too large" in capsys.readouterr().err
    assert not output.exists()

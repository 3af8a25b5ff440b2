from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from codepack import __version__, cli
from codepack.config import OutputFormat
from codepack.orchestrator import FormatResult, FormatStatus, RunReport

if TYPE_CHECKING:
    from pytest_mock import MockerFixture


@pytest.mark.unit
def test_parse_args_positional_input_wins() -> None:
    settings = cli.parse_args(["proj", "-i", "other", "-o", "out.json", "-f", "json"])

    assert settings.input == Path("proj")
    assert settings.output == Path("out.json")
    assert settings.format == "json"


@pytest.mark.unit
def test_parse_args_input_option_and_defaults() -> None:
    settings = cli.parse_args(["-i", "other"])

    assert settings.input == Path("other")
    assert settings.output == Path("codepack-output.md")
    assert settings.max_size_kb == 500
    assert settings.use_default_excludes is True
    assert settings.respect_gitignore is True


@pytest.mark.unit
def test_parse_args_flags() -> None:
    settings = cli.parse_args(
        [
            "-e",
            "generated, docs/build,,",
            "--no-default-excludes",
            "--no-respect-gitignore",
            "-c",
            "-s",
            "-m",
            "64",
            "--all-formats",
            "-d",
        ],
    )

    assert settings.exclude_patterns == ["generated", "docs/build"]
    assert settings.respect_gitignore is False
    assert settings.compact is True
    assert settings.smart is True
    assert settings.max_file_size == 64 * 1024
    assert settings.all_formats is True
    assert settings.dry_run is True


@pytest.mark.unit
def test_parse_args_rejects_non_positive_max_size(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.parse_args(["-m", "0"])

    assert exc_info.value.code == 2
    assert "max_size_kb" in capsys.readouterr().err


@pytest.mark.unit
def test_parse_args_version_flag(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.parse_args(["--version"])

    assert exc_info.value.code == 0
    assert __version__ in capsys.readouterr().out


@pytest.mark.unit
def test_split_patterns() -> None:
    assert cli.split_patterns(" a, b ,,c ") == ["a", "b", "c"]
    assert cli.split_patterns(None) == []


@pytest.mark.unit
def test_main_reports_restricted_root(capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli.main(["/etc", "-d"])

    assert exit_code == 1
    assert "❌ Access to system directory is restricted" in capsys.readouterr().err


@pytest.mark.unit
def test_main_reports_unsupported_format(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli.main([str(tmp_path), "-f", "xml", "-o", str(tmp_path / "out.xml")])

    assert exit_code == 1
    assert "Unsupported output format: 'xml'" in capsys.readouterr().err
    assert not (tmp_path / "out.xml").exists()


@pytest.mark.unit
def test_main_prints_summary(tmp_path: Path, mocker: MockerFixture, capsys: pytest.CaptureFixture[str]) -> None:
    report = RunReport(
        source=tmp_path,
        total_files=2,
        max_file_size=500 * 1024,
        results=[FormatResult(format=OutputFormat.MARKDOWN, path=tmp_path / "o.md", status=FormatStatus.COMPLETED, size=2048)],
    )
    run = mocker.patch.object(cli, "run", return_value=report)

    exit_code = cli.main([str(tmp_path), "-o", str(tmp_path / "o.md")])

    assert exit_code == 0
    assert run.call_args.kwargs["progress"] is cli.log_progress
    assert "📊 Compressed 2 files (2KB)" in capsys.readouterr().out

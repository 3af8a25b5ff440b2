from collections.abc import Callable
from pathlib import Path

import pytest
from pytest_mock import MockerFixture

from codepack import cli


@pytest.mark.integration
def test_main_passes_parsed_settings_to_run(
    make_tree: Callable[..., Path],
    tmp_path: Path,
    mocker: MockerFixture,
) -> None:
    root = make_tree({"src/app.py": "print('hi')\n"})
    output = tmp_path / "out.yaml"
    spy = mocker.spy(cli, "run")

    exit_code = cli.main([str(root), "-o", str(output), "-f", "yaml", "-e", "docs", "-c"])

    assert exit_code == 0
    settings = spy.call_args.args[0]
    assert settings.input == root
    assert settings.format == "yaml"
    assert "docs" in settings.exclude_patterns
    assert settings.compact is True
    assert "src/app.py" in output.read_text(encoding="utf-8")


@pytest.mark.integration
def test_main_verbose_logs_progress_to_file(make_tree: Callable[..., Path], tmp_path: Path) -> None:
    root = make_tree({"a.py": "a = 1\n"})
    log_file = tmp_path / "codepack.log"

    exit_code = cli.main([str(root), "-o", str(tmp_path / "out.md"), "-v", "--log-file", str(log_file)])

    assert exit_code == 0
    text = log_file.read_text(encoding="utf-8")
    assert '"event": "progress"' in text
    assert '"stage": "run_complete"' in text

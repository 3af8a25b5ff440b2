from pathlib import Path

import pytest
from pydantic import ValidationError

from codepack import settings as settings_module
from codepack.config import DEFAULT_EXCLUDES, ContentMode
from codepack.settings import Settings, env_default


@pytest.mark.unit
def test_settings_defaults() -> None:
    s = Settings()

    assert s.input == Path.cwd()
    assert s.output == Path("codepack-output.md")
    assert s.format == "markdown"
    assert s.respect_gitignore is True
    assert s.max_file_size == 500 * 1024
    assert s.content_mode == ContentMode.RAW


@pytest.mark.unit
@pytest.mark.parametrize(
    ("compact", "smart", "expected"),
    [
        (False, False, ContentMode.RAW),
        (True, False, ContentMode.COMPACT),
        (False, True, ContentMode.SMART),
        (True, True, ContentMode.SMART),
    ],
)
def test_content_mode_prefers_smart(compact: bool, smart: bool, expected: ContentMode) -> None:
    assert Settings(compact=compact, smart=smart).content_mode == expected


@pytest.mark.unit
def test_exclude_patterns_union_is_ordered_and_deduplicated() -> None:
    s = Settings(exclude=["node_modules", " generated ", "", "docs\\build"])

    assert s.exclude_patterns == [*DEFAULT_EXCLUDES, "generated", "docs/build"]


@pytest.mark.unit
def test_exclude_patterns_without_defaults() -> None:
    assert Settings(exclude=["a"], use_default_excludes=False).exclude_patterns == ["a"]


@pytest.mark.unit
def test_max_size_must_be_positive() -> None:
    with pytest.raises(ValidationError):
        Settings(max_size_kb=0)


@pytest.mark.unit
def test_env_overrides_output_ceiling(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CODEPACK_MAX_OUTPUT_MB", "7")

    s = Settings()

    assert s.max_output_mb == 7
    assert s.total_size_limit == 7 * 1024 * 1024


@pytest.mark.unit
def test_env_default_reads_dotenv_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("CODEPACK_LOG_FILE=from-dotenv.log\n", encoding="utf-8")
    monkeypatch.delenv("CODEPACK_LOG_FILE", raising=False)
    monkeypatch.setattr(settings_module, "ENV_FILE", str(env_file))

    assert env_default("CODEPACK_LOG_FILE") == "from-dotenv.log"
    assert env_default("CODEPACK_UNSET_VALUE", "fallback") == "fallback"

from __future__ import annotations

import os
from pathlib import Path

from dotenv import dotenv_values, find_dotenv
from pydantic import BaseModel, ConfigDict, Field, computed_field

from codepack.config import DEFAULT_EXCLUDES, ContentMode

ENV_FILE = find_dotenv(usecwd=True)


def env_default(name: str, fallback: str = "") -> str:
    """Read a default from the process environment, then from the nearest `.env` file.

    Args:
        name (str): the environment variable name
        fallback (str): value returned when neither source defines `name`

    Returns:
        str: the configured value, or `fallback`
    """
    if name in os.environ:
        return os.environ[name]
    if ENV_FILE:
        value = dotenv_values(ENV_FILE).get(name)
        if value is not None:
            return value
    return fallback


class Settings(BaseModel):
    """Configuration settings for a codepack run."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    input: Path = Field(default_factory=Path.cwd, description="Input directory.")
    output: Path = Field(default=Path("codepack-output.md"), description="Output file path.")
    exclude: list[str] = Field(default_factory=list, description="Extra exclude patterns.")
    use_default_excludes: bool = Field(
        default=True,
        description="Prepend the built-in exclude patterns.",
    )

    compact: bool = Field(default=False, description="Compact mode: normalize whitespace and comments.")
    smart: bool = Field(default=False, description="Smart mode: aggressive minification.")
    max_size_kb: int = Field(default=500, gt=0, description="Per-file size ceiling in KB.")

    format: str = Field(default="markdown", description="Output format tag.")
    all_formats: bool = Field(default=False, description="Generate every output format.")
    dry_run: bool = Field(default=False, description="Report sizes without writing.")
    respect_gitignore: bool = Field(default=True, description="Apply the root .gitignore.")
    verbose: bool = Field(default=False, description="Verbose logging.")

    log_file: str = Field(
        default_factory=lambda: env_default("CODEPACK_LOG_FILE"),
        description="Log file path.",
    )
    max_output_mb: int = Field(
        default_factory=lambda: int(env_default("CODEPACK_MAX_OUTPUT_MB", "50")),
        gt=0,
        description="Aggregate size ceiling for one document, in MB.",
    )

    @computed_field
    @property
    def max_file_size(self) -> int:
        """Per-file ceiling in bytes."""
        return self.max_size_kb * 1024

    @computed_field
    @property
    def total_size_limit(self) -> int:
        """Aggregate ceiling in bytes."""
        return self.max_output_mb * 1024 * 1024

    @computed_field
    @property
    def content_mode(self) -> ContentMode:
        """Content transformation applied to every file; smart wins over compact."""
        if self.smart:
            return ContentMode.SMART
        if self.compact:
            return ContentMode.COMPACT
        return ContentMode.RAW

    @computed_field
    @property
    def exclude_patterns(self) -> list[str]:
        """Ordered, de-duplicated union of default and user exclude patterns."""
        base = list(DEFAULT_EXCLUDES) if self.use_default_excludes else []
        out: list[str] = []
        for pattern in [*base, *self.exclude]:
            p = pattern.strip().replace("\\", "/")
            if p and p not in out:
                out.append(p)
        return out

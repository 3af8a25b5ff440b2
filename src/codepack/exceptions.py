from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class CodePackError(Exception):
    """Base exception for errors in the codepack package."""

    def __str__(self) -> str:
        return self.message

    @property
    def message(self) -> str:
        """Human readable description of the failure."""
        return (self.__doc__ or self.__class__.__name__).strip()


@dataclass(frozen=True)
class InvalidPathError(CodePackError):
    """Raised when the input path does not exist or is not a directory."""

    path: Path
    reason: str = "Input path does not exist"

    @property
    def message(self) -> str:
        return f"{self.reason}: {self.path}"


@dataclass(frozen=True)
class RestrictedPathError(CodePackError):
    """Raised when the input path lies under a protected system location."""

    path: Path

    @property
    def message(self) -> str:
        return f"Access to system directory is restricted: {self.path}"


@dataclass(frozen=True)
class FileAccessError(CodePackError):
    """Raised when an eligible file cannot be stat-ed or read."""

    path: str
    reason: str
    action: str = "access"

    @property
    def message(self) -> str:
        return f"Cannot {self.action} file {self.path}: {self.reason}"


@dataclass(frozen=True)
class SizeLimitExceededError(CodePackError):
    """Raised when a file is larger than the per-file ceiling."""

    path: str
    size: int
    limit: int

    @property
    def message(self) -> str:
        return f"File {self.path} is {self.size} bytes, above the {self.limit} bytes ceiling"


@dataclass(frozen=True)
class OutputTooLargeError(CodePackError):
    """Raised when a generated document exceeds the aggregate size ceiling."""

    format: str
    size: int
    limit: int

    @property
    def message(self) -> str:
        size_mb = round(self.size / 1024 / 1024)
        limit_mb = round(self.limit / 1024 / 1024)
        return (
            f"Output too large ({size_mb}MB). Maximum: {limit_mb}MB. "
            "Use compact (-c) or smart (-s) mode."
        )


@dataclass(frozen=True)
class UnsupportedFormatError(CodePackError):
    """Raised when the requested output format tag is unknown."""

    format: str

    @property
    def message(self) -> str:
        return f"Unsupported output format: {self.format!r}"


@dataclass(frozen=True)
class RenderError(CodePackError):
    """Raised when a renderer cannot produce an encodable document."""

    format: str
    reason: str

    @property
    def message(self) -> str:
        return f"Cannot render {self.format} output: {self.reason}"

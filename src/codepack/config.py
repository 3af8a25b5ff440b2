from __future__ import annotations

from datetime import datetime
from enum import StrEnum, auto
from functools import wraps
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, computed_field

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    RendererFn = Callable[[Sequence["FileRecord"], "Analysis", "RunMetadata"], str]
    ProgressCallback = Callable[["ProgressEvent"], None]


class FileType(StrEnum):
    """Classification tag attached to every included file.

    The tag is a heuristic based on the extension, plus the content for
    Python package `__init__.py` files.
    """

    PYTHON_PACKAGE_MARKER = auto()
    PYTHON_PACKAGE_INIT_WITH_CODE = auto()
    PYTHON_SOURCE = auto()
    JAVASCRIPT_CONFIG = auto()
    JAVASCRIPT_SOURCE = auto()
    TYPESCRIPT_SOURCE = auto()
    REACT_TYPESCRIPT_COMPONENT = auto()
    REACT_COMPONENT = auto()
    JSON_CONFIG = auto()
    DOCUMENTATION = auto()
    YAML_CONFIG = auto()
    STYLESHEET = auto()
    HTML_TEMPLATE = auto()
    SOURCE_CODE = auto()


class ContentMode(StrEnum):
    """Content transformation applied once per run to every file body."""

    RAW = auto()
    COMPACT = auto()
    SMART = auto()


class OutputFormat(StrEnum):
    """Output format tags accepted by `--format`."""

    MARKDOWN = auto()
    JSON = auto()
    YAML = auto()
    TOML = auto()
    MSGPACK = auto()
    MDYAML = auto()
    DSL = auto()
    JSONLD = auto()
    MDOPT = auto()

    @property
    def suffix(self) -> str:
        """File suffix used for this format in an all-formats run."""
        return _FORMAT_SUFFIX[self]

    @property
    def description(self) -> str:
        """One-line human description of the format."""
        return _FORMAT_DESCRIPTION[self]


_FORMAT_SUFFIX: dict[OutputFormat, str] = {
    OutputFormat.MARKDOWN: "md",
    OutputFormat.JSON: "json",
    OutputFormat.YAML: "yaml",
    OutputFormat.TOML: "toml",
    OutputFormat.MSGPACK: "msgpack.txt",
    OutputFormat.MDYAML: "frontmatter.md",
    OutputFormat.DSL: "dsl.txt",
    OutputFormat.JSONLD: "jsonld.json",
    OutputFormat.MDOPT: "optimized.md",
}

_FORMAT_DESCRIPTION: dict[OutputFormat, str] = {
    OutputFormat.MARKDOWN: "Enhanced Markdown with TOC and diagrams",
    OutputFormat.JSON: "Structured JSON with AI context",
    OutputFormat.YAML: "Human-readable YAML format",
    OutputFormat.TOML: "Compact TOML configuration format",
    OutputFormat.MSGPACK: "MessagePack binary archive (Base64)",
    OutputFormat.MDYAML: "Markdown with YAML frontmatter",
    OutputFormat.DSL: "Ultra-compact domain-specific language",
    OutputFormat.JSONLD: "JSON-LD with semantic context",
    OutputFormat.MDOPT: "Optimized compressed Markdown",
}


class FileGroup(StrEnum):
    """Purpose buckets used by the smart markdown rendering, in display order."""

    CONFIGURATION = "⚙️ Configuration"
    ENTRY_POINTS = "🎯 Entry Points"
    COMPONENTS = "🧩 Components"
    API_ROUTES = "🔌 API/Routes"
    MODELS = "📊 Models/Schema"
    UTILITIES = "🛠 Utilities"
    TESTS = "🧪 Tests"
    STYLES = "🎨 Styles"
    OTHER = "📄 Other"


DEFAULT_EXCLUDES = [
    "node_modules",
    "dist",
    "build",
    ".git",
    ".next",
    "coverage",
    "venv",
    "env",
    ".venv",
    ".env",
    "virtualenv",
    "__pycache__",
    "*.pyc",
    ".pytest_cache",
    "target",
    "vendor",
    ".cargo",
    "*.log",
    "*.tmp",
    "*.cache",
    "yarn.lock",
    "package-lock.json",
    ".DS_Store",
    "Thumbs.db",
]

# Substring safety net applied after pattern filtering.
DEPENDENCY_DIR_MARKERS = (
    "/venv/",
    "/env/",
    "/.venv/",
    "/virtualenv/",
    "/site-packages/",
    "/__pycache__/",
    "/node_modules/",
)

BINARY_EXTENSIONS = frozenset({
    ".exe", ".dll", ".so", ".dylib", ".a", ".lib",
    ".jpg", ".jpeg", ".png", ".gif", ".ico", ".svg", ".webp", ".bmp",
    ".zip", ".tar", ".gz", ".rar", ".7z",
    ".pdf", ".doc", ".docx", ".xls", ".xlsx",
    ".mp3", ".mp4", ".avi", ".mov", ".wmv",
    ".ttf", ".woff", ".woff2", ".eot",
    ".bin", ".dat", ".db", ".sqlite",
})  # fmt: skip

SOURCE_EXTENSIONS = frozenset({
    ".js", ".jsx", ".ts", ".tsx", ".vue", ".svelte",
    ".py", ".java", ".go", ".rs", ".rb", ".php",
    ".c", ".cpp", ".h", ".hpp", ".cs",
    ".html", ".css", ".scss", ".sass", ".less",
    ".json", ".xml", ".yml", ".yaml", ".toml",
    ".sql", ".graphql", ".proto",
    ".sh", ".bash", ".zsh", ".fish",
    ".txt",
})  # fmt: skip

# Matched on the full basename, extension or not.
SOURCE_SUFFIXES = (".env.example",)

CONFIG_FILENAMES = frozenset({
    "package.json", "tsconfig.json", "webpack.config.js", "babel.config.js",
    "tailwind.config.js", "next.config.js", "vite.config.js", "rollup.config.js",
    "jest.config.js", "eslint.config.js", ".eslintrc.js", ".eslintrc.json",
    "prettier.config.js", ".prettierrc", "docker-compose.yml", "Dockerfile",
    "README.md", "CLAUDE.md", "CONTRIBUTING.md", "LICENSE", ".gitignore",
})  # fmt: skip

EXTENSIONLESS_BUILD_FILES = frozenset({"Dockerfile", "Makefile", "Rakefile"})

# Configuration bucket of the purpose grouping (narrower than CONFIG_FILENAMES).
GROUP_CONFIG_FILES = frozenset({
    "package.json",
    "tsconfig.json",
    "webpack.config.js",
    "babel.config.js",
    ".eslintrc.js",
    "docker-compose.yml",
})

FILE_DESCRIPTIONS: dict[str, str] = {
    "package.json": "Project dependencies and configuration",
    "tsconfig.json": "TypeScript configuration",
    "webpack.config.js": "Webpack build configuration",
    "babel.config.js": "Babel transpilation configuration",
    "tailwind.config.js": "Tailwind CSS configuration",
    "next.config.js": "Next.js configuration",
    "vite.config.js": "Vite build configuration",
    "jest.config.js": "Jest testing configuration",
    ".eslintrc.js": "ESLint code quality configuration",
    ".eslintrc.json": "ESLint code quality configuration",
    "prettier.config.js": "Prettier code formatting configuration",
    ".prettierrc": "Prettier code formatting configuration",
    "docker-compose.yml": "Docker multi-container configuration",
    "Dockerfile": "Docker container build instructions",
    "README.md": "Project documentation and setup instructions",
    "CHANGELOG.md": "Version history and changes",
    ".gitignore": "Git ignore patterns",
    "__init__.py": "Python package marker file (enables imports from this directory)",
}

PRIORITY_BASENAMES: dict[str, int] = {
    "README.md": 1,
    "package.json": 2,
    "tsconfig.json": 3,
    "index.js": 4,
    "index.ts": 4,
    "main.js": 4,
    "main.ts": 4,
    "app.js": 4,
    "app.ts": 4,
}
DEFAULT_BASENAME_PRIORITY = 100

EXTENSION_PRIORITY: dict[str, int] = {
    ".json": 1,
    ".js": 2,
    ".ts": 3,
    ".jsx": 4,
    ".tsx": 5,
    ".css": 6,
    ".scss": 7,
    ".md": 8,
    ".txt": 9,
}
DEFAULT_EXTENSION_PRIORITY = 10

ENTRY_POINT_BASENAMES = (
    "index.js",
    "index.ts",
    "main.js",
    "main.ts",
    "app.js",
    "app.py",
    "server.js",
    "package.json",
)

EXT2LANG: dict[str, str] = {
    ".bash": "bash",
    ".c": "c",
    ".cpp": "cpp",
    ".cs": "csharp",
    ".css": "css",
    ".fish": "fish",
    ".go": "go",
    ".graphql": "graphql",
    ".h": "c",
    ".hpp": "cpp",
    ".html": "html",
    ".java": "java",
    ".js": "javascript",
    ".json": "json",
    ".jsx": "jsx",
    ".less": "less",
    ".md": "markdown",
    ".php": "php",
    ".proto": "protobuf",
    ".py": "python",
    ".rb": "ruby",
    ".rs": "rust",
    ".sass": "sass",
    ".scss": "scss",
    ".sh": "bash",
    ".sql": "sql",
    ".svelte": "svelte",
    ".toml": "toml",
    ".ts": "typescript",
    ".tsx": "tsx",
    ".txt": "text",
    ".vue": "vue",
    ".xml": "xml",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".zsh": "zsh",
}

PACKAGE_MARKER_NOTE = (
    "Empty __init__.py files are normal Python package markers that enable imports. "
    "They are not errors or missing code."
)

RENDERERS: dict[OutputFormat, RendererFn] = {}


def guess_language(path: str) -> str:
    """Get the suggested code fence language for a file path.

    Args:
        path (str): the file path, relative or absolute.

    Returns:
        str: the fence language from `EXT2LANG`, the bare extension when unknown,
            or "text" for extensionless files.
    """
    name = Path(path).name
    if name == "Dockerfile":
        return "dockerfile"
    if name == "Makefile":
        return "makefile"
    ext = Path(path).suffix.lower()
    return EXT2LANG.get(ext, ext.removeprefix(".") or "text")


class FileRecord(BaseModel):
    """Canonical in-memory representation of one included file.

    Attributes:
        path: Path relative to the input root, with POSIX separators. Unique key.
        absolute_path: Absolute path to the file on disk.
        size: File size in bytes.
        extension: File extension including the dot, "" when none.
        content: File body after the run's content transformation.
        last_modified: Modification time.
        file_type: Classification tag.
        is_package_marker: Zero-byte `__init__.py`.
        description: Optional human label for well-known files.
    """

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="Path relative to the input root")
    absolute_path: Path = Field(..., description="Absolute file path")
    size: int = Field(..., ge=0, description="File size in bytes")
    extension: str = Field("", description="Extension including the dot")
    content: str = Field("", description="Raw or optimized file body")
    last_modified: datetime = Field(..., description="Modification time")
    file_type: FileType = Field(FileType.SOURCE_CODE, description="Classification tag")
    is_package_marker: bool = Field(default=False, description="Zero-byte __init__.py")
    description: str | None = Field(default=None, description="Human label")

    @computed_field
    @property
    def is_empty(self) -> bool:
        """Whether the file on disk has no bytes."""
        return self.size == 0

    @computed_field
    @property
    def language(self) -> str:
        """Suggested code fence language."""
        return guess_language(self.path)

    @property
    def name(self) -> str:
        """Basename of the file."""
        return Path(self.path).name


class SkippedFile(BaseModel):
    """A file left out only because it exceeds the per-file ceiling."""

    model_config = ConfigDict(frozen=True)

    name: str
    size: int = Field(..., ge=0, description="Size in KB, rounded")


class ProcessingError(BaseModel):
    """A non-fatal stat or read failure."""

    model_config = ConfigDict(frozen=True)

    message: str


class ScanResult(BaseModel):
    """Outcome of discovery and classification; a path sits in at most one bucket."""

    model_config = ConfigDict(frozen=True)

    included: list[str] = Field(default_factory=list)
    skipped_files: list[SkippedFile] = Field(default_factory=list)
    errors: list[ProcessingError] = Field(default_factory=list)


class Analysis(BaseModel):
    """Heuristic description of the project derived from the included paths."""

    model_config = ConfigDict(frozen=True)

    architecture: str = "Unknown"
    technologies: list[str] = Field(default_factory=list)
    patterns: list[str] = Field(default_factory=list)


class RunOptions(BaseModel):
    """Options echoed in every document's metadata."""

    model_config = ConfigDict(frozen=True)

    compact: bool = False
    smart: bool = False
    max_file_size: int = 500 * 1024
    respect_gitignore: bool = True


class RunMetadata(BaseModel):
    """Per-run facts shared by every output format."""

    model_config = ConfigDict(frozen=True)

    generated_at: datetime
    source: str
    total_files: int = Field(..., ge=0)
    file_type_counts: dict[str, int] = Field(default_factory=dict)
    options: RunOptions = Field(default_factory=RunOptions)
    skipped_files: list[SkippedFile] = Field(default_factory=list)
    errors: list[ProcessingError] = Field(default_factory=list)

    @property
    def generated_iso(self) -> str:
        """Generation time as an ISO 8601 string with millisecond precision."""
        return self.generated_at.isoformat(timespec="milliseconds")


class ProgressStage(StrEnum):
    """Checkpoints at which a run reports progress."""

    FILES_DISCOVERED = auto()
    FILE_PROCESSED = auto()
    FORMAT_GENERATED = auto()
    RUN_COMPLETE = auto()


class ProgressEvent(BaseModel):
    """Progress notification handed to an optional callback."""

    model_config = ConfigDict(frozen=True)

    stage: ProgressStage
    current: int = 0
    total: int = 0
    detail: str = ""


class OutputDocument(BaseModel):
    """One fully generated artifact."""

    model_config = ConfigDict(frozen=True)

    format: OutputFormat
    text: str

    @computed_field
    @property
    def byte_length(self) -> int:
        """UTF-8 encoded size of the document."""
        return len(self.text.encode("utf-8"))


def register_renderer(
    fmt: OutputFormat,
) -> Callable[[RendererFn], RendererFn]:
    """Decorator to register the renderer of one output format.

    Renderers are pure functions of (files, analysis, metadata) returning text;
    `codepack.rendering.render_document` dispatches on the tag.

    Args:
        fmt (OutputFormat): the format tag handled by the decorated function.

    Returns:
        Callable[[RendererFn], RendererFn]: A decorator that registers the given function
        in the RENDERERS mapping and returns it unchanged.
    """

    def decorator(func: RendererFn) -> RendererFn:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:  # noqa: ANN401
            return func(*args, **kwargs)

        RENDERERS[fmt] = wrapper
        return wrapper

    return decorator

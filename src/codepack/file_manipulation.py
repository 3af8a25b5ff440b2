from __future__ import annotations

import os
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pathspec

from codepack.config import (
    BINARY_EXTENSIONS,
    CONFIG_FILENAMES,
    DEPENDENCY_DIR_MARKERS,
    EXTENSIONLESS_BUILD_FILES,
    SOURCE_EXTENSIONS,
    SOURCE_SUFFIXES,
    ProcessingError,
    ScanResult,
    SkippedFile,
)
from codepack.exceptions import (
    FileAccessError,
    InvalidPathError,
    RestrictedPathError,
    SizeLimitExceededError,
)
from codepack.logging import logger

if TYPE_CHECKING:
    from collections.abc import Sequence

IGNORE_FILE = ".gitignore"
VCS_DIR = ".git"
RESTRICTED_PATHS = ("/etc", "/sys", "/proc")
_GLOB_CHARS = frozenset("*?[]!")


def relpath(path: Path, root: Path) -> str:
    """Send the relative path of path from root.

    Args:
        path (Path): the path to "relativise"
        root (Path): the root to relativise from

    Returns:
        str: the relative path from root to path, with POSIX separators.
            If path is not under root, returns the original path as a string.
    """
    try:
        return str(path.relative_to(root)).replace("\\", "/")
    except ValueError:
        return str(path)


def now_utc() -> datetime:
    """Return the current date and time as an aware UTC datetime."""
    return datetime.now(UTC)


def round_kb(size: int) -> int:
    """Round a byte count to whole kilobytes, halves rounding up."""
    return int(size / 1024 + 0.5)


def restricted_roots() -> list[Path]:
    """Return the sensitive locations an input root must not live under.

    Both the literal and the symlink-resolved form of each location are
    returned so that platforms aliasing `/etc` are covered.
    """
    roots = [Path(p) for p in RESTRICTED_PATHS]
    roots.append(Path.home() / ".ssh")
    resolved = [r.resolve() for r in roots]
    return list(dict.fromkeys([*roots, *resolved]))


def validate_input_path(path: str | Path) -> Path:
    """Canonicalize and authorize the input root.

    Args:
        path (str | Path): the user-supplied input path

    Raises:
        InvalidPathError: if the path does not exist or is not a directory.
        RestrictedPathError: if the resolved path lies under a restricted location.

    Returns:
        Path: the absolute, symlink-resolved input root
    """
    candidate = Path(path).expanduser()
    try:
        resolved = candidate.resolve(strict=True)
    except OSError as e:
        raise InvalidPathError(path=candidate, reason="Input path does not exist") from e
    if not resolved.is_dir():
        raise InvalidPathError(path=candidate, reason="Input path is not a directory")
    for root in restricted_roots():
        if resolved == root or root in resolved.parents:
            raise RestrictedPathError(path=candidate)
    return resolved


def expand_exclude_pattern(pattern: str) -> list[str]:
    """Expand one exclude pattern to its top-level, any-depth and exact-name forms.

    Args:
        pattern (str): a glob such as `node_modules` or `*.log`

    Returns:
        list[str]: the three gitwildmatch patterns covering the input pattern
    """
    p = pattern.strip().strip("/")
    return [f"{p}/**", f"**/{p}/**", f"**/{p}"]


def build_exclusion_spec(patterns: Sequence[str]) -> pathspec.PathSpec:
    """Compile exclude patterns into a single matcher.

    Args:
        patterns (Sequence[str]): exclude patterns, in policy order

    Returns:
        pathspec.PathSpec: a gitwildmatch spec matching every expanded pattern
    """
    lines: list[str] = []
    for pattern in patterns:
        if pattern.strip().strip("/"):
            lines.extend(expand_exclude_pattern(pattern))
    return pathspec.PathSpec.from_lines("gitwildmatch", lines)


def load_ignore_spec(root: Path, errors: list[ProcessingError]) -> pathspec.GitIgnoreSpec | None:
    """Parse the root ignore file with git semantics.

    The version-control directory is always ignored on top of the file's rules.

    Args:
        root (Path): the input root
        errors (list[ProcessingError]): error log appended to when the file cannot be read

    Returns:
        pathspec.GitIgnoreSpec | None: the ignore rules, or None when the file is absent or unreadable
    """
    ignore_path = root / IGNORE_FILE
    if not ignore_path.is_file():
        return None
    try:
        lines = ignore_path.read_text(encoding="utf-8", errors="replace").splitlines()
    except OSError as e:
        errors.append(ProcessingError(message=f"Failed to read {IGNORE_FILE}: {e}"))
        logger.warning("ignore_file_unreadable", path=str(ignore_path), error=str(e))
        return None
    return pathspec.GitIgnoreSpec.from_lines([*lines, VCS_DIR])


def literal_dir_names(patterns: Sequence[str]) -> set[str]:
    """Return the exclude patterns that name a directory without wildcards."""
    out = {VCS_DIR}
    for pattern in patterns:
        p = pattern.strip().strip("/")
        if p and "/" not in p and not (_GLOB_CHARS & set(p)):
            out.add(p)
    return out


def walk_files(root: Path, prune: set[str] | None = None) -> list[str]:
    """Walk the directory tree rooted at `root` and return every non-directory entry.

    Hidden directories are never descended into. Hidden files are still
    returned, so allowlisted dotfiles such as `.gitignore` can be packed.

    Args:
        root (Path): the root directory to walk
        prune (set[str] | None): directory names never descended into

    Returns:
        list[str]: root-relative POSIX paths, sorted
    """
    pruned = prune or set()
    results: list[str] = []
    for dirpath, dirs, files in os.walk(root):
        dirs[:] = [d for d in dirs if d not in pruned and not d.startswith(".")]
        base = Path(dirpath)
        results.extend(relpath(base / f, root) for f in files)
    return sorted(results)


def is_dependency_path(rel: str) -> bool:
    """Check a path against the virtual-environment and dependency directory markers."""
    probe = "/" + rel.lower()
    return any(marker in probe for marker in DEPENDENCY_DIR_MARKERS)


def discover_files(
    root: Path,
    exclude_patterns: Sequence[str],
    *,
    respect_gitignore: bool,
    errors: list[ProcessingError],
) -> list[str]:
    """Enumerate candidate paths under `root` and apply the exclusion policy.

    A path is dropped when it matches an exclude pattern, when the root ignore
    file ignores it (if `respect_gitignore`), or when it sits in a known
    dependency directory. A path that cannot be encoded as UTF-8 is dropped
    and recorded as an error. No file is opened or stat-ed here.

    Args:
        root (Path): the validated input root
        exclude_patterns (Sequence[str]): the exclusion policy patterns
        respect_gitignore (bool): whether to apply the root ignore file
        errors (list[ProcessingError]): error log for ignore-file and path-name failures

    Returns:
        list[str]: surviving root-relative paths, sorted
    """
    exclusion = build_exclusion_spec(exclude_patterns)
    ignore = load_ignore_spec(root, errors) if respect_gitignore else None

    out: list[str] = []
    for rel in walk_files(root, prune=literal_dir_names(exclude_patterns)):
        try:
            rel.encode("utf-8")
        except UnicodeEncodeError as e:
            printable = rel.encode("utf-8", errors="backslashreplace").decode("utf-8")
            errors.append(ProcessingError(message=f"Cannot encode file name {printable}: {e.reason}"))
            logger.warning("unencodable_path", path=printable)
            continue
        if exclusion.match_file(rel):
            logger.debug("excluded_by_pattern", path=rel)
            continue
        if ignore is not None and ignore.match_file(rel):
            logger.debug("excluded_by_ignore_file", path=rel)
            continue
        if is_dependency_path(rel):
            logger.debug("excluded_dependency_dir", path=rel)
            continue
        out.append(rel)
    return out


def is_binary_file(rel: str) -> bool:
    """Check whether a path carries a binary extension."""
    return Path(rel).suffix.lower() in BINARY_EXTENSIONS


def is_source_file(rel: str) -> bool:
    """Check a path against the source allowlist.

    A path is allowed when its basename is a well-known configuration file,
    its extension is a recognized source/config extension, or it is an
    extensionless well-known build file.

    Args:
        rel (str): the root-relative path

    Returns:
        bool: True if the path is eligible for inclusion
    """
    p = Path(rel)
    name = p.name
    ext = p.suffix.lower()
    if name in CONFIG_FILENAMES:
        return True
    if ext in SOURCE_EXTENSIONS:
        return True
    if name.endswith(SOURCE_SUFFIXES):
        return True
    return not ext and name in EXTENSIONLESS_BUILD_FILES


def check_size(root: Path, rel: str, max_file_size: int) -> int:
    """Stat a candidate and enforce the per-file ceiling.

    Args:
        root (Path): the input root
        rel (str): the root-relative path
        max_file_size (int): ceiling in bytes

    Raises:
        FileAccessError: if the file cannot be stat-ed.
        SizeLimitExceededError: if the file is larger than `max_file_size`.

    Returns:
        int: the file size in bytes
    """
    try:
        size = (root / rel).stat().st_size
    except OSError as e:
        raise FileAccessError(path=rel, reason=str(e)) from e
    if size > max_file_size:
        raise SizeLimitExceededError(path=rel, size=size, limit=max_file_size)
    return size


def classify_files(root: Path, candidates: Sequence[str], *, max_file_size: int) -> ScanResult:
    """Split candidates into included, skipped-too-large and errored buckets.

    Binary and non-source files are dropped silently. A path lands in at most
    one bucket.

    Args:
        root (Path): the input root
        candidates (Sequence[str]): root-relative paths surviving discovery
        max_file_size (int): per-file ceiling in bytes

    Returns:
        ScanResult: the three buckets
    """
    included: list[str] = []
    skipped: list[SkippedFile] = []
    errors: list[ProcessingError] = []
    for rel in candidates:
        if is_binary_file(rel):
            logger.debug("excluded_binary", path=rel)
            continue
        if not is_source_file(rel):
            logger.debug("excluded_not_source", path=rel)
            continue
        try:
            check_size(root, rel, max_file_size)
        except SizeLimitExceededError as e:
            skipped.append(SkippedFile(name=rel, size=round_kb(e.size)))
            logger.info("skipping_large_file", path=rel, size_kb=round_kb(e.size))
            continue
        except FileAccessError as e:
            errors.append(ProcessingError(message=e.message))
            logger.warning("file_access_failed", path=rel, error=e.reason)
            continue
        included.append(rel)
    return ScanResult(included=included, skipped_files=skipped, errors=errors)


def build_tree_lines(root_name: str, rel_paths: Sequence[str]) -> list[str]:
    """Build a visual tree representation of file paths.

    Args:
        root_name (str): the name to use for the root of the tree
        rel_paths (Sequence[str]): the list of file paths relative to the root, using POSIX separators (e.g. "src/main.py")

    Returns:
        list[str]: a list of strings representing the tree structure, suitable for printing
    """
    rels = sorted(
        {p.strip("/").replace("\\", "/") for p in rel_paths if p.strip()},
        key=str.lower,
    )
    tree: dict[str, Any] = {}
    for rp in rels:
        cur = tree
        parts = rp.split("/")
        for i, part in enumerate(parts):
            if i == len(parts) - 1:
                cur.setdefault("__files__", set()).add(part)
            else:
                cur = cur.setdefault(part, {})

    lines: list[str] = [root_name]

    def walk(node: dict[str, Any], prefix: str) -> None:
        dirs = sorted([k for k in node if k != "__files__"], key=str.lower)
        files = sorted(node.get("__files__", set()), key=str.lower)
        entries: list[tuple[str, str, Any]] = []
        entries.extend(("dir", d, node[d]) for d in dirs)
        entries.extend(("file", f, None) for f in files)
        for idx, (kind, name, child) in enumerate(entries):
            last = idx == len(entries) - 1
            branch = "└── " if last else "├── "
            lines.append(prefix + branch + name + ("/" if kind == "dir" else ""))
            if kind == "dir":
                ext = "    " if last else "│   "
                walk(child, prefix + ext)

    walk(tree, "")
    return lines


def build_compact_tree(rel_paths: Sequence[str]) -> str:
    """Render directories then files, indented two spaces per depth level.

    Args:
        rel_paths (Sequence[str]): root-relative POSIX paths, in display order

    Returns:
        str: one entry per line, directories suffixed with "/"
    """
    dirs: set[str] = set()
    for rel in rel_paths:
        parts = rel.split("/")
        for i in range(len(parts) - 1):
            dirs.add("/".join(parts[: i + 1]))

    lines = [f"{'  ' * d.count('/')}{d.rsplit('/', 1)[-1]}/" for d in sorted(dirs)]
    lines.extend(f"{'  ' * rel.count('/')}{rel.rsplit('/', 1)[-1]}" for rel in rel_paths)
    return "".join(line + "\n" for line in lines)

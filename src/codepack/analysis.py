from __future__ import annotations

import posixpath
from collections import Counter
from typing import TYPE_CHECKING

from codepack.config import (
    DEFAULT_BASENAME_PRIORITY,
    DEFAULT_EXTENSION_PRIORITY,
    EXTENSION_PRIORITY,
    GROUP_CONFIG_FILES,
    PRIORITY_BASENAMES,
    Analysis,
    FileGroup,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    PathRule = Callable[[Sequence[str]], bool]


def _contains(fragment: str) -> PathRule:
    return lambda paths: any(fragment in p for p in paths)


def _any_contains(*fragments: str) -> PathRule:
    return lambda paths: any(f in p for p in paths for f in fragments)


def _has_path(exact: str) -> PathRule:
    return lambda paths: exact in paths


def _has_extension(*suffixes: str) -> PathRule:
    return lambda paths: any(p.endswith(suffixes) for p in paths)


# First match wins.
ARCHITECTURE_RULES: tuple[tuple[PathRule, str], ...] = (
    (_any_contains("pages/", "app/"), "Next.js/React App"),
    (_contains("src/components/"), "React SPA"),
    (_any_contains("main.py", "app.py"), "Python Backend"),
    (_contains("server.js"), "Node.js Server"),
)
UNKNOWN_ARCHITECTURE = "Unknown"

# Additive; every matching rule contributes its label.
TECHNOLOGY_RULES: tuple[tuple[PathRule, str], ...] = (
    (_has_path("package.json"), "Node.js/JavaScript"),
    (_has_extension(".ts"), "TypeScript"),
    (_has_extension(".py"), "Python"),
    (_has_extension(".java"), "Java"),
    (_has_extension(".go"), "Go"),
    (_has_extension(".rs"), "Rust"),
    (_has_path("Dockerfile"), "Docker"),
    (_has_extension(".yml", ".yaml"), "YAML Configuration"),
)

PATTERN_RULES: tuple[tuple[PathRule, str], ...] = (
    (_contains("hooks/"), "Custom Hooks"),
    (_contains("api/"), "API Routes"),
    (_contains("models/"), "Data Models"),
    (_contains("utils/"), "Utility Functions"),
)


def detect_architecture(paths: Sequence[str]) -> str:
    """Pick a single architecture label; the first matching rule wins."""
    for rule, label in ARCHITECTURE_RULES:
        if rule(paths):
            return label
    return UNKNOWN_ARCHITECTURE


def detect_technologies(paths: Sequence[str]) -> list[str]:
    """Collect the label of every technology rule matching the path list."""
    return [label for rule, label in TECHNOLOGY_RULES if rule(paths)]


def detect_patterns(paths: Sequence[str]) -> list[str]:
    """Collect the label of every directory-convention rule matching the path list."""
    return [label for rule, label in PATTERN_RULES if rule(paths)]


def analyze_project(paths: Sequence[str]) -> Analysis:
    """Derive architecture, technologies and patterns from the included paths.

    This is a pure function of the path list; file contents are never read.

    Args:
        paths (Sequence[str]): root-relative POSIX paths of the included files

    Returns:
        Analysis: the heuristic project description
    """
    return Analysis(
        architecture=detect_architecture(paths),
        technologies=detect_technologies(paths),
        patterns=detect_patterns(paths),
    )


def file_stats(paths: Sequence[str]) -> dict[str, int]:
    """Count files per extension, in first-seen order."""
    counts = Counter(posixpath.splitext(p)[1] or "no extension" for p in paths)
    return dict(counts)


def priority_key(path: str) -> tuple[int, int, str]:
    """Sort key of the deterministic file ordering.

    Well-known basenames come first (readme, manifest, TypeScript config, entry
    points), then structured-config extensions before scripts before docs, then
    lexical path order.

    Args:
        path (str): a root-relative POSIX path

    Returns:
        tuple[int, int, str]: basename rank, extension rank, path
    """
    base = posixpath.basename(path)
    ext = posixpath.splitext(path)[1]
    return (
        PRIORITY_BASENAMES.get(base, DEFAULT_BASENAME_PRIORITY),
        EXTENSION_PRIORITY.get(ext, DEFAULT_EXTENSION_PRIORITY),
        path,
    )


def prioritize(paths: Sequence[str]) -> list[str]:
    """Return the paths in priority order without mutating the input."""
    return sorted(paths, key=priority_key)


def classify_group(path: str) -> FileGroup:
    """Bucket one file by purpose; the first matching check wins.

    Args:
        path (str): a root-relative POSIX path

    Returns:
        FileGroup: the purpose bucket
    """
    base = posixpath.basename(path)
    dirname = posixpath.dirname(path)
    if base in GROUP_CONFIG_FILES:
        return FileGroup.CONFIGURATION
    if "test" in dirname or ".test." in path or ".spec." in path:
        return FileGroup.TESTS
    if path.endswith((".css", ".scss", ".sass", ".less")):
        return FileGroup.STYLES
    if "index." in base or "main." in base or "app." in base:
        return FileGroup.ENTRY_POINTS
    if "component" in dirname:
        return FileGroup.COMPONENTS
    if "api" in dirname or "route" in dirname:
        return FileGroup.API_ROUTES
    if "model" in dirname or "schema" in dirname:
        return FileGroup.MODELS
    if "util" in dirname or "helper" in dirname:
        return FileGroup.UTILITIES
    return FileGroup.OTHER


def group_by_purpose(paths: Sequence[str]) -> dict[FileGroup, list[str]]:
    """Bucket paths by purpose, keeping every group in display order.

    Args:
        paths (Sequence[str]): root-relative paths, already in the wanted order

    Returns:
        dict[FileGroup, list[str]]: one entry per group, possibly empty
    """
    groups: dict[FileGroup, list[str]] = {g: [] for g in FileGroup}
    for path in paths:
        groups[classify_group(path)].append(path)
    return groups

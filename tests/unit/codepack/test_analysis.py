import pytest

from codepack.analysis import (
    analyze_project,
    classify_group,
    detect_architecture,
    detect_patterns,
    detect_technologies,
    file_stats,
    group_by_purpose,
    prioritize,
)
from codepack.config import FileGroup


@pytest.mark.unit
@pytest.mark.parametrize(
    ("paths", "expected"),
    [
        (["app/page.tsx", "src/components/Nav.jsx", "main.py"], "Next.js/React App"),
        (["src/pages/index.js"], "Next.js/React App"),
        (["src/components/Nav.jsx", "main.py"], "React SPA"),
        (["backend/app.py", "server.js"], "Python Backend"),
        (["server.js"], "Node.js Server"),
        (["lib/core.rs"], "Unknown"),
        ([], "Unknown"),
    ],
)
def test_detect_architecture_first_match_wins(paths: list[str], expected: str) -> None:
    assert detect_architecture(paths) == expected


@pytest.mark.unit
def test_detect_technologies_is_additive() -> None:
    paths = ["package.json", "src/a.ts", "tools/b.py", "Dockerfile", ".github/ci.yml", "cmd/main.go"]

    assert detect_technologies(paths) == [
        "Node.js/JavaScript",
        "TypeScript",
        "Python",
        "Go",
        "Docker",
        "YAML Configuration",
    ]


@pytest.mark.unit
def test_detect_technologies_requires_root_manifest() -> None:
    assert detect_technologies(["web/package.json", "web/Dockerfile"]) == []


@pytest.mark.unit
def test_detect_patterns() -> None:
    paths = ["src/hooks/useUser.ts", "src/api/users.ts", "src/utils/fmt.ts"]

    assert detect_patterns(paths) == ["Custom Hooks", "API Routes", "Utility Functions"]


@pytest.mark.unit
def test_analyze_project_bundles_all_three() -> None:
    analysis = analyze_project(["main.py", "models/user.py"])

    assert analysis.architecture == "Python Backend"
    assert analysis.technologies == ["Python"]
    assert analysis.patterns == ["Data Models"]


@pytest.mark.unit
def test_prioritize_orders_well_known_files_first() -> None:
    assert prioritize(["src/index.js", "package.json", "README.md"]) == [
        "README.md",
        "package.json",
        "src/index.js",
    ]


@pytest.mark.unit
def test_prioritize_breaks_ties_by_extension_then_path() -> None:
    paths = ["z.md", "b.js", "a.js", "c.json", "d.py"]

    assert prioritize(paths) == ["c.json", "a.js", "b.js", "z.md", "d.py"]


@pytest.mark.unit
def test_prioritize_does_not_mutate_input() -> None:
    paths = ["b.py", "a.py"]

    prioritize(paths)

    assert paths == ["b.py", "a.py"]


@pytest.mark.unit
@pytest.mark.parametrize(
    ("path", "group"),
    [
        ("package.json", FileGroup.CONFIGURATION),
        ("tests/test_app.py", FileGroup.TESTS),
        ("src/Button.test.jsx", FileGroup.TESTS),
        ("src/theme.scss", FileGroup.STYLES),
        ("src/index.js", FileGroup.ENTRY_POINTS),
        ("src/components/Button.jsx", FileGroup.COMPONENTS),
        ("src/routes/users.js", FileGroup.API_ROUTES),
        ("src/schema/user.js", FileGroup.MODELS),
        ("src/helpers/date.js", FileGroup.UTILITIES),
        ("docs/guide.md", FileGroup.OTHER),
    ],
)
def test_classify_group(path: str, group: FileGroup) -> None:
    assert classify_group(path) == group


@pytest.mark.unit
def test_group_by_purpose_keeps_every_group_in_display_order() -> None:
    groups = group_by_purpose(["src/utils/a.js", "package.json"])

    assert list(groups) == list(FileGroup)
    assert groups[FileGroup.CONFIGURATION] == ["package.json"]
    assert groups[FileGroup.UTILITIES] == ["src/utils/a.js"]
    assert groups[FileGroup.OTHER] == []


@pytest.mark.unit
def test_file_stats_counts_extensions() -> None:
    assert file_stats(["a.py", "b.py", "Makefile"]) == {".py": 2, "no extension": 1}

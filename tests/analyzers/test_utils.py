"""Tests for shared analyzer helpers."""

from __future__ import annotations

from pathlib import Path

from archlens.analyzers.utils import (
    DependencyCollector,
    build_ignore_rules,
    classify_role,
    in_test_directory,
    iter_files,
    nested_project_dirs,
    project_patterns,
    relative_path,
    split_base_types,
)
from archlens.models import TypeInfo


def _touch(root: Path, relative: str) -> None:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("", encoding="utf-8")


def test_iter_files_prunes_excluded_and_ignored_directories(tmp_path: Path) -> None:
    for relative in (
        "a.py",
        "pkg/b.py",
        "node_modules/x/c.py",
        "__pycache__/d.py",
        "generated/e.py",
        "pkg/generated_models.py",
        "docs/f.py",
    ):
        _touch(tmp_path, relative)
    rules = build_ignore_rules(["generated/", "/docs", "*_models.py", "# comment", ""])

    found = [relative_path(path, tmp_path) for path in iter_files(tmp_path, ("*.py",), rules=rules)]

    assert found == ["a.py", "pkg/b.py"]


def test_iter_files_skips_nested_project_directories(tmp_path: Path) -> None:
    _touch(tmp_path, "main.go")
    _touch(tmp_path, "tools/go.mod")
    _touch(tmp_path, "tools/gen.go")
    nested = nested_project_dirs(tmp_path, [tmp_path, tmp_path / "tools"])

    found = [path.name for path in iter_files(tmp_path, ("*.go",), skip_dirs=nested)]

    assert nested == {tmp_path / "tools"}
    assert found == ["main.go"]


def test_dependency_collector_keeps_first_declaration() -> None:
    collector = DependencyCollector()
    collector.add("serde", "1.0")
    collector.add("tokio", " 1.28 ")
    collector.add("serde", "2.0")
    collector.add("  ")

    assert [(dep.name, dep.version) for dep in collector.freeze()] == [
        ("serde", "1.0"),
        ("tokio", "1.28"),
    ]


def test_classify_role_prefers_test_context_and_first_rule() -> None:
    assert classify_role("OrderService") == "Service"
    assert classify_role("ServiceController") == "Controller"
    assert classify_role("OrderServiceTests") == "UnitTest"
    assert classify_role("OrderService", in_test_file=True) == "UnitTest"
    assert classify_role("Orders", base_types=("BaseRepository",)) == "Repository"
    assert classify_role("Widget") is None


def test_in_test_directory_checks_parent_folders_only() -> None:
    assert in_test_directory("tests/test_a.py")
    assert in_test_directory("src/__tests__/a.ts")
    assert not in_test_directory("tests.py")
    assert not in_test_directory("src/contest/a.py")


def test_project_patterns_keep_unit_test_alongside_other_roles() -> None:
    code = TypeInfo(name="A", namespace="m", file_path="a.py", role="Service")
    test = TypeInfo(name="ATest", namespace="m", file_path="t.py", role="UnitTest")

    assert project_patterns([code, test]) == ("Service", "UnitTest")
    assert project_patterns([test], extra=("xUnit",)) == ("UnitTest", "xUnit")


def test_split_base_types_keeps_generic_arguments() -> None:
    assert split_base_types("Base<T, U>, IDisposable ,  IEquatable<Foo>") == (
        "Base<T, U>",
        "IDisposable",
        "IEquatable<Foo>",
    )
    assert split_base_types(None) == ()

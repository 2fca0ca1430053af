"""Tests for archlens.dispatcher."""

from __future__ import annotations

import threading
from datetime import UTC, datetime
from pathlib import Path

import pytest

from archlens.analyzers import RustAnalyzer
from archlens.cancellation import CancellationToken
from archlens.dispatcher import CodebaseAnalyzer, analyze_codebase
from archlens.errors import AnalysisCancelled, RootNotFound
from archlens.models import Conventions, PartialAnalysis, ProjectInfo
from tests._fixtures.repo_builder import RepoBuilder


class StubAnalyzer:
    """Analyzer double returning a fixed set of project names."""

    naming_style = "PascalCase"
    private_member_prefix = "_"

    def __init__(
        self,
        ecosystem_id: str,
        names=(),
        *,
        applicable: bool = True,
        conventions: Conventions | None = None,
        before=None,
    ) -> None:
        self.ecosystem_id = ecosystem_id
        self._names = list(names)
        self._applicable = applicable
        self._conventions = conventions or Conventions()
        self._before = before
        self.calls = 0

    def can_analyze(self, root: Path) -> bool:
        return self._applicable

    def analyze(self, root: Path, name: str, cancel_token=None) -> PartialAnalysis:
        self.calls += 1
        if self._before is not None:
            self._before(cancel_token)
        return PartialAnalysis(
            ecosystem_id=self.ecosystem_id,
            projects=tuple(
                ProjectInfo(name=item, manifest_path="", directory=item, ecosystem=self.ecosystem_id)
                for item in self._names
            ),
            conventions=self._conventions,
        )


class BrokenAnalyzer(StubAnalyzer):
    def analyze(self, root: Path, name: str, cancel_token=None) -> PartialAnalysis:
        raise RuntimeError("boom")


class BrokenProbeAnalyzer(StubAnalyzer):
    def can_analyze(self, root: Path) -> bool:
        raise PermissionError("denied")


def _fixed_clock() -> datetime:
    return datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)


def test_missing_root_raises_root_not_found(tmp_path: Path) -> None:
    analyzer = CodebaseAnalyzer([StubAnalyzer("stub", ["a"])])

    with pytest.raises(RootNotFound):
        analyzer.analyze(tmp_path / "missing", "demo")

    file_root = tmp_path / "file.txt"
    file_root.write_text("x", encoding="utf-8")
    with pytest.raises(FileNotFoundError):
        analyzer.analyze(file_root, "demo")


def test_empty_root_yields_no_projects(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"README.md": "# nothing to see\n"})

    analysis = repo_builder.analyze("empty")

    assert analysis.projects == ()
    assert analysis.summary.ecosystems == ()
    assert analysis.conventions == Conventions()
    assert analysis.summary_text.startswith("# Codebase: empty\n")
    assert analysis.summary_token_estimate == (len(analysis.summary_text) + 3) // 4


def test_projects_merge_in_registration_order_not_completion_order(tmp_path: Path) -> None:
    second_done = threading.Event()

    def wait_for_second(_token) -> None:
        second_done.wait(timeout=5)

    def mark_done(_token) -> None:
        second_done.set()

    analyzer = CodebaseAnalyzer(
        [
            StubAnalyzer("first", ["a1", "a2"], before=wait_for_second),
            StubAnalyzer("skipped", ["x"], applicable=False),
            StubAnalyzer("second", ["b1"], before=mark_done),
        ],
        max_workers=2,
        clock=_fixed_clock,
    )

    analysis = analyzer.analyze(tmp_path, "demo")

    assert [project.name for project in analysis.projects] == ["a1", "a2", "b1"]
    assert analysis.summary.ecosystems == ("first", "second")
    assert analysis.analyzed_at == _fixed_clock()
    assert analysis.root_path == str(tmp_path)


def test_broken_analyzer_does_not_remove_sibling_projects(tmp_path: Path, caplog) -> None:
    analyzer = CodebaseAnalyzer(
        [
            BrokenAnalyzer("broken"),
            BrokenProbeAnalyzer("probe"),
            StubAnalyzer("healthy", ["ok"]),
        ]
    )

    with caplog.at_level("ERROR", logger="archlens"):
        analysis = analyzer.analyze(tmp_path, "demo")

    assert [project.name for project in analysis.projects] == ["ok"]
    assert "Analyzer 'broken' failed: boom" in caplog.text


def test_conventions_come_from_first_analyzer_with_projects(tmp_path: Path) -> None:
    analyzer = CodebaseAnalyzer(
        [
            StubAnalyzer("none", [], conventions=Conventions("camelCase", "", "Jest")),
            StubAnalyzer("go", ["svc"], conventions=Conventions("MixedCaps", "", "testing")),
            StubAnalyzer("py", ["lib"], conventions=Conventions("snake_case", "_", "pytest")),
        ]
    )

    analysis = analyzer.analyze(tmp_path, "demo")

    assert analysis.conventions == Conventions("MixedCaps", "", "testing")


def test_cancelled_token_raises_before_any_analyzer_runs(tmp_path: Path) -> None:
    stub = StubAnalyzer("stub", ["a"])
    token = CancellationToken()
    token.cancel()

    with pytest.raises(AnalysisCancelled):
        CodebaseAnalyzer([stub]).analyze(tmp_path, "demo", token)

    assert stub.calls == 0


def test_cancellation_during_run_discards_partial_results(tmp_path: Path) -> None:
    token = CancellationToken()

    def cancel(_token) -> None:
        token.cancel()

    analyzer = CodebaseAnalyzer(
        [StubAnalyzer("first", ["a"]), StubAnalyzer("second", ["b"], before=cancel)]
    )

    with pytest.raises(AnalysisCancelled):
        analyzer.analyze(tmp_path, "demo", token)


def test_cancellation_inside_file_scan(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"Cargo.toml": '[package]\nname = "x"\n', "src/lib.rs": "pub struct X;\n"})
    token = CancellationToken()
    token.cancel()

    with pytest.raises(AnalysisCancelled):
        RustAnalyzer().analyze(repo_builder.path(), "demo", token)


POLYGLOT_FILES = {
    "services/engine/Cargo.toml": """
    [package]
    name = "engine"

    [dependencies]
    serde = "1.0"
    tokio = { version = "1.28", features = ["full"] }
    """,
    "services/engine/src/lib.rs": """
    pub trait Scheduler {
        fn tick(&mut self);
    }

    pub struct JobService {
        queue: Vec<String>,
    }
    """,
    "api/go.mod": "module example.com/api\n\ngo 1.22\n",
    "api/handlers.go": """
    package handlers

    type OrderHandler struct {
        svc OrderService
    }

    type OrderService interface {
        Place(id string) error
    }
    """,
    "web/package.json": '{"name": "web", "dependencies": {"react": "18.2.0"}}',
    "web/src/components/Cart.tsx": "export function Cart() {\n  return null;\n}\n",
    "tools/pyproject.toml": '[project]\nname = "tools"\ndependencies = ["redis>=5"]\n',
    "tools/tools/cli.py": "class ExportManager:\n    pass\n",
    "dotnet/Foo.Tests/Foo.Tests.csproj": "<Project><PropertyGroup><TargetFramework>net8.0</TargetFramework></PropertyGroup></Project>",
    "dotnet/Foo.Tests/Plain.cs": "namespace Foo.Tests;\n\npublic class Plain { }\n",
    "web/node_modules/lib/package.json": '{"name": "lib", "dependencies": {"vue": "3"}}',
    "web/node_modules/lib/index.js": "export class Hidden {}\n",
    "services/engine/target/debug/Cargo.toml": '[package]\nname = "artifact"\n',
    "tools/__pycache__/cli.py": "class Cached:\n    pass\n",
}


def test_polyglot_codebase_end_to_end(repo_builder: RepoBuilder) -> None:
    repo_builder.write(POLYGLOT_FILES)

    analysis = repo_builder.analyze("poly", clock=_fixed_clock)

    names = [(project.ecosystem, project.name) for project in analysis.projects]
    assert names == [
        ("python", "tools"),
        ("rust", "engine"),
        ("go", "example.com/api"),
        ("typescript", "web"),
        ("csharp", "Foo.Tests"),
    ]
    all_type_names = {item.name for project in analysis.projects for item in project.all_types()}
    assert {"Hidden", "Cached"}.isdisjoint(all_type_names)
    engine = analysis.projects[1]
    assert [(dep.name, dep.version) for dep in engine.dependencies] == [
        ("serde", "1.0"),
        ("tokio", "1.28"),
    ]
    dotnet = analysis.projects[4]
    assert dotnet.is_test_project
    assert analysis.conventions.naming_style == "snake_case"
    assert analysis.summary.primary_ecosystem == "python"
    assert len(analysis.summary_context.extension_points) <= 10
    assert "- **Foo.Tests** (Tests)" in analysis.summary_text
    assert "## Project: engine" in analysis.full_context_text
    assert "- **Cache**: redis (>=5)" in analysis.full_context_text


def test_reanalysis_is_byte_identical(repo_builder: RepoBuilder) -> None:
    repo_builder.write(POLYGLOT_FILES)

    first = repo_builder.analyze("poly")
    second = repo_builder.analyze("poly")

    assert first.summary_text == second.summary_text
    assert first.full_context_text == second.full_context_text
    assert first.summary_token_estimate == second.summary_token_estimate


def test_analyze_codebase_honors_config_file(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            ".archlens.yml": "analyzers:\n  enabled: [rust]\nexclude_paths:\n  - legacy/\n",
            "Cargo.toml": '[package]\nname = "current"\n',
            "src/lib.rs": "pub struct Current;\n",
            "legacy/Cargo.toml": '[package]\nname = "old"\n',
            "scripts/build.py": "class Builder:\n    pass\n",
        }
    )

    analysis = analyze_codebase(repo_builder.path())

    assert analysis.name == "repo"
    assert [project.name for project in analysis.projects] == ["current"]


def test_analyze_codebase_missing_root(tmp_path: Path) -> None:
    with pytest.raises(RootNotFound):
        analyze_codebase(tmp_path / "nope", "demo")

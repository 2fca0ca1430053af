"""Tests for analyzer discovery utilities."""

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from archlens.analyzers import (
    CSharpAnalyzer,
    EcosystemAnalyzer,
    PythonAnalyzer,
    builtin_analyzer_names,
    discover_analyzers,
)
from archlens.models import PartialAnalysis


class DummyAnalyzer:
    """Test analyzer used for plugin discovery validation."""

    ecosystem_id = "dummy"
    naming_style = "snake_case"
    private_member_prefix = ""

    def can_analyze(self, root):  # pragma: no cover - unused
        return False

    def analyze(self, root, name, cancel_token=None):  # pragma: no cover - unused
        return PartialAnalysis(ecosystem_id=self.ecosystem_id)


def _patch_entry_points(monkeypatch, entries) -> None:
    class DummyEntryPoints(list):
        def select(self, **kwargs):
            if kwargs.get("group") == "archlens.analyzers":
                return self
            return []

    monkeypatch.setattr(
        "archlens.analyzers.metadata.entry_points",
        lambda: DummyEntryPoints(entries),
        raising=False,
    )


def test_discover_analyzers_returns_builtins_in_registration_order(monkeypatch) -> None:
    _patch_entry_points(monkeypatch, [])

    analyzers = discover_analyzers()

    assert [analyzer.ecosystem_id for analyzer in analyzers] == [
        "python",
        "rust",
        "go",
        "typescript",
        "csharp",
    ]
    assert builtin_analyzer_names() == ["python", "rust", "go", "typescript", "csharp"]
    assert all(isinstance(analyzer, EcosystemAnalyzer) for analyzer in analyzers)


def test_discover_analyzers_respects_enabled_filter(monkeypatch) -> None:
    _patch_entry_points(monkeypatch, [])

    analyzers = discover_analyzers(["CSharp", "python"])

    assert [type(analyzer) for analyzer in analyzers] == [PythonAnalyzer, CSharpAnalyzer]


def test_discover_analyzers_loads_entry_points(monkeypatch) -> None:
    _patch_entry_points(monkeypatch, [SimpleNamespace(name="dummy", load=lambda: DummyAnalyzer)])

    analyzers = discover_analyzers(["dummy"])

    assert len(analyzers) == 1
    assert isinstance(analyzers[0], DummyAnalyzer)


def test_entry_point_cannot_shadow_builtin(monkeypatch) -> None:
    _patch_entry_points(monkeypatch, [SimpleNamespace(name="python", load=lambda: DummyAnalyzer)])

    analyzers = discover_analyzers(["python"])

    assert [type(analyzer) for analyzer in analyzers] == [PythonAnalyzer]


def test_entry_point_returning_non_analyzer_is_rejected(monkeypatch) -> None:
    _patch_entry_points(monkeypatch, [SimpleNamespace(name="bogus", load=lambda: object())])

    with pytest.raises(TypeError):
        discover_analyzers(["bogus"])


def test_discover_analyzers_raises_for_unknown_name(monkeypatch) -> None:
    _patch_entry_points(monkeypatch, [])

    with pytest.raises(ValueError):
        discover_analyzers(["does-not-exist"])


def test_exclude_paths_reach_builtin_analyzers(tmp_path: Path, monkeypatch) -> None:
    _patch_entry_points(monkeypatch, [])
    (tmp_path / "generated").mkdir()
    (tmp_path / "generated" / "Cargo.toml").write_text('[package]\nname = "gen"\n', encoding="utf-8")

    (rust,) = discover_analyzers(["rust"], exclude_paths=["generated/"])

    assert not rust.can_analyze(tmp_path)

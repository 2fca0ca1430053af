"""Ecosystem analyzer implementations and discovery utilities."""

from __future__ import annotations

from importlib import metadata
from typing import Callable, Iterable, List, Sequence, Set

from .base import EcosystemAnalyzer
from .csharp import CSharpAnalyzer
from .frontend import FrontendAnalyzer
from .go import GoAnalyzer
from .python import PythonAnalyzer
from .rust import RustAnalyzer

_ENTRY_POINT_GROUP = "archlens.analyzers"

AnalyzerFactory = Callable[[Sequence[str]], EcosystemAnalyzer]

# Registration order is the merge order of the aggregate result.
_BUILTIN_FACTORIES: dict[str, AnalyzerFactory] = {
    "python": PythonAnalyzer,
    "rust": RustAnalyzer,
    "go": GoAnalyzer,
    "typescript": FrontendAnalyzer,
    "csharp": CSharpAnalyzer,
}


def discover_analyzers(
    enabled: Sequence[str] | None = None,
    *,
    exclude_paths: Sequence[str] = (),
) -> List[EcosystemAnalyzer]:
    """Return instantiated analyzers in registration order, honoring optional enabled names."""

    enabled_set: Set[str] | None = None
    if enabled:
        enabled_set = {name.lower() for name in enabled}

    analyzers: List[EcosystemAnalyzer] = []
    seen: Set[str] = set()

    def _add(name: str, factory: Callable[[], EcosystemAnalyzer]) -> None:
        key = name.lower()
        if enabled_set is not None and key not in enabled_set:
            return
        if key in seen:
            return
        instance = factory()
        if not isinstance(instance, EcosystemAnalyzer):
            raise TypeError(
                f"Analyzer factory for '{name}' did not return an EcosystemAnalyzer instance"
            )
        analyzers.append(instance)
        seen.add(key)
        if enabled_set is not None:
            enabled_set.discard(key)

    for name, builtin in _BUILTIN_FACTORIES.items():
        _add(name, lambda builtin=builtin: builtin(exclude_paths))

    for entry in _iter_entry_points():
        try:
            loaded = entry.load()
        except Exception as exc:
            raise RuntimeError(f"Failed to load analyzer entry point '{entry.name}': {exc}") from exc
        _add(entry.name, lambda obj=loaded: _coerce_analyzer(obj, exclude_paths))

    if enabled_set:
        missing = ", ".join(sorted(enabled_set))
        raise ValueError(f"Unknown analyzers requested: {missing}")

    return analyzers


def builtin_analyzer_names() -> List[str]:
    return list(_BUILTIN_FACTORIES)


def _coerce_analyzer(obj: object, exclude_paths: Sequence[str]) -> EcosystemAnalyzer:
    if isinstance(obj, type):
        try:
            instance = obj(exclude_paths)
        except TypeError:
            instance = obj()
        if isinstance(instance, EcosystemAnalyzer):
            return instance
    elif isinstance(obj, EcosystemAnalyzer):
        return obj
    elif callable(obj):
        instance = obj()
        if isinstance(instance, EcosystemAnalyzer):
            return instance
    raise TypeError("Analyzer entry point must be an EcosystemAnalyzer class, instance or factory")


def _iter_entry_points() -> Iterable[metadata.EntryPoint]:
    return metadata.entry_points().select(group=_ENTRY_POINT_GROUP)


__all__ = [
    "CSharpAnalyzer",
    "EcosystemAnalyzer",
    "FrontendAnalyzer",
    "GoAnalyzer",
    "PythonAnalyzer",
    "RustAnalyzer",
    "builtin_analyzer_names",
    "discover_analyzers",
]

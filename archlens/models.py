"""Structural model produced by codebase analysis.

Every entity is a frozen dataclass with tuple collections; an ``AggregateAnalysis``
is shared across threads as-is. ``to_dict`` /
``from_dict`` define the persisted schema; bump ``SCHEMA_VERSION`` whenever a
field is renamed or removed.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any, Dict, Mapping, Optional, Tuple

SCHEMA_VERSION = 1

TEST_NAME_SUFFIXES: Tuple[str, ...] = (
    ".Tests",
    ".Test",
    ".UnitTests",
    ".IntegrationTests",
    "_test",
    "_tests",
    "-test",
    "-tests",
)
TEST_NAMES = frozenset({"test", "tests", "testing", "e2e"})


@dataclass(frozen=True)
class DependencyReference:
    """A declared dependency from a project manifest."""

    name: str
    version: str = ""


@dataclass(frozen=True)
class TypeInfo:
    """A class/struct/enum or interface/trait discovered in a source file."""

    name: str
    namespace: str
    file_path: str
    kind: str = "class"
    base_types: Tuple[str, ...] = ()
    role: Optional[str] = None
    start_line: int = 0
    end_line: int = 0


@dataclass(frozen=True)
class ProjectInfo:
    """One compilation or package unit rooted at a manifest."""

    name: str
    manifest_path: str
    directory: str
    ecosystem: str
    target: str = ""
    root_namespace: str = ""
    output_type: str = "Library"
    dependencies: Tuple[DependencyReference, ...] = ()
    types: Tuple[TypeInfo, ...] = ()
    interfaces: Tuple[TypeInfo, ...] = ()
    namespaces: Tuple[str, ...] = ()
    patterns: Tuple[str, ...] = ()
    project_references: Tuple[str, ...] = ()
    role: str = ""

    @property
    def is_test_project(self) -> bool:
        if "UnitTest" in self.patterns:
            return True
        if self.name.lower() in TEST_NAMES:
            return True
        return self.name.endswith(TEST_NAME_SUFFIXES)

    def all_types(self) -> Tuple[TypeInfo, ...]:
        """Types followed by interfaces, in discovery order."""
        return self.types + self.interfaces


@dataclass(frozen=True)
class Summary:
    """Aggregate counts over all projects."""

    total_projects: int = 0
    total_types: int = 0
    total_interfaces: int = 0
    total_files: int = 0
    primary_ecosystem: str = ""
    ecosystems: Tuple[str, ...] = ()
    detected_patterns: Tuple[str, ...] = ()
    key_namespaces: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Conventions:
    """Naming conventions of the analyzed code."""

    naming_style: str = "PascalCase"
    private_member_prefix: str = "_"
    test_framework: Optional[str] = None


@dataclass(frozen=True)
class ExtensionPoint:
    """Where new code of a given role currently lives."""

    layer: str
    project: str
    namespace: str
    pattern: str


@dataclass(frozen=True)
class ProjectBrief:
    name: str
    kind: str
    purpose: str
    key_namespaces: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SummaryContext:
    """Lightweight rendering used for requirement-level prompts."""

    summary_text: str = ""
    token_estimate: int = 0
    projects: Tuple[ProjectBrief, ...] = ()
    architecture: Tuple[str, ...] = ()
    technologies: Tuple[str, ...] = ()
    extension_points: Tuple[ExtensionPoint, ...] = ()


@dataclass(frozen=True)
class DetailContext:
    """Detailed rendering used for code-level prompts."""

    full_context_text: str = ""
    token_estimate: int = 0


@dataclass(frozen=True)
class PartialAnalysis:
    """Projects found by a single ecosystem analyzer."""

    ecosystem_id: str
    projects: Tuple[ProjectInfo, ...] = ()
    conventions: Conventions = field(default_factory=Conventions)


@dataclass(frozen=True)
class AggregateAnalysis:
    """Complete, immutable result of analyzing one source tree."""

    name: str
    root_path: str
    analyzed_at: datetime
    projects: Tuple[ProjectInfo, ...] = ()
    summary: Summary = field(default_factory=Summary)
    conventions: Conventions = field(default_factory=Conventions)
    summary_context: SummaryContext = field(default_factory=SummaryContext)
    detail_context: DetailContext = field(default_factory=DetailContext)

    @property
    def summary_text(self) -> str:
        return self.summary_context.summary_text

    @property
    def full_context_text(self) -> str:
        return self.detail_context.full_context_text

    @property
    def summary_token_estimate(self) -> int:
        return self.summary_context.token_estimate

    @property
    def detail_token_estimate(self) -> int:
        return self.detail_context.token_estimate

    def to_dict(self) -> Dict[str, Any]:
        """Return the JSON-ready representation of this analysis."""
        payload = _plain(asdict(self))
        payload["analyzed_at"] = _format_timestamp(self.analyzed_at)
        payload["schema_version"] = SCHEMA_VERSION
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "AggregateAnalysis":
        version = payload.get("schema_version", SCHEMA_VERSION)
        if version != SCHEMA_VERSION:
            raise ValueError(f"Unsupported analysis schema version: {version}")

        summary_context = _as_mapping(payload.get("summary_context"))
        return cls(
            name=str(payload.get("name", "")),
            root_path=str(payload.get("root_path", "")),
            analyzed_at=_parse_timestamp(payload.get("analyzed_at")),
            projects=tuple(
                _project_from_dict(item) for item in payload.get("projects") or []
            ),
            summary=_build(Summary, payload.get("summary")),
            conventions=_build(Conventions, payload.get("conventions")),
            summary_context=SummaryContext(
                summary_text=str(summary_context.get("summary_text", "")),
                token_estimate=int(summary_context.get("token_estimate", 0)),
                projects=tuple(
                    _build(ProjectBrief, item) for item in summary_context.get("projects") or []
                ),
                architecture=tuple(summary_context.get("architecture") or ()),
                technologies=tuple(summary_context.get("technologies") or ()),
                extension_points=tuple(
                    _build(ExtensionPoint, item)
                    for item in summary_context.get("extension_points") or []
                ),
            ),
            detail_context=_build(DetailContext, payload.get("detail_context")),
        )


def _plain(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    return value


def _format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    return datetime.now(UTC)


def _as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _build(kind: type, value: Any) -> Any:
    data = dict(_as_mapping(value))
    for key, item in data.items():
        if isinstance(item, list):
            data[key] = tuple(item)
    return kind(**data)


def _type_from_dict(value: Any) -> TypeInfo:
    return _build(TypeInfo, value)


def _project_from_dict(value: Any) -> ProjectInfo:
    data = dict(_as_mapping(value))
    data["dependencies"] = tuple(
        _build(DependencyReference, item) for item in data.get("dependencies") or []
    )
    data["types"] = tuple(_type_from_dict(item) for item in data.get("types") or [])
    data["interfaces"] = tuple(_type_from_dict(item) for item in data.get("interfaces") or [])
    for key in ("namespaces", "patterns", "project_references"):
        data[key] = tuple(data.get(key) or ())
    return ProjectInfo(**data)


__all__ = [
    "AggregateAnalysis",
    "Conventions",
    "DependencyReference",
    "DetailContext",
    "ExtensionPoint",
    "PartialAnalysis",
    "ProjectBrief",
    "ProjectInfo",
    "SCHEMA_VERSION",
    "Summary",
    "SummaryContext",
    "TypeInfo",
]

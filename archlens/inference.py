"""Project kinds, architecture layers and extension points inferred from role tags."""

from __future__ import annotations

from collections import Counter
from typing import Dict, Iterable, List, Sequence, Set, Tuple

from .models import ExtensionPoint, ProjectBrief, ProjectInfo, Summary, TypeInfo

EXTENSION_POINT_LIMIT = 10
TECHNOLOGY_LIMIT = 10
KEY_NAMESPACE_LIMIT = 10
BRIEF_NAMESPACE_LIMIT = 5

KIND_TESTS = "Tests"
KIND_API = "API"
KIND_FRONTEND = "Frontend"
KIND_APPLICATION = "Application"
KIND_LIBRARY = "Library"

LAYER_PRESENTATION = "Presentation"
LAYER_SERVICE = "Service"
LAYER_DATA_ACCESS = "Data Access"
FALLBACK_ARCHITECTURE = "Module-based layout"

ECOSYSTEM_LABELS: Dict[str, str] = {
    "python": "Python",
    "rust": "Rust",
    "go": "Go",
    "typescript": "TypeScript",
    "csharp": "C#/.NET",
}

_PURPOSES: Dict[str, str] = {
    KIND_TESTS: "Unit and integration tests",
    KIND_API: "Web API or MVC endpoints (controllers, views)",
    KIND_FRONTEND: "User interface (pages, components)",
    KIND_APPLICATION: "Business logic and services",
    KIND_LIBRARY: "Shared library (modules and types)",
}

_PRESENTATION_ROLES = frozenset({"Controller", "View", "Page", "Component", "Layout", "Hook"})
_LAYER_BY_ROLE: Dict[str, str] = {
    "Controller": LAYER_PRESENTATION,
    "View": LAYER_PRESENTATION,
    "Page": LAYER_PRESENTATION,
    "Component": LAYER_PRESENTATION,
    "Layout": LAYER_PRESENTATION,
    "Hook": LAYER_PRESENTATION,
    "Service": LAYER_SERVICE,
    "Repository": LAYER_DATA_ACCESS,
    "Helper": "Shared",
    "Extension": "Shared",
    "Factory": "Shared",
    "UnitTest": "Tests",
}

# Dependency name -> technology label, checked by exact (case-insensitive) name.
_FRAMEWORKS: Dict[str, str] = {
    "fastapi": "FastAPI",
    "django": "Django",
    "flask": "Flask",
    "sqlalchemy": "SQLAlchemy",
    "pydantic": "Pydantic",
    "celery": "Celery",
    "react": "React",
    "next": "Next.js",
    "vue": "Vue",
    "nuxt": "Nuxt",
    "@angular/core": "Angular",
    "svelte": "Svelte",
    "vite": "Vite",
    "express": "Express",
    "tokio": "Tokio",
    "axum": "Axum",
    "actix-web": "Actix Web",
    "serde": "Serde",
    "diesel": "Diesel",
    "github.com/gin-gonic/gin": "Gin",
    "github.com/labstack/echo/v4": "Echo",
    "gorm.io/gorm": "GORM",
    "google.golang.org/grpc": "gRPC",
}

# Package name fragment -> technology label, for NuGet-style dotted names.
_FRAMEWORK_FRAGMENTS: Tuple[Tuple[str, str], ...] = (
    ("entityframework", "Entity Framework"),
    ("dapper", "Dapper"),
    ("signalr", "SignalR"),
    ("serilog", "Serilog"),
    ("automapper", "AutoMapper"),
    ("fluentvalidation", "FluentValidation"),
    ("mediatr", "MediatR"),
    ("swashbuckle", "OpenAPI/Swagger"),
    ("openapi", "OpenAPI/Swagger"),
)


def _roles(project: ProjectInfo) -> Set[str]:
    return {item.role for item in project.all_types() if item.role}


def _is_tests(project: ProjectInfo) -> bool:
    return project.is_test_project or any(
        item.role == "UnitTest" for item in project.all_types()
    )


def project_kind(project: ProjectInfo) -> str:
    """Label a project by the strongest role present in its types."""
    if _is_tests(project):
        return KIND_TESTS
    roles = _roles(project)
    if roles & {"Controller", "View"}:
        return KIND_API
    if (project.role == "Frontend" or project.ecosystem == "typescript") and roles & {
        "Page",
        "Component",
        "Layout",
    }:
        return KIND_FRONTEND
    if "Service" in roles:
        return KIND_APPLICATION
    return KIND_LIBRARY


def purpose_for(kind: str, project: ProjectInfo | None = None) -> str:
    purpose = _PURPOSES.get(kind, "General purpose")
    if kind == KIND_LIBRARY and project is not None:
        label = ECOSYSTEM_LABELS.get(project.ecosystem)
        if label:
            return f"{label} library (modules and types)"
    return purpose


def project_brief(project: ProjectInfo) -> ProjectBrief:
    kind = project_kind(project)
    return ProjectBrief(
        name=project.name,
        kind=kind,
        purpose=purpose_for(kind, project),
        key_namespaces=project.namespaces[:BRIEF_NAMESPACE_LIMIT],
    )


def architecture_layers(projects: Sequence[ProjectInfo]) -> Tuple[str, ...]:
    """Observed layers in fixed priority order, or the module-based fallback."""
    roles: Set[str] = set()
    for project in projects:
        roles.update(_roles(project))
    layers: List[str] = []
    if roles & _PRESENTATION_ROLES:
        layers.append(LAYER_PRESENTATION)
    if "Service" in roles:
        layers.append(LAYER_SERVICE)
    if "Repository" in roles:
        layers.append(LAYER_DATA_ACCESS)
    return tuple(layers) or (FALLBACK_ARCHITECTURE,)


def layer_for_role(role: str) -> str:
    return _LAYER_BY_ROLE.get(role, role)


def _discovery_order(project: ProjectInfo) -> List[TypeInfo]:
    return sorted(project.all_types(), key=lambda item: (item.file_path, item.start_line))


def extension_points(
    projects: Sequence[ProjectInfo], limit: int = EXTENSION_POINT_LIMIT
) -> Tuple[ExtensionPoint, ...]:
    """Pick the first declaration per distinct role in each non-test project.

    Declarations are taken in file then line order, types and interfaces
    together. At most ``limit`` points are returned overall.
    """
    points: List[ExtensionPoint] = []
    for project in projects:
        if _is_tests(project):
            continue
        seen: Set[str] = set()
        for item in _discovery_order(project):
            if not item.role or item.role in seen:
                continue
            seen.add(item.role)
            points.append(
                ExtensionPoint(
                    layer=layer_for_role(item.role),
                    project=project.name,
                    namespace=item.namespace,
                    pattern=item.role,
                )
            )
            if len(points) >= limit:
                return tuple(points)
    return tuple(points)


def technologies(projects: Sequence[ProjectInfo], limit: int = TECHNOLOGY_LIMIT) -> Tuple[str, ...]:
    """Ecosystem names, .NET targets and framework labels, in first-seen order."""
    found: List[str] = []

    def _add(label: str) -> None:
        if label and label not in found:
            found.append(label)

    for project in projects:
        _add(ECOSYSTEM_LABELS.get(project.ecosystem, project.ecosystem))
    for project in projects:
        if project.ecosystem == "csharp":
            _add(_dotnet_label(project.target))
        for dependency in project.dependencies:
            lowered = dependency.name.lower()
            label = _FRAMEWORKS.get(lowered)
            if label is None:
                label = next(
                    (tag for fragment, tag in _FRAMEWORK_FRAGMENTS if fragment in lowered), ""
                )
            _add(label)
    return tuple(found[:limit])


def _dotnet_label(target: str) -> str:
    lowered = target.lower()
    if lowered.startswith("netstandard"):
        return ".NET Standard"
    if lowered.startswith("netcoreapp"):
        return ".NET Core"
    if lowered.startswith("net") and lowered[3:4].isdigit():
        version = lowered[3:].split("-")[0]
        if "." in version:
            return f".NET {version}"
        return ".NET Framework"
    if lowered.startswith("v4"):
        return ".NET Framework"
    return ""


def summarize(projects: Sequence[ProjectInfo]) -> Summary:
    """Aggregate counts, ecosystems, patterns and key namespaces over ``projects``."""
    ecosystems = _distinct(project.ecosystem for project in projects)
    counts = Counter(project.ecosystem for project in projects)
    primary = ""
    if counts:
        best = max(counts.values())
        primary = next(name for name in ecosystems if counts[name] == best)
    return Summary(
        total_projects=len(projects),
        total_types=sum(len(project.types) for project in projects),
        total_interfaces=sum(len(project.interfaces) for project in projects),
        total_files=sum(
            len({item.file_path for item in project.all_types()}) for project in projects
        ),
        primary_ecosystem=primary,
        ecosystems=ecosystems,
        detected_patterns=_distinct(tag for project in projects for tag in project.patterns),
        key_namespaces=_distinct(
            namespace for project in projects for namespace in project.namespaces
        )[:KEY_NAMESPACE_LIMIT],
    )


def _distinct(values: Iterable[str]) -> Tuple[str, ...]:
    seen: Set[str] = set()
    ordered: List[str] = []
    for value in values:
        if value and value not in seen:
            seen.add(value)
            ordered.append(value)
    return tuple(ordered)


__all__ = [
    "ECOSYSTEM_LABELS",
    "EXTENSION_POINT_LIMIT",
    "FALLBACK_ARCHITECTURE",
    "architecture_layers",
    "extension_points",
    "layer_for_role",
    "project_brief",
    "project_kind",
    "purpose_for",
    "summarize",
    "technologies",
]

"""Renders the summary and detailed text views of an analysis."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Sequence

from jinja2 import Environment, FileSystemLoader, TemplateError

from .config import DEFAULT_DETAIL_INTERFACE_LIMIT, DEFAULT_DETAIL_TYPE_LIMIT
from .inference import architecture_layers, extension_points, project_brief, technologies
from .integrations import group_integrations
from .logging import get_logger
from .models import Conventions, DetailContext, ProjectInfo, Summary, SummaryContext, TypeInfo

logger = get_logger("rendering")

_TEMPLATES_DIR = Path(__file__).with_name("templates")
_SUMMARY_TEMPLATE = "summary.md.j2"
_DETAIL_TEMPLATE = "detail.md.j2"
_NAMESPACE_SEPARATORS = {"rust": "::", "typescript": "/"}


def estimate_tokens(text: str) -> int:
    """Rough token count: one token per four characters, rounded up."""
    return (len(text) + 3) // 4


def create_environment(templates_dir: Path | None = None) -> Environment:
    loader = FileSystemLoader(str(templates_dir or _TEMPLATES_DIR))
    return Environment(loader=loader, autoescape=False, trim_blocks=True, lstrip_blocks=True)


class ContextRenderer:
    """Turns a project list into the two text views.

    Output depends only on the inputs, so re-rendering an unchanged analysis
    is byte-identical. Rendering never raises: a template failure is logged
    and replaced by a header-only block.
    """

    def __init__(
        self,
        *,
        detail_type_limit: int = DEFAULT_DETAIL_TYPE_LIMIT,
        detail_interface_limit: int = DEFAULT_DETAIL_INTERFACE_LIMIT,
        environment: Environment | None = None,
    ) -> None:
        self.detail_type_limit = detail_type_limit
        self.detail_interface_limit = detail_interface_limit
        self._env = environment or create_environment()

    def render_summary(self, name: str, projects: Sequence[ProjectInfo]) -> SummaryContext:
        briefs = tuple(project_brief(project) for project in projects)
        architecture = architecture_layers(projects)
        techs = technologies(projects)
        points = extension_points(projects)
        text = self._render(
            _SUMMARY_TEMPLATE,
            name,
            projects=briefs,
            architecture=architecture,
            technologies=techs,
            extension_points=points,
        )
        return SummaryContext(
            summary_text=text,
            token_estimate=estimate_tokens(text),
            projects=briefs,
            architecture=architecture,
            technologies=techs,
            extension_points=points,
        )

    def render_detail(
        self,
        name: str,
        projects: Sequence[ProjectInfo],
        conventions: Conventions,
        summary: Summary,
    ) -> DetailContext:
        dependencies = [dep for project in projects for dep in project.dependencies]
        text = self._render(
            _DETAIL_TEMPLATE,
            name,
            summary=summary,
            conventions=conventions,
            integrations=group_integrations(dependencies),
            projects=[self._project_detail(project) for project in projects],
        )
        return DetailContext(full_context_text=text, token_estimate=estimate_tokens(text))

    def _project_detail(self, project: ProjectInfo) -> Dict[str, Any]:
        separator = _NAMESPACE_SEPARATORS.get(project.ecosystem, ".")
        shown_interfaces = project.interfaces[: self.detail_interface_limit]
        shown_types = project.types[: self.detail_type_limit]
        return {
            "name": project.name,
            "ecosystem": project.ecosystem,
            "target": project.target,
            "output_type": project.output_type,
            "directory": project.directory,
            "root_namespace": project.root_namespace,
            "dependency_count": len(project.dependencies),
            "references": project.project_references,
            "interfaces": [describe_type(item, separator) for item in shown_interfaces],
            "hidden_interfaces": len(project.interfaces) - len(shown_interfaces),
            "types": [describe_type(item, separator) for item in shown_types],
            "hidden_types": len(project.types) - len(shown_types),
        }

    def _render(self, template_name: str, name: str, **context: Any) -> str:
        try:
            template = self._env.get_template(template_name)
            return template.render(name=name, **context).rstrip() + "\n"
        except (TemplateError, OSError) as exc:
            logger.error("Failed to render %s for %s: %s", template_name, name, exc)
            return f"# Codebase: {name}\n"


def describe_type(item: TypeInfo, separator: str = ".") -> str:
    """One detail line: qualified name, supertypes, role tag and source location."""
    qualified = f"{item.namespace}{separator}{item.name}" if item.namespace else item.name
    parts: List[str] = [qualified]
    if item.base_types:
        parts.append(f": {', '.join(item.base_types)}")
    if item.role:
        parts.append(f"[{item.role}]")
    location = item.file_path
    if item.start_line:
        location = f"{location}:{item.start_line}-{item.end_line}"
    parts.append(f"({location})")
    return " ".join(parts)


def render_summary(name: str, projects: Sequence[ProjectInfo]) -> SummaryContext:
    return ContextRenderer().render_summary(name, projects)


def render_detail(
    name: str,
    projects: Sequence[ProjectInfo],
    conventions: Conventions,
    summary: Summary,
) -> DetailContext:
    return ContextRenderer().render_detail(name, projects, conventions, summary)


__all__ = [
    "ContextRenderer",
    "create_environment",
    "describe_type",
    "estimate_tokens",
    "render_detail",
    "render_summary",
]

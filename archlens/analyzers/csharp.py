"""C# projects: .csproj manifests, classes/records/structs/enums and interfaces."""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path, PureWindowsPath
from typing import List, Optional, Sequence, Set, Tuple

from ..cancellation import CancellationToken, check_cancelled
from ..errors import ManifestParseError
from ..logging import get_logger
from ..models import Conventions, PartialAnalysis, ProjectInfo, TypeInfo
from ..spans import declaration_span
from .utils import (
    DependencyCollector,
    RoleRule,
    build_ignore_rules,
    classify_role,
    distinct,
    find_manifests,
    in_test_directory,
    iter_files,
    nested_project_dirs,
    project_patterns,
    read_manifest,
    read_source,
    relative_path,
    split_base_types,
)

logger = get_logger("analyzers.csharp")

CSHARP_ROLE_RULES: Tuple[RoleRule, ...] = (
    RoleRule("Controller", ("Controller", "Endpoint", "Hub")),
    RoleRule("Service", ("Service", "Manager", "Handler")),
    RoleRule("Repository", ("Repository", "DbContext", "Dao")),
    RoleRule("Extension", ("Extensions",)),
    RoleRule("Helper", ("Helper", "Helpers", "Utils", "Utility")),
    RoleRule("Factory", ("Factory",)),
)

# Package name fragment -> project pattern tag.
PACKAGE_PATTERNS: Tuple[Tuple[str, str], ...] = (
    ("xunit", "xUnit"),
    ("nunit", "NUnit"),
    ("mstest", "MSTest"),
    ("fluentassertions", "FluentAssertions"),
    ("moq", "Moq"),
    ("entityframework", "EntityFramework"),
    ("dapper", "Dapper"),
    ("mediatr", "MediatR"),
    ("automapper", "AutoMapper"),
    ("serilog", "Serilog"),
    ("newtonsoft", "Newtonsoft.Json"),
)
_TEST_FRAMEWORK_TAGS = ("xUnit", "NUnit", "MSTest")

_NAMESPACE_RE = re.compile(r"^[ \t]*namespace[ \t]+([\w.]+)", re.MULTILINE)
_MODIFIERS = (
    r"(?:(?:public|internal|private|protected|abstract|static|sealed|partial|readonly"
    r"|ref|unsafe|new|file)\s+)*"
)
_TYPE_RE = re.compile(
    r"^[ \t]*(?:\[[^\]\n]*\]\s*)*" + _MODIFIERS
    + r"(class|interface|struct|enum|record(?:\s+class|\s+struct)?)\s+([A-Za-z_]\w*)"
    r"(?:\s*<[^>{;]*>)?(?:\s*\([^)]*\))?"
    r"(?:\s*:\s*(?P<bases>[^{;]+?))?(?:\s+where\b[^{;]*)?\s*(?=[{;])",
    re.MULTILINE,
)
_TEST_ATTRIBUTE_RE = re.compile(r"\[\s*(?:Fact|Theory|Test|TestCase|TestMethod|TestFixture|TestClass)\b")
_FIELD_RE = re.compile(
    r"^[ \t]*(?:private|protected|internal)\s+(?:(?:readonly|static|volatile)\s+)*"
    r"[\w<>\[\],.?\s]+?\s+(m_\w+|_\w+)\s*[;=]",
    re.MULTILINE,
)


@dataclass
class _Csproj:
    name: str
    target: str = ""
    output_type: str = "Library"
    root_namespace: str = ""
    references: List[str] = field(default_factory=list)
    collector: DependencyCollector = field(default_factory=DependencyCollector)


class CSharpAnalyzer:
    """Discovers .csproj projects and the types declared in their .cs files."""

    ecosystem_id = "csharp"
    naming_style = "PascalCase"
    private_member_prefix = "_"

    def __init__(self, exclude_paths: Sequence[str] = ()) -> None:
        self._rules = build_ignore_rules(exclude_paths)

    def can_analyze(self, root: Path) -> bool:
        for _ in iter_files(root, ("*.csproj", "*.sln"), rules=self._rules):
            return True
        return False

    def analyze(
        self,
        root: Path,
        name: str,
        cancel_token: CancellationToken | None = None,
    ) -> PartialAnalysis:
        root = Path(root)
        logger.info("Scanning %s for C# projects", root)
        manifests = find_manifests(
            root, ("*.csproj",), rules=self._rules, cancel_token=cancel_token
        )
        manifest_dirs = [path.parent for path in manifests]

        projects: List[ProjectInfo] = []
        underscore_fields = 0
        m_fields = 0
        for manifest in manifests:
            check_cancelled(cancel_token)
            nested = nested_project_dirs(manifest.parent, manifest_dirs)
            project, field_prefixes = self._parse_project(root, manifest, nested, cancel_token)
            projects.append(project)
            m_fields += field_prefixes["m_"]
            underscore_fields += field_prefixes["_"]

        test_framework = next(
            (tag for project in projects for tag in project.patterns if tag in _TEST_FRAMEWORK_TAGS),
            None,
        )
        logger.info("Found %d C# project(s)", len(projects))
        return PartialAnalysis(
            ecosystem_id=self.ecosystem_id,
            projects=tuple(projects),
            conventions=Conventions(
                naming_style=self.naming_style,
                private_member_prefix="m_" if m_fields > underscore_fields else self.private_member_prefix,
                test_framework=test_framework,
            ),
        )

    def _parse_project(
        self,
        root: Path,
        manifest: Path,
        nested: Set[Path],
        cancel_token: CancellationToken | None,
    ) -> Tuple[ProjectInfo, Counter]:
        project_dir = manifest.parent
        csproj = _read_csproj(manifest)

        types: List[TypeInfo] = []
        interfaces: List[TypeInfo] = []
        namespaces: List[str] = []
        root_folder_namespaces: List[str] = []
        field_prefixes: Counter = Counter({"_": 0, "m_": 0})
        for path in iter_files(
            project_dir,
            ("*.cs",),
            root=root,
            rules=self._rules,
            skip_dirs=nested,
            cancel_token=cancel_token,
        ):
            text = read_source(path, logger)
            if text is None:
                continue
            rel = relative_path(path, root)
            local = relative_path(path, project_dir)
            namespace_match = _NAMESPACE_RE.search(text)
            namespace = namespace_match.group(1) if namespace_match else ""
            if namespace:
                namespaces.append(namespace)
                if "/" not in local:
                    root_folder_namespaces.append(namespace)
            in_test_file = bool(_TEST_ATTRIBUTE_RE.search(text)) or in_test_directory(local)

            for match in _TYPE_RE.finditer(text):
                keyword = match.group(1).split()[0]
                type_name = match.group(2)
                bases = split_base_types(match.group("bases"))
                start, end = declaration_span(text, match.start(1), stop_at_semicolon=True)
                info = TypeInfo(
                    name=type_name,
                    namespace=namespace,
                    file_path=rel,
                    kind=keyword,
                    base_types=bases,
                    role=classify_role(
                        type_name,
                        CSHARP_ROLE_RULES,
                        in_test_file=in_test_file,
                        base_types=bases,
                    ),
                    start_line=start,
                    end_line=end,
                )
                (interfaces if keyword == "interface" else types).append(info)

            for match in _FIELD_RE.finditer(text):
                field_prefixes["m_" if match.group(1).startswith("m_") else "_"] += 1

        package_tags = _package_patterns(csproj.collector)
        root_namespace = (
            csproj.root_namespace
            or _most_common(root_folder_namespaces)
            or _common_prefix(distinct(namespaces))
            or csproj.name
        )
        project = ProjectInfo(
            name=csproj.name,
            manifest_path=relative_path(manifest, root),
            directory=relative_path(project_dir, root),
            ecosystem=self.ecosystem_id,
            target=csproj.target,
            root_namespace=root_namespace,
            output_type=csproj.output_type,
            dependencies=csproj.collector.freeze(),
            types=tuple(types),
            interfaces=tuple(interfaces),
            namespaces=distinct(namespaces) or (root_namespace,),
            patterns=project_patterns(types + interfaces, extra=package_tags),
            project_references=tuple(csproj.references),
        )
        logger.debug(
            "C# project %s: %d types, %d interfaces", project.name, len(types), len(interfaces)
        )
        return project, field_prefixes


def _read_csproj(manifest: Path) -> _Csproj:
    csproj = _Csproj(name=manifest.stem)
    text = read_manifest(manifest, logger)
    if text is None:
        return csproj
    try:
        document = ET.fromstring(text)
    except ET.ParseError as exc:
        logger.warning("%s", ManifestParseError(manifest, str(exc)))
        return csproj

    prefix = _namespace_prefix(document)

    def _first(*tags: str) -> str:
        for tag in tags:
            value = document.findtext(f".//{prefix}{tag}")
            if value and value.strip():
                return value.strip()
        return ""

    csproj.name = _first("AssemblyName") or csproj.name
    frameworks = _first("TargetFramework", "TargetFrameworks", "TargetFrameworkVersion")
    csproj.target = frameworks.split(";")[0].strip() if frameworks else "Unknown"
    csproj.output_type = _first("OutputType") or "Library"
    csproj.root_namespace = _first("RootNamespace")

    for reference in document.iter(f"{prefix}ProjectReference"):
        include = reference.get("Include")
        if include:
            csproj.references.append(PureWindowsPath(include).stem)
    for package in document.iter(f"{prefix}PackageReference"):
        package_name = package.get("Include") or package.get("Update")
        if not package_name:
            continue
        version = package.get("Version") or package.findtext(f"{prefix}Version") or ""
        csproj.collector.add(package_name, version)
    return csproj


def _namespace_prefix(element: ET.Element) -> str:
    match = re.match(r"\{(.+)}", element.tag)
    return f"{{{match.group(1)}}}" if match else ""


def _package_patterns(collector: DependencyCollector) -> Tuple[str, ...]:
    tags: List[str] = []
    for dependency in collector.freeze():
        lowered = dependency.name.lower()
        for fragment, tag in PACKAGE_PATTERNS:
            if fragment in lowered:
                tags.append(tag)
    return distinct(tags)


def _most_common(values: Sequence[str]) -> Optional[str]:
    if not values:
        return None
    counts = Counter(values)
    best = max(counts.values())
    return next(value for value in values if counts[value] == best)


def _common_prefix(namespaces: Sequence[str]) -> str:
    if not namespaces:
        return ""
    split = [namespace.split(".") for namespace in namespaces]
    prefix: List[str] = []
    for parts in zip(*split):
        if any(part != parts[0] for part in parts):
            break
        prefix.append(parts[0])
    return ".".join(prefix)


__all__ = ["CSHARP_ROLE_RULES", "CSharpAnalyzer", "PACKAGE_PATTERNS"]

"""Frontend packages: package.json declaring a UI framework, components and classes."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from ..cancellation import CancellationToken, check_cancelled
from ..errors import ManifestParseError
from ..logging import get_logger
from ..models import Conventions, PartialAnalysis, ProjectInfo, TypeInfo
from ..spans import declaration_span, line_of_offset, matching_brace_offset
from .utils import (
    DependencyCollector,
    build_ignore_rules,
    classify_role,
    distinct,
    in_test_directory,
    iter_files,
    nested_project_dirs,
    project_patterns,
    read_source,
    relative_path,
    split_base_types,
)

logger = get_logger("analyzers.frontend")

FRAMEWORK_INDICATORS = ("react", "vue", "next", "nuxt", "vite", "svelte", "angular")
_DEPENDENCY_KEYS = ("dependencies", "devDependencies", "peerDependencies")
_SOURCE_PATTERNS = ("*.ts", "*.tsx", "*.js", "*.jsx")
_TEST_FRAMEWORKS = (
    ("vitest", "Vitest"),
    ("jest", "Jest"),
    ("mocha", "Mocha"),
    ("@playwright/test", "Playwright"),
    ("cypress", "Cypress"),
)
# Whole path segments only: "pagination" and "webhooks" carry no role.
_FOLDER_ROLES = (
    (frozenset({"page", "pages"}), "Page"),
    (frozenset({"component", "components"}), "Component"),
    (frozenset({"hook", "hooks"}), "Hook"),
    (frozenset({"layout", "layouts"}), "Layout"),
)
_DEFAULT_NAMESPACE = "app"

_CLASS_RE = re.compile(
    r"^[ \t]*export[ \t]+(?:default[ \t]+)?(?:abstract[ \t]+)?class[ \t]+([A-Za-z_$][\w$]*)"
    r"(?:\s*<[^>{]*>)?(?:\s+extends\s+([^{]+?))?(?:\s+implements\s+([^{]+?))?\s*\{",
    re.MULTILINE,
)
_INTERFACE_RE = re.compile(
    r"^[ \t]*export[ \t]+(?:default[ \t]+)?interface[ \t]+([A-Za-z_$][\w$]*)"
    r"(?:\s*<[^>{]*>)?(?:\s+extends\s+([^{]+?))?\s*\{",
    re.MULTILINE,
)
_FUNCTION_RE = re.compile(
    r"^[ \t]*export[ \t]+(?:default[ \t]+)?(?:async[ \t]+)?function\*?[ \t]*([A-Za-z_$][\w$]*)\s*(?:<[^>(]*>)?\s*\(",
    re.MULTILINE,
)
_ARROW_RE = re.compile(
    r"^[ \t]*export[ \t]+const[ \t]+([A-Za-z_$][\w$]*)\s*(?::[^=\n]+)?=\s*(?:async\s*)?"
    r"(?:\(|[A-Za-z_$][\w$]*\s*=>|(?:React\.)?(?:memo|forwardRef)\s*\()",
    re.MULTILINE,
)
_DEFAULT_IDENTIFIER_RE = re.compile(r"^[ \t]*export[ \t]+default[ \t]+([A-Za-z_$][\w$]*)\s*;?\s*$", re.MULTILINE)


def is_frontend_manifest(data: Dict[str, Any]) -> bool:
    """Return True when a package.json declares a UI framework dependency."""
    for key in _DEPENDENCY_KEYS:
        deps = data.get(key)
        if not isinstance(deps, dict):
            continue
        for dep_name in deps:
            lowered = str(dep_name).lower()
            if lowered in FRAMEWORK_INDICATORS or lowered.startswith("@angular/"):
                return True
    return False


class FrontendAnalyzer:
    """Discovers frontend packages and their exported components, classes and interfaces."""

    ecosystem_id = "typescript"
    naming_style = "camelCase"
    private_member_prefix = ""

    def __init__(self, exclude_paths: Sequence[str] = ()) -> None:
        self._rules = build_ignore_rules(exclude_paths)

    def can_analyze(self, root: Path) -> bool:
        for manifest in iter_files(root, ("package.json",), rules=self._rules):
            data = _load_package_json(manifest, quiet=True)
            if data is not None and is_frontend_manifest(data):
                return True
        return False

    def analyze(
        self,
        root: Path,
        name: str,
        cancel_token: CancellationToken | None = None,
    ) -> PartialAnalysis:
        root = Path(root)
        logger.info("Scanning %s for frontend packages", root)

        candidates: List[Tuple[Path, Dict[str, Any]]] = []
        for manifest in iter_files(
            root, ("package.json",), rules=self._rules, cancel_token=cancel_token
        ):
            data = _load_package_json(manifest)
            if data is not None and is_frontend_manifest(data):
                candidates.append((manifest, data))
        manifest_dirs = [manifest.parent for manifest, _ in candidates]

        projects: List[ProjectInfo] = []
        frameworks: List[str] = []
        for manifest, data in candidates:
            check_cancelled(cancel_token)
            nested = nested_project_dirs(manifest.parent, manifest_dirs)
            projects.append(self._parse_package(root, manifest, data, nested, cancel_token))
            framework = _test_framework(data)
            if framework:
                frameworks.append(framework)

        logger.info("Found %d frontend project(s)", len(projects))
        return PartialAnalysis(
            ecosystem_id=self.ecosystem_id,
            projects=tuple(projects),
            conventions=Conventions(
                naming_style=self.naming_style,
                private_member_prefix=self.private_member_prefix,
                test_framework=frameworks[0] if frameworks else None,
            ),
        )

    def _parse_package(
        self,
        root: Path,
        manifest: Path,
        data: Dict[str, Any],
        nested: Set[Path],
        cancel_token: CancellationToken | None,
    ) -> ProjectInfo:
        project_dir = manifest.parent
        declared = data.get("name")
        project_name = (
            declared.strip() if isinstance(declared, str) and declared.strip() else project_dir.name
        )

        collector = DependencyCollector()
        for key in _DEPENDENCY_KEYS:
            deps = data.get(key)
            if isinstance(deps, dict):
                for dep_name, version in deps.items():
                    collector.add(str(dep_name), version if isinstance(version, str) else "")

        source_dir = project_dir / "src"
        if not source_dir.is_dir():
            source_dir = project_dir

        types: List[TypeInfo] = []
        interfaces: List[TypeInfo] = []
        folders: List[str] = []
        for path in iter_files(
            source_dir,
            _SOURCE_PATTERNS,
            root=root,
            rules=self._rules,
            skip_dirs=nested,
            cancel_token=cancel_token,
        ):
            if path.name.endswith(".d.ts"):
                continue
            text = read_source(path, logger)
            if text is None:
                continue
            local = relative_path(path, project_dir)
            folder = local.rsplit("/", 1)[0] if "/" in local else "root"
            folders.append(folder)
            file_types, file_interfaces = _scan_file(
                text, path, folder, relative_path(path, root), _is_test_file(path, local)
            )
            types.extend(file_types)
            interfaces.extend(file_interfaces)

        project = ProjectInfo(
            name=project_name,
            manifest_path=relative_path(manifest, root),
            directory=relative_path(project_dir, root),
            ecosystem=self.ecosystem_id,
            target="Node/TypeScript",
            root_namespace=project_name,
            output_type="Library",
            dependencies=collector.freeze(),
            types=tuple(types),
            interfaces=tuple(interfaces),
            namespaces=distinct(folders) or (_DEFAULT_NAMESPACE,),
            patterns=project_patterns(types + interfaces, extra=("Frontend",)),
            role="Frontend",
        )
        logger.debug(
            "Frontend project %s: %d components/classes, %d interfaces",
            project.name,
            len(types),
            len(interfaces),
        )
        return project


def _load_package_json(path: Path, quiet: bool = False) -> Optional[Dict[str, Any]]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        if not quiet:
            logger.warning("%s", ManifestParseError(path, str(exc)))
        return None
    return data if isinstance(data, dict) else None


def _test_framework(data: Dict[str, Any]) -> Optional[str]:
    declared: Set[str] = set()
    for key in _DEPENDENCY_KEYS:
        deps = data.get(key)
        if isinstance(deps, dict):
            declared.update(str(dep_name).lower() for dep_name in deps)
    for dep_name, label in _TEST_FRAMEWORKS:
        if dep_name in declared:
            return label
    return None


def _is_test_file(path: Path, local: str) -> bool:
    name = path.name.lower()
    return ".test." in name or ".spec." in name or in_test_directory(local)


def _folder_role(folder: str, stem: str) -> Optional[str]:
    segments = set(f"{folder}/{stem}".lower().split("/"))
    for names, role in _FOLDER_ROLES:
        if segments & names:
            return role
    if re.match(r"use[A-Z]", stem):
        return "Hook"
    return None


def _scan_file(
    text: str, path: Path, folder: str, rel: str, in_test_file: bool
) -> Tuple[List[TypeInfo], List[TypeInfo]]:
    stem = path.name.split(".", 1)[0]
    folder_role = None if in_test_file else _folder_role(folder, stem)

    def _role(type_name: str, bases: Tuple[str, ...] = ()) -> Optional[str]:
        if folder_role:
            return folder_role
        return classify_role(type_name, in_test_file=in_test_file, base_types=bases)

    types: List[TypeInfo] = []
    interfaces: List[TypeInfo] = []
    for match in _CLASS_RE.finditer(text):
        bases = split_base_types(match.group(2)) + split_base_types(match.group(3))
        start, end = declaration_span(text, match.start(), regex_literals=True)
        types.append(
            TypeInfo(
                name=match.group(1),
                namespace=folder,
                file_path=rel,
                kind="class",
                base_types=bases,
                role=_role(match.group(1), bases),
                start_line=start,
                end_line=end,
            )
        )
    for match in _INTERFACE_RE.finditer(text):
        bases = split_base_types(match.group(2))
        start, end = declaration_span(text, match.start(), regex_literals=True)
        interfaces.append(
            TypeInfo(
                name=match.group(1),
                namespace=folder,
                file_path=rel,
                kind="interface",
                base_types=bases,
                role=_role(match.group(1), bases),
                start_line=start,
                end_line=end,
            )
        )

    if not types and not interfaces:
        component = _component(text)
        if component is not None:
            component_name, start, end = component
        else:
            component_name, start, end = stem, 1, len(text.splitlines()) or 1
        types.append(
            TypeInfo(
                name=component_name,
                namespace=folder,
                file_path=rel,
                kind="component" if component is not None else "module",
                role=_role(component_name),
                start_line=start,
                end_line=end,
            )
        )
    return types, interfaces


def _component(text: str) -> Optional[Tuple[str, int, int]]:
    """Return the first exported function component as ``(name, start, end)``."""
    candidates = [
        match for regex in (_FUNCTION_RE, _ARROW_RE) for match in regex.finditer(text)
    ]
    if candidates:
        match = min(candidates, key=lambda item: item.start())
        start, end = _function_span(text, match.start(), match.end())
        return match.group(1), start, end
    default = _DEFAULT_IDENTIFIER_RE.search(text)
    if default:
        line = line_of_offset(text, default.start())
        return default.group(1), line, line
    return None


def _function_span(text: str, start: int, header_end: int) -> Tuple[int, int]:
    """Span of a function whose parameter list may itself contain braces."""
    start_line = line_of_offset(text, start)
    open_paren = text.rfind("(", start, header_end)
    if open_paren < 0:
        return declaration_span(text, start, regex_literals=True)
    close_paren = matching_brace_offset(text, open_paren, regex_literals=True, brackets="()")
    if close_paren is None:
        return start_line, start_line

    cursor = close_paren + 1
    arrow = re.compile(r"\s*(?::[^={;\n]+)?\s*(=>)?\s*([({]?)")
    match = arrow.match(text, cursor)
    opener = match.group(2) if match else ""
    if opener == "{":
        close = matching_brace_offset(text, match.end() - 1, regex_literals=True)
    elif opener == "(":
        close = matching_brace_offset(text, match.end() - 1, regex_literals=True, brackets="()")
    else:
        semicolon = text.find(";", cursor)
        close = semicolon if semicolon >= 0 else None
    if close is None:
        return start_line, start_line
    return start_line, line_of_offset(text, close)


__all__ = ["FRAMEWORK_INDICATORS", "FrontendAnalyzer", "is_frontend_manifest"]

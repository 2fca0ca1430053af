"""Go modules: go.mod manifests, struct types and interfaces."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Sequence, Set, Tuple

from ..cancellation import CancellationToken, check_cancelled
from ..logging import get_logger
from ..models import Conventions, PartialAnalysis, ProjectInfo, TypeInfo
from ..spans import declaration_span, matching_brace_offset
from .utils import (
    DependencyCollector,
    RoleRule,
    build_ignore_rules,
    classify_role,
    distinct,
    find_manifests,
    iter_files,
    nested_project_dirs,
    project_patterns,
    read_manifest,
    read_source,
    relative_path,
)

logger = get_logger("analyzers.go")

GO_ROLE_RULES: Tuple[RoleRule, ...] = (
    RoleRule("Controller", ("Handler", "Controller")),
    RoleRule("Service", ("Service", "Manager")),
    RoleRule("Repository", ("Repository", "Store", "DAO", "Dao")),
    RoleRule("Helper", ("Helper", "Util")),
    RoleRule("Factory", ("Factory",)),
)

_FRONTEND_DIRS = frozenset({"frontend", "web", "ui", "client"})
_BACKEND_DIRS = frozenset({"backend", "api", "cmd", "server"})

_MODULE_RE = re.compile(r"^\s*module\s+(\S+)", re.MULTILINE)
_GO_VERSION_RE = re.compile(r"^\s*go\s+([\d.]+)", re.MULTILINE)
_REQUIRE_LINE_RE = re.compile(r"^\s*require\s+([^\s(]+)\s+(\S+)", re.MULTILINE)
_REQUIRE_BLOCK_RE = re.compile(r"^\s*require\s*\((.*?)^\s*\)", re.MULTILINE | re.DOTALL)
_PACKAGE_RE = re.compile(r"^\s*package\s+(\w+)", re.MULTILINE)
_TYPE_RE = re.compile(
    r"^type[ \t]+([A-Za-z_]\w*)(?:\[[^\]\n]*\])?[ \t]+(struct|interface)\s*\{", re.MULTILINE
)
_TYPE_GROUP_RE = re.compile(r"^type\s*\(", re.MULTILINE)
_GROUP_MEMBER_RE = re.compile(
    r"^([ \t]+)([A-Za-z_]\w*)(?:\[[^\]\n]*\])?[ \t]+(struct|interface)\s*\{", re.MULTILINE
)
_EMBEDDED_RE = re.compile(r"^[ \t]*\*?([A-Za-z_][\w.]*)(?:\[[^\]\n]*\])?[ \t]*(?:`[^`\n]*`)?[ \t]*(?://.*)?$")


@dataclass
class _GoMod:
    name: str
    go_version: str = ""
    collector: DependencyCollector = field(default_factory=DependencyCollector)


class GoAnalyzer:
    """Discovers Go modules and their struct and interface types."""

    ecosystem_id = "go"
    naming_style = "MixedCaps"
    private_member_prefix = ""

    def __init__(self, exclude_paths: Sequence[str] = ()) -> None:
        self._rules = build_ignore_rules(exclude_paths)

    def can_analyze(self, root: Path) -> bool:
        for _ in iter_files(root, ("go.mod",), rules=self._rules):
            return True
        return False

    def analyze(
        self,
        root: Path,
        name: str,
        cancel_token: CancellationToken | None = None,
    ) -> PartialAnalysis:
        root = Path(root)
        logger.info("Scanning %s for Go modules", root)
        manifests = find_manifests(root, ("go.mod",), rules=self._rules, cancel_token=cancel_token)
        manifest_dirs = [path.parent for path in manifests]

        projects: List[ProjectInfo] = []
        frameworks: List[str] = []
        for manifest in manifests:
            check_cancelled(cancel_token)
            nested = nested_project_dirs(manifest.parent, manifest_dirs)
            project, framework = self._parse_module(root, manifest, nested, cancel_token)
            projects.append(project)
            if framework:
                frameworks.append(framework)

        logger.info("Found %d Go module(s)", len(projects))
        return PartialAnalysis(
            ecosystem_id=self.ecosystem_id,
            projects=tuple(projects),
            conventions=Conventions(
                naming_style=self.naming_style,
                private_member_prefix=self.private_member_prefix,
                test_framework=frameworks[0] if frameworks else None,
            ),
        )

    def _parse_module(
        self,
        root: Path,
        manifest: Path,
        nested: Set[Path],
        cancel_token: CancellationToken | None,
    ) -> Tuple[ProjectInfo, str]:
        module_dir = manifest.parent
        gomod = _read_go_mod(manifest)

        types: List[TypeInfo] = []
        interfaces: List[TypeInfo] = []
        packages: List[str] = []
        has_main = False
        has_tests = False
        for path in iter_files(
            module_dir,
            ("*.go",),
            root=root,
            rules=self._rules,
            skip_dirs=nested,
            cancel_token=cancel_token,
        ):
            text = read_source(path, logger)
            if text is None:
                continue
            rel = relative_path(path, root)
            package_match = _PACKAGE_RE.search(text)
            package = package_match.group(1) if package_match else "main"
            packages.append(package)
            has_main = has_main or package == "main"
            in_test_file = path.name.endswith("_test.go")
            has_tests = has_tests or in_test_file

            for offset, type_name, kind in _declarations(text):
                start, end = declaration_span(text, offset, raw_backticks=True)
                info = TypeInfo(
                    name=type_name,
                    namespace=package,
                    file_path=rel,
                    kind=kind,
                    base_types=_embedded_types(text, offset),
                    role=classify_role(type_name, GO_ROLE_RULES, in_test_file=in_test_file),
                    start_line=start,
                    end_line=end,
                )
                (interfaces if kind == "interface" else types).append(info)

        dependencies = gomod.collector.freeze()
        framework = ""
        if any(dep.name == "github.com/stretchr/testify" for dep in dependencies):
            framework = "testify"
        elif has_tests:
            framework = "testing"

        directory = relative_path(module_dir, root)
        project = ProjectInfo(
            name=gomod.name,
            manifest_path=relative_path(manifest, root),
            directory=directory,
            ecosystem=self.ecosystem_id,
            target=f"go {gomod.go_version}" if gomod.go_version else "go",
            root_namespace=gomod.name,
            output_type="Exe" if has_main else "Library",
            dependencies=dependencies,
            types=tuple(types),
            interfaces=tuple(interfaces),
            namespaces=distinct(packages) or ("main",),
            patterns=project_patterns(types + interfaces),
            role=_directory_role(directory),
        )
        logger.debug(
            "Go module %s: %d structs, %d interfaces", project.name, len(types), len(interfaces)
        )
        return project, framework


def _read_go_mod(manifest: Path) -> _GoMod:
    gomod = _GoMod(name=manifest.parent.name)
    text = read_manifest(manifest, logger)
    if text is None:
        return gomod

    module = _MODULE_RE.search(text)
    if module:
        gomod.name = module.group(1).strip().strip('"')
    version = _GO_VERSION_RE.search(text)
    if version:
        gomod.go_version = version.group(1)

    requirements: List[Tuple[int, str, str]] = []
    for match in _REQUIRE_LINE_RE.finditer(text):
        requirements.append((match.start(), match.group(1), match.group(2)))
    for block in _REQUIRE_BLOCK_RE.finditer(text):
        offset = block.start(1)
        for line in block.group(1).splitlines():
            entry = line.split("//", 1)[0].split()
            if len(entry) >= 2:
                requirements.append((offset, entry[0], entry[1]))
            offset += len(line) + 1
    for _, dep_name, dep_version in sorted(requirements):
        gomod.collector.add(dep_name, dep_version)
    return gomod


def _declarations(text: str) -> List[Tuple[int, str, str]]:
    """Return ``(offset, name, kind)`` for top-level and grouped type declarations."""
    found = [(match.start(), match.group(1), match.group(2)) for match in _TYPE_RE.finditer(text)]
    for group in _TYPE_GROUP_RE.finditer(text):
        close = matching_brace_offset(text, group.end() - 1, raw_backticks=True, brackets="()")
        body_end = len(text) if close is None else close
        body = text[group.end() : body_end]
        members = list(_GROUP_MEMBER_RE.finditer(body))
        if not members:
            continue
        indent = min(len(member.group(1)) for member in members)
        for member in members:
            if len(member.group(1)) == indent:
                found.append((group.end() + member.start(2), member.group(2), member.group(3)))
    return sorted(found)


def _embedded_types(text: str, offset: int) -> Tuple[str, ...]:
    open_brace = text.find("{", offset)
    close = (
        matching_brace_offset(text, open_brace, raw_backticks=True) if open_brace >= 0 else None
    )
    if close is None:
        return ()
    embedded: List[str] = []
    depth = 0
    for line in text[open_brace + 1 : close].splitlines():
        if depth == 0:
            match = _EMBEDDED_RE.match(line)
            if match:
                embedded.append(match.group(1))
        depth += line.count("{") - line.count("}")
    return distinct(embedded)


def _directory_role(directory: str) -> str:
    parts = {part.lower() for part in directory.split("/") if part}
    if parts & _FRONTEND_DIRS:
        return "Frontend"
    if parts & _BACKEND_DIRS:
        return "Backend"
    return ""


__all__ = ["GO_ROLE_RULES", "GoAnalyzer"]

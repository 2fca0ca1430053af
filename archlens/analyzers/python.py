"""Python projects: pyproject.toml / setup.py manifests and ``class`` statements."""

from __future__ import annotations

import re
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from ..cancellation import CancellationToken, check_cancelled
from ..errors import ManifestParseError
from ..logging import get_logger
from ..models import Conventions, PartialAnalysis, ProjectInfo, TypeInfo
from ..spans import indentation_span
from .utils import (
    DependencyCollector,
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

logger = get_logger("analyzers.python")

_PROBE_PATTERNS = ("pyproject.toml", "setup.py", "setup.cfg", "requirements.txt", "*.py")
_MANIFEST_PATTERNS = ("pyproject.toml", "setup.py")
_DEFAULT_MODULE = "main"

_CLASS_RE = re.compile(r"^[ \t]*class[ \t]+([A-Za-z_]\w*)[ \t]*(?:\(([^)]*)\))?[ \t]*:", re.MULTILINE)
_TEST_IMPORT_RE = re.compile(r"^\s*(?:import|from)\s+(pytest|unittest)\b", re.MULTILINE)
_SETUP_NAME_RE = re.compile(r"""\bname\s*=\s*["']([^"']+)["']""")
_SETUP_REQUIRES_RE = re.compile(r"install_requires\s*=\s*\[([^\]]*)\]", re.DOTALL)
_QUOTED_RE = re.compile(r"""["']([^"']+)["']""")
_REQUIREMENT_RE = re.compile(r"^\s*([A-Za-z0-9][A-Za-z0-9._-]*)\s*(?:\[[^\]]*\])?\s*([^;#]*)")


@dataclass
class _Manifest:
    name: str
    collector: DependencyCollector


class PythonAnalyzer:
    """Discovers Python packages and the classes they declare."""

    ecosystem_id = "python"
    naming_style = "snake_case"
    private_member_prefix = "_"

    def __init__(self, exclude_paths: Sequence[str] = ()) -> None:
        self._rules = build_ignore_rules(exclude_paths)

    def can_analyze(self, root: Path) -> bool:
        for _ in iter_files(root, _PROBE_PATTERNS, rules=self._rules):
            return True
        return False

    def analyze(
        self,
        root: Path,
        name: str,
        cancel_token: CancellationToken | None = None,
    ) -> PartialAnalysis:
        root = Path(root)
        logger.info("Scanning %s for Python projects", root)

        manifests = find_manifests(
            root, _MANIFEST_PATTERNS, rules=self._rules, cancel_token=cancel_token
        )
        project_dirs = _project_directories(manifests)

        projects: List[ProjectInfo] = []
        frameworks: List[str] = []
        if project_dirs:
            for project_dir in project_dirs:
                check_cancelled(cancel_token)
                nested = nested_project_dirs(project_dir, project_dirs)
                project, framework = self._parse_project(
                    root, project_dir, project_dir.name, nested, cancel_token
                )
                projects.append(project)
                frameworks.append(framework)
        elif self.can_analyze(root):
            project, framework = self._parse_project(root, root, name, set(), cancel_token)
            projects.append(project)
            frameworks.append(framework)

        logger.info("Found %d Python project(s)", len(projects))
        return PartialAnalysis(
            ecosystem_id=self.ecosystem_id,
            projects=tuple(projects),
            conventions=Conventions(
                naming_style=self.naming_style,
                private_member_prefix=self.private_member_prefix,
                test_framework=next((item for item in frameworks if item), None),
            ),
        )

    def _parse_project(
        self,
        root: Path,
        project_dir: Path,
        fallback_name: str,
        nested: Set[Path],
        cancel_token: CancellationToken | None,
    ) -> Tuple[ProjectInfo, str]:
        manifest_path = _manifest_for(project_dir)
        manifest = _read_manifest(manifest_path, fallback_name)
        _read_requirements(project_dir / "requirements.txt", manifest.collector)

        types: List[TypeInfo] = []
        modules: List[str] = []
        test_frameworks: List[str] = []
        for path in iter_files(
            project_dir,
            ("*.py",),
            root=root,
            rules=self._rules,
            skip_dirs=nested,
            cancel_token=cancel_token,
        ):
            text = read_source(path, logger)
            if text is None:
                continue
            module = _module_name(path, project_dir)
            if module:
                modules.append(module)
            rel = relative_path(path, root)
            test_import = _TEST_IMPORT_RE.search(text)
            if test_import:
                test_frameworks.append(test_import.group(1))
            in_test_file = _is_test_file(path, rel) or test_import is not None
            types.extend(_scan_classes(text, module or _DEFAULT_MODULE, rel, in_test_file))

        dependencies = manifest.collector.freeze()
        if any(dep.name.lower() == "pytest" for dep in dependencies):
            test_frameworks.insert(0, "pytest")

        namespaces = distinct(modules) or (_DEFAULT_MODULE,)
        project = ProjectInfo(
            name=manifest.name,
            manifest_path=relative_path(manifest_path, root) if manifest_path else "",
            directory=relative_path(project_dir, root),
            ecosystem=self.ecosystem_id,
            target="python",
            root_namespace=manifest.name.replace("-", "_"),
            output_type="Library",
            dependencies=dependencies,
            types=tuple(types),
            namespaces=namespaces,
            patterns=project_patterns(types),
        )
        logger.debug(
            "Python project %s: %d classes in %d modules", project.name, len(types), len(namespaces)
        )
        return project, (test_frameworks[0] if test_frameworks else "")


def _project_directories(manifests: Sequence[Path]) -> List[Path]:
    return sorted({path.parent for path in manifests})


def _manifest_for(project_dir: Path) -> Optional[Path]:
    for filename in _MANIFEST_PATTERNS:
        candidate = project_dir / filename
        if candidate.is_file():
            return candidate
    return None


def _read_manifest(path: Optional[Path], fallback_name: str) -> _Manifest:
    manifest = _Manifest(name=fallback_name, collector=DependencyCollector())
    if path is None:
        return manifest
    text = read_manifest(path, logger)
    if text is None:
        return manifest

    if path.name == "setup.py":
        match = _SETUP_NAME_RE.search(text)
        if match:
            manifest.name = match.group(1).strip()
        requires = _SETUP_REQUIRES_RE.search(text)
        if requires:
            for item in _QUOTED_RE.findall(requires.group(1)):
                _add_requirement(manifest.collector, item)
        return manifest

    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        logger.warning("%s", ManifestParseError(path, str(exc)))
        return manifest

    project = _table(data.get("project"))
    poetry = _table(_table(data.get("tool")).get("poetry"))
    declared = project.get("name") or poetry.get("name")
    if isinstance(declared, str) and declared.strip():
        manifest.name = declared.strip()

    for item in project.get("dependencies") or []:
        if isinstance(item, str):
            _add_requirement(manifest.collector, item)
    for values in _table(project.get("optional-dependencies")).values():
        for item in values or []:
            if isinstance(item, str):
                _add_requirement(manifest.collector, item)

    _add_poetry_table(manifest.collector, _table(poetry.get("dependencies")))
    _add_poetry_table(manifest.collector, _table(poetry.get("dev-dependencies")))
    for group in _table(poetry.get("group")).values():
        _add_poetry_table(manifest.collector, _table(_table(group).get("dependencies")))
    return manifest


def _add_poetry_table(collector: DependencyCollector, table: Dict[str, Any]) -> None:
    for dep_name, spec in table.items():
        if dep_name.lower() == "python":
            continue
        if isinstance(spec, str):
            collector.add(dep_name, spec)
        elif isinstance(spec, dict):
            version = spec.get("version", "")
            collector.add(dep_name, version if isinstance(version, str) else "")
        else:
            collector.add(dep_name)


def _add_requirement(collector: DependencyCollector, requirement: str) -> None:
    match = _REQUIREMENT_RE.match(requirement)
    if match:
        collector.add(match.group(1), match.group(2).strip())


def _read_requirements(path: Path, collector: DependencyCollector) -> None:
    if not path.is_file():
        return
    text = read_manifest(path, logger)
    if text is None:
        return
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith(("#", "-")):
            continue
        _add_requirement(collector, stripped)


def _table(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _module_name(path: Path, project_dir: Path) -> str:
    parts = list(path.relative_to(project_dir).with_suffix("").parts)
    if parts and parts[0] == "src":
        parts = parts[1:]
    if parts and parts[-1] == "__init__":
        parts = parts[:-1]
    return ".".join(parts)


def _is_test_file(path: Path, rel: str) -> bool:
    stem = path.stem
    return (
        stem.startswith("test_")
        or stem.endswith("_test")
        or stem == "conftest"
        or in_test_directory(rel)
    )


def _scan_classes(text: str, module: str, rel: str, in_test_file: bool) -> List[TypeInfo]:
    found: List[TypeInfo] = []
    for match in _CLASS_RE.finditer(text):
        class_name = match.group(1)
        bases = tuple(base for base in split_base_types(match.group(2)) if "=" not in base)
        start, end = indentation_span(text, match.start(), header_end=match.end() - 1)
        found.append(
            TypeInfo(
                name=class_name,
                namespace=module,
                file_path=rel,
                kind="class",
                base_types=bases,
                role=classify_role(class_name, in_test_file=in_test_file),
                start_line=start,
                end_line=end,
            )
        )
    return found


__all__ = ["PythonAnalyzer"]

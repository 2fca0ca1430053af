"""Rust crates: Cargo.toml manifests, ``struct``/``enum`` types and ``trait`` interfaces."""

from __future__ import annotations

import re
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from ..cancellation import CancellationToken, check_cancelled
from ..errors import ManifestParseError
from ..logging import get_logger
from ..models import Conventions, PartialAnalysis, ProjectInfo, TypeInfo
from ..spans import declaration_span, matching_brace_offset
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
)

logger = get_logger("analyzers.rust")

_DEPENDENCY_SECTIONS = ("dependencies", "dev-dependencies", "build-dependencies")
_VISIBILITY = r"(?:pub(?:\([^)]*\))?[ \t]+)?"

_TYPE_RE = re.compile(
    rf"^[ \t]*{_VISIBILITY}(struct|enum|union)[ \t]+([A-Za-z_]\w*)", re.MULTILINE
)
_TRAIT_RE = re.compile(
    rf"^[ \t]*{_VISIBILITY}(?:unsafe[ \t]+)?(?:auto[ \t]+)?trait[ \t]+([A-Za-z_]\w*)"
    r"(?:\s*<[^>{]*>)?(?:\s*:\s*([^{;]+?))?\s*(?:where\b[^{]*)?\{",
    re.MULTILINE,
)
_INLINE_MOD_RE = re.compile(rf"^[ \t]*{_VISIBILITY}mod[ \t]+([A-Za-z_]\w*)\s*\{{", re.MULTILINE)
_IMPL_RE = re.compile(
    r"\bimpl\b\s*(?:<[^>{]*>)?\s*([A-Za-z_][\w:]*(?:<[^>{]*>)?)\s+for\s+([A-Za-z_]\w*)"
)
_TEST_ATTRIBUTE_RE = re.compile(r"#\[(?:[\w:]+::)?test\]")


@dataclass(frozen=True)
class _InlineModule:
    name: str
    start: int
    end: int
    is_test: bool


@dataclass
class _Cargo:
    name: str
    edition: str = ""
    has_bin_targets: bool = False
    collector: DependencyCollector = field(default_factory=DependencyCollector)


class RustAnalyzer:
    """Discovers Cargo packages and their structs, enums and traits."""

    ecosystem_id = "rust"
    naming_style = "snake_case"
    private_member_prefix = ""

    def __init__(self, exclude_paths: Sequence[str] = ()) -> None:
        self._rules = build_ignore_rules(exclude_paths)

    def can_analyze(self, root: Path) -> bool:
        for _ in iter_files(root, ("Cargo.toml",), rules=self._rules):
            return True
        return False

    def analyze(
        self,
        root: Path,
        name: str,
        cancel_token: CancellationToken | None = None,
    ) -> PartialAnalysis:
        root = Path(root)
        logger.info("Scanning %s for Cargo packages", root)
        manifests = find_manifests(
            root, ("Cargo.toml",), rules=self._rules, cancel_token=cancel_token
        )
        manifest_dirs = [path.parent for path in manifests]

        projects: List[ProjectInfo] = []
        uses_tests = False
        for manifest in manifests:
            check_cancelled(cancel_token)
            cargo = _read_cargo(manifest)
            if cargo is None:
                logger.debug("Skipping virtual workspace manifest %s", manifest)
                continue
            nested = nested_project_dirs(manifest.parent, manifest_dirs)
            project, has_tests = self._parse_package(root, manifest, cargo, nested, cancel_token)
            projects.append(project)
            uses_tests = uses_tests or has_tests

        logger.info("Found %d Rust package(s)", len(projects))
        return PartialAnalysis(
            ecosystem_id=self.ecosystem_id,
            projects=tuple(projects),
            conventions=Conventions(
                naming_style=self.naming_style,
                private_member_prefix=self.private_member_prefix,
                test_framework="cargo test" if uses_tests else None,
            ),
        )

    def _parse_package(
        self,
        root: Path,
        manifest: Path,
        cargo: _Cargo,
        nested: Set[Path],
        cancel_token: CancellationToken | None,
    ) -> Tuple[ProjectInfo, bool]:
        project_dir = manifest.parent
        crate = cargo.name.replace("-", "_")

        types: List[TypeInfo] = []
        traits: List[TypeInfo] = []
        modules: List[str] = []
        implemented: Dict[str, List[str]] = {}
        has_tests = False
        for path in iter_files(
            project_dir,
            ("*.rs",),
            root=root,
            rules=self._rules,
            skip_dirs=nested,
            cancel_token=cancel_token,
        ):
            text = read_source(path, logger)
            if text is None:
                continue
            rel = relative_path(path, root)
            module = _module_path(crate, path, project_dir)
            inline = _inline_modules(text)
            modules.append(module)
            modules.extend(_qualify(module, inline, item.start + 1) for item in inline)
            has_tests = has_tests or bool(_TEST_ATTRIBUTE_RE.search(text))
            in_test_dir = in_test_directory(relative_path(path, project_dir))

            for match in _IMPL_RE.finditer(text):
                implemented.setdefault(match.group(2), []).append(" ".join(match.group(1).split()))

            for match in _TYPE_RE.finditer(text):
                type_name = match.group(2)
                types.append(
                    _type_info(
                        text, match.start(), type_name, match.group(1), (),
                        _qualify(module, inline, match.start()), rel,
                        in_test_dir or _in_test_module(inline, match.start()),
                    )
                )
            for match in _TRAIT_RE.finditer(text):
                supertraits = tuple(
                    part.strip() for part in (match.group(2) or "").split("+") if part.strip()
                )
                traits.append(
                    _type_info(
                        text, match.start(), match.group(1), "trait", supertraits,
                        _qualify(module, inline, match.start()), rel,
                        in_test_dir or _in_test_module(inline, match.start()),
                    )
                )

        types = [_with_impls(item, implemented) for item in types]
        all_types = types + traits
        output_type = (
            "Exe" if cargo.has_bin_targets or (project_dir / "src" / "main.rs").is_file() else "Library"
        )
        project = ProjectInfo(
            name=cargo.name,
            manifest_path=relative_path(manifest, root),
            directory=relative_path(project_dir, root),
            ecosystem=self.ecosystem_id,
            target=f"rust {cargo.edition}" if cargo.edition else "rust",
            root_namespace=crate,
            output_type=output_type,
            dependencies=cargo.collector.freeze(),
            types=tuple(types),
            interfaces=tuple(traits),
            namespaces=distinct(modules) or (crate,),
            patterns=project_patterns(all_types),
        )
        logger.debug(
            "Rust package %s: %d types, %d traits", project.name, len(types), len(traits)
        )
        return project, has_tests


def _read_cargo(manifest: Path) -> Optional[_Cargo]:
    """Parse Cargo.toml; ``None`` marks a virtual workspace manifest."""
    cargo = _Cargo(name=manifest.parent.name)
    text = read_manifest(manifest, logger)
    if text is None:
        return cargo
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        logger.warning("%s", ManifestParseError(manifest, str(exc)))
        return cargo

    package = _table(data.get("package"))
    if not package and "workspace" in data:
        return None

    declared = package.get("name")
    if isinstance(declared, str) and declared.strip():
        cargo.name = declared.strip()
    edition = package.get("edition")
    if isinstance(edition, str):
        cargo.edition = edition
    cargo.has_bin_targets = bool(data.get("bin"))

    for section in _DEPENDENCY_SECTIONS:
        _add_dependencies(cargo.collector, _table(data.get(section)))
    for target in _table(data.get("target")).values():
        for section in _DEPENDENCY_SECTIONS:
            _add_dependencies(cargo.collector, _table(_table(target).get(section)))
    _add_dependencies(
        cargo.collector, _table(_table(data.get("workspace")).get("dependencies"))
    )
    return cargo


def _add_dependencies(collector: DependencyCollector, table: Dict[str, Any]) -> None:
    for dep_name, spec in table.items():
        if isinstance(spec, str):
            collector.add(dep_name, spec)
        elif isinstance(spec, dict):
            version = spec.get("version", "")
            collector.add(dep_name, version if isinstance(version, str) else "")
        else:
            collector.add(dep_name)


def _table(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _module_path(crate: str, path: Path, project_dir: Path) -> str:
    parts = list(path.relative_to(project_dir).with_suffix("").parts)
    if parts and parts[0] == "src":
        parts = parts[1:]
    if parts and parts[-1] in ("lib", "main", "mod"):
        parts = parts[:-1]
    return "::".join([crate, *parts])


def _inline_modules(text: str) -> List[_InlineModule]:
    modules: List[_InlineModule] = []
    for match in _INLINE_MOD_RE.finditer(text):
        open_brace = match.end() - 1
        close = matching_brace_offset(
            text, open_brace, nested_comments=True, single_quote_strings=False
        )
        preamble = text[max(0, match.start() - 80) : match.start()]
        modules.append(
            _InlineModule(
                name=match.group(1),
                start=open_brace,
                end=len(text) if close is None else close,
                is_test=match.group(1) == "tests" or "#[cfg(test)]" in preamble,
            )
        )
    return modules


def _enclosing(modules: Sequence[_InlineModule], offset: int) -> List[_InlineModule]:
    return [item for item in modules if item.start < offset < item.end]


def _qualify(module: str, inline: Sequence[_InlineModule], offset: int) -> str:
    names = [item.name for item in _enclosing(inline, offset)]
    return "::".join([module, *names])


def _in_test_module(inline: Sequence[_InlineModule], offset: int) -> bool:
    return any(item.is_test for item in _enclosing(inline, offset))


def _type_info(
    text: str,
    offset: int,
    type_name: str,
    kind: str,
    base_types: Tuple[str, ...],
    namespace: str,
    rel: str,
    in_test: bool,
) -> TypeInfo:
    start, end = declaration_span(
        text,
        offset,
        stop_at_semicolon=True,
        nested_comments=True,
        single_quote_strings=False,
    )
    return TypeInfo(
        name=type_name,
        namespace=namespace,
        file_path=rel,
        kind=kind,
        base_types=base_types,
        role=classify_role(type_name, in_test_file=in_test, base_types=base_types),
        start_line=start,
        end_line=end,
    )


def _with_impls(item: TypeInfo, implemented: Dict[str, List[str]]) -> TypeInfo:
    traits = distinct(implemented.get(item.name, ()))
    if not traits:
        return item
    return replace(item, base_types=item.base_types + traits)


__all__ = ["RustAnalyzer"]

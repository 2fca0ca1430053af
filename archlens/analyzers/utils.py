"""Shared helpers for ecosystem analyzers."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Collection, Iterable, Iterator, List, Optional, Sequence, Set, Tuple

from ..cancellation import CancellationToken, check_cancelled
from ..errors import FileReadError, ManifestParseError
from ..models import DependencyReference, TypeInfo

EXCLUDED_DIRS = frozenset(
    {
        ".git",
        ".hg",
        ".svn",
        ".idea",
        ".vs",
        ".vscode",
        ".venv",
        "venv",
        "env",
        ".tox",
        ".nox",
        ".eggs",
        "__pycache__",
        ".pytest_cache",
        ".mypy_cache",
        ".ruff_cache",
        "node_modules",
        "bower_components",
        ".next",
        ".nuxt",
        ".svelte-kit",
        "coverage",
        "vendor",
        "target",
        "bin",
        "obj",
        "build",
        "dist",
        "out",
    }
)

_MAX_SOURCE_BYTES = 2 * 1024 * 1024


@dataclass(frozen=True)
class IgnoreRule:
    """A gitignore-style exclusion pattern from ``exclude_paths``."""

    pattern: str
    directory_only: bool
    anchored: bool
    has_slash: bool

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if not self.pattern:
            return False
        if self.directory_only and not is_dir:
            return False

        if self.anchored or self.has_slash:
            if fnmatchcase(rel_path, self.pattern):
                return True
            return self.directory_only and rel_path.startswith(f"{self.pattern}/")

        return any(fnmatchcase(part, self.pattern) for part in rel_path.split("/"))


def build_ignore_rules(patterns: Iterable[str]) -> Tuple[IgnoreRule, ...]:
    rules: List[IgnoreRule] = []
    for raw in patterns:
        pattern = raw.strip()
        if not pattern or pattern.startswith("#"):
            continue
        directory_only = pattern.endswith("/")
        if directory_only:
            pattern = pattern[:-1]
        anchored = pattern.startswith("/")
        if anchored:
            pattern = pattern[1:]
        rules.append(
            IgnoreRule(
                pattern=pattern,
                directory_only=directory_only,
                anchored=anchored,
                has_slash="/" in pattern,
            )
        )
    return tuple(rules)


def _is_ignored(rel_path: str, is_dir: bool, rules: Sequence[IgnoreRule]) -> bool:
    return any(rule.matches(rel_path, is_dir) for rule in rules)


def iter_files(
    base: Path,
    patterns: Sequence[str],
    *,
    root: Path | None = None,
    rules: Sequence[IgnoreRule] = (),
    skip_dirs: Collection[Path] = (),
    cancel_token: CancellationToken | None = None,
) -> Iterator[Path]:
    """Yield files under ``base`` whose names match ``patterns``, in sorted order.

    Excluded build/vendor/cache directories are pruned, as are ``skip_dirs``
    and paths matched by ``rules`` (evaluated relative to ``root``).
    """
    root = root or base
    skipped = {Path(path) for path in skip_dirs}
    for dirpath, dirnames, filenames in os.walk(base):
        check_cancelled(cancel_token)
        current = Path(dirpath)
        kept: List[str] = []
        for name in sorted(dirnames):
            if name in EXCLUDED_DIRS:
                continue
            child = current / name
            if child in skipped:
                continue
            if rules and _is_ignored(relative_path(child, root), True, rules):
                continue
            kept.append(name)
        dirnames[:] = kept

        for filename in sorted(filenames):
            if not any(fnmatchcase(filename, pattern) for pattern in patterns):
                continue
            path = current / filename
            if rules and _is_ignored(relative_path(path, root), False, rules):
                continue
            yield path


def find_manifests(
    root: Path,
    patterns: Sequence[str],
    *,
    rules: Sequence[IgnoreRule] = (),
    cancel_token: CancellationToken | None = None,
) -> List[Path]:
    return list(iter_files(root, patterns, rules=rules, cancel_token=cancel_token))


def nested_project_dirs(project_dir: Path, manifest_dirs: Iterable[Path]) -> Set[Path]:
    """Return manifest directories strictly below ``project_dir``."""
    nested: Set[Path] = set()
    for candidate in manifest_dirs:
        if candidate != project_dir and project_dir in candidate.parents:
            nested.add(candidate)
    return nested


def relative_path(path: Path, root: Path) -> str:
    """Return ``path`` relative to ``root`` in POSIX form ("" for the root itself)."""
    try:
        relative = path.relative_to(root)
    except ValueError:
        return path.as_posix()
    text = relative.as_posix()
    return "" if text == "." else text


def read_source(path: Path, logger: logging.Logger) -> Optional[str]:
    """Read a source file, logging and returning None when it is unreadable."""
    try:
        if path.stat().st_size > _MAX_SOURCE_BYTES:
            logger.debug("Skipping oversized file %s", path)
            return None
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        logger.warning("%s", FileReadError(path, str(exc)))
        return None


def read_manifest(path: Path, logger: logging.Logger) -> Optional[str]:
    """Read a manifest file, logging and returning None when it is unreadable."""
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("%s", ManifestParseError(path, str(exc)))
        return None


class DependencyCollector:
    """Ordered dependency list where the first declaration of a name wins."""

    def __init__(self) -> None:
        self._items: List[DependencyReference] = []
        self._seen: Set[str] = set()

    def add(self, name: str, version: str = "") -> None:
        name = name.strip()
        if not name or name in self._seen:
            return
        self._seen.add(name)
        self._items.append(DependencyReference(name=name, version=version.strip()))

    def freeze(self) -> Tuple[DependencyReference, ...]:
        return tuple(self._items)


@dataclass(frozen=True)
class RoleRule:
    """Assigns ``role`` when a type name contains any of ``keywords``."""

    role: str
    keywords: Tuple[str, ...]


COMMON_ROLE_RULES: Tuple[RoleRule, ...] = (
    RoleRule("Controller", ("Controller", "View", "Endpoint")),
    RoleRule("Service", ("Service", "Manager")),
    RoleRule("Repository", ("Repository", "DAO", "Dao")),
    RoleRule("Helper", ("Helper", "Utils", "Util")),
    RoleRule("Factory", ("Factory",)),
)

TEST_TYPE_SUFFIXES: Tuple[str, ...] = ("Test", "Tests")
TEST_DIR_NAMES = frozenset({"test", "tests", "__tests__", "spec", "specs", "e2e"})


def in_test_directory(rel_path: str) -> bool:
    """Return True when any parent folder of ``rel_path`` is a test folder."""
    return any(part.lower() in TEST_DIR_NAMES for part in rel_path.split("/")[:-1])


def classify_role(
    type_name: str,
    rules: Sequence[RoleRule] = COMMON_ROLE_RULES,
    *,
    in_test_file: bool = False,
    base_types: Sequence[str] = (),
) -> Optional[str]:
    """Return the first matching role tag for ``type_name``.

    Types declared in test files, or named like tests, are ``UnitTest``
    regardless of the other vocabularies. The declared supertypes are
    consulted only when the name itself matches no rule.
    """
    if in_test_file or type_name.endswith(TEST_TYPE_SUFFIXES):
        return "UnitTest"
    for candidate in (type_name, *base_types):
        for rule in rules:
            if any(keyword in candidate for keyword in rule.keywords):
                return rule.role
    return None


def project_patterns(
    types: Sequence[TypeInfo], extra: Iterable[str] = ()
) -> Tuple[str, ...]:
    """Collapse per-type roles into the project's pattern tags, first seen first."""
    roles = distinct(item.role for item in types)
    return distinct((*roles, *extra))


def distinct(values: Iterable[Optional[str]]) -> Tuple[str, ...]:
    """Return non-empty values in first-seen order without duplicates."""
    seen: Set[str] = set()
    ordered: List[str] = []
    for value in values:
        if value and value not in seen:
            seen.add(value)
            ordered.append(value)
    return tuple(ordered)


def split_base_types(raw: Optional[str]) -> Tuple[str, ...]:
    """Split a comma separated supertype list, keeping generic arguments intact."""
    if not raw:
        return ()
    parts: List[str] = []
    depth = 0
    current: List[str] = []
    for char in raw:
        if char in "<([":
            depth += 1
        elif char in ">)]":
            depth = max(depth - 1, 0)
        if char == "," and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    parts.append("".join(current))
    return tuple(" ".join(part.split()) for part in parts if part.strip())


__all__ = [
    "COMMON_ROLE_RULES",
    "DependencyCollector",
    "EXCLUDED_DIRS",
    "IgnoreRule",
    "RoleRule",
    "build_ignore_rules",
    "classify_role",
    "distinct",
    "find_manifests",
    "in_test_directory",
    "iter_files",
    "nested_project_dirs",
    "project_patterns",
    "read_manifest",
    "read_source",
    "relative_path",
    "split_base_types",
]

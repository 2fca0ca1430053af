"""Exception types raised or logged during codebase analysis."""

from __future__ import annotations

from pathlib import Path


class ArchlensError(RuntimeError):
    """Base class for archlens errors."""


class RootNotFound(ArchlensError, FileNotFoundError):
    """Raised when the analysis root does not exist or is not a directory."""

    def __init__(self, root: str | Path) -> None:
        super().__init__(f"Codebase path not found: {root}")
        self.root = str(root)


class ManifestParseError(ArchlensError):
    """A project manifest could not be read or parsed."""

    def __init__(self, path: str | Path, reason: str) -> None:
        super().__init__(f"Failed to parse manifest {path}: {reason}")
        self.path = str(path)
        self.reason = reason


class FileReadError(ArchlensError):
    """A source file could not be read."""

    def __init__(self, path: str | Path, reason: str) -> None:
        super().__init__(f"Failed to read {path}: {reason}")
        self.path = str(path)
        self.reason = reason


class AnalyzerFailure(ArchlensError):
    """An ecosystem analyzer raised unexpectedly."""

    def __init__(self, ecosystem_id: str, cause: BaseException) -> None:
        super().__init__(f"Analyzer '{ecosystem_id}' failed: {cause}")
        self.ecosystem_id = ecosystem_id
        self.cause = cause


class AnalysisCancelled(ArchlensError):
    """Raised when a cancellation token stops an analysis run."""


class ConfigError(ArchlensError):
    """Raised when the configuration file cannot be parsed."""


__all__ = [
    "AnalysisCancelled",
    "AnalyzerFailure",
    "ArchlensError",
    "ConfigError",
    "FileReadError",
    "ManifestParseError",
    "RootNotFound",
]

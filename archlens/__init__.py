"""Static structure analysis for polyglot codebases."""

from .cancellation import CancellationToken
from .dispatcher import CodebaseAnalyzer, analyze_codebase
from .errors import (
    AnalysisCancelled,
    AnalyzerFailure,
    ArchlensError,
    ConfigError,
    FileReadError,
    ManifestParseError,
    RootNotFound,
)
from .models import (
    AggregateAnalysis,
    Conventions,
    DependencyReference,
    DetailContext,
    ExtensionPoint,
    PartialAnalysis,
    ProjectBrief,
    ProjectInfo,
    Summary,
    SummaryContext,
    TypeInfo,
)

__all__ = [
    "AggregateAnalysis",
    "AnalysisCancelled",
    "AnalyzerFailure",
    "ArchlensError",
    "CancellationToken",
    "CodebaseAnalyzer",
    "ConfigError",
    "Conventions",
    "DependencyReference",
    "DetailContext",
    "ExtensionPoint",
    "FileReadError",
    "ManifestParseError",
    "PartialAnalysis",
    "ProjectBrief",
    "ProjectInfo",
    "RootNotFound",
    "Summary",
    "SummaryContext",
    "TypeInfo",
    "analyze_codebase",
]

"""Runs the registered ecosystem analyzers and merges their results."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from datetime import UTC, datetime
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from .analyzers import EcosystemAnalyzer, discover_analyzers
from .cancellation import CancellationToken, check_cancelled
from .config import CONFIG_FILENAME, ArchlensConfig, load_config
from .errors import AnalysisCancelled, AnalyzerFailure, RootNotFound
from .inference import summarize
from .logging import get_logger
from .models import AggregateAnalysis, Conventions, PartialAnalysis, ProjectInfo
from .rendering import ContextRenderer

logger = get_logger("dispatcher")

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(UTC)


class CodebaseAnalyzer:
    """Coordinates the ecosystem analyzers for one source tree.

    Analyzers are probed in registration order, the applicable ones run on a
    thread pool, and their partial results are joined back in registration
    order so the merged project list (and everything rendered from it) does
    not depend on which analyzer finished first.
    """

    def __init__(
        self,
        analyzers: Optional[Iterable[EcosystemAnalyzer]] = None,
        *,
        config: ArchlensConfig | None = None,
        max_workers: int | None = None,
        clock: Clock | None = None,
        renderer: ContextRenderer | None = None,
    ) -> None:
        self.config = config
        if analyzers is None:
            enabled = config.analyzers.enabled if config else None
            exclude_paths = config.exclude_paths if config else ()
            analyzers = discover_analyzers(enabled, exclude_paths=exclude_paths)
        self.analyzers: List[EcosystemAnalyzer] = list(analyzers)
        if max_workers is None and config is not None:
            max_workers = config.max_workers
        self.max_workers = max_workers
        self._clock = clock or _utc_now
        if renderer is None:
            if config is not None:
                renderer = ContextRenderer(
                    detail_type_limit=config.render.detail_type_limit,
                    detail_interface_limit=config.render.detail_interface_limit,
                )
            else:
                renderer = ContextRenderer()
        self.renderer = renderer

    def analyze(
        self,
        root: str | Path,
        name: str,
        cancel_token: CancellationToken | None = None,
    ) -> AggregateAnalysis:
        """Analyze ``root`` and return the merged, rendered aggregate.

        Raises ``RootNotFound`` for a missing root and ``AnalysisCancelled``
        when ``cancel_token`` fires; every other failure is logged and
        degrades the result.
        """
        root_path = Path(root)
        if not root_path.is_dir():
            raise RootNotFound(root_path)
        check_cancelled(cancel_token)
        started = self._clock()

        applicable = self._applicable(root_path)
        partials = self._run(applicable, root_path, name, cancel_token)

        projects: List[ProjectInfo] = []
        conventions: Conventions | None = None
        for partial in partials:
            projects.extend(partial.projects)
            if conventions is None and partial.projects:
                conventions = partial.conventions
        if conventions is None:
            conventions = Conventions()

        summary = summarize(projects)
        summary_context = self.renderer.render_summary(name, projects)
        detail_context = self.renderer.render_detail(name, projects, conventions, summary)
        logger.info(
            "Analyzed %s: %d project(s) across %d ecosystem(s)",
            name,
            summary.total_projects,
            len(summary.ecosystems),
        )
        return AggregateAnalysis(
            name=name,
            root_path=str(root_path),
            analyzed_at=started,
            projects=tuple(projects),
            summary=summary,
            conventions=conventions,
            summary_context=summary_context,
            detail_context=detail_context,
        )

    def _applicable(self, root: Path) -> List[EcosystemAnalyzer]:
        applicable: List[EcosystemAnalyzer] = []
        for analyzer in self.analyzers:
            try:
                if analyzer.can_analyze(root):
                    applicable.append(analyzer)
            except Exception as exc:
                logger.warning(
                    "Probe for analyzer '%s' failed: %s", _analyzer_id(analyzer), exc
                )
        logger.debug(
            "Applicable analyzers: %s",
            ", ".join(_analyzer_id(analyzer) for analyzer in applicable) or "none",
        )
        return applicable

    def _run(
        self,
        analyzers: Sequence[EcosystemAnalyzer],
        root: Path,
        name: str,
        cancel_token: CancellationToken | None,
    ) -> List[PartialAnalysis]:
        if not analyzers:
            return []
        results: List[PartialAnalysis] = []
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures: List[Tuple[EcosystemAnalyzer, Future]] = [
                (analyzer, executor.submit(analyzer.analyze, root, name, cancel_token))
                for analyzer in analyzers
            ]
            try:
                for analyzer, future in futures:
                    check_cancelled(cancel_token)
                    partial = self._join(analyzer, future)
                    if partial is not None:
                        results.append(partial)
                check_cancelled(cancel_token)
            except AnalysisCancelled:
                for _, future in futures:
                    future.cancel()
                logger.info("Analysis of %s cancelled", root)
                raise
        return results

    def _join(self, analyzer: EcosystemAnalyzer, future: Future) -> PartialAnalysis | None:
        ecosystem_id = _analyzer_id(analyzer)
        try:
            partial = future.result()
        except AnalysisCancelled:
            raise
        except Exception as exc:
            logger.error("%s", AnalyzerFailure(ecosystem_id, exc))
            logger.debug("Analyzer '%s' traceback", ecosystem_id, exc_info=exc)
            return None
        if not isinstance(partial, PartialAnalysis):
            logger.error(
                "%s",
                AnalyzerFailure(
                    ecosystem_id,
                    TypeError(f"expected PartialAnalysis, got {type(partial).__name__}"),
                ),
            )
            return None
        logger.debug("Analyzer '%s' found %d project(s)", ecosystem_id, len(partial.projects))
        return partial


def _analyzer_id(analyzer: object) -> str:
    return str(getattr(analyzer, "ecosystem_id", type(analyzer).__name__))


def analyze_codebase(
    root: str | Path,
    name: str | None = None,
    *,
    config: ArchlensConfig | None = None,
    cancel_token: CancellationToken | None = None,
) -> AggregateAnalysis:
    """Analyze ``root`` with the registered analyzers.

    When ``config`` is omitted, ``.archlens.yml`` at the root is honored if it
    exists. ``name`` defaults to the root directory name.
    """
    root_path = Path(root)
    if not root_path.is_dir():
        raise RootNotFound(root_path)
    if config is None:
        config = load_config(root_path / CONFIG_FILENAME)
    display_name = name or root_path.resolve().name
    return CodebaseAnalyzer(config=config).analyze(root_path, display_name, cancel_token)


__all__ = ["CodebaseAnalyzer", "analyze_codebase"]

"""Contract implemented by every ecosystem analyzer."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from ..cancellation import CancellationToken
from ..models import PartialAnalysis


@runtime_checkable
class EcosystemAnalyzer(Protocol):
    """Strategy that discovers projects of one ecosystem under a root path.

    Implementations hold no per-run state: ``analyze`` may be called from a
    worker thread and must return a fresh ``PartialAnalysis`` whose projects
    are all tagged with ``ecosystem_id``.
    """

    ecosystem_id: str
    naming_style: str
    private_member_prefix: str

    def can_analyze(self, root: Path) -> bool:
        """Cheap filesystem probe for this ecosystem's manifests."""

    def analyze(
        self,
        root: Path,
        name: str,
        cancel_token: CancellationToken | None = None,
    ) -> PartialAnalysis:
        """Return the projects of this ecosystem found under ``root``."""


__all__ = ["EcosystemAnalyzer"]

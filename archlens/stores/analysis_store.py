"""JSON file store for completed analyses, keyed by codebase name."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import List, Optional

from ..logging import get_logger
from ..models import AggregateAnalysis

logger = get_logger("stores.analysis")

_SUFFIX = ".analysis.json"
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class AnalysisStore:
    """Persists ``AggregateAnalysis`` values as one JSON document per codebase."""

    def __init__(self, directory: Path) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, name: str) -> Path:
        slug = _UNSAFE_CHARS.sub("_", name.strip()).strip("._") or "codebase"
        return self._directory / f"{slug}{_SUFFIX}"

    def save(self, analysis: AggregateAnalysis) -> Path:
        path = self.path_for(analysis.name)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(analysis.to_dict(), indent=2, sort_keys=True) + "\n",
            encoding="utf-8",
        )
        logger.debug("Saved analysis for %s to %s", analysis.name, path)
        return path

    def load(self, name: str) -> Optional[AggregateAnalysis]:
        """Return the stored analysis for ``name``, or ``None`` when absent or unreadable."""
        path = self.path_for(name)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable analysis %s: %s", path, exc)
            return None
        if not isinstance(data, dict):
            return None
        try:
            return AggregateAnalysis.from_dict(data)
        except (TypeError, ValueError) as exc:
            logger.warning("Ignoring incompatible analysis %s: %s", path, exc)
            return None

    def list_names(self) -> List[str]:
        if not self._directory.is_dir():
            return []
        names: List[str] = []
        for path in sorted(self._directory.glob(f"*{_SUFFIX}")):
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError):
                continue
            if isinstance(data, dict) and isinstance(data.get("name"), str):
                names.append(data["name"])
        return names

    def delete(self, name: str) -> bool:
        path = self.path_for(name)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True


__all__ = ["AnalysisStore"]

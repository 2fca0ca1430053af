"""Cooperative cancellation for analysis runs."""

from __future__ import annotations

import threading

from .errors import AnalysisCancelled


class CancellationToken:
    """Thread-safe flag checked between files and between analyzers."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise AnalysisCancelled("Analysis was cancelled")


def check_cancelled(token: CancellationToken | None) -> None:
    """Raise AnalysisCancelled when ``token`` is set; ``None`` never cancels."""
    if token is not None:
        token.raise_if_cancelled()


__all__ = ["CancellationToken", "check_cancelled"]

"""Cooperative cancellation for long-running computations."""

from __future__ import annotations

import threading

from .errors import CancelledError


class CancellationToken:
    """Thread-safe flag checked by the engine and the optimizer.

    Cancellation is cooperative: a running computation notices the flag at
    its next checkpoint (before each oracle call, between optimizer
    iterations) and raises ``CancelledError``.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise CancelledError("computation was cancelled")

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled})"

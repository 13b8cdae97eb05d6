"""Spectrum evaluation engine.

This module contains the SpectrumEngine class, which evaluates a structure
over a set of wavelengths by calling the wavelength response oracle once per
wavelength on a thread pool. Results are index-aligned with the requested
wavelengths whatever order the workers finish in, and are delivered either
blocking (``evaluate``) or through a future (``evaluate_async``).
"""

from __future__ import annotations

import logging
import math
import threading
from collections.abc import Callable, Sequence
from concurrent.futures import Future, InvalidStateError, ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .errors import (
    CancelledError,
    EngineClosedError,
    EvaluationError,
    InvalidArgumentError,
)

if TYPE_CHECKING:
    from .cancellation import CancellationToken
    from .oracle import WavelengthResponseOracle
    from .structure import StructureDescription

logger = logging.getLogger(__name__)

# oracle results this far outside [0, 1] are clipped rather than rejected
_RANGE_TOLERANCE = 1e-9


@dataclass(frozen=True)
class SpectrumPoint:
    """Transmission and reflection of a structure at one wavelength (nm)."""

    wavelength_nm: float
    transmission: float
    reflection: float


def _check_fraction(value: float, label: str, wavelength: float) -> float:
    value = float(value)
    if not math.isfinite(value) or not (
        -_RANGE_TOLERANCE <= value <= 1.0 + _RANGE_TOLERANCE
    ):
        raise EvaluationError(
            wavelength, f"oracle returned {label}={value} at {wavelength} nm"
        )
    return min(max(value, 0.0), 1.0)


def _check_wavelengths(wavelengths: Sequence[float]) -> list[float]:
    checked = []
    for wl in wavelengths:
        wl = float(wl)
        if not math.isfinite(wl) or wl <= 0:
            raise InvalidArgumentError(f"wavelengths must be positive, got {wl}")
        checked.append(wl)
    return checked


class _Gather:
    """Collects per-wavelength futures into one ordered result future.

    Cancelling the result future cancels the wavelengths still queued.
    """

    def __init__(self, futures: list[Future], wavelengths: list[float]):
        self.futures = futures
        self.wavelengths = wavelengths
        self.result: Future = Future()
        self._remaining = len(futures)
        self._settled = False
        self._lock = threading.Lock()
        self.result.add_done_callback(self._on_result_done)
        for index, future in enumerate(futures):
            future.add_done_callback(lambda f, i=index: self._on_done(i, f))

    def _cancel_pending(self) -> None:
        for future in self.futures:
            future.cancel()

    def _on_result_done(self, result: Future) -> None:
        if not result.cancelled():
            return
        with self._lock:
            self._settled = True
        self._cancel_pending()

    def _fail(self, exc: BaseException) -> None:
        with self._lock:
            if self._settled:
                return
            self._settled = True
        # partial results are discarded; queued work is dropped
        self._cancel_pending()
        try:
            self.result.set_exception(exc)
        except InvalidStateError:
            pass  # result was cancelled meanwhile

    def _on_done(self, index: int, future: Future) -> None:
        if future.cancelled():
            self._fail(CancelledError("wavelength evaluation was cancelled"))
            return
        exc = future.exception()
        if exc is not None:
            if not isinstance(exc, EvaluationError | CancelledError):
                exc = EvaluationError(self.wavelengths[index])
            self._fail(exc)
            return
        with self._lock:
            self._remaining -= 1
            if self._remaining or self._settled:
                return
            self._settled = True
        try:
            self.result.set_result([f.result() for f in self.futures])
        except InvalidStateError:
            pass  # result was cancelled meanwhile


class SpectrumEngine:
    """Parallel evaluation of structures over wavelengths.

    Args:
        oracle: Single-wavelength response model.
        max_workers: Size of the worker pool. Defaults to the
            ``ThreadPoolExecutor`` default.

    Examples:
    >>> with SpectrumEngine(TransferMatrixOracle(store)) as engine:
    ...     points = engine.evaluate(structure, [450.0, 550.0, 650.0])
    """

    def __init__(self, oracle: WavelengthResponseOracle, max_workers: int | None = None):
        if max_workers is not None and max_workers <= 0:
            raise InvalidArgumentError("max_workers must be a positive integer or None")
        self.oracle = oracle
        self.max_workers = max_workers
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="filmstack-spectrum"
        )
        self._closed = False

    def _evaluate_one(
        self,
        stack: StructureDescription,
        wavelength: float,
        cancel_token: CancellationToken | None,
    ) -> SpectrumPoint:
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        try:
            transmission, reflection = self.oracle.respond(stack, wavelength)
        except Exception as e:
            logger.warning("Oracle failed at %s nm: %s", wavelength, e)
            raise EvaluationError(wavelength, f"evaluation failed at {wavelength} nm: {e}") from e
        return SpectrumPoint(
            wavelength_nm=wavelength,
            transmission=_check_fraction(transmission, "transmission", wavelength),
            reflection=_check_fraction(reflection, "reflection", wavelength),
        )

    def evaluate_async(
        self,
        stack: StructureDescription,
        wavelengths: Sequence[float],
        callback: Callable[[list[SpectrumPoint]], None] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> Future:
        """Start evaluating and return immediately.

        Args:
            stack: Structure to evaluate. It is snapshotted before any work is
                queued, so the caller may keep mutating its own copy.
            wavelengths: Wavelengths in nm.
            callback: Called with the ordered points once every wavelength has
                resolved. Not called on failure.
            cancel_token: Optional cooperative cancellation token.

        Returns:
            Future resolving to a list of ``SpectrumPoint`` aligned with
            ``wavelengths``, or raising ``EvaluationError``/``CancelledError``.

        Raises:
            EngineClosedError: If the engine has been closed.
        """
        wavelengths = _check_wavelengths(wavelengths)
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        if self._closed:
            raise EngineClosedError("spectrum engine is closed")
        snapshot = stack.copy()

        futures = []
        try:
            for wl in wavelengths:
                futures.append(
                    self._executor.submit(self._evaluate_one, snapshot, wl, cancel_token)
                )
        except RuntimeError as e:
            # closed concurrently; drop what was already queued
            for future in futures:
                future.cancel()
            raise EngineClosedError("spectrum engine is closed") from e
        if futures:
            result = _Gather(futures, wavelengths).result
        else:
            result = Future()
            result.set_running_or_notify_cancel()
            result.set_result([])

        if callback is not None:

            def _notify(future: Future) -> None:
                if not future.cancelled() and future.exception() is None:
                    callback(future.result())

            result.add_done_callback(_notify)
        return result

    def evaluate(
        self,
        stack: StructureDescription,
        wavelengths: Sequence[float],
        cancel_token: CancellationToken | None = None,
    ) -> list[SpectrumPoint]:
        """Evaluate a structure at every wavelength, blocking until done.

        Raises:
            InvalidArgumentError: If a wavelength is not positive.
            EvaluationError: If any single-wavelength evaluation fails.
            CancelledError: If ``cancel_token`` is cancelled.
        """
        return self.evaluate_async(stack, wavelengths, cancel_token=cancel_token).result()

    def evaluate_point(
        self, stack: StructureDescription, wavelength: float
    ) -> SpectrumPoint:
        """Evaluate one wavelength in the calling thread."""
        (wavelength,) = _check_wavelengths([wavelength])
        return self._evaluate_one(stack.copy(), wavelength, None)

    def close(self) -> None:
        self._closed = True
        self._executor.shutdown(wait=True, cancel_futures=True)

    def __enter__(self) -> SpectrumEngine:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

"""Exceptions raised by filmstack.

Every public operation either returns a complete result or raises one of
the exceptions below. They all derive from ``FilmStackError`` so callers
can catch the whole family at once.
"""

from __future__ import annotations


class FilmStackError(Exception):
    """Base class for all filmstack errors."""


class NotFoundError(FilmStackError, LookupError):
    """An unknown material, substrate or structure name was requested."""


class InvalidArgumentError(FilmStackError, ValueError):
    """An argument violates a documented precondition."""


class StorageError(FilmStackError):
    """The persistent store failed or returned inconsistent data."""


class EvaluationError(FilmStackError):
    """The wavelength response oracle failed for a given wavelength.

    Args:
        wavelength: Wavelength in nm at which the evaluation failed.
        message: Optional description of the failure.
    """

    def __init__(self, wavelength: float, message: str | None = None):
        self.wavelength = wavelength
        if message is None:
            message = f"evaluation failed at {wavelength} nm"
        super().__init__(message)


class CancelledError(FilmStackError):
    """A computation was cancelled through its cancellation token."""


class EngineClosedError(FilmStackError, RuntimeError):
    """Work was submitted to a spectrum engine after ``close()``."""

"""Configuration objects.

Settings are plain dataclasses validated on construction; they are passed
explicitly to the components that use them.
"""

from __future__ import annotations

import math
import os
from dataclasses import asdict, dataclass, field
from typing import Any

from .errors import InvalidArgumentError


@dataclass(frozen=True)
class OptimizerSettings:
    """Tuning constants of the thickness optimizer.

    Attributes:
        learning_rate: Gradient step multiplier.
        tolerance: Convergence threshold on sqrt(total squared error).
        step_nm: Forward finite-difference thickness step, nm.
        min_thickness_nm: Lower clamp applied to every updated thickness, nm.
        parallel_perturbations: Evaluate the per-layer perturbed spectra
            concurrently, each on its own clone of the stack.
    """

    learning_rate: float = 0.1
    tolerance: float = 1e-4
    step_nm: float = 1.0
    min_thickness_nm: float = 1.0
    parallel_perturbations: bool = False

    def __post_init__(self):
        for name in ("learning_rate", "tolerance", "step_nm", "min_thickness_nm"):
            value = getattr(self, name)
            if not math.isfinite(value) or value <= 0:
                raise InvalidArgumentError(f"{name} must be positive, got {value}")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AnalyzerConfig:
    """Settings of an ``OpticalCoatingAnalyzer``.

    Attributes:
        db_path: Path of the SQLite database.
        max_workers: Spectrum engine pool size, None for the executor default.
        cache_size: Bound on cached optical data entities, None for unbounded.
        optimizer: Thickness optimizer settings.
    """

    db_path: str | os.PathLike = ":memory:"
    max_workers: int | None = None
    cache_size: int | None = None
    optimizer: OptimizerSettings = field(default_factory=OptimizerSettings)

    def __post_init__(self):
        if self.max_workers is not None and self.max_workers <= 0:
            raise InvalidArgumentError("max_workers must be a positive integer or None")
        if self.cache_size is not None and self.cache_size <= 0:
            raise InvalidArgumentError("cache_size must be a positive integer or None")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

"""Optical constants lookup.

This provides the material-property layer: raw and cached retrieval of
tabulated complex refractive-index data from the persistent store, and
linear interpolation of (n, k) over wavelength.
"""

from __future__ import annotations

import bisect
import enum
import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .cache import CacheInfo, SingleFlightCache
from .errors import InvalidArgumentError, NotFoundError, StorageError

if TYPE_CHECKING:
    from .database import OpticalDatabase

logger = logging.getLogger(__name__)


class EntityKind(enum.Enum):
    """Kind of entity that owns tabulated optical data."""

    MATERIAL = "material"
    SUBSTRATE = "substrate"


@dataclass(frozen=True)
class OpticalSample:
    """One tabulated point of a complex refractive index n + ik.

    Parameters
    ----------
    wavelength : float
        Wavelength in nanometers, strictly positive.
    n : float
        Real part of the refractive index.
    k : float
        Extinction coefficient.
    """

    wavelength: float
    n: float
    k: float = 0.0


class OpticalDataStore:
    """Cached access to optical constants held in an ``OpticalDatabase``.

    Args:
        database: Store implementing ``fetch_optical_data(kind, name)``.
        cache_size: Maximum number of cached entities, None for unbounded.

    Examples:
    >>> db = OpticalDatabase(":memory:")
    >>> db.add_material("SiO2", [(400, 1.47, 0.0), (800, 1.45, 0.0)])
    1
    >>> store = OpticalDataStore(db)
    >>> store.refractive_index(EntityKind.MATERIAL, "SiO2", 350.0)
    (1.47+0j)
    """

    def __init__(self, database: OpticalDatabase, cache_size: int | None = None):
        self.database = database
        self._cache: SingleFlightCache[tuple[OpticalSample, ...]] = SingleFlightCache(
            cache_size
        )

    def get_samples(self, kind: EntityKind, name: str) -> tuple[OpticalSample, ...]:
        """Read the samples of a material or substrate from the store.

        Raises:
            NotFoundError: If no rows match the name.
            StorageError: On query failure or if persisted wavelengths are not
                strictly increasing.
        """
        kind = EntityKind(kind)
        rows = self.database.fetch_optical_data(kind, name)
        if not rows:
            raise NotFoundError(f"No optical data for {kind.value} {name!r}")

        samples = tuple(OpticalSample(float(w), float(n), float(k)) for w, n, k in rows)
        for prev, cur in zip(samples, samples[1:]):
            if not cur.wavelength > prev.wavelength:
                raise StorageError(
                    f"Optical data for {kind.value} {name!r} is not strictly "
                    f"increasing in wavelength at {cur.wavelength} nm"
                )
        return samples

    def get_cached_samples(
        self, kind: EntityKind, name: str
    ) -> tuple[OpticalSample, ...]:
        """Return cached samples, loading them on first request.

        Concurrent requests for the same uncached entity trigger a single
        load and all receive the same tuple instance.
        """
        kind = EntityKind(kind)
        return self._cache.get_or_load(
            (kind, name), lambda: self.get_samples(kind, name)
        )

    @staticmethod
    def interpolate(
        samples: Sequence[OpticalSample], wavelength: float
    ) -> tuple[float, float]:
        """Linearly interpolate (n, k) at a wavelength.

        Wavelengths outside the tabulated range are clamped to the nearest
        boundary sample; there is no extrapolation.

        Raises:
            InvalidArgumentError: If samples is empty or the wavelength is
                not finite.
        """
        if not samples:
            raise InvalidArgumentError("Empty optical data for interpolation")
        if not math.isfinite(wavelength):
            raise InvalidArgumentError(f"wavelength must be finite, got {wavelength}")

        first, last = samples[0], samples[-1]
        if wavelength <= first.wavelength:
            return first.n, first.k
        if wavelength >= last.wavelength:
            return last.n, last.k

        hi = bisect.bisect_left(samples, wavelength, key=lambda s: s.wavelength)
        upper = samples[hi]
        if upper.wavelength == wavelength:
            return upper.n, upper.k
        lower = samples[hi - 1]
        t = (wavelength - lower.wavelength) / (upper.wavelength - lower.wavelength)
        n = lower.n + t * (upper.n - lower.n)
        k = lower.k + t * (upper.k - lower.k)
        return n, k

    def refractive_index(self, kind: EntityKind, name: str, wavelength: float) -> complex:
        """Complex index n + ik of an entity at one wavelength (nm)."""
        if not math.isfinite(wavelength) or wavelength <= 0:
            raise InvalidArgumentError(f"wavelength must be positive, got {wavelength}")
        n, k = self.interpolate(self.get_cached_samples(kind, name), wavelength)
        return complex(n, k)

    def cache_info(self) -> CacheInfo:
        return self._cache.info()

    def invalidate(self, kind: EntityKind | None = None, name: str | None = None) -> None:
        """Drop cached data for one entity, or everything if no name is given."""
        if name is None:
            self._cache.invalidate()
        else:
            self._cache.invalidate((EntityKind(kind), name))

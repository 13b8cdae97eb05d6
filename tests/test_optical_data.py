"""Tests for optical constants retrieval and interpolation."""

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from unittest import mock

import pytest

from filmstack.database import OpticalDatabase
from filmstack.errors import InvalidArgumentError, NotFoundError, StorageError
from filmstack.optical_data import EntityKind, OpticalDataStore, OpticalSample


@pytest.fixture
def dispersive():
    return (
        OpticalSample(400.0, 1.0, 0.0),
        OpticalSample(500.0, 1.5, 0.1),
        OpticalSample(600.0, 2.0, 0.2),
    )


class TestInterpolate:
    """Test linear interpolation with boundary clamping."""

    def test_midpoint(self, dispersive):
        n, k = OpticalDataStore.interpolate(dispersive, 450.0)
        assert n == pytest.approx(1.25)
        assert k == pytest.approx(0.05)

    def test_below_range_clamped(self, dispersive):
        assert OpticalDataStore.interpolate(dispersive, 350.0) == (1.0, 0.0)

    def test_above_range_clamped(self, dispersive):
        assert OpticalDataStore.interpolate(dispersive, 650.0) == (2.0, 0.2)

    def test_exact_sample(self, dispersive):
        assert OpticalDataStore.interpolate(dispersive, 500.0) == (1.5, 0.1)

    @pytest.mark.parametrize("wavelength", [410.0, 475.0, 499.9, 500.1, 590.0])
    def test_bracketed(self, dispersive, wavelength):
        """Interpolated values lie between the bracketing samples."""
        n, k = OpticalDataStore.interpolate(dispersive, wavelength)
        hi = next(i for i, s in enumerate(dispersive) if s.wavelength >= wavelength)
        lo = dispersive[hi - 1]
        up = dispersive[hi]
        assert min(lo.n, up.n) <= n <= max(lo.n, up.n)
        assert min(lo.k, up.k) <= k <= max(lo.k, up.k)

    def test_single_sample(self):
        samples = (OpticalSample(500.0, 1.5, 0.0),)
        assert OpticalDataStore.interpolate(samples, 100.0) == (1.5, 0.0)
        assert OpticalDataStore.interpolate(samples, 900.0) == (1.5, 0.0)

    def test_empty_samples(self):
        with pytest.raises(InvalidArgumentError):
            OpticalDataStore.interpolate((), 500.0)

    @pytest.mark.parametrize("wavelength", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_wavelength(self, dispersive, wavelength):
        with pytest.raises(InvalidArgumentError, match="finite"):
            OpticalDataStore.interpolate(dispersive, wavelength)


class TestOpticalDataStore:
    """Test lookups through the database and the cache."""

    def test_get_samples(self, store):
        samples = store.get_samples(EntityKind.MATERIAL, "Dispersive")
        assert isinstance(samples, tuple)
        assert samples[1] == OpticalSample(500.0, 1.5, 0.1)

    def test_unknown_material(self, store):
        with pytest.raises(NotFoundError, match="Unobtainium"):
            store.get_samples(EntityKind.MATERIAL, "Unobtainium")

    def test_unknown_material_through_cache(self, store):
        with pytest.raises(NotFoundError):
            store.refractive_index(EntityKind.MATERIAL, "Unobtainium", 500.0)
        assert store.cache_info().currsize == 0

    def test_refractive_index(self, store):
        index = store.refractive_index(EntityKind.MATERIAL, "Dispersive", 450.0)
        assert index.real == pytest.approx(1.25)
        assert index.imag == pytest.approx(0.05)

    def test_substrate_lookup(self, store):
        assert store.refractive_index(EntityKind.SUBSTRATE, "BK7", 550.0) == 1.52

    @pytest.mark.parametrize("wavelength", [0.0, -500.0, float("nan")])
    def test_invalid_wavelength(self, store, wavelength):
        with pytest.raises(InvalidArgumentError):
            store.refractive_index(EntityKind.MATERIAL, "MgF2", wavelength)

    def test_cached_samples_idempotent(self, store):
        first = store.get_cached_samples(EntityKind.MATERIAL, "MgF2")
        second = store.get_cached_samples(EntityKind.MATERIAL, "MgF2")
        assert first is second
        assert store.cache_info().loads == 1

    def test_concurrent_lookups_single_query(self, database):
        """Racing requests for one uncached material hit the database once."""
        original = database.fetch_optical_data

        def slow_fetch(kind, name):
            time.sleep(0.05)
            return original(kind, name)

        store = OpticalDataStore(database)
        barrier = threading.Barrier(6)

        def request(_):
            barrier.wait()
            return store.get_cached_samples(EntityKind.MATERIAL, "TiO2")

        with mock.patch.object(database, "fetch_optical_data", side_effect=slow_fetch) as fetch:
            with ThreadPoolExecutor(max_workers=6) as pool:
                results = list(pool.map(request, range(6)))

        assert fetch.call_count == 1
        assert all(r is results[0] for r in results)

    def test_cache_size_bounds_entries(self, database):
        store = OpticalDataStore(database, cache_size=2)
        for name in ("MgF2", "TiO2", "Lossy"):
            store.get_cached_samples(EntityKind.MATERIAL, name)
        assert store.cache_info().currsize == 2

    def test_invalidate_one_entity(self, store):
        store.get_cached_samples(EntityKind.MATERIAL, "MgF2")
        store.get_cached_samples(EntityKind.MATERIAL, "TiO2")
        store.invalidate(EntityKind.MATERIAL, "MgF2")
        assert store.cache_info().currsize == 1

    def test_unsorted_rows_are_storage_error(self):
        """Duplicate wavelengths in persisted data are rejected."""
        with OpticalDatabase() as db:
            db.add_material("Dup", [(500.0, 1.5, 0.0), (500.0, 1.6, 0.0)])
            store = OpticalDataStore(db)
            with pytest.raises(StorageError, match="strictly increasing"):
                store.get_samples(EntityKind.MATERIAL, "Dup")

    def test_failed_lookups_leave_no_key_locks(self, database):
        """Repeated unknown names do not accumulate per-key lock state."""
        store = OpticalDataStore(database, cache_size=4)
        for i in range(500):
            with pytest.raises(NotFoundError):
                store.get_cached_samples(EntityKind.MATERIAL, f"missing-{i}")
        assert store.cache_info().currsize == 0
        assert store._cache._key_locks == {}

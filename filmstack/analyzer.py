"""Optical Coating Analyzer

This module contains the OpticalCoatingAnalyzer class, the entry point that
wires the optical database, data store, response oracle, spectrum engine and
thickness optimizer together and exposes them by structure name.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from concurrent.futures import Future
from typing import TYPE_CHECKING

from .analysis import SpectralAnalyzer
from .config import AnalyzerConfig
from .database import OpticalDatabase
from .optical_data import OpticalDataStore
from .optimization import OptimizationReport, ThicknessOptimizer
from .oracle import TransferMatrixOracle
from .spectrum import SpectrumEngine
from .structure import StructureRepository

if TYPE_CHECKING:
    from .cancellation import CancellationToken
    from .oracle import WavelengthResponseOracle
    from .spectrum import SpectrumPoint
    from .structure import StructureDescription

logger = logging.getLogger(__name__)


class OpticalCoatingAnalyzer:
    """Computes spectra of stored coating structures and optimizes them.

    Args:
        config: Analyzer settings. Defaults to ``AnalyzerConfig()``.
        database: Existing database to use instead of opening
            ``config.db_path``. It is not closed by ``close()``.
        oracle: Response model. Defaults to a ``TransferMatrixOracle`` on the
            analyzer's data store.

    Examples:
    >>> with OpticalCoatingAnalyzer(AnalyzerConfig(db_path="coatings.db")) as app:
    ...     points = app.calculate_spectrum("AR-MgF2", [450.0, 550.0, 650.0])
    """

    def __init__(
        self,
        config: AnalyzerConfig | None = None,
        database: OpticalDatabase | None = None,
        oracle: WavelengthResponseOracle | None = None,
    ):
        self.config = config or AnalyzerConfig()
        self._owns_database = database is None
        self.database = database or OpticalDatabase(self.config.db_path)
        self.store = OpticalDataStore(self.database, cache_size=self.config.cache_size)
        self.structures = StructureRepository(self.database)
        self.oracle = oracle or TransferMatrixOracle(self.store)
        self.engine = SpectrumEngine(self.oracle, max_workers=self.config.max_workers)
        self.optimizer = ThicknessOptimizer(self.engine, self.config.optimizer)

    def load_structure(self, structure_name: str) -> StructureDescription:
        return self.structures.load(structure_name)

    def list_structures(self) -> list[str]:
        """Names of every stored structure, sorted."""
        return self.structures.list_names()

    def calculate_spectrum(
        self,
        structure_name: str,
        wavelengths: Sequence[float],
        cancel_token: CancellationToken | None = None,
    ) -> list[SpectrumPoint]:
        """Spectrum of a stored structure at the given wavelengths (nm).

        Raises:
            NotFoundError: If the structure or one of its materials is unknown.
            EvaluationError: If evaluation fails at any wavelength.
        """
        structure = self.load_structure(structure_name)
        return self.engine.evaluate(structure, wavelengths, cancel_token=cancel_token)

    def calculate_spectrum_async(
        self,
        structure_name: str,
        wavelengths: Sequence[float],
        callback: Callable[[list[SpectrumPoint]], None] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> Future:
        """Start a spectrum calculation; the structure is loaded up front.

        Structure lookup errors are raised immediately. Evaluation errors are
        delivered through the returned future.
        """
        structure = self.load_structure(structure_name)
        return self.engine.evaluate_async(
            structure, wavelengths, callback=callback, cancel_token=cancel_token
        )

    def analyze(self, structure_name: str, wavelengths: Sequence[float]) -> SpectralAnalyzer:
        """Spectrum of a stored structure wrapped for tabulation and plotting."""
        return SpectralAnalyzer(self.calculate_spectrum(structure_name, wavelengths))

    def optimize_structure(
        self,
        structure_name: str,
        target_wavelengths: Sequence[float],
        target_reflection: Sequence[float],
        max_iterations: int = 100,
        cancel_token: CancellationToken | None = None,
    ) -> StructureDescription:
        """Fit the layer thicknesses of a stored structure to a target.

        The stored structure is not modified; the optimized copy is returned.
        """
        initial = self.load_structure(structure_name)
        result = self.optimizer.run(
            initial,
            target_wavelengths,
            target_reflection,
            max_iterations=max_iterations,
            cancel_token=cancel_token,
        )
        logger.info("Optimized %r: %r", structure_name, OptimizationReport(result))
        return result.stack

    def close(self) -> None:
        self.engine.close()
        if self._owns_database:
            self.database.close()

    def __enter__(self) -> OpticalCoatingAnalyzer:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

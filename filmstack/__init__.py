"""Thin-film coating spectra and thickness optimization.

Public API:
- ``OpticalCoatingAnalyzer``: spectra and optimization of stored structures by name
- ``OpticalDatabase``: SQLite store of optical constants and structures
- ``StructureDescription``: layers (material + thickness) on a substrate
- ``SpectrumEngine``: parallel per-wavelength evaluation through a response oracle
- ``ThicknessOptimizer``: gradient fit of layer thicknesses to a target reflection
- ``SpectralAnalyzer``: tables and plots of a computed spectrum

Units: wavelength in nm, thickness in nm, angle of incidence in degrees.
"""

import logging

from .analysis import SpectralAnalyzer
from .analyzer import OpticalCoatingAnalyzer
from .cancellation import CancellationToken
from .config import AnalyzerConfig, OptimizerSettings
from .database import OpticalDatabase
from .errors import (
    CancelledError,
    EngineClosedError,
    EvaluationError,
    FilmStackError,
    InvalidArgumentError,
    NotFoundError,
    StorageError,
)
from .optical_data import EntityKind, OpticalDataStore, OpticalSample
from .optimization import OptimizationResult, ThicknessOptimizer
from .oracle import TransferMatrixOracle, WavelengthResponseOracle
from .spectrum import SpectrumEngine, SpectrumPoint
from .structure import Layer, StructureDescription, StructureRepository

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "AnalyzerConfig",
    "CancellationToken",
    "CancelledError",
    "EngineClosedError",
    "EntityKind",
    "EvaluationError",
    "FilmStackError",
    "InvalidArgumentError",
    "Layer",
    "NotFoundError",
    "OpticalCoatingAnalyzer",
    "OpticalDataStore",
    "OpticalDatabase",
    "OpticalSample",
    "OptimizationResult",
    "OptimizerSettings",
    "SpectralAnalyzer",
    "SpectrumEngine",
    "SpectrumPoint",
    "StorageError",
    "StructureDescription",
    "StructureRepository",
    "ThicknessOptimizer",
    "TransferMatrixOracle",
    "WavelengthResponseOracle",
]

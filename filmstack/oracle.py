"""Wavelength response oracles.

An oracle computes the transmission and reflection of one structure at one
wavelength. The spectrum engine only relies on the ``respond`` contract:
pure, deterministic, free of side effects and safe to call from several
threads at once. Any physical method can be plugged in by subclassing
``WavelengthResponseOracle``.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

import numpy as np

from .core import tmm_coherent, tmm_with_backside
from .optical_data import EntityKind

if TYPE_CHECKING:
    from .optical_data import OpticalDataStore
    from .structure import StructureDescription


class WavelengthResponseOracle(ABC):
    """Abstract base class for single-wavelength response models."""

    @abstractmethod
    def respond(
        self, stack: StructureDescription, wavelength: float
    ) -> tuple[float, float]:
        """Return ``(transmission, reflection)`` at ``wavelength`` (nm).

        Both values are power fractions in [0, 1].
        """
        pass


class TransferMatrixOracle(WavelengthResponseOracle):
    """Unpolarized transfer-matrix response of a coated substrate.

    The stack is illuminated from an ambient medium (air by default) at the
    structure's angle of incidence. s and p powers are averaged. Optical
    constants are resolved by name through the data store at every call, so
    the oracle benefits from the store's cache.

    Args:
        store: Optical data store used to resolve n and k.
        ambient_index: Complex index of the incident medium. Defaults to 1.0.
    """

    def __init__(self, store: OpticalDataStore, ambient_index: complex = 1.0):
        self.store = store
        self.ambient_index = complex(ambient_index)

    def _complex_index(self, kind: EntityKind, name: str, wavelength: float) -> complex:
        return self.store.refractive_index(kind, name, wavelength)

    def indices(self, stack: StructureDescription, wavelength: float) -> list[complex]:
        """Complex indices ``[ambient, layer_1, ..., substrate]`` at a wavelength."""
        return (
            [self.ambient_index]
            + [
                self._complex_index(EntityKind.MATERIAL, layer.material, wavelength)
                for layer in stack.layers
            ]
            + [self._complex_index(EntityKind.SUBSTRATE, stack.substrate, wavelength)]
        )

    def respond(
        self, stack: StructureDescription, wavelength: float
    ) -> tuple[float, float]:
        indices = self.indices(stack, wavelength)
        beta = self.ambient_index.real * math.sin(math.radians(stack.angle_deg))
        solve = tmm_with_backside if stack.consider_backside else tmm_coherent

        Rs, Ts = solve(indices, stack.thicknesses, wavelength, beta, "s")
        Rp, Tp = solve(indices, stack.thicknesses, wavelength, beta, "p")
        R = 0.5 * (Rs + Rp)
        T = 0.5 * (Ts + Tp)
        return float(np.clip(T, 0.0, 1.0)), float(np.clip(R, 0.0, 1.0))

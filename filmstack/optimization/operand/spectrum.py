"""Spectrum Operand Module

This module contains the SpectrumOperand class with static methods computing
the quantities the thickness optimizer works with: reflection and
transmission values of a structure, and the squared error against a target
reflection spectrum.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from filmstack.cancellation import CancellationToken
    from filmstack.spectrum import SpectrumEngine, SpectrumPoint
    from filmstack.structure import StructureDescription


class SpectrumOperand:
    """Operand functions for thickness optimization.

    All evaluations go through a ``SpectrumEngine`` in blocking mode.
    """

    @staticmethod
    def reflectance(
        engine: SpectrumEngine,
        stack: StructureDescription,
        wavelengths_nm: Sequence[float],
        cancel_token: CancellationToken | None = None,
    ) -> list[float]:
        """Reflection of ``stack`` at each wavelength, in input order."""
        points = engine.evaluate(stack, wavelengths_nm, cancel_token=cancel_token)
        return [p.reflection for p in points]

    @staticmethod
    def transmittance(
        engine: SpectrumEngine,
        stack: StructureDescription,
        wavelengths_nm: Sequence[float],
        cancel_token: CancellationToken | None = None,
    ) -> list[float]:
        """Transmission of ``stack`` at each wavelength, in input order."""
        points = engine.evaluate(stack, wavelengths_nm, cancel_token=cancel_token)
        return [p.transmission for p in points]

    @staticmethod
    def residuals(
        spectrum: Sequence[SpectrumPoint], target_reflection: Sequence[float]
    ) -> list[float]:
        """Per-point reflection error ``R_i - target_i``."""
        return [p.reflection - t for p, t in zip(spectrum, target_reflection, strict=True)]

    @staticmethod
    def total_error(
        spectrum: Sequence[SpectrumPoint], target_reflection: Sequence[float]
    ) -> float:
        """Sum of squared reflection errors."""
        return float(
            sum(e * e for e in SpectrumOperand.residuals(spectrum, target_reflection))
        )

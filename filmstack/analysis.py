"""Spectrum analysis class.

Tabular and plotted views of a computed spectrum.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Literal

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from .errors import InvalidArgumentError

if TYPE_CHECKING:
    from .spectrum import SpectrumPoint

PlotType = Literal["R", "T", "A"]

_COLUMNS = ["wavelength_nm", "transmission", "reflection"]
_LABELS = {"R": "Reflection", "T": "Transmission", "A": "Loss"}


class SpectralAnalyzer:
    """Class for analyzing the optical response (R/T) of a structure.

    Attributes:
        points (list[SpectrumPoint]): The spectrum, in wavelength order as
            computed.
    """

    def __init__(self, points: Sequence[SpectrumPoint]) -> None:
        self.points = list(points)

    @property
    def wavelengths(self) -> np.ndarray:
        return np.array([p.wavelength_nm for p in self.points], dtype=float)

    @property
    def transmission(self) -> np.ndarray:
        return np.array([p.transmission for p in self.points], dtype=float)

    @property
    def reflection(self) -> np.ndarray:
        return np.array([p.reflection for p in self.points], dtype=float)

    @property
    def loss(self) -> np.ndarray:
        """1 - R - T, absorption plus any scattering the oracle accounts for."""
        return 1.0 - self.reflection - self.transmission

    def to_dataframe(self) -> pd.DataFrame:
        """Ordered (wavelength_nm, transmission, reflection) table."""
        return pd.DataFrame(
            {
                "wavelength_nm": self.wavelengths,
                "transmission": self.transmission,
                "reflection": self.reflection,
            },
            columns=_COLUMNS,
        )

    def rms_error(self, target_reflection: Sequence[float]) -> float:
        """Root of the mean squared reflection error against a target."""
        target = np.asarray(target_reflection, dtype=float)
        if target.shape != (len(self.points),):
            raise InvalidArgumentError(
                f"Length of target ({target.size}) must match spectrum "
                f"length ({len(self.points)})"
            )
        return float(np.sqrt(np.mean((self.reflection - target) ** 2)))

    def plot(
        self,
        to_plot: PlotType | list[PlotType] = "R",
        ax: plt.Axes = None,
        target_reflection: Sequence[float] | None = None,
    ) -> tuple[plt.Figure, plt.Axes]:
        """Plot R/T/A vs wavelength.

        Args:
            to_plot: 'R', 'T', 'A' or list of these, default 'R'.
            ax: Optional matplotlib Axes to plot on. If None, a new figure
                and axes are created.
            target_reflection: Optional target reflection drawn as markers.

        Returns:
            fig, ax: The matplotlib Figure and Axes containing the plot.
        """
        if not self.points:
            raise InvalidArgumentError("Cannot plot an empty spectrum")
        if ax is None:
            fig, ax = plt.subplots()
        else:
            fig = ax.figure

        if isinstance(to_plot, str):
            to_plot = [to_plot]
        values = {"R": self.reflection, "T": self.transmission, "A": self.loss}

        wl = self.wavelengths
        for quantity in to_plot:
            if quantity not in values:
                raise ValueError("to_plot must be 'R', 'T', 'A' or a list of these")
            ax.plot(wl, values[quantity], label=_LABELS[quantity])
        if target_reflection is not None:
            ax.plot(wl, target_reflection, "o", label="Target R")

        ax.set_xlabel("$\\lambda$ (nm)")
        ax.set_ylabel("Power fraction")
        if len(wl) > 1:
            ax.set_xlim(wl.min(), wl.max())
        ax.set_ylim(0, 1)
        ax.grid(True, alpha=0.3)
        ax.legend()
        return fig, ax

"""Thickness Optimization Report Module

This module contains the OptimizationReport class for summarising the
outcome of a thickness optimization, including before/after layer
thicknesses and the error history.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pandas as pd

if TYPE_CHECKING:
    from .optimizer import OptimizationResult


class OptimizationReport:
    """Generates tabular reports for thickness optimization results.

    Args:
        result: The result returned by ``ThicknessOptimizer.run``.
    """

    def __init__(self, result: OptimizationResult):
        self.result = result
        self._initial_thicknesses = result.initial_stack.thicknesses
        self._final_thicknesses = result.stack.thicknesses

    def summary_table(self) -> pd.DataFrame:
        """Generate a summary table of the layer thicknesses.

        Returns:
            DataFrame with columns: Layer, Material, Initial (nm), Final (nm),
            Change (nm), Change (%)
        """
        data = []
        layers = self.result.stack.layers
        for idx, (initial_nm, final_nm) in enumerate(
            zip(self._initial_thicknesses, self._final_thicknesses, strict=True)
        ):
            change_nm = final_nm - initial_nm
            data.append(
                {
                    "Layer": idx,
                    "Material": layers[idx].material,
                    "Initial (nm)": initial_nm,
                    "Final (nm)": final_nm,
                    "Change (nm)": change_nm,
                    "Change (%)": (change_nm / initial_nm) * 100,
                }
            )

        return pd.DataFrame(
            data,
            columns=[
                "Layer",
                "Material",
                "Initial (nm)",
                "Final (nm)",
                "Change (nm)",
                "Change (%)",
            ],
        )

    def history_table(self) -> pd.DataFrame:
        """Total squared error after each iteration.

        Returns:
            DataFrame with columns: Iteration (1-based), Total error,
            Root error (the quantity compared with the tolerance)
        """
        history = self.result.history
        return pd.DataFrame(
            {
                "Iteration": range(1, len(history) + 1),
                "Total error": history,
                "Root error": [e**0.5 for e in history],
            }
        )

    def __repr__(self) -> str:
        status = "converged" if self.result.converged else "not converged"
        return (
            f"OptimizationReport({status} after {self.result.iterations} iterations, "
            f"total error {self.result.total_error:.3g})"
        )

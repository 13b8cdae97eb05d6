"""Thickness Optimizer Module

This module contains the ThicknessOptimizer class, which refines the layer
thicknesses of a structure so that its reflection matches a target spectrum.
It runs a gradient descent whose sensitivities are estimated by forward
finite differences over spectrum evaluations of perturbed copies of the
structure.
"""

from __future__ import annotations

import logging
import math
import warnings
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from filmstack.config import OptimizerSettings
from filmstack.errors import InvalidArgumentError

from .operand.spectrum import SpectrumOperand
from .variable.layer_thickness import LayerThicknessVariable

if TYPE_CHECKING:
    from filmstack.cancellation import CancellationToken
    from filmstack.spectrum import SpectrumEngine
    from filmstack.structure import StructureDescription

logger = logging.getLogger(__name__)


@dataclass
class OptimizationState:
    """Mutable state of one optimization run."""

    current_stack: StructureDescription
    iteration: int = 0
    last_total_error: float = math.inf


@dataclass
class OptimizationResult:
    """Outcome of an optimization run.

    ``converged`` is False when the iteration cap was reached first; that is
    a normal outcome, and the caller decides whether ``total_error`` is good
    enough.
    """

    stack: StructureDescription
    initial_stack: StructureDescription
    iterations: int
    converged: bool
    total_error: float
    history: list[float] = field(default_factory=list)


class ThicknessOptimizer:
    """Fits layer thicknesses to a target reflection spectrum.

    Every iteration evaluates the current structure at the target
    wavelengths, then perturbs each layer by adding ``step_nm`` to its
    thickness and re-evaluating. The resulting differences give the gradient of
    the total squared error, and every thickness takes a step of
    ``-learning_rate * gradient`` clamped to ``min_thickness_nm``.

    Args:
        engine: Spectrum engine used for all evaluations.
        settings: Optimizer constants. Defaults to ``OptimizerSettings()``.
    """

    def __init__(self, engine: SpectrumEngine, settings: OptimizerSettings | None = None):
        self.engine = engine
        self.settings = settings or OptimizerSettings()

    @staticmethod
    def _check_targets(
        target_wavelengths: Sequence[float],
        target_reflection: Sequence[float],
        max_iterations: int,
    ) -> tuple[list[float], list[float]]:
        if len(target_wavelengths) != len(target_reflection):
            raise InvalidArgumentError(
                f"Length of target_reflection ({len(target_reflection)}) must match "
                f"length of target_wavelengths ({len(target_wavelengths)})"
            )
        if len(target_wavelengths) == 0:
            raise InvalidArgumentError("At least one target wavelength is required")
        if isinstance(max_iterations, bool) or int(max_iterations) != max_iterations:
            raise InvalidArgumentError(f"max_iterations must be an integer, got {max_iterations}")
        if max_iterations < 0:
            raise InvalidArgumentError(f"max_iterations must be >= 0, got {max_iterations}")
        values = [float(v) for v in target_reflection]
        if not all(math.isfinite(v) for v in values):
            raise InvalidArgumentError("target_reflection values must be finite")
        return [float(w) for w in target_wavelengths], values

    def _perturb_sequential(
        self,
        stack: StructureDescription,
        wavelengths: list[float],
        cancel_token: CancellationToken | None,
    ) -> list[list[float]]:
        """Perturbed reflections per layer, mutating and restoring ``stack``."""
        perturbed_spectra = []
        for j in range(len(stack.layers)):
            variable = LayerThicknessVariable(stack, j, self.settings.min_thickness_nm)
            original = variable.get_value()
            variable.set_exact(original + self.settings.step_nm)
            try:
                perturbed_spectra.append(
                    SpectrumOperand.reflectance(self.engine, stack, wavelengths, cancel_token)
                )
            finally:
                variable.set_exact(original)
        return perturbed_spectra

    def _perturb_parallel(
        self,
        stack: StructureDescription,
        wavelengths: list[float],
        cancel_token: CancellationToken | None,
    ) -> list[list[float]]:
        """Perturbed reflections per layer, each perturbation on its own clone."""
        futures = []
        for j in range(len(stack.layers)):
            clone = stack.copy()
            variable = LayerThicknessVariable(clone, j, self.settings.min_thickness_nm)
            variable.set_exact(variable.get_value() + self.settings.step_nm)
            futures.append(
                self.engine.evaluate_async(clone, wavelengths, cancel_token=cancel_token)
            )
        try:
            return [[p.reflection for p in future.result()] for future in futures]
        except BaseException:
            # one failed evaluation aborts the iteration; drop the other layers' work
            for future in futures:
                future.cancel()
            raise

    def _gradient(
        self,
        stack: StructureDescription,
        wavelengths: list[float],
        spectrum: list,
        errors: list[float],
        cancel_token: CancellationToken | None,
    ) -> list[float]:
        if self.settings.parallel_perturbations:
            perturbed_spectra = self._perturb_parallel(stack, wavelengths, cancel_token)
        else:
            perturbed_spectra = self._perturb_sequential(stack, wavelengths, cancel_token)

        gradient = [0.0] * len(stack.layers)
        for j, perturbed in enumerate(perturbed_spectra):
            for i, point in enumerate(spectrum):
                gradient[j] += 2 * errors[i] * (perturbed[i] - point.reflection)
        return gradient

    def run(
        self,
        initial: StructureDescription,
        target_wavelengths: Sequence[float],
        target_reflection: Sequence[float],
        max_iterations: int = 100,
        cancel_token: CancellationToken | None = None,
        callback: Callable[[OptimizationState], None] | None = None,
    ) -> OptimizationResult:
        """Run the optimization and return the final stack with diagnostics.

        Args:
            initial: Starting structure. Never mutated.
            target_wavelengths: Wavelengths (nm) of the target points.
            target_reflection: Target reflection at each wavelength.
            max_iterations: Maximum number of iterations; 0 returns an
                unchanged copy of ``initial``. Defaults to 100.
            cancel_token: Checked between iterations.
            callback: Called with the state at the end of every iteration.

        Returns:
            OptimizationResult: final stack, iteration count, convergence flag
            and total squared error history.

        Raises:
            InvalidArgumentError: If the targets are inconsistent.
            EvaluationError: If any spectrum evaluation fails.
            CancelledError: If ``cancel_token`` is cancelled.
        """
        wavelengths, targets = self._check_targets(
            target_wavelengths, target_reflection, max_iterations
        )
        settings = self.settings
        state = OptimizationState(current_stack=initial.copy())
        history: list[float] = []
        converged = False

        if max_iterations and not state.current_stack.layers:
            warnings.warn(
                "Structure has no layers; there are no thicknesses to optimize.",
                stacklevel=2,
            )

        while state.iteration < max_iterations:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            stack = state.current_stack

            spectrum = self.engine.evaluate(stack, wavelengths, cancel_token=cancel_token)
            errors = SpectrumOperand.residuals(spectrum, targets)
            total_error = float(sum(e * e for e in errors))

            gradient = self._gradient(stack, wavelengths, spectrum, errors, cancel_token)
            for j, g in enumerate(gradient):
                variable = LayerThicknessVariable(stack, j, settings.min_thickness_nm)
                variable.update_value(variable.get_value() - settings.learning_rate * g)

            state.iteration += 1
            state.last_total_error = total_error
            history.append(total_error)
            logger.debug(
                "Iteration %d: total error %.6g, thicknesses %s",
                state.iteration,
                total_error,
                stack.thicknesses,
            )
            if callback is not None:
                callback(state)

            if math.sqrt(total_error) < settings.tolerance:
                converged = True
                logger.info(
                    "Converged after %d iterations (total error %.3g)",
                    state.iteration,
                    total_error,
                )
                break
            if not stack.layers:
                break
        else:
            if max_iterations:
                logger.info(
                    "Reached %d iterations without converging (total error %.3g)",
                    max_iterations,
                    state.last_total_error,
                )

        return OptimizationResult(
            stack=state.current_stack,
            initial_stack=initial.copy(),
            iterations=state.iteration,
            converged=converged,
            total_error=state.last_total_error,
            history=history,
        )

    def optimize(
        self,
        initial: StructureDescription,
        target_wavelengths: Sequence[float],
        target_reflection: Sequence[float],
        max_iterations: int = 100,
        cancel_token: CancellationToken | None = None,
    ) -> StructureDescription:
        """Optimize layer thicknesses and return the resulting structure.

        Reaching ``max_iterations`` without converging is not an error: the
        best-effort structure is returned. Use ``run`` to also get the
        convergence flag and error history.
        """
        return self.run(
            initial, target_wavelengths, target_reflection, max_iterations, cancel_token
        ).stack

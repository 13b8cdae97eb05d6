# flake8: noqa

from .optimizer import OptimizationResult, OptimizationState, ThicknessOptimizer
from .report import OptimizationReport
from .variable import LayerThicknessVariable
from .operand import SpectrumOperand

__all__ = [
    "ThicknessOptimizer",
    "OptimizationState",
    "OptimizationResult",
    "OptimizationReport",
    "LayerThicknessVariable",
    "SpectrumOperand",
]

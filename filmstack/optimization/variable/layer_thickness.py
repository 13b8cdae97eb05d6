"""Layer Thickness Variable Module

This module contains the LayerThicknessVariable class, which represents the
thickness of one layer of a structure as an optimization variable. The
optimizer uses it to perturb, restore and update thicknesses.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from filmstack.errors import InvalidArgumentError

if TYPE_CHECKING:
    from filmstack.structure import StructureDescription


class LayerThicknessVariable:
    """Represents a variable for a layer thickness.

    Args:
        stack (StructureDescription): The structure containing the layer. The
            variable mutates this object in place.
        layer_index (int): The index of the layer in the stack (0-based).
        min_nm (float): Lower clamp applied by ``update_value``, nm.
            Defaults to 1.0.

    Attributes:
        stack (StructureDescription): The structure.
        layer_index (int): The index of the target layer.
    """

    def __init__(
        self, stack: StructureDescription, layer_index: int, min_nm: float = 1.0
    ):
        if layer_index < 0 or layer_index >= len(stack.layers):
            raise InvalidArgumentError(
                f"layer_index {layer_index} is out of range for "
                + f"stack with {len(stack.layers)} layers"
            )
        if min_nm <= 0:
            raise InvalidArgumentError(f"min_nm must be positive, got {min_nm}")
        self.stack = stack
        self.layer_index = layer_index
        self.min_nm = min_nm

    def get_value(self) -> float:
        """Returns the current thickness of the layer in nanometers."""
        return self.stack.layers[self.layer_index].thickness_nm

    def update_value(self, new_value: float) -> float:
        """Sets the thickness, clamped to ``min_nm``.

        Args:
            new_value (float): The new thickness in nm.

        Returns:
            float: The thickness actually applied.
        """
        new_value = max(self.min_nm, float(new_value))
        self.stack.layers[self.layer_index].update_thickness(new_value)
        return new_value

    def set_exact(self, value: float) -> None:
        """Sets the thickness without clamping, e.g. to undo a perturbation."""
        self.stack.layers[self.layer_index].update_thickness(value)

    def __repr__(self) -> str:
        return (
            f"LayerThicknessVariable(layer_index={self.layer_index}"
            + f", thickness={self.get_value():.1f} nm)"
        )

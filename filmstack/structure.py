"""Coating structure description and its repository.

A structure is an ordered list of named-material layers, from the incident
side to the substrate, on a named substrate. Materials are referenced by
name; their optical constants are resolved at evaluation time.
"""

from __future__ import annotations

import copy
import logging
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .errors import InvalidArgumentError

if TYPE_CHECKING:
    from .database import OpticalDatabase

logger = logging.getLogger(__name__)


def _check_thickness(thickness_nm: float) -> float:
    thickness_nm = float(thickness_nm)
    if not math.isfinite(thickness_nm) or thickness_nm <= 0:
        raise InvalidArgumentError(
            f"Layer thickness must be positive, got {thickness_nm} nm"
        )
    return thickness_nm


@dataclass
class Layer:
    """Represents a thin-film layer.

    Parameters
    ----------
    material : str
        Name of the coating material in the optical database.
    thickness_nm : float
        Physical thickness in nanometers, strictly positive.

    Examples
    --------
    >>> layer = Layer("SiO2", 100.0)
    >>> layer.update_thickness(120.0)
    >>> layer.thickness_nm
    120.0
    """

    material: str
    thickness_nm: float

    def __post_init__(self):
        self.thickness_nm = _check_thickness(self.thickness_nm)

    def update_thickness(self, thickness_nm: float) -> None:
        self.thickness_nm = _check_thickness(thickness_nm)


@dataclass
class StructureDescription:
    """Multilayer coating on a substrate, exposed to air.

    Layers are ordered from the incident side to the substrate side.

    Parameters
    ----------
    substrate : str
        Name of the substrate in the optical database.
    layers : list[Layer], optional
        Ordered layers between incident medium and substrate, default empty.
    name : str | None, optional
        Name of the structure in the database, if it came from there.
    angle_deg : float, optional
        Angle of incidence in the ambient medium, degrees. Default 0.
    consider_backside : bool, optional
        Include the incoherent reflection from the rear face of the
        substrate. Default True.

    Examples
    --------
    >>> ar = StructureDescription("BK7").add_layer("MgF2", 99.6)
    >>> ar.thicknesses
    [99.6]
    """

    substrate: str
    layers: list[Layer] = field(default_factory=list)
    name: str | None = None
    angle_deg: float = 0.0
    consider_backside: bool = True

    def __post_init__(self):
        if not 0.0 <= self.angle_deg < 90.0:
            raise InvalidArgumentError(
                f"angle_deg must be in [0, 90), got {self.angle_deg}"
            )

    # ----- structure helpers -----
    def add_layer(self, material: str, thickness_nm: float) -> StructureDescription:
        """Append a layer on the substrate side of the stack.

        Returns:
            self for chaining.
        """
        self.layers.append(Layer(material, thickness_nm))
        return self

    def copy(self) -> StructureDescription:
        """Independent clone; mutating it never affects this structure."""
        return copy.deepcopy(self)

    @property
    def thicknesses(self) -> list[float]:
        return [layer.thickness_nm for layer in self.layers]

    @property
    def materials(self) -> list[str]:
        return [layer.material for layer in self.layers]

    def __len__(self):
        return len(self.layers)

    def __repr__(self):
        parts = [f"{layer.material}({layer.thickness_nm:.1f} nm)" for layer in self.layers]
        label = f"{self.name!r}, " if self.name else ""
        return (
            f"StructureDescription({label}{len(self.layers)} layers: "
            + " -> ".join(parts + [self.substrate])
            + ")"
        )


class StructureRepository:
    """Loads named structures from the persistent store.

    Args:
        database: Store implementing ``fetch_structure(name)`` and
            ``list_structure_names()``.
    """

    def __init__(self, database: OpticalDatabase):
        self.database = database

    def load(self, structure_name: str) -> StructureDescription:
        """Resolve a structure name into a fresh ``StructureDescription``.

        Raises:
            NotFoundError: If the structure does not exist.
            StorageError: On database failure.
        """
        substrate, layers = self.database.fetch_structure(structure_name)
        structure = StructureDescription(substrate=substrate, name=structure_name)
        for material, thickness in layers:
            structure.add_layer(material, thickness)
        logger.debug("Loaded structure %r (%d layers)", structure_name, len(structure))
        return structure

    def list_names(self) -> list[str]:
        return self.database.list_structure_names()

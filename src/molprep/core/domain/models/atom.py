#!/usr/bin/env python3
# src/molprep/core/domain/models/atom.py

"""
Domain model representing an atom in a macromolecular structure.
"""

from dataclasses import dataclass, field

import numpy as np

from ...utils.names import is_hydrogen


@dataclass(eq=False)
class Atom:
    """Represents one ATOM/HETATM record."""

    name: str
    coordinates: np.ndarray
    element: str = ""
    alt_loc: str = " "
    occupancy: float = 1.0
    temp_factor: float = 0.0
    serial: str = ""
    charge: str = ""
    index: int = -1
    residue_index: int = -1
    is_hydrogen: bool = field(init=False)

    def __post_init__(self):
        self.coordinates = np.asarray(self.coordinates, dtype=np.float64)
        self.alt_loc = self.alt_loc or " "
        self.is_hydrogen = is_hydrogen(self.element, self.name)

    def in_alt_loc(self, alt_loc: str) -> bool:
        """True if the atom is unconditional or belongs to conformer ``alt_loc``."""
        return self.alt_loc == " " or self.alt_loc == alt_loc

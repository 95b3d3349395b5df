"""Closed-form hydrogen positions for each bonding type."""

from typing import Callable, Dict, List, Sequence

import numpy as np

from ...exceptions import UnknownBondingTypeError
from ...utils import vector
from ..models.topology import BondingType

SIN_TETRA = 0.9428090415820634  # sin(109.47)
COS_TETRA = -0.3333333333333333  # cos(109.47)
SIN_TETRA_HALF = 0.8164965809277260  # sin(109.47 / 2)
COS_TETRA_HALF = 0.5773502691896257  # cos(109.47 / 2)
SIN_TETRA_05 = 0.4714045207910317  # sin(109.47) * 0.5
SIN_120 = 0.8660254037844387
COS_120 = -0.5

# rigid 3-point water: theta1 = 50, theta2 = 50 + 104.52, phi = 70 degrees
SIN_THETA1 = 0.76604444311897803520
SIN_THETA2 = 0.43019600888661864331
COS_PHI = 0.34202014332566873305
SIN_PHI = 0.93969262078590838405
COS_THETA1 = 0.64278760968653932632
COS_THETA2 = 0.90273550608028281612

SHORT_VECTOR = 0.2

Placement = Callable[[np.ndarray, Sequence[np.ndarray], float], List[np.ndarray]]


def local_frame(heavy: np.ndarray, c0: np.ndarray, c1: np.ndarray):
    """
    Orthonormal frame at ``heavy``.

    v1 points from the first control atom to the heavy atom, v2 is normal
    to the plane of heavy, c0 and c1, and v3 completes the frame in that
    plane.
    """
    v1 = vector.normalize(heavy - c0)
    v2 = vector.normalize(np.cross(v1, c0 - c1))
    v3 = np.cross(v2, v1)
    return v1, v2, v3


def place_planar(heavy, controls, xhdist):
    """One hydrogen bisecting the external angle, e.g. backbone amide H."""
    c0, c1 = controls
    direction = vector.normalize((heavy - c0) + (heavy - c1))
    return [heavy + xhdist * direction]


def place_hydroxyl(heavy, controls, xhdist):
    """One hydrogen on O or S, staggered against the second control atom."""
    v1, _, v3 = local_frame(heavy, *controls)
    return [heavy + xhdist * SIN_TETRA * v3 - xhdist * COS_TETRA * v1]


def place_planar_pair(heavy, controls, xhdist):
    """Two hydrogens in the plane of the controls, e.g. amide NH2."""
    v1, _, v3 = local_frame(heavy, *controls)
    return [
        heavy - xhdist * SIN_120 * v3 - xhdist * COS_120 * v1,
        heavy + xhdist * SIN_120 * v3 - xhdist * COS_120 * v1,
    ]


def place_methyl(heavy, controls, xhdist):
    """Three tetrahedral hydrogens, e.g. CH3 or NH3+."""
    v1, v2, v3 = local_frame(heavy, *controls)
    return [
        heavy + xhdist * SIN_TETRA * v3 - xhdist * COS_TETRA * v1,
        heavy
        - xhdist * SIN_TETRA_05 * v3
        + xhdist * SIN_TETRA_HALF * v2
        - xhdist * COS_TETRA * v1,
        heavy
        - xhdist * SIN_TETRA_05 * v3
        - xhdist * SIN_TETRA_HALF * v2
        - xhdist * COS_TETRA * v1,
    ]


def place_tetrahedral(heavy, controls, xhdist):
    """One hydrogen on a carbon with three heavy neighbours, e.g. CA-HA."""
    c0, c1, c2 = controls
    rcent = heavy - (c0 + c1 + c2) / 3.0

    if vector.length(rcent) < SHORT_VECTOR:
        # neighbours nearly coplanar with the heavy atom: use the plane normal
        normal = vector.normalize(np.cross(c1 - c0, c2 - c0))
        if np.dot(normal, rcent) < 0.0:
            normal = -normal
        direction = normal
    else:
        direction = vector.normalize(rcent)

    return [heavy + xhdist * direction]


def place_methylene(heavy, controls, xhdist):
    """Two tetrahedral hydrogens, e.g. CH2."""
    c0, c1 = controls
    bisector = vector.normalize(heavy - (c0 + c1) / 2.0)
    perp = vector.normalize(np.cross(heavy - c0, heavy - c1))
    return [
        heavy + xhdist * (COS_TETRA_HALF * bisector + SIN_TETRA_HALF * perp),
        heavy + xhdist * (COS_TETRA_HALF * bisector - SIN_TETRA_HALF * perp),
    ]


def place_water(heavy, controls, xhdist):
    """Two water hydrogens at fixed spherical offsets, independent of neighbours."""
    return [
        heavy
        + xhdist * np.array([SIN_THETA1 * COS_PHI, SIN_THETA1 * SIN_PHI, COS_THETA1]),
        heavy
        + xhdist * np.array([SIN_THETA2 * COS_PHI, SIN_THETA2 * SIN_PHI, -COS_THETA2]),
    ]


PLACEMENTS: Dict[BondingType, Placement] = {
    BondingType.PLANAR: place_planar,
    BondingType.HYDROXYL: place_hydroxyl,
    BondingType.PLANAR_PAIR: place_planar_pair,
    BondingType.METHYL: place_methyl,
    BondingType.TETRAHEDRAL: place_tetrahedral,
    BondingType.METHYLENE: place_methylene,
    BondingType.WATER: place_water,
}


def place_hydrogens(
    bonding_type: int,
    heavy: Sequence[float],
    controls: Sequence[Sequence[float]],
    xhdist: float,
) -> List[np.ndarray]:
    """
    Compute hydrogen positions for one heavy atom.

    Args:
        bonding_type: Bonding type code (1-6 or 10)
        heavy: Position of the heavy atom
        controls: Positions of the control atoms, in rule order
        xhdist: Heavy atom to hydrogen distance

    Returns:
        Every position the construction produces; callers take as many as
        the rule asks for

    Raises:
        UnknownBondingTypeError: For codes outside the supported set
        GeometryError: If the control atoms give a degenerate frame
    """
    try:
        placement = PLACEMENTS[BondingType(int(bonding_type))]
    except (ValueError, KeyError):
        raise UnknownBondingTypeError(bonding_type) from None

    heavy = vector.as_vector(heavy)
    points = [vector.as_vector(c) for c in controls]
    return placement(heavy, points, float(xhdist))

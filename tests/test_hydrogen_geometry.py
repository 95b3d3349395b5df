"""Tests for the hydrogen placement geometry."""

import math

import numpy as np
import pytest

from molprep.core.domain.implementations.hydrogen_geometry import (
    PLACEMENTS,
    place_hydrogens,
)
from molprep.core.domain.models.topology import BondingType
from molprep.core.exceptions import GeometryError, UnknownBondingTypeError
from molprep.core.utils import vector

HEAVY = np.array([0.257, 0.418, 0.692])
CONTROLS = [
    np.array([-0.966, 0.493, 1.500]),
    np.array([-0.094, 0.017, -0.716]),
    np.array([1.204, -0.620, 1.296]),
]


def controls_for(bonding_type: BondingType):
    return CONTROLS[: bonding_type.n_controls]


class TestVector:
    def test_normalize(self):
        assert np.allclose(vector.normalize([3.0, 0.0, 4.0]), [0.6, 0.0, 0.8])

    def test_normalize_zero_vector(self):
        with pytest.raises(GeometryError):
            vector.normalize([0.0, 0.0, 0.0])

    def test_dist2(self):
        assert vector.dist2([1.0, 2.0, 3.0], [1.0, 0.0, 0.0]) == pytest.approx(13.0)

    def test_rejects_wrong_shape(self):
        with pytest.raises(ValueError):
            vector.as_vector([1.0, 2.0])


class TestPlacement:
    """Every construction puts its hydrogens at the requested distance."""

    @pytest.mark.parametrize("bonding_type", list(BondingType))
    def test_bond_length(self, bonding_type):
        positions = place_hydrogens(
            bonding_type, HEAVY, controls_for(bonding_type), 1.05
        )
        assert len(positions) == bonding_type.max_hydrogens
        for position in positions:
            assert vector.length(position - HEAVY) == pytest.approx(1.05)

    def test_every_type_has_a_placement(self):
        assert set(PLACEMENTS) == set(BondingType)

    def test_planar_bisects_external_angle(self):
        heavy = np.array([0.0, 0.0, 0.0])
        ca = np.array([1.46, 0.0, 0.0])
        c_prev = np.array([0.0, 1.0, 1.0])
        (h,) = place_hydrogens(1, heavy, [c_prev, ca], 1.0)

        expected = np.array([-1.46, -1.0, -1.0]) / math.sqrt(1.46 ** 2 + 2.0)
        assert np.allclose(h, expected)

    def test_planar_pair_is_symmetric(self):
        h1, h2 = place_hydrogens(3, HEAVY, CONTROLS[:2], 1.01)
        axis = vector.normalize(HEAVY - CONTROLS[0])
        d1, d2 = h1 - HEAVY, h2 - HEAVY

        assert np.dot(d1, axis) == pytest.approx(np.dot(d2, axis))
        # the in-plane components cancel
        along = d1 + d2
        assert np.allclose(np.cross(along, axis), 0.0, atol=1e-9)
        # 120 degrees from the bond to the first control
        assert np.dot(d1, -axis) / 1.01 == pytest.approx(-0.5)

    def test_planar_pair_lies_in_control_plane(self):
        positions = place_hydrogens(3, HEAVY, CONTROLS[:2], 1.01)
        normal = np.cross(HEAVY - CONTROLS[0], CONTROLS[0] - CONTROLS[1])
        for h in positions:
            assert np.dot(h - HEAVY, normal) == pytest.approx(0.0, abs=1e-9)

    def test_methyl_is_tetrahedral(self):
        positions = place_hydrogens(4, HEAVY, CONTROLS[:2], 1.09)
        axis = vector.normalize(HEAVY - CONTROLS[0])
        for h in positions:
            cos_angle = np.dot(vector.normalize(h - HEAVY), -axis)
            assert cos_angle == pytest.approx(-1.0 / 3.0)

        distances = [
            vector.length(positions[i] - positions[j])
            for i, j in ((0, 1), (0, 2), (1, 2))
        ]
        assert distances == pytest.approx([distances[0]] * 3)

    def test_tetrahedral_points_away_from_neighbours(self):
        (h,) = place_hydrogens(5, HEAVY, CONTROLS, 1.09)
        centroid = sum(CONTROLS) / 3.0
        expected = HEAVY + 1.09 * vector.normalize(HEAVY - centroid)
        assert np.allclose(h, expected)

    def test_tetrahedral_with_coplanar_neighbours(self):
        heavy = np.array([0.0, 0.0, 0.0])
        controls = [
            np.array([1.5, 0.0, 0.0]),
            np.array([-0.75, 1.3, 0.0]),
            np.array([-0.75, -1.3, 0.0]),
        ]
        (h,) = place_hydrogens(5, heavy, controls, 1.09)
        assert abs(h[2]) == pytest.approx(1.09)
        assert np.allclose(h[:2], 0.0)

    def test_methylene_pair(self):
        h1, h2 = place_hydrogens(6, HEAVY, CONTROLS[:2], 1.09)
        c0, c1 = CONTROLS[:2]
        # mirror images through the plane of heavy, c0 and c1
        assert vector.length(h1 - c0) == pytest.approx(vector.length(h2 - c0))
        assert vector.length(h1 - c1) == pytest.approx(vector.length(h2 - c1))
        assert not np.allclose(h1, h2)

    def test_water_positions(self):
        heavy = np.array([1.0, 2.0, 3.0])
        h1, h2 = place_hydrogens(10, heavy, [], 0.9572)

        theta1, theta2, phi = (math.radians(a) for a in (50.0, 154.52, 70.0))
        expected1 = 0.9572 * np.array(
            [math.sin(theta1) * math.cos(phi), math.sin(theta1) * math.sin(phi), math.cos(theta1)]
        )
        expected2 = 0.9572 * np.array(
            [math.sin(theta2) * math.cos(phi), math.sin(theta2) * math.sin(phi), math.cos(theta2)]
        )
        assert np.allclose(h1 - heavy, expected1, atol=1e-6)
        assert np.allclose(h2 - heavy, expected2, atol=1e-6)

    def test_water_angle(self):
        h1, h2 = place_hydrogens(10, np.zeros(3), [], 0.9572)
        cos_angle = np.dot(h1, h2) / (0.9572 ** 2)
        assert math.degrees(math.acos(cos_angle)) == pytest.approx(104.52, abs=1e-4)


class TestPlacementErrors:
    @pytest.mark.parametrize("code", [0, 7, 11])
    def test_unknown_type(self, code):
        with pytest.raises(UnknownBondingTypeError) as excinfo:
            place_hydrogens(code, HEAVY, CONTROLS[:2], 1.0)
        assert excinfo.value.code == code

    def test_collinear_controls(self):
        heavy = np.array([0.0, 0.0, 0.0])
        controls = [np.array([1.0, 0.0, 0.0]), np.array([2.0, 0.0, 0.0])]
        with pytest.raises(GeometryError):
            place_hydrogens(4, heavy, controls, 1.0)

    def test_control_on_heavy_atom(self):
        with pytest.raises(GeometryError):
            place_hydrogens(2, HEAVY, [HEAVY, CONTROLS[1]], 0.96)

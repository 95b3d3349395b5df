"""Small 3-vector helpers used by the hydrogen geometry code."""

from typing import Sequence, Union

import numpy as np

from ..exceptions import GeometryError

VectorLike = Union[Sequence[float], np.ndarray]


def as_vector(v: VectorLike) -> np.ndarray:
    """Return ``v`` as a float64 numpy array of shape (3,)."""
    arr = np.asarray(v, dtype=np.float64)
    if arr.shape != (3,):
        raise ValueError(f"Expected a 3-vector, got shape {arr.shape}")
    return arr


def add(a: VectorLike, b: VectorLike) -> np.ndarray:
    return as_vector(a) + as_vector(b)


def sub(a: VectorLike, b: VectorLike) -> np.ndarray:
    return as_vector(a) - as_vector(b)


def scale(a: VectorLike, factor: float) -> np.ndarray:
    return as_vector(a) * factor


def cross(a: VectorLike, b: VectorLike) -> np.ndarray:
    return np.cross(as_vector(a), as_vector(b))


def length(a: VectorLike) -> float:
    return float(np.linalg.norm(as_vector(a)))


def dist2(a: VectorLike, b: VectorLike) -> float:
    """Squared Euclidean distance between two points."""
    d = as_vector(a) - as_vector(b)
    return float(np.dot(d, d))


def normalize(a: VectorLike) -> np.ndarray:
    """
    Scale a vector to unit length.

    Raises:
        GeometryError: If the vector has zero length
    """
    v = as_vector(a)
    norm = np.linalg.norm(v)
    if norm == 0.0 or not np.isfinite(norm):
        raise GeometryError("Cannot normalize a zero-length vector")
    return v / norm

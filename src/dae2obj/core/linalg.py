"""Matrix and vector algebra for homogeneous 3D transforms.

Matrices are row-major 2D numpy arrays and vectors are 1D numpy arrays.
Every operation checks the dimensions it depends on and raises a
``ColladaError`` with ``ErrorKind.DIMENSION_MISMATCH`` instead of letting
numpy broadcast silently.

Transforms follow the column-vector convention: ``multiply(A, B)`` applied
to a point ``p`` is ``A @ (B @ p)``, so ``B`` acts first.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np
from numpy.typing import ArrayLike, NDArray

from ..errors import ColladaError, ErrorKind

DEFAULT_TOLERANCE = 1e-6


def _as_matrix(m: ArrayLike, operation: str) -> NDArray[np.float64]:
    arr = np.asarray(m, dtype=np.float64)
    if arr.ndim != 2:
        raise ColladaError(
            ErrorKind.DIMENSION_MISMATCH,
            f"{operation}: expected a matrix, got an array of shape {arr.shape}",
        )
    return arr


def _as_square_matrix(m: ArrayLike, operation: str) -> NDArray[np.float64]:
    arr = _as_matrix(m, operation)
    rows, cols = arr.shape
    if rows != cols:
        raise ColladaError(
            ErrorKind.DIMENSION_MISMATCH,
            f"{operation}: expected a square matrix, got {rows}x{cols}",
        )
    return arr


def _as_vector(v: ArrayLike, operation: str, length: int | None = None) -> NDArray[np.float64]:
    arr = np.asarray(v, dtype=np.float64)
    if arr.ndim != 1 or (length is not None and arr.shape[0] != length):
        expected = f"a {length}-vector" if length is not None else "a vector"
        raise ColladaError(
            ErrorKind.DIMENSION_MISMATCH,
            f"{operation}: expected {expected}, got an array of shape {arr.shape}",
        )
    return arr


# ---------------------------------------------------------------------------
# Matrix operations
# ---------------------------------------------------------------------------


def multiply(a: ArrayLike, b: ArrayLike) -> NDArray[np.float64]:
    """Row-by-column product ``a @ b``.

    Raises:
        ColladaError: DIMENSION_MISMATCH if ``a`` has a different number of
            columns than ``b`` has rows.
    """
    a = _as_matrix(a, "multiply")
    b = _as_matrix(b, "multiply")
    if a.shape[1] != b.shape[0]:
        raise ColladaError(
            ErrorKind.DIMENSION_MISMATCH,
            f"multiply: can't multiply {a.shape[0]}x{a.shape[1]} "
            f"by {b.shape[0]}x{b.shape[1]}",
        )
    return a @ b


def multiply_chain(*matrices: ArrayLike) -> NDArray[np.float64]:
    """Left-to-right product of one or more matrices.

    A single matrix comes back as a copy.
    """
    if not matrices:
        raise ColladaError(
            ErrorKind.DIMENSION_MISMATCH, "multiply_chain: needs at least one matrix"
        )
    result = _as_matrix(matrices[0], "multiply_chain").copy()
    for m in matrices[1:]:
        result = multiply(result, m)
    return result


def transpose(m: ArrayLike) -> NDArray[np.float64]:
    """Swap rows and columns."""
    return _as_matrix(m, "transpose").T.copy()


def scalar_multiply(m: ArrayLike, s: float) -> NDArray[np.float64]:
    """Multiply every element by ``s``."""
    return _as_matrix(m, "scalar_multiply") * float(s)


def minor(m: ArrayLike, row: int, col: int) -> NDArray[np.float64]:
    """Square matrix with ``row`` and ``col`` removed."""
    m = _as_square_matrix(m, "minor")
    n = m.shape[0]
    if not (0 <= row < n and 0 <= col < n):
        raise ColladaError(
            ErrorKind.DIMENSION_MISMATCH,
            f"minor: ({row}, {col}) is outside a {n}x{n} matrix",
        )
    return np.delete(np.delete(m, row, axis=0), col, axis=1)


def determinant(m: ArrayLike) -> float:
    """Determinant by Laplace expansion along the first row.

    The expansion is exact for the small matrices used by scene transforms
    and keeps ``inverse`` free of any pivoting tolerance.
    """
    m = _as_square_matrix(m, "determinant")
    n = m.shape[0]
    if n == 0:
        # Empty product; only reached through the cofactors of a 1x1 matrix.
        return 1.0
    if n == 1:
        return float(m[0, 0])

    total = 0.0
    for col in range(n):
        entry = m[0, col]
        if entry == 0.0:
            continue
        sign = -1.0 if col % 2 else 1.0
        total += sign * entry * determinant(minor(m, 0, col))
    return float(total)


def cofactor_matrix(m: ArrayLike) -> NDArray[np.float64]:
    """Matrix of signed minors: ``(-1)^(i+j) * det(minor(m, i, j))``."""
    m = _as_square_matrix(m, "cofactor_matrix")
    n = m.shape[0]
    cofactors = np.empty((n, n), dtype=np.float64)
    for i in range(n):
        for j in range(n):
            sign = -1.0 if (i + j) % 2 else 1.0
            cofactors[i, j] = sign * determinant(minor(m, i, j))
    return cofactors


def adjugate(m: ArrayLike) -> NDArray[np.float64]:
    """Transpose of the cofactor matrix."""
    return transpose(cofactor_matrix(m))


def inverse(m: ArrayLike) -> NDArray[np.float64]:
    """Inverse computed as ``adjugate(m) / determinant(m)``.

    Only an exactly zero determinant is rejected. Very small uniform scales
    (e.g. 0.001 ** 3) have tiny determinants but are still invertible.

    Raises:
        ColladaError: NON_INVERTIBLE_MATRIX if the determinant is zero.
    """
    m = _as_square_matrix(m, "inverse")
    det = determinant(m)
    if det == 0.0:
        raise ColladaError(
            ErrorKind.NON_INVERTIBLE_MATRIX,
            f"matrix with zero determinant can't be inverted:\n{m}",
        )
    return scalar_multiply(adjugate(m), 1.0 / det)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def identity(n: int = 4) -> NDArray[np.float64]:
    """n x n identity matrix."""
    return np.eye(n, dtype=np.float64)


def translation(tx: float, ty: float, tz: float) -> NDArray[np.float64]:
    """4x4 translation matrix."""
    t = identity(4)
    t[:3, 3] = (tx, ty, tz)
    return t


def scale(sx: float, sy: float, sz: float) -> NDArray[np.float64]:
    """4x4 axis-aligned scale matrix."""
    return np.diag([sx, sy, sz, 1.0]).astype(np.float64)


def uniform_scale(s: float) -> NDArray[np.float64]:
    """4x4 scale matrix with the same factor on every axis."""
    return scale(s, s, s)


def promote_3x3_to_4x4(m: ArrayLike) -> NDArray[np.float64]:
    """Embed a 3x3 linear block in a homogeneous 4x4 matrix."""
    m = _as_matrix(m, "promote_3x3_to_4x4")
    if m.shape != (3, 3):
        raise ColladaError(
            ErrorKind.DIMENSION_MISMATCH,
            f"promote_3x3_to_4x4: expected a 3x3 matrix, got {m.shape[0]}x{m.shape[1]}",
        )
    result = identity(4)
    result[:3, :3] = m
    return result


def rotation(
    angle: float,
    axis: ArrayLike,
    tolerance: float = DEFAULT_TOLERANCE,
) -> NDArray[np.float64]:
    """3x3 rotation of ``angle`` radians about ``axis`` (Rodrigues formula).

    The axis doesn't need to be unit length; it is normalized first.

    Raises:
        ColladaError: ZERO_LENGTH_VECTOR if the axis is (nearly) zero.
    """
    k = vector_normalize(_as_vector(axis, "rotation", 3), tolerance)
    kx, ky, kz = k
    cross = np.array([
        [0.0, -kz, ky],
        [kz, 0.0, -kx],
        [-ky, kx, 0.0],
    ], dtype=np.float64)
    return identity(3) + np.sin(angle) * cross + (1.0 - np.cos(angle)) * (cross @ cross)


def x_rotation(angle: float) -> NDArray[np.float64]:
    """4x4 rotation about the X axis."""
    return promote_3x3_to_4x4(rotation(angle, (1.0, 0.0, 0.0)))


def y_rotation(angle: float) -> NDArray[np.float64]:
    """4x4 rotation about the Y axis."""
    return promote_3x3_to_4x4(rotation(angle, (0.0, 1.0, 0.0)))


def z_rotation(angle: float) -> NDArray[np.float64]:
    """4x4 rotation about the Z axis."""
    return promote_3x3_to_4x4(rotation(angle, (0.0, 0.0, 1.0)))


def matrix_from_rows(values: Sequence[float], rows: int, cols: int) -> NDArray[np.float64]:
    """Build a matrix from a flat row-major sequence."""
    arr = np.asarray(values, dtype=np.float64)
    if arr.ndim != 1 or arr.shape[0] != rows * cols:
        raise ColladaError(
            ErrorKind.DIMENSION_MISMATCH,
            f"expected {rows * cols} values for a {rows}x{cols} matrix, got {arr.size}",
        )
    return arr.reshape(rows, cols)


# ---------------------------------------------------------------------------
# Vectors
# ---------------------------------------------------------------------------


def vector_length(v: ArrayLike) -> float:
    """Euclidean length."""
    return float(np.linalg.norm(_as_vector(v, "vector_length")))


def vector_normalize(v: ArrayLike, tolerance: float = DEFAULT_TOLERANCE) -> NDArray[np.float64]:
    """Scale ``v`` to unit length.

    Raises:
        ColladaError: ZERO_LENGTH_VECTOR if the length is below ``tolerance``.
    """
    v = _as_vector(v, "vector_normalize")
    length = vector_length(v)
    if length < tolerance:
        raise ColladaError(
            ErrorKind.ZERO_LENGTH_VECTOR,
            f"can't normalize {v.tolist()}: length {length} is below {tolerance}",
        )
    return v / length


def vector_cross(a: ArrayLike, b: ArrayLike) -> NDArray[np.float64]:
    """Cross product of two 3-vectors."""
    a = _as_vector(a, "vector_cross", 3)
    b = _as_vector(b, "vector_cross", 3)
    return np.cross(a, b)

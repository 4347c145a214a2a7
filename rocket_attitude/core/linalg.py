"""Fixed-size matrix kernel for the six-state Kalman filter.

Every operation works on 6x6 matrices and 6-vectors only. A wrong shape
is a programming error and raises PreconditionViolation immediately;
nothing is broadcast or truncated.
"""

import numpy as np
from numpy.typing import NDArray

DIM = 6

MATRIX_SHAPE = (DIM, DIM)
VECTOR_SHAPE = (DIM,)


class PreconditionViolation(Exception):
    """Raised when a kernel operation receives an operand of the wrong shape."""
    pass


def _require(arr: NDArray[np.float64], shape: tuple, name: str) -> None:
    if not isinstance(arr, np.ndarray) or arr.shape != shape:
        got = getattr(arr, "shape", type(arr).__name__)
        raise PreconditionViolation(f"{name}: expected shape {shape}, got {got}")


def identity() -> NDArray[np.float64]:
    """6x6 identity matrix."""
    return np.eye(DIM, dtype=np.float64)


def diagonal(values) -> NDArray[np.float64]:
    """6x6 diagonal matrix from six values."""
    diag = np.asarray(values, dtype=np.float64)
    _require(diag, VECTOR_SHAPE, "diagonal")
    return np.diag(diag)


def mat_vec(matrix: NDArray[np.float64], vector: NDArray[np.float64]) -> NDArray[np.float64]:
    """Multiply a 6x6 matrix by a 6-vector."""
    _require(matrix, MATRIX_SHAPE, "mat_vec matrix")
    _require(vector, VECTOR_SHAPE, "mat_vec vector")
    return matrix @ vector


def mat_mul(a: NDArray[np.float64], b: NDArray[np.float64]) -> NDArray[np.float64]:
    """Multiply two 6x6 matrices."""
    _require(a, MATRIX_SHAPE, "mat_mul left")
    _require(b, MATRIX_SHAPE, "mat_mul right")
    return a @ b


def multiply(a: NDArray[np.float64], b: NDArray[np.float64]) -> NDArray[np.float64]:
    """Matrix-vector or matrix-matrix product, chosen by the right operand."""
    if isinstance(b, np.ndarray) and b.ndim == 1:
        return mat_vec(a, b)
    return mat_mul(a, b)


def transpose(matrix: NDArray[np.float64]) -> NDArray[np.float64]:
    """Transpose of a 6x6 matrix."""
    _require(matrix, MATRIX_SHAPE, "transpose")
    return matrix.T.copy()


def add(a: NDArray[np.float64], b: NDArray[np.float64]) -> NDArray[np.float64]:
    """Element-wise sum of two operands of identical kernel shape."""
    shape = MATRIX_SHAPE if getattr(a, "ndim", 0) == 2 else VECTOR_SHAPE
    _require(a, shape, "add left")
    _require(b, shape, "add right")
    return a + b


def subtract(a: NDArray[np.float64], b: NDArray[np.float64]) -> NDArray[np.float64]:
    """Element-wise difference of two operands of identical kernel shape."""
    shape = MATRIX_SHAPE if getattr(a, "ndim", 0) == 2 else VECTOR_SHAPE
    _require(a, shape, "subtract left")
    _require(b, shape, "subtract right")
    return a - b


def diagonal_inverse(matrix: NDArray[np.float64]) -> NDArray[np.float64]:
    """Invert using the diagonal only: result[i][i] = 1 / matrix[i][i].

    Exact for diagonal input. Off-diagonal terms are ignored, so the result
    is an approximation once the input carries correlations.
    """
    _require(matrix, MATRIX_SHAPE, "diagonal_inverse")
    diag = np.diag(matrix)
    if np.any(diag == 0.0):
        raise PreconditionViolation("diagonal_inverse: zero on the diagonal")
    return np.diag(1.0 / diag)


def full_inverse(matrix: NDArray[np.float64]) -> NDArray[np.float64]:
    """General inverse of a 6x6 matrix."""
    _require(matrix, MATRIX_SHAPE, "full_inverse")
    try:
        return np.linalg.inv(matrix)
    except np.linalg.LinAlgError as e:
        raise PreconditionViolation(f"full_inverse: singular matrix ({e})") from e

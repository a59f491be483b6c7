"""Fixed-shape float32 vectors and matrices plus the algebra kernels.

Every kernel writes into a caller supplied ``out`` buffer and validates the
operand shapes up front, raising :class:`~sigmanet.core.errors.ShapeMismatch`
instead of truncating or broadcasting.  Element-wise kernels accept an ``out``
that aliases one of their inputs; ``multiply``, ``multiply_accumulate``,
``transpose`` and ``outer_product`` do not.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Tuple

import numpy as np

from .errors import AllocationFailure, ShapeMismatch
from .types import Array

DTYPE = np.float32


def _allocate(shape: Tuple[int, ...]) -> Array:
    if any(dim < 0 for dim in shape):
        raise ValueError(f"Buffer dimensions must be non-negative, got {shape}")
    try:
        return np.zeros(shape, dtype=DTYPE)
    except MemoryError as exc:
        raise AllocationFailure(f"Unable to allocate float32 buffer of shape {shape}") from exc


def _float_ops() -> np.errstate:
    # Overflow and NaN propagate silently through the engine.
    return np.errstate(over="ignore", under="ignore", invalid="ignore", divide="ignore")


@dataclass(eq=False)
class Vector:
    """Mutable float32 vector whose length is fixed at creation."""

    data: Array

    def __post_init__(self) -> None:
        if not isinstance(self.data, np.ndarray) or self.data.ndim != 1:
            raise TypeError("Vector data must be a one-dimensional ndarray")
        if self.data.dtype != DTYPE:
            raise TypeError(f"Vector data must be {np.dtype(DTYPE)}, got {self.data.dtype}")

    @classmethod
    def zeros(cls, length: int) -> "Vector":
        return cls(_allocate((int(length),)))

    @classmethod
    def from_array(cls, values: Iterable[float] | Array) -> "Vector":
        array = np.asarray(values, dtype=DTYPE)
        if array.ndim != 1:
            raise ValueError(f"Expected a one-dimensional array, got shape {array.shape}")
        out = cls.zeros(array.shape[0])
        out.data[...] = array
        return out

    def __len__(self) -> int:
        return int(self.data.shape[0])

    def __getitem__(self, index: int) -> float:
        return float(self.data[index])

    def __setitem__(self, index: int, value: float) -> None:
        self.data[index] = value

    def copy(self) -> "Vector":
        return Vector(self.data.copy())

    def zero(self) -> None:
        self.data.fill(0.0)

    def tolist(self) -> list[float]:
        return [float(x) for x in self.data]


@dataclass(eq=False)
class Matrix:
    """Row-major float32 matrix; element ``(r, c)`` sits at ``c + r * cols``."""

    data: Array

    def __post_init__(self) -> None:
        if not isinstance(self.data, np.ndarray) or self.data.ndim != 2:
            raise TypeError("Matrix data must be a two-dimensional ndarray")
        if self.data.dtype != DTYPE:
            raise TypeError(f"Matrix data must be {np.dtype(DTYPE)}, got {self.data.dtype}")
        if not self.data.flags.c_contiguous:
            raise ValueError("Matrix data must be C-contiguous (row-major)")

    @classmethod
    def zeros(cls, rows: int, cols: int) -> "Matrix":
        return cls(_allocate((int(rows), int(cols))))

    @classmethod
    def from_array(cls, values: Iterable[Iterable[float]] | Array) -> "Matrix":
        array = np.asarray(values, dtype=DTYPE)
        if array.ndim != 2:
            raise ValueError(f"Expected a two-dimensional array, got shape {array.shape}")
        out = cls.zeros(*array.shape)
        out.data[...] = array
        return out

    @classmethod
    def identity(cls, size: int) -> "Matrix":
        out = cls.zeros(size, size)
        np.fill_diagonal(out.data, 1.0)
        return out

    @property
    def rows(self) -> int:
        return int(self.data.shape[0])

    @property
    def cols(self) -> int:
        return int(self.data.shape[1])

    @property
    def shape(self) -> Tuple[int, int]:
        return self.rows, self.cols

    @property
    def flat(self) -> Array:
        """Writable view of the row-major backing array."""

        return self.data.reshape(-1)

    def row(self, index: int) -> Vector:
        """Return row ``index`` as a vector view sharing this matrix's memory."""

        if not -self.rows <= index < self.rows:
            raise IndexError(f"Row {index} out of range for {self.rows} rows")
        return Vector(self.data[index])

    def __getitem__(self, key: Tuple[int, int]) -> float:
        row, col = key
        return float(self.data[row, col])

    def __setitem__(self, key: Tuple[int, int], value: float) -> None:
        row, col = key
        self.data[row, col] = value

    def copy(self) -> "Matrix":
        return Matrix(self.data.copy())

    def zero(self) -> None:
        self.data.fill(0.0)


def as_matrix(values: Matrix | Iterable[Iterable[float]] | Array) -> Matrix:
    """Return ``values`` unchanged when already a :class:`Matrix`, else a float32 copy."""

    if isinstance(values, Matrix):
        return values
    return Matrix.from_array(values)


# ----------------------------------------------------------------------
# Shape guards


def _require_length(op: str, vec: Vector, length: int) -> None:
    if len(vec) != length:
        raise ShapeMismatch(op, (length,), (len(vec),))


def _require_shape(op: str, mat: Matrix, shape: Tuple[int, int]) -> None:
    if mat.shape != shape:
        raise ShapeMismatch(op, shape, mat.shape)


def _require_distinct(op: str, out: Vector | Matrix, *operands: Vector | Matrix) -> None:
    for operand in operands:
        if np.shares_memory(out.data, operand.data):
            raise ValueError(f"{op}: output buffer must not alias an input")


# ----------------------------------------------------------------------
# Matrix-vector kernels


def multiply(out: Vector, mat: Matrix, vec: Vector) -> Vector:
    """Assign ``out = mat @ vec``."""

    _require_length("multiply", vec, mat.cols)
    _require_length("multiply", out, mat.rows)
    _require_distinct("multiply", out, mat, vec)
    with _float_ops():
        np.matmul(mat.data, vec.data, out=out.data)
    return out


def multiply_accumulate(out: Vector, mat: Matrix, vec: Vector) -> Vector:
    """Accumulate ``out += mat @ vec``."""

    _require_length("multiply_accumulate", vec, mat.cols)
    _require_length("multiply_accumulate", out, mat.rows)
    _require_distinct("multiply_accumulate", out, mat, vec)
    with _float_ops():
        out.data += mat.data @ vec.data
    return out


def transpose(out: Matrix, mat: Matrix) -> Matrix:
    """Copy the transpose of ``mat`` into the pre-allocated ``out``."""

    _require_shape("transpose", out, (mat.cols, mat.rows))
    _require_distinct("transpose", out, mat)
    np.copyto(out.data, mat.data.T)
    return out


def outer_product(out: Matrix, v1: Vector, v2: Vector) -> Matrix:
    """Assign ``out[i, j] = v1[i] * v2[j]``."""

    _require_shape("outer_product", out, (len(v1), len(v2)))
    _require_distinct("outer_product", out, v1, v2)
    with _float_ops():
        np.outer(v1.data, v2.data, out=out.data)
    return out


# ----------------------------------------------------------------------
# Element-wise vector kernels


def _elementwise(op: str, ufunc: np.ufunc, out: Vector, v1: Vector, v2: Vector) -> Vector:
    _require_length(op, v1, len(out))
    _require_length(op, v2, len(out))
    with _float_ops():
        ufunc(v1.data, v2.data, out=out.data)
    return out


def add(out: Vector, v1: Vector, v2: Vector) -> Vector:
    return _elementwise("add", np.add, out, v1, v2)


def subtract(out: Vector, v1: Vector, v2: Vector) -> Vector:
    return _elementwise("subtract", np.subtract, out, v1, v2)


def hadamard(out: Vector, v1: Vector, v2: Vector) -> Vector:
    """Element-wise product of two equal-length vectors."""

    return _elementwise("hadamard", np.multiply, out, v1, v2)


def assign(out: Vector, vec: Vector) -> Vector:
    _require_length("assign", vec, len(out))
    np.copyto(out.data, vec.data)
    return out


def scalar_multiply(out: Vector, vec: Vector, scalar: float) -> Vector:
    _require_length("scalar_multiply", vec, len(out))
    with _float_ops():
        np.multiply(vec.data, DTYPE(scalar), out=out.data)
    return out


# ----------------------------------------------------------------------
# Element-wise matrix kernels


def scalar_multiply_matrix(out: Matrix, mat: Matrix, scalar: float) -> Matrix:
    _require_shape("scalar_multiply_matrix", mat, out.shape)
    with _float_ops():
        np.multiply(mat.flat, DTYPE(scalar), out=out.flat)
    return out


def add_matrix(out: Matrix, m1: Matrix, m2: Matrix) -> Matrix:
    _require_shape("add_matrix", m1, out.shape)
    _require_shape("add_matrix", m2, out.shape)
    with _float_ops():
        np.add(m1.flat, m2.flat, out=out.flat)
    return out


def subtract_matrix(out: Matrix, m1: Matrix, m2: Matrix) -> Matrix:
    _require_shape("subtract_matrix", m1, out.shape)
    _require_shape("subtract_matrix", m2, out.shape)
    with _float_ops():
        np.subtract(m1.flat, m2.flat, out=out.flat)
    return out


__all__ = [
    "DTYPE",
    "Matrix",
    "Vector",
    "add",
    "add_matrix",
    "as_matrix",
    "assign",
    "hadamard",
    "multiply",
    "multiply_accumulate",
    "outer_product",
    "scalar_multiply",
    "scalar_multiply_matrix",
    "subtract",
    "subtract_matrix",
    "transpose",
]

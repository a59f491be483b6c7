"""Sigmoid activation and its derivative."""

from __future__ import annotations

import numpy as np

from .errors import ShapeMismatch
from .types import Array
from .tensor import DTYPE, Matrix, Vector


def sigmoid(x: Array | float) -> Array:
    """Return ``1 / (1 + exp(-x))`` in float32."""

    x = np.asarray(x, dtype=DTYPE)
    with np.errstate(over="ignore", under="ignore"):
        return (DTYPE(1.0) / (DTYPE(1.0) + np.exp(-x))).astype(DTYPE, copy=False)


def dsigmoid(x: Array | float) -> Array:
    """Derivative of :func:`sigmoid`, recomputed from the pre-activation."""

    sig = sigmoid(x)
    return sig * (DTYPE(1.0) - sig)


def sigmoid_vector(out: Vector, vec: Vector) -> Vector:
    if len(vec) != len(out):
        raise ShapeMismatch("sigmoid_vector", (len(out),), (len(vec),))
    out.data[...] = sigmoid(vec.data)
    return out


def dsigmoid_vector(out: Vector, vec: Vector) -> Vector:
    if len(vec) != len(out):
        raise ShapeMismatch("dsigmoid_vector", (len(out),), (len(vec),))
    out.data[...] = dsigmoid(vec.data)
    return out


def sigmoid_matrix(out: Matrix, mat: Matrix) -> Matrix:
    if mat.shape != out.shape:
        raise ShapeMismatch("sigmoid_matrix", out.shape, mat.shape)
    out.flat[...] = sigmoid(mat.flat)
    return out


def dsigmoid_matrix(out: Matrix, mat: Matrix) -> Matrix:
    if mat.shape != out.shape:
        raise ShapeMismatch("dsigmoid_matrix", out.shape, mat.shape)
    out.flat[...] = dsigmoid(mat.flat)
    return out


__all__ = [
    "dsigmoid",
    "dsigmoid_matrix",
    "dsigmoid_vector",
    "sigmoid",
    "sigmoid_matrix",
    "sigmoid_vector",
]

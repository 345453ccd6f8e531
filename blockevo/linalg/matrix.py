"""Dense row-major matrices used by the fitter and the sampler.

Every operation returns a new :class:`Matrix`; the backing buffer of a matrix
is read-only once constructed, so matrices can be shared between worker
threads without copying.
"""

from __future__ import annotations

from typing import Iterable, Sequence

import numpy as np

from blockevo.exceptions import ShapeMismatchError

__all__ = ["Matrix", "self_attention", "SOFTMAX_SCALE"]

# Scale applied to the max before exponentiation in softmax.
SOFTMAX_SCALE = 1.0 - 1e-300


class Matrix:
    """Fixed-shape dense matrix over a numpy floating point dtype."""

    __slots__ = ("rows", "cols", "data")

    def __init__(
        self,
        rows: int,
        cols: int,
        data: Iterable[float] | np.ndarray | None = None,
        dtype: np.dtype | type | str = np.float64,
    ):
        dtype = np.dtype(dtype)
        if dtype.kind != "f":
            raise TypeError(f"Matrix dtype must be floating point, got {dtype}")
        if data is None:
            buffer = np.zeros(rows * cols, dtype=dtype)
        else:
            buffer = np.array(data, dtype=dtype).reshape(-1)
        if buffer.size != rows * cols:
            raise ShapeMismatchError(
                f"{rows}x{cols} matrix needs {rows * cols} values, got {buffer.size}"
            )
        buffer.flags.writeable = False
        self.rows = rows
        self.cols = cols
        self.data = buffer

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def from_array(cls, array: np.ndarray, dtype=None) -> Matrix:
        array = np.asarray(array)
        if array.ndim == 1:
            array = array.reshape(-1, 1)
        if array.ndim != 2:
            raise ShapeMismatchError(f"Expected a 2-D array, got {array.ndim}-D")
        return cls(array.shape[0], array.shape[1], array, dtype or array.dtype)

    @classmethod
    def column(cls, values: Sequence[float] | np.ndarray, dtype=np.float64) -> Matrix:
        values = np.asarray(values, dtype=dtype).reshape(-1)
        return cls(values.size, 1, values, dtype)

    @classmethod
    def zeros(cls, rows: int, cols: int, dtype=np.float64) -> Matrix:
        return cls(rows, cols, None, dtype)

    @classmethod
    def identity(cls, size: int, dtype=np.float64) -> Matrix:
        return cls(size, size, np.eye(size, dtype=dtype), dtype)

    @classmethod
    def gaussian(
        cls,
        rows: int,
        cols: int,
        rng: np.random.Generator,
        scale: float = 1.0,
        dtype=np.float64,
    ) -> Matrix:
        return cls(rows, cols, rng.standard_normal(rows * cols) * scale, dtype)

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @property
    def dtype(self) -> np.dtype:
        return self.data.dtype

    @property
    def shape(self) -> tuple[int, int]:
        return self.rows, self.cols

    def as_array(self) -> np.ndarray:
        """Read-only ``rows x cols`` view of the data."""
        return self.data.reshape(self.rows, self.cols)

    def __len__(self) -> int:
        return self.data.size

    def __repr__(self) -> str:
        return f"Matrix(rows={self.rows}, cols={self.cols}, dtype={self.dtype})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Matrix):
            return NotImplemented
        return self.shape == other.shape and np.array_equal(self.data, other.data)

    __hash__ = None  # type: ignore[assignment]

    def allclose(self, other: Matrix, atol: float = 1e-8, rtol: float = 1e-5) -> bool:
        return self.shape == other.shape and np.allclose(
            self.data, other.data, atol=atol, rtol=rtol
        )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def mul_t(self, other: Matrix) -> Matrix:
        """Multiply by the transpose of ``other``.

        Entry ``(i, j)`` of the result is the dot product of row ``i`` of
        ``self`` with row ``j`` of ``other``; the result is
        ``self.rows x other.rows``.
        """
        if self.cols != other.cols:
            raise ShapeMismatchError(f"{self.cols} != {other.cols}")
        product = self.as_array() @ other.as_array().astype(self.dtype, copy=False).T
        return Matrix(self.rows, other.rows, product, self.dtype)

    def _broadcast(self, other: Matrix) -> np.ndarray:
        size, other_size = self.data.size, other.data.size
        if other_size == 0 or size % other_size != 0:
            raise ShapeMismatchError(f"{size} % {other_size} != 0")
        return np.tile(other.data.astype(self.dtype, copy=False), size // other_size)

    def add(self, other: Matrix) -> Matrix:
        return Matrix(self.rows, self.cols, self.data + self._broadcast(other), self.dtype)

    def sub(self, other: Matrix) -> Matrix:
        return Matrix(self.rows, self.cols, self.data - self._broadcast(other), self.dtype)

    def hadamard(self, other: Matrix) -> Matrix:
        return Matrix(self.rows, self.cols, self.data * self._broadcast(other), self.dtype)

    def transpose(self) -> Matrix:
        return Matrix(self.cols, self.rows, self.as_array().T, self.dtype)

    @property
    def T(self) -> Matrix:
        return self.transpose()

    def sigmoid(self) -> Matrix:
        return Matrix(self.rows, self.cols, 1.0 / (1.0 + np.exp(-self.data)), self.dtype)

    def softmax(self, temperature: float = 1.0) -> Matrix:
        """Row-wise softmax at ``temperature``.

        The stabilising shift is the largest scaled value of the whole matrix
        (never below zero), shared by all rows.
        """
        scaled = self.as_array() / self.dtype.type(temperature)
        shift = max(0.0, float(scaled.max(initial=0.0))) * SOFTMAX_SCALE
        values = np.exp(scaled - shift)
        values /= values.sum(axis=1, keepdims=True)
        return Matrix(self.rows, self.cols, values, self.dtype)

    def entropy(self) -> Matrix:
        """Entropy of each row, as a ``rows x 1`` column."""
        rows = self.as_array()
        return Matrix(self.rows, 1, -(rows * np.log(rows)).sum(axis=1), self.dtype)

    def sum(self) -> Matrix:
        """Sum over rows, as a ``1 x cols`` matrix."""
        return Matrix(1, self.cols, self.as_array().sum(axis=0), self.dtype)


def self_attention(Q: Matrix, K: Matrix, V: Matrix) -> Matrix:
    """Dot-product attention of the rows of ``K`` over the rows of ``Q``.

    For every row ``k`` of ``K`` the weights ``softmax(k . q_j)`` over the rows
    of ``Q`` mix the columns of ``V``. The result has ``K.rows`` rows and
    ``V.cols`` columns.
    """
    if K.cols != Q.cols:
        raise ShapeMismatchError(f"{K.cols} != {Q.cols}")
    if V.rows != Q.rows:
        raise ShapeMismatchError(f"{V.rows} != {Q.rows}")
    scores = K.as_array() @ Q.as_array().T
    shift = np.maximum(scores.max(axis=1, keepdims=True, initial=0.0), 0.0) * SOFTMAX_SCALE
    weights = np.exp(scores - shift)
    weights /= weights.sum(axis=1, keepdims=True)
    return Matrix(K.rows, V.cols, weights @ V.as_array(), K.dtype)

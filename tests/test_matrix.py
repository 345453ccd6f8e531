"""Tests for the dense Matrix container."""

import numpy as np
import pytest

from blockevo.exceptions import ShapeMismatchError
from blockevo.linalg import Matrix, self_attention


def _matrix(rows, cols, dtype=np.float64, seed=0):
    rng = np.random.default_rng(seed)
    return Matrix(rows, cols, rng.standard_normal(rows * cols), dtype)


class TestConstruction:
    def test_data_length_must_match_shape(self):
        with pytest.raises(ShapeMismatchError):
            Matrix(2, 2, [1.0, 2.0, 3.0])

    def test_defaults_to_zeros(self):
        m = Matrix(2, 3)
        assert m.shape == (2, 3)
        assert np.all(m.data == 0)

    def test_rejects_integer_dtype(self):
        with pytest.raises(TypeError):
            Matrix(1, 1, [1], dtype=np.int64)

    def test_data_is_read_only(self):
        m = Matrix(2, 2, [1.0, 2.0, 3.0, 4.0])
        with pytest.raises(ValueError):
            m.data[0] = 10.0

    def test_construction_copies_input(self):
        source = np.array([1.0, 2.0, 3.0, 4.0])
        m = Matrix(2, 2, source)
        source[0] = 99.0
        assert m.data[0] == 1.0

    def test_identity_and_column(self):
        assert np.array_equal(Matrix.identity(3).as_array(), np.eye(3))
        column = Matrix.column([1.0, 2.0, 3.0])
        assert column.shape == (3, 1)


class TestTranspose:
    @pytest.mark.parametrize("rows,cols", [(1, 1), (1, 5), (4, 1), (3, 7)])
    @pytest.mark.parametrize("dtype", [np.float32, np.float64])
    def test_transpose_is_an_involution(self, rows, cols, dtype):
        m = _matrix(rows, cols, dtype)
        assert m.transpose().transpose() == m

    def test_transpose_reindexes(self):
        m = Matrix(2, 3, [1, 2, 3, 4, 5, 6])
        t = m.T
        assert t.shape == (3, 2)
        assert list(t.data) == [1, 4, 2, 5, 3, 6]


class TestMulT:
    @pytest.mark.parametrize("m_rows,n_rows,cols", [(1, 1, 1), (3, 5, 4), (6, 2, 3)])
    def test_shape_is_rows_by_rows(self, m_rows, n_rows, cols):
        m = _matrix(m_rows, cols, seed=1)
        n = _matrix(n_rows, cols, seed=2)
        assert m.mul_t(n).shape == (m_rows, n_rows)

    def test_entries_are_row_dot_products(self):
        m = _matrix(3, 4, seed=1)
        n = _matrix(2, 4, seed=2)
        expected = m.as_array() @ n.as_array().T
        np.testing.assert_allclose(m.mul_t(n).as_array(), expected)

    def test_matrix_times_column_vector(self):
        a = Matrix(2, 2, [1.0, 2.0, 3.0, 4.0])
        g = Matrix(1, 2, [1.0, 1.0])
        assert list(a.mul_t(g).data) == [3.0, 7.0]

    def test_mismatched_columns_raise(self):
        with pytest.raises(ShapeMismatchError):
            _matrix(2, 3).mul_t(_matrix(2, 4))


class TestElementwise:
    def test_add_broadcasts_shorter_operand(self):
        m = Matrix(2, 3, [1, 2, 3, 4, 5, 6])
        row = Matrix(1, 3, [10, 20, 30])
        assert list(m.add(row).data) == [11, 22, 33, 14, 25, 36]

    def test_sub_and_hadamard(self):
        m = Matrix(2, 2, [4, 6, 8, 10])
        n = Matrix(2, 2, [1, 2, 3, 4])
        assert list(m.sub(n).data) == [3, 4, 5, 6]
        assert list(m.hadamard(n).data) == [4, 12, 24, 40]

    def test_result_keeps_receiver_shape(self):
        m = Matrix(3, 2, np.arange(6.0))
        scalar = Matrix(1, 1, [2.0])
        assert m.hadamard(scalar).shape == (3, 2)

    @pytest.mark.parametrize("op", ["add", "sub", "hadamard"])
    def test_incompatible_lengths_raise(self, op):
        m = Matrix(2, 3)
        n = Matrix(1, 4)
        with pytest.raises(ShapeMismatchError):
            getattr(m, op)(n)

    def test_operations_do_not_mutate_operands(self):
        m = Matrix(2, 2, [1.0, 2.0, 3.0, 4.0])
        n = Matrix(2, 2, [1.0, 1.0, 1.0, 1.0])
        before_m, before_n = m.data.copy(), n.data.copy()
        m.add(n)
        m.sub(n)
        m.hadamard(n)
        m.mul_t(n)
        m.softmax()
        assert np.array_equal(m.data, before_m)
        assert np.array_equal(n.data, before_n)

    def test_dtype_is_preserved(self):
        m = Matrix(2, 2, [1, 2, 3, 4], dtype=np.float32)
        n = Matrix(2, 2, [1, 1, 1, 1], dtype=np.float64)
        assert m.add(n).dtype == np.float32
        assert m.mul_t(n).dtype == np.float32
        assert m.sigmoid().dtype == np.float32


class TestTransforms:
    def test_sigmoid(self):
        m = Matrix(1, 3, [0.0, 100.0, -100.0]).sigmoid()
        np.testing.assert_allclose(m.data, [0.5, 1.0, 0.0], atol=1e-12)

    def test_softmax_rows_sum_to_one(self):
        m = _matrix(4, 5).softmax()
        np.testing.assert_allclose(m.as_array().sum(axis=1), np.ones(4))

    def test_softmax_is_stable_for_large_values(self):
        m = Matrix(1, 2, [1000.0, 1001.0]).softmax()
        assert np.all(np.isfinite(m.data))
        np.testing.assert_allclose(m.data, [1 / (1 + np.e), np.e / (1 + np.e)])

    def test_softmax_temperature_flattens(self):
        m = Matrix(1, 2, [0.0, 1.0])
        sharp = m.softmax(0.1).data
        flat = m.softmax(10.0).data
        assert sharp[1] > flat[1] > 0.5

    def test_sum_adds_rows(self):
        m = Matrix(2, 3, [1, 2, 3, 4, 5, 6]).sum()
        assert m.shape == (1, 3)
        assert list(m.data) == [5, 7, 9]

    def test_entropy_of_uniform_rows(self):
        m = Matrix(2, 4, np.full(8, 0.25)).entropy()
        assert m.shape == (2, 1)
        np.testing.assert_allclose(m.data, [np.log(4), np.log(4)])


class TestSelfAttention:
    def test_equal_scores_average_values(self):
        q = Matrix(3, 2)
        v = Matrix(3, 2, [1, 2, 3, 4, 5, 6])
        out = self_attention(q, q, v)
        assert out.shape == (3, 2)
        np.testing.assert_allclose(out.as_array(), np.tile([3.0, 4.0], (3, 1)))

    def test_shape_mismatch_raises(self):
        with pytest.raises(ShapeMismatchError):
            self_attention(Matrix(3, 2), Matrix(3, 3), Matrix(3, 2))

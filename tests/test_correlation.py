"""Tests for SiRiS construction and column access."""


import numpy as np
import pytest
import scipy.sparse as sp

import pyrss


@pytest.fixture
def se():
    return np.array([0.1, 0.2, 0.5, 1.0])


@pytest.fixture
def R():
    return np.array([
        [1.0, 0.3, 0.0, 0.0],
        [0.3, 1.0, 0.1, 0.0],
        [0.0, 0.1, 1.0, -0.2],
        [0.0, 0.0, -0.2, 1.0],
    ])


@pytest.fixture
def SiRiS(R, se):
    return pyrss.build_SiRiS(R, se)


def test_build_SiRiS_dense(R, se, SiRiS):
    np.testing.assert_allclose(SiRiS, np.diag(1 / se) @ R @ np.diag(1 / se))
    np.testing.assert_allclose(np.diag(SiRiS), 1 / se**2)


def test_build_SiRiS_sparse_matches_dense(R, se, SiRiS):
    out = pyrss.build_SiRiS(sp.csr_matrix(R), se)
    assert sp.issparse(out)
    np.testing.assert_allclose(out.toarray(), SiRiS)


def test_build_SiRiS_shape_mismatch(R):
    with pytest.raises(pyrss.DimensionMismatchError):
        pyrss.build_SiRiS(R, np.ones(3))


def test_build_SiRiS_nonpositive_se(R, se):
    se[2] = 0.0
    with pytest.raises(pyrss.PreconditionError):
        pyrss.build_SiRiS(R, se)


class TestOperators:
    @staticmethod
    @pytest.fixture(params=["dense", "sparse"])
    def op(request, SiRiS):
        if request.param == "sparse":
            return pyrss.as_correlation(sp.csr_matrix(SiRiS))
        return pyrss.as_correlation(SiRiS)

    @staticmethod
    def test_type(op):
        assert isinstance(op, pyrss.CorrelationOperator)
        assert op.shape == (4, 4)

    @staticmethod
    def test_column_support(op, SiRiS):
        col = op.column(0)
        assert isinstance(col, pyrss.SparseColumn)
        np.testing.assert_array_equal(np.sort(col.indices), [0, 1])
        np.testing.assert_allclose(col.toarray(4), SiRiS[:, 0])

    @staticmethod
    def test_column_dot(op, SiRiS):
        v = np.array([1.0, -2.0, 0.5, 3.0])
        for i in range(4):
            assert op.column_dot(i, v) == pytest.approx(SiRiS[:, i] @ v)

    @staticmethod
    def test_matvec(op, SiRiS):
        v = np.array([1.0, -2.0, 0.5, 3.0])
        np.testing.assert_allclose(op.matvec(v), SiRiS @ v)

    @staticmethod
    def test_diagonal(op, SiRiS):
        np.testing.assert_allclose(op.diagonal(), np.diag(SiRiS))


def test_as_correlation_passthrough(SiRiS):
    op = pyrss.DenseCorrelation(SiRiS)
    assert pyrss.as_correlation(op) is op


def test_as_correlation_not_square():
    with pytest.raises(pyrss.DimensionMismatchError):
        pyrss.as_correlation(np.zeros((2, 3)))
    with pytest.raises(pyrss.DimensionMismatchError):
        pyrss.as_correlation(sp.csc_matrix((3, 2)))


def test_as_correlation_unsupported():
    with pytest.raises(TypeError):
        pyrss.as_correlation("SiRiS")


def test_sparse_operator_does_not_touch_input(SiRiS):
    M = sp.csc_matrix(SiRiS)
    data = M.data.copy()
    op = pyrss.SparseCorrelation(M)
    op.column(1).values[:] = 0.0
    np.testing.assert_array_equal(M.data, data)


def test_incomplete_operator_cannot_be_created():
    class ColumnsOnly(pyrss.CorrelationOperator):
        @property
        def shape(self):
            return (1, 1)

        def column(self, i):
            return pyrss.SparseColumn(np.array([0]), np.array([1.0]))

    with pytest.raises(TypeError):
        ColumnsOnly()


@pytest.mark.parametrize("sparse", [False, True])
def test_all_finite(SiRiS, sparse):
    M = SiRiS.copy()
    assert pyrss.as_correlation(sp.csc_matrix(M) if sparse else M).all_finite()
    M[1, 0] = np.nan
    assert not pyrss.as_correlation(sp.csc_matrix(M) if sparse else M).all_finite()

"""
Column access to the scaled correlation matrix SiRiS = diag(1/se) R diag(1/se).

The coordinate updates only ever need one column at a time (and its nonzero
support), so storage is hidden behind ``CorrelationOperator``: sparse CSC and
dense ndarray back-ends are provided.
"""
from __future__ import annotations
from abc import ABC, abstractmethod
import numpy as np
import scipy.sparse as sp
from typing import NamedTuple, Tuple, Union

from .errors import DimensionMismatchError, PreconditionError


class SparseColumn(NamedTuple):
    """Nonzero support of one column: row indices and matching values."""
    indices: np.ndarray
    values: np.ndarray

    def toarray(self, p: int) -> np.ndarray:
        out = np.zeros(p, dtype=np.float64)
        out[self.indices] = self.values
        return out


class CorrelationOperator(ABC):
    """Capability interface used by the sweep: column extraction and products."""

    @property
    @abstractmethod
    def shape(self) -> Tuple[int, int]:
        ...

    @abstractmethod
    def column(self, i: int) -> SparseColumn:
        ...

    def column_dot(self, i: int, v: np.ndarray) -> float:
        """Inner product of column i with a length-p vector."""
        col = self.column(i)
        return float(col.values @ np.asarray(v, float)[col.indices])

    @abstractmethod
    def matvec(self, v: np.ndarray) -> np.ndarray:
        ...

    @abstractmethod
    def diagonal(self) -> np.ndarray:
        ...

    @abstractmethod
    def all_finite(self) -> bool:
        """True when every stored entry is finite."""


class SparseCorrelation(CorrelationOperator):
    """SiRiS held as a scipy.sparse CSC matrix; columns are slices of indptr."""

    def __init__(self, SiRiS):
        M = sp.csc_matrix(SiRiS, dtype=np.float64, copy=True)
        M.sum_duplicates()
        self._M = M

    @property
    def shape(self) -> Tuple[int, int]:
        return self._M.shape

    def column(self, i: int) -> SparseColumn:
        start, stop = self._M.indptr[i], self._M.indptr[i + 1]
        return SparseColumn(self._M.indices[start:stop], self._M.data[start:stop])

    def matvec(self, v: np.ndarray) -> np.ndarray:
        return np.asarray(self._M @ np.asarray(v, float), dtype=np.float64).ravel()

    def diagonal(self) -> np.ndarray:
        return self._M.diagonal()

    def all_finite(self) -> bool:
        return bool(np.all(np.isfinite(self._M.data)))


class DenseCorrelation(CorrelationOperator):
    """SiRiS held as a dense 2-D array."""

    def __init__(self, SiRiS: np.ndarray):
        self._M = np.asarray(SiRiS, dtype=np.float64)

    @property
    def shape(self) -> Tuple[int, int]:
        return self._M.shape

    def column(self, i: int) -> SparseColumn:
        col = self._M[:, i]
        idx = np.flatnonzero(col)
        return SparseColumn(idx, col[idx])

    def column_dot(self, i: int, v: np.ndarray) -> float:
        return float(self._M[:, i] @ np.asarray(v, float))

    def matvec(self, v: np.ndarray) -> np.ndarray:
        return self._M @ np.asarray(v, float)

    def diagonal(self) -> np.ndarray:
        return np.diag(self._M).copy()

    def all_finite(self) -> bool:
        return bool(np.all(np.isfinite(self._M)))


def as_correlation(SiRiS: Union[CorrelationOperator, np.ndarray, sp.spmatrix]) -> CorrelationOperator:
    """Wrap SiRiS in the matching back-end; the matrix must be square."""
    if isinstance(SiRiS, CorrelationOperator):
        op = SiRiS
    elif sp.issparse(SiRiS):
        op = SparseCorrelation(SiRiS)
    elif isinstance(SiRiS, (np.ndarray, list)):
        M = np.asarray(SiRiS, dtype=np.float64)
        if M.ndim != 2:
            raise DimensionMismatchError(f"SiRiS must be 2-D, got {M.ndim} dimension(s).")
        op = DenseCorrelation(M)
    else:
        raise TypeError(f"Unsupported SiRiS type: {type(SiRiS).__name__}")
    n_row, n_col = op.shape
    if n_row != n_col:
        raise DimensionMismatchError(f"SiRiS must be square, got shape {op.shape}.")
    return op


def build_SiRiS(R: Union[np.ndarray, sp.spmatrix], se: np.ndarray) -> Union[np.ndarray, sp.csc_matrix]:
    """Scale a correlation matrix by the standard errors: diag(1/se) R diag(1/se).

    Sparse input stays sparse (CSC); dense input stays dense.
    """
    se = np.asarray(se, dtype=np.float64).ravel()
    p = se.size
    if not sp.issparse(R):
        R = np.asarray(R, dtype=np.float64)
    if R.shape != (p, p):
        raise DimensionMismatchError(f"R shape {R.shape} incompatible with se length {p}.")
    if not np.all(np.isfinite(se)) or np.any(se <= 0):
        raise PreconditionError("se must be finite and strictly positive.")
    inv_se = 1.0 / se
    if sp.issparse(R):
        D = sp.diags(inv_se)
        return sp.csc_matrix(D @ R @ D)
    return inv_se[:, None] * R * inv_se[None, :]

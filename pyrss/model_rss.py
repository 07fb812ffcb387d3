"""
Mean-field variational coordinate ascent for the RSS model.

Given summary statistics (betahat, se) and SiRiS = diag(1/se) R diag(1/se), each
sweep updates the inclusion probability ``alpha`` and conditional mean ``mu`` of
every variable in turn while keeping ``SiRiSr = SiRiS @ (alpha * mu)`` current.
Updates are Gauss-Seidel: each coordinate sees the residual left by the previous
one, so the visiting order matters for the iterates (not for the fixed point).

The outer loop (convergence check, hyperparameter updates) belongs to the caller;
see ``pyrss.kl`` for lnZ, ``max_relative_error`` and ``reestimate_logodds``.
"""
from __future__ import annotations
import logging
import numpy as np
from typing import Tuple, Union

from .correlation import CorrelationOperator, SparseColumn, as_correlation
from .errors import DimensionMismatchError, PreconditionError
from .numeric import sigmoid

logger = logging.getLogger(__name__)


def summary_q(betahat: np.ndarray, se: np.ndarray) -> np.ndarray:
    """The q = betahat / se^2 vector entering lnZ."""
    betahat = np.asarray(betahat, float)
    return betahat / np.square(np.asarray(se, float))


def init_SiRiSr(SiRiS, alpha: np.ndarray, mu: np.ndarray) -> np.ndarray:
    """Residual SiRiS @ (alpha * mu) consistent with a (warm) starting state."""
    op = as_correlation(SiRiS)
    r = np.asarray(alpha, float) * np.asarray(mu, float)
    if r.size != op.shape[0]:
        raise DimensionMismatchError(f"alpha*mu has length {r.size}, SiRiS has shape {op.shape}.")
    return op.matvec(r)


def _as_vector(x, p: int) -> np.ndarray:
    """Scalars broadcast to length p; arrays are flattened."""
    x = np.asarray(x, dtype=np.float64)
    if x.ndim == 0:
        return np.full(p, float(x))
    return x.ravel()


def check_sweep_inputs(SiRiS, sigma_beta, logodds, betahat, se, alpha, mu, SiRiSr) -> CorrelationOperator:
    """Validate shapes and domains for a sweep before any update runs.

    Raises
    ------
    DimensionMismatchError
        If a per-variable array is not of length p or SiRiS is not p x p.
        ``sigma_beta`` and ``logodds`` may also be scalars.
    PreconditionError
        On non-finite values (SiRiS included), ``se <= 0``, ``sigma_beta <= 0``
        or ``alpha`` outside [0, 1].

    Returns
    -------
    CorrelationOperator
        SiRiS wrapped for column access.
    """
    op = as_correlation(SiRiS)
    betahat = np.asarray(betahat, dtype=np.float64)
    if betahat.ndim != 1 or betahat.size == 0:
        raise DimensionMismatchError("betahat must be a non-empty 1-D array.")
    p = betahat.size
    if op.shape != (p, p):
        raise DimensionMismatchError(f"SiRiS shape {op.shape} incompatible with betahat length {p}.")
    if not op.all_finite():
        raise PreconditionError("SiRiS contains non-finite values (NaN/Inf).")
    arrays = dict(betahat=betahat, se=se, alpha=alpha, mu=mu, SiRiSr=SiRiSr)
    for name in ("se", "alpha", "mu", "SiRiSr"):
        arrays[name] = np.asarray(arrays[name], dtype=np.float64)
        if arrays[name].shape != (p,):
            raise DimensionMismatchError(f"{name} has shape {arrays[name].shape}, expected ({p},).")
    for name, val in (("sigma_beta", sigma_beta), ("logodds", logodds)):
        val = np.asarray(val, dtype=np.float64)
        if val.ndim != 0 and val.shape != (p,):
            raise DimensionMismatchError(f"{name} has shape {val.shape}, expected a scalar or ({p},).")
        arrays[name] = val
    for name, val in arrays.items():
        if not np.all(np.isfinite(val)):
            raise PreconditionError(f"{name} contains non-finite values (NaN/Inf).")
    if np.any(arrays["se"] <= 0):
        raise PreconditionError("se must be strictly positive.")
    if np.any(arrays["sigma_beta"] <= 0):
        raise PreconditionError("sigma_beta must be strictly positive.")
    if np.any(arrays["alpha"] < 0) or np.any(arrays["alpha"] > 1):
        raise PreconditionError("alpha must lie in [0, 1].")
    return op


def coordinate_update(betahat: float, se: float, sigma_beta: float,
                      SiRiS_col: Union[SparseColumn, np.ndarray], SiRiSr: np.ndarray,
                      SiRiSr_i: float, logodds: float, alpha: float, mu: float) -> Tuple[float, float]:
    """Mean-field update of one variable.

    Parameters
    ----------
    betahat, se, sigma_beta, logodds : float
        Summary statistics and hyperparameters of this variable.
    SiRiS_col : SparseColumn or ndarray (p,)
        Column i of SiRiS.
    SiRiSr : ndarray (p,)
        Shared residual SiRiS @ r; updated in place on the column's support.
    SiRiSr_i : float
        Entry i of SiRiSr before this update.
    alpha, mu : float
        Current inclusion probability and conditional mean of this variable.

    Returns
    -------
    (alpha_new, mu_new) : tuple of float
    """
    se_square = se * se
    sigma_beta_square = sigma_beta * sigma_beta

    sigma_square = (se_square * sigma_beta_square) / (se_square + sigma_beta_square)

    # r/se^2 removes this variable's own contribution from SiRiSr_i.
    r = alpha * mu
    mu_new = sigma_square * (betahat / se_square + r / se_square - SiRiSr_i)

    SSR = mu_new * mu_new / sigma_square
    alpha_new = float(sigmoid(logodds + 0.5 * (np.log(sigma_square / sigma_beta_square) + SSR)))

    delta = alpha_new * mu_new - r
    if isinstance(SiRiS_col, SparseColumn):
        SiRiSr[SiRiS_col.indices] += SiRiS_col.values * delta
    else:
        SiRiSr += np.asarray(SiRiS_col, float) * delta
    return alpha_new, float(mu_new)


def _buffer(x, name: str, inplace: bool) -> np.ndarray:
    if not inplace:
        return np.array(x, dtype=np.float64, copy=True).ravel()
    if not (isinstance(x, np.ndarray) and x.dtype == np.float64 and x.ndim == 1 and x.flags.writeable):
        raise PreconditionError(f"inplace sweep requires {name} to be a writable 1-D float64 ndarray.")
    return x


def coordinate_ascent_sweep(SiRiS, sigma_beta, logodds, betahat: np.ndarray, se: np.ndarray,
                            alpha0: np.ndarray, mu0: np.ndarray, SiRiSr0: np.ndarray,
                            reverse: bool = False, inplace: bool = False,
                            check: bool = True) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """One coordinate-ascent pass over all p variables.

    Parameters
    ----------
    SiRiS : ndarray (p, p), scipy.sparse matrix or CorrelationOperator
        diag(1/se) R diag(1/se). A raw scipy.sparse matrix is copied to CSC on
        every call; outer loops should wrap it once with ``as_correlation``.
    sigma_beta, logodds : float or ndarray (p,)
        Prior slab standard deviation and prior log-odds of inclusion.
    betahat, se : ndarray (p,)
        Summary statistics.
    alpha0, mu0 : ndarray (p,)
        Starting variational parameters.
    SiRiSr0 : ndarray (p,)
        SiRiS @ (alpha0 * mu0); see ``init_SiRiSr``.
    reverse : bool
        Visit variables p-1, ..., 0 instead of 0, ..., p-1.
    inplace : bool
        Mutate and return the caller's alpha0, mu0 and SiRiSr0 instead of copies.
    check : bool
        Validate shapes and domains first (``check_sweep_inputs``).

    Returns
    -------
    (alpha, mu, SiRiSr) : tuple of ndarray (p,)
    """
    if check:
        op = check_sweep_inputs(SiRiS, sigma_beta, logodds, betahat, se, alpha0, mu0, SiRiSr0)
    else:
        op = as_correlation(SiRiS)
    betahat = np.asarray(betahat, dtype=np.float64).ravel()
    se = np.asarray(se, dtype=np.float64).ravel()
    p = betahat.size
    sigma_beta = _as_vector(sigma_beta, p)
    logodds = _as_vector(logodds, p)
    alpha = _buffer(alpha0, "alpha0", inplace)
    mu = _buffer(mu0, "mu0", inplace)
    SiRiSr = _buffer(SiRiSr0, "SiRiSr0", inplace)

    track = logger.isEnabledFor(logging.DEBUG)
    if track:
        r_start = alpha * mu

    order = range(p - 1, -1, -1) if reverse else range(p)
    for i in order:
        alpha[i], mu[i] = coordinate_update(betahat[i], se[i], sigma_beta[i], op.column(i),
                                            SiRiSr, SiRiSr[i], logodds[i], alpha[i], mu[i])

    if track:
        logger.debug("RSS sweep p=%d reverse=%s max|dr|=%.6g",
                     p, reverse, float(np.max(np.abs(alpha * mu - r_start))))
    return alpha, mu, SiRiSr

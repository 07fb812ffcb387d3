"""
KL terms, the variational lower bound (lnZ) and convergence helpers for RSS.

All functions are pure: they read the current posterior state and return scalars.
``logodds`` and ``sigma_beta`` may be scalars or per-variable arrays.
"""
from __future__ import annotations
import numpy as np

from .errors import DimensionMismatchError
from .numeric import EPS, ArrayLike, betavar, log_sigmoid, rel_err

# Coordinates whose current value is at or below this magnitude are ignored by
# max_relative_error.
ERR_THRESHOLD = 1e-6


def _vectors(*named) -> list:
    """Convert (name, array) pairs to 1-D float arrays sharing one non-zero length p."""
    out = []
    for name, x in named:
        x = np.asarray(x, dtype=np.float64)
        if x.ndim != 1 or x.size == 0:
            raise DimensionMismatchError(f"{name} must be a non-empty 1-D array, got shape {x.shape}.")
        if out and x.size != out[0].size:
            raise DimensionMismatchError(f"{name} has length {x.size}, expected {out[0].size}.")
        out.append(x)
    return out


def _hyperparameter(name: str, x: ArrayLike, p: int) -> ArrayLike:
    """Scalars pass through; arrays must have length p."""
    x = np.asarray(x, dtype=np.float64)
    if x.ndim != 0 and x.shape != (p,):
        raise DimensionMismatchError(f"{name} has shape {x.shape}, expected a scalar or ({p},).")
    return x


def intklbeta(alpha: np.ndarray, mu: np.ndarray, sigma_square: np.ndarray,
              sigma_beta_square: ArrayLike) -> float:
    """Coefficient part of E_q[log p(beta, gamma) - log q(beta, gamma)].

    Combines the log-variance ratio and quadratic terms of the Gaussian slab with
    the binary entropy of ``alpha``. ``EPS`` inside the logs keeps the entropy
    finite when ``alpha`` is exactly 0 or 1.

    Parameters
    ----------
    alpha : ndarray (p,)
        Posterior inclusion probabilities.
    mu : ndarray (p,)
        Posterior means conditional on inclusion.
    sigma_square : ndarray (p,)
        Posterior variances conditional on inclusion.
    sigma_beta_square : float or ndarray (p,)
        Prior slab variance.

    Returns
    -------
    float
        The summed term; add it to the bound, not subtract.
    """
    alpha, mu, sigma_square = _vectors(("alpha", alpha), ("mu", mu), ("sigma_square", sigma_square))
    sigma_beta_square = _hyperparameter("sigma_beta_square", sigma_beta_square, alpha.size)
    tres = np.sum(alpha) + np.sum(alpha * np.log(sigma_square / sigma_beta_square))
    sres = np.sum(alpha * (sigma_square + np.square(mu)) / sigma_beta_square)
    thres = np.sum(alpha * np.log(alpha + EPS))
    fres = np.sum((1 - alpha) * np.log(1 - alpha + EPS))
    return float(0.5 * (tres - sres) - thres - fres)


def intgamma(logodds: ArrayLike, alpha: np.ndarray) -> float:
    """Sum of (alpha-1)*logodds + log_sigmoid(logodds) over variables."""
    alpha, = _vectors(("alpha", alpha))
    logodds = _hyperparameter("logodds", logodds, alpha.size)
    return float(np.sum((alpha - 1) * logodds + log_sigmoid(logodds)))


def kl_divergence(alpha: np.ndarray, mu: np.ndarray, sigma_square: np.ndarray,
                  sigma_beta_square: ArrayLike, logodds: ArrayLike) -> float:
    """KL(q || prior) of the slab-and-spike posterior; non-negative on the valid domain."""
    return -(intklbeta(alpha, mu, sigma_square, sigma_beta_square) + intgamma(logodds, alpha))


def calculate_lnZ(q: np.ndarray, r: np.ndarray, SiRiSr: np.ndarray, logodds: ArrayLike,
                  se_square: np.ndarray, alpha: np.ndarray, mu: np.ndarray, s: np.ndarray,
                  sigma_beta: ArrayLike) -> float:
    """Variational lower bound on the log evidence.

    Parameters
    ----------
    q : ndarray (p,)
        ``betahat / se^2``.
    r : ndarray (p,)
        Posterior mean effects ``alpha * mu``.
    SiRiSr : ndarray (p,)
        ``SiRiS @ r`` as maintained by the sweep.
    logodds : float or ndarray (p,)
        Prior log-odds of inclusion.
    se_square : ndarray (p,)
        Squared standard errors.
    alpha, mu, s : ndarray (p,)
        Inclusion probabilities, conditional means and conditional variances.
    sigma_beta : float or ndarray (p,)
        Prior slab standard deviation.

    Returns
    -------
    float
        lnZ.
    """
    q, r, SiRiSr, se_square, alpha, mu, s = _vectors(
        ("q", q), ("r", r), ("SiRiSr", SiRiSr), ("se_square", se_square),
        ("alpha", alpha), ("mu", mu), ("s", s))
    logodds = _hyperparameter("logodds", logodds, q.size)
    sigma_beta = _hyperparameter("sigma_beta", sigma_beta, q.size)
    lnz0 = q @ r - 0.5 * (r @ SiRiSr) + intgamma(logodds, alpha)
    lnz1 = lnz0 - 0.5 * ((1.0 / se_square) @ betavar(alpha, mu, s))
    lnz2 = lnz1 + intklbeta(alpha, mu, s, np.square(sigma_beta))
    return float(lnz2)


def max_relative_error(alpha: np.ndarray, alpha_prev: np.ndarray,
                       r: np.ndarray, r_prev: np.ndarray) -> float:
    """Largest relative change across alpha and r between two sweeps.

    Each index contributes the larger of its alpha and r relative errors; a
    quantity whose current magnitude is at most ``ERR_THRESHOLD`` contributes 0.
    """
    alpha, alpha_prev, r, r_prev = _vectors(
        ("alpha", alpha), ("alpha_prev", alpha_prev), ("r", r), ("r_prev", r_prev))
    alpha_err = np.where(np.abs(alpha) > ERR_THRESHOLD, rel_err(alpha, alpha_prev), 0.0)
    r_err = np.where(np.abs(r) > ERR_THRESHOLD, rel_err(r, r_prev), 0.0)
    return float(np.max(np.maximum(alpha_err, r_err)))


def reestimate_logodds(alpha: np.ndarray) -> float:
    """Global prior log-odds implied by the mean inclusion probability."""
    alpha, = _vectors(("alpha", alpha))
    pi = float(np.mean(alpha))
    return float(np.log((pi + EPS) / ((1 - pi) + EPS)))

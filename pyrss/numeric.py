"""
Numeric primitives for the RSS variational updates.

Stable sigmoid / log-sigmoid, the slab-and-spike posterior variance and the
relative-error measure used by the convergence check.
"""
from __future__ import annotations
import numpy as np
from scipy.special import expit, log_expit
from typing import Union

ArrayLike = Union[float, np.ndarray]

# Floor added inside log() and to denominators so alpha in {0, 1} stays finite.
EPS = float(np.finfo(float).eps)


def sigmoid(x: ArrayLike) -> ArrayLike:
    """Logistic function 1/(1+exp(-x)), overflow-free for large |x|."""
    return expit(x)


def log_sigmoid(x: ArrayLike) -> ArrayLike:
    """Stable log(sigmoid(x)) = -log(1+exp(-x)).

    Parameters
    ----------
    x : float or ndarray
        Log-odds.

    Returns
    -------
    float or ndarray
        Same shape as ``x``; finite for |x| far beyond 1e3.
    """
    return log_expit(x)


def betavar(p: ArrayLike, mu: ArrayLike, s: ArrayLike) -> ArrayLike:
    """Posterior variance of a coefficient under the slab-and-spike posterior.

    Parameters
    ----------
    p : float or ndarray
        Inclusion probability (alpha), in [0, 1].
    mu : float or ndarray
        Posterior mean conditional on inclusion.
    s : float or ndarray
        Posterior variance conditional on inclusion.

    Returns
    -------
    float or ndarray
        ``p*(s + (1-p)*mu^2)`` evaluated elementwise.
    """
    return p * (s + (1 - p) * np.square(mu))


def posterior_variance(se: ArrayLike, sigma_beta: ArrayLike) -> ArrayLike:
    """Conditional posterior variance se^2 sigma_beta^2 / (se^2 + sigma_beta^2)."""
    se_sq = np.square(se)
    sigma_beta_sq = np.square(sigma_beta)
    return (se_sq * sigma_beta_sq) / (se_sq + sigma_beta_sq)


def rel_err(p0: ArrayLike, p1: ArrayLike) -> ArrayLike:
    """Relative difference |p0-p1| / (|p0|+|p1|+EPS), scalar or elementwise."""
    return np.abs(p0 - p1) / (np.abs(p0) + np.abs(p1) + EPS)

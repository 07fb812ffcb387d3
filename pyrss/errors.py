"""Exceptions raised at the input boundary of the RSS variational routines."""
from __future__ import annotations


class DimensionMismatchError(ValueError):
    """An array length or matrix shape disagrees with the number of variables p."""


class PreconditionError(ValueError):
    """Inputs outside the domain where the variational updates are defined."""

"""pyRSS package: variational coordinate ascent for the RSS summary-statistics model."""
from .correlation import (CorrelationOperator, DenseCorrelation, SparseColumn, SparseCorrelation,
                          as_correlation, build_SiRiS)
from .errors import DimensionMismatchError, PreconditionError
from .kl import (ERR_THRESHOLD, calculate_lnZ, intgamma, intklbeta, kl_divergence,
                 max_relative_error, reestimate_logodds)
from .model_rss import (check_sweep_inputs, coordinate_ascent_sweep, coordinate_update, init_SiRiSr,
                        summary_q)
from .numeric import EPS, betavar, log_sigmoid, posterior_variance, rel_err, sigmoid

__all__ = [
    "EPS", "ERR_THRESHOLD",
    "sigmoid", "log_sigmoid", "betavar", "posterior_variance", "rel_err",
    "intklbeta", "intgamma", "kl_divergence", "calculate_lnZ",
    "max_relative_error", "reestimate_logodds",
    "SparseColumn", "CorrelationOperator", "SparseCorrelation", "DenseCorrelation",
    "as_correlation", "build_SiRiS",
    "coordinate_update", "coordinate_ascent_sweep", "check_sweep_inputs",
    "init_SiRiSr", "summary_q",
    "DimensionMismatchError", "PreconditionError",
]
__version__ = "1.0"

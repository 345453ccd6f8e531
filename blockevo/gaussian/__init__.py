from blockevo.gaussian.config import NO_CUTOFF, FitConfig
from blockevo.gaussian.density import GaussianClassifier
from blockevo.gaussian.fitter import FactorizationResult, GaussianFitter, fit
from blockevo.gaussian.moments import empirical_moments

__all__ = [
    "NO_CUTOFF",
    "FitConfig",
    "FactorizationResult",
    "GaussianClassifier",
    "GaussianFitter",
    "empirical_moments",
    "fit",
]

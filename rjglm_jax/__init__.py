# rjglm_jax/__init__.py
import jax

jax.config.update("jax_enable_x64", True)

from .core import CovariateData, SufficientStatistics, ModelState, ConfigurationError
from .priors import PriorModel, PoissonModelSpacePrior, BetaBinomialModelSpacePrior, ScalePrior
from .likelihoods import LikelihoodFamily, get as get_likelihood
from .inference import RJMH, RJMHCFG, RJMHRun, run_chain, score_models
from .io import ResultsWriter, load_covariate_data

__version__ = "0.1.0"

__all__ = [
    "CovariateData",
    "SufficientStatistics",
    "ModelState",
    "ConfigurationError",
    "PriorModel",
    "PoissonModelSpacePrior",
    "BetaBinomialModelSpacePrior",
    "ScalePrior",
    "LikelihoodFamily",
    "get_likelihood",
    "RJMH",
    "RJMHCFG",
    "RJMHRun",
    "run_chain",
    "score_models",
    "ResultsWriter",
    "load_covariate_data",
]

# rjglm_jax/priors/__init__.py
from .model_space import (
    PoissonModelSpacePrior,
    BetaBinomialModelSpacePrior,
    get_model_space_prior,
)
from .scale import ScalePrior
from .prior_model import PriorModel

__all__ = [
    "PoissonModelSpacePrior",
    "BetaBinomialModelSpacePrior",
    "get_model_space_prior",
    "ScalePrior",
    "PriorModel",
]

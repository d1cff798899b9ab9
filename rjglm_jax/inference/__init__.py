# rjglm_jax/inference/__init__.py
from .base import InferenceMethod
from .rj import RJMH, RJMHCFG, RJMHRun, run_chain, score_models

__all__ = [
    "InferenceMethod",
    "RJMH",
    "RJMHCFG",
    "RJMHRun",
    "run_chain",
    "score_models",
]

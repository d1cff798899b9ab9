"""
Reversible-jump Metropolis-Hastings over GLM covariate inclusion.

This module provides:
- RJMH: the sampler (Add/Remove/Swap/Null moves with adaptive random-walk scales)
- score_models: exhaustive scoring of small models for conjugate families
"""
from .proposals import ComponentLayout, ProposalTuner
from .rjmh import RJMH, RJMHCFG, RJMHRun, run_chain, initial_state, evaluate_state, mh_iteration
from .scoring import score_models, MAX_SCORING_DIMENSION

__all__ = [
    "ComponentLayout", "ProposalTuner",
    "RJMH", "RJMHCFG", "RJMHRun",
    "run_chain", "initial_state", "evaluate_state", "mh_iteration",
    "score_models", "MAX_SCORING_DIMENSION",
]

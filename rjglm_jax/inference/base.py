# rjglm_jax/inference/base.py
from __future__ import annotations

from typing import Protocol, runtime_checkable, Any


@runtime_checkable
class InferenceMethod(Protocol):
    """
    Protocol for inference methods over GLM covariate-selection problems.

    Design principles
    -----------------
    - An InferenceMethod consumes CovariateData and a PriorModel.
    - It MUST treat the likelihood family as a black box, reached only through
      the registry (`rjglm_jax.likelihoods.get`).
    - It MAY accept configuration for chain length, adaption, thinning, etc.

    Canonical contract
    ------------------
    The exact `run` signature is method-specific, but all methods:
    - accept data and priors as input,
    - own their random state for the duration of a run,
    - return inference results (samples, diagnostics, etc.).
    """

    def run(self, data, priors, *args, **kwargs) -> Any:
        """
        Run inference.

        Parameters
        ----------
        data : CovariateData
            Design matrix, outcome and model-space layout.
        priors : PriorModel
            Priors over model space, coefficients and nuisance parameters.

        Returns
        -------
        Any
            Inference results (method-specific).
        """
        ...

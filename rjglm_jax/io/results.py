# rjglm_jax/io/results.py
"""
Results file: a header block describing the run followed by one
whitespace-delimited row per recorded iteration.

Header block:
    line 1  field names
    line 2  field values
    line 3  model-space prior hyperparameters (+ partition bounds if P > 1)
    ...     one "<model> <log marginal likelihood>" line per scored model
    line    column names of the sample rows
"""
from __future__ import annotations

import os
from typing import List, Optional, Sequence, Tuple

import numpy as np

HEADER_FIELDS = (
    "Likelihood",
    "ModelSpacePriorFamily",
    "V",
    "startRJ",
    "R",
    "varsWithFixedPriors",
    "nBetaHyperPriorComp",
    "allModelScoresUpToDim",
    "nRjComp",
    "iterations",
    "burnin",
    "thin",
)


def _fmt(x) -> str:
    return repr(float(x))


class ResultsWriter:
    """
    Writes the header block and sample rows to a path or an open text
    stream. Streams passed in are flushed but not closed.
    """

    def __init__(self, target, data, priors, cfg, model):
        self.data = data
        self.priors = priors
        self.cfg = cfg
        self.model = model
        self._owns_stream = isinstance(target, (str, os.PathLike))
        self._stream = open(target, "w") if self._owns_stream else target

    def __enter__(self) -> ResultsWriter:
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self):
        if self._owns_stream:
            self._stream.close()
        else:
            self._stream.flush()

    def _write_line(self, values: Sequence) -> None:
        self._stream.write(" ".join(str(v) for v in values) + "\n")

    # ------------------------------------------------------------
    # Header
    # ------------------------------------------------------------

    def header_values(self) -> List:
        data, priors, cfg = self.data, self.priors, self.cfg
        return [
            self.model.label,
            priors.model_space.name,
            data.n_covariates,
            data.n_fixed,
            data.n_clusters,
            priors.n_informative,
            priors.n_beta_prior_partitions,
            cfg.all_model_scores_up_to_dim,
            data.n_partitions,
            cfg.n_iterations,
            cfg.burn_in,
            cfg.thinning,
        ]

    def column_names(self) -> List[str]:
        names = []
        if self.model.has_dispersion:
            names.append(self.model.dispersion_label)
        names.append("alpha")
        names.extend(self.data.covariate_names)
        names.extend(f"LogBetaPriorSd{h + 1}" for h in range(self.priors.n_beta_prior_partitions))
        if self.priors.model_tau:
            names.append("LogTau")
        if self.data.n_clusters > 0:
            names.append("LogClusterSd")
            names.extend(f"ClusterIntercept{r + 1}" for r in range(self.data.n_clusters))
        names.append("LogLikelihood")
        return names

    def write_header(self, model_scores: Optional[Sequence[Tuple[str, float]]] = None) -> None:
        self._write_line(HEADER_FIELDS)
        self._write_line(self.header_values())
        hyper = list(self.priors.model_space.header_values())
        if self.data.n_partitions > 1:
            hyper.extend(self.data.model_space_partition_bounds)
        self._write_line(hyper)
        for label, score in model_scores or ():
            self._write_line([label, _fmt(score)])
        self._write_line(self.column_names())
        self._stream.flush()

    # ------------------------------------------------------------
    # Samples
    # ------------------------------------------------------------

    def row_values(self, state) -> List[float]:
        """Values of one state in column order."""
        values = []
        if self.model.has_dispersion:
            values.append(state.log_dispersion)
        values.append(state.alpha)
        values.extend(np.asarray(state.beta).tolist())
        values.extend(np.asarray(state.log_beta_prior_sds).tolist())
        if self.priors.model_tau:
            values.append(state.log_tau)
        if self.data.n_clusters > 0:
            values.append(state.log_cluster_sd)
            values.extend(np.asarray(state.cluster_intercepts).tolist())
        values.append(state.log_likelihood)
        return values

    def write_sample(self, state) -> None:
        self._write_line([_fmt(v) for v in self.row_values(state)])
        self._stream.flush()

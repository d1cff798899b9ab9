# rjglm_jax/io/data.py
"""
Loader for whitespace-delimited data files: a header row of column names
followed by one row per observation.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Sequence, Union

import numpy as np

from ..core.data import CovariateData
from ..core.errors import ConfigurationError

logger = logging.getLogger(__name__)


def load_covariate_data(
    path: Union[str, Path],
    *,
    likelihood: str,
    outcome_column: str = "outcome",
    time_column: str = "time",
    cluster_column: Optional[str] = None,
    n_fixed: int = 0,
    model_space_partition_bounds: Optional[Sequence[int]] = None,
) -> CovariateData:
    """
    Read a data file into CovariateData.

    The outcome, the survival time (Weibull only) and the optional cluster
    column are pulled out by name; every other column is a covariate, in
    file order. Cluster labels are re-indexed to 0..R-1 in sorted order.
    """
    path = Path(path)
    with path.open() as f:
        header = f.readline().split()
        if not header:
            raise ConfigurationError(f"{path}: empty header row")
        values = np.loadtxt(f, dtype=np.float64, ndmin=2)

    if values.shape[0] == 0:
        raise ConfigurationError(f"{path}: no observations")
    if values.shape[1] != len(header):
        raise ConfigurationError(
            f"{path}: header names {len(header)} columns but rows have {values.shape[1]}"
        )
    if len(set(header)) != len(header):
        raise ConfigurationError(f"{path}: duplicate column names in header")

    def take(name: str) -> np.ndarray:
        if name not in header:
            raise ConfigurationError(f"{path}: missing column {name!r}")
        return values[:, header.index(name)]

    y = take(outcome_column)
    special = {outcome_column}

    times = None
    if likelihood == "weibull":
        times = take(time_column)
        special.add(time_column)

    cluster_index = None
    if cluster_column is not None:
        _, cluster_index = np.unique(take(cluster_column), return_inverse=True)
        cluster_index = cluster_index.astype(np.int32)
        special.add(cluster_column)

    covariates = [c for c in header if c not in special]
    X = values[:, [header.index(c) for c in covariates]]
    logger.info("Loaded %s: %d observations, %d covariates", path, X.shape[0], X.shape[1])

    return CovariateData.from_arrays(
        X,
        y,
        likelihood=likelihood,
        times=times,
        cluster_index=cluster_index,
        covariate_names=covariates,
        n_fixed=n_fixed,
        model_space_partition_bounds=model_space_partition_bounds,
    )

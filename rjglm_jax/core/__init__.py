# rjglm_jax/core/__init__.py
from .data import CovariateData, SufficientStatistics
from .errors import ConfigurationError
from .state import (
    ModelState,
    MOVE_ADD,
    MOVE_REMOVE,
    MOVE_SWAP,
    MOVE_NULL,
    MOVE_LABELS,
    count_model_dimension,
    count_partition_dimensions,
    empty_state,
)

__all__ = [
    "CovariateData",
    "SufficientStatistics",
    "ConfigurationError",
    "ModelState",
    "MOVE_ADD",
    "MOVE_REMOVE",
    "MOVE_SWAP",
    "MOVE_NULL",
    "MOVE_LABELS",
    "count_model_dimension",
    "count_partition_dimensions",
    "empty_state",
]

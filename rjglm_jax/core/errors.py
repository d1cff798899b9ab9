# rjglm_jax/core/errors.py


class ConfigurationError(ValueError):
    """
    Raised for malformed hyperparameters, inconsistent partitions or data that
    do not fit the selected likelihood. Always raised before sampling starts.
    """

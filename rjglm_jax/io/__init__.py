from .data import load_covariate_data
from .results import ResultsWriter, HEADER_FIELDS

__all__ = ["load_covariate_data", "ResultsWriter", "HEADER_FIELDS"]

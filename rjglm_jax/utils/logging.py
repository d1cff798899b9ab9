# rjglm_jax/utils/logging.py
import logging
import sys
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(
    log_level: Union[str, int] = "INFO",
    log_dir: Optional[Path] = None,
    log_file: str = "rjglm.log"
) -> logging.Logger:
    """
    Setup logging configuration for a sampling run.

    Parameters
    ----------
    log_level : str or int
        Logging level (INFO, DEBUG, etc.).
    log_dir : Path, optional
        Directory to save the log file in; console only if None.
    log_file : str
        Name of the log file.

    Returns
    -------
    logging.Logger
        Root logger instance.
    """
    logger = logging.getLogger()
    logger.setLevel(log_level.upper() if isinstance(log_level, str) else log_level)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    formatter = logging.Formatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_dir / log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger

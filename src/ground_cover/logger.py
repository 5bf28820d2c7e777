"""Logging setup shared by every module of the pipeline."""

import logging
from pathlib import Path

from ground_cover.cste import GeneralPath

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def get_logger(name: str, level: int = logging.INFO, log_dir: str = GeneralPath.LOG_PATH) -> logging.Logger:
    """
    Return a named logger writing to the console and to `<log_dir>/<name>.log`.

    Handlers are attached once per logger name, so repeated calls are cheap.

    Args:
        name: Logger name (module name or short tag)
        level: Logging level
        log_dir: Directory for the log file

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    logger.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)
    file_name = name if name.endswith(".log") else f"{name}.log"
    file_handler = logging.FileHandler(log_path / file_name)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    logger.propagate = False
    return logger

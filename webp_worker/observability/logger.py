"""Logging configuration for the worker (stdlib logging, stdout handler)."""

import logging
import sys


def configure_logging(level: str = "INFO", force: bool = True) -> None:
    """Install a single stdout handler on the root logger.

    With force=False an already configured root logger is left alone, so a
    host that set up logging itself keeps its handlers.
    """
    root_logger = logging.getLogger()
    if root_logger.handlers and not force:
        return
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )

    root_logger.setLevel(level.upper())
    root_logger.addHandler(handler)

    # Per-request access lines duplicate our own job logs
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)

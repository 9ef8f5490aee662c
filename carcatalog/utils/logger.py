"""
Logging for carcatalog.

All modules log below the "carcatalog" logger, so one LOG_LEVEL controls the
resolver's strategy and fallback messages as well as the session's recompute
summaries. LOG_LEVEL=DEBUG adds per-batch image preload timings.
"""
import logging
import os
import sys

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger("carcatalog")


def _configure(package_logger: logging.Logger) -> None:
    package_logger.setLevel(LOG_LEVEL)
    if not package_logger.handlers:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(LOG_LEVEL)
        console_handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        package_logger.addHandler(console_handler)
    # Uvicorn configures the root logger; catalog lines would print twice
    package_logger.propagate = False


_configure(logger)


def get_logger(name: str = None) -> logging.Logger:
    """
    Get the package logger or one of its children.

    Args:
        name: Module path below the package, e.g. "data.resolver" for
            carcatalog.data.resolver

    Returns:
        Logger instance
    """
    if name:
        return logging.getLogger(f"carcatalog.{name}")
    return logger

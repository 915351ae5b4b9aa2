"""Console logging for the fs-model command."""

import logging

from rich.logging import RichHandler


def configure_logging(verbose: bool = False) -> logging.Logger:
    """Route the package's log records to a Rich console handler."""
    logger = logging.getLogger("fsmodel")
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        logger.addHandler(RichHandler(show_path=False, log_time_format="%H:%M:%S"))
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    return logger

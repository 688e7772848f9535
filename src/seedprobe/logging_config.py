"""
Logging for seedprobe.

Every module logs through ``get_logger(__name__)`` into the ``seedprobe``
logger tree. As a library, seedprobe leaves the root logger alone: the
package logger carries a ``NullHandler`` until ``setup_logging`` (called by
the CLI) attaches a rich console handler to it. Host applications that
embed the detector keep their own handlers and may route ``seedprobe``
records wherever they like.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

PACKAGE_LOGGER = "seedprobe"

# DetectionConfig.verbosity -> level of the package logger
VERBOSITY_LEVELS = {
    "quiet": logging.ERROR,
    "normal": logging.WARNING,
    "verbose": logging.DEBUG,
}

logging.getLogger(PACKAGE_LOGGER).addHandler(logging.NullHandler())


def setup_logging(verbosity: str = "normal", log_file: Optional[str] = None) -> logging.Logger:
    """
    Attach seedprobe's handlers to the package logger.

    Calling it again replaces the handlers installed by the previous call,
    so the CLI can reconfigure after loading settings. Records stop at the
    package logger and never reach root handlers.

    Args:
        verbosity: quiet, normal or verbose (see DetectionConfig.verbosity)
        log_file: Optional file that also receives every record at the
            chosen level

    Returns:
        The configured ``seedprobe`` logger
    """
    try:
        level = VERBOSITY_LEVELS[verbosity]
    except KeyError:
        raise ValueError(f"unknown verbosity '{verbosity}'") from None
    verbose = verbosity == "verbose"

    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        if getattr(handler, "_seedprobe_handler", False):
            logger.removeHandler(handler)
            handler.close()

    handlers: list[logging.Handler] = [
        RichHandler(
            console=Console(stderr=True),
            rich_tracebacks=True,
            tracebacks_show_locals=verbose,
            markup=False,
            show_time=verbose,
            show_path=verbose,
        )
    ]
    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
            )
        )
        handlers.append(file_handler)

    for handler in handlers:
        handler._seedprobe_handler = True  # type: ignore[attr-defined]
        handler.setLevel(level)
        logger.addHandler(handler)

    logger.setLevel(level)
    logger.propagate = False
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Logger for a seedprobe module.

    Args:
        name: Module name such as ``seedprobe.cache.manager``. Names outside
            the package are nested under it; None returns the package logger.
    """
    if name is None:
        return logging.getLogger(PACKAGE_LOGGER)

    if not name.startswith(PACKAGE_LOGGER):
        name = f"{PACKAGE_LOGGER}.{name}"

    return logging.getLogger(name)

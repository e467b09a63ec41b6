"""Centralized logging configuration."""

import logging
from typing import Optional

PACKAGE_LOGGER = "commute_rain"


def configure_logging(level: int = logging.INFO) -> None:
    """
    Configure a consistent logging format for the entire application.
    """
    formatter = logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove any existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Debug output is gated per invocation, so the package logger lets it through
    logging.getLogger(PACKAGE_LOGGER).setLevel(logging.DEBUG)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


class InvocationLogger(logging.LoggerAdapter):
    """Logger adapter carrying the verbosity of a single notifier run.

    ``debug`` records are dropped unless ``verbose`` is set, so two runs in the
    same process never share a debug switch.
    """

    def __init__(self, logger: logging.Logger, verbose: bool = False):
        super().__init__(logger, {})
        self.verbose = verbose

    def isEnabledFor(self, level: int) -> bool:
        if level <= logging.DEBUG and not self.verbose:
            return False
        return self.logger.isEnabledFor(level)


def get_invocation_logger(name: str, verbose: bool = False) -> InvocationLogger:
    return InvocationLogger(logging.getLogger(name), verbose=verbose)


def ensure_logger(log: Optional[InvocationLogger], name: str) -> InvocationLogger:
    """Fall back to a quiet logger when the caller did not pass one."""

    return log if log is not None else get_invocation_logger(name)

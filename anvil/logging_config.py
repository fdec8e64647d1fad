"""Logging configuration for Anvil.

Library modules only ever call ``logging.getLogger(__name__)``; handlers are
installed by the calling layer through :func:`setup_logging`.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "anvil"
PLAIN_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

# Marks handlers installed here so repeated calls replace rather than stack.
_HANDLER_ATTR = "_anvil_handler"


def setup_logging(
    level: int | str = "INFO",
    *,
    rich_output: bool = True,
    console: Console | None = None,
) -> logging.Logger:
    """Configure the ``anvil`` logger hierarchy.

    Args:
        level: Log level name or number.
        rich_output: Use a Rich handler (coloured, with markup) when ``True``,
            a plain stream handler with :data:`PLAIN_FORMAT` otherwise.
        console: Optional Rich console to write to (defaults to stderr).

    Returns:
        The configured ``anvil`` logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_ATTR, False):
            logger.removeHandler(handler)

    handler: logging.Handler
    if rich_output:
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT))

    setattr(handler, _HANDLER_ATTR, True)
    logger.addHandler(handler)
    return logger

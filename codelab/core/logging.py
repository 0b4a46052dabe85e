"""
Logging helpers for CodeLab.

Library modules only ask for loggers; handlers are installed by the entry
points (CLI and server) through ``configure_logging``.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER_NAME = "codelab"


def get_logger(name: str) -> logging.Logger:
    """Return a logger inside the ``codelab`` namespace."""
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def configure_logging(
    level: str | int = "INFO",
    *,
    rich_output: bool = True,
    console: Console | None = None,
) -> logging.Logger:
    """
    Install a single handler on the ``codelab`` root logger.

    Args:
        level: Logging level name or number
        rich_output: Use a Rich handler instead of a plain stream handler
        console: Console for the Rich handler (defaults to stderr)

    Returns:
        The configured root logger
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler: logging.Handler
    if rich_output:
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )

    root.addHandler(handler)
    root.setLevel(level)
    return root

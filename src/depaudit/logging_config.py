"""
Logging configuration for depaudit.

Console logs go through rich on stderr so stdout stays free for reports.
A log file, when requested, always records DEBUG output: the per
configuration dependency sets end up there even on a quiet console.
"""

import logging
from typing import Iterable, Optional

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "depaudit"


def setup_logging(
    verbose: bool = False, quiet: bool = False, log_file: Optional[str] = None
) -> logging.Logger:
    """
    Configure logging with rich handler for colored output.

    Args:
        verbose: Enable DEBUG level console logging (includes the intermediate
            dependency sets computed for every configuration)
        quiet: Suppress all but ERROR level console logging
        log_file: Optional file path to append DEBUG logs to

    Returns:
        Configured logger instance for depaudit
    """
    if quiet:
        console_level = logging.ERROR
    elif verbose:
        console_level = logging.DEBUG
    else:
        console_level = logging.WARNING

    rich_handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        tracebacks_show_locals=verbose,
        markup=False,
        show_time=verbose,
        show_path=verbose,
    )
    rich_handler.setLevel(console_level)
    handlers: list[logging.Handler] = [rich_handler]

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
            )
        )
        handlers.append(file_handler)

    level = logging.DEBUG if log_file else console_level
    logging.basicConfig(level=level, format="%(message)s", datefmt="[%X]", handlers=handlers)

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    if log_file and file_handler not in logging.getLogger().handlers:
        # basicConfig is a no-op once the root logger has handlers
        logger.addHandler(file_handler)

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger instance for a specific module.

    Args:
        name: Module name (e.g., 'depaudit.analysis.index')
              If None, returns the root depaudit logger

    Returns:
        Logger instance
    """
    if name is None:
        return logging.getLogger(ROOT_LOGGER)

    if not name.startswith(ROOT_LOGGER):
        name = f"{ROOT_LOGGER}.{name}"

    return logging.getLogger(name)


def log_dependency_sets(logger: logging.Logger, configuration: str, **sets: Iterable) -> None:
    """Log each named coordinate set of a configuration on one DEBUG line.

    Members are sorted so log files diff cleanly between runs.
    """
    if not logger.isEnabledFor(logging.DEBUG):
        return
    for label, members in sets.items():
        rendered = ", ".join(sorted(str(m) for m in members)) or "<none>"
        logger.debug(f"[{configuration}] {label}: {rendered}")

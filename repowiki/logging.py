"""Logging setup for interactive commands and detached hook workers."""

from __future__ import annotations

import logging
from pathlib import Path

from .config import hook_log_path

ROOT_LOGGER = "repowiki"

CONSOLE_FORMAT = "[repowiki] %(levelname)s %(message)s"
# Several workers may append to the same hook log; the pid tells them apart.
WORKER_FORMAT = "%(asctime)s pid=%(process)d %(levelname)s %(name)s: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return ``repowiki.<name>``, or the package root logger."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}" if name else ROOT_LOGGER)


def configure_logging(
    *,
    verbose: bool = False,
    log_file: Path | None = None,
    console: bool = True,
) -> logging.Logger:
    """Route the ``repowiki`` hierarchy to stderr and/or ``log_file``.

    Calling it again replaces the previous handlers.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    logger.propagate = False
    _drop_handlers(logger)

    if console:
        logger.addHandler(_handler(logging.StreamHandler(), level, CONSOLE_FORMAT))
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.addHandler(
            _handler(logging.FileHandler(log_file, encoding="utf-8"), level, WORKER_FORMAT)
        )
    if not logger.handlers:
        logger.addHandler(logging.NullHandler())
    return logger


def configure_worker_logging(root: Path, *, verbose: bool = False) -> Path:
    """Send a hook-triggered worker's records to ``.repowiki/logs/hook.log`` only.

    The launcher already points the worker's stderr at that file, so a
    console handler would write every record twice.
    """
    path = hook_log_path(root)
    configure_logging(verbose=verbose, log_file=path, console=False)
    return path


def _handler(handler: logging.Handler, level: int, fmt: str) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def _drop_handlers(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


__all__ = ["configure_logging", "configure_worker_logging", "get_logger"]

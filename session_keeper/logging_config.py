"""Logging for the keeper CLI: stderr console plus one rotating file per namespace.

``setup_logging()`` may be called more than once (bootstrap, then again once the
config is loaded). It only replaces the handlers it installed itself, so
handlers added by an embedding application or a test harness stay untouched.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from session_keeper.config import SESSION_CONFIG_NAMESPACE
from session_keeper.log_context import ContextFilter
from session_keeper.paths import KeeperPaths

MAX_BYTES = 2 * 1024 * 1024
BACKUP_COUNT = 3

CONSOLE_FMT = "%(levelname)-8s %(ctx)s%(message)s"
FILE_FMT = "%(asctime)s [%(levelname)s] %(name)s: %(ctx)s%(message)s"
FILE_DATE_FMT = "%Y-%m-%d %H:%M:%S"

logger = logging.getLogger(__name__)

_installed: list[logging.Handler] = []


def log_file_for(paths: KeeperPaths, namespace: str = SESSION_CONFIG_NAMESPACE) -> Path:
    """Log file of one store namespace; namespaces are validated as file-safe names."""
    return paths.logs_dir / f"{namespace}.log"


def shutdown_logging() -> None:
    """Detach and close every handler installed by ``setup_logging``."""
    root = logging.getLogger()
    while _installed:
        handler = _installed.pop()
        root.removeHandler(handler)
        handler.close()


def _install(handler: logging.Handler, level: int, formatter: logging.Formatter) -> None:
    handler.setLevel(level)
    handler.addFilter(ContextFilter())
    handler.setFormatter(formatter)
    logging.getLogger().addHandler(handler)
    _installed.append(handler)


def setup_logging(
    level: int = logging.INFO,
    verbose: bool = False,
    *,
    paths: KeeperPaths | None = None,
    namespace: str = SESSION_CONFIG_NAMESPACE,
) -> Path | None:
    """Configure the root logger and return the log file in use, if any.

    Args:
        level: Minimum level for the root logger and the console.
        verbose: Forces DEBUG.
        paths: Keeper paths; when given, records also go to the namespace's
            rotating file under ``paths.logs_dir`` at every enabled level.
        namespace: Store namespace the log file is named after.
    """
    if verbose:
        level = logging.DEBUG

    shutdown_logging()
    logging.getLogger().setLevel(level)

    if sys.stderr is not None:
        _install(logging.StreamHandler(sys.stderr), level, logging.Formatter(CONSOLE_FMT))

    log_file = None
    if paths is not None:
        log_file = log_file_for(paths, namespace)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file, maxBytes=MAX_BYTES, backupCount=BACKUP_COUNT, encoding="utf-8"
        )
        _install(file_handler, logging.DEBUG, logging.Formatter(FILE_FMT, FILE_DATE_FMT))

    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logger.debug("Logging initialized (level=%s)", logging.getLevelName(level))
    return log_file

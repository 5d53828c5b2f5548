# mimepart/utils/logging_utils.py

import sys
from pathlib import Path
from typing import List, Optional, Union

from loguru import logger

from mimepart.utils.config import CONFIG

# Silent until the host application opts in
logger.disable("mimepart")

_LOGGER_CONFIGURED = False
_HANDLER_IDS: List[int] = []


def configure_logging(
    level: str = CONFIG.LOG_LEVEL,
    log_file: Optional[Union[str, Path]] = None,
) -> List[int]:
    """
    Configure loguru to log codec events to stderr and, optionally, a file.
    Idempotent: safe to call multiple times.

    Returns the ids of the handlers added, for use with logger.remove().
    """
    global _LOGGER_CONFIGURED
    if _LOGGER_CONFIGURED:
        return list(_HANDLER_IDS)

    # Remove default handlers (so we don't double-log)
    logger.remove()

    # Console
    console_id = logger.add(
        sink=sys.stderr,
        level=level,
        backtrace=False,
        diagnose=False,
    )
    _HANDLER_IDS.append(console_id)

    # File
    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_id = logger.add(
            log_path,
            rotation="10 MB",
            retention="14 days",
            level=level,
            backtrace=False,
            diagnose=False,
            enqueue=True,
            encoding="utf-8",
        )
        _HANDLER_IDS.append(file_id)

    logger.enable("mimepart")
    _LOGGER_CONFIGURED = True
    return list(_HANDLER_IDS)


def get_logger():
    """
    Return the shared loguru logger. Records from mimepart are dropped
    until configure_logging() has been called.
    """
    return logger

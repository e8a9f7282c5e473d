"""Logging configuration for the setman CLI.

Settings values are printed on stdout, so every log record goes to stderr
(and optionally a file). The level comes from the ``logging.level`` config
key as a name such as ``debug`` or ``WARNING``.
"""

import logging
import sys
from typing import Optional

DEFAULT_LEVEL_NAME = 'WARNING'
DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

def setup_logging(
    level_name: str = DEFAULT_LEVEL_NAME,
    log_format: str = DEFAULT_LOG_FORMAT,
    log_file: Optional[str] = None,
) -> int:
    """Configures the root logger and returns the numeric level in effect.

    Args:
        level_name: Case-insensitive level name, e.g. 'debug' or 'INFO'.
        log_format: The format string for log messages.
        log_file: Optional path to a file that receives the same records.

    Raises:
        ValueError: If level_name is not a known logging level.
    """
    level = logging.getLevelName(str(level_name).strip().upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {level_name!r}")

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(log_format)
    _add_handler(root_logger, logging.StreamHandler(sys.stderr), level, formatter)
    if log_file:
        try:
            _add_handler(root_logger, logging.FileHandler(log_file, encoding='utf-8'), level, formatter)
        except OSError as e:
            logging.error(f"Failed to set up file logging to {log_file}: {e}")

    logging.debug(f"Logging configured. Level={logging.getLevelName(level)}, file={log_file}")
    return level

def _add_handler(root_logger: logging.Logger, handler: logging.Handler, level: int,
                 formatter: logging.Formatter) -> None:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

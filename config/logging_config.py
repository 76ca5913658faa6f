"""
Logging for Math Capture.

The console and rotating file handlers live on the ``mathcapture`` logger
only. Modules log through ``get_logger(__name__)``, which hands out a child
of that logger, so records from every module reach the same two handlers
and the log file is rotated by a single handler.
"""
import logging
import logging.handlers
from pathlib import Path
from .constants import (
    LOG_LEVEL, LOG_FORMAT, LOG_FILE,
    LOG_MAX_SIZE_MB, LOG_BACKUP_COUNT
)

ROOT_LOGGER_NAME = 'mathcapture'


def _configure_root() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if root.handlers:
        return root

    root.setLevel(getattr(logging, LOG_LEVEL))
    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler()
    console.setLevel(logging.INFO)
    console.setFormatter(formatter)
    root.addHandler(console)

    Path(LOG_FILE).parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.handlers.RotatingFileHandler(
        LOG_FILE,
        maxBytes=LOG_MAX_SIZE_MB * 1024 * 1024,
        backupCount=LOG_BACKUP_COUNT
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)

    return root


def setup_logger(name: str = None) -> logging.Logger:
    """
    Return the logger for ``name`` inside the ``mathcapture`` hierarchy.

    Names outside the hierarchy (``config.settings``, ``quick_capture``) are
    nested under it. Handlers are attached once, to the hierarchy's root.

    Args:
        name: Usually the caller's ``__name__``. None returns the root.
    """
    root = _configure_root()
    if not name or name == ROOT_LOGGER_NAME:
        return root
    if not name.startswith(ROOT_LOGGER_NAME + '.'):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def get_logger(name: str = None) -> logging.Logger:
    """Alias for setup_logger."""
    return setup_logger(name)


def set_console_level(level: int) -> None:
    """Change console verbosity (CLI --verbose). The file handler is left as is."""
    root = _configure_root()
    for handler in root.handlers:
        if not isinstance(handler, logging.handlers.RotatingFileHandler):
            handler.setLevel(level)
    root.setLevel(min(level, root.level))


logger = setup_logger(ROOT_LOGGER_NAME)

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from vetcare.config import get_settings

settings = get_settings()

ROOT_LOGGER = "vetcare"
MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5

_CONSOLE_FORMAT = logging.Formatter(
    "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
_FILE_FORMAT = logging.Formatter(
    "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)


def _rotating(path: Path, level: int) -> RotatingFileHandler:
    handler = RotatingFileHandler(path, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(_FILE_FORMAT)
    return handler


def configure_logging() -> logging.Logger:
    """Attach console, app.log and errors.log handlers to the service logger.

    Safe to call more than once: existing handlers are replaced.
    """
    level = logging.DEBUG if settings.APP_DEBUG else logging.INFO
    logs_dir = Path(settings.LOG_DIR)
    logs_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(_CONSOLE_FORMAT)
    root.addHandler(console)
    root.addHandler(_rotating(logs_dir / "app.log", logging.INFO))
    root.addHandler(_rotating(logs_dir / "errors.log", logging.ERROR))
    return root


logger = configure_logging()


def get_logger(name: str | None = None) -> logging.Logger:
    """Service logger, or one of its children when ``name`` is given."""
    return logger.getChild(name) if name else logger

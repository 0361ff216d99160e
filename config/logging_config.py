"""Logging configuration with file rotation."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_MAX_BYTES = 10 * 1024 * 1024
_BACKUP_COUNT = 5


def _rotating_handler(path: Path, level: int, formatter: logging.Formatter) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        str(path),
        maxBytes=_MAX_BYTES,
        backupCount=_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    level: int = logging.INFO,
    log_dir: Optional[str | Path] = None,
    console_enabled: bool = True,
) -> None:
    """Configure application-wide logging with console and file handlers.

    Args:
        level: Logging level (e.g., logging.DEBUG, logging.INFO).
        log_dir: Directory for log files. Defaults to ./data/logs.
        console_enabled: Whether to output to console.
    """
    log_dir = Path(log_dir or "./data/logs")
    log_dir.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Re-init must not stack handlers
    root_logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    if console_enabled:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    root_logger.addHandler(_rotating_handler(log_dir / "bookgen.log", level, formatter))

    # Provider calls get their own file, always at DEBUG
    provider_logger = logging.getLogger("tools.agent_sdk_client")
    provider_logger.handlers.clear()
    provider_logger.addHandler(
        _rotating_handler(log_dir / "provider_calls.log", logging.DEBUG, formatter)
    )

    # uvicorn installs its own handlers; route them through ours
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uv_logger = logging.getLogger(name)
        uv_logger.handlers.clear()
        uv_logger.propagate = True

    logging.getLogger(__name__).debug("Logging initialized: level=%s, dir=%s", level, log_dir)

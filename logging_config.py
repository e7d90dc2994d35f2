"""
Centralized logging configuration for PrintQueueWeb.

Uploads run on one worker thread per document copy, plus one thread per
upload session, so every log line carries the name of the thread that
produced it.

Log Format:
    2026-10-19 10:15:30 [INFO    ] [MainThread] app - Starting application
    2026-10-19 10:15:31 [INFO    ] [Upload-a1b2c3d4] session.a1b2c3d4 - Session started: 3 units
    2026-10-19 10:15:32 [DEBUG   ] [Upload-a1b2c3d4-2] core.upload_client - Upload accepted

Usage:
    # At application startup
    from logging_config import setup_logging, get_logger

    setup_logging(log_level=logging.INFO, enable_file_logging=False)

    # In modules
    logger = get_logger(__name__)

    # For upload sessions
    session_logger = get_session_logger(session_id)
"""

import logging
import sys
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


APP_LOGGER_NAME = "print_queue_web"

LOG_FORMAT = "%(asctime)s [%(levelname)-8s] [%(thread_name)s] %(name)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 5


class ThreadContextFilter(logging.Filter):
    """
    Adds ``thread_name`` and ``thread_id`` to every record.

    Never filters anything out.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        current_thread = threading.current_thread()
        record.thread_name = current_thread.name
        record.thread_id = threading.get_ident()
        return True


def _rotating_handler(
    path: Path,
    level: int,
    formatter: logging.Formatter,
    thread_filter: logging.Filter,
) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        filename=path,
        maxBytes=MAX_LOG_BYTES,
        backupCount=LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(thread_filter)
    return handler


def setup_logging(
    app_name: str = APP_LOGGER_NAME,
    log_level: int = logging.INFO,
    log_dir: Optional[Path] = None,
    enable_file_logging: bool = True,
) -> logging.Logger:
    """
    Configure application logging with thread context.

    A console handler is always installed. With file logging enabled, a
    rotating log for all levels and a second one for ERROR and above are
    written to ``log_dir``.

    Args:
        app_name: Name of the application root logger
        log_level: Minimum log level
        log_dir: Directory for log files (default: ./logs next to this file)
        enable_file_logging: Whether to write log files

    Returns:
        The configured application root logger
    """
    logger = logging.getLogger(app_name)
    logger.setLevel(log_level)
    logger.propagate = False

    # Allow re-configuration (create_app may run several times in tests)
    logger.handlers.clear()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    thread_filter = ThreadContextFilter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(thread_filter)
    logger.addHandler(console_handler)

    if enable_file_logging:
        if log_dir is None:
            log_dir = Path(__file__).parent / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)

        app_log_file = log_dir / f"{app_name}.log"
        logger.addHandler(
            _rotating_handler(app_log_file, log_level, formatter, thread_filter)
        )
        logger.addHandler(
            _rotating_handler(
                log_dir / f"{app_name}_error.log", logging.ERROR, formatter, thread_filter
            )
        )

        logger.info(f"File logging enabled: {app_log_file}")

    logger.info(f"Logging configured at level {logging.getLevelName(log_level)}")
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger under the application namespace.

    ``services.print_queue`` becomes ``print_queue_web.services.print_queue``
    so it inherits the handlers installed by setup_logging().
    """
    if not name.startswith(APP_LOGGER_NAME):
        name = f"{APP_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def get_session_logger(session_id: str) -> logging.Logger:
    """
    Get a logger for one upload session.

    Only the first 8 characters of the session ID are used, e.g.
    ``print_queue_web.session.a1b2c3d4``.
    """
    short_id = session_id[:8]
    return logging.getLogger(f"{APP_LOGGER_NAME}.session.{short_id}")


def set_thread_name(name: str) -> None:
    """Rename the current thread; the name shows up in the [thread_name] field."""
    threading.current_thread().name = name

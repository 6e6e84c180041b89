"""Logging configuration for cluster monitor."""

import logging
from pathlib import Path

DEBUG_LOG_FILE = Path("cluster-monitor.log")


def setup_logging(debug: bool = False, log_file: Path | None = None) -> None:
    """Configure logging for the dashboard.

    The terminal belongs to the TUI while it runs, so nothing is written to
    stderr. In debug mode every record goes to a log file which is truncated
    at startup.

    Args:
        debug: If True, log requests, responses and state transitions
        log_file: Log file path, defaults to DEBUG_LOG_FILE
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    if not debug:
        root_logger.setLevel(logging.WARNING)
        root_logger.addHandler(logging.NullHandler())
        return

    root_logger.setLevel(logging.DEBUG)

    formatter = logging.Formatter(
        "[%(asctime)s.%(msecs)03d] %(name)s %(levelname)s: %(message)s", datefmt="%H:%M:%S"
    )

    path = log_file or DEBUG_LOG_FILE
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, mode="w", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
    except OSError as e:
        root_logger.addHandler(logging.NullHandler())
        logging.warning(f"Failed to create log file handler: {e}")

    # Set levels for noisy libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)

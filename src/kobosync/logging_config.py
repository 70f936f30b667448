# ABOUTME: Diagnostic logging setup: a Rich console handler on stderr plus an optional log file.
# ABOUTME: User-facing status lines go through the CLI's own Console, not through logging.

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

_logging_initialized = False


def setup_logging(log_level: str = "WARNING", log_file: Path | None = None) -> None:
    """Initialize logging with a stderr Rich handler and, optionally, a rotating file.

    Calling it again is a no-op, so CLI commands can call it unconditionally.

    Args:
        log_level: Console logging level (DEBUG, INFO, WARNING, ERROR).
        log_file: Where to write a full DEBUG log, if anywhere.
    """
    global _logging_initialized

    if _logging_initialized:
        return

    numeric_level = getattr(logging, log_level.upper(), logging.WARNING)

    console_handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        show_time=False,
        show_path=False,
    )
    console_handler.setLevel(numeric_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=1024 * 1024,
            backupCount=2,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(levelname)-8s - %(name)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        root_logger.addHandler(file_handler)

    logging.getLogger("PIL").setLevel(logging.WARNING)

    _logging_initialized = True

"""
Logging configuration for chainlens.
One concise stream handler on the root logger; noisy HTTP loggers are quietened.
"""
import logging
import sys
from typing import Union


class ConciseFormatter(logging.Formatter):
    """Single-line, concise log format."""

    FORMATS = {
        logging.DEBUG: "[D] %(name)s: %(message)s",
        logging.INFO: "[I] %(message)s",
        logging.WARNING: "[W] %(message)s",
        logging.ERROR: "[E] %(name)s: %(message)s",
        logging.CRITICAL: "[!] %(name)s: %(message)s",
    }

    def format(self, record):
        log_fmt = self.FORMATS.get(record.levelno, self.FORMATS[logging.INFO])
        formatter = logging.Formatter(log_fmt)
        return formatter.format(record)


def setup_logging(level: Union[int, str] = logging.INFO) -> None:
    """
    Configure logging for the process. Call this once at startup.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    for logger_name in ("urllib3", "requests"):
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(ConciseFormatter())
    root.addHandler(handler)

    logging.getLogger("chainlens").setLevel(level)

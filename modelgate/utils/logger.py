"""
Logging utilities.

WHAT: Root logger setup, module loggers, and credential masking
WHY: API keys travel through request headers and error bodies; none may reach a log line
HOW: Console + file handlers sharing a SecretMaskingFilter, level and path from settings
"""

import logging
import re
import sys
from pathlib import Path

from ..core.config import settings

CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(pathname)s:%(lineno)d - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Bearer tokens and sk-style API keys
SECRET_PATTERNS = (
    re.compile(r"(?<=Bearer )[^\s\"',]+"),
    re.compile(r"\bsk-[A-Za-z0-9_\-]{8,}"),
)


def mask_secret(secret: str | None) -> str:
    """Log-safe rendering of a credential (last 4 characters kept)."""
    if not secret:
        return "<none>"
    return "*" * 10 + secret[-4:] if len(secret) > 4 else "***"


class SecretMaskingFilter(logging.Filter):
    """Rewrites records so credentials appear masked."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = message
        for pattern in SECRET_PATTERNS:
            masked = pattern.sub(lambda match: mask_secret(match.group(0)), masked)
        if masked != message:
            record.msg = masked
            record.args = None
        return True


def setup_logging(level: str | None = None, log_file: str | Path | None = None) -> None:
    """
    Configure application logging.

    Args:
        level: Root level name (defaults to settings.LOG_LEVEL)
        log_file: File handler target (defaults to settings.LOG_FILE)
    """
    level = level or settings.LOG_LEVEL
    log_path = Path(log_file or settings.LOG_FILE)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    root_logger.handlers.clear()

    masking = SecretMaskingFilter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    console_handler.addFilter(masking)
    root_logger.addHandler(console_handler)

    file_handler = logging.FileHandler(log_path)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
    file_handler.addFilter(masking)
    root_logger.addHandler(file_handler)

    root_logger.info(f"Logging initialized (level={level}, file={log_path})")


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a module (typically ``__name__``)."""
    return logging.getLogger(name)

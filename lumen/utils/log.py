"""Logging for Lumen.

Everything logs through one ``lumen`` logger. The console shows warnings and
up (``LUMEN_LOG_LEVEL`` changes that); ``init_logger(log_dir)`` adds a daily
debug file whose lines end with the record's ``extra`` fields as JSON.
API keys must never reach a log in full: extras named in ``SECRET_FIELDS``
are masked by the formatter whatever the caller passed.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional


LOGGER_NAME = "lumen"
LOG_LEVEL_ENV = "LUMEN_LOG_LEVEL"
MASK = "****"

SECRET_FIELDS = frozenset({"key", "api_key", "secret", "authorization"})

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRIBUTES = frozenset(
    vars(logging.LogRecord(LOGGER_NAME, logging.INFO, "", 0, "", (), None))
) | {"message", "asctime"}


def mask_secret(secret: Optional[str]) -> str:
    """Render a secret for logs: never more than its last four characters."""
    if not secret:
        return ""
    secret = str(secret)
    if secret.startswith(MASK):
        return secret
    if len(secret) <= 8:
        return MASK
    return f"{MASK}{secret[-4:]}"


def record_extras(record: logging.LogRecord) -> Dict[str, Any]:
    """``extra`` fields of a record, with secret-bearing ones masked."""
    extras: Dict[str, Any] = {}
    for name, value in record.__dict__.items():
        if name in _RECORD_ATTRIBUTES or name.startswith("_"):
            continue
        extras[name] = mask_secret(value) if name in SECRET_FIELDS else value
    return extras


class StructuredFormatter(logging.Formatter):
    """UTC ISO timestamps, then ``message | {extras as JSON}``."""

    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:
        timestamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
        return timestamp.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        extras = record_extras(record)
        if not extras:
            return message
        return f"{message} | {json.dumps(extras, sort_keys=True, default=str)}"


class LumenLogger:
    """Thin wrapper over the ``lumen`` logger with an optional debug file."""

    def __init__(self) -> None:
        self.logger = logging.getLogger(LOGGER_NAME)
        self.logger.setLevel(logging.DEBUG)
        self.logger.propagate = False
        self._file_handler: Optional[logging.FileHandler] = None

        if not self.logger.handlers:
            level_name = os.getenv(LOG_LEVEL_ENV, "WARNING").upper()
            console = logging.StreamHandler(sys.stderr)
            console.setLevel(getattr(logging, level_name, logging.WARNING))
            console.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
            self.logger.addHandler(console)

    def log_to(self, log_dir: Path) -> Path:
        """Write debug records to ``log_dir/lumen_YYYYMMDD.log``."""
        log_file = log_dir / f"{LOGGER_NAME}_{datetime.now().strftime('%Y%m%d')}.log"
        if self._file_handler is not None:
            if self._file_handler.baseFilename == os.path.abspath(log_file):
                return log_file
            self.logger.removeHandler(self._file_handler)
            self._file_handler.close()

        log_dir.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(StructuredFormatter("%(asctime)s [%(levelname)s] %(message)s"))
        self.logger.addHandler(handler)
        self._file_handler = handler
        return log_file

    def debug(self, message: str, *args: Any, **kwargs: Any) -> None:
        self.logger.debug(message, *args, **kwargs)

    def info(self, message: str, *args: Any, **kwargs: Any) -> None:
        self.logger.info(message, *args, **kwargs)

    def warning(self, message: str, *args: Any, **kwargs: Any) -> None:
        self.logger.warning(message, *args, **kwargs)

    def error(self, message: str, *args: Any, **kwargs: Any) -> None:
        self.logger.error(message, *args, **kwargs)


_logger: Optional[LumenLogger] = None


def get_logger() -> LumenLogger:
    global _logger
    if _logger is None:
        _logger = LumenLogger()
    return _logger


def init_logger(log_dir: Optional[Path] = None) -> LumenLogger:
    """Return the shared logger, also writing to ``log_dir`` when given."""
    logger = get_logger()
    if log_dir is not None:
        logger.log_to(log_dir)
    return logger

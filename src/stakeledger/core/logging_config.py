"""
Structured JSON logging for the staking ledger.

Ledger modules log through ``logging.getLogger(__name__)`` and attach an
``event`` key (``staking.deposit``, ``accrual.settled``, ...) plus amounts
and truncated addresses via ``extra``. ``setup_ledger_logging`` is the
entry point an embedding service calls once to turn those records into
JSON lines:

    from stakeledger import setup_ledger_logging

    setup_ledger_logging(environment="staging")

Each JSON line carries the ledger fields at top level, a ``component``
derived from the event prefix, and amounts beyond the IEEE-754 safe
integer range as decimal strings so 1e18-scaled values survive JSON
consumers that parse numbers as doubles.
"""

import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from .exceptions import ConfigurationError

LEDGER_LOGGER_NAME = "stakeledger"

# Largest integer a double represents exactly
MAX_SAFE_INTEGER = 2**53 - 1

LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class LedgerJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter for ledger records."""

    def __init__(self, environment: str = "production", service_name: str = LEDGER_LOGGER_NAME):
        super().__init__(fmt="%(timestamp)s %(level)s %(name)s %(message)s")
        self.environment = environment
        self.service_name = service_name

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        if not log_record.get("timestamp"):
            log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        if not log_record.get("level"):
            log_record["level"] = record.levelname.lower()
        log_record["environment"] = self.environment
        log_record["service"] = self.service_name

        event = log_record.get("event")
        if isinstance(event, str) and "." in event:
            log_record["component"] = event.split(".", 1)[0]

        for key, value in list(log_record.items()):
            log_record[key] = _json_safe(value)

        log_record["source"] = {
            "function": record.funcName,
            "module": record.module,
            "line": record.lineno,
        }


def _json_safe(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and abs(value) > MAX_SAFE_INTEGER:
        return str(value)
    if isinstance(value, dict):
        return {k: _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    return value


def setup_ledger_logging(
    environment: Optional[str] = None,
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    enable_console: bool = True,
    max_bytes: int = 50 * 1024 * 1024,  # 50MB
    backup_count: int = 10,
) -> logging.Logger:
    """
    Route every ``stakeledger.*`` logger to JSON output.

    Unset arguments fall back to STAKELEDGER_ENV, STAKELEDGER_LOG_LEVEL and
    STAKELEDGER_LOG_DIR (file ``ledger-<environment>.json``). Calling it again
    replaces the previous handlers.

    Raises:
        ConfigurationError: If the level name is unknown
    """
    environment = environment or os.getenv("STAKELEDGER_ENV", "production")
    level_name = (level or os.getenv("STAKELEDGER_LOG_LEVEL", "INFO")).upper()
    if level_name not in LEVELS:
        raise ConfigurationError(
            f"Unknown log level {level_name!r}", details={"levels": list(LEVELS)}
        )
    if log_file is None:
        log_dir = os.getenv("STAKELEDGER_LOG_DIR", "")
        log_file = os.path.join(log_dir, f"ledger-{environment}.json") if log_dir else None

    logger = logging.getLogger(LEDGER_LOGGER_NAME)
    logger.setLevel(getattr(logging, level_name))
    for handler in logger.handlers:
        handler.close()
    logger.handlers = []

    formatter = LedgerJsonFormatter(environment=environment)

    if enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file:
        try:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                filename=log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
            )
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
        except OSError as e:
            logger.warning(f"Could not create file handler for {log_file}: {e}")

    return logger

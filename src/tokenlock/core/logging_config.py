"""
Structured JSON logging for tokenlock.

Contracts log with ``extra={"event": ..., "ledger": ..., ...}``; every one of
those fields lands as a top-level key of a single JSON object per record,
next to the environment and service the process runs as.

Usage:
    from tokenlock.config_manager import get_config_manager
    from tokenlock.core.logging_config import setup_logging

    config = get_config_manager()
    setup_logging(config.logging, environment=config.environment.value)
"""

import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List

from pythonjsonlogger import jsonlogger

if TYPE_CHECKING:
    from tokenlock.config_manager import LoggingConfig

ROTATE_BYTES = 5 * 1024 * 1024
ROTATE_KEEP = 3


class LedgerJsonFormatter(jsonlogger.JsonFormatter):
    """Stamps each record with its time, level, environment, service and origin."""

    def __init__(self, environment: str, service: str = "tokenlock"):
        super().__init__("%(name)s %(message)s")
        self.environment = environment
        self.service = service

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.fromtimestamp(record.created, timezone.utc).isoformat()
        log_record["level"] = record.levelname.lower()
        log_record["environment"] = self.environment
        log_record["service"] = self.service
        log_record["origin"] = f"{record.module}:{record.funcName}:{record.lineno}"


def setup_logging(
    settings: "LoggingConfig",
    environment: str,
    name: str = "tokenlock",
) -> logging.Logger:
    """
    (Re)configure the ``name`` logger from a logging config section.

    Handlers from a previous call are closed and replaced, so the CLI can
    call this once per invocation.

    Args:
        settings: ``logging`` section of the configuration
        environment: Deployment environment stamped on every record
        name: Logger to configure; child loggers propagate into it

    Returns:
        The configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(settings.level.upper())

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = LedgerJsonFormatter(environment=environment, service=name.split(".")[0])
    for handler in _build_handlers(settings):
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger


def _build_handlers(settings: "LoggingConfig") -> List[logging.Handler]:
    handlers: List[logging.Handler] = []
    if settings.enable_console:
        # stdout is reserved for command output
        handlers.append(logging.StreamHandler(sys.stderr))

    if settings.enable_file and settings.log_file:
        log_path = Path(settings.log_file)
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(
                logging.handlers.RotatingFileHandler(
                    log_path, maxBytes=ROTATE_BYTES, backupCount=ROTATE_KEEP
                )
            )
        except OSError as exc:
            logging.getLogger(__name__).warning("Log file %s unavailable: %s", log_path, exc)
    return handlers

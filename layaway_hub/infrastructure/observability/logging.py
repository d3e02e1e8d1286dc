"""Structured JSON logging for production observability"""

import logging
import sys
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

from layaway_hub.config import settings
from layaway_hub.utils.date_utils import utcnow


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = utcnow().isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_transition(
    financing_request_id: str,
    action: str,
    outcome: str,
    status: str | None,
    duration_ms: float,
) -> None:
    """Log one lifecycle action with its result for the audit trail"""
    logging.info(
        "Financing action completed" if outcome == "ok" else "Financing action refused",
        extra={
            "financing_request_id": financing_request_id,
            "step": action,
            "outcome": outcome,
            "status": status,
            "duration_ms": duration_ms,
        },
    )

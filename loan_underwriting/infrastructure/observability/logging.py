"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from loan_underwriting.config import settings

logger = logging.getLogger("loan_underwriting")


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    root = logging.getLogger()
    root.setLevel(level)

    # Remove existing handlers
    root.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    root.addHandler(handler)


def log_transition(
    application_id: str,
    application_number: str,
    action: str,
    from_status: Optional[str],
    to_status: str,
    duration_ms: float,
) -> None:
    """Log structured transition outcome for analysis"""
    logger.info(
        "Transition completed",
        extra={
            "application_id": application_id,
            "application_number": application_number,
            "step": action,
            "from_status": from_status,
            "to_status": to_status,
            "duration_ms": duration_ms,
        },
    )


def log_rejected_operation(application_id: Optional[str], action: str, error: Exception) -> None:
    """Log a refused operation with its attributable reason"""
    logger.warning(
        f"{action} refused: {error}",
        extra={
            "application_id": application_id,
            "step": action,
            "error_type": type(error).__name__,
        },
    )

"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = "astral-forecast"


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


def log_analysis(
    request_id: str,
    user_id: str,
    score: int,
    alert_count: int,
    critical_count: int,
    duration_ms: float,
) -> None:
    """Log structured analysis outcome"""
    logging.info(
        "Analysis completed",
        extra={
            "request_id": request_id,
            "user_id": user_id,
            "step": "analysis_complete",
            "health_score": score,
            "alert_count": alert_count,
            "critical_alert_count": critical_count,
            "duration_ms": duration_ms,
        },
    )


def log_bill_recorded(
    request_id: str,
    obligation_id: str,
    entry_id: str,
    variance_cents: int,
    variance_percent: float,
) -> None:
    """Log a recorded or amended bill instance with its variance"""
    logging.info(
        "Bill instance recorded",
        extra={
            "request_id": request_id,
            "obligation_id": obligation_id,
            "entry_id": entry_id,
            "step": "bill_recorded",
            "variance_cents": variance_cents,
            "variance_percent": round(variance_percent, 2),
        },
    )

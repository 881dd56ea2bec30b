"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

SERVICE_NAME = "recycle-ledger"

logger = logging.getLogger("recycle_ledger")


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = SERVICE_NAME


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


def log_completion(
    request_id: str,
    appointment_id: str,
    user_id: str,
    credits_awarded: int,
    new_balance: int,
    duration_ms: float,
) -> None:
    """Log structured completion outcome for settlement audits"""
    logger.info(
        "Appointment completed",
        extra={
            "request_id": request_id,
            "appointment_id": appointment_id,
            "user_id": user_id,
            "step": "completion_settled",
            "credits_awarded": credits_awarded,
            "new_balance": new_balance,
            "duration_ms": duration_ms,
        },
    )


def log_claim(
    request_id: str,
    user_id: str,
    coupon_id: str,
    claim_id: str,
    credit_cost: int,
    remaining_balance: int,
    duration_ms: float,
) -> None:
    """Log structured coupon redemption outcome"""
    logger.info(
        "Coupon claimed",
        extra={
            "request_id": request_id,
            "user_id": user_id,
            "coupon_id": coupon_id,
            "claim_id": claim_id,
            "step": "coupon_claimed",
            "credit_cost": credit_cost,
            "remaining_balance": remaining_balance,
            "duration_ms": duration_ms,
        },
    )


def log_transaction_retry(name: str, attempt: int, error: Exception) -> None:
    logger.warning(
        "Ledger transaction conflict, retrying",
        extra={
            "transaction": name,
            "attempt": attempt,
            "error_type": type(error).__name__,
        },
    )

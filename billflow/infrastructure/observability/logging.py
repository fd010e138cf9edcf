"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger
from billflow.config import settings
from billflow.domain.models import PromotionSummary, SettlementSummary


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_settlement_summary(
    today: date,
    summary: SettlementSummary,
    duration_ms: float,
    namespace: Optional[str] = None,
) -> None:
    """Log one structured record per autopay run"""
    logging.info(
        "Autopay settlement completed",
        extra={
            "step": "autopay_complete",
            "run_date": today.isoformat(),
            "namespace": namespace,
            "processed": summary.processed,
            "errors": summary.errors,
            "failed_bill_ids": [str(f.bill_id) for f in summary.failures],
            "duration_ms": duration_ms,
        },
    )


def log_promotion_summary(
    today: date,
    summary: PromotionSummary,
    duration_ms: float,
    namespace: Optional[str] = None,
) -> None:
    logging.info(
        "Pending promotion completed",
        extra={
            "step": "promotion_complete",
            "run_date": today.isoformat(),
            "namespace": namespace,
            "updated": summary.updated,
            "duration_ms": duration_ms,
        },
    )

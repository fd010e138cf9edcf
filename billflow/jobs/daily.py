"""
Daily bill processing, invoked once per day by an external scheduler.

    billflow-daily [--date YYYY-MM-DD] [--namespace NS]

Runs autopay settlement, then pending promotion, and prints both summaries
as JSON. The HTTP endpoints call the same run_* functions.
"""

import argparse
import json
import logging
import sys
import time
from dataclasses import asdict
from datetime import date
from typing import List, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from billflow.config import settings
from billflow.domain.exceptions import BillFetchError, StorageError
from billflow.domain.models import PromotionSummary, SettlementSummary
from billflow.infrastructure.database.repositories import SqlBillRepository, SqlTransactionRepository, SqlUnitOfWork
from billflow.infrastructure.database.session import open_session
from billflow.infrastructure.observability.logging import log_promotion_summary, log_settlement_summary, setup_logging
from billflow.infrastructure.observability.metrics import (
    batch_duration_histogram,
    batch_fetch_failures_counter,
    record_promotion,
    record_settlement,
)
from billflow.services.settlement import AutopaySettlementBatch, PendingPromotionBatch
from billflow.utils.date_utils import to_calendar_date, today_utc
from billflow.utils.deadline import Deadline


def _commit(db: Session, batch_name: str) -> None:
    """Commit a finished batch; a failed commit discards the whole run"""
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logging.error(f"Commit failed for {batch_name} batch: {e}", extra={"batch": batch_name})
        raise StorageError(f"Could not commit {batch_name} batch") from e


def run_autopay(
    db: Session,
    today: date,
    namespace: Optional[str] = None,
    deadline_seconds: Optional[float] = None,
) -> SettlementSummary:
    """
    Settle today's autopay bills and commit.

    Raises:
        BillFetchError: If the due bills cannot be fetched (nothing is committed)
        StorageError: If the run cannot be committed (nothing is committed)
    """
    start_time = time.time()
    batch = AutopaySettlementBatch(
        bills=SqlBillRepository(db),
        transactions=SqlTransactionRepository(db),
        unit_of_work=SqlUnitOfWork(db),
        include_overdue=settings.batch_include_overdue,
    )
    if deadline_seconds is None:
        deadline_seconds = settings.batch_deadline_seconds

    try:
        summary = batch.run(today, deadline=Deadline.from_seconds(deadline_seconds))
        _commit(db, "autopay")
    except BillFetchError:
        db.rollback()
        batch_fetch_failures_counter.labels(batch="autopay").inc()
        raise

    duration = time.time() - start_time
    batch_duration_histogram.labels(batch="autopay").observe(duration)
    record_settlement(summary)
    log_settlement_summary(today, summary, duration * 1000, namespace)
    return summary


def run_promotion(db: Session, today: date, namespace: Optional[str] = None) -> PromotionSummary:
    """
    Promote today's non-autopay bills to pending and commit.

    Raises:
        BillFetchError: If the bulk update fails
        StorageError: If the run cannot be committed
    """
    start_time = time.time()
    batch = PendingPromotionBatch(SqlBillRepository(db), include_overdue=settings.batch_include_overdue)

    try:
        summary = batch.run(today)
        _commit(db, "promotion")
    except BillFetchError:
        db.rollback()
        batch_fetch_failures_counter.labels(batch="promotion").inc()
        raise

    duration = time.time() - start_time
    batch_duration_histogram.labels(batch="promotion").observe(duration)
    record_promotion(summary)
    log_promotion_summary(today, summary, duration * 1000, namespace)
    return summary


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="billflow-daily", description="Run the daily bill batches")
    parser.add_argument("--date", type=to_calendar_date, default=None, help="Run date (YYYY-MM-DD), default today in UTC")
    parser.add_argument("--namespace", default=None, help="Data set to operate on")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(settings.log_level)
    today = args.date or today_utc()

    db = open_session(args.namespace)
    try:
        settlement = run_autopay(db, today, args.namespace)
        promotion = run_promotion(db, today, args.namespace)
    except (BillFetchError, StorageError) as e:
        logging.error(f"Daily run aborted: {e}", extra={"run_date": today.isoformat()})
        return 1
    finally:
        db.close()

    print(json.dumps(
        {
            "date": today.isoformat(),
            "autopay": {
                "processed": settlement.processed,
                "errors": settlement.errors,
                "failures": [{**asdict(f), "bill_id": str(f.bill_id)} for f in settlement.failures],
            },
            "promotion": {"updated": promotion.updated},
        }
    ))
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""POST /v1/autopay/run and /v1/bills/promote-pending - daily batch triggers"""

import logging
from datetime import date
from typing import Optional
from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from billflow.api.dependencies import get_balance_cache, get_request_id, get_today
from billflow.api.v1.schemas import BatchRunRequest, PromotionResponse, SettlementFailureSchema, SettlementResponse
from billflow.domain.exceptions import BillFetchError, StorageError
from billflow.infrastructure.cache import QueryCache
from billflow.infrastructure.database.session import get_db
from billflow.jobs.daily import run_autopay, run_promotion

router = APIRouter()


@router.post("/autopay/run", response_model=SettlementResponse)
def run_autopay_settlement(
    request: Request,
    body: Optional[BatchRunRequest] = Body(None),
    namespace: Optional[str] = Query(None),
    today: date = Depends(get_today),
    db: Session = Depends(get_db),
    cache: QueryCache = Depends(get_balance_cache),
):
    """
    Settle every autopay bill due on the run date.

    Flow:
    1. Fetch upcoming autopay bills due on the run date
    2. Per bill: record expense, mark paid, open the next occurrence
    3. Commit and report processed/error counts

    Per-bill failures are reported in the body; only a failed fetch is an error response.
    """
    request_id = get_request_id(request)
    run_date = body.run_date if body and body.run_date else today

    try:
        summary = run_autopay(db, run_date, namespace)
    except BillFetchError as e:
        logging.error(f"Autopay fetch failed: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Bill store unavailable")
    except StorageError as e:
        logging.error(f"Batch commit failed: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Bill store unavailable")

    # Payments change balances
    if summary.processed:
        cache.invalidate()

    return SettlementResponse(
        run_date=run_date,
        processed=summary.processed,
        errors=summary.errors,
        failures=[
            SettlementFailureSchema(bill_id=str(f.bill_id), step=f.step, reason=f.reason)
            for f in summary.failures
        ],
    )


@router.post("/bills/promote-pending", response_model=PromotionResponse)
def promote_pending_bills(
    request: Request,
    body: Optional[BatchRunRequest] = Body(None),
    namespace: Optional[str] = Query(None),
    today: date = Depends(get_today),
    db: Session = Depends(get_db),
):
    """Move non-autopay bills due on the run date from upcoming to pending"""
    request_id = get_request_id(request)
    run_date = body.run_date if body and body.run_date else today

    try:
        summary = run_promotion(db, run_date, namespace)
    except BillFetchError as e:
        logging.error(f"Pending promotion failed: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Bill store unavailable")
    except StorageError as e:
        logging.error(f"Batch commit failed: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Bill store unavailable")

    return PromotionResponse(run_date=run_date, updated=summary.updated)

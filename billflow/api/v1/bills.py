"""Manual bill operations: pay and configure autopay"""

import logging
import uuid
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from billflow.api.dependencies import get_request_id, get_today
from billflow.api.v1.schemas import AutopayUpdateRequest, BillResponse
from billflow.domain.exceptions import BillNotFoundError, InvalidTransitionError, StorageError, ValidationError
from billflow.domain.lifecycle import due_status, is_series_active
from billflow.domain.models import Bill
from billflow.infrastructure.database.repositories import SqlBillRepository
from billflow.infrastructure.database.session import get_db
from billflow.services.bills import BillService

router = APIRouter()


def _parse_uuid(value: str, label: str) -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {label} format")


def _to_response(bill: Bill, today: date) -> BillResponse:
    return BillResponse(
        bill_id=str(bill.id),
        user_id=bill.user_id,
        name=bill.name,
        amount=bill.amount,
        due_date=bill.due_date,
        frequency=bill.frequency,
        status=bill.status,
        autopay=bill.autopay,
        autopay_source=bill.autopay_source,
        account_id=str(bill.funding_account_id) if bill.funding_account_id else None,
        credit_card_id=str(bill.funding_card_id) if bill.funding_card_id else None,
        transaction_id=str(bill.transaction_id) if bill.transaction_id else None,
        end_date=bill.end_date,
        due_status=due_status(bill.due_date, today),
        series_active=is_series_active(bill.end_date, today),
    )


@router.post("/bills/{bill_id}/pay", response_model=BillResponse)
def mark_bill_paid(
    bill_id: str,
    request: Request,
    today: date = Depends(get_today),
    db: Session = Depends(get_db),
):
    """Close an upcoming or pending occurrence that was paid outside autopay"""
    request_id = get_request_id(request)
    bill_uuid = _parse_uuid(bill_id, "bill ID")

    try:
        bill = BillService(SqlBillRepository(db)).mark_paid(bill_uuid)
        db.commit()
        return _to_response(bill, today)

    except BillNotFoundError:
        db.rollback()
        raise HTTPException(status_code=404, detail="Bill not found")

    except InvalidTransitionError as e:
        db.rollback()
        logging.warning(f"Rejected bill transition: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=409, detail=str(e))

    except StorageError as e:
        db.rollback()
        logging.error(f"Storage error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Bill store unavailable")


@router.put("/bills/{bill_id}/autopay", response_model=BillResponse)
def update_bill_autopay(
    bill_id: str,
    request_body: AutopayUpdateRequest,
    request: Request,
    today: date = Depends(get_today),
    db: Session = Depends(get_db),
):
    """Enable, disable or re-point autopay for a bill"""
    request_id = get_request_id(request)
    bill_uuid = _parse_uuid(bill_id, "bill ID")
    account_id = _parse_uuid(request_body.account_id, "account ID") if request_body.account_id else None
    card_id = _parse_uuid(request_body.credit_card_id, "credit card ID") if request_body.credit_card_id else None

    try:
        bill = BillService(SqlBillRepository(db)).update_autopay(
            bill_uuid,
            autopay=request_body.autopay,
            source=request_body.autopay_source,
            account_id=account_id,
            card_id=card_id,
        )
        db.commit()
        return _to_response(bill, today)

    except BillNotFoundError:
        db.rollback()
        raise HTTPException(status_code=404, detail="Bill not found")

    except ValidationError as e:
        db.rollback()
        logging.warning(f"Invalid autopay configuration: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except StorageError as e:
        db.rollback()
        logging.error(f"Storage error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Bill store unavailable")

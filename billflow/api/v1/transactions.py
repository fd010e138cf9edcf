"""POST /v1/transactions - validated transaction insert"""

import logging
import uuid
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from billflow.api.dependencies import get_balance_cache, get_request_id
from billflow.api.v1.schemas import TransactionRequest, TransactionResponse
from billflow.domain.exceptions import StorageError, ValidationError
from billflow.domain.models import Transaction
from billflow.infrastructure.cache import QueryCache
from billflow.infrastructure.database.repositories import SqlTransactionRepository
from billflow.infrastructure.database.session import get_db
from billflow.services.transactions import TransactionService

router = APIRouter()


def _optional_uuid(value: str | None) -> uuid.UUID | None:
    if value is None:
        return None
    try:
        return uuid.UUID(value)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid account ID format")


@router.post("/transactions", response_model=TransactionResponse, status_code=201)
def create_transaction(
    request_body: TransactionRequest,
    request: Request,
    db: Session = Depends(get_db),
    cache: QueryCache = Depends(get_balance_cache),
):
    """Record a transaction after checking its legs match its type"""
    request_id = get_request_id(request)

    txn = Transaction(
        user_id=request_body.user_id,
        type=request_body.type,
        amount=request_body.amount,
        date=request_body.date,
        name=request_body.name,
        description=request_body.description,
        source_account_id=_optional_uuid(request_body.source_account_id),
        destination_account_id=_optional_uuid(request_body.destination_account_id),
        category_id=request_body.category_id,
        subcategory_id=request_body.subcategory_id,
    )

    try:
        transaction_id = TransactionService(SqlTransactionRepository(db)).record(txn)
        db.commit()

    except ValidationError as e:
        db.rollback()
        logging.warning(f"Rejected transaction: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except StorageError as e:
        db.rollback()
        logging.error(f"Storage error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Transaction store unavailable")

    cache.invalidate()
    return TransactionResponse(transaction_id=str(transaction_id))

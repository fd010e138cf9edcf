"""GET /v1/accounts/{account_id}/balance and POST .../reconcile - ledger balances"""

import logging
import uuid
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from billflow.api.dependencies import get_balance_cache, get_request_id
from billflow.api.v1.schemas import BalanceResponse, ReconciliationResponse
from billflow.domain.exceptions import AccountNotFoundError, InvalidTransferError, StorageError
from billflow.infrastructure.cache import QueryCache
from billflow.infrastructure.database.repositories import SqlAccountRepository
from billflow.infrastructure.database.session import get_db
from billflow.services.balance import LedgerBalanceCalculator

router = APIRouter()


def _parse_account_id(account_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(account_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid account ID format")


@router.get("/accounts/{account_id}/balance", response_model=BalanceResponse)
def get_account_balance(
    account_id: str,
    request: Request,
    namespace: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    cache: QueryCache = Depends(get_balance_cache),
):
    """
    Balance rebuilt from initial balance and transaction history.

    The cached_balance stored on the account is returned alongside for
    comparison; in_sync is false when they disagree.
    """
    request_id = get_request_id(request)
    account_uuid = _parse_account_id(account_id)

    cache_key = ("balance", namespace, account_uuid)
    cached_response = cache.get(cache_key)
    if cached_response is not None:
        return cached_response

    accounts = SqlAccountRepository(db)
    try:
        balance = LedgerBalanceCalculator(accounts).balance(account_uuid)
        cached_balance = accounts.get_current_balance(account_uuid)

    except AccountNotFoundError:
        raise HTTPException(status_code=404, detail="Account not found")

    except InvalidTransferError as e:
        logging.error(f"Corrupt ledger: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except StorageError as e:
        logging.error(f"Storage error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Account store unavailable")

    response = BalanceResponse(
        account_id=str(account_uuid),
        balance=balance,
        cached_balance=cached_balance,
        in_sync=cached_balance == balance,
    )
    cache.set(cache_key, response)
    return response


@router.post("/accounts/{account_id}/reconcile", response_model=ReconciliationResponse)
def reconcile_account_balance(
    account_id: str,
    request: Request,
    namespace: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    cache: QueryCache = Depends(get_balance_cache),
):
    """Overwrite the cached balance with the recomputed one when they differ"""
    request_id = get_request_id(request)
    account_uuid = _parse_account_id(account_id)

    try:
        result = LedgerBalanceCalculator(SqlAccountRepository(db)).reconcile(account_uuid)
        db.commit()

    except AccountNotFoundError:
        db.rollback()
        raise HTTPException(status_code=404, detail="Account not found")

    except InvalidTransferError as e:
        db.rollback()
        logging.error(f"Corrupt ledger: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except StorageError as e:
        db.rollback()
        logging.error(f"Storage error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Account store unavailable")

    cache.invalidate(("balance", namespace, account_uuid))

    return ReconciliationResponse(
        account_id=str(account_uuid),
        calculated_balance=result.calculated_balance,
        cached_balance=result.cached_balance,
        drift=result.drift,
        updated=result.updated,
    )

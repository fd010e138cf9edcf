"""Pydantic schemas for API request/response validation"""

from datetime import date
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, Field, model_validator
from billflow.domain.models import AutopaySource, BillStatus, DueStatus, Frequency, TransactionType


class BatchRunRequest(BaseModel):
    """Request body for the batch endpoints; omit run_date to use today (UTC)"""

    run_date: Optional[date] = Field(None, description="Calendar date to treat as today")


class SettlementFailureSchema(BaseModel):
    bill_id: str
    step: str
    reason: str


class SettlementResponse(BaseModel):
    """Response for POST /v1/autopay/run"""

    run_date: date
    processed: int
    errors: int
    failures: List[SettlementFailureSchema] = []


class PromotionResponse(BaseModel):
    """Response for POST /v1/bills/promote-pending"""

    run_date: date
    updated: int


class AutopayUpdateRequest(BaseModel):
    """Request body for PUT /v1/bills/{bill_id}/autopay"""

    autopay: bool
    autopay_source: AutopaySource = AutopaySource.ACCOUNT
    account_id: Optional[str] = None
    credit_card_id: Optional[str] = None


class BillResponse(BaseModel):
    """A single bill occurrence"""

    bill_id: str
    user_id: str
    name: str
    amount: Decimal
    due_date: date
    frequency: Frequency
    status: BillStatus
    autopay: bool
    autopay_source: AutopaySource
    account_id: Optional[str] = None
    credit_card_id: Optional[str] = None
    transaction_id: Optional[str] = None
    end_date: Optional[date] = None
    due_status: DueStatus
    series_active: bool


class BalanceResponse(BaseModel):
    """Response for GET /v1/accounts/{account_id}/balance"""

    account_id: str
    balance: Decimal
    cached_balance: Optional[Decimal] = None
    in_sync: bool


class ReconciliationResponse(BaseModel):
    """Response for POST /v1/accounts/{account_id}/reconcile"""

    account_id: str
    calculated_balance: Decimal
    cached_balance: Optional[Decimal] = None
    drift: Decimal
    updated: bool


class TransactionRequest(BaseModel):
    """Request body for POST /v1/transactions"""

    user_id: str = Field(..., min_length=1, description="User identifier")
    type: TransactionType
    amount: Decimal = Field(..., gt=0, description="Positive amount")
    date: date
    name: Optional[str] = None
    description: Optional[str] = None
    source_account_id: Optional[str] = None
    destination_account_id: Optional[str] = None
    category_id: Optional[str] = None
    subcategory_id: Optional[str] = None

    @model_validator(mode="after")
    def check_transfer_legs(self) -> "TransactionRequest":
        if self.type is TransactionType.TRANSFER and self.source_account_id and self.source_account_id == self.destination_account_id:
            raise ValueError("Transfer source and destination must differ")
        return self


class TransactionResponse(BaseModel):
    """Response for POST /v1/transactions"""

    transaction_id: str

"""Domain models - pure Python dataclasses representing bills, transactions and accounts"""

import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import List, Optional


class Frequency(str, Enum):
    """How often a bill recurs"""

    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"
    NONE = "none"

    @classmethod
    def coerce(cls, value: "Frequency | str | None") -> "Frequency":
        """Map a stored value to a member; anything unrecognized means no further occurrences"""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.NONE


class BillStatus(str, Enum):
    UPCOMING = "upcoming"
    PENDING = "pending"  # due, awaiting manual payment
    PAID = "paid"
    DELETED = "deleted"


class AutopaySource(str, Enum):
    ACCOUNT = "account"
    CREDIT_CARD = "credit_card"
    NONE = "none"

    @classmethod
    def coerce(cls, value: "AutopaySource | str | None") -> "AutopaySource":
        """Legacy or unknown sources read as none, so the bill fails its funding check"""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.NONE


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"
    LOAN = "loan"
    LOAN_REPAYMENT = "loan_repayment"
    DEBT = "debt"
    DEBT_COLLECTION = "debt_collection"


class DueStatus(str, Enum):
    """Where a due date sits relative to today"""

    OVERDUE = "overdue"
    TODAY = "today"
    UPCOMING = "upcoming"


@dataclass
class Bill:
    """One occurrence of a (possibly recurring) obligation"""

    user_id: str
    name: str
    amount: Decimal
    due_date: date
    frequency: Frequency = Frequency.NONE
    status: BillStatus = BillStatus.UPCOMING
    autopay: bool = False
    autopay_source: AutopaySource = AutopaySource.NONE
    funding_account_id: Optional[uuid.UUID] = None
    funding_card_id: Optional[uuid.UUID] = None
    category_id: Optional[str] = None
    subcategory_id: Optional[str] = None
    transaction_id: Optional[uuid.UUID] = None  # series anchor, shared by every occurrence
    end_date: Optional[date] = None
    description: Optional[str] = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    # Denormalized labels filled in by the due-bill fetch, never persisted on the bill
    funding_account_name: Optional[str] = None
    funding_account_type: Optional[str] = None
    funding_card_name: Optional[str] = None
    category_name: Optional[str] = None


@dataclass
class Transaction:
    """Single-entry ledger row; transfers carry both legs on one row"""

    user_id: str
    type: TransactionType
    amount: Decimal
    date: date
    name: Optional[str] = None
    description: Optional[str] = None
    merchant: Optional[str] = None
    source_account_id: Optional[uuid.UUID] = None
    source_account_type: Optional[str] = None
    source_account_name: Optional[str] = None
    destination_account_id: Optional[uuid.UUID] = None
    category_id: Optional[str] = None
    subcategory_id: Optional[str] = None
    parent_transaction_id: Optional[uuid.UUID] = None
    is_recurring: bool = False
    idempotency_key: Optional[str] = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)


@dataclass
class LedgerEntry:
    """Minimal projection of a transaction used for balance computation"""

    type: TransactionType
    amount: Decimal
    destination_account_id: Optional[uuid.UUID] = None


@dataclass
class SettlementFailure:
    """Why a single bill could not be settled"""

    bill_id: uuid.UUID
    step: str
    reason: str


@dataclass
class SettlementSummary:
    """Outcome of one autopay settlement run"""

    processed: int = 0
    errors: int = 0
    failures: List[SettlementFailure] = field(default_factory=list)


@dataclass
class PromotionSummary:
    """Outcome of one pending-promotion run"""

    updated: int = 0


@dataclass
class BalanceReconciliation:
    """Recomputed balance compared against the cached value on the account"""

    account_id: uuid.UUID
    calculated_balance: Decimal
    cached_balance: Optional[Decimal]
    updated: bool

    @property
    def drift(self) -> Decimal:
        return self.calculated_balance - (self.cached_balance or Decimal("0"))

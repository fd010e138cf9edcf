"""Pytest fixtures for testing"""

import os

# Must be set before billflow.config is imported anywhere
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")

import copy
import uuid
import pytest
from contextlib import contextmanager
from datetime import date
from decimal import Decimal
from typing import Callable, Dict, Generator, Iterator, List, Optional, Set
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker, Session
from billflow.api.dependencies import get_today
from billflow.api.main import create_app
from billflow.domain.exceptions import AccountNotFoundError, BillNotFoundError, StorageError
from billflow.domain.lifecycle import is_autopay_settleable, is_promotable
from billflow.domain.models import (
    Bill,
    BillStatus,
    Frequency,
    LedgerEntry,
    Transaction,
    TransactionType,
)
from billflow.domain.repositories import AccountRepository, BillRepository, TransactionRepository, UnitOfWork
from billflow.infrastructure.database.models import AccountRecord, Base, BillRecord, BudgetCategoryRecord, CreditCardRecord
from billflow.infrastructure.database.session import build_engine, get_db


TODAY = date(2024, 3, 15)

# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = build_engine(TEST_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database and a pinned clock"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_today] = lambda: TODAY
    return TestClient(app)


@pytest.fixture
def checking_account(db: Session) -> AccountRecord:
    account = AccountRecord(
        user_id="user_1",
        name="HDFC Savings",
        type="savings",
        initial_balance=Decimal("1000.00"),
        current_balance=Decimal("1000.00"),
    )
    db.add(account)
    db.commit()
    return account


@pytest.fixture
def credit_card(db: Session) -> CreditCardRecord:
    card = CreditCardRecord(user_id="user_1", name="Regalia")
    db.add(card)
    db.commit()
    return card


@pytest.fixture
def utilities_category(db: Session) -> BudgetCategoryRecord:
    category = BudgetCategoryRecord(id="cat_utilities", user_id="user_1", name="Utilities")
    db.add(category)
    db.commit()
    return category


@pytest.fixture
def make_bill_record(db: Session) -> Callable[..., BillRecord]:
    """Insert bill rows with sensible defaults"""

    def _make(**overrides) -> BillRecord:
        fields = dict(
            user_id="user_1",
            transaction_id=uuid.uuid4(),
            name="Electricity",
            amount=Decimal("150.00"),
            due_date=TODAY,
            frequency="monthly",
            status="upcoming",
            autopay=False,
            autopay_source="none",
        )
        fields.update(overrides)
        record = BillRecord(**fields)
        db.add(record)
        db.commit()
        return record

    return _make


# ---------------------------------------------------------------------------
# In-memory implementations of the repository interfaces
# ---------------------------------------------------------------------------


class InMemoryStore:
    """Shared state behind the fake repositories, with switches for injecting failures"""

    def __init__(self):
        self.bills: Dict[uuid.UUID, Bill] = {}
        self.transactions: Dict[uuid.UUID, Transaction] = {}
        self.initial_balances: Dict[uuid.UUID, Decimal] = {}
        self.current_balances: Dict[uuid.UUID, Optional[Decimal]] = {}

        self.fail_fetch = False
        self.fail_transaction_for: Set[str] = set()  # bill names whose payment insert fails
        self.fail_status_update_for: Set[uuid.UUID] = set()
        self.fail_bill_insert = False

    def add_bill(self, **overrides) -> Bill:
        fields = dict(
            user_id="user_1",
            name="Electricity",
            amount=Decimal("150.00"),
            due_date=TODAY,
            frequency=Frequency.MONTHLY,
            transaction_id=uuid.uuid4(),
        )
        fields.update(overrides)
        bill = Bill(**fields)
        self.bills[bill.id] = bill
        return bill

    def add_account(self, initial: str, current: Optional[str] = None) -> uuid.UUID:
        account_id = uuid.uuid4()
        self.initial_balances[account_id] = Decimal(initial)
        self.current_balances[account_id] = Decimal(current) if current is not None else None
        return account_id

    def bills_with_status(self, status: BillStatus) -> List[Bill]:
        return [b for b in self.bills.values() if b.status is status]


class FakeBillRepository(BillRepository):
    def __init__(self, store: InMemoryStore):
        self.store = store

    def _matches(self, bill, today, autopay, status, include_overdue):
        if bill.autopay != autopay or bill.status is not status:
            return False
        if status is BillStatus.UPCOMING:
            qualifies = is_autopay_settleable if autopay else is_promotable
            return qualifies(bill, today, include_overdue)
        return bill.due_date <= today if include_overdue else bill.due_date == today

    def find_due(self, today, autopay, status=BillStatus.UPCOMING, include_overdue=False):
        if self.store.fail_fetch:
            raise StorageError("connection refused")
        return [
            copy.copy(b) for b in self.store.bills.values()
            if self._matches(b, today, autopay, status, include_overdue)
        ]

    def insert(self, bill):
        if self.store.fail_bill_insert:
            raise StorageError("insert failed")
        self.store.bills[bill.id] = copy.copy(bill)
        return bill.id

    def update_status(self, bill_id, status):
        if bill_id in self.store.fail_status_update_for:
            raise StorageError("update failed")
        if bill_id not in self.store.bills:
            raise BillNotFoundError(str(bill_id))
        self.store.bills[bill_id].status = status

    def bulk_update_status(self, today, autopay, from_status, to_status, include_overdue=False):
        if self.store.fail_fetch:
            raise StorageError("connection refused")
        matching = [
            b for b in self.store.bills.values()
            if self._matches(b, today, autopay, from_status, include_overdue)
        ]
        for bill in matching:
            bill.status = to_status
        return len(matching)

    def get(self, bill_id):
        bill = self.store.bills.get(bill_id)
        return copy.copy(bill) if bill else None

    def save_autopay(self, bill):
        if bill.id not in self.store.bills:
            raise BillNotFoundError(str(bill.id))
        self.store.bills[bill.id] = copy.copy(bill)


class FakeTransactionRepository(TransactionRepository):
    def __init__(self, store: InMemoryStore):
        self.store = store

    def insert(self, txn):
        if txn.merchant in self.store.fail_transaction_for:
            raise StorageError("insert failed")
        if txn.idempotency_key and any(
            t.idempotency_key == txn.idempotency_key for t in self.store.transactions.values()
        ):
            raise StorageError(f"duplicate idempotency key {txn.idempotency_key}")
        self.store.transactions[txn.id] = txn
        return txn.id


class FakeAccountRepository(AccountRepository):
    def __init__(self, store: InMemoryStore):
        self.store = store

    def get_initial_balance(self, account_id):
        if account_id not in self.store.initial_balances:
            raise AccountNotFoundError(str(account_id))
        return self.store.initial_balances[account_id]

    def get_current_balance(self, account_id):
        if account_id not in self.store.initial_balances:
            raise AccountNotFoundError(str(account_id))
        return self.store.current_balances.get(account_id)

    def find_by_source_account(self, account_id):
        return [
            LedgerEntry(type=t.type, amount=t.amount, destination_account_id=t.destination_account_id)
            for t in self.store.transactions.values()
            if t.source_account_id == account_id
        ]

    def find_incoming_transfers(self, account_id):
        return [
            LedgerEntry(type=t.type, amount=t.amount, destination_account_id=account_id)
            for t in self.store.transactions.values()
            if t.destination_account_id == account_id and t.type is TransactionType.TRANSFER
        ]

    def set_current_balance(self, account_id, balance):
        self.store.current_balances[account_id] = balance


class FakeUnitOfWork(UnitOfWork):
    """Snapshot-and-restore stand-in for a savepoint"""

    def __init__(self, store: InMemoryStore):
        self.store = store

    @contextmanager
    def atomic(self) -> Iterator[None]:
        bills = copy.deepcopy(self.store.bills)
        transactions = copy.deepcopy(self.store.transactions)
        try:
            yield
        except Exception:
            self.store.bills = bills
            self.store.transactions = transactions
            raise


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def bill_repo(store: InMemoryStore) -> FakeBillRepository:
    return FakeBillRepository(store)


@pytest.fixture
def transaction_repo(store: InMemoryStore) -> FakeTransactionRepository:
    return FakeTransactionRepository(store)


@pytest.fixture
def account_repo(store: InMemoryStore) -> FakeAccountRepository:
    return FakeAccountRepository(store)


@pytest.fixture
def unit_of_work(store: InMemoryStore) -> FakeUnitOfWork:
    return FakeUnitOfWork(store)

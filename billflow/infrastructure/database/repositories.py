"""Data access layer for bills, transactions and accounts"""

import uuid
from contextlib import contextmanager
from datetime import date
from decimal import Decimal
from typing import Iterator, List, Optional
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload
from billflow.domain.exceptions import AccountNotFoundError, BillNotFoundError, StorageError
from billflow.domain.models import (
    AutopaySource,
    Bill,
    BillStatus,
    Frequency,
    LedgerEntry,
    Transaction,
    TransactionType,
)
from billflow.domain.repositories import AccountRepository, BillRepository, TransactionRepository, UnitOfWork
from billflow.infrastructure.database.models import AccountRecord, BillRecord, TransactionRecord


def _to_bill(record: BillRecord) -> Bill:
    """Map a row (with any joined funding/category rows) to a domain Bill"""
    return Bill(
        id=record.id,
        user_id=record.user_id,
        name=record.name,
        amount=Decimal(record.amount),
        due_date=record.due_date,
        frequency=Frequency.coerce(record.frequency),
        status=BillStatus(record.status),
        autopay=record.autopay,
        autopay_source=AutopaySource.coerce(record.autopay_source),
        funding_account_id=record.account_id,
        funding_card_id=record.credit_card_id,
        category_id=record.category_id,
        subcategory_id=record.subcategory_id,
        transaction_id=record.transaction_id,
        end_date=record.end_date,
        description=record.description,
        funding_account_name=record.account.name if record.account else None,
        funding_account_type=record.account.type if record.account else None,
        funding_card_name=record.credit_card.name if record.credit_card else None,
        category_name=record.category.name if record.category else None,
    )


def _due_filters(today: date, autopay: bool, status: BillStatus, include_overdue: bool) -> list:
    due = BillRecord.due_date <= today if include_overdue else BillRecord.due_date == today
    return [due, BillRecord.autopay == autopay, BillRecord.status == status.value]


def _ledger_type(value: str) -> TransactionType:
    """Stored type of a ledger row; an unknown type makes the balance unknowable"""
    try:
        return TransactionType(value)
    except ValueError:
        raise StorageError(f"Unrecognized transaction type {value!r} in ledger")


class SqlBillRepository(BillRepository):
    """Repository for bill occurrences"""

    def __init__(self, db: Session):
        self.db = db

    def find_due(
        self,
        today: date,
        autopay: bool,
        status: BillStatus = BillStatus.UPCOMING,
        include_overdue: bool = False,
    ) -> List[Bill]:
        """Fetch due bills with funding account/card and category rows joined in"""
        try:
            records = (
                self.db.query(BillRecord)
                .options(
                    joinedload(BillRecord.account),
                    joinedload(BillRecord.credit_card),
                    joinedload(BillRecord.category),
                )
                .filter(*_due_filters(today, autopay, status, include_overdue))
                .order_by(BillRecord.due_date, BillRecord.created_at)
                .all()
            )
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to fetch due bills: {e}") from e
        return [_to_bill(r) for r in records]

    def insert(self, bill: Bill) -> uuid.UUID:
        """Persist a bill; denormalized labels are not stored"""
        record = BillRecord(
            id=bill.id,
            user_id=bill.user_id,
            transaction_id=bill.transaction_id,
            name=bill.name,
            amount=bill.amount,
            due_date=bill.due_date,
            frequency=bill.frequency.value,
            end_date=bill.end_date,
            status=bill.status.value,
            autopay=bill.autopay,
            autopay_source=bill.autopay_source.value,
            account_id=bill.funding_account_id,
            credit_card_id=bill.funding_card_id,
            category_id=bill.category_id,
            subcategory_id=bill.subcategory_id,
            description=bill.description,
        )
        try:
            self.db.add(record)
            self.db.flush()  # Surface constraint errors inside the caller's unit of work
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to insert bill {bill.id}: {e}") from e
        return record.id

    def update_status(self, bill_id: uuid.UUID, status: BillStatus) -> None:
        try:
            result = self.db.execute(
                update(BillRecord)
                .where(BillRecord.id == bill_id)
                .values(status=status.value)
                .execution_options(synchronize_session="fetch")
            )
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to update bill {bill_id}: {e}") from e
        if result.rowcount == 0:
            raise BillNotFoundError(f"Bill {bill_id} not found")

    def bulk_update_status(
        self,
        today: date,
        autopay: bool,
        from_status: BillStatus,
        to_status: BillStatus,
        include_overdue: bool = False,
    ) -> int:
        """Single UPDATE ... WHERE statement; returns rows affected"""
        try:
            result = self.db.execute(
                update(BillRecord)
                .where(*_due_filters(today, autopay, from_status, include_overdue))
                .values(status=to_status.value)
                .execution_options(synchronize_session="fetch")
            )
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to bulk update bills: {e}") from e
        return result.rowcount

    def get(self, bill_id: uuid.UUID) -> Optional[Bill]:
        try:
            record = (
                self.db.query(BillRecord)
                .filter(BillRecord.id == bill_id)
                .first()
            )
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to fetch bill {bill_id}: {e}") from e
        return _to_bill(record) if record else None

    def save_autopay(self, bill: Bill) -> None:
        try:
            result = self.db.execute(
                update(BillRecord)
                .where(BillRecord.id == bill.id)
                .values(
                    autopay=bill.autopay,
                    autopay_source=bill.autopay_source.value,
                    account_id=bill.funding_account_id,
                    credit_card_id=bill.funding_card_id,
                )
                .execution_options(synchronize_session="fetch")
            )
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to update autopay for bill {bill.id}: {e}") from e
        if result.rowcount == 0:
            raise BillNotFoundError(f"Bill {bill.id} not found")


class SqlTransactionRepository(TransactionRepository):
    """Repository for ledger transactions"""

    def __init__(self, db: Session):
        self.db = db

    def insert(self, txn: Transaction) -> uuid.UUID:
        record = TransactionRecord(
            id=txn.id,
            user_id=txn.user_id,
            type=txn.type.value,
            amount=txn.amount,
            date=txn.date,
            name=txn.name,
            description=txn.description,
            merchant=txn.merchant,
            source_account_id=txn.source_account_id,
            source_account_type=txn.source_account_type,
            source_account_name=txn.source_account_name,
            destination_account_id=txn.destination_account_id,
            category_id=txn.category_id,
            subcategory_id=txn.subcategory_id,
            parent_transaction_id=txn.parent_transaction_id,
            is_recurring=txn.is_recurring,
            idempotency_key=txn.idempotency_key,
        )
        try:
            self.db.add(record)
            self.db.flush()  # Idempotency key collisions raise here
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to insert transaction {txn.id}: {e}") from e
        return record.id


class SqlAccountRepository(AccountRepository):
    """Repository for accounts and the transaction legs touching them"""

    def __init__(self, db: Session):
        self.db = db

    def _get(self, account_id: uuid.UUID) -> AccountRecord:
        try:
            record = (
                self.db.query(AccountRecord)
                .filter(AccountRecord.id == account_id)
                .first()
            )
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to fetch account {account_id}: {e}") from e
        if record is None:
            raise AccountNotFoundError(f"Account {account_id} not found")
        return record

    def get_initial_balance(self, account_id: uuid.UUID) -> Decimal:
        return Decimal(self._get(account_id).initial_balance or 0)

    def get_current_balance(self, account_id: uuid.UUID) -> Optional[Decimal]:
        current = self._get(account_id).current_balance
        return None if current is None else Decimal(current)

    def find_by_source_account(self, account_id: uuid.UUID) -> List[LedgerEntry]:
        try:
            rows = (
                self.db.query(
                    TransactionRecord.type,
                    TransactionRecord.amount,
                    TransactionRecord.destination_account_id,
                )
                .filter(TransactionRecord.source_account_id == account_id)
                .all()
            )
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to fetch source transactions for {account_id}: {e}") from e
        return [
            LedgerEntry(type=_ledger_type(r.type), amount=Decimal(r.amount), destination_account_id=r.destination_account_id)
            for r in rows
        ]

    def find_incoming_transfers(self, account_id: uuid.UUID) -> List[LedgerEntry]:
        try:
            rows = (
                self.db.query(TransactionRecord.amount)
                .filter(
                    TransactionRecord.destination_account_id == account_id,
                    TransactionRecord.type == TransactionType.TRANSFER.value,
                )
                .all()
            )
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to fetch incoming transfers for {account_id}: {e}") from e
        return [
            LedgerEntry(type=TransactionType.TRANSFER, amount=Decimal(r.amount), destination_account_id=account_id)
            for r in rows
        ]

    def set_current_balance(self, account_id: uuid.UUID, balance: Decimal) -> None:
        record = self._get(account_id)
        record.current_balance = balance
        try:
            self.db.flush()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to update balance for {account_id}: {e}") from e


class SqlUnitOfWork(UnitOfWork):
    """Savepoint per unit, nested inside the session's outer transaction"""

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def atomic(self) -> Iterator[None]:
        with self.db.begin_nested():
            yield

"""
Abstract storage interfaces consumed by the settlement and balance services.

The services only ever talk to these; SQLAlchemy implementations live in
billflow.infrastructure.database.repositories and tests use in-memory fakes.
"""

import uuid
from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import date
from decimal import Decimal
from typing import List, Optional
from billflow.domain.models import Bill, BillStatus, LedgerEntry, Transaction


class BillRepository(ABC):
    """Storage for bill occurrences"""

    @abstractmethod
    def find_due(
        self,
        today: date,
        autopay: bool,
        status: BillStatus = BillStatus.UPCOMING,
        include_overdue: bool = False,
    ) -> List[Bill]:
        """
        Bills in `status` whose due date is today (or on/before today when
        include_overdue is set) with the given autopay flag.

        Returned bills carry the denormalized funding account/card and
        category labels.

        Raises:
            StorageError: If the query fails
        """

    @abstractmethod
    def insert(self, bill: Bill) -> uuid.UUID:
        """Persist a new bill and return its id"""

    @abstractmethod
    def update_status(self, bill_id: uuid.UUID, status: BillStatus) -> None:
        """
        Raises:
            BillNotFoundError: If no bill has this id
            StorageError: If the update fails
        """

    @abstractmethod
    def bulk_update_status(
        self,
        today: date,
        autopay: bool,
        from_status: BillStatus,
        to_status: BillStatus,
        include_overdue: bool = False,
    ) -> int:
        """Move every matching bill to `to_status` in one statement; returns rows affected"""

    @abstractmethod
    def get(self, bill_id: uuid.UUID) -> Optional[Bill]:
        pass

    @abstractmethod
    def save_autopay(self, bill: Bill) -> None:
        """Persist autopay flag, source and funding instrument of an existing bill"""


class TransactionRepository(ABC):
    """Storage for ledger transactions"""

    @abstractmethod
    def insert(self, txn: Transaction) -> uuid.UUID:
        """
        Persist a transaction and return its id.

        Raises:
            StorageError: If the insert fails, including idempotency key collisions
        """


class AccountRepository(ABC):
    """Read access to accounts and their transaction legs"""

    @abstractmethod
    def get_initial_balance(self, account_id: uuid.UUID) -> Decimal:
        """
        Raises:
            AccountNotFoundError: If the account does not exist
        """

    @abstractmethod
    def get_current_balance(self, account_id: uuid.UUID) -> Optional[Decimal]:
        """Cached balance stored on the account; advisory only"""

    @abstractmethod
    def find_by_source_account(self, account_id: uuid.UUID) -> List[LedgerEntry]:
        """Every transaction (any type) paid from this account"""

    @abstractmethod
    def find_incoming_transfers(self, account_id: uuid.UUID) -> List[LedgerEntry]:
        """Transfers whose destination is this account"""

    @abstractmethod
    def set_current_balance(self, account_id: uuid.UUID, balance: Decimal) -> None:
        pass


class UnitOfWork(ABC):
    """Groups several repository writes so they commit or roll back together"""

    @abstractmethod
    def atomic(self) -> AbstractContextManager:
        """Context manager; an exception inside rolls back every write made in it"""

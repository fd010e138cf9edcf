"""Single-entry ledger arithmetic - account balances from transaction history"""

import uuid
from decimal import Decimal
from typing import Iterable
from billflow.domain.models import LedgerEntry, Transaction, TransactionType
from billflow.domain.exceptions import InvalidTransferError, TransactionValidationError

# Types that cannot exist without a paying account
SOURCE_REQUIRED = frozenset({
    TransactionType.EXPENSE,
    TransactionType.TRANSFER,
    TransactionType.LOAN_REPAYMENT,
})


def validate_transaction(txn: Transaction) -> None:
    """
    Enforce the single-entry shape of a transaction.

    - amount must be positive
    - expense, transfer and loan_repayment need a source account
    - a transfer needs a destination different from its source
    - no other type may carry a destination
    """
    if txn.amount <= 0:
        raise TransactionValidationError(f"Transaction amount must be positive, got {txn.amount}")

    if txn.type in SOURCE_REQUIRED and txn.source_account_id is None:
        raise TransactionValidationError(f"{txn.type.value} transaction requires a source account")

    if txn.type is TransactionType.TRANSFER:
        if txn.destination_account_id is None:
            raise InvalidTransferError("Transfer requires a destination account")
        if txn.destination_account_id == txn.source_account_id:
            raise InvalidTransferError("Transfer source and destination must differ")
    elif txn.destination_account_id is not None:
        raise TransactionValidationError(f"{txn.type.value} transaction cannot have a destination account")


def calculate_balance(
    account_id: uuid.UUID,
    initial_balance: Decimal,
    outgoing: Iterable[LedgerEntry],
    incoming_transfers: Iterable[LedgerEntry],
) -> Decimal:
    """
    Rebuild an account balance from its history alone.

    balance = initial
              + income (source)
              - everything else (source): expenses, transfers out, loans, ...
              + transfers in (destination)
    """
    balance = Decimal(initial_balance)

    for entry in outgoing:
        if entry.type is TransactionType.TRANSFER and entry.destination_account_id == account_id:
            raise InvalidTransferError(f"Transfer on account {account_id} has identical source and destination")

        if entry.type is TransactionType.INCOME:
            balance += entry.amount
        else:
            balance -= entry.amount

    for entry in incoming_transfers:
        balance += entry.amount

    return balance

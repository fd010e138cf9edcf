"""Caller-facing transaction insert path"""

import uuid
from billflow.domain.ledger import validate_transaction
from billflow.domain.models import Transaction
from billflow.domain.repositories import TransactionRepository


class TransactionService:
    def __init__(self, transactions: TransactionRepository):
        self.transactions = transactions

    def record(self, txn: Transaction) -> uuid.UUID:
        """
        Validate and persist a transaction.

        Raises:
            InvalidTransferError: Transfer without two distinct legs
            TransactionValidationError: Any other malformed transaction
        """
        validate_transaction(txn)
        return self.transactions.insert(txn)

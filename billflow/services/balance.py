"""Account balance computation from transaction history"""

import logging
import uuid
from decimal import Decimal
from billflow.domain.ledger import calculate_balance
from billflow.domain.models import BalanceReconciliation
from billflow.domain.repositories import AccountRepository
from billflow.infrastructure.observability.metrics import balance_drift_counter, balance_recompute_counter

logger = logging.getLogger(__name__)


class LedgerBalanceCalculator:
    """
    Rebuilds balances from initial balance plus every transaction leg.

    The stored current_balance on an account is a cache; this class is the
    source of truth. balance() is read-only and safe to call concurrently for
    different accounts.
    """

    def __init__(self, accounts: AccountRepository):
        self.accounts = accounts

    def balance(self, account_id: uuid.UUID) -> Decimal:
        """
        Raises:
            AccountNotFoundError: If the account does not exist
            InvalidTransferError: If history contains a transfer to itself
        """
        initial = self.accounts.get_initial_balance(account_id)
        outgoing = self.accounts.find_by_source_account(account_id)
        incoming = self.accounts.find_incoming_transfers(account_id)

        balance = calculate_balance(account_id, initial, outgoing, incoming)
        balance_recompute_counter.inc()

        logger.debug(
            f"Balance calculation for {account_id}",
            extra={
                "account_id": str(account_id),
                "initial": str(initial),
                "calculated": str(balance),
                "source_count": len(outgoing),
                "incoming_count": len(incoming),
            },
        )
        return balance

    def reconcile(self, account_id: uuid.UUID) -> BalanceReconciliation:
        """Recompute and overwrite the cached balance when it has drifted"""
        calculated = self.balance(account_id)
        cached = self.accounts.get_current_balance(account_id)

        updated = cached is None or cached != calculated
        if updated:
            self.accounts.set_current_balance(account_id, calculated)
            balance_drift_counter.inc()
            logger.warning(
                f"Cached balance drifted for account {account_id}",
                extra={
                    "account_id": str(account_id),
                    "cached": None if cached is None else str(cached),
                    "calculated": str(calculated),
                },
            )

        return BalanceReconciliation(
            account_id=account_id,
            calculated_balance=calculated,
            cached_balance=cached,
            updated=updated,
        )

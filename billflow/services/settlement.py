"""Daily bill batches: autopay settlement and pending promotion"""

import logging
from datetime import date
from typing import Optional
from billflow.domain.exceptions import BillFetchError, SettlementError, StorageError
from billflow.domain.ledger import validate_transaction
from billflow.domain.lifecycle import is_autopay_settleable, next_occurrence, transition
from billflow.domain.models import (
    AutopaySource,
    Bill,
    BillStatus,
    PromotionSummary,
    SettlementFailure,
    SettlementSummary,
    Transaction,
    TransactionType,
)
from billflow.domain.repositories import BillRepository, TransactionRepository, UnitOfWork
from billflow.domain.schedule import next_due_date, should_spawn_next
from billflow.utils.deadline import Deadline

logger = logging.getLogger(__name__)


def idempotency_key(bill: Bill) -> str:
    """One payment per bill occurrence, however often the batch is retried"""
    return f"autopay:{bill.id}:{bill.due_date.isoformat()}"


def build_autopay_transaction(bill: Bill, today: date) -> Transaction:
    """Expense transaction paying a bill from its configured funding instrument"""
    txn = Transaction(
        user_id=bill.user_id,
        type=TransactionType.EXPENSE,
        amount=bill.amount,
        date=today,
        name=f"Autopay: {bill.name}",
        description=f"Automatic payment for {bill.name}",
        merchant=bill.name,
        category_id=bill.category_id,
        subcategory_id=bill.subcategory_id,
        parent_transaction_id=bill.transaction_id,
        is_recurring=True,
        idempotency_key=idempotency_key(bill),
    )

    if bill.autopay_source is AutopaySource.ACCOUNT:
        txn.source_account_id = bill.funding_account_id
        txn.source_account_type = bill.funding_account_type or "bank"
        txn.source_account_name = bill.funding_account_name
    elif bill.autopay_source is AutopaySource.CREDIT_CARD:
        txn.source_account_id = bill.funding_card_id
        txn.source_account_type = "credit_card"
        txn.source_account_name = bill.funding_card_name

    validate_transaction(txn)
    return txn


class AutopaySettlementBatch:
    """
    Settle every autopay bill due today.

    Per bill: record the payment, close the occurrence, and open the next one
    when the series continues. Each bill is settled inside its own unit of
    work, so a failure leaves no partial writes behind and never stops the
    rest of the run. Only failing to read the due set aborts the batch.
    """

    def __init__(
        self,
        bills: BillRepository,
        transactions: TransactionRepository,
        unit_of_work: UnitOfWork,
        include_overdue: bool = False,
    ):
        self.bills = bills
        self.transactions = transactions
        self.unit_of_work = unit_of_work
        self.include_overdue = include_overdue

    def run(self, today: date, deadline: Optional[Deadline] = None) -> SettlementSummary:
        """
        Raises:
            BillFetchError: If the due bills cannot be fetched
        """
        try:
            if deadline is not None:
                deadline.check("fetch_due_bills")
            due_bills = self.bills.find_due(
                today,
                autopay=True,
                status=BillStatus.UPCOMING,
                include_overdue=self.include_overdue,
            )
        except StorageError as e:
            logger.error(f"Error fetching due autopay bills: {e}", extra={"run_date": today.isoformat()})
            raise BillFetchError(f"Could not fetch autopay bills due {today}") from e

        due_bills = [b for b in due_bills if is_autopay_settleable(b, today, self.include_overdue)]
        summary = SettlementSummary()
        if not due_bills:
            logger.info("No bills due today with autopay enabled", extra={"run_date": today.isoformat()})
            return summary

        for bill in due_bills:
            try:
                self.settle(bill, today, deadline)
                summary.processed += 1
            except SettlementError as e:
                summary.errors += 1
                summary.failures.append(SettlementFailure(bill_id=bill.id, step=e.step, reason=e.reason))
                logger.error(
                    f"Error processing autopay for bill {bill.id}: {e.reason}",
                    extra={"bill_id": str(bill.id), "step": e.step, "run_date": today.isoformat()},
                )

        return summary

    def settle(self, bill: Bill, today: date, deadline: Optional[Deadline] = None) -> None:
        """
        Settle one bill atomically.

        Raises:
            SettlementError: Wrapping whatever failed, tagged with the failing step
        """
        step = "build_transaction"
        try:
            with self.unit_of_work.atomic():
                payment = build_autopay_transaction(bill, today)

                step = "insert_transaction"
                self._checkpoint(deadline, step)
                self.transactions.insert(payment)

                step = "mark_paid"
                paid = transition(bill, BillStatus.PAID)
                self._checkpoint(deadline, step)
                self.bills.update_status(bill.id, paid.status)

                step = "spawn_next"
                next_due = next_due_date(today, bill.frequency)
                if should_spawn_next(next_due, bill.end_date):
                    self._checkpoint(deadline, step)
                    self.bills.insert(next_occurrence(paid, next_due))
        except Exception as e:
            raise SettlementError(bill.id, step, str(e) or e.__class__.__name__) from e

    @staticmethod
    def _checkpoint(deadline: Optional[Deadline], step: str) -> None:
        if deadline is not None:
            deadline.check(step)


class PendingPromotionBatch:
    """Flag non-autopay bills due today as awaiting manual payment, in one bulk update"""

    def __init__(self, bills: BillRepository, include_overdue: bool = False):
        self.bills = bills
        self.include_overdue = include_overdue

    def run(self, today: date) -> PromotionSummary:
        """
        Raises:
            BillFetchError: If the bulk update fails
        """
        try:
            updated = self.bills.bulk_update_status(
                today,
                autopay=False,
                from_status=BillStatus.UPCOMING,
                to_status=BillStatus.PENDING,
                include_overdue=self.include_overdue,
            )
        except StorageError as e:
            logger.error(f"Error updating pending bill statuses: {e}", extra={"run_date": today.isoformat()})
            raise BillFetchError(f"Could not promote bills due {today}") from e

        return PromotionSummary(updated=updated)

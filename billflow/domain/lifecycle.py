"""Bill lifecycle state machine and autopay configuration rules"""

import uuid
from dataclasses import replace
from datetime import date
from typing import Dict, FrozenSet, Optional
from billflow.domain.models import AutopaySource, Bill, BillStatus, DueStatus
from billflow.domain.exceptions import InvalidAutopayConfigError, InvalidTransitionError


# paid closes an occurrence; the next one is a new Bill, not a state change
TRANSITIONS: Dict[BillStatus, FrozenSet[BillStatus]] = {
    BillStatus.UPCOMING: frozenset({BillStatus.PENDING, BillStatus.PAID, BillStatus.DELETED}),
    BillStatus.PENDING: frozenset({BillStatus.PAID, BillStatus.DELETED}),
    BillStatus.PAID: frozenset({BillStatus.DELETED}),
    BillStatus.DELETED: frozenset(),
}


def can_transition(current: BillStatus, target: BillStatus) -> bool:
    return target in TRANSITIONS[current]


def transition(bill: Bill, target: BillStatus) -> Bill:
    """Return a copy of the bill in the target status, or raise if the move is illegal"""
    if not can_transition(bill.status, target):
        raise InvalidTransitionError(
            f"Bill {bill.id} cannot move from {bill.status.value} to {target.value}"
        )
    return replace(bill, status=target)


def _is_due(bill: Bill, today: date, include_overdue: bool) -> bool:
    if include_overdue:
        return bill.due_date <= today
    return bill.due_date == today


def is_autopay_settleable(bill: Bill, today: date, include_overdue: bool = False) -> bool:
    """Bill qualifies for the automatic upcoming → paid path"""
    return bill.status is BillStatus.UPCOMING and bill.autopay and _is_due(bill, today, include_overdue)


def is_promotable(bill: Bill, today: date, include_overdue: bool = False) -> bool:
    """Bill qualifies for the manual upcoming → pending path"""
    return bill.status is BillStatus.UPCOMING and not bill.autopay and _is_due(bill, today, include_overdue)


def next_occurrence(bill: Bill, next_due: date) -> Bill:
    """
    Build the next Bill in a series.

    Everything but identity, status and due date is copied verbatim, so the
    series keeps its transaction_id lineage and autopay configuration.
    Denormalized labels are dropped since they are not stored on bills.
    """
    return replace(
        bill,
        id=uuid.uuid4(),
        status=BillStatus.UPCOMING,
        due_date=next_due,
        funding_account_name=None,
        funding_account_type=None,
        funding_card_name=None,
        category_name=None,
    )


def due_status(due_date: date, today: date) -> DueStatus:
    if due_date < today:
        return DueStatus.OVERDUE
    if due_date == today:
        return DueStatus.TODAY
    return DueStatus.UPCOMING


def is_series_active(end_date: Optional[date], today: date) -> bool:
    """Series without an end date never expire; otherwise active through end_date"""
    return end_date is None or end_date >= today


def check_funding(bill: Bill) -> None:
    """Raise if the bill's funding instrument does not match its autopay source"""
    has_account = bill.funding_account_id is not None
    has_card = bill.funding_card_id is not None

    if bill.autopay_source is AutopaySource.NONE:
        if has_account or has_card:
            raise InvalidAutopayConfigError("Autopay source 'none' must not reference a funding instrument")
        if bill.autopay:
            raise InvalidAutopayConfigError("Autopay requires a funding source")
        return

    if not bill.autopay:
        return

    if bill.autopay_source is AutopaySource.ACCOUNT and not (has_account and not has_card):
        raise InvalidAutopayConfigError("Account autopay needs exactly a funding account")
    if bill.autopay_source is AutopaySource.CREDIT_CARD and not (has_card and not has_account):
        raise InvalidAutopayConfigError("Credit card autopay needs exactly a funding card")


def configure_autopay(
    bill: Bill,
    autopay: bool,
    source: AutopaySource = AutopaySource.ACCOUNT,
    account_id: Optional[uuid.UUID] = None,
    card_id: Optional[uuid.UUID] = None,
) -> Bill:
    """
    Apply an autopay configuration to a bill.

    The instrument that does not match the source is cleared, and both are
    cleared when autopay is switched off.
    """
    if not autopay:
        return replace(
            bill,
            autopay=False,
            autopay_source=source,
            funding_account_id=None,
            funding_card_id=None,
        )

    updated = replace(
        bill,
        autopay=True,
        autopay_source=source,
        funding_account_id=account_id if source is AutopaySource.ACCOUNT else None,
        funding_card_id=card_id if source is AutopaySource.CREDIT_CARD else None,
    )
    check_funding(updated)
    return updated

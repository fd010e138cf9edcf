"""Unit tests for the bill lifecycle state machine"""

import uuid
import pytest
from datetime import date
from decimal import Decimal
from billflow.domain.exceptions import InvalidAutopayConfigError, InvalidTransitionError
from billflow.domain.lifecycle import (
    can_transition,
    check_funding,
    configure_autopay,
    due_status,
    is_autopay_settleable,
    is_promotable,
    is_series_active,
    next_occurrence,
    transition,
)
from billflow.domain.models import AutopaySource, Bill, BillStatus, DueStatus, Frequency

TODAY = date(2024, 3, 15)


def make_bill(**overrides) -> Bill:
    fields = dict(
        user_id="user_1",
        name="Internet",
        amount=Decimal("999.00"),
        due_date=TODAY,
        frequency=Frequency.MONTHLY,
        transaction_id=uuid.uuid4(),
    )
    fields.update(overrides)
    return Bill(**fields)


def test_transition_table():
    """Upcoming can go anywhere; paid only to deleted; deleted is terminal"""
    assert can_transition(BillStatus.UPCOMING, BillStatus.PENDING)
    assert can_transition(BillStatus.UPCOMING, BillStatus.PAID)
    assert can_transition(BillStatus.PENDING, BillStatus.PAID)
    assert can_transition(BillStatus.PAID, BillStatus.DELETED)

    assert not can_transition(BillStatus.PENDING, BillStatus.UPCOMING)
    assert not can_transition(BillStatus.PAID, BillStatus.UPCOMING)
    assert not can_transition(BillStatus.PAID, BillStatus.PENDING)
    for target in BillStatus:
        assert not can_transition(BillStatus.DELETED, target)


def test_deleted_reachable_from_every_live_state():
    for status in (BillStatus.UPCOMING, BillStatus.PENDING, BillStatus.PAID):
        assert can_transition(status, BillStatus.DELETED)


def test_transition_returns_copy():
    bill = make_bill()
    paid = transition(bill, BillStatus.PAID)

    assert paid.status is BillStatus.PAID
    assert bill.status is BillStatus.UPCOMING
    assert paid.id == bill.id


def test_transition_rejects_illegal_move():
    with pytest.raises(InvalidTransitionError):
        transition(make_bill(status=BillStatus.PAID), BillStatus.PAID)


def test_autopay_settleable_requires_exact_due_date_by_default():
    bill = make_bill(autopay=True, autopay_source=AutopaySource.ACCOUNT, funding_account_id=uuid.uuid4())

    assert is_autopay_settleable(bill, TODAY)
    assert not is_autopay_settleable(bill, date(2024, 3, 16))
    assert not is_autopay_settleable(bill, date(2024, 3, 14))
    assert not is_promotable(bill, TODAY)


def test_overdue_catch_up_is_opt_in():
    bill = make_bill(autopay=False, due_date=date(2024, 3, 10))

    assert not is_promotable(bill, TODAY)
    assert is_promotable(bill, TODAY, include_overdue=True)


def test_non_upcoming_bills_are_never_picked_up():
    bill = make_bill(status=BillStatus.PENDING)
    assert not is_promotable(bill, TODAY)
    assert not is_autopay_settleable(bill, TODAY)


def test_next_occurrence_copies_series_fields():
    """New occurrence keeps lineage and autopay config but gets a new id and status"""
    account_id = uuid.uuid4()
    bill = make_bill(
        status=BillStatus.PAID,
        autopay=True,
        autopay_source=AutopaySource.ACCOUNT,
        funding_account_id=account_id,
        end_date=date(2024, 12, 31),
        category_id="cat_utilities",
        funding_account_name="HDFC Savings",
    )
    nxt = next_occurrence(bill, date(2024, 4, 15))

    assert nxt.id != bill.id
    assert nxt.status is BillStatus.UPCOMING
    assert nxt.due_date == date(2024, 4, 15)
    assert nxt.transaction_id == bill.transaction_id
    assert nxt.funding_account_id == account_id
    assert nxt.autopay is True
    assert nxt.end_date == bill.end_date
    assert nxt.amount == bill.amount
    assert nxt.category_id == "cat_utilities"
    assert nxt.funding_account_name is None


def test_due_status():
    assert due_status(date(2024, 3, 14), TODAY) is DueStatus.OVERDUE
    assert due_status(TODAY, TODAY) is DueStatus.TODAY
    assert due_status(date(2024, 3, 16), TODAY) is DueStatus.UPCOMING


def test_is_series_active():
    assert is_series_active(None, TODAY)
    assert is_series_active(TODAY, TODAY)
    assert not is_series_active(date(2024, 3, 14), TODAY)


def test_configure_autopay_account_clears_card():
    account_id = uuid.uuid4()
    bill = make_bill(funding_card_id=uuid.uuid4(), autopay_source=AutopaySource.CREDIT_CARD)

    updated = configure_autopay(bill, True, AutopaySource.ACCOUNT, account_id=account_id, card_id=uuid.uuid4())

    assert updated.autopay is True
    assert updated.autopay_source is AutopaySource.ACCOUNT
    assert updated.funding_account_id == account_id
    assert updated.funding_card_id is None


def test_configure_autopay_credit_card():
    card_id = uuid.uuid4()
    updated = configure_autopay(make_bill(), True, AutopaySource.CREDIT_CARD, card_id=card_id)

    assert updated.funding_card_id == card_id
    assert updated.funding_account_id is None


def test_configure_autopay_requires_matching_instrument():
    with pytest.raises(InvalidAutopayConfigError):
        configure_autopay(make_bill(), True, AutopaySource.ACCOUNT, card_id=uuid.uuid4())

    with pytest.raises(InvalidAutopayConfigError):
        configure_autopay(make_bill(), True, AutopaySource.NONE)


def test_disabling_autopay_clears_both_instruments():
    bill = make_bill(autopay=True, autopay_source=AutopaySource.ACCOUNT, funding_account_id=uuid.uuid4())
    updated = configure_autopay(bill, False)

    assert updated.autopay is False
    assert updated.funding_account_id is None
    assert updated.funding_card_id is None


def test_check_funding_rejects_instrument_with_source_none():
    with pytest.raises(InvalidAutopayConfigError):
        check_funding(make_bill(autopay_source=AutopaySource.NONE, funding_account_id=uuid.uuid4()))

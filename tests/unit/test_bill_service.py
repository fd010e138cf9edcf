"""Unit tests for manual bill operations"""

import uuid
import pytest
from billflow.domain.exceptions import BillNotFoundError, InvalidAutopayConfigError, InvalidTransitionError
from billflow.domain.models import AutopaySource, BillStatus
from billflow.services.bills import BillService


def test_mark_paid_from_pending(store, bill_repo):
    bill = store.add_bill(status=BillStatus.PENDING)

    paid = BillService(bill_repo).mark_paid(bill.id)

    assert paid.status is BillStatus.PAID
    assert store.bills[bill.id].status is BillStatus.PAID
    # Manual payment never records a transaction
    assert store.transactions == {}


def test_mark_paid_twice_is_rejected(store, bill_repo):
    bill = store.add_bill(status=BillStatus.PAID)

    with pytest.raises(InvalidTransitionError):
        BillService(bill_repo).mark_paid(bill.id)


def test_mark_paid_unknown_bill(bill_repo):
    with pytest.raises(BillNotFoundError):
        BillService(bill_repo).mark_paid(uuid.uuid4())


def test_enable_autopay_from_account(store, bill_repo):
    bill = store.add_bill()
    account_id = uuid.uuid4()

    BillService(bill_repo).update_autopay(bill.id, True, AutopaySource.ACCOUNT, account_id=account_id)

    saved = store.bills[bill.id]
    assert saved.autopay is True
    assert saved.autopay_source is AutopaySource.ACCOUNT
    assert saved.funding_account_id == account_id


def test_switch_autopay_to_card(store, bill_repo):
    bill = store.add_bill(autopay=True, autopay_source=AutopaySource.ACCOUNT, funding_account_id=uuid.uuid4())
    card_id = uuid.uuid4()

    BillService(bill_repo).update_autopay(bill.id, True, AutopaySource.CREDIT_CARD, card_id=card_id)

    saved = store.bills[bill.id]
    assert saved.funding_card_id == card_id
    assert saved.funding_account_id is None


def test_invalid_autopay_config_leaves_bill_untouched(store, bill_repo):
    bill = store.add_bill()

    with pytest.raises(InvalidAutopayConfigError):
        BillService(bill_repo).update_autopay(bill.id, True, AutopaySource.CREDIT_CARD)

    assert store.bills[bill.id].autopay is False

"""User-driven bill operations outside the daily batches"""

import uuid
from typing import Optional
from billflow.domain.exceptions import BillNotFoundError
from billflow.domain.lifecycle import configure_autopay, transition
from billflow.domain.models import AutopaySource, Bill, BillStatus
from billflow.domain.repositories import BillRepository


class BillService:
    def __init__(self, bills: BillRepository):
        self.bills = bills

    def _get(self, bill_id: uuid.UUID) -> Bill:
        bill = self.bills.get(bill_id)
        if bill is None:
            raise BillNotFoundError(f"Bill {bill_id} not found")
        return bill

    def mark_paid(self, bill_id: uuid.UUID) -> Bill:
        """Manual payment: close an upcoming or pending occurrence without creating a transaction"""
        paid = transition(self._get(bill_id), BillStatus.PAID)
        self.bills.update_status(bill_id, paid.status)
        return paid

    def update_autopay(
        self,
        bill_id: uuid.UUID,
        autopay: bool,
        source: AutopaySource = AutopaySource.ACCOUNT,
        account_id: Optional[uuid.UUID] = None,
        card_id: Optional[uuid.UUID] = None,
    ) -> Bill:
        """
        Raises:
            BillNotFoundError: If the bill does not exist
            InvalidAutopayConfigError: If source and instrument disagree
        """
        bill = configure_autopay(self._get(bill_id), autopay, source, account_id, card_id)
        self.bills.save_autopay(bill)
        return bill

"""SQLAlchemy ORM models for bills, transactions and the accounts they touch"""

import uuid
from sqlalchemy import Column, String, Boolean, DateTime, Date, Numeric, ForeignKey, Text, Uuid
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()

# Two decimal places, large enough for any personal balance
Money = Numeric(14, 2)


class AccountRecord(Base):
    """Bank/cash account; current_balance is a cache of the ledger calculation"""

    __tablename__ = "accounts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False)
    type = Column(Text, nullable=False, default="bank")
    initial_balance = Column(Money, nullable=False, default=0)
    current_balance = Column(Money, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class CreditCardRecord(Base):
    """Credit card usable as an autopay source"""

    __tablename__ = "credit_cards"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class BudgetCategoryRecord(Base):
    __tablename__ = "budget_categories"

    id = Column(Text, primary_key=True)
    user_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False)


class BillRecord(Base):
    """One occurrence of a bill series"""

    __tablename__ = "upcoming_bills"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    transaction_id = Column(Uuid, nullable=True, index=True)  # series anchor
    name = Column(Text, nullable=False)
    amount = Column(Money, nullable=False)
    due_date = Column(Date, nullable=False, index=True)
    frequency = Column(String(16), nullable=False, default="none")
    end_date = Column(Date, nullable=True)
    status = Column(String(16), nullable=False, default="upcoming", index=True)
    autopay = Column(Boolean, nullable=False, default=False)
    autopay_source = Column(String(16), nullable=False, default="none")
    account_id = Column(Uuid, ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True)
    credit_card_id = Column(Uuid, ForeignKey("credit_cards.id", ondelete="SET NULL"), nullable=True)
    category_id = Column(Text, ForeignKey("budget_categories.id", ondelete="SET NULL"), nullable=True)
    subcategory_id = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    account = relationship("AccountRecord")
    credit_card = relationship("CreditCardRecord")
    category = relationship("BudgetCategoryRecord")


class TransactionRecord(Base):
    """Single-entry ledger row; transfers carry both legs"""

    __tablename__ = "transactions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    type = Column(String(32), nullable=False)
    amount = Column(Money, nullable=False)
    date = Column(Date, nullable=False)
    name = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    merchant = Column(Text, nullable=True)
    # Not a foreign key: for credit card autopay this points at credit_cards
    source_account_id = Column(Uuid, nullable=True, index=True)
    source_account_type = Column(Text, nullable=True)
    source_account_name = Column(Text, nullable=True)
    destination_account_id = Column(Uuid, nullable=True, index=True)
    category_id = Column(Text, nullable=True)
    subcategory_id = Column(Text, nullable=True)
    parent_transaction_id = Column(Uuid, nullable=True, index=True)
    is_recurring = Column(Boolean, nullable=False, default=False)
    idempotency_key = Column(Text, nullable=True, unique=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

"""
Module: finance_kernel.models.ledger
Responsibility: ORM persistence for the ledger read by statement generation:
    category types, accounts, and dated income/expense transactions.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - CategoryType.code and Account.number are unique.
    - Transaction.amount is a positive Decimal; direction is carried by
      transaction_type (INCOME or EXPENSE), never by the sign of amount.

Failure modes:
    - IntegrityError on duplicate codes or numbers, or a transaction that
      references a missing account.

Audit relevance:
    Statement figures are pure functions of these rows and the mapping set.
    Re-running a report over the same rows reproduces the same numbers.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from finance_kernel.db.base import Base, UUIDString


class TransactionType(str, Enum):
    """Direction of a ledger transaction."""

    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class CategoryType(Base):
    """
    Broad ledger category (e.g. ASSET_CURRENT, REVENUE, COGS).

    Report sections select ledger data either by one of these codes or by a
    specific account number.
    """

    __tablename__ = "category_types"

    __table_args__ = (
        UniqueConstraint("code", name="uq_category_type_code"),
    )

    # Machine code referenced by mapping selectors
    code: Mapped[str] = mapped_column(String(50), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    accounts: Mapped[list["Account"]] = relationship(back_populates="category_type")

    def __repr__(self) -> str:
        return f"<CategoryType {self.code}: {self.name}>"


class Account(Base):
    """A numbered ledger account belonging to exactly one category type."""

    __tablename__ = "accounts"

    __table_args__ = (
        UniqueConstraint("number", name="uq_account_number"),
        Index("idx_account_category_type", "category_type_id"),
    )

    # Chart-of-accounts number, e.g. "4101"
    number: Mapped[str] = mapped_column(String(50), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    category_type_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("category_types.id"),
        nullable=False,
    )

    category_type: Mapped[CategoryType] = relationship(back_populates="accounts")

    transactions: Mapped[list["Transaction"]] = relationship(back_populates="account")

    def __repr__(self) -> str:
        return f"<Account {self.number}: {self.name}>"


class Transaction(Base):
    """
    A dated income or expense movement on one account.

    Monthly balance for a category = sum(INCOME amounts) - sum(EXPENSE amounts).
    """

    __tablename__ = "transactions"

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_transaction_amount_non_negative"),
        Index("idx_transaction_date", "transaction_date"),
        Index("idx_transaction_account", "account_id"),
    )

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )

    transaction_type: Mapped[TransactionType] = mapped_column(
        String(10),
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(nullable=False)

    transaction_date: Mapped[date] = mapped_column(Date, nullable=False)

    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    account: Mapped[Account] = relationship(back_populates="transactions")

    def __repr__(self) -> str:
        return (
            f"<Transaction {self.transaction_type} {self.amount} "
            f"on {self.transaction_date}>"
        )

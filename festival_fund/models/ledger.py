"""
Ledger Models

The fund has exactly one running balance (the Account) and an
append-only log of Transactions that explains every change to it.

INVARIANTS:
- account.balance == account.total_income - account.total_expense
- account.balance == sum of signed amounts of all transactions
- INCOME:  balance_after == balance_before + amount
- EXPENSE: balance_after == balance_before - amount
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from festival_fund.models.common import ZERO, Money, UtcDateTime, utc_now


class TransactionType(str, Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class ReferenceType(str, Enum):
    """What kind of entity a transaction was recorded for."""
    PAYMENT = "PAYMENT"
    EXPENSE = "EXPENSE"


class Account(BaseModel):
    """
    The organization's single balance.

    `version` is the optimistic concurrency token. It is bumped on every
    balance write and a write is only accepted if the version it read is
    still current.
    """

    id: str
    balance: Money = ZERO
    total_income: Money = Field(default=ZERO, ge=0)
    total_expense: Money = Field(default=ZERO, ge=0)
    last_transaction_date: Optional[UtcDateTime] = None
    version: int = Field(default=0, ge=0)
    created_at: UtcDateTime = Field(default_factory=utc_now)
    updated_at: UtcDateTime = Field(default_factory=utc_now)

    @property
    def is_balanced(self) -> bool:
        """Check the totals still explain the balance."""
        return self.balance == self.total_income - self.total_expense


class Transaction(BaseModel):
    """
    One immutable balance-changing event.

    `date` is the business date of the payment or expense, not the time
    the record was written (that is `created_at`).
    """
    model_config = ConfigDict(frozen=True)

    id: str
    type: TransactionType
    amount: Money = Field(..., gt=0)
    balance_before: Money
    balance_after: Money
    description: str = Field(..., min_length=1, max_length=500)
    reference_id: Optional[str] = None
    reference_type: Optional[ReferenceType] = None
    date: UtcDateTime
    created_at: UtcDateTime = Field(default_factory=utc_now)

    @model_validator(mode='after')
    def validate_arithmetic(self) -> 'Transaction':
        if self.balance_after != self.balance_before + self.signed_amount:
            raise ValueError(
                f"{self.type.value} transaction does not add up: "
                f"{self.balance_before} -> {self.balance_after} for {self.amount}"
            )
        return self

    @property
    def signed_amount(self) -> Decimal:
        """Amount as it affects the balance (expenses are negative)."""
        if self.type == TransactionType.EXPENSE:
            return -self.amount
        return self.amount


def apply_to_account(
    account: Account,
    transaction_type: TransactionType,
    amount: Decimal,
    date: datetime,
) -> dict:
    """
    Compute the account fields that change when a transaction is applied.

    Pure function: returns the partial update, does not touch storage.
    """
    if transaction_type == TransactionType.INCOME:
        return {
            "balance": account.balance + amount,
            "total_income": account.total_income + amount,
            "last_transaction_date": date,
        }
    return {
        "balance": account.balance - amount,
        "total_expense": account.total_expense + amount,
        "last_transaction_date": date,
    }

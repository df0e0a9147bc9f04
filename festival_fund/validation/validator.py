"""
Input Validation

DESIGN DECISION: Validation happens before anything is read or written.
A ledger call with a bad amount must not touch the account, and a payment
with a bad amount must not leave a payment document behind.

IMPORTANT: Validation NEVER silently fixes issues.
A bad value is reported with the field it came from.
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from festival_fund.config import get_settings
from festival_fund.models.entities import ExpenseCategory, PaymentStatus


# Longest description a ledger transaction accepts
MAX_DESCRIPTION_LENGTH = 500


class ValidationError(Exception):
    """An input was rejected before any side effect."""

    def __init__(self, field: str, value: Any, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.value = value
        self.message = message


class ContributionValidator:
    """
    Validates the inputs of ledger records and of the payment and
    expense flows.

    Each check returns the normalized value or raises ValidationError.
    """

    def __init__(self, max_amount: Optional[float] = None):
        if max_amount is None:
            max_amount = get_settings().app.max_amount
        self._max_amount = Decimal(str(max_amount))

    def amount(self, value: Any, field: str = "amount") -> Decimal:
        """A strictly positive, finite amount below the sanity ceiling."""
        if isinstance(value, bool) or value is None:
            raise ValidationError(field, value, "Amount is required")
        try:
            amount = value if isinstance(value, Decimal) else Decimal(str(value))
        except (InvalidOperation, ValueError):
            raise ValidationError(field, value, "Amount must be a number")

        if not amount.is_finite():
            raise ValidationError(field, value, "Amount must be a finite number")
        if amount <= 0:
            raise ValidationError(field, value, "Amount must be greater than zero")
        if amount > self._max_amount:
            raise ValidationError(
                field, value, f"Amount exceeds the maximum of {self._max_amount}"
            )
        return amount

    def text(self, value: Any, field: str) -> str:
        """A non-blank string, stripped."""
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(field, value, f"{field} is required")
        return value.strip()

    def description(self, value: Any) -> str:
        description = self.text(value, "description")
        if len(description) > MAX_DESCRIPTION_LENGTH:
            raise ValidationError(
                "description",
                value,
                f"Description must be at most {MAX_DESCRIPTION_LENGTH} characters",
            )
        return description

    def business_date(self, value: Any, field: str) -> datetime | date:
        if not isinstance(value, (date, datetime)):
            raise ValidationError(field, value, f"{field} must be a date")
        return value

    def payment(
        self,
        family_id: Any,
        festival_id: Any,
        amount: Any,
        paid_date: Any,
        status: Any,
    ) -> tuple[str, str, Decimal, PaymentStatus]:
        """Check a new payment. Returns (family_id, festival_id, amount, status)."""
        family_id = self.text(family_id, "family_id")
        festival_id = self.text(festival_id, "festival_id")
        amount = self.amount(amount)
        self.business_date(paid_date, "paid_date")
        try:
            status = PaymentStatus(status)
        except ValueError:
            raise ValidationError("status", status, "Unknown payment status")
        return family_id, festival_id, amount, status

    def expense(
        self,
        purpose: Any,
        category: Any,
        amount: Any,
        expense_date: Any,
        paid_to: Any,
    ) -> tuple[str, ExpenseCategory, Decimal, str]:
        """Check a new expense. Returns (purpose, category, amount, paid_to)."""
        purpose = self.text(purpose, "purpose")
        try:
            category = ExpenseCategory(category)
        except ValueError:
            raise ValidationError("category", category, "Unknown expense category")
        amount = self.amount(amount)
        self.business_date(expense_date, "expense_date")
        paid_to = self.text(paid_to, "paid_to")
        return purpose, category, amount, paid_to

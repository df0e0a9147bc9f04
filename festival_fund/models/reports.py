"""
Report Models

Computed on read, never persisted.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from pydantic import BaseModel, Field

from festival_fund.models.common import ZERO, Money, UtcDateTime, utc_now
from festival_fund.models.entities import Festival, Payment, PaymentStatus
from festival_fund.models.ledger import Transaction


# Shown in place of a name whose document is gone
UNKNOWN_NAME = "Unknown"
UNKNOWN_FAMILY = UNKNOWN_NAME
UNKNOWN_FESTIVAL = UNKNOWN_NAME
UNKNOWN_VENDOR = UNKNOWN_NAME


class PaymentRow(BaseModel):
    """One payment as it appears in a festival report."""

    payment_id: str
    family_id: str
    family_name: str = UNKNOWN_FAMILY
    amount: Money
    paid_date: UtcDateTime
    status: PaymentStatus
    receipt_number: Optional[str] = None


class FestivalReport(BaseModel):
    """
    Expected vs collected contributions for one festival.

    pending_amount can be negative when families overpay. That is
    reported as-is, not clamped.
    """

    festival_id: str
    festival_name: str
    festival_date: UtcDateTime
    amount_per_family: Money
    total_families: int = Field(ge=0)
    paid_families: int = Field(ge=0)
    unpaid_families: int
    total_amount: Money
    collected_amount: Money
    pending_amount: Money
    payments: list[PaymentRow] = Field(default_factory=list)
    generated_at: UtcDateTime = Field(default_factory=utc_now)

    @property
    def collection_rate(self) -> Decimal:
        """Collected / expected, 0 when nothing is expected."""
        if self.total_amount == 0:
            return ZERO
        return self.collected_amount / self.total_amount

    @property
    def collection_percentage(self) -> int:
        """Collection rate as a rounded whole percentage."""
        percentage = self.collection_rate * 100
        return int(percentage.quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    def totals(self) -> dict:
        """Headline numbers only, for comparing two runs."""
        return self.model_dump(exclude={"payments", "generated_at"})


class DashboardSnapshot(BaseModel):
    """
    Point-in-time organization statistics.

    A section whose fetch failed is left empty/zero and its name is listed
    in `degraded_sections`.
    """

    generated_at: UtcDateTime = Field(default_factory=utc_now)

    total_families: int = 0
    active_families: int = 0
    total_festivals: int = 0
    active_festivals: int = 0
    upcoming_festivals: int = 0

    total_collection_this_year: Money = ZERO
    total_expense_this_year: Money = ZERO
    current_balance: Money = ZERO
    pending_payments: int = 0

    recent_payments: list[Payment] = Field(default_factory=list)
    upcoming_festivals_list: list[Festival] = Field(default_factory=list)
    recent_transactions: list[Transaction] = Field(default_factory=list)

    degraded_sections: list[str] = Field(default_factory=list)

    @property
    def is_degraded(self) -> bool:
        return bool(self.degraded_sections)

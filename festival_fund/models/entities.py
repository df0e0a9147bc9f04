"""
Entity Models for the Festival Fund

Families, festivals, payments and expenses are owned by the CRUD side of the
application. The ledger and report engine only read them, so these models
describe what a stored document is expected to look like once it has been
mapped (see `festival_fund.models.documents`).

Receipts and invoices are the structured data behind printable documents.
Rendering is done elsewhere; we only produce the fields.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from festival_fund.models.common import Money, UtcDateTime


# =============================================================================
# ENUMS
# =============================================================================

class PaymentStatus(str, Enum):
    """Contribution status of a payment record."""
    PAID = "PAID"
    UNPAID = "UNPAID"
    PENDING = "PENDING"


class ExpenseCategory(str, Enum):
    """What the money was spent on."""
    TENT = "TENT"
    FOOD = "FOOD"
    DECORATION = "DECORATION"
    ENTERTAINMENT = "ENTERTAINMENT"
    UTILITIES = "UTILITIES"
    TRANSPORT = "TRANSPORT"
    SOUND_LIGHT = "SOUND_LIGHT"
    PRIEST = "PRIEST"
    OTHER = "OTHER"


# =============================================================================
# ENTITIES
# =============================================================================

class Family(BaseModel):
    """A contributing household, identified by its head."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str
    head_name: str = Field(..., min_length=1, max_length=200)
    phone: Optional[str] = None
    members: int = Field(default=1, ge=1)
    address: Optional[str] = None
    is_active: bool = True


class Festival(BaseModel):
    """A festival that families are asked to contribute to."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str
    name: str = Field(..., min_length=1, max_length=200)
    type: Optional[str] = None
    date: UtcDateTime
    amount_per_family: Money = Field(..., ge=0)
    description: Optional[str] = None
    is_active: bool = True


class Payment(BaseModel):
    """
    One contribution record from a family towards a festival.

    A family may have several payments for the same festival
    (corrections, part payments). Reports count the family once
    but sum every PAID amount.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str
    family_id: str = Field(..., min_length=1)
    festival_id: str = Field(..., min_length=1)
    amount: Money = Field(..., ge=0)
    paid_date: UtcDateTime
    status: PaymentStatus = PaymentStatus.PAID
    receipt_number: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=1000)


class Expense(BaseModel):
    """Money paid out of the fund."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str
    purpose: str = Field(..., min_length=1, max_length=500)
    category: ExpenseCategory = ExpenseCategory.OTHER
    amount: Money = Field(..., ge=0)
    expense_date: UtcDateTime
    paid_to: Optional[str] = None
    contact_number: Optional[str] = None
    festival_id: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=1000)


class Receipt(BaseModel):
    """Data for a printable payment receipt."""

    id: str
    payment_id: str
    receipt_number: str
    family_name: str
    festival_name: str
    amount: Money
    paid_date: UtcDateTime
    generated_by: str
    created_at: Optional[UtcDateTime] = None


class Invoice(BaseModel):
    """Data for a printable expense invoice."""

    id: str
    expense_id: str
    invoice_number: str
    vendor_name: str
    purpose: str
    amount: Money
    expense_date: UtcDateTime
    generated_by: str
    contact_number: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[UtcDateTime] = None

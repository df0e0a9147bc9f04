"""
Data Models Package

This package contains the Pydantic models used by the ledger and the
report engine. Mapping between stored documents and these models lives in
`festival_fund.models.documents`.
"""

from festival_fund.models.entities import (
    Expense,
    ExpenseCategory,
    Family,
    Festival,
    Invoice,
    Payment,
    PaymentStatus,
    Receipt,
)
from festival_fund.models.ledger import (
    Account,
    ReferenceType,
    Transaction,
    TransactionType,
)
from festival_fund.models.reports import (
    DashboardSnapshot,
    FestivalReport,
    PaymentRow,
)
from festival_fund.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Entity models
    "Expense",
    "ExpenseCategory",
    "Family",
    "Festival",
    "Invoice",
    "Payment",
    "PaymentStatus",
    "Receipt",
    # Ledger models
    "Account",
    "ReferenceType",
    "Transaction",
    "TransactionType",
    # Report models
    "DashboardSnapshot",
    "FestivalReport",
    "PaymentRow",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]

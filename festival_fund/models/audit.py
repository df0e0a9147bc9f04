"""
Audit Models for the Festival Fund

Every change to the fund's money is logged for audit purposes.
This provides:
1. Traceability from a balance change back to the payment or expense
2. Enough detail to reconcile by hand when a ledger write half-fails
3. A record of degraded dashboards and failed secondary effects

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from festival_fund.models.common import UtcDateTime, utc_now


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Entity flows
    PAYMENT_RECORDED = "payment_recorded"
    EXPENSE_RECORDED = "expense_recorded"
    RECEIPT_GENERATED = "receipt_generated"
    INVOICE_GENERATED = "invoice_generated"

    # Ledger
    LEDGER_INCOME_RECORDED = "ledger_income_recorded"
    LEDGER_EXPENSE_RECORDED = "ledger_expense_recorded"
    LEDGER_UPDATE_FAILED = "ledger_update_failed"
    TRANSACTION_APPEND_FAILED = "transaction_append_failed"
    CONSISTENCY_WARNING = "consistency_warning"

    # Reporting
    REPORT_GENERATED = "report_generated"
    DASHBOARD_SECTION_DEGRADED = "dashboard_section_degraded"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: UtcDateTime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'payment', 'expense', 'account')"
    )
    entity_id: Optional[str] = None

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events of one payment)"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }

    def to_document(self) -> dict:
        """Convert to a storable document (no Decimals, no UUIDs)."""
        document = self.to_log_dict()
        document.pop("event_id")
        return document


def _amount(value: Decimal) -> str:
    return str(value)


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.payment_recorded(payment_id, festival_id, amount, status, cid)
        event = AuditEventBuilder.ledger_update_failed("payment", payment_id, error, cid)
    """

    @staticmethod
    def payment_recorded(
        payment_id: str,
        festival_id: str,
        amount: Decimal,
        status: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_RECORDED,
            entity_type="payment",
            entity_id=payment_id,
            correlation_id=correlation_id,
            description=f"Payment recorded: {status}",
            details={
                "festival_id": festival_id,
                "amount": _amount(amount),
                "status": status,
            },
        )

    @staticmethod
    def expense_recorded(
        expense_id: str,
        category: str,
        amount: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_RECORDED,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Expense recorded: {category}",
            details={
                "category": category,
                "amount": _amount(amount),
            },
        )

    @staticmethod
    def ledger_recorded(
        transaction_id: str,
        transaction_type: str,
        amount: Decimal,
        balance_before: Decimal,
        balance_after: Decimal,
        reference_id: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        event_type = (
            AuditEventType.LEDGER_INCOME_RECORDED
            if transaction_type == "INCOME"
            else AuditEventType.LEDGER_EXPENSE_RECORDED
        )
        return AuditEvent(
            event_type=event_type,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Balance {balance_before} -> {balance_after}",
            details={
                "amount": _amount(amount),
                "balance_before": _amount(balance_before),
                "balance_after": _amount(balance_after),
                "reference_id": reference_id,
            },
        )

    @staticmethod
    def ledger_update_failed(
        entity_type: str,
        entity_id: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_UPDATE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Ledger not updated for {entity_type} {entity_id}",
            error_message=error_message,
        )

    @staticmethod
    def transaction_append_failed(
        account_id: str,
        details: dict[str, Any],
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        # The balance has moved with no transaction behind it.
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_APPEND_FAILED,
            severity=AuditSeverity.CRITICAL,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description="Account updated but transaction not recorded",
            details=details,
            error_message=error_message,
        )

    @staticmethod
    def consistency_warning(
        kind: str,
        details: dict[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONSISTENCY_WARNING,
            severity=AuditSeverity.WARNING,
            entity_type="account",
            correlation_id=correlation_id,
            description=f"Consistency warning: {kind}",
            details=details,
        )

    @staticmethod
    def report_generated(
        festival_id: str,
        paid_families: int,
        total_families: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REPORT_GENERATED,
            severity=AuditSeverity.DEBUG,
            entity_type="festival",
            entity_id=festival_id,
            correlation_id=correlation_id,
            description=f"Festival report: {paid_families}/{total_families} families paid",
            details={
                "paid_families": paid_families,
                "total_families": total_families,
            },
        )

    @staticmethod
    def dashboard_section_degraded(
        section: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DASHBOARD_SECTION_DEGRADED,
            severity=AuditSeverity.WARNING,
            entity_type="dashboard",
            entity_id=section,
            correlation_id=correlation_id,
            description=f"Dashboard section unavailable: {section}",
            error_message=error_message,
        )

    @staticmethod
    def document_generated(
        kind: str,
        number: str,
        source_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        event_type = (
            AuditEventType.RECEIPT_GENERATED
            if kind == "receipt"
            else AuditEventType.INVOICE_GENERATED
        )
        return AuditEvent(
            event_type=event_type,
            entity_type=kind,
            entity_id=number,
            correlation_id=correlation_id,
            description=f"{kind.capitalize()} {number} generated",
            details={"source_id": source_id},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

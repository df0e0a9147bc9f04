"""
Audit Logger

DESIGN DECISION: Every change to the fund's money is logged.
This provides:
1. Complete traceability from a balance back to payments and expenses
2. A reconciliation trail when a ledger write half-fails
3. Visibility of failures that are deliberately not shown to the user
   (a failed ledger update after a payment was saved, a degraded dashboard)

The audit logger:
- Never blocks a flow on the audit sheet; a failed write is logged and dropped
- Threads one correlation ID through a payment, its ledger entry and receipt
"""

from decimal import Decimal
from typing import Any, Optional
from uuid import UUID, uuid4

import structlog

from festival_fund.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from festival_fund.models.ledger import Transaction
from festival_fund.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class ConsistencyWarning(Warning):
    """
    A write succeeded but left the ledger in an unexpected state.

    Never raised. Built by the ledger and handed to the audit logger
    (negative balance after an expense, account moved without a
    transaction record).
    """

    def __init__(self, kind: str, details: dict[str, Any]):
        super().__init__(kind)
        self.kind = kind
        self.details = details


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit_log collection (for persistence and committee visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("festival_fund.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity == AuditSeverity.CRITICAL:
            self._logger.critical("audit_event", **log_dict)
        elif event.severity == AuditSeverity.ERROR:
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    # Convenience methods for common events

    async def log_payment_recorded(
        self,
        payment_id: str,
        festival_id: str,
        amount: Decimal,
        status: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.payment_recorded(
            payment_id=payment_id,
            festival_id=festival_id,
            amount=amount,
            status=status,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_expense_recorded(
        self,
        expense_id: str,
        category: str,
        amount: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.expense_recorded(
            expense_id=expense_id,
            category=category,
            amount=amount,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_ledger_recorded(
        self,
        transaction: Transaction,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a transaction that was applied and appended."""
        event = AuditEventBuilder.ledger_recorded(
            transaction_id=transaction.id,
            transaction_type=transaction.type.value,
            amount=transaction.amount,
            balance_before=transaction.balance_before,
            balance_after=transaction.balance_after,
            reference_id=transaction.reference_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_transaction_append_failed(
        self,
        account_id: str,
        details: dict[str, Any],
        error: Exception,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.transaction_append_failed(
            account_id=account_id,
            details=details,
            error_message=f"{type(error).__name__}: {error}",
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_report_generated(
        self,
        festival_id: str,
        paid_families: int,
        total_families: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.report_generated(
            festival_id=festival_id,
            paid_families=paid_families,
            total_families=total_families,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_document_generated(
        self,
        kind: str,
        number: str,
        source_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a generated receipt or invoice."""
        event = AuditEventBuilder.document_generated(
            kind=kind,
            number=number,
            source_id=source_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_consistency_warning(
        self,
        warning: ConsistencyWarning,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a ledger state that needs a human to look at it."""
        event = AuditEventBuilder.consistency_warning(
            kind=warning.kind,
            details=warning.details,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_ledger_update_failed(
        self,
        entity_type: str,
        entity_id: str,
        error: Exception,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a ledger update that failed after its entity was saved."""
        event = AuditEventBuilder.ledger_update_failed(
            entity_type=entity_type,
            entity_id=entity_id,
            error_message=f"{type(error).__name__}: {error}",
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_dashboard_degraded(
        self,
        section: str,
        error: Exception,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.dashboard_section_degraded(
            section=section,
            error_message=f"{type(error).__name__}: {error}",
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def get_recent_events(self, limit: int = 50) -> list[AuditEvent]:
        """Recent persisted events, newest first (empty without storage)."""
        if not self._storage:
            return []
        return await self._storage.get_recent_events(limit=limit)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., recording a payment).
    Pass it through all subsequent operations.
    """
    return uuid4()

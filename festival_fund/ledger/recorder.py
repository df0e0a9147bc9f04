"""
Event Recorder

The two event streams that move the balance: contributions coming in and
expenses going out. Callers (the payment and expense flows) only see these
two operations; the concurrency handling stays inside the Ledger.
"""

from datetime import date as date_type
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

import structlog

from festival_fund.audit import AuditLogger, ConsistencyWarning
from festival_fund.ledger.account import Ledger
from festival_fund.models.common import ZERO
from festival_fund.models.ledger import ReferenceType, Transaction, TransactionType


logger = structlog.get_logger("festival_fund.ledger")


class EventRecorder:
    """Records income and expense events against the ledger."""

    def __init__(
        self,
        ledger: Ledger,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._ledger = ledger
        self._audit_logger = audit_logger

    async def record_income(
        self,
        amount: Any,
        description: Any,
        reference_id: Optional[str] = None,
        date: Optional[datetime | date_type] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Add a contribution to the balance.

        Raises:
            ValidationError: amount <= 0 or empty description
            StorageError: The ledger could not be updated
        """
        transaction = await self._ledger.apply(
            TransactionType.INCOME,
            amount,
            description,
            reference_id=reference_id,
            reference_type=ReferenceType.PAYMENT,
            date=date,
            correlation_id=correlation_id,
        )
        await self._recorded(transaction, correlation_id)
        return transaction

    async def record_expense(
        self,
        amount: Any,
        description: Any,
        reference_id: Optional[str] = None,
        date: Optional[datetime | date_type] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Take an expense out of the balance.

        Overdraft is allowed: the committee sometimes pays vendors before
        contributions come in. A negative balance is flagged, not refused.
        """
        transaction = await self._ledger.apply(
            TransactionType.EXPENSE,
            amount,
            description,
            reference_id=reference_id,
            reference_type=ReferenceType.EXPENSE,
            date=date,
            correlation_id=correlation_id,
        )
        await self._recorded(transaction, correlation_id)

        if transaction.balance_after < ZERO:
            warning = ConsistencyWarning(
                "negative_balance",
                {
                    "transaction_id": transaction.id,
                    "balance_after": str(transaction.balance_after),
                    "reference_id": transaction.reference_id,
                },
            )
            logger.warning(
                "negative_balance",
                account_id=self._ledger.account_id,
                **warning.details,
            )
            if self._audit_logger:
                await self._audit_logger.log_consistency_warning(
                    warning, correlation_id=correlation_id
                )

        return transaction

    async def _recorded(
        self,
        transaction: Transaction,
        correlation_id: Optional[UUID],
    ) -> None:
        logger.info(
            f"ledger_{transaction.type.value.lower()}_recorded",
            transaction_id=transaction.id,
            amount=str(transaction.amount),
            balance_before=str(transaction.balance_before),
            balance_after=str(transaction.balance_after),
            reference_id=transaction.reference_id,
        )
        if self._audit_logger:
            await self._audit_logger.log_ledger_recorded(
                transaction, correlation_id=correlation_id
            )

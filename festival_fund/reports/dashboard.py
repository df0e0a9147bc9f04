"""
Dashboard Aggregation

DESIGN DECISION: Every section is fetched independently.
The dashboard is the committee's landing page. If the expenses sheet is
unreachable, the collection figures are still worth showing, so a failed
fetch blanks its own section and is listed in `degraded_sections` instead
of failing the whole snapshot.

"Now" and "this year" come from the clock at call time. Nothing is cached.
The snapshot only reads: a fund with no account yet shows a zero balance
and the account document is left for the first ledger write to create.
"""

import asyncio
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional

import structlog

from festival_fund.audit import AuditLogger
from festival_fund.config import get_settings
from festival_fund.ledger import Ledger
from festival_fund.models.common import ZERO, utc_now
from festival_fund.models.documents import (
    expense_from_document,
    family_from_document,
    festival_from_document,
    payment_from_document,
)
from festival_fund.models.entities import PaymentStatus
from festival_fund.models.reports import DashboardSnapshot
from festival_fund.services.storage import (
    EXPENSES,
    FAMILIES,
    FESTIVALS,
    PAYMENTS,
    DocumentStoreInterface,
    StorageError,
)


logger = structlog.get_logger("festival_fund.dashboard")

SECTIONS = ("families", "festivals", "payments", "expenses", "account", "transactions")


class DashboardAggregator:
    """Builds point-in-time DashboardSnapshots."""

    def __init__(
        self,
        store: DocumentStoreInterface,
        ledger: Ledger,
        audit_logger: Optional[AuditLogger] = None,
        clock: Optional[Callable[[], datetime]] = None,
        upcoming_limit: Optional[int] = None,
        recent_payments_limit: Optional[int] = None,
        recent_transactions_limit: Optional[int] = None,
    ):
        settings = get_settings().dashboard
        self._store = store
        self._ledger = ledger
        self._audit_logger = audit_logger
        self._clock = clock or utc_now
        self._upcoming_limit = upcoming_limit or settings.upcoming_limit
        self._recent_payments_limit = (
            recent_payments_limit or settings.recent_payments_limit
        )
        self._recent_transactions_limit = (
            recent_transactions_limit or settings.recent_transactions_limit
        )

    async def _families(self) -> list:
        return [family_from_document(d) for d in await self._store.get_all(FAMILIES)]

    async def _festivals(self) -> list:
        return [festival_from_document(d) for d in await self._store.get_all(FESTIVALS)]

    async def _payments(self) -> list:
        return [payment_from_document(d) for d in await self._store.get_all(PAYMENTS)]

    async def _expenses(self) -> list:
        return [expense_from_document(d) for d in await self._store.get_all(EXPENSES)]

    async def _section(
        self,
        name: str,
        fetch: Callable[[], Awaitable[Any]],
        degraded: list[str],
    ) -> Any:
        """Run one fetch; a storage failure yields None and marks the section."""
        try:
            return await fetch()
        except StorageError as e:
            degraded.append(name)
            logger.warning(
                "dashboard_section_degraded",
                section=name,
                error=str(e),
            )
            if self._audit_logger:
                await self._audit_logger.log_dashboard_degraded(name, e)
            return None

    async def get_snapshot(self) -> DashboardSnapshot:
        """Fetch every section concurrently and compute the statistics."""
        now = self._clock()
        degraded: list[str] = []

        families, festivals, payments, expenses, account, transactions = (
            await asyncio.gather(
                self._section("families", self._families, degraded),
                self._section("festivals", self._festivals, degraded),
                self._section("payments", self._payments, degraded),
                self._section("expenses", self._expenses, degraded),
                self._section("account", self._ledger.find_account, degraded),
                self._section(
                    "transactions",
                    lambda: self._ledger.get_recent_transactions(
                        self._recent_transactions_limit
                    ),
                    degraded,
                ),
            )
        )
        families = families or []
        festivals = festivals or []
        payments = payments or []
        expenses = expenses or []

        upcoming = sorted(
            (f for f in festivals if f.is_active and f.date >= now),
            key=lambda f: (f.date, f.id),
        )
        recent_payments = sorted(
            payments, key=lambda p: (p.paid_date, p.id), reverse=True
        )

        return DashboardSnapshot(
            generated_at=now,
            total_families=len(families),
            active_families=sum(1 for f in families if f.is_active),
            total_festivals=len(festivals),
            active_festivals=sum(1 for f in festivals if f.is_active),
            upcoming_festivals=len(upcoming),
            total_collection_this_year=sum(
                (
                    p.amount
                    for p in payments
                    if p.status == PaymentStatus.PAID and p.paid_date.year == now.year
                ),
                ZERO,
            ),
            total_expense_this_year=sum(
                (e.amount for e in expenses if e.expense_date.year == now.year),
                ZERO,
            ),
            current_balance=account.balance if account is not None else ZERO,
            pending_payments=sum(1 for p in payments if p.status != PaymentStatus.PAID),
            recent_payments=recent_payments[: self._recent_payments_limit],
            upcoming_festivals_list=upcoming[: self._upcoming_limit],
            recent_transactions=transactions or [],
            degraded_sections=[s for s in SECTIONS if s in degraded],
        )

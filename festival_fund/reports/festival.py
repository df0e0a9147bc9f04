"""
Festival Reconciliation Reports

DESIGN DECISION: Reports are computed from stored data on every request.
The store has no joins, so families, the festival and its payments are
fetched separately and cross-referenced here.

RULES:
- Families considered are the active ones
- A family is paid if it has at least one PAID payment for the festival;
  it is counted once however many payments it has. Inactive and unknown
  families with a PAID payment count too, so unpaid_families can go
  negative; it is reported as computed
- collected_amount sums every PAID payment, including those of families
  that are inactive or no longer exist
- pending_amount = total_amount - collected_amount, negative on overpayment
- Rows are ordered by paid date, then payment ID, so two runs over the
  same data are identical
"""

import asyncio
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from festival_fund.audit import AuditLogger
from festival_fund.models.common import ZERO
from festival_fund.models.documents import (
    family_from_document,
    festival_from_document,
    payment_from_document,
)
from festival_fund.models.entities import Family, Festival, Payment, PaymentStatus
from festival_fund.models.reports import UNKNOWN_FAMILY, FestivalReport, PaymentRow
from festival_fund.services.storage import (
    FAMILIES,
    FESTIVALS,
    PAYMENTS,
    DocumentStoreInterface,
    NotFoundError,
)


@dataclass
class _Reconciliation:
    festival: Festival
    families: dict[str, Family]
    payments: list[Payment]
    paid_family_ids: set[str]


class ReportEngine:
    """Builds per-festival collection reports."""

    def __init__(
        self,
        store: DocumentStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger

    async def _reconcile(self, festival_id: str) -> _Reconciliation:
        festival_doc = await self._store.get(FESTIVALS, festival_id)
        if festival_doc is None:
            raise NotFoundError(FESTIVALS, festival_id)
        festival = festival_from_document(festival_doc)

        family_docs, payment_docs = await asyncio.gather(
            self._store.get_all(FAMILIES),
            self._store.get_all(PAYMENTS),
        )

        families = {}
        for document in family_docs:
            family = family_from_document(document)
            if family.is_active:
                families[family.id] = family

        # Filter after mapping: older documents store the key as festivalId
        payments = [
            payment
            for payment in map(payment_from_document, payment_docs)
            if payment.festival_id == festival_id
        ]

        paid_family_ids = {
            payment.family_id
            for payment in payments
            if payment.status == PaymentStatus.PAID
        }

        return _Reconciliation(festival, families, payments, paid_family_ids)

    async def build_festival_report(
        self,
        festival_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> FestivalReport:
        """
        Build the collection report for one festival.

        Raises:
            NotFoundError: The festival does not exist
            MalformedDocumentError: A stored document cannot be read
        """
        data = await self._reconcile(festival_id)
        festival = data.festival

        total_families = len(data.families)
        paid_families = len(data.paid_family_ids)
        collected_amount = sum(
            (p.amount for p in data.payments if p.status == PaymentStatus.PAID),
            ZERO,
        )
        total_amount = festival.amount_per_family * total_families

        rows = [
            PaymentRow(
                payment_id=payment.id,
                family_id=payment.family_id,
                family_name=(
                    data.families[payment.family_id].head_name
                    if payment.family_id in data.families
                    else UNKNOWN_FAMILY
                ),
                amount=payment.amount,
                paid_date=payment.paid_date,
                status=payment.status,
                receipt_number=payment.receipt_number,
            )
            for payment in sorted(data.payments, key=lambda p: (p.paid_date, p.id))
        ]

        report = FestivalReport(
            festival_id=festival.id,
            festival_name=festival.name,
            festival_date=festival.date,
            amount_per_family=festival.amount_per_family,
            total_families=total_families,
            paid_families=paid_families,
            unpaid_families=total_families - paid_families,
            total_amount=total_amount,
            collected_amount=collected_amount,
            pending_amount=total_amount - collected_amount,
            payments=rows,
        )

        if self._audit_logger:
            await self._audit_logger.log_report_generated(
                festival_id=festival.id,
                paid_families=paid_families,
                total_families=total_families,
                correlation_id=correlation_id,
            )

        return report

    async def list_unpaid_families(self, festival_id: str) -> list[Family]:
        """Active families with no PAID payment for the festival, by name."""
        data = await self._reconcile(festival_id)
        unpaid = [
            family
            for family_id, family in data.families.items()
            if family_id not in data.paid_family_ids
        ]
        unpaid.sort(key=lambda f: (f.head_name.lower(), f.id))
        return unpaid

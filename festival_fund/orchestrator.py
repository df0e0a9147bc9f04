"""
Main Orchestrator for the Festival Fund

This module ties together all the components and defines the
end-to-end flows for:
1. Recording a payment (validate -> check references -> save -> ledger)
2. Recording an expense (validate -> save -> ledger)
3. Receipts and invoices for the external renderer

DESIGN DECISION: The entity document is the source of truth.
Once a payment or expense is saved, the flow reports success even if the
ledger update afterwards fails. That failure is logged and audited as
LEDGER_UPDATE_FAILED so the balance can be reconciled, never shown to the
person recording the payment as "payment failed".
"""

import asyncio
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional
from uuid import UUID, uuid4

import structlog

from festival_fund.audit import AuditLogger, create_correlation_id
from festival_fund.ledger import EventRecorder, Ledger
from festival_fund.models.documents import (
    expense_from_document,
    family_from_document,
    festival_from_document,
    invoice_from_document,
    payment_from_document,
    to_document,
)
from festival_fund.models.entities import (
    Expense,
    ExpenseCategory,
    Invoice,
    Payment,
    PaymentStatus,
    Receipt,
)
from festival_fund.models.reports import (
    UNKNOWN_FAMILY,
    UNKNOWN_FESTIVAL,
    UNKNOWN_VENDOR,
)
from festival_fund.numbering import UniqueNumberGenerator
from festival_fund.reports import DashboardAggregator, ReportEngine
from festival_fund.services.storage import (
    EXPENSES,
    FAMILIES,
    FESTIVALS,
    INVOICES,
    PAYMENTS,
    RECEIPTS,
    DocumentAuditStorage,
    DocumentStoreInterface,
    DuplicateError,
    GoogleSheetsClient,
    GoogleSheetsDocumentStore,
    InMemoryDocumentStore,
    NotFoundError,
    StorageError,
)
from festival_fund.validation import (
    MAX_DESCRIPTION_LENGTH,
    ContributionValidator,
    ValidationError,
)


logger = structlog.get_logger("festival_fund.orchestrator")


def _ledger_description(text: str) -> str:
    """Cut a generated description down to what a transaction accepts."""
    return text[:MAX_DESCRIPTION_LENGTH].strip()


class PaymentFlow:
    """
    Orchestrates recording a family's contribution.

    Flow:
    1. Validate input (nothing is read or written on failure)
    2. Check the family and festival exist
    3. Save the payment with a fresh receipt number
    4. If PAID, add it to the ledger (failure here is logged, not raised)
    """

    def __init__(
        self,
        store: DocumentStoreInterface,
        recorder: EventRecorder,
        validator: Optional[ContributionValidator] = None,
        numbers: Optional[UniqueNumberGenerator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._recorder = recorder
        self._validator = validator or ContributionValidator()
        self._numbers = numbers or UniqueNumberGenerator()
        self._audit_logger = audit_logger

    async def record_payment(
        self,
        family_id: str,
        festival_id: str,
        amount: Any,
        paid_date: datetime | date,
        status: PaymentStatus | str = PaymentStatus.PAID,
        notes: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Payment:
        """
        Record a payment and, when it is PAID, credit the ledger.

        Raises:
            ValidationError: Bad input
            NotFoundError: Unknown family or festival
            StorageError: The payment itself could not be saved
        """
        correlation_id = correlation_id or create_correlation_id()

        family_id, festival_id, amount, status = self._validator.payment(
            family_id, festival_id, amount, paid_date, status
        )

        family_doc, festival_doc = await asyncio.gather(
            self._store.get(FAMILIES, family_id),
            self._store.get(FESTIVALS, festival_id),
        )
        if family_doc is None:
            raise NotFoundError(FAMILIES, family_id)
        if festival_doc is None:
            raise NotFoundError(FESTIVALS, festival_id)
        family = family_from_document(family_doc)
        festival = festival_from_document(festival_doc)

        payment = Payment(
            id=uuid4().hex,
            family_id=family_id,
            festival_id=festival_id,
            amount=amount,
            paid_date=paid_date,
            status=status,
            receipt_number=self._numbers.receipt_number(),
            notes=notes,
        )
        await self._store.create(PAYMENTS, to_document(payment), doc_id=payment.id)

        if self._audit_logger:
            await self._audit_logger.log_payment_recorded(
                payment_id=payment.id,
                festival_id=festival_id,
                amount=amount,
                status=status.value,
                correlation_id=correlation_id,
            )

        if status == PaymentStatus.PAID:
            try:
                await self._recorder.record_income(
                    amount,
                    _ledger_description(
                        f"Festival payment: {festival.name} - {family.head_name}"
                    ),
                    reference_id=payment.id,
                    date=payment.paid_date,
                    correlation_id=correlation_id,
                )
            except (StorageError, ValidationError) as e:
                logger.error(
                    "ledger_update_failed",
                    payment_id=payment.id,
                    error=str(e),
                )
                if self._audit_logger:
                    await self._audit_logger.log_ledger_update_failed(
                        entity_type="payment",
                        entity_id=payment.id,
                        error=e,
                        correlation_id=correlation_id,
                    )

        return payment

    async def build_receipt(
        self,
        payment_id: str,
        generated_by: str,
        correlation_id: Optional[UUID] = None,
    ) -> Receipt:
        """
        Build and store the data for a printable receipt.

        A payment whose family or festival has since been removed still
        gets a receipt, with "Unknown" in place of the missing name.
        """
        generated_by = self._validator.text(generated_by, "generated_by")

        payment_doc = await self._store.get(PAYMENTS, payment_id)
        if payment_doc is None:
            raise NotFoundError(PAYMENTS, payment_id)
        payment = payment_from_document(payment_doc)

        family_doc, festival_doc = await asyncio.gather(
            self._store.get(FAMILIES, payment.family_id),
            self._store.get(FESTIVALS, payment.festival_id),
        )

        receipt = Receipt(
            id=uuid4().hex,
            payment_id=payment.id,
            receipt_number=payment.receipt_number or self._numbers.receipt_number(),
            family_name=(
                family_from_document(family_doc).head_name
                if family_doc
                else UNKNOWN_FAMILY
            ),
            festival_name=(
                festival_from_document(festival_doc).name
                if festival_doc
                else UNKNOWN_FESTIVAL
            ),
            amount=payment.amount,
            paid_date=payment.paid_date,
            generated_by=generated_by,
        )
        stored = await self._store.create(
            RECEIPTS, to_document(receipt, exclude={"created_at"}), doc_id=receipt.id
        )

        if self._audit_logger:
            await self._audit_logger.log_document_generated(
                kind="receipt",
                number=receipt.receipt_number,
                source_id=payment.id,
                correlation_id=correlation_id,
            )

        return receipt.model_copy(update={"created_at": stored.created_at})


class ExpenseFlow:
    """
    Orchestrates paying money out of the fund.

    Flow:
    1. Validate input
    2. Save the expense
    3. Debit the ledger (failure here is logged, not raised)
    """

    def __init__(
        self,
        store: DocumentStoreInterface,
        recorder: EventRecorder,
        validator: Optional[ContributionValidator] = None,
        numbers: Optional[UniqueNumberGenerator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._recorder = recorder
        self._validator = validator or ContributionValidator()
        self._numbers = numbers or UniqueNumberGenerator()
        self._audit_logger = audit_logger

    async def record_expense(
        self,
        purpose: str,
        category: ExpenseCategory | str,
        amount: Any,
        expense_date: datetime | date,
        paid_to: str,
        contact_number: Optional[str] = None,
        festival_id: Optional[str] = None,
        notes: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Record an expense and debit the ledger.

        Raises:
            ValidationError: Bad input
            StorageError: The expense itself could not be saved
        """
        correlation_id = correlation_id or create_correlation_id()

        purpose, category, amount, paid_to = self._validator.expense(
            purpose, category, amount, expense_date, paid_to
        )

        expense = Expense(
            id=uuid4().hex,
            purpose=purpose,
            category=category,
            amount=amount,
            expense_date=expense_date,
            paid_to=paid_to,
            contact_number=contact_number,
            festival_id=festival_id,
            notes=notes,
        )
        await self._store.create(EXPENSES, to_document(expense), doc_id=expense.id)

        if self._audit_logger:
            await self._audit_logger.log_expense_recorded(
                expense_id=expense.id,
                category=category.value,
                amount=amount,
                correlation_id=correlation_id,
            )

        try:
            await self._recorder.record_expense(
                amount,
                _ledger_description(f"Expense: {purpose} - Paid to {paid_to}"),
                reference_id=expense.id,
                date=expense.expense_date,
                correlation_id=correlation_id,
            )
        except (StorageError, ValidationError) as e:
            logger.error(
                "ledger_update_failed",
                expense_id=expense.id,
                error=str(e),
            )
            if self._audit_logger:
                await self._audit_logger.log_ledger_update_failed(
                    entity_type="expense",
                    entity_id=expense.id,
                    error=e,
                    correlation_id=correlation_id,
                )

        return expense

    async def generate_invoice(
        self,
        expense_id: str,
        generated_by: str,
        correlation_id: Optional[UUID] = None,
    ) -> Invoice:
        """
        Build and store the invoice for an expense.

        Raises:
            NotFoundError: Unknown expense
            DuplicateError: The expense already has an invoice
        """
        generated_by = self._validator.text(generated_by, "generated_by")

        expense_doc = await self._store.get(EXPENSES, expense_id)
        if expense_doc is None:
            raise NotFoundError(EXPENSES, expense_id)
        expense = expense_from_document(expense_doc)

        existing = [
            invoice_from_document(d) for d in await self._store.get_all(INVOICES)
        ]
        if any(invoice.expense_id == expense_id for invoice in existing):
            raise DuplicateError(INVOICES, expense_id)

        invoice = Invoice(
            id=uuid4().hex,
            expense_id=expense.id,
            invoice_number=self._numbers.invoice_number(),
            vendor_name=expense.paid_to or UNKNOWN_VENDOR,
            purpose=expense.purpose,
            amount=expense.amount,
            expense_date=expense.expense_date,
            generated_by=generated_by,
            contact_number=expense.contact_number,
            notes=expense.notes,
        )
        stored = await self._store.create(
            INVOICES, to_document(invoice, exclude={"created_at"}), doc_id=invoice.id
        )

        if self._audit_logger:
            await self._audit_logger.log_document_generated(
                kind="invoice",
                number=invoice.invoice_number,
                source_id=expense.id,
                correlation_id=correlation_id,
            )

        return invoice.model_copy(update={"created_at": stored.created_at})


@dataclass
class AppComponents:
    """Everything the UI needs, wired to one store."""

    store: DocumentStoreInterface
    ledger: Ledger
    payments: PaymentFlow
    expenses: ExpenseFlow
    reports: ReportEngine
    dashboard: DashboardAggregator
    audit_logger: AuditLogger
    sheets_client: Optional[GoogleSheetsClient] = None


def build_components(
    store: DocumentStoreInterface,
    audit_logger: Optional[AuditLogger] = None,
    sheets_client: Optional[GoogleSheetsClient] = None,
) -> AppComponents:
    """Wire every component to the given store."""
    audit_logger = audit_logger or AuditLogger(DocumentAuditStorage(store))
    numbers = UniqueNumberGenerator()
    validator = ContributionValidator()

    ledger = Ledger(
        store,
        numbers=numbers,
        validator=validator,
        audit_logger=audit_logger,
    )
    recorder = EventRecorder(ledger, audit_logger=audit_logger)

    return AppComponents(
        store=store,
        ledger=ledger,
        payments=PaymentFlow(store, recorder, validator, numbers, audit_logger),
        expenses=ExpenseFlow(store, recorder, validator, numbers, audit_logger),
        reports=ReportEngine(store, audit_logger=audit_logger),
        dashboard=DashboardAggregator(store, ledger, audit_logger=audit_logger),
        audit_logger=audit_logger,
        sheets_client=sheets_client,
    )


def create_app_components(use_storage: bool = True) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False to run on the in-memory store.
    """
    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            return build_components(
                GoogleSheetsDocumentStore(sheets_client),
                sheets_client=sheets_client,
            )
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", error=str(e))

    return build_components(InMemoryDocumentStore())

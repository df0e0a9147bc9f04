"""
Document <-> Model Mapping

Stored documents are loose key/value maps. Older documents were written by
the JavaScript front end with camelCase keys, newer ones with snake_case,
so every field lists the keys it may be stored under.

RULES (deterministic for every entity):
- Unknown keys are ignored
- A missing optional field takes the model default
  (is_active -> True, payment status -> PAID, members -> 1)
- A missing required field, or a value the model rejects, raises
  MalformedDocumentError naming the field
"""

from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from festival_fund.models.entities import (
    Expense,
    Family,
    Festival,
    Invoice,
    Payment,
    Receipt,
)
from festival_fund.models.ledger import Account, Transaction
from festival_fund.services.storage.interface import (
    ACCOUNT,
    EXPENSES,
    FAMILIES,
    FESTIVALS,
    INVOICES,
    PAYMENTS,
    RECEIPTS,
    TRANSACTIONS,
    MalformedDocumentError,
    StoredDocument,
)


ModelT = TypeVar("ModelT", bound=BaseModel)

# model field -> (required, keys it may be stored under)
FAMILY_FIELDS = {
    "head_name": (True, ("head_name", "headName")),
    "phone": (False, ("phone",)),
    "members": (False, ("members",)),
    "address": (False, ("address",)),
    "is_active": (False, ("is_active", "isActive")),
}

FESTIVAL_FIELDS = {
    "name": (True, ("name",)),
    "type": (False, ("type",)),
    "date": (True, ("date",)),
    "amount_per_family": (True, ("amount_per_family", "amountPerFamily")),
    "description": (False, ("description",)),
    "is_active": (False, ("is_active", "isActive")),
}

PAYMENT_FIELDS = {
    "family_id": (True, ("family_id", "familyId")),
    "festival_id": (True, ("festival_id", "festivalId")),
    "amount": (True, ("amount",)),
    "paid_date": (True, ("paid_date", "paidDate")),
    "status": (False, ("status",)),
    "receipt_number": (False, ("receipt_number", "receiptNumber")),
    "notes": (False, ("notes",)),
}

EXPENSE_FIELDS = {
    "purpose": (True, ("purpose",)),
    "category": (False, ("category",)),
    "amount": (True, ("amount",)),
    "expense_date": (True, ("expense_date", "expenseDate")),
    "paid_to": (False, ("paid_to", "paidTo")),
    "contact_number": (False, ("contact_number", "contactNumber")),
    "festival_id": (False, ("festival_id", "festivalId")),
    "notes": (False, ("notes",)),
}

RECEIPT_FIELDS = {
    "payment_id": (True, ("payment_id", "paymentId")),
    "receipt_number": (True, ("receipt_number", "receiptNumber")),
    "family_name": (True, ("family_name", "familyName")),
    "festival_name": (True, ("festival_name", "festivalName")),
    "amount": (True, ("amount",)),
    "paid_date": (True, ("paid_date", "paidDate")),
    "generated_by": (True, ("generated_by", "generatedBy")),
}

INVOICE_FIELDS = {
    "expense_id": (True, ("expense_id", "expenseId")),
    "invoice_number": (True, ("invoice_number", "invoiceNumber")),
    "vendor_name": (True, ("vendor_name", "vendorName")),
    "purpose": (True, ("purpose",)),
    "amount": (True, ("amount",)),
    "expense_date": (True, ("expense_date", "expenseDate")),
    "generated_by": (True, ("generated_by", "generatedBy")),
    "contact_number": (False, ("contact_number", "contactNumber")),
    "notes": (False, ("notes",)),
}

ACCOUNT_FIELDS = {
    "balance": (False, ("balance",)),
    "total_income": (False, ("total_income", "totalIncome")),
    "total_expense": (False, ("total_expense", "totalExpense")),
    "last_transaction_date": (False, ("last_transaction_date", "lastTransactionDate")),
}

TRANSACTION_FIELDS = {
    "type": (True, ("type",)),
    "amount": (True, ("amount",)),
    "balance_before": (True, ("balance_before", "balanceBefore")),
    "balance_after": (True, ("balance_after", "balanceAfter")),
    "description": (True, ("description",)),
    "reference_id": (False, ("reference_id", "referenceId")),
    "reference_type": (False, ("reference_type", "referenceType")),
    "date": (True, ("date",)),
}


def _pick(data: dict[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = data.get(key)
        if value is not None and value != "":
            return value
    return None


def _map(
    model: type[ModelT],
    collection: str,
    document: StoredDocument,
    fields: dict[str, tuple[bool, tuple[str, ...]]],
    **extra: Any,
) -> ModelT:
    values: dict[str, Any] = {"id": document.id, **extra}
    for field, (required, keys) in fields.items():
        value = _pick(document.data, keys)
        if value is None:
            if required:
                raise MalformedDocumentError(collection, document.id, field)
            continue
        values[field] = value

    try:
        return model(**values)
    except ValidationError as e:
        error = e.errors()[0]
        field = str(error["loc"][0]) if error["loc"] else "document"
        raise MalformedDocumentError(
            collection, document.id, field, error.get("input")
        ) from e


def family_from_document(document: StoredDocument) -> Family:
    return _map(Family, FAMILIES, document, FAMILY_FIELDS)


def festival_from_document(document: StoredDocument) -> Festival:
    return _map(Festival, FESTIVALS, document, FESTIVAL_FIELDS)


def payment_from_document(document: StoredDocument) -> Payment:
    return _map(Payment, PAYMENTS, document, PAYMENT_FIELDS)


def expense_from_document(document: StoredDocument) -> Expense:
    return _map(Expense, EXPENSES, document, EXPENSE_FIELDS)


def receipt_from_document(document: StoredDocument) -> Receipt:
    return _map(
        Receipt, RECEIPTS, document, RECEIPT_FIELDS,
        created_at=document.created_at,
    )


def invoice_from_document(document: StoredDocument) -> Invoice:
    return _map(
        Invoice, INVOICES, document, INVOICE_FIELDS,
        created_at=document.created_at,
    )


def account_from_document(document: StoredDocument) -> Account:
    """The envelope's version is the account's concurrency token."""
    return _map(
        Account, ACCOUNT, document, ACCOUNT_FIELDS,
        version=document.version,
        created_at=document.created_at,
        updated_at=document.updated_at,
    )


def transaction_from_document(document: StoredDocument) -> Transaction:
    return _map(
        Transaction, TRANSACTIONS, document, TRANSACTION_FIELDS,
        created_at=document.created_at,
    )


def to_document(model: BaseModel, exclude: set[str] | None = None) -> dict[str, Any]:
    """
    Convert a model to storable document data.

    Decimals become strings and datetimes ISO-8601 strings, so the same
    document round-trips through any backend. The id lives on the
    envelope, not in the data.
    """
    return model.model_dump(mode="json", exclude={"id"} | (exclude or set()))

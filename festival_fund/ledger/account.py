"""
Ledger: the Account and its Transaction log

DESIGN DECISION: Optimistic concurrency, no locks.
The store only offers get/update on single documents, so a balance change
is a read-compute-write. Two payments recorded at the same moment would
both read the same balance and one would be lost. Instead:

1. Read the account and its version
2. Compute the new balance and totals
3. Write with expected_version; the store rejects the write if anyone
   else wrote first (VersionConflictError)
4. On conflict, start again from step 1 (bounded, with random backoff)
5. Only after the account write succeeds, append the Transaction with
   the before/after balances of the attempt that won

So N concurrent applies always end at initial + sum of N signed amounts,
with exactly N transactions.

The one gap the store cannot close: the account write succeeds and the
transaction append fails. That is logged as CRITICAL with everything
needed to add the missing transaction by hand, and the error is raised.
"""

from datetime import date as date_type
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random,
)

from festival_fund.audit import AuditLogger, ConsistencyWarning
from festival_fund.config import get_settings
from festival_fund.models.common import ZERO, as_utc, utc_now
from festival_fund.models.documents import (
    account_from_document,
    to_document,
    transaction_from_document,
)
from festival_fund.models.ledger import (
    Account,
    ReferenceType,
    Transaction,
    TransactionType,
    apply_to_account,
)
from festival_fund.numbering import UniqueNumberGenerator
from festival_fund.services.storage import (
    ACCOUNT,
    TRANSACTIONS,
    DocumentStoreInterface,
    DuplicateError,
    NotFoundError,
    StorageError,
    VersionConflictError,
)
from festival_fund.validation import ContributionValidator, ValidationError


logger = structlog.get_logger("festival_fund.ledger")

# Fields of the account document owned by the store envelope
_ENVELOPE_FIELDS = {"version", "created_at", "updated_at"}

# Fresh transaction references tried before the append is given up on
_REFERENCE_ATTEMPTS = 3


def _log_conflict(retry_state: RetryCallState) -> None:
    logger.debug(
        "ledger_version_conflict",
        attempt=retry_state.attempt_number,
        error=str(retry_state.outcome.exception()) if retry_state.outcome else None,
    )


class Ledger:
    """
    The organization's single running balance plus its transaction log.

    Handed a store; holds no balance state of its own.
    """

    def __init__(
        self,
        store: DocumentStoreInterface,
        account_id: Optional[str] = None,
        max_attempts: Optional[int] = None,
        backoff_max_seconds: Optional[float] = None,
        numbers: Optional[UniqueNumberGenerator] = None,
        validator: Optional[ContributionValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        """
        Args:
            store: Document store holding the account and transactions
            account_id: Document ID of the account (from settings if None)
            max_attempts: Read-compute-write attempts before a version
                          conflict is given up on
            backoff_max_seconds: Upper bound of the random wait between attempts
            numbers: Source of transaction references
            validator: Input checks for amounts and descriptions
            audit_logger: Receives critical and consistency events
        """
        settings = get_settings().ledger
        self._store = store
        self._account_id = account_id or settings.account_id
        self._max_attempts = max_attempts or settings.max_conflict_retries
        self._backoff_max = (
            settings.conflict_backoff_max_seconds
            if backoff_max_seconds is None
            else backoff_max_seconds
        )
        self._numbers = numbers or UniqueNumberGenerator()
        self._validator = validator or ContributionValidator()
        self._audit_logger = audit_logger

    @property
    def account_id(self) -> str:
        return self._account_id

    async def find_account(self) -> Optional[Account]:
        """Read the account without creating it. None if it does not exist yet."""
        document = await self._store.get(ACCOUNT, self._account_id)
        return account_from_document(document) if document is not None else None

    async def get_account(self) -> Account:
        """
        Return the account, creating it with zero balances if absent.

        Creation uses the fixed account ID, so two first-time callers
        cannot both create it; the loser re-reads the winner's account.
        """
        document = await self._store.get(ACCOUNT, self._account_id)
        if document is not None:
            return account_from_document(document)

        try:
            document = await self._store.create(
                ACCOUNT,
                {
                    "balance": str(ZERO),
                    "total_income": str(ZERO),
                    "total_expense": str(ZERO),
                    "last_transaction_date": None,
                },
                doc_id=self._account_id,
            )
            logger.info("account_created", account_id=self._account_id)
        except DuplicateError:
            document = await self._store.get(ACCOUNT, self._account_id)
            if document is None:
                raise NotFoundError(ACCOUNT, self._account_id)

        return account_from_document(document)

    async def apply(
        self,
        transaction_type: TransactionType,
        amount: Any,
        description: Any,
        reference_id: Optional[str] = None,
        reference_type: Optional[ReferenceType] = None,
        date: Optional[datetime | date_type] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Apply one income or expense to the account and record it.

        Raises:
            ValidationError: Bad amount or description (nothing written)
            VersionConflictError: Lost the race max_attempts times in a row
            StorageError: The account or transaction write failed
        """
        amount = self._validator.amount(amount)
        description = self._validator.description(description)
        business_date = as_utc(date) if date is not None else utc_now()

        retrying = AsyncRetrying(
            retry=retry_if_exception_type(VersionConflictError),
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_random(0, self._backoff_max),
            before_sleep=_log_conflict,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                before, after, version = await self._write_balance(
                    transaction_type, amount, business_date
                )

        error: Optional[StorageError] = None
        for _ in range(_REFERENCE_ATTEMPTS):
            transaction = Transaction(
                id=self._numbers.transaction_reference(),
                type=transaction_type,
                amount=amount,
                balance_before=before.balance,
                balance_after=after.balance,
                description=description,
                reference_id=reference_id,
                reference_type=reference_type,
                date=business_date,
            )
            try:
                await self._store.create(
                    TRANSACTIONS, to_document(transaction), doc_id=transaction.id
                )
                return transaction
            except DuplicateError as e:
                # Same reference drawn twice within one millisecond
                error = e
            except StorageError as e:
                error = e
                break

        await self._report_missing_transaction(transaction, version, error, correlation_id)
        raise error

    async def _write_balance(
        self,
        transaction_type: TransactionType,
        amount: Decimal,
        business_date: datetime,
    ) -> tuple[Account, Account, int]:
        """One read-compute-write attempt. Returns (before, after, new version)."""
        before = await self.get_account()
        after = before.model_copy(
            update=apply_to_account(before, transaction_type, amount, business_date)
        )
        document = await self._store.update(
            ACCOUNT,
            before.id,
            to_document(after, exclude=_ENVELOPE_FIELDS),
            expected_version=before.version,
        )
        return before, after, document.version

    async def _report_missing_transaction(
        self,
        transaction: Transaction,
        account_version: int,
        error: StorageError,
        correlation_id: Optional[UUID],
    ) -> None:
        details = {
            "transaction_id": transaction.id,
            "type": transaction.type.value,
            "amount": str(transaction.amount),
            "balance_before": str(transaction.balance_before),
            "balance_after": str(transaction.balance_after),
            "reference_id": transaction.reference_id,
            "reference_type": (
                transaction.reference_type.value if transaction.reference_type else None
            ),
            "date": transaction.date.isoformat(),
            "account_version": account_version,
        }
        logger.critical(
            "transaction_append_failed",
            account_id=self._account_id,
            error=str(error),
            **details,
        )
        if self._audit_logger:
            await self._audit_logger.log_transaction_append_failed(
                account_id=self._account_id,
                details=details,
                error=error,
                correlation_id=correlation_id,
            )
            await self._audit_logger.log_consistency_warning(
                ConsistencyWarning("transaction_missing", details),
                correlation_id=correlation_id,
            )

    async def get_transactions(self) -> list[Transaction]:
        """Every recorded transaction, oldest first."""
        documents = await self._store.get_all(TRANSACTIONS)
        transactions = [transaction_from_document(d) for d in documents]
        transactions.sort(key=lambda t: (t.date, t.created_at))
        return transactions

    async def get_recent_transactions(self, limit: int = 10) -> list[Transaction]:
        """
        Newest transactions first, by business date.

        Transactions on the same date are ordered by when they were written.
        """
        if limit <= 0:
            raise ValidationError("limit", limit, "Limit must be greater than zero")
        transactions = await self.get_transactions()
        transactions.reverse()
        return transactions[:limit]

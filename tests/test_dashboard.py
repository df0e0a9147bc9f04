"""Tests for the dashboard aggregation."""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from festival_fund.models import AuditEventType
from festival_fund.reports import DashboardAggregator
from festival_fund.services.storage import (
    ACCOUNT,
    AUDIT_LOG,
    EXPENSES,
    TRANSACTIONS,
    ConnectionError,
    StorageError,
)

from tests.factories import add_family, add_festival, add_payment, utc


NOW = utc(2024, 10, 15, 12)


def make_aggregator(store, ledger, audit_logger=None, **limits) -> DashboardAggregator:
    return DashboardAggregator(
        store,
        ledger,
        audit_logger=audit_logger,
        clock=lambda: NOW,
        **limits,
    )


async def add_expense(store, expense_id, amount, expense_date) -> None:
    await store.create(
        EXPENSES,
        {
            "purpose": "Tent",
            "category": "TENT",
            "amount": str(amount),
            "expenseDate": expense_date.isoformat(),
        },
        doc_id=expense_id,
    )


async def seed(store, recorder) -> None:
    await add_family(store, "A", "Anil")
    await add_family(store, "B", "Bharat")
    await add_family(store, "C", "Chetan", is_active=False)

    await add_festival(store, "past", "Ganesh", utc(2024, 9, 7))
    await add_festival(store, "diwali", "Diwali", utc(2024, 11, 1))
    await add_festival(store, "pongal", "Pongal", utc(2025, 1, 14))
    await add_festival(store, "off", "Cancelled", utc(2024, 12, 1), is_active=False)

    await add_payment(store, "p1", "A", "diwali", 100, "PAID", utc(2024, 10, 1))
    await add_payment(store, "p2", "B", "diwali", 100, "UNPAID", utc(2024, 10, 3))
    await add_payment(store, "p3", "A", "past", 50, "PAID", utc(2023, 9, 1))
    await add_payment(store, "p4", "B", "past", 70, "PENDING", utc(2024, 8, 1))

    await add_expense(store, "e1", 30, utc(2024, 9, 1))
    await add_expense(store, "e2", 99, utc(2023, 12, 31))

    await recorder.record_income(100, "payment", reference_id="p1", date=utc(2024, 10, 1))
    await recorder.record_expense(30, "tent", reference_id="e1", date=utc(2024, 9, 1))


class TestDashboardSnapshot:
    """Tests for DashboardAggregator.get_snapshot."""

    async def test_counts_and_totals(self, store, ledger, recorder):
        """Test every statistic against a known data set."""
        await seed(store, recorder)

        snapshot = await make_aggregator(store, ledger).get_snapshot()

        assert snapshot.generated_at == NOW
        assert snapshot.total_families == 3
        assert snapshot.active_families == 2
        assert snapshot.total_festivals == 4
        assert snapshot.active_festivals == 3
        assert snapshot.upcoming_festivals == 2
        # Only this year's PAID payments
        assert snapshot.total_collection_this_year == Decimal("100")
        # Only this year's expenses
        assert snapshot.total_expense_this_year == Decimal("30")
        assert snapshot.current_balance == Decimal("70")
        # UNPAID and PENDING
        assert snapshot.pending_payments == 2
        assert snapshot.degraded_sections == []
        assert not snapshot.is_degraded

    async def test_upcoming_sorted_and_capped(self, store, ledger, recorder):
        """Test upcoming festivals are soonest first; the count is not capped."""
        await seed(store, recorder)

        snapshot = await make_aggregator(store, ledger, upcoming_limit=1).get_snapshot()

        assert [f.id for f in snapshot.upcoming_festivals_list] == ["diwali"]
        assert snapshot.upcoming_festivals == 2

    async def test_festival_today_is_upcoming(self, store, ledger):
        """A festival dated exactly now counts as upcoming."""
        await add_festival(store, "today", "Today", NOW)
        snapshot = await make_aggregator(store, ledger).get_snapshot()
        assert snapshot.upcoming_festivals == 1

    async def test_recent_payments_newest_first_and_capped(self, store, ledger, recorder):
        """Test recent payments are by paid date, newest first."""
        await seed(store, recorder)

        snapshot = await make_aggregator(store, ledger, recent_payments_limit=3).get_snapshot()

        assert [p.id for p in snapshot.recent_payments] == ["p2", "p1", "p4"]

    async def test_recent_transactions(self, store, ledger, recorder):
        """Test recent transactions come from the ledger, newest first."""
        await seed(store, recorder)

        snapshot = await make_aggregator(
            store, ledger, recent_transactions_limit=1
        ).get_snapshot()

        assert len(snapshot.recent_transactions) == 1
        assert snapshot.recent_transactions[0].reference_id == "p1"

    async def test_empty_store(self, store, ledger):
        """A brand new fund shows zeros, not errors."""
        snapshot = await make_aggregator(store, ledger).get_snapshot()
        assert snapshot.total_families == 0
        assert snapshot.current_balance == 0
        assert snapshot.recent_transactions == []
        assert not snapshot.is_degraded

    async def test_snapshot_does_not_create_account(self, store, ledger):
        """Loading the dashboard on a new fund writes nothing."""
        await make_aggregator(store, ledger).get_snapshot()

        assert await store.get(ACCOUNT, ledger.account_id) is None
        assert await store.get_all(TRANSACTIONS) == []

    async def test_clock_evaluated_per_call(self, store, ledger):
        """Test 'now' is read on every snapshot, not cached."""
        times = iter([utc(2024, 10, 1), utc(2024, 11, 2)])
        aggregator = DashboardAggregator(store, ledger, clock=lambda: next(times))
        await add_festival(store, "diwali", "Diwali", utc(2024, 11, 1))

        before = await aggregator.get_snapshot()
        after = await aggregator.get_snapshot()

        assert before.upcoming_festivals == 1
        assert after.upcoming_festivals == 0


class TestDegradedSections:
    """A failed fetch blanks its own section only."""

    async def test_failed_expenses_fetch(self, store, ledger, recorder, audit_logger):
        """Expenses unavailable: everything else still reported."""
        await seed(store, recorder)

        real_get_all = store.get_all

        async def get_all(collection, filters=None):
            if collection == EXPENSES:
                raise ConnectionError("expenses sheet unreachable", collection)
            return await real_get_all(collection, filters)

        store.get_all = get_all

        snapshot = await make_aggregator(store, ledger, audit_logger).get_snapshot()

        assert snapshot.degraded_sections == ["expenses"]
        assert snapshot.is_degraded
        assert snapshot.total_expense_this_year == 0
        assert snapshot.total_collection_this_year == Decimal("100")
        assert snapshot.active_families == 2
        assert snapshot.current_balance == Decimal("70")

        events = [d.data for d in await real_get_all(AUDIT_LOG)]
        degraded = [
            e for e in events
            if e["event_type"] == AuditEventType.DASHBOARD_SECTION_DEGRADED.value
        ]
        assert [e["entity_id"] for e in degraded] == ["expenses"]

    async def test_failed_account_and_transactions(self, store, ledger, recorder):
        """Ledger unavailable: balance is zero, counts still there."""
        await seed(store, recorder)
        ledger.find_account = AsyncMock(side_effect=StorageError("down"))
        ledger.get_recent_transactions = AsyncMock(side_effect=StorageError("down"))

        snapshot = await make_aggregator(store, ledger).get_snapshot()

        assert snapshot.degraded_sections == ["account", "transactions"]
        assert snapshot.current_balance == 0
        assert snapshot.recent_transactions == []
        assert snapshot.total_families == 3

    async def test_everything_down(self, ledger):
        """Test a completely unreachable store still yields a snapshot."""
        store = AsyncMock()
        store.get_all.side_effect = ConnectionError("offline")
        ledger.find_account = AsyncMock(side_effect=ConnectionError("offline"))
        ledger.get_recent_transactions = AsyncMock(side_effect=ConnectionError("offline"))

        snapshot = await make_aggregator(store, ledger).get_snapshot()

        assert snapshot.degraded_sections == [
            "families", "festivals", "payments", "expenses", "account", "transactions",
        ]
        assert snapshot.total_families == 0
        assert snapshot.current_balance == 0

    async def test_malformed_document_degrades_section(self, store, ledger):
        """A broken family document blanks the families section."""
        await store.create("families", {"phone": "1"}, doc_id="broken")
        await add_festival(store, "diwali", "Diwali", utc(2024, 11, 1))

        snapshot = await make_aggregator(store, ledger).get_snapshot()

        assert snapshot.degraded_sections == ["families"]
        assert snapshot.upcoming_festivals == 1

    async def test_non_storage_errors_propagate(self, store, ledger):
        """Only storage failures are contained."""
        ledger.find_account = AsyncMock(side_effect=RuntimeError("bug"))
        with pytest.raises(RuntimeError):
            await make_aggregator(store, ledger).get_snapshot()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

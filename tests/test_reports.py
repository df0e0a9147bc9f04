"""Tests for the festival reconciliation report."""

from decimal import Decimal

import pytest

from festival_fund.models import AuditEventType, PaymentStatus
from festival_fund.reports import ReportEngine
from festival_fund.services.storage import (
    AUDIT_LOG,
    MalformedDocumentError,
    NotFoundError,
    PAYMENTS,
)

from tests.factories import add_family, add_festival, add_payment, utc


@pytest.fixture
def engine(store, audit_logger) -> ReportEngine:
    return ReportEngine(store, audit_logger=audit_logger)


async def seed_scenario(store) -> None:
    """Festival at 100 per family, 3 active families, A paid twice, B unpaid."""
    await add_festival(store, "fest1", "Diwali", utc(2024, 11, 1), amount_per_family=100)
    await add_family(store, "A", "Anil")
    await add_family(store, "B", "Bharat")
    await add_family(store, "C", "Chetan")
    await add_payment(store, "p1", "A", "fest1", 100, "PAID", utc(2024, 10, 1))
    await add_payment(store, "p2", "A", "fest1", 100, "PAID", utc(2024, 10, 5))
    await add_payment(store, "p3", "B", "fest1", 100, "UNPAID", utc(2024, 10, 3))


class TestFestivalReport:
    """Tests for ReportEngine.build_festival_report."""

    async def test_scenario(self, engine, store):
        """Family A is counted once but both its payments are summed."""
        await seed_scenario(store)

        report = await engine.build_festival_report("fest1")

        assert report.festival_name == "Diwali"
        assert report.total_families == 3
        assert report.paid_families == 1
        assert report.unpaid_families == 2
        assert report.collected_amount == Decimal("200")
        assert report.total_amount == Decimal("300")
        assert report.pending_amount == Decimal("100")
        assert report.collection_percentage == 67

    async def test_rows_ordered_by_paid_date(self, engine, store):
        """Test one row per payment, oldest first, with family names."""
        await seed_scenario(store)

        report = await engine.build_festival_report("fest1")

        assert [r.payment_id for r in report.payments] == ["p1", "p3", "p2"]
        assert [r.family_name for r in report.payments] == ["Anil", "Bharat", "Anil"]
        assert report.payments[1].status == PaymentStatus.UNPAID

    async def test_same_date_ordered_by_payment_id(self, engine, store):
        """Test ties on paid date fall back to payment ID."""
        await add_festival(store, "fest1", "Diwali", utc(2024, 11, 1))
        await add_family(store, "A", "Anil")
        day = utc(2024, 10, 1)
        for payment_id in ("p9", "p2", "p5"):
            await add_payment(store, payment_id, "A", "fest1", 10, "PAID", day)

        report = await engine.build_festival_report("fest1")
        assert [r.payment_id for r in report.payments] == ["p2", "p5", "p9"]

    async def test_deterministic(self, engine, store):
        """Two runs with no writes in between give identical results."""
        await seed_scenario(store)

        first = await engine.build_festival_report("fest1")
        second = await engine.build_festival_report("fest1")

        assert first.totals() == second.totals()
        assert first.payments == second.payments

    async def test_missing_festival(self, engine):
        """A report for an unknown festival is an error, not an empty report."""
        with pytest.raises(NotFoundError) as exc_info:
            await engine.build_festival_report("nope")
        assert exc_info.value.collection == "festivals"
        assert exc_info.value.entity_id == "nope"

    async def test_zero_amount_per_family(self, engine, store):
        """A free festival has a collection rate of 0."""
        await add_festival(store, "fest1", "Satsang", utc(2024, 11, 1), amount_per_family=0)
        await add_family(store, "A", "Anil")

        report = await engine.build_festival_report("fest1")

        assert report.total_amount == 0
        assert report.collection_rate == 0

    async def test_no_active_families(self, engine, store):
        """No active families means nothing expected and a rate of 0."""
        await add_festival(store, "fest1", "Diwali", utc(2024, 11, 1))
        await add_family(store, "A", "Anil", is_active=False)
        await add_payment(store, "p1", "A", "fest1", 100, "PAID")

        report = await engine.build_festival_report("fest1")

        assert report.total_families == 0
        assert report.collection_rate == 0
        assert report.collected_amount == Decimal("100")
        assert report.pending_amount == Decimal("-100")
        # The inactive family's payment still marks it paid
        assert report.paid_families == 1
        assert report.unpaid_families == -1

    async def test_inactive_family_payment_counts_as_paid(self, engine, store):
        """A PAID payment from an inactive family is counted, not hidden."""
        await add_festival(store, "fest1", "Diwali", utc(2024, 11, 1))
        await add_family(store, "A", "Anil")
        await add_family(store, "Z", "Zakir", is_active=False)
        await add_payment(store, "p1", "Z", "fest1", 100, "PAID")

        report = await engine.build_festival_report("fest1")

        assert report.total_families == 1
        assert report.paid_families == 1
        assert report.unpaid_families == 0
        assert report.collected_amount == Decimal("100")
        assert [f.head_name for f in await engine.list_unpaid_families("fest1")] == ["Anil"]

    async def test_orphan_payment(self, engine, store):
        """A payment from an unknown family is collected and counted as paid."""
        await add_festival(store, "fest1", "Diwali", utc(2024, 11, 1))
        await add_family(store, "A", "Anil")
        await add_payment(store, "p1", "ghost", "fest1", 100, "PAID")

        report = await engine.build_festival_report("fest1")

        assert report.paid_families == 1
        assert report.unpaid_families == 0
        assert report.collected_amount == Decimal("100")
        assert report.payments[0].family_name == "Unknown"

    async def test_missing_is_active_counts_as_active(self, engine, store):
        """Families without isActive are treated as active."""
        await add_festival(store, "fest1", "Diwali", utc(2024, 11, 1))
        await add_family(store, "A", "Anil", is_active=None)

        report = await engine.build_festival_report("fest1")
        assert report.total_families == 1

    async def test_payment_without_status_counts_as_paid(self, engine, store):
        """Test the PAID default applies in reports."""
        await add_festival(store, "fest1", "Diwali", utc(2024, 11, 1))
        await add_family(store, "A", "Anil")
        await add_payment(store, "p1", "A", "fest1", 100, status=None)

        report = await engine.build_festival_report("fest1")
        assert report.paid_families == 1

    async def test_other_festivals_ignored(self, engine, store):
        """Only payments for this festival are reconciled."""
        await seed_scenario(store)
        await add_festival(store, "fest2", "Holi", utc(2025, 3, 14))
        await add_payment(store, "p9", "C", "fest2", 100, "PAID")

        report = await engine.build_festival_report("fest1")
        assert report.paid_families == 1
        assert "p9" not in [r.payment_id for r in report.payments]

    async def test_snake_case_payments_included(self, engine, store):
        """Payments stored with festival_id are found as well as festivalId."""
        await add_festival(store, "fest1", "Diwali", utc(2024, 11, 1))
        await add_family(store, "A", "Anil")
        await store.create(
            PAYMENTS,
            {
                "family_id": "A",
                "festival_id": "fest1",
                "amount": "100",
                "paid_date": "2024-10-01",
                "status": "PAID",
            },
            doc_id="p1",
        )

        report = await engine.build_festival_report("fest1")
        assert report.paid_families == 1

    async def test_malformed_payment_raises(self, engine, store):
        """A payment without an amount is reported, not skipped."""
        await add_festival(store, "fest1", "Diwali", utc(2024, 11, 1))
        await store.create(
            PAYMENTS,
            {"familyId": "A", "festivalId": "fest1", "paidDate": "2024-10-01"},
            doc_id="bad",
        )
        with pytest.raises(MalformedDocumentError) as exc_info:
            await engine.build_festival_report("fest1")
        assert exc_info.value.entity_id == "bad"
        assert exc_info.value.field == "amount"

    async def test_report_is_audited(self, engine, store):
        """Test a generated report leaves an audit event."""
        await seed_scenario(store)
        await engine.build_festival_report("fest1")
        types = [d.data["event_type"] for d in await store.get_all(AUDIT_LOG)]
        assert AuditEventType.REPORT_GENERATED.value in types


class TestUnpaidFamilies:
    """Tests for ReportEngine.list_unpaid_families."""

    async def test_lists_active_unpaid_by_name(self, engine, store):
        """B has only an UNPAID payment and C has none."""
        await seed_scenario(store)
        await add_family(store, "D", "Dinesh", is_active=False)

        unpaid = await engine.list_unpaid_families("fest1")
        assert [f.head_name for f in unpaid] == ["Bharat", "Chetan"]

    async def test_missing_festival(self, engine):
        """Test unknown festival raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await engine.list_unpaid_families("nope")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

"""Unit tests for the in-process invoice ledger."""

import asyncio
from datetime import timedelta

import pytest
from prometheus_client import REGISTRY

from invoice_compliance.business.errors import InvalidTransition, StaleRecordError
from invoice_compliance.business.invoice_status import (
    InvoiceEvent,
    InvoiceStatus,
    new_record,
    transition,
)
from invoice_compliance.business.periods import ReferenceMonth


def _sample(name, labels=None):
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


@pytest.mark.unit
class TestInvoiceLedger:
    """Test cases for serialized transitions and versioned saves."""

    def test_untracked_month_has_no_record(self, ledger):
        assert ledger.get("user-1", "2024-03") is None
        assert ledger.records_for_month("2024-03") == {}

    @pytest.mark.asyncio
    async def test_submit_creates_record_lazily(self, ledger, base_time):
        record = await ledger.apply("user-1", "2024-03", InvoiceEvent.SUBMIT, {"invoice_number": "NF-9"})

        assert record.status is InvoiceStatus.SUBMITTED
        assert record.submitted_at == base_time
        assert record.reference_month == ReferenceMonth(2024, 3)
        assert ledger.get("user-1", ReferenceMonth(2024, 3)) == record

    @pytest.mark.asyncio
    async def test_transitions_counted(self, ledger):
        labels = {"from_status": "not_submitted", "to_status": "submitted"}
        before = _sample("invoice_compliance_transitions_total", labels)

        await ledger.apply("user-1", "2024-03", "submit")

        assert _sample("invoice_compliance_transitions_total", labels) == before + 1

    @pytest.mark.asyncio
    async def test_invalid_transition_propagates(self, ledger):
        labels = {"from_status": "not_submitted", "event": "approve"}
        before = _sample("invoice_compliance_invalid_transitions_total", labels)

        with pytest.raises(InvalidTransition):
            await ledger.apply("user-1", "2024-03", InvoiceEvent.APPROVE)

        assert ledger.get("user-1", "2024-03") is None
        assert _sample("invoice_compliance_invalid_transitions_total", labels) == before + 1

    @pytest.mark.asyncio
    async def test_concurrent_reviews_only_one_succeeds(self, ledger):
        await ledger.apply("user-1", "2024-03", InvoiceEvent.SUBMIT)

        results = await asyncio.gather(
            ledger.apply("user-1", "2024-03", InvoiceEvent.APPROVE),
            ledger.apply("user-1", "2024-03", InvoiceEvent.REJECT, {"reason": "Wrong month"}),
            return_exceptions=True,
        )

        failures = [r for r in results if isinstance(r, InvalidTransition)]
        successes = [r for r in results if not isinstance(r, Exception)]
        assert len(failures) == 1
        assert len(successes) == 1
        assert ledger.get("user-1", "2024-03") == successes[0]
        assert successes[0].version == 2

    @pytest.mark.asyncio
    async def test_idle_locks_released(self, ledger):
        await asyncio.gather(
            ledger.apply("user-1", "2024-03", InvoiceEvent.SUBMIT),
            ledger.apply("user-2", "2024-03", InvoiceEvent.SUBMIT),
        )
        with pytest.raises(InvalidTransition):
            await ledger.apply("user-1", "2024-03", InvoiceEvent.SUBMIT)

        assert ledger._locks == {}
        assert ledger._lock_users == {}

    @pytest.mark.asyncio
    async def test_resubmission_uses_clock(self, ledger, clock):
        first = await ledger.apply("user-1", "2024-03", InvoiceEvent.SUBMIT)
        await ledger.apply("user-1", "2024-03", InvoiceEvent.REJECT, {"reason": "Blurry"})

        with pytest.raises(InvalidTransition):
            await ledger.apply("user-1", "2024-03", InvoiceEvent.SUBMIT)

        clock.advance(hours=3)
        second = await ledger.apply("user-1", "2024-03", InvoiceEvent.SUBMIT)

        assert second.submitted_at == first.submitted_at + timedelta(hours=3)
        assert second.rejection_reason is None

    @pytest.mark.asyncio
    async def test_records_for_month(self, ledger):
        await ledger.apply("user-1", "2024-03", InvoiceEvent.SUBMIT)
        await ledger.apply("user-2", "2024-03", InvoiceEvent.IGNORE)
        await ledger.apply("user-1", "2024-04", InvoiceEvent.SUBMIT)

        march = ledger.records_for_month("2024-03")

        assert set(march) == {"user-1", "user-2"}
        assert march["user-2"].status is InvoiceStatus.IGNORED

    @pytest.mark.asyncio
    async def test_save_with_expected_version(self, ledger, base_time):
        record = transition(new_record("user-1", "2024-03"), InvoiceEvent.SUBMIT, now=base_time)

        saved = await ledger.save(record, expected_version=0)

        assert ledger.get("user-1", "2024-03") == saved

    @pytest.mark.asyncio
    async def test_save_rejects_stale_version(self, ledger, base_time):
        loaded = new_record("user-1", "2024-03")
        await ledger.apply("user-1", "2024-03", InvoiceEvent.SUBMIT)
        before = _sample("invoice_compliance_stale_writes_total")

        ignored = transition(loaded, InvoiceEvent.IGNORE, now=base_time)
        with pytest.raises(StaleRecordError) as exc_info:
            await ledger.save(ignored, expected_version=loaded.version)

        assert exc_info.value.expected_version == 0
        assert exc_info.value.actual_version == 1
        assert ledger.get("user-1", "2024-03").status is InvoiceStatus.SUBMITTED
        assert _sample("invoice_compliance_stale_writes_total") == before + 1

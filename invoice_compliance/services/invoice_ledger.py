# ==== INVOICE LEDGER SERVICE ==== #

"""
In-process invoice record store with single-writer-per-record semantics.

Transitions on the same (user, reference month) key are serialized through
a per-key asyncio lock, and externally computed records can be saved with
an optimistic version check. Reads take no lock: each record is replaced as
a whole immutable value, so a reader sees either the old or the new record.
Persistent storage layers mirror this contract with a version column.

The ledger is bound to one event loop. `apply` does not await between its
read and its write, so the lock only matters once a storage hook awaits
inside the critical section. Locks exist only while a task holds or waits
on them.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional, Tuple, Union

from invoice_compliance.business.errors import InvalidTransition, StaleRecordError
from invoice_compliance.business.invoice_status import (
    InvoiceEvent,
    InvoiceRecord,
    PayloadInput,
    new_record,
    transition,
)
from invoice_compliance.business.periods import ReferenceMonth
from invoice_compliance.clock import Clock, utc_now
from invoice_compliance.observability.logging import get_logger, log_business_event
from invoice_compliance.observability.metrics import (
    invalid_transitions_total,
    invoice_transitions_total,
    stale_writes_total,
)
from invoice_compliance.observability.tracing import get_tracer


# ==== MODULE INITIALIZATION ==== #


tracer = get_tracer(__name__)
logger = get_logger(__name__)

RecordKey = Tuple[str, ReferenceMonth]
MonthInput = Union[ReferenceMonth, str]


# ==== INVOICE LEDGER CLASS ==== #


class InvoiceLedger:
    """
    Invoice records keyed by user and reference month.

    Records are created lazily on the first event for a key. The injected
    clock timestamps every transition.
    """

    def __init__(self, clock: Clock = utc_now):
        self.clock = clock
        self._records: Dict[RecordKey, InvoiceRecord] = {}
        self._locks: Dict[RecordKey, asyncio.Lock] = {}
        self._lock_users: Dict[RecordKey, int] = {}

    # ==== KEY MANAGEMENT ==== #

    @staticmethod
    def _key(user_id: str, reference_month: MonthInput) -> RecordKey:
        return user_id, ReferenceMonth.parse(reference_month)

    @asynccontextmanager
    async def _locked(self, key: RecordKey) -> AsyncIterator[None]:
        """Hold the key's lock; the lock is dropped once no task holds or awaits it."""
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                del self._locks[key]

    # ==== READS ==== #

    def get(self, user_id: str, reference_month: MonthInput) -> Optional[InvoiceRecord]:
        """Current record for a user-month, or None if it has never been tracked."""
        return self._records.get(self._key(user_id, reference_month))

    def records_for_month(self, reference_month: MonthInput) -> Dict[str, InvoiceRecord]:
        """Snapshot of user id → record for one reference month."""
        period = ReferenceMonth.parse(reference_month)
        return {
            user_id: record
            for (user_id, month), record in list(self._records.items())
            if month == period
        }

    # ==== WRITES ==== #

    async def apply(
        self,
        user_id: str,
        reference_month: MonthInput,
        event: Union[InvoiceEvent, str],
        payload: PayloadInput = None,
    ) -> InvoiceRecord:
        """
        Apply an event to a user-month, creating the record if needed.

        Args:
            user_id (str): Collaborator identifier
            reference_month: Invoice period
            event: Event to apply
            payload: Rejection reason, reviewer and submission metadata

        Returns:
            InvoiceRecord: Stored record after the transition

        Raises:
            InvalidTransition: If the event is not permitted from the current status
        """
        key = self._key(user_id, reference_month)
        with tracer.start_as_current_span("invoice_transition") as span:
            span.set_attribute("user_id", user_id)
            span.set_attribute("reference_month", str(key[1]))
            span.set_attribute("event", str(getattr(event, "value", event)))

            async with self._locked(key):
                current = self._records.get(key) or new_record(*key)
                try:
                    updated = transition(current, event, payload, now=self.clock())
                except InvalidTransition as exc:
                    invalid_transitions_total.labels(
                        from_status=exc.from_status, event=exc.event
                    ).inc()
                    logger.warning(
                        "Invoice transition rejected",
                        user_id=user_id,
                        reference_month=str(key[1]),
                        from_status=exc.from_status,
                        event=exc.event,
                    )
                    raise

                self._records[key] = updated

            invoice_transitions_total.labels(
                from_status=current.status.value, to_status=updated.status.value
            ).inc()
            log_business_event(
                f"invoice_{updated.status.value}",
                user_id=user_id,
                reference_month=str(key[1]),
                version=updated.version,
            )
            span.set_attribute("to_status", updated.status.value)
            return updated

    async def save(self, record: InvoiceRecord, expected_version: int) -> InvoiceRecord:
        """
        Store a record computed outside the ledger, guarded by its version.

        Args:
            record (InvoiceRecord): New record value
            expected_version (int): Version the caller read before transitioning;
                0 when the key had no record

        Returns:
            InvoiceRecord: The stored record

        Raises:
            StaleRecordError: If the stored version differs from `expected_version`
        """
        key = self._key(record.user_id, record.reference_month)
        async with self._locked(key):
            current = self._records.get(key)
            actual_version = current.version if current is not None else 0
            if actual_version != expected_version:
                stale_writes_total.inc()
                raise StaleRecordError(record.key, expected_version, actual_version)
            self._records[key] = record
            return record

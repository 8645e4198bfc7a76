# ==== INVOICE STATUS MACHINE ==== #

"""
Invoice lifecycle per (user, reference month).

Status progression: NOT_SUBMITTED → SUBMITTED → APPROVED | REJECTED, with
REJECTED → SUBMITTED on resubmission and IGNORED as a manager override from
any non-approved, non-ignored state. APPROVED and IGNORED are terminal.

Records are immutable: `transition` returns a new record with its version
bumped, so persisting a transition is a single whole-record write.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, field_serializer, field_validator, model_validator

from invoice_compliance.business.errors import InvalidTransition
from invoice_compliance.business.periods import ReferenceMonth
from invoice_compliance.settings import settings


# ==== ENUMERATION DEFINITIONS ==== #


class InvoiceStatus(str, Enum):
    """Invoice status for a user-month."""

    NOT_SUBMITTED = "not_submitted"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    IGNORED = "ignored"


class InvoiceEvent(str, Enum):
    """Events that move an invoice between statuses."""

    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    IGNORE = "ignore"


TRANSITIONS: Dict[Tuple[InvoiceStatus, InvoiceEvent], InvoiceStatus] = {
    (InvoiceStatus.NOT_SUBMITTED, InvoiceEvent.SUBMIT): InvoiceStatus.SUBMITTED,
    (InvoiceStatus.SUBMITTED, InvoiceEvent.APPROVE): InvoiceStatus.APPROVED,
    (InvoiceStatus.SUBMITTED, InvoiceEvent.REJECT): InvoiceStatus.REJECTED,
    (InvoiceStatus.REJECTED, InvoiceEvent.SUBMIT): InvoiceStatus.SUBMITTED,
    (InvoiceStatus.NOT_SUBMITTED, InvoiceEvent.IGNORE): InvoiceStatus.IGNORED,
    (InvoiceStatus.SUBMITTED, InvoiceEvent.IGNORE): InvoiceStatus.IGNORED,
    (InvoiceStatus.REJECTED, InvoiceEvent.IGNORE): InvoiceStatus.IGNORED,
}

TERMINAL_STATUSES: FrozenSet[InvoiceStatus] = frozenset(
    {InvoiceStatus.APPROVED, InvoiceStatus.IGNORED}
)

_SUBMITTED_STATUSES: FrozenSet[InvoiceStatus] = frozenset(
    {InvoiceStatus.SUBMITTED, InvoiceStatus.APPROVED, InvoiceStatus.REJECTED}
)


# ==== RECORD MODEL ==== #


class InvoiceRecord(BaseModel):
    """
    Invoice state for one user and one reference month.

    `submitted_at` is required once an invoice has been submitted and absent
    before that; `rejection_reason` exists only on REJECTED records.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str
    reference_month: ReferenceMonth
    status: InvoiceStatus = InvoiceStatus.NOT_SUBMITTED
    submitted_at: Optional[dt.datetime] = None
    reviewed_at: Optional[dt.datetime] = None
    reviewed_by: Optional[str] = None
    rejection_reason: Optional[str] = None
    amount: Optional[Decimal] = None
    invoice_number: Optional[str] = None
    file_name: Optional[str] = None
    version: int = 0

    @field_validator("reference_month", mode="plain")
    @classmethod
    def _parse_reference_month(cls, value: Any) -> ReferenceMonth:
        return ReferenceMonth.parse(value)

    @field_serializer("reference_month")
    def _serialize_reference_month(self, value: ReferenceMonth) -> str:
        return str(value)

    @model_validator(mode="after")
    def _check_invariants(self) -> "InvoiceRecord":
        if self.status in _SUBMITTED_STATUSES and self.submitted_at is None:
            raise ValueError(f"{self.status.value} invoice requires submitted_at")
        if self.status is InvoiceStatus.NOT_SUBMITTED and self.submitted_at is not None:
            raise ValueError("not_submitted invoice cannot carry submitted_at")
        if self.rejection_reason is not None and self.status is not InvoiceStatus.REJECTED:
            raise ValueError("rejection_reason is only allowed on rejected invoices")
        return self

    @property
    def key(self) -> str:
        return f"{self.user_id}:{self.reference_month}"

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class TransitionPayload(BaseModel):
    """Optional data accompanying an event."""

    model_config = ConfigDict(frozen=True)

    reason: Optional[str] = None
    reviewed_by: Optional[str] = None
    amount: Optional[Decimal] = None
    invoice_number: Optional[str] = None
    file_name: Optional[str] = None


PayloadInput = Union[TransitionPayload, Mapping[str, Any], None]


# ==== TRANSITIONS ==== #


def new_record(user_id: str, reference_month: Union[ReferenceMonth, str]) -> InvoiceRecord:
    """Implicit NOT_SUBMITTED record for a user-month with no history."""
    return InvoiceRecord(user_id=user_id, reference_month=ReferenceMonth.parse(reference_month))


def allowed_events(status: InvoiceStatus) -> FrozenSet[InvoiceEvent]:
    """Events accepted from `status`."""
    return frozenset(event for (source, event) in TRANSITIONS if source is status)


def _is_aware(moment: dt.datetime) -> bool:
    return moment.tzinfo is not None and moment.utcoffset() is not None


def transition(
    record: InvoiceRecord,
    event: Union[InvoiceEvent, str],
    payload: PayloadInput = None,
    *,
    now: dt.datetime,
) -> InvoiceRecord:
    """
    Apply an event to an invoice record.

    Args:
        record (InvoiceRecord): Current record
        event: Event to apply
        payload: Rejection reason, reviewer and submission metadata
        now (dt.datetime): Timestamp for the transition, supplied by the caller

    Returns:
        InvoiceRecord: New record with the target status and version + 1

    Raises:
        InvalidTransition: If the event is not permitted from the current
            status, or a resubmission is not later than the previous one, or
            mixes naive and timezone-aware timestamps
    """
    try:
        event = InvoiceEvent(event)
    except ValueError:
        raise InvalidTransition(record.status.value, str(event), f"Unknown invoice event: {event!r}")

    target = TRANSITIONS.get((record.status, event))
    if target is None:
        raise InvalidTransition(record.status.value, event.value)

    if payload is None:
        payload = TransitionPayload()
    elif not isinstance(payload, TransitionPayload):
        payload = TransitionPayload.model_validate(dict(payload))

    changes: Dict[str, Any] = {"status": target, "version": record.version + 1}

    if event is InvoiceEvent.SUBMIT:
        if record.submitted_at is not None and _is_aware(now) != _is_aware(record.submitted_at):
            raise InvalidTransition(
                record.status.value,
                event.value,
                "Resubmission time and previous submission time must both be "
                "timezone-aware or both naive",
            )
        if record.submitted_at is not None and now <= record.submitted_at:
            raise InvalidTransition(
                record.status.value,
                event.value,
                f"Resubmission at {now.isoformat()} is not after previous submission "
                f"at {record.submitted_at.isoformat()}",
            )
        changes.update(submitted_at=now, rejection_reason=None)
        for field in ("amount", "invoice_number", "file_name"):
            value = getattr(payload, field)
            if value is not None:
                changes[field] = value

    elif event is InvoiceEvent.APPROVE:
        changes.update(reviewed_at=now, reviewed_by=payload.reviewed_by)

    elif event is InvoiceEvent.REJECT:
        reason = (payload.reason or "").strip() or settings.DEFAULT_REJECTION_REASON
        changes.update(reviewed_at=now, reviewed_by=payload.reviewed_by, rejection_reason=reason)

    elif event is InvoiceEvent.IGNORE:
        changes["rejection_reason"] = None

    return record.model_copy(update=changes)

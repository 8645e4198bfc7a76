# ==== COMPLIANCE EVALUATOR SERVICE ==== #

"""
Compliance evaluation for monthly invoice submission.

Classifies each user-month against its resolved deadline as on track, late,
submitted, resolved or exempt, and aggregates status counts for a company
dashboard. Evaluation is a pure function of the record, the deadline and an
injected `now`; the service class only adds the clock, metrics and tracing.
"""

import datetime as dt
import time
from decimal import Decimal
from enum import Enum
from typing import Iterable, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict

from invoice_compliance.business.deadlines import (
    ConfigInput,
    DeadlineStrategyConfig,
    resolve_deadline_for,
)
from invoice_compliance.business.invoice_status import InvoiceRecord, InvoiceStatus
from invoice_compliance.business.periods import ReferenceMonth
from invoice_compliance.clock import Clock, utc_now
from invoice_compliance.observability.logging import get_logger
from invoice_compliance.observability.metrics import (
    aggregation_duration_seconds,
    compliance_evaluations_total,
    deadline_resolutions_total,
)
from invoice_compliance.observability.tracing import get_tracer


# ==== MODULE INITIALIZATION ==== #


tracer = get_tracer(__name__)
logger = get_logger(__name__)

Moment = Union[dt.datetime, dt.date]
RecordMap = Mapping[str, Optional[InvoiceRecord]]


# ==== RESULT TYPES ==== #


class ComplianceState(str, Enum):
    """Compliance classification of a user-month."""

    ON_TRACK = "on_track"
    LATE = "late"
    SUBMITTED = "submitted"
    RESOLVED = "resolved"
    EXEMPT = "exempt"


class ComplianceResult(BaseModel):
    """
    Derived compliance for one user-month, never persisted.

    `days_late` and `days_remaining` are only set for NOT_SUBMITTED records.
    `submission_delta_days` is informational for SUBMITTED records: days
    between the deadline and the submission, negative when early.
    """

    model_config = ConfigDict(frozen=True)

    state: ComplianceState
    is_late: bool = False
    days_late: Optional[int] = None
    days_remaining: Optional[int] = None
    submission_delta_days: Optional[int] = None
    submitted_on_time: Optional[bool] = None


class ComplianceSummary(BaseModel):
    """Status counts for a company and reference month."""

    total: int = 0
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    not_submitted: int = 0
    ignored: int = 0
    total_amount: Decimal = Decimal("0")


class UserStatusFilter(str, Enum):
    """Dashboard filter over user-month statuses."""

    ALL = "all"
    NOT_SUBMITTED = "not_submitted"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    IGNORED = "ignored"


class UserComplianceRow(BaseModel):
    """One user's invoice state and delay for a reference month."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    status: InvoiceStatus
    record: Optional[InvoiceRecord] = None
    compliance: ComplianceResult


_FILTER_STATUS = {
    UserStatusFilter.NOT_SUBMITTED: InvoiceStatus.NOT_SUBMITTED,
    UserStatusFilter.PENDING: InvoiceStatus.SUBMITTED,
    UserStatusFilter.APPROVED: InvoiceStatus.APPROVED,
    UserStatusFilter.REJECTED: InvoiceStatus.REJECTED,
    UserStatusFilter.IGNORED: InvoiceStatus.IGNORED,
}


# ==== DATE ARITHMETIC ==== #


def _as_date(moment: Moment) -> dt.date:
    """Calendar date of a moment; the deadline date itself counts as on time."""
    if isinstance(moment, dt.datetime):
        return moment.date()
    return moment


# ==== CORE EVALUATION ==== #


def evaluate_compliance(
    record: Optional[InvoiceRecord],
    deadline: dt.date,
    now: Moment,
) -> ComplianceResult:
    """
    Classify a user-month against its deadline.

    Lateness is counted in calendar days: anything up to the end of the
    deadline date is on time.

    Args:
        record: Invoice record, or None when the user has no record yet
        deadline (dt.date): Resolved deadline for the record's month
        now: Current instant supplied by the caller (date or datetime)

    Returns:
        ComplianceResult: Classification with delay information
    """
    status = record.status if record is not None else InvoiceStatus.NOT_SUBMITTED

    if status is InvoiceStatus.NOT_SUBMITTED:
        today = _as_date(now)
        if today > deadline:
            return ComplianceResult(
                state=ComplianceState.LATE,
                is_late=True,
                days_late=(today - deadline).days,
            )
        return ComplianceResult(
            state=ComplianceState.ON_TRACK,
            days_remaining=(deadline - today).days,
        )

    if status is InvoiceStatus.SUBMITTED:
        delta = (_as_date(record.submitted_at) - deadline).days
        return ComplianceResult(
            state=ComplianceState.SUBMITTED,
            submission_delta_days=delta,
            submitted_on_time=delta <= 0,
        )

    if status is InvoiceStatus.IGNORED:
        return ComplianceResult(state=ComplianceState.EXEMPT)

    return ComplianceResult(state=ComplianceState.RESOLVED)


def _record_for_period(record: Optional[InvoiceRecord], period: ReferenceMonth) -> Optional[InvoiceRecord]:
    if record is None or record.reference_month != period:
        return None
    return record


def aggregate(
    records: RecordMap,
    year: int,
    month: int,
    user_ids: Optional[Iterable[str]] = None,
) -> ComplianceSummary:
    """
    Count tracked users by invoice status for a month.

    Users without a record for the month, including records belonging to
    another month, count as not submitted. `pending` counts SUBMITTED
    invoices awaiting review.

    Args:
        records: Mapping of user id to that user's record (or None)
        year (int): Reference year
        month (int): Reference month, 1-12
        user_ids: Tracked users; defaults to the keys of `records`

    Returns:
        ComplianceSummary: Status counts and summed invoice amounts
    """
    period = ReferenceMonth(year, month)
    tracked = list(dict.fromkeys(user_ids if user_ids is not None else records.keys()))

    summary = ComplianceSummary(total=len(tracked))
    for user_id in tracked:
        record = _record_for_period(records.get(user_id), period)
        status = record.status if record is not None else InvoiceStatus.NOT_SUBMITTED

        if status is InvoiceStatus.SUBMITTED:
            summary.pending += 1
        elif status is InvoiceStatus.APPROVED:
            summary.approved += 1
        elif status is InvoiceStatus.REJECTED:
            summary.rejected += 1
        elif status is InvoiceStatus.IGNORED:
            summary.ignored += 1
        else:
            summary.not_submitted += 1

        if record is not None and record.amount is not None:
            summary.total_amount += record.amount

    return summary


def list_user_compliance(
    records: RecordMap,
    period: Union[ReferenceMonth, str],
    deadline: dt.date,
    now: Moment,
    user_ids: Optional[Iterable[str]] = None,
    status_filter: Union[UserStatusFilter, str] = UserStatusFilter.ALL,
) -> List[UserComplianceRow]:
    """
    Per-user compliance rows for a month, late users first.

    Args:
        records: Mapping of user id to record (or None)
        period: Reference month the deadline belongs to
        deadline (dt.date): Resolved deadline for the month
        now: Current instant supplied by the caller
        user_ids: Tracked users; defaults to the keys of `records`
        status_filter: Restrict rows to one status category

    Returns:
        List[UserComplianceRow]: Rows sorted by days late (descending), then user id
    """
    period = ReferenceMonth.parse(period)
    status_filter = UserStatusFilter(status_filter)
    tracked = list(dict.fromkeys(user_ids if user_ids is not None else records.keys()))

    rows = []
    for user_id in tracked:
        record = _record_for_period(records.get(user_id), period)
        status = record.status if record is not None else InvoiceStatus.NOT_SUBMITTED
        if status_filter is not UserStatusFilter.ALL and _FILTER_STATUS[status_filter] is not status:
            continue
        rows.append(UserComplianceRow(
            user_id=user_id,
            status=status,
            record=record,
            compliance=evaluate_compliance(record, deadline, now),
        ))

    rows.sort(key=lambda row: (-(row.compliance.days_late or 0), row.user_id))
    return rows


# ==== COMPLIANCE EVALUATOR CLASS ==== #


class ComplianceEvaluator:
    """
    Compliance service bound to a clock.

    Wraps deadline resolution, evaluation and aggregation with tracing spans
    and Prometheus metrics. The clock is the only source of `now`.
    """

    def __init__(self, clock: Clock = utc_now):
        self.clock = clock

    def deadline_for(self, config: ConfigInput, period: Union[ReferenceMonth, str]) -> dt.date:
        """Resolve the deadline for a reference month."""
        with tracer.start_as_current_span("resolve_deadline") as span:
            period = ReferenceMonth.parse(period)
            if not isinstance(config, DeadlineStrategyConfig):
                config = DeadlineStrategyConfig.model_validate(dict(config))
            deadline = resolve_deadline_for(config, period)

            strategy_label = config.strategy.value if config.strategy else "default"
            deadline_resolutions_total.labels(strategy=strategy_label).inc()

            span.set_attribute("reference_month", str(period))
            span.set_attribute("deadline", deadline.isoformat())
            return deadline

    def evaluate(self, record: Optional[InvoiceRecord], deadline: dt.date) -> ComplianceResult:
        """Evaluate a record against its deadline at the clock's current time."""
        result = evaluate_compliance(record, deadline, self.clock())
        compliance_evaluations_total.labels(state=result.state.value).inc()
        return result

    def summarize(
        self,
        records: RecordMap,
        period: Union[ReferenceMonth, str],
        user_ids: Optional[Iterable[str]] = None,
    ) -> ComplianceSummary:
        """Aggregate status counts for a reference month."""
        with tracer.start_as_current_span("aggregate_compliance") as span:
            period = ReferenceMonth.parse(period)
            start = time.perf_counter()
            try:
                summary = aggregate(records, period.year, period.month, user_ids=user_ids)
            finally:
                aggregation_duration_seconds.observe(time.perf_counter() - start)

            span.set_attribute("reference_month", str(period))
            span.set_attribute("total_users", summary.total)
            logger.debug(
                "Monthly compliance aggregated",
                reference_month=str(period),
                **summary.model_dump(exclude={"total_amount"}),
            )
            return summary

    def user_rows(
        self,
        records: RecordMap,
        config: ConfigInput,
        period: Union[ReferenceMonth, str],
        user_ids: Optional[Iterable[str]] = None,
        status_filter: Union[UserStatusFilter, str] = UserStatusFilter.ALL,
    ) -> List[UserComplianceRow]:
        """Per-user delay rows for a reference month under a company's config."""
        period = ReferenceMonth.parse(period)
        deadline = self.deadline_for(config, period)
        rows = list_user_compliance(
            records, period, deadline, self.clock(),
            user_ids=user_ids, status_filter=status_filter,
        )
        for row in rows:
            compliance_evaluations_total.labels(state=row.compliance.state.value).inc()
        return rows


# ==== GLOBAL SERVICE INSTANCE ==== #


_evaluator: Optional[ComplianceEvaluator] = None


def get_compliance_evaluator() -> ComplianceEvaluator:
    """
    Get global compliance evaluator bound to the system clock.

    Returns:
        ComplianceEvaluator: Global evaluator instance
    """
    global _evaluator
    if _evaluator is None:
        _evaluator = ComplianceEvaluator()
    return _evaluator

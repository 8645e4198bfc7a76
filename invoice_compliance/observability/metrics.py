# ==== PROMETHEUS METRICS ==== #

"""
Prometheus metrics for the invoice compliance core.

Counters for deadline resolution, invoice transitions and compliance
classification, plus timing for monthly aggregation. Exposition is left to
the hosting application through `render_metrics`.
"""

from prometheus_client import (
    Counter,
    Histogram,
    generate_latest,
    REGISTRY
)


# ==== DEADLINE METRICS ==== #

deadline_resolutions_total = Counter(
    "invoice_compliance_deadline_resolutions_total",
    "Total deadline resolutions by strategy",
    ["strategy"]
)


# ==== LIFECYCLE METRICS ==== #

invoice_transitions_total = Counter(
    "invoice_compliance_transitions_total",
    "Total applied invoice status transitions",
    ["from_status", "to_status"]
)

invalid_transitions_total = Counter(
    "invoice_compliance_invalid_transitions_total",
    "Total rejected invoice status transitions",
    ["from_status", "event"]
)

stale_writes_total = Counter(
    "invoice_compliance_stale_writes_total",
    "Total invoice record saves rejected by the version check"
)


# ==== COMPLIANCE METRICS ==== #

compliance_evaluations_total = Counter(
    "invoice_compliance_evaluations_total",
    "Total compliance evaluations by resulting state",
    ["state"]
)

aggregation_duration_seconds = Histogram(
    "invoice_compliance_aggregation_duration_seconds",
    "Time spent aggregating monthly compliance in seconds"
)


def render_metrics() -> bytes:
    """Prometheus text exposition of the default registry."""
    return generate_latest(REGISTRY)

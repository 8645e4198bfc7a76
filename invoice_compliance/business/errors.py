# ==== COMPLIANCE ERROR TAXONOMY ==== #

"""
Error types raised by the invoice compliance core.

Every error is synchronous and local to the function that raises it. The
calling layer translates them into user-facing messages; nothing in the core
catches and hides them.
"""

from typing import Optional


class ComplianceError(Exception):
    """Base class for all compliance core errors."""


class InvalidTransition(ComplianceError):
    """
    Attempted invoice status change that the state machine does not permit.

    Attributes:
        from_status: Status the record was in when the event arrived
        event: Name of the rejected event
    """

    def __init__(self, from_status: str, event: str, message: Optional[str] = None):
        self.from_status = from_status
        self.event = event
        super().__init__(
            message or f"Cannot apply '{event}' to invoice in status '{from_status}'"
        )


class InvalidConfiguration(ComplianceError):
    """
    Deadline strategy configuration missing a field its strategy requires.

    Attributes:
        strategy: Strategy being validated
        field: Name of the missing or invalid field
    """

    def __init__(self, strategy: str, field: str, message: Optional[str] = None):
        self.strategy = strategy
        self.field = field
        super().__init__(
            message or f"Deadline strategy '{strategy}' requires a valid '{field}'"
        )


class RangeError(ComplianceError, ValueError):
    """Working-day count out of range or day walk cap exceeded."""


class StaleRecordError(ComplianceError):
    """
    Optimistic version check failed while saving an invoice record.

    Raised when another writer replaced the record between read and save.
    """

    def __init__(self, key: str, expected_version: int, actual_version: int):
        self.key = key
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Invoice record {key} is at version {actual_version}, "
            f"expected {expected_version}"
        )

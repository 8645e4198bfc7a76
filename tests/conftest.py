# ==== SHARED TEST FIXTURES AND CONFIGURATION ==== #

"""
Shared test fixtures for the invoice compliance core.

Provides fixed clocks, deadline configurations, invoice records and a
fresh ledger per test. Environment variables are set before any package
import so settings pick them up.
"""

import os
from datetime import datetime, timezone
from decimal import Decimal

import pytest


# ==== FORCE ENVIRONMENT SETUP BEFORE ANY IMPORTS ==== #

os.environ.update({
    "APP_ENV": "test",
    "LOG_LEVEL": "WARNING",
})

from invoice_compliance.business.deadlines import DeadlineStrategy, DeadlineStrategyConfig
from invoice_compliance.business.invoice_status import InvoiceEvent, new_record, transition
from invoice_compliance.clock import FixedClock
from invoice_compliance.services.invoice_ledger import InvoiceLedger
from invoice_compliance.services.reminders import ReminderScheduleSettings


# ==== CLOCK FIXTURES ==== #


@pytest.fixture
def base_time():
    """Fixed base time for tests."""
    return datetime(2024, 3, 10, 9, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(base_time):
    """Clock frozen at base_time, advanced explicitly by tests."""
    return FixedClock(base_time)


# ==== CONFIGURATION FIXTURES ==== #


@pytest.fixture
def fixed_day_config():
    """Company deadline on the 15th of every month."""
    return DeadlineStrategyConfig(strategy=DeadlineStrategy.FIXED_DAY, fixed_day=15)


@pytest.fixture
def start_month_config():
    """Company deadline on the 5th working day of the month."""
    return DeadlineStrategyConfig(strategy=DeadlineStrategy.WORKING_DAYS_FROM_START, days_from_start=5)


@pytest.fixture
def end_month_config():
    """Company deadline on the 3rd working day before month end."""
    return DeadlineStrategyConfig(strategy=DeadlineStrategy.WORKING_DAYS_FROM_END, days_from_end=3)


@pytest.fixture
def reminder_schedule():
    return ReminderScheduleSettings(
        first_reminder=5,
        second_reminder=2,
        final_reminder=1,
        escalation_reminder=3,
    )


# ==== RECORD FIXTURES ==== #


@pytest.fixture
def submitted_record(base_time):
    """Invoice submitted for March 2024 at base_time."""
    return transition(
        new_record("user-1", "2024-03"),
        InvoiceEvent.SUBMIT,
        {"amount": Decimal("1500.00"), "invoice_number": "NF-001", "file_name": "nf-001.pdf"},
        now=base_time,
    )


@pytest.fixture
def ledger(clock):
    """Empty ledger bound to the fixed clock."""
    return InvoiceLedger(clock=clock)

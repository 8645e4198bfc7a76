# ==== REMINDER SCHEDULER ==== #

"""
Reminder dates derived from a resolved deadline.

A company schedule holds up to three reminders before the deadline (first,
second, final) and one escalation after it, each expressed in days. A zero
offset disables that reminder. Delivery belongs to the notification layer;
this module only does the date arithmetic.
"""

import datetime as dt
from enum import Enum
from typing import List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from invoice_compliance.business.deadlines import ConfigInput, resolve_deadline_for
from invoice_compliance.business.periods import ReferenceMonth


class ReminderKind(str, Enum):
    FIRST = "first"
    SECOND = "second"
    FINAL = "final"
    ESCALATION = "escalation"


class ReminderScheduleSettings(BaseModel):
    """Company reminder offsets in days; 0 disables a reminder."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    first_reminder: int = Field(
        default=0, ge=0, validation_alias=AliasChoices("first_reminder", "firstReminder")
    )
    second_reminder: int = Field(
        default=0, ge=0, validation_alias=AliasChoices("second_reminder", "secondReminder")
    )
    final_reminder: int = Field(
        default=0, ge=0, validation_alias=AliasChoices("final_reminder", "finalReminder")
    )
    escalation_reminder: int = Field(
        default=0, ge=0, validation_alias=AliasChoices("escalation_reminder", "escalationReminder")
    )


class ReminderDate(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: ReminderKind
    date: dt.date


def reminder_dates(deadline: dt.date, schedule: ReminderScheduleSettings) -> List[ReminderDate]:
    """
    Reminder dates for a deadline, in date order.

    Args:
        deadline (dt.date): Resolved submission deadline
        schedule (ReminderScheduleSettings): Company reminder offsets

    Returns:
        List[ReminderDate]: Enabled reminders sorted by date
    """
    offsets = [
        (ReminderKind.FIRST, -schedule.first_reminder),
        (ReminderKind.SECOND, -schedule.second_reminder),
        (ReminderKind.FINAL, -schedule.final_reminder),
        (ReminderKind.ESCALATION, schedule.escalation_reminder),
    ]
    reminders = [
        ReminderDate(kind=kind, date=deadline + dt.timedelta(days=offset))
        for kind, offset in offsets
        if offset != 0
    ]
    # stable sort keeps declaration order for reminders on the same day
    return sorted(reminders, key=lambda reminder: reminder.date)


def next_reminder(
    deadline: dt.date,
    schedule: ReminderScheduleSettings,
    today: dt.date,
) -> Optional[ReminderDate]:
    """First reminder falling on or after `today`, or None when all have passed."""
    if isinstance(today, dt.datetime):
        today = today.date()
    for reminder in reminder_dates(deadline, schedule):
        if reminder.date >= today:
            return reminder
    return None


def reminders_for_period(
    config: ConfigInput,
    schedule: ReminderScheduleSettings,
    period: Union[ReferenceMonth, str],
) -> List[ReminderDate]:
    """Resolve the month's deadline and derive its reminder dates."""
    return reminder_dates(resolve_deadline_for(config, period), schedule)

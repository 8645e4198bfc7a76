# ==== POLICY LOADER SERVICE ==== #

"""
Policy loader for company defaults.

Loads the default deadline strategy and reminder schedule from YAML, with a
hard-coded fallback when the file is missing. `POLICY_PATH` overrides the
packaged default file.
"""

import functools
import os
from typing import Any, Dict, Optional

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from invoice_compliance.business.deadlines import DeadlineStrategyConfig
from invoice_compliance.observability.logging import get_logger
from invoice_compliance.observability.tracing import get_tracer
from invoice_compliance.services.reminders import ReminderScheduleSettings
from invoice_compliance.settings import settings


tracer = get_tracer(__name__)
logger = get_logger(__name__)


DEFAULT_POLICY_PATH = os.path.join(
    os.path.dirname(__file__),
    "..",
    "business",
    "policies",
    "default_company.yaml"
)

FALLBACK_POLICY: Dict[str, Any] = {
    "deadline": {"strategy": "fixed_day", "day": 5},
    "reminderSchedule": {
        "firstReminder": 5,
        "secondReminder": 2,
        "finalReminder": 1,
        "escalationReminder": 3,
    },
    "autoReminders": False,
    "emailNotifications": False,
}


class CompanyPolicy(BaseModel):
    """Deadline and reminder settings of a company."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    deadline: DeadlineStrategyConfig = DeadlineStrategyConfig()
    reminder_schedule: ReminderScheduleSettings = Field(
        default_factory=ReminderScheduleSettings,
        validation_alias=AliasChoices("reminder_schedule", "reminderSchedule"),
    )
    auto_reminders: bool = Field(
        default=False, validation_alias=AliasChoices("auto_reminders", "autoReminders")
    )
    email_notifications: bool = Field(
        default=False, validation_alias=AliasChoices("email_notifications", "emailNotifications")
    )


def load_policy_file(path: str) -> Optional[Dict[str, Any]]:
    """
    Read a policy YAML file.

    Args:
        path (str): Path to the YAML file

    Returns:
        Optional[Dict[str, Any]]: Parsed mapping, or None if the file does not exist
    """
    with tracer.start_as_current_span("load_policy_file") as span:
        span.set_attribute("path", path)
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
        except FileNotFoundError:
            span.set_attribute("config_loaded", False)
            return None

        if not isinstance(data, dict):
            raise ValueError(f"Policy file {path} must contain a mapping")
        span.set_attribute("config_loaded", True)
        return data


@functools.lru_cache(maxsize=8)
def _load_default_policy(path: str) -> CompanyPolicy:
    data = load_policy_file(path)
    if data is None:
        logger.warning("Policy file not found, using built-in defaults", path=path)
        data = FALLBACK_POLICY
    return CompanyPolicy.model_validate(data)


def get_default_company_policy() -> CompanyPolicy:
    """
    Default policy for companies without their own configuration.

    Returns:
        CompanyPolicy: Parsed policy (cached per file path)
    """
    return _load_default_policy(settings.POLICY_PATH or DEFAULT_POLICY_PATH)


def company_policy(overrides: Optional[Dict[str, Any]] = None) -> CompanyPolicy:
    """Company policy merged over the defaults, section by section."""
    base = get_default_company_policy()
    if not overrides:
        return base

    merged = base.model_dump()
    for key, value in overrides.items():
        policy_key = {
            "reminderSchedule": "reminder_schedule",
            "autoReminders": "auto_reminders",
            "emailNotifications": "email_notifications",
        }.get(key, key)
        if isinstance(value, dict) and isinstance(merged.get(policy_key), dict):
            section = DeadlineStrategyConfig if policy_key == "deadline" else ReminderScheduleSettings
            value = section.model_validate(value).model_dump(exclude_unset=True)
            merged[policy_key] = {**merged[policy_key], **value}
        else:
            merged[policy_key] = value
    return CompanyPolicy.model_validate(merged)

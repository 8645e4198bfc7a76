"""Unit tests for company policy loading."""

from datetime import date

import pytest

from invoice_compliance.business.deadlines import DeadlineStrategy, resolve_deadline
from invoice_compliance.services import policy_loader
from invoice_compliance.services.policy_loader import (
    company_policy,
    get_default_company_policy,
    load_policy_file,
)
from invoice_compliance.settings import settings


@pytest.fixture(autouse=True)
def clear_policy_cache():
    policy_loader._load_default_policy.cache_clear()
    yield
    policy_loader._load_default_policy.cache_clear()


@pytest.mark.unit
class TestDefaultPolicy:
    """Test cases for the packaged defaults."""

    def test_packaged_defaults(self):
        policy = get_default_company_policy()

        assert policy.deadline.strategy is DeadlineStrategy.FIXED_DAY
        assert policy.deadline.fixed_day == 5
        assert policy.reminder_schedule.first_reminder == 5
        assert policy.reminder_schedule.escalation_reminder == 3
        assert policy.auto_reminders is False

    def test_defaults_resolve(self):
        policy = get_default_company_policy()

        assert resolve_deadline(policy.deadline, 2024, 3) == date(2024, 3, 5)

    def test_policy_path_override(self, tmp_path, monkeypatch):
        path = tmp_path / "policy.yaml"
        path.write_text(
            "deadline:\n"
            "  strategy: end_month\n"
            "  daysFromEnd: 2\n"
            "reminderSchedule:\n"
            "  finalReminder: 1\n"
        )
        monkeypatch.setattr(settings, "POLICY_PATH", str(path))

        policy = get_default_company_policy()

        assert policy.deadline.strategy is DeadlineStrategy.WORKING_DAYS_FROM_END
        assert policy.deadline.days_from_end == 2
        assert policy.reminder_schedule.first_reminder == 0
        assert policy.reminder_schedule.final_reminder == 1

    def test_missing_file_falls_back(self, tmp_path, monkeypatch):
        monkeypatch.setattr(settings, "POLICY_PATH", str(tmp_path / "missing.yaml"))

        policy = get_default_company_policy()

        assert policy.deadline.fixed_day == 5
        assert policy.reminder_schedule.second_reminder == 2

    def test_non_mapping_file_rejected(self, tmp_path):
        path = tmp_path / "policy.yaml"
        path.write_text("- fixed_day\n- 5\n")

        with pytest.raises(ValueError):
            load_policy_file(str(path))

    def test_load_missing_file_returns_none(self, tmp_path):
        assert load_policy_file(str(tmp_path / "nope.yaml")) is None


@pytest.mark.unit
class TestCompanyPolicy:
    """Test cases for overrides merged over defaults."""

    def test_no_overrides(self):
        assert company_policy() == get_default_company_policy()

    def test_deadline_override_keeps_other_fields(self):
        policy = company_policy({"deadline": {"strategy": "start_month", "daysFromStart": 3}})

        assert policy.deadline.strategy is DeadlineStrategy.WORKING_DAYS_FROM_START
        assert policy.deadline.days_from_start == 3
        assert policy.deadline.fixed_day == 5
        assert policy.reminder_schedule.first_reminder == 5

    def test_reminder_and_flag_overrides(self):
        policy = company_policy({
            "reminderSchedule": {"firstReminder": 10},
            "emailNotifications": True,
        })

        assert policy.reminder_schedule.first_reminder == 10
        assert policy.reminder_schedule.second_reminder == 2
        assert policy.email_notifications is True

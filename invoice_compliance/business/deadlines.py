# ==== DEADLINE RESOLVER ==== #

"""
Deadline strategies and resolution for monthly invoice submission.

A company picks one strategy: a fixed day of the month, the n-th working
day from the start of the month, or the n-th working day from the end of
the month. Resolution is a pure function of the configuration and the
target month.
"""

import datetime as dt
from enum import Enum
from typing import Any, Mapping, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from invoice_compliance.business.errors import InvalidConfiguration
from invoice_compliance.business.periods import ReferenceMonth
from invoice_compliance.business.working_days import (
    nth_working_day_from_end,
    nth_working_day_from_start,
)
from invoice_compliance.observability.logging import get_logger
from invoice_compliance.settings import settings


logger = get_logger(__name__)


# ==== ENUMERATION DEFINITIONS ==== #


class DeadlineStrategy(str, Enum):
    """
    Company deadline strategies.

    Values match the identifiers stored in company settings; the upper-case
    member names are accepted as well.
    """

    FIXED_DAY = "fixed_day"
    WORKING_DAYS_FROM_START = "start_month"
    WORKING_DAYS_FROM_END = "end_month"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            normalized = value.strip()
            for member in cls:
                if normalized.upper() == member.name or normalized.lower() == member.value:
                    return member
        return None


# ==== STRATEGY CONFIGURATION ==== #


class DeadlineStrategyConfig(BaseModel):
    """
    Deadline strategy configuration owned by a company.

    Only the numeric field matching `strategy` is used. A zero or missing
    value counts as unset. An unknown or missing strategy resolves with the
    default fixed day (`DEFAULT_DEADLINE_DAY`).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    strategy: Optional[DeadlineStrategy] = None
    fixed_day: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("fixed_day", "fixedDay", "day")
    )
    days_from_start: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("days_from_start", "daysFromStart")
    )
    days_from_end: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("days_from_end", "daysFromEnd")
    )

    @field_validator("strategy", mode="before")
    @classmethod
    def _unknown_strategy_is_unset(cls, value: Any) -> Any:
        if value is None or isinstance(value, DeadlineStrategy):
            return value
        try:
            return DeadlineStrategy(value)
        except ValueError:
            logger.warning(
                "Unknown deadline strategy, falling back to default fixed day",
                strategy=value,
                default_day=settings.DEFAULT_DEADLINE_DAY,
            )
            return None

    def validate_for_strategy(self) -> "DeadlineStrategyConfig":
        """
        Check that the field required by the selected strategy is usable.

        Returns:
            DeadlineStrategyConfig: self, for chaining

        Raises:
            InvalidConfiguration: If the active field is missing or out of range
        """
        if self.strategy is DeadlineStrategy.FIXED_DAY:
            if not self.fixed_day or not 1 <= self.fixed_day <= 31:
                raise InvalidConfiguration(self.strategy.value, "fixed_day")
        elif self.strategy is DeadlineStrategy.WORKING_DAYS_FROM_START:
            if not self.days_from_start or self.days_from_start < 1:
                raise InvalidConfiguration(self.strategy.value, "days_from_start")
        elif self.strategy is DeadlineStrategy.WORKING_DAYS_FROM_END:
            if not self.days_from_end or self.days_from_end < 1:
                raise InvalidConfiguration(self.strategy.value, "days_from_end")
        return self

    @property
    def effective_strategy(self) -> DeadlineStrategy:
        return self.strategy or DeadlineStrategy.FIXED_DAY


ConfigInput = Union[DeadlineStrategyConfig, Mapping[str, Any]]


def _coerce_config(config: ConfigInput) -> DeadlineStrategyConfig:
    if isinstance(config, DeadlineStrategyConfig):
        return config
    return DeadlineStrategyConfig.model_validate(dict(config))


# ==== DEADLINE RESOLUTION ==== #


def clamped_day(year: int, month: int, day: int) -> dt.date:
    """Build a date in the month, clamping `day` to the month's last day."""
    period = ReferenceMonth(year, month)
    return dt.date(year, month, min(day, period.days_in_month))


def resolve_deadline(config: ConfigInput, year: int, month: int) -> dt.date:
    """
    Resolve the submission deadline for a month.

    FIXED_DAY beyond the month's length is clamped to the last day of the
    month, so a deadline never lands in the following month.

    Args:
        config: Company deadline strategy (model or mapping)
        year (int): Target year
        month (int): Target month, 1-12

    Returns:
        dt.date: Deadline date inside the target month

    Raises:
        InvalidConfiguration: If the strategy's required field is missing
        RangeError: If a working-day count exceeds the month's working days
    """
    config = _coerce_config(config).validate_for_strategy()

    if config.strategy is DeadlineStrategy.FIXED_DAY:
        return clamped_day(year, month, config.fixed_day)

    if config.strategy is DeadlineStrategy.WORKING_DAYS_FROM_START:
        return nth_working_day_from_start(year, month, config.days_from_start)

    if config.strategy is DeadlineStrategy.WORKING_DAYS_FROM_END:
        return nth_working_day_from_end(year, month, config.days_from_end)

    logger.debug(
        "No deadline strategy configured, using default fixed day",
        default_day=settings.DEFAULT_DEADLINE_DAY,
    )
    return clamped_day(year, month, settings.DEFAULT_DEADLINE_DAY)


def resolve_deadline_for(config: ConfigInput, period: Union[ReferenceMonth, str]) -> dt.date:
    """Resolve the deadline for a reference month (`YYYY-MM` or ReferenceMonth)."""
    period = ReferenceMonth.parse(period)
    return resolve_deadline(config, period.year, period.month)

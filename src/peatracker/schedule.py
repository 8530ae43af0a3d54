"""Recurring (DCA) contribution schedule."""

import calendar
import logging
from dataclasses import fields, replace
from datetime import date, timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta

from .models import DCAConfig, WeekendAdjustment
from .storage import RecordStore

logger = logging.getLogger(__name__)

SATURDAY = 5
SUNDAY = 6
MIN_DAY = 1
MAX_DAY = 31


def adjust_for_weekend(day: date, mode: WeekendAdjustment) -> date:
    """Move a weekend date to the adjacent Friday or Monday.

    Args:
        day: Date to adjust
        mode: 'before' moves to the previous Friday, 'after' to the next Monday,
            'none' leaves the date alone

    Returns:
        Adjusted date (unchanged for weekdays)
    """
    weekday = day.weekday()
    if mode == WeekendAdjustment.none or weekday not in (SATURDAY, SUNDAY):
        return day

    if mode == WeekendAdjustment.before:
        return day - timedelta(days=2 if weekday == SUNDAY else 1)
    return day + timedelta(days=1 if weekday == SUNDAY else 2)


def _clamped_day(year: int, month: int, day_of_month: int) -> date:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day_of_month, last_day))


class DCASchedule:
    """Planned recurring contributions.

    The schedule only describes expected deposits; it never records any.
    """

    def __init__(
        self, config: Optional[DCAConfig] = None, store: Optional[RecordStore] = None
    ):
        self.config = config or DCAConfig()
        self.store = store

    def load(self) -> None:
        """Replace the current config with the stored one, if any is readable."""
        if self.store is None:
            return
        for row in self.store.load():
            try:
                self.config = DCAConfig.from_row(row)
            except (KeyError, ValueError, TypeError) as e:
                logger.warning("Skipping malformed DCA config: %s", e)

    def update(self, **changes) -> DCAConfig:
        """Change some fields of the config, leaving the others as they are.

        Raises:
            TypeError: if a field name is unknown
            ValueError: if a day of month is outside 1-31
        """
        known = {f.name for f in fields(DCAConfig)}
        unknown = set(changes) - known
        if unknown:
            raise TypeError(f"Unknown DCA config field(s): {', '.join(sorted(unknown))}")

        for name in ("day_of_month_1", "day_of_month_2"):
            if name not in changes:
                continue
            value = changes[name]
            if value is None and name == "day_of_month_2":
                continue
            if value is None or not MIN_DAY <= value <= MAX_DAY:
                raise ValueError(f"{name} must be between {MIN_DAY} and {MAX_DAY}, got {value}")

        if "adjust_weekend" in changes:
            changes["adjust_weekend"] = WeekendAdjustment(changes["adjust_weekend"])
        self.config = replace(self.config, **changes)
        if self.store is not None:
            self.store.upsert(self.config.to_row())
        return self.config

    def dates_for_month(self, year: int, month: int) -> list[str]:
        """Planned dates for a month (1-12), day 1 first then day 2."""
        if not self.config.enabled:
            return []

        mode = self.config.adjust_weekend
        dates = [adjust_for_weekend(_clamped_day(year, month, self.config.day_of_month_1), mode)]
        if self.config.day_of_month_2:
            dates.append(
                adjust_for_weekend(_clamped_day(year, month, self.config.day_of_month_2), mode)
            )
        return [d.isoformat() for d in dates]

    def is_dca_date(self, date_str: str) -> bool:
        day = date.fromisoformat(date_str)
        return date_str in self.dates_for_month(day.year, day.month)

    def amount_for_date(self, date_str: str) -> float:
        """Planned contribution for a date, 0 if none is planned."""
        if not self.config.enabled:
            return 0.0
        return self.config.amount if self.is_dca_date(date_str) else 0.0

    def upcoming_dates(self, start: date, months: int = 3) -> list[str]:
        """Planned dates for ``months`` consecutive months, starting with ``start``'s month."""
        result = []
        first = start.replace(day=1)
        for offset in range(months):
            month_start = first + relativedelta(months=offset)
            result.extend(self.dates_for_month(month_start.year, month_start.month))
        return result

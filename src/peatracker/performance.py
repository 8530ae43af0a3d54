"""Performance engine: separates market gains from deposits."""

from datetime import date, timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta

from .account import AccountConfig
from .ledger import Ledger
from .models import DayPerformance, PerformanceStats, PeriodSummary


def _next_day(date_str: str) -> str:
    return (date.fromisoformat(date_str) + timedelta(days=1)).isoformat()


def week_bounds(day: date) -> tuple[date, date]:
    """Monday and Sunday of the week containing ``day``."""
    start = day - timedelta(days=day.weekday())
    return start, start + timedelta(days=6)


def month_bounds(day: date) -> tuple[date, date]:
    start = day.replace(day=1)
    return start, start + relativedelta(months=1, days=-1)


def year_bounds(day: date) -> tuple[date, date]:
    return date(day.year, 1, 1), date(day.year, 12, 31)


class PerformanceEngine:
    """Computes gains from a ledger and the account configuration.

    Every query recomputes from the current in-memory state and never raises
    for missing data: days without an entry have no performance, and periods
    without entries have no gain.
    """

    def __init__(self, ledger: Ledger, account: AccountConfig):
        self.ledger = ledger
        self.account = account

    def reference_capital(self, date_str: str) -> float:
        """Capital that gains on ``date_str`` are measured against.

        The closest earlier entry's capital, else the starting capital when the
        date is on or after the configured start date, else 0.
        """
        previous = self.ledger.previous_entry(date_str)
        if previous:
            return previous.capital
        if self.account.is_configured and date_str >= self.account.start_date:
            return self.account.start_capital
        return 0.0

    def day_performance(self, date_str: str) -> Optional[DayPerformance]:
        entry = self.ledger.get_entry(date_str)
        if entry is None:
            return None

        previous = self.ledger.previous_entry(date_str)
        if previous:
            ref_date = previous.date
        elif self.account.is_configured:
            ref_date = self.account.start_date
        else:
            ref_date = date_str

        previous_capital = self.reference_capital(date_str)
        # Deposits made on the reference date are already in its capital
        deposits = self.ledger.deposits_in_range(_next_day(ref_date), date_str)
        base_capital = previous_capital + deposits
        gain_amount = entry.capital - base_capital
        gain_percent = gain_amount / base_capital * 100 if base_capital > 0 else 0.0

        return DayPerformance(
            date=date_str,
            capital=entry.capital,
            previous_capital=previous_capital,
            deposits_of_day=deposits,
            gain_amount=gain_amount,
            gain_percent=gain_percent,
        )

    def performances_in_range(self, start: str, end: str) -> list[DayPerformance]:
        result = []
        for entry in self.ledger.all_entries():
            if start <= entry.date <= end:
                perf = self.day_performance(entry.date)
                if perf is not None:
                    result.append(perf)
        return result

    def period_gain(self, start: str, end: str) -> float:
        """Growth between the first and last entries of [start, end], net of deposits.

        Deposits are counted from the period start (inclusive) up to the last
        entry, unlike the single-day window which excludes the reference date.
        """
        in_period = [e for e in self.ledger.all_entries() if start <= e.date <= end]
        if not in_period:
            return 0.0

        first, last = in_period[0], in_period[-1]
        baseline = self.reference_capital(first.date)
        deposits = self.ledger.deposits_in_range(start, last.date)
        return last.capital - baseline - deposits

    def _period_gain_between(self, bounds: tuple[date, date]) -> float:
        start, end = bounds
        return self.period_gain(start.isoformat(), end.isoformat())

    def current_capital(self) -> float:
        latest = self.ledger.latest_entry()
        if latest:
            return latest.capital
        if self.account.is_configured:
            return self.account.start_capital
        return 0.0

    def today_performance(self, today: Optional[date] = None) -> Optional[DayPerformance]:
        today = today or date.today()
        return self.day_performance(today.isoformat())

    def today_gain(self, today: Optional[date] = None) -> float:
        perf = self.today_performance(today)
        return perf.gain_amount if perf else 0.0

    def week_gain(self, today: Optional[date] = None) -> float:
        return self._period_gain_between(week_bounds(today or date.today()))

    def last_week_gain(self, today: Optional[date] = None) -> float:
        today = today or date.today()
        return self._period_gain_between(week_bounds(today - timedelta(weeks=1)))

    def month_gain(self, today: Optional[date] = None) -> float:
        return self._period_gain_between(month_bounds(today or date.today()))

    def last_month_gain(self, today: Optional[date] = None) -> float:
        today = today or date.today()
        return self._period_gain_between(month_bounds(today - relativedelta(months=1)))

    def year_gain(self, today: Optional[date] = None) -> float:
        return self._period_gain_between(year_bounds(today or date.today()))

    def total_gain(self) -> float:
        """Current capital minus everything ever deposited."""
        if not self.account.is_configured and not self.ledger.entries:
            return 0.0
        total_deposited = self.account.start_deposited + self.ledger.total_deposited
        return self.current_capital() - total_deposited

    def summary(self, today: Optional[date] = None) -> PeriodSummary:
        today = today or date.today()
        return PeriodSummary(
            date=today.isoformat(),
            current_capital=self.current_capital(),
            today_gain=self.today_gain(today),
            week_gain=self.week_gain(today),
            last_week_gain=self.last_week_gain(today),
            month_gain=self.month_gain(today),
            last_month_gain=self.last_month_gain(today),
            year_gain=self.year_gain(today),
            total_gain=self.total_gain(),
        )

    def stats(self) -> PerformanceStats:
        performances = [
            perf
            for perf in (self.day_performance(e.date) for e in self.ledger.all_entries())
            if perf is not None
        ]
        if not performances:
            return PerformanceStats()

        best_day = worst_day = performances[0]
        for perf in performances:
            # Strict comparisons keep the earliest day on ties
            if perf.gain_percent > best_day.gain_percent:
                best_day = perf
            if perf.gain_percent < worst_day.gain_percent:
                worst_day = perf

        return PerformanceStats(
            best_day=best_day,
            worst_day=worst_day,
            positive_days=sum(1 for p in performances if p.gain_percent > 0),
            negative_days=sum(1 for p in performances if p.gain_percent < 0),
            average_performance=sum(p.gain_percent for p in performances)
            / len(performances),
        )

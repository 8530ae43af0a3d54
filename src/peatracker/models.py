"""Data models for the PEA tracker."""

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Optional


class WeekendAdjustment(str, Enum):
    """How a planned date falling on a weekend is moved."""

    before = "before"
    after = "after"
    none = "none"


def _optional_note(row: dict) -> Optional[str]:
    note = row.get("note")
    return str(note) if note else None


@dataclass(frozen=True)
class InitialConfig:
    """Account state immediately before tracking began."""

    start_date: str  # YYYY-MM-DD format
    start_capital: float
    start_deposited: float

    def to_row(self) -> dict:
        return asdict(self)

    @classmethod
    def from_row(cls, row: dict) -> "InitialConfig":
        return cls(
            start_date=str(row["start_date"]),
            start_capital=float(row["start_capital"]),
            start_deposited=float(row["start_deposited"]),
        )


@dataclass(frozen=True)
class Deposit:
    """A cash contribution recorded on a given day."""

    id: str
    date: str  # YYYY-MM-DD format
    amount: float
    note: Optional[str] = None

    def to_row(self) -> dict:
        return asdict(self)

    @classmethod
    def from_row(cls, row: dict) -> "Deposit":
        return cls(
            id=str(row["id"]),
            date=str(row["date"]),
            amount=float(row["amount"]),
            note=_optional_note(row),
        )


@dataclass(frozen=True)
class DailyEntry:
    """Observed total account value on one calendar day."""

    date: str  # YYYY-MM-DD format
    capital: float
    note: Optional[str] = None

    def to_row(self) -> dict:
        return asdict(self)

    @classmethod
    def from_row(cls, row: dict) -> "DailyEntry":
        return cls(
            date=str(row["date"]),
            capital=float(row["capital"]),
            note=_optional_note(row),
        )


@dataclass(frozen=True)
class DCAConfig:
    """Recurring monthly contribution plan."""

    enabled: bool = False
    amount: float = 500.0
    day_of_month_1: int = 1
    day_of_month_2: Optional[int] = 15
    adjust_weekend: WeekendAdjustment = WeekendAdjustment.after

    def to_row(self) -> dict:
        row = asdict(self)
        row["adjust_weekend"] = self.adjust_weekend.value
        return row

    @classmethod
    def from_row(cls, row: dict) -> "DCAConfig":
        day_2 = row.get("day_of_month_2")
        return cls(
            enabled=bool(row["enabled"]),
            amount=float(row["amount"]),
            day_of_month_1=int(row["day_of_month_1"]),
            day_of_month_2=int(day_2) if day_2 else None,
            adjust_weekend=WeekendAdjustment(
                row.get("adjust_weekend") or WeekendAdjustment.after.value
            ),
        )


@dataclass
class DayPerformance:
    """Gain of one entry relative to its reference capital."""

    date: str  # YYYY-MM-DD format
    capital: float
    previous_capital: float
    deposits_of_day: float
    gain_amount: float
    gain_percent: float


@dataclass
class PerformanceStats:
    """Aggregate statistics over every entry with a performance."""

    best_day: Optional[DayPerformance] = None
    worst_day: Optional[DayPerformance] = None
    positive_days: int = 0
    negative_days: int = 0
    average_performance: float = 0.0


@dataclass
class PeriodSummary:
    """Gains over the standard calendar periods, evaluated for one day."""

    date: str  # YYYY-MM-DD format
    current_capital: float
    today_gain: float
    week_gain: float
    last_week_gain: float
    month_gain: float
    last_month_gain: float
    year_gain: float
    total_gain: float

from datetime import date
from unittest.mock import MagicMock

import pytest

from peatracker.models import DCAConfig, WeekendAdjustment
from peatracker.schedule import DCASchedule, adjust_for_weekend


@pytest.fixture
def enabled_config():
    return DCAConfig(
        enabled=True,
        amount=500.0,
        day_of_month_1=1,
        day_of_month_2=15,
        adjust_weekend=WeekendAdjustment.after,
    )


# Tests for adjust_for_weekend (June 1st 2024 is a Saturday, June 2nd a Sunday)
def test_adjust_after_saturday_moves_to_monday():
    assert adjust_for_weekend(date(2024, 6, 1), WeekendAdjustment.after) == date(2024, 6, 3)


def test_adjust_after_sunday_moves_one_day():
    assert adjust_for_weekend(date(2024, 6, 2), WeekendAdjustment.after) == date(2024, 6, 3)


def test_adjust_before_saturday_moves_to_friday():
    assert adjust_for_weekend(date(2024, 6, 1), WeekendAdjustment.before) == date(2024, 5, 31)


def test_adjust_before_sunday_moves_two_days():
    assert adjust_for_weekend(date(2024, 6, 2), WeekendAdjustment.before) == date(2024, 5, 31)


def test_adjust_none_keeps_weekend():
    assert adjust_for_weekend(date(2024, 6, 1), WeekendAdjustment.none) == date(2024, 6, 1)


def test_adjust_weekday_unchanged():
    """Weekdays are never moved, whatever the mode."""
    wednesday = date(2024, 6, 5)
    for mode in WeekendAdjustment:
        assert adjust_for_weekend(wednesday, mode) == wednesday


# Tests for dates_for_month
def test_dates_for_month_disabled():
    schedule = DCASchedule(DCAConfig(enabled=False))
    assert schedule.dates_for_month(2024, 6) == []


def test_dates_for_month_clamps_to_last_day():
    """Day 31 in a 30-day month falls on the 30th."""
    schedule = DCASchedule(
        DCAConfig(
            enabled=True,
            day_of_month_1=31,
            day_of_month_2=None,
            adjust_weekend=WeekendAdjustment.none,
        )
    )
    assert schedule.dates_for_month(2024, 6) == ["2024-06-30"]
    assert schedule.dates_for_month(2024, 2) == ["2024-02-29"]
    assert schedule.dates_for_month(2023, 2) == ["2023-02-28"]


def test_dates_for_month_applies_weekend_adjustment(enabled_config):
    schedule = DCASchedule(enabled_config)
    # June 1st and 15th 2024 are both Saturdays
    assert schedule.dates_for_month(2024, 6) == ["2024-06-03", "2024-06-17"]


def test_dates_for_month_keeps_emission_order():
    """Day 1's date comes first even when it is later in the month."""
    schedule = DCASchedule(
        DCAConfig(
            enabled=True,
            day_of_month_1=30,
            day_of_month_2=1,
            adjust_weekend=WeekendAdjustment.none,
        )
    )
    assert schedule.dates_for_month(2024, 6) == ["2024-06-30", "2024-06-01"]


def test_dates_for_month_single_day():
    schedule = DCASchedule(
        DCAConfig(enabled=True, day_of_month_1=10, day_of_month_2=None)
    )
    assert schedule.dates_for_month(2024, 7) == ["2024-07-10"]


# Tests for is_dca_date / amount_for_date
def test_is_dca_date(enabled_config):
    schedule = DCASchedule(enabled_config)
    assert schedule.is_dca_date("2024-06-03") is True
    assert schedule.is_dca_date("2024-06-01") is False
    assert schedule.is_dca_date("2024-06-17") is True


def test_amount_for_date(enabled_config):
    schedule = DCASchedule(enabled_config)
    assert schedule.amount_for_date("2024-06-17") == 500.0
    assert schedule.amount_for_date("2024-06-18") == 0.0


def test_amount_for_date_disabled():
    schedule = DCASchedule(DCAConfig(enabled=False, amount=300.0))
    assert schedule.amount_for_date("2024-07-01") == 0.0


# Tests for update
def test_update_changes_only_given_fields(enabled_config):
    store = MagicMock()
    schedule = DCASchedule(enabled_config, store=store)

    config = schedule.update(amount=200.0)

    assert config.amount == 200.0
    assert config.enabled is True
    assert config.day_of_month_1 == 1
    assert config.day_of_month_2 == 15
    store.upsert.assert_called_once_with(config.to_row())


def test_update_converts_weekend_mode():
    schedule = DCASchedule()
    config = schedule.update(adjust_weekend="before")
    assert config.adjust_weekend is WeekendAdjustment.before


def test_update_rejects_unknown_field():
    schedule = DCASchedule()
    with pytest.raises(TypeError):
        schedule.update(frequency="weekly")


@pytest.mark.parametrize(
    "changes",
    [{"day_of_month_1": 0}, {"day_of_month_1": 32}, {"day_of_month_2": 0}, {"day_of_month_1": None}],
)
def test_update_rejects_day_outside_month(changes):
    store = MagicMock()
    schedule = DCASchedule(store=store)

    with pytest.raises(ValueError):
        schedule.update(**changes)

    assert schedule.config == DCAConfig()
    store.upsert.assert_not_called()


def test_update_allows_dropping_second_day():
    config = DCASchedule().update(day_of_month_1=31, day_of_month_2=None)
    assert config.day_of_month_1 == 31
    assert config.day_of_month_2 is None


def test_upcoming_dates_spans_year_boundary():
    schedule = DCASchedule(
        DCAConfig(
            enabled=True,
            day_of_month_1=1,
            day_of_month_2=None,
            adjust_weekend=WeekendAdjustment.none,
        )
    )
    assert schedule.upcoming_dates(date(2024, 11, 20), 3) == [
        "2024-11-01",
        "2024-12-01",
        "2025-01-01",
    ]


def test_load_reads_store_and_skips_malformed():
    store = MagicMock()
    store.load.return_value = [{"enabled": True}]
    schedule = DCASchedule(store=store)

    schedule.load()
    assert schedule.config == DCAConfig()

    store.load.return_value = [
        {
            "enabled": True,
            "amount": 250,
            "day_of_month_1": 5,
            "day_of_month_2": None,
            "adjust_weekend": "before",
        }
    ]
    schedule.load()
    assert schedule.config == DCAConfig(
        enabled=True,
        amount=250.0,
        day_of_month_1=5,
        day_of_month_2=None,
        adjust_weekend=WeekendAdjustment.before,
    )

from unittest.mock import MagicMock, patch

import pytest

from peatracker.auth import Session
from peatracker.models import DailyEntry, InitialConfig, WeekendAdjustment
from peatracker.settings import Settings
from peatracker.storage import RemoteStoreError
from peatracker.tracker import open_tracker


@pytest.fixture
def local_settings(tmp_path):
    return Settings(data_dir=tmp_path)


@pytest.fixture
def remote_settings(tmp_path):
    return Settings(
        data_dir=tmp_path,
        supabase_url="https://example.supabase.co",
        supabase_key="anon-key",
    )


@pytest.fixture
def session():
    return Session("user-1", "me@example.com", "access", "refresh")


def test_open_tracker_local_only(local_settings):
    tracker = open_tracker(local_settings)
    assert tracker.remote_enabled is False
    assert tracker.engine.stats().best_day is None


def test_state_survives_reopen(local_settings):
    tracker = open_tracker(local_settings)
    tracker.account.set_config(InitialConfig("2024-01-01", 10000.0, 0.0))
    tracker.ledger.add_entry(DailyEntry("2024-01-10", 10500.0, "first"))
    deposit = tracker.ledger.add_deposit("2024-01-05", 1000.0)
    tracker.schedule.update(enabled=True, amount=250.0)
    tracker.close()

    reopened = open_tracker(local_settings)

    assert reopened.account.start_capital == 10000.0
    assert reopened.ledger.get_entry("2024-01-10").note == "first"
    assert [d.id for d in reopened.ledger.deposits] == [deposit.id]
    assert reopened.schedule.config.amount == 250.0
    assert reopened.engine.day_performance("2024-01-10").gain_amount == -500.0


def test_corrupt_cache_is_treated_as_empty(local_settings):
    (local_settings.data_dir / "entries.json").write_text("garbage", encoding="utf-8")
    tracker = open_tracker(local_settings)
    assert tracker.ledger.all_entries() == []


def test_clear_config_persists(local_settings):
    tracker = open_tracker(local_settings)
    tracker.account.set_config(InitialConfig("2024-01-01", 10000.0, 0.0))
    tracker.account.clear_config()

    assert open_tracker(local_settings).account.is_configured is False


def test_session_without_remote_settings_stays_local(local_settings, session):
    tracker = open_tracker(local_settings, session)
    assert tracker.remote_enabled is False
    assert tracker.sync() is False


@patch("peatracker.tracker.RemoteCollection")
def test_writes_replicate_to_remote(mock_remote_cls, remote_settings, session):
    tracker = open_tracker(remote_settings, session)
    remote = mock_remote_cls.return_value

    tracker.ledger.add_entry(DailyEntry("2024-01-10", 10500.0))
    tracker.close()

    assert tracker.remote_enabled is True
    assert mock_remote_cls.call_count == 4
    remote.upsert.assert_called_once_with(
        {"date": "2024-01-10", "capital": 10500.0, "note": None}
    )


@patch("peatracker.tracker.RemoteCollection")
def test_remote_failure_does_not_affect_reads(mock_remote_cls, remote_settings, session):
    mock_remote_cls.return_value.upsert.side_effect = RemoteStoreError("offline")
    tracker = open_tracker(remote_settings, session)

    tracker.ledger.add_entry(DailyEntry("2024-01-10", 10500.0))
    tracker.close()

    assert tracker.ledger.get_entry("2024-01-10").capital == 10500.0
    assert open_tracker(remote_settings).ledger.get_entry("2024-01-10") is not None


@patch("peatracker.tracker.RemoteCollection")
def test_sync_keeps_unreplicated_entries(mock_remote_cls, remote_settings, session):
    remote = mock_remote_cls.return_value
    remote.upsert.side_effect = [RemoteStoreError("offline"), None]
    remote.load.return_value = []
    tracker = open_tracker(remote_settings, session)
    tracker.ledger.add_entry(DailyEntry("2023-12-31", 1.0))

    assert tracker.sync() is True
    tracker.close()

    assert tracker.ledger.get_entry("2023-12-31").capital == 1.0
    assert remote.upsert.call_count == 2


@patch("peatracker.tracker.RemoteCollection")
def test_sync_keeps_weekend_mode(mock_remote_cls, remote_settings, session):
    remotes = {}

    def build_remote(url, key, session, spec, **kwargs):
        remotes[spec.name] = MagicMock()
        remotes[spec.name].load.return_value = []
        return remotes[spec.name]

    mock_remote_cls.side_effect = build_remote
    tracker = open_tracker(remote_settings, session)
    tracker.schedule.update(enabled=True, adjust_weekend="before")
    remotes["dca_config"].load.return_value = [
        {
            "user_id": "user-1",
            "enabled": True,
            "amount": 300.0,
            "day_of_month_1": 5,
            "day_of_month_2": None,
        }
    ]

    assert tracker.sync() is True
    tracker.close()

    assert tracker.schedule.config.amount == 300.0
    assert tracker.schedule.config.adjust_weekend is WeekendAdjustment.before

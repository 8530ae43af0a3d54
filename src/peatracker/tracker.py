"""Wires storage, ledger, configuration, schedule and engine together."""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from .account import AccountConfig
from .auth import Session
from .ledger import Ledger
from .performance import PerformanceEngine
from .schedule import DCASchedule
from .settings import Settings
from .storage import (
    COLLECTIONS,
    CONFIG,
    DCA_CONFIG,
    DEPOSITS,
    ENTRIES,
    LocalCollection,
    RemoteCollection,
    ReplicatedCollection,
)

logger = logging.getLogger(__name__)


class Tracker:
    """The account's in-memory state plus the stores it writes through to."""

    def __init__(
        self,
        collections: dict[str, ReplicatedCollection],
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        self.collections = collections
        self.executor = executor
        self.account = AccountConfig(store=collections[CONFIG.name])
        self.ledger = Ledger(
            deposit_store=collections[DEPOSITS.name],
            entry_store=collections[ENTRIES.name],
        )
        self.schedule = DCASchedule(store=collections[DCA_CONFIG.name])
        self.engine = PerformanceEngine(self.ledger, self.account)

    @property
    def remote_enabled(self) -> bool:
        return any(c.remote is not None for c in self.collections.values())

    def load(self) -> None:
        """Read every collection from the local cache."""
        self.account.load()
        self.ledger.load()
        self.schedule.load()

    def sync(self) -> bool:
        """Refresh the local cache from the remote store, then reload.

        Returns:
            True if every collection was refreshed
        """
        results = [c.pull() for c in self.collections.values()]
        self.load()
        return all(results)

    def close(self) -> None:
        """Wait for pending remote writes."""
        if self.executor is not None:
            self.executor.shutdown(wait=True)


def open_tracker(settings: Settings, session: Optional[Session] = None) -> Tracker:
    """Build a tracker over the local cache, replicating to the remote store when authenticated.

    Args:
        settings: Application settings
        session: Authenticated remote session, or None for local-only use

    Returns:
        Loaded Tracker
    """
    executor = None
    use_remote = session is not None and settings.remote_enabled
    if use_remote:
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="peatracker-sync")
    else:
        logger.info("Remote store unavailable, using local cache only")

    collections = {}
    for spec in COLLECTIONS:
        local = LocalCollection(settings.data_dir / f"{spec.name}.json", spec.key)
        remote = None
        if use_remote:
            remote = RemoteCollection(
                settings.supabase_url,
                settings.supabase_key,
                session,
                spec,
                timeout=settings.request_timeout,
            )
        collections[spec.name] = ReplicatedCollection(
            local, remote, executor, local_only=spec.local_only
        )

    tracker = Tracker(collections, executor)
    tracker.load()
    return tracker

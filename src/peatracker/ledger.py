"""Deposits and capital snapshots of the account."""

import logging
import uuid
from typing import Optional

from .models import DailyEntry, Deposit
from .storage import RecordStore

logger = logging.getLogger(__name__)

# Lifetime deposit ceiling of a PEA account
PEA_CEILING = 150000.0


class Ledger:
    """Holds deposits (sorted by date) and entries (keyed by date).

    Every mutation is written through to the stores when they are given.
    """

    def __init__(
        self,
        deposit_store: Optional[RecordStore] = None,
        entry_store: Optional[RecordStore] = None,
    ):
        self.deposit_store = deposit_store
        self.entry_store = entry_store
        self.deposits: list[Deposit] = []
        self.entries: dict[str, DailyEntry] = {}

    def load(self) -> None:
        """Populate the ledger from its stores, skipping malformed rows."""
        if self.deposit_store is not None:
            deposits = []
            for row in self.deposit_store.load():
                try:
                    deposits.append(Deposit.from_row(row))
                except (KeyError, ValueError, TypeError) as e:
                    logger.warning("Skipping malformed deposit %r: %s", row, e)
            self.deposits = sorted(deposits, key=lambda d: d.date)

        if self.entry_store is not None:
            entries = {}
            for row in self.entry_store.load():
                try:
                    entry = DailyEntry.from_row(row)
                except (KeyError, ValueError, TypeError) as e:
                    logger.warning("Skipping malformed entry %r: %s", row, e)
                    continue
                entries[entry.date] = entry
            self.entries = entries

    # Deposits

    def add_deposit(self, date: str, amount: float, note: Optional[str] = None) -> Deposit:
        deposit = Deposit(id=str(uuid.uuid4()), date=date, amount=amount, note=note)
        self.deposits.append(deposit)
        # sorted() is stable, so same-day deposits keep their insertion order
        self.deposits = sorted(self.deposits, key=lambda d: d.date)
        if self.deposit_store is not None:
            self.deposit_store.upsert(deposit.to_row())
        return deposit

    def delete_deposit(self, deposit_id: str) -> None:
        remaining = [d for d in self.deposits if d.id != deposit_id]
        if len(remaining) == len(self.deposits):
            return
        self.deposits = remaining
        if self.deposit_store is not None:
            self.deposit_store.delete(deposit_id)

    def deposits_in_range(self, start_date: str, end_date: str) -> float:
        """Sum of deposits dated within [start_date, end_date]."""
        return sum(
            (d.amount for d in self.deposits if start_date <= d.date <= end_date), 0.0
        )

    def deposits_for_date(self, date: str) -> float:
        return self.deposits_in_range(date, date)

    @property
    def total_deposited(self) -> float:
        return sum((d.amount for d in self.deposits), 0.0)

    @property
    def remaining_to_ceiling(self) -> float:
        return max(0.0, PEA_CEILING - self.total_deposited)

    @property
    def ceiling_percentage(self) -> float:
        return min(100.0, self.total_deposited / PEA_CEILING * 100)

    def sorted_deposits(self) -> list[Deposit]:
        """Deposits, most recent first."""
        return sorted(self.deposits, key=lambda d: d.date, reverse=True)

    # Entries

    def add_entry(self, entry: DailyEntry) -> None:
        self.entries[entry.date] = entry
        if self.entry_store is not None:
            self.entry_store.upsert(entry.to_row())

    def get_entry(self, date: str) -> Optional[DailyEntry]:
        return self.entries.get(date)

    def delete_entry(self, date: str) -> None:
        if self.entries.pop(date, None) is None:
            return
        if self.entry_store is not None:
            self.entry_store.delete(date)

    def all_entries(self) -> list[DailyEntry]:
        return sorted(self.entries.values(), key=lambda e: e.date)

    def latest_entry(self) -> Optional[DailyEntry]:
        entries = self.all_entries()
        return entries[-1] if entries else None

    def previous_entry(self, date: str) -> Optional[DailyEntry]:
        """Closest entry strictly before ``date``."""
        earlier = [e for e in self.entries.values() if e.date < date]
        return max(earlier, key=lambda e: e.date) if earlier else None

"""Initial account configuration."""

import logging
from typing import Optional

from .models import InitialConfig
from .storage import RecordStore

logger = logging.getLogger(__name__)


class AccountConfig:
    """Holds the optional starting point of the account."""

    def __init__(
        self, config: Optional[InitialConfig] = None, store: Optional[RecordStore] = None
    ):
        self.config = config
        self.store = store

    def load(self) -> None:
        if self.store is None:
            return
        self.config = None
        for row in self.store.load():
            try:
                self.config = InitialConfig.from_row(row)
            except (KeyError, ValueError, TypeError) as e:
                logger.warning("Skipping malformed account config: %s", e)

    def set_config(self, config: InitialConfig) -> None:
        self.config = config
        if self.store is not None:
            self.store.upsert(config.to_row())

    def clear_config(self) -> None:
        self.config = None
        if self.store is not None:
            self.store.delete()

    @property
    def is_configured(self) -> bool:
        return self.config is not None

    @property
    def start_date(self) -> str:
        return self.config.start_date if self.config else ""

    @property
    def start_capital(self) -> float:
        return self.config.start_capital if self.config else 0.0

    @property
    def start_deposited(self) -> float:
        return self.config.start_deposited if self.config else 0.0

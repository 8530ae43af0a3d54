"""Application settings read from the environment."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

DATA_DIR_ENV = "PEATRACKER_DATA_DIR"
SUPABASE_URL_ENV = "PEATRACKER_SUPABASE_URL"
SUPABASE_KEY_ENV = "PEATRACKER_SUPABASE_KEY"
DEFAULT_DATA_DIR = Path.home() / ".peatracker"


@dataclass(frozen=True)
class Settings:
    """Runtime settings for storage and the remote store."""

    data_dir: Path = DEFAULT_DATA_DIR
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    request_timeout: float = 10.0

    @property
    def remote_enabled(self) -> bool:
        """Whether a remote store is configured at all."""
        return bool(self.supabase_url and self.supabase_key)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            Settings instance
        """
        env = os.environ if environ is None else environ
        data_dir = env.get(DATA_DIR_ENV)
        return cls(
            data_dir=Path(data_dir).expanduser() if data_dir else DEFAULT_DATA_DIR,
            supabase_url=env.get(SUPABASE_URL_ENV) or None,
            supabase_key=env.get(SUPABASE_KEY_ENV) or None,
        )

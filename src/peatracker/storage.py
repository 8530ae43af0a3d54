"""Persistence collaborators: local JSON cache, remote Supabase tables and their composition."""

import json
import logging
from concurrent.futures import Executor, Future
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Protocol

import requests

from .auth import Session

logger = logging.getLogger(__name__)

# Columns the remote tables add on their own; never cached locally
REMOTE_ONLY_COLUMNS = {"user_id", "created_at", "updated_at"}


class RemoteStoreError(Exception):
    """Raised when the remote store cannot be read or written."""


@dataclass(frozen=True)
class CollectionSpec:
    """Describes one logical collection.

    ``key`` is the column identifying a row, or None for collections that
    hold a single record per account. ``conflict`` lists the remote unique
    columns used to resolve upserts. ``local_only`` columns are kept in the
    local cache but have no counterpart in the remote table.
    """

    name: str
    key: Optional[str]
    conflict: str
    local_only: frozenset = field(default_factory=frozenset)


CONFIG = CollectionSpec(name="config", key=None, conflict="user_id")
ENTRIES = CollectionSpec(name="entries", key="date", conflict="user_id,date")
DEPOSITS = CollectionSpec(name="deposits", key="id", conflict="id")
DCA_CONFIG = CollectionSpec(
    name="dca_config",
    key=None,
    conflict="user_id",
    local_only=frozenset({"adjust_weekend"}),
)

COLLECTIONS = (CONFIG, ENTRIES, DEPOSITS, DCA_CONFIG)


class RecordStore(Protocol):
    """Protocol shared by every persistence collaborator."""

    def load(self) -> list[dict]:
        """Return every stored row."""
        ...

    def upsert(self, row: dict) -> None:
        """Insert the row, replacing any row with the same key."""
        ...

    def delete(self, key: Optional[str] = None) -> None:
        """Remove the row with this key (the single record when keyless)."""
        ...


class LocalCollection:
    """One collection cached as a JSON file on disk."""

    def __init__(self, path: Path, key: Optional[str]):
        self.path = Path(path)
        self.key = key

    def load(self) -> list[dict]:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.warning("Could not read %s: %s", self.path, e)
            return []

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            logger.warning("Ignoring corrupt cache file %s: %s", self.path, e)
            return []

        if isinstance(data, dict):
            data = [data]
        if not isinstance(data, list):
            logger.warning("Ignoring unexpected cache content in %s", self.path)
            return []
        return [row for row in data if isinstance(row, dict)]

    def upsert(self, row: dict) -> None:
        if self.key is None:
            rows = [row]
        else:
            rows = [r for r in self.load() if r.get(self.key) != row.get(self.key)]
            rows.append(row)
        self.replace_all(rows)

    def delete(self, key: Optional[str] = None) -> None:
        if self.key is None:
            self.path.unlink(missing_ok=True)
            return
        rows = self.load()
        remaining = [r for r in rows if r.get(self.key) != key]
        if len(remaining) != len(rows):
            self.replace_all(remaining)

    def replace_all(self, rows: list[dict]) -> None:
        """Overwrite the cache file with these rows."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(".tmp")
        tmp_path.write_text(json.dumps(rows, indent=2), encoding="utf-8")
        tmp_path.replace(self.path)


class RemoteCollection:
    """One collection stored in a Supabase (PostgREST) table, scoped to a user."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        session: Session,
        spec: CollectionSpec,
        timeout: float = 10.0,
        http: Optional[requests.Session] = None,
    ):
        self.url = f"{base_url.rstrip('/')}/rest/v1/{spec.name}"
        self.api_key = api_key
        self.session = session
        self.spec = spec
        self.timeout = timeout
        self.http = http or requests.Session()

    def _headers(self, extra: Optional[dict] = None) -> dict:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.session.access_token}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if extra:
            headers.update(extra)
        return headers

    def _request(
        self, method: str, extra_headers: Optional[dict] = None, **kwargs: Any
    ) -> requests.Response:
        try:
            resp = self.http.request(
                method,
                self.url,
                headers=self._headers(extra_headers),
                timeout=self.timeout,
                **kwargs,
            )
            resp.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise RemoteStoreError(
                f"{method} {self.spec.name} failed: {e}"
            ) from e
        return resp

    def load(self) -> list[dict]:
        resp = self._request(
            "GET", params={"select": "*", "user_id": f"eq.{self.session.user_id}"}
        )
        try:
            rows = resp.json()
        except ValueError as e:
            raise RemoteStoreError(f"Invalid response for {self.spec.name}: {e}") from e
        if not isinstance(rows, list):
            raise RemoteStoreError(f"Unexpected payload for {self.spec.name}")
        return rows

    def upsert(self, row: dict) -> None:
        payload = {k: v for k, v in row.items() if k not in self.spec.local_only}
        payload["user_id"] = self.session.user_id
        self._request(
            "POST",
            extra_headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
            params={"on_conflict": self.spec.conflict},
            json=payload,
        )

    def delete(self, key: Optional[str] = None) -> None:
        params = {"user_id": f"eq.{self.session.user_id}"}
        if self.spec.key is not None:
            params[self.spec.key] = f"eq.{key}"
        self._request("DELETE", params=params)


class ReplicatedCollection:
    """Write-through local cache with best-effort asynchronous remote replication.

    Reads always come from the local cache. Remote failures are logged and
    dropped; they never undo or block the local write. Without a remote
    (not authenticated) the remote leg is skipped.
    """

    def __init__(
        self,
        local: LocalCollection,
        remote: Optional[RemoteCollection] = None,
        executor: Optional[Executor] = None,
        local_only: frozenset = frozenset(),
    ):
        if remote is not None and executor is None:
            raise ValueError("An executor is required to replicate to a remote store")
        self.local = local
        self.remote = remote
        self.executor = executor
        self.local_only = local_only

    def load(self) -> list[dict]:
        return self.local.load()

    def upsert(self, row: dict) -> None:
        self.local.upsert(row)
        self._replicate("upsert", row)

    def delete(self, key: Optional[str] = None) -> None:
        self.local.delete(key)
        self._replicate("delete", key)

    def _replicate(self, operation: str, arg: Any) -> None:
        if self.remote is None or self.executor is None:
            return
        future = self.executor.submit(self._run_remote, operation, arg)
        future.add_done_callback(self._report_crash)

    def _run_remote(self, operation: str, arg: Any) -> None:
        try:
            getattr(self.remote, operation)(arg)
        except RemoteStoreError as e:
            logger.warning("Remote %s on %s failed: %s", operation, self.local.path.name, e)

    def _report_crash(self, future: Future) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error(
                "Remote replication of %s crashed", self.local.path.name, exc_info=exc
            )

    def _with_local_columns(self, row: dict, cached: Optional[dict]) -> dict:
        if cached:
            for column in self.local_only:
                if column in cached:
                    row.setdefault(column, cached[column])
        return row

    def pull(self) -> bool:
        """Merge the remote rows into the local cache.

        Remote rows win over cached rows with the same key. Cached rows the
        remote does not have are kept and queued for replication again, so a
        write whose replication failed is not lost.

        Returns:
            True if the cache was refreshed, False if there is no remote or the read failed
        """
        if self.remote is None:
            return False
        try:
            rows = self.remote.load()
        except RemoteStoreError as e:
            logger.warning("Keeping cached %s: %s", self.local.path.name, e)
            return False

        remote_rows = [
            {k: v for k, v in row.items() if k not in REMOTE_ONLY_COLUMNS}
            for row in rows
            if isinstance(row, dict)
        ]
        cached_rows = self.local.load()

        key = self.local.key
        if key is None:
            if remote_rows:
                cached = cached_rows[0] if cached_rows else None
                merged = [self._with_local_columns(remote_rows[0], cached)]
                unsent = []
            else:
                merged = unsent = cached_rows
        else:
            cached_by_key = {row.get(key): row for row in cached_rows}
            remote_keys = {row.get(key) for row in remote_rows}
            merged = [
                self._with_local_columns(row, cached_by_key.get(row.get(key)))
                for row in remote_rows
            ]
            unsent = [row for row in cached_rows if row.get(key) not in remote_keys]
            merged.extend(unsent)

        self.local.replace_all(merged)
        for row in unsent:
            self._replicate("upsert", row)
        return True

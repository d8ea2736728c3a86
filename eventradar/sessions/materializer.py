"""
Session Materializer.

Keeps one tabular snapshot of the latest search result per user, for as long
as the user's session lasts. The backing store is pluggable: an in-memory
dict, or one CSV file per user written with pandas. Writes and deletes go
through a RetryPolicy.

Ordering per user:
- materialize and release are serialized by a per-user lock;
- release bumps the user's generation before waiting for the lock, so a
  materialize that has not started writing yet is abandoned;
- otherwise the last writer wins.

A user's lock is dropped once no coroutine holds or waits on it. The
generation counter is kept after release (one int per released user) so a
search still in flight keeps seeing that it was superseded.
"""

from __future__ import annotations

import asyncio
import logging
import re
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from pathlib import Path

import pandas as pd

from eventradar.aggregation.errors import SessionStoreError
from eventradar.schemas.event import (
    SESSION_COLUMNS,
    NormalizedEvent,
    SessionHandle,
    SessionRow,
)
from eventradar.utils.resilience import RetryPolicy

logger = logging.getLogger(__name__)

TEXT_COLUMNS = (
    "title",
    "description",
    "location",
    "start",
    "source",
    "category",
    "currency_code",
    "url",
)


def rows_to_dataframe(rows: list[SessionRow]) -> pd.DataFrame:
    """Build a DataFrame with the session columns, in order."""
    return pd.DataFrame([row.model_dump() for row in rows], columns=SESSION_COLUMNS)


# ============================================================================
# STORES
# ============================================================================


class SessionStore(ABC):
    """Where materialized rows live."""

    @abstractmethod
    async def write(self, user_id: str, rows: list[SessionRow]) -> str:
        """Replace the user's rows; return a store-specific URI."""

    @abstractmethod
    async def read(self, user_id: str) -> list[SessionRow] | None:
        """Return the user's rows, or None if nothing is materialized."""

    @abstractmethod
    async def delete(self, user_id: str) -> bool:
        """Remove the user's rows; return whether anything was there."""


class InMemorySessionStore(SessionStore):
    """Rows kept in a dict for the lifetime of the process."""

    def __init__(self):
        self._rows: dict[str, list[SessionRow]] = {}

    async def write(self, user_id: str, rows: list[SessionRow]) -> str:
        self._rows[user_id] = list(rows)
        return f"memory://{user_id}"

    async def read(self, user_id: str) -> list[SessionRow] | None:
        rows = self._rows.get(user_id)
        return list(rows) if rows is not None else None

    async def delete(self, user_id: str) -> bool:
        return self._rows.pop(user_id, None) is not None


class CsvSessionStore(SessionStore):
    """One ``<user_id>.csv`` file per user inside a directory."""

    _UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]")

    def __init__(self, directory: Path | str):
        self.directory = Path(directory)

    def path_for(self, user_id: str) -> Path:
        safe = self._UNSAFE_CHARS.sub("_", str(user_id)).lstrip(".") or "_"
        return self.directory / f"{safe}.csv"

    async def write(self, user_id: str, rows: list[SessionRow]) -> str:
        path = self.path_for(user_id)
        await asyncio.to_thread(self._write_blocking, path, rows)
        return path.resolve().as_uri()

    async def read(self, user_id: str) -> list[SessionRow] | None:
        path = self.path_for(user_id)
        return await asyncio.to_thread(self._read_blocking, path)

    async def delete(self, user_id: str) -> bool:
        path = self.path_for(user_id)
        return await asyncio.to_thread(self._delete_blocking, path)

    def _write_blocking(self, path: Path, rows: list[SessionRow]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        df = pd.DataFrame(
            [row.model_dump(mode="json") for row in rows], columns=SESSION_COLUMNS
        )
        # Write-then-rename so readers never see a half-written file
        tmp_path = path.with_suffix(".csv.tmp")
        df.to_csv(tmp_path, index=False)
        tmp_path.replace(path)

    @staticmethod
    def _read_blocking(path: Path) -> list[SessionRow] | None:
        if not path.exists():
            return None
        df = pd.read_csv(path, dtype={col: "string" for col in TEXT_COLUMNS})
        df = df.astype(object).where(pd.notna(df), None)
        return [SessionRow.model_validate(record) for record in df.to_dict("records")]

    @staticmethod
    def _delete_blocking(path: Path) -> bool:
        if not path.exists():
            return False
        path.unlink(missing_ok=True)
        return True


def create_session_store(settings) -> SessionStore:
    """Pick the session store named by ``SESSION_STORE``."""
    kind = (settings.SESSION_STORE or "memory").lower()
    if kind == "memory":
        return InMemorySessionStore()
    if kind == "csv":
        return CsvSessionStore(settings.SESSION_STORE_DIR)
    raise ValueError(f"Unknown SESSION_STORE '{settings.SESSION_STORE}'")


# ============================================================================
# MATERIALIZER
# ============================================================================


class SessionMaterializer:
    """Session-scoped, user-keyed snapshot of aggregation results."""

    def __init__(self, store: SessionStore | None = None, retry_policy: RetryPolicy | None = None):
        self.store = store or InMemorySessionStore()
        self.retry_policy = retry_policy or RetryPolicy()
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}
        self._generations: dict[str, int] = {}
        self._handles: dict[str, SessionHandle] = {}

    def current_generation(self, user_id: str) -> int:
        """Generation counter for a user; bumped by every release."""
        return self._generations.get(user_id, 0)

    def get_handle(self, user_id: str) -> SessionHandle | None:
        return self._handles.get(user_id)

    async def materialize(
        self,
        user_id: str,
        events: list[NormalizedEvent],
        generation: int | None = None,
    ) -> SessionHandle | None:
        """
        Write the user's result snapshot.

        Args:
            user_id: Session owner
            events: Ranked events, already aggregated
            generation: Generation observed when the search started; defaults
                to the current one

        Returns:
            SessionHandle, or None when a release superseded this write

        Raises:
            SessionStoreError: If the store keeps failing after retries
        """
        if generation is None:
            generation = self.current_generation(user_id)

        rows = [SessionRow.from_event(i, event) for i, event in enumerate(events, start=1)]

        async with self._user_lock(user_id):
            if self.current_generation(user_id) != generation:
                logger.info(f"Session for user {user_id} released before write; discarding result")
                return None

            uri = await self._with_retry(
                lambda: self.store.write(user_id, rows), f"write session {user_id}"
            )
            handle = SessionHandle(
                user_id=user_id, row_count=len(rows), uri=uri, generation=generation
            )
            self._handles[user_id] = handle
            logger.info(f"Materialized {len(rows)} rows for user {user_id}")
            return handle

    async def release(self, user_id: str) -> bool:
        """
        Drop the user's snapshot. Idempotent.

        Returns:
            True if a snapshot existed, False if there was nothing to release
        """
        self._generations[user_id] = self.current_generation(user_id) + 1

        async with self._user_lock(user_id):
            existed = await self._with_retry(
                lambda: self.store.delete(user_id), f"release session {user_id}"
            )
            self._handles.pop(user_id, None)

        if existed:
            logger.info(f"Released session for user {user_id}")
        else:
            logger.debug(f"No session to release for user {user_id}")
        return existed

    async def get_rows(self, user_id: str) -> list[SessionRow]:
        """Rows of the user's current snapshot (empty if none)."""
        return await self.store.read(user_id) or []

    async def to_dataframe(self, user_id: str) -> pd.DataFrame:
        """The user's current snapshot as a pandas DataFrame."""
        return rows_to_dataframe(await self.get_rows(user_id))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _user_lock(self, user_id: str):
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        self._lock_users[user_id] = self._lock_users.get(user_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            remaining = self._lock_users[user_id] - 1
            if remaining:
                self._lock_users[user_id] = remaining
            else:
                del self._lock_users[user_id]
                del self._locks[user_id]

    async def _with_retry(self, func, description: str):
        try:
            return await self.retry_policy.run(func, description=description)
        except Exception as e:
            raise SessionStoreError(f"{description} failed: {e}") from e

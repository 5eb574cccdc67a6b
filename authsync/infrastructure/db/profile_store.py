from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping

from sqlalchemy.exc import SQLAlchemyError

from authsync.application.dto.profile import ProfileQuerySnapshot
from authsync.application.ports.profile_store_port import (
    ProfileSnapshotHandler,
    ProfileStorePort,
    ProfileWatchHandle,
)
from authsync.infrastructure.db.repositories.profile_repository import SqlProfileRepository


logger = logging.getLogger(__name__)


class _ProfileWatch(ProfileWatchHandle):
    def __init__(self, store: PollingProfileStore, *, user_id: str, on_snapshot: ProfileSnapshotHandler):
        self.user_id = user_id
        self.closed = False
        self.last: ProfileQuerySnapshot | None = None
        self.task: asyncio.Task | None = None
        self._store = store
        self._on_snapshot = on_snapshot

    def emit(self, snapshot: ProfileQuerySnapshot) -> None:
        if self.closed or snapshot == self.last:
            return
        self.last = snapshot
        self._on_snapshot(snapshot)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self.task is not None:
            self.task.cancel()
        self._store._watches.discard(self)


class PollingProfileStore(ProfileStorePort):
    """Live profile queries on top of SqlProfileRepository.

    Each watch re-reads its row every ``poll_interval_seconds`` and pushes a
    snapshot only when the result changed; writes refresh matching watches
    immediately.
    """

    def __init__(self, repository: SqlProfileRepository, *, poll_interval_seconds: float):
        self._repository = repository
        self._poll_interval_seconds = poll_interval_seconds
        self._watches: set[_ProfileWatch] = set()

    def watch_profile(self, *, user_id: str, on_snapshot: ProfileSnapshotHandler) -> ProfileWatchHandle:
        watch = _ProfileWatch(self, user_id=user_id, on_snapshot=on_snapshot)
        self._watches.add(watch)
        watch.emit(ProfileQuerySnapshot(status="loading"))
        watch.task = asyncio.get_running_loop().create_task(self._poll(watch))
        watch.task.add_done_callback(lambda task: self._on_poll_done(watch, task))
        logger.debug("profile_store: watch_started user_id=%s watches=%s", user_id, len(self._watches))
        return watch

    async def update_profile(self, *, user_id: str, fields: Mapping[str, Any]) -> None:
        await asyncio.to_thread(self._repository.update_profile, user_id=user_id, fields=dict(fields))
        for watch in [w for w in self._watches if w.user_id == user_id]:
            await self._refresh(watch)

    async def _poll(self, watch: _ProfileWatch) -> None:
        while not watch.closed:
            await self._refresh(watch)
            await asyncio.sleep(self._poll_interval_seconds)

    def _on_poll_done(self, watch: _ProfileWatch, task: asyncio.Task) -> None:
        if task.cancelled() or watch.closed:
            return
        exc = task.exception()
        if exc is None:
            return
        logger.error(
            "profile_store: poll_failed user_id=%s error=%s",
            watch.user_id,
            exc,
            exc_info=exc,
        )
        watch.emit(ProfileQuerySnapshot(status="error", error=str(exc) or type(exc).__name__))

    async def _refresh(self, watch: _ProfileWatch) -> None:
        try:
            record = await asyncio.to_thread(self._repository.get_profile, user_id=watch.user_id)
        except SQLAlchemyError as exc:
            logger.warning("profile_store: fetch_failed user_id=%s error=%s", watch.user_id, exc)
            watch.emit(ProfileQuerySnapshot(status="error", error=str(exc)))
            return
        watch.emit(ProfileQuerySnapshot(status="success", data=record))

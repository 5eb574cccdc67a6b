from __future__ import annotations

import logging
from typing import Callable

from authsync.application.dto.profile import ProfileQuerySnapshot
from authsync.application.ports.profile_store_port import ProfileStorePort, ProfileWatchHandle
from authsync.domain.entities.auth_state import LOADING, Authenticated, MergedUser, SessionUser
from authsync.domain.entities.profile import (
    ProfileQueryResult,
    QueryFailed,
    QueryPending,
    QuerySucceeded,
)
from authsync.domain.services.user_merge import merge_user


logger = logging.getLogger(__name__)

MergedUserListener = Callable[[MergedUser], None]


def query_result_from_snapshot(key: str, snapshot: ProfileQuerySnapshot) -> ProfileQueryResult:
    if snapshot.status == "success":
        return QuerySucceeded(key=key, record=snapshot.data)
    if snapshot.status == "error":
        return QueryFailed(key=key, reason=snapshot.error or "Unknown profile store error.")
    return QueryPending(key=key)


class ProfileMergeStage:
    """Keeps one profile query open for the authenticated identity and
    recomputes the merged user whenever the session or the query changes.
    """

    def __init__(self, *, profile_store: ProfileStorePort, enabled: bool = True):
        self._profile_store = profile_store
        self._enabled = enabled
        self._session_user: SessionUser = LOADING
        self._key: str | None = None
        self._handle: ProfileWatchHandle | None = None
        self._result: ProfileQueryResult | None = None
        self._merged: MergedUser = LOADING
        self._listeners: list[MergedUserListener] = []

    @property
    def merged(self) -> MergedUser:
        return self._merged

    @property
    def query_key(self) -> str | None:
        return self._key

    def add_listener(self, listener: MergedUserListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def sync(self, session_user: SessionUser) -> MergedUser:
        self._session_user = session_user
        key = None
        if self._enabled and isinstance(session_user, Authenticated):
            key = session_user.user.id
        if key != self._key:
            self._switch_query(key)
        self._recompute()
        return self._merged

    def close(self) -> None:
        self._switch_query(None)

    def _switch_query(self, key: str | None) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None
            logger.debug("profile_merge_stage: query_closed key=%s", self._key)

        self._key = key
        self._result = QueryPending(key=key) if key is not None else None
        if key is None:
            return

        logger.debug("profile_merge_stage: query_opened key=%s", key)
        self._handle = self._profile_store.watch_profile(
            user_id=key,
            on_snapshot=lambda snapshot: self._on_snapshot(key, snapshot),
        )

    def _on_snapshot(self, key: str, snapshot: ProfileQuerySnapshot) -> None:
        if key != self._key:
            logger.debug("profile_merge_stage: stale_result_ignored key=%s current=%s", key, self._key)
            return
        self._result = query_result_from_snapshot(key, snapshot)
        self._recompute()

    def _recompute(self) -> None:
        merged = merge_user(self._session_user, self._result if self._enabled else None)
        if merged == self._merged:
            return

        if merged.kind == "failed":
            logger.warning("profile_merge_stage: profile_fetch_failed key=%s", self._key)
        self._merged = merged
        for listener in list(self._listeners):
            listener(merged)

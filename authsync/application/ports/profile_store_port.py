from __future__ import annotations

from typing import Any, Callable, Mapping, Protocol

from authsync.application.dto.profile import ProfileQuerySnapshot


ProfileSnapshotHandler = Callable[[ProfileQuerySnapshot], None]


class ProfileWatchHandle(Protocol):
    def close(self) -> None:
        ...


class ProfileStorePort(Protocol):
    def watch_profile(self, *, user_id: str, on_snapshot: ProfileSnapshotHandler) -> ProfileWatchHandle:
        ...

    async def update_profile(self, *, user_id: str, fields: Mapping[str, Any]) -> None:
        ...

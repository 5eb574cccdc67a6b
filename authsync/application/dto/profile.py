from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from authsync.domain.entities.profile import ProfileRecord


ProfileQueryStatus = Literal["idle", "loading", "success", "error"]


@dataclass(frozen=True)
class ProfileQuerySnapshot:
    status: ProfileQueryStatus
    data: ProfileRecord | None = None
    error: str | None = None

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Union

from authsync.domain.entities.profile import ProfileRecord
from authsync.domain.entities.user import AuthUser
from authsync.domain.exceptions import ProfileFetchError


@dataclass(frozen=True)
class Loading:
    kind: Literal["loading"] = "loading"


@dataclass(frozen=True)
class Anonymous:
    kind: Literal["anonymous"] = "anonymous"


LOADING = Loading()
ANONYMOUS = Anonymous()


@dataclass(frozen=True)
class Authenticated:
    user: AuthUser
    kind: Literal["authenticated"] = "authenticated"


@dataclass(frozen=True)
class MergedAuthenticated:
    user: AuthUser
    profile: ProfileRecord | None
    attributes: dict[str, Any]
    kind: Literal["authenticated"] = "authenticated"


@dataclass(frozen=True)
class MergeFailed:
    reason: str
    kind: Literal["failed"] = "failed"

    @property
    def error(self) -> ProfileFetchError:
        return ProfileFetchError(self.reason)


SessionUser = Union[Loading, Anonymous, Authenticated]
MergedUser = Union[Loading, Anonymous, MergedAuthenticated, MergeFailed]

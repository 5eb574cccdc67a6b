from __future__ import annotations

from authsync.domain.entities.auth_state import (
    LOADING,
    Anonymous,
    Authenticated,
    Loading,
    MergedAuthenticated,
    MergedUser,
    MergeFailed,
    SessionUser,
)
from authsync.domain.entities.profile import (
    ProfileQueryResult,
    QueryFailed,
    QueryPending,
    QuerySucceeded,
)


def merge_user(session_user: SessionUser, result: ProfileQueryResult | None) -> MergedUser:
    """Overlay the profile query result on the session user.

    ``result=None`` means merging is disabled: an authenticated session is
    exposed as-is, without profile fields.
    """
    if isinstance(session_user, (Loading, Anonymous)):
        return session_user
    if not isinstance(session_user, Authenticated):
        raise TypeError(f"Unknown session user state: {session_user!r}")

    user = session_user.user
    if result is None:
        return MergedAuthenticated(user=user, profile=None, attributes=user.as_attributes())

    # Results issued for a previous identity never leak into the current one.
    if result.key != user.id:
        return LOADING

    if isinstance(result, QueryPending):
        return LOADING
    if isinstance(result, QueryFailed):
        return MergeFailed(reason=result.reason)
    if isinstance(result, QuerySucceeded):
        # No record yet: the profile row is created asynchronously after sign-up.
        if result.record is None:
            return LOADING
        attributes = user.as_attributes()
        attributes.update(result.record.fields)
        return MergedAuthenticated(user=user, profile=result.record, attributes=attributes)
    raise TypeError(f"Unknown profile query result: {result!r}")

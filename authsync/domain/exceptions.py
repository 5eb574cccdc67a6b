from __future__ import annotations

from typing import Any


class DomainError(Exception):
    """Base para erros de dominio."""


class ProviderError(DomainError):
    """Identity provider call failed."""

    def __init__(self, message: str, *, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.details = details or {}


class UnconfirmedEmailError(DomainError):
    """Account exists but the email address has not been confirmed yet."""


class ConfirmationPendingError(DomainError):
    """Email change was requested and waits for the user to confirm it."""


class ProfileFetchError(DomainError):
    """Profile store is unreachable or misconfigured."""

    def __init__(self, reason: str):
        super().__init__(
            f"Error: {reason}. This happened while fetching the profile record to merge into "
            "the authenticated user. Make sure the profile store is set up or disable "
            "MERGE_PROFILE_DATA."
        )
        self.reason = reason


class UnsupportedOperationError(DomainError):
    """Flow is not available with the configured identity provider."""


class NotAuthenticatedError(DomainError):
    """Operation requires an authenticated session."""

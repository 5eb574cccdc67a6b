from __future__ import annotations

from typing import Protocol


class NavigatorPort(Protocol):
    def current_url(self) -> str:
        ...

    def assign(self, url: str) -> None:
        """Leave the application for ``url`` (external redirect)."""
        ...

    def replace(self, path: str) -> None:
        """Replace the current in-app location without adding history."""
        ...

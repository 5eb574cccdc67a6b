from __future__ import annotations

import json
import logging
from pathlib import Path

from authsync.domain.entities.user import AuthSession
from authsync.infrastructure.clients.gotrue_mapper import map_payload_to_session, map_session_to_payload


logger = logging.getLogger(__name__)


class JsonFileSessionCache:
    """Persists the current provider session between application runs."""

    def __init__(self, path: str | Path):
        self._path = Path(path)

    def load(self) -> AuthSession | None:
        if not self._path.exists():
            return None
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
            return map_payload_to_session(payload)
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("session_cache: discard_unreadable path=%s error=%s", self._path, exc)
            self.clear()
            return None

    def save(self, session: AuthSession) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(map_session_to_payload(session)), encoding="utf-8")

    def clear(self) -> None:
        self._path.unlink(missing_ok=True)

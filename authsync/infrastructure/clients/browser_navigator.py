from __future__ import annotations

import logging
import webbrowser
from typing import Callable
from urllib.parse import urljoin

from authsync.application.ports.navigator_port import NavigatorPort


logger = logging.getLogger(__name__)


class BrowserNavigator(NavigatorPort):
    """Tracks the in-app location and hands external redirects to the system browser."""

    def __init__(self, *, start_url: str, open_url: Callable[[str], bool] = webbrowser.open):
        self._url = start_url
        self._open_url = open_url

    def current_url(self) -> str:
        return self._url

    def assign(self, url: str) -> None:
        logger.info("browser_navigator: assign url=%s", url.split("?", 1)[0])
        self._open_url(url)

    def replace(self, path: str) -> None:
        self._url = urljoin(self._url, path)
        logger.info("browser_navigator: replace url=%s", self._url)

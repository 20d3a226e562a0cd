"""Polite HTTP page fetcher used by the enrichment strategies."""

from __future__ import annotations

import logging
from typing import Optional

import requests

DEFAULT_USER_AGENT = "StudioDirectory-Bot/1.0 (Profile Enrichment)"
DEFAULT_TIMEOUT = 10.0


class FetchError(RuntimeError):
    """A page could not be fetched; callers treat it as "no signal"."""


class PageFetcher:
    def __init__(
        self,
        *,
        session: Optional[requests.Session] = None,
        user_agent: str = DEFAULT_USER_AGENT,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.session = session or requests.Session()
        self.user_agent = user_agent
        self.logger = logger or logging.getLogger(__name__)

    def fetch(self, url: str, *, timeout: float = DEFAULT_TIMEOUT) -> str:
        """Return the body of ``url``; anything but HTTP 200 raises :class:`FetchError`."""
        try:
            response = self.session.get(url, headers={"User-Agent": self.user_agent}, timeout=timeout)
        except requests.Timeout as exc:
            raise FetchError(f"Request timeout after {timeout}s") from exc
        except requests.RequestException as exc:
            raise FetchError(str(exc)) from exc
        if response.status_code != 200:
            raise FetchError(f"HTTP {response.status_code}")
        self.logger.debug("Fetched page", extra={"url": url, "bytes": len(response.text)})
        return response.text

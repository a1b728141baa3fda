"""Abstract base class for all source adapters."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from urllib.parse import urljoin

import requests

from counselling_watch.config import PipelineConfig, SourceConfig
from counselling_watch.models import Announcement

logger = logging.getLogger(__name__)


class SourceError(RuntimeError):
    """A source could not be fetched or its page could not be understood."""


class BaseSource(ABC):
    """Base class that all site-specific adapters extend.

    Provides shared HTTP utilities (session management, rate limiting,
    retries) so individual adapters only need to implement `fetch()`.
    """

    def __init__(self, source_config: SourceConfig, pipeline_config: PipelineConfig):
        self.source_config = source_config
        self.pipeline_config = pipeline_config
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": pipeline_config.user_agent})
        self._last_request_time: float = 0

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    @abstractmethod
    def fetch(self) -> list[Announcement]:
        """Fetch and return all announcements currently listed by this source.

        Must be implemented by every subclass. Raises on network or parse
        failure; an empty list means the source simply lists nothing.
        """
        ...

    @property
    def id(self) -> str:
        return self.source_config.id

    @property
    def name(self) -> str:
        return self.source_config.name

    @property
    def url(self) -> str:
        return self.source_config.url

    def close(self) -> None:
        self.session.close()

    # ------------------------------------------------------------------
    # HTTP helpers
    # ------------------------------------------------------------------

    def _get(self, url: str, **kwargs) -> requests.Response:
        """Rate-limited GET request with retries."""
        self._rate_limit()
        kwargs.setdefault("timeout", self.pipeline_config.request_timeout_seconds)

        for attempt in range(1, 4):
            try:
                resp = self.session.get(url, **kwargs)
                resp.raise_for_status()
                return resp
            except requests.RequestException as exc:
                logger.warning(
                    "[%s] GET %s attempt %d failed: %s", self.name, url, attempt, exc
                )
                if attempt == 3:
                    raise
                time.sleep(2 ** attempt)

        # Unreachable, but keeps type checkers happy
        raise RuntimeError("Retry loop exited unexpectedly")

    def _rate_limit(self) -> None:
        """Enforce minimum delay between requests."""
        delay = self.pipeline_config.request_delay_seconds
        elapsed = time.monotonic() - self._last_request_time
        if elapsed < delay:
            time.sleep(delay - elapsed)
        self._last_request_time = time.monotonic()

    # ------------------------------------------------------------------
    # Parsing helpers
    # ------------------------------------------------------------------

    def _absolute(self, href: str) -> str:
        """Resolve a link found on the source page against the page URL."""
        href = href.strip()
        if href.startswith(("http://", "https://")):
            return href
        return urljoin(self.source_config.params.get("base_url", self.url), href)


def is_pdf_link(href: str | None) -> bool:
    return bool(href) and ".pdf" in href.lower()

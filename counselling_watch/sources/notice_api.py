"""Adapter for counselling portals that publish notices through a JSON API.

Expected response shape (Haryana online counselling):

  {"body": {"notice": [
      {"content": "Round 1 Allotment",
       "subject": "Allotment",
       "publishDate": "2025-08-01",
       "extension": "https://bucket.s3.ap-south-1.amazonaws.com/n.pdf?X-Amz-Signature=..."},
      ...
  ]}}

``extension`` is a pre-signed object-storage link that changes on every
request; fingerprinting strips its query string.
"""

from __future__ import annotations

import logging

from counselling_watch.models import Announcement
from counselling_watch.sources.base import BaseSource, SourceError

logger = logging.getLogger(__name__)


class NoticeApiSource(BaseSource):
    """Reads announcements from a JSON notice feed."""

    def fetch(self) -> list[Announcement]:
        logger.info("[%s] Fetching notifications from API: %s", self.name, self.url)
        resp = self._get(self.url, headers={"Accept": "application/json"})

        try:
            data = resp.json()
        except ValueError as exc:
            raise SourceError(f"{self.name}: response is not JSON") from exc

        body = data.get("body") if isinstance(data, dict) else None
        notices = body.get("notice") if isinstance(body, dict) else None
        if not isinstance(notices, list):
            raise SourceError(f"{self.name}: unexpected response shape (no body.notice list)")

        announcements = [a for a in (self._parse_notice(n) for n in notices) if a]
        logger.info("[%s] Found %d valid notifications from API", self.name, len(announcements))
        return announcements

    def _parse_notice(self, raw: dict) -> Announcement | None:
        if not isinstance(raw, dict):
            return None
        url = raw.get("extension")
        if not url:
            return None

        title = raw.get("content") or raw.get("subject") or "Untitled Notification"
        return Announcement(
            title=title.strip(),
            url=url,
            date=raw.get("publishDate") or None,
            extra={"category": raw.get("subject") or "Notification"},
        )

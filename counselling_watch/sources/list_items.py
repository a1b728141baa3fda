"""Adapter for sites that list documents as ``<li>`` links (APDHTE, BCECEB).

Every PDF link inside a list item becomes an announcement. Link text is
taken without any ``<img>`` children ("new" badges and the like).
"""

from __future__ import annotations

import logging

from bs4 import BeautifulSoup

from counselling_watch.models import Announcement
from counselling_watch.sources.base import BaseSource, is_pdf_link

logger = logging.getLogger(__name__)


class ListItemsSource(BaseSource):
    """Scrapes PDF links out of HTML list items."""

    def fetch(self) -> list[Announcement]:
        logger.info("[%s] Fetching page: %s", self.name, self.url)
        resp = self._get(self.url)
        announcements = self._parse_page(resp.text)
        logger.info("[%s] Found %d announcements", self.name, len(announcements))
        return announcements

    def _parse_page(self, html: str) -> list[Announcement]:
        soup = BeautifulSoup(html, "html.parser")
        announcements: list[Announcement] = []

        for item in soup.find_all("li"):
            for link in item.find_all("a", href=True):
                if not is_pdf_link(link["href"]):
                    continue

                for img in link.find_all("img"):
                    img.decompose()
                title = link.get_text(" ", strip=True) or "untitled"

                announcements.append(
                    Announcement(title=title, url=self._absolute(link["href"]))
                )

        return announcements

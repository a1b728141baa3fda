"""Adapter for sites that list documents as table rows.

Typical layout (DME Assam, GMCH):

  <tr>
    <td><a href="/uploads/notice.pdf">Round 1 Merit List</a></td>
    <td>1.2 MB</td>
  </tr>

Every row holding a PDF link yields one announcement; the first PDF link in
the row wins. The second cell, when present, is kept as ``file_size``.

Params:
  - row_selector: CSS selector for the rows (default: every ``tr``)
  - skip_untitled: drop rows whose link has no text instead of falling
    back to the link's ``title`` attribute / "untitled"
  - base_url: resolve relative links against this instead of the page URL
"""

from __future__ import annotations

import logging

from bs4 import BeautifulSoup

from counselling_watch.models import Announcement
from counselling_watch.sources.base import BaseSource, is_pdf_link

logger = logging.getLogger(__name__)


class TableRowsSource(BaseSource):
    """Scrapes PDF links out of HTML table rows."""

    def fetch(self) -> list[Announcement]:
        logger.info("[%s] Fetching page: %s", self.name, self.url)
        resp = self._get(self.url)
        announcements = self._parse_page(resp.text)
        logger.info("[%s] Found %d announcements", self.name, len(announcements))
        return announcements

    def _parse_page(self, html: str) -> list[Announcement]:
        soup = BeautifulSoup(html, "html.parser")
        selector = self.source_config.params.get("row_selector", "tr")
        skip_untitled = self.source_config.params.get("skip_untitled", False)

        announcements: list[Announcement] = []
        for row in soup.select(selector):
            link = next(
                (a for a in row.find_all("a", href=True) if is_pdf_link(a["href"])),
                None,
            )
            if link is None:
                continue

            title = link.get_text(strip=True)
            if not title:
                if skip_untitled:
                    continue
                title = link.get("title", "").strip() or "untitled"

            extra = {}
            cells = row.find_all("td")
            if len(cells) > 1:
                extra["fileSize"] = cells[1].get_text(strip=True)

            announcements.append(
                Announcement(title=title, url=self._absolute(link["href"]), extra=extra)
            )

        return announcements

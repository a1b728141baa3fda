"""Data models for the counselling watch pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from counselling_watch.fingerprint import fingerprint as compute_fingerprint


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class RoundTag(str, Enum):
    """Counselling round an announcement belongs to."""

    ROUND_1 = "round_1"
    ROUND_2 = "round_2"
    ROUND_3 = "round_3"
    MOP_UP = "mop_up"
    STRAY = "stray"
    SPECIAL_STRAY = "special_stray"
    GENERAL = "general"


class DocTag(str, Enum):
    """Kind of document an announcement points at."""

    MERIT_LIST = "merit_list"
    ALLOTMENT = "allotment"
    SEAT_MATRIX = "seat_matrix"
    SCHEDULE = "schedule"
    NOTICE = "notice"
    OTHER = "other"


@dataclass(frozen=True)
class Classification:
    round: RoundTag
    type: DocTag


@dataclass(frozen=True)
class Announcement:
    """One scraped document reference, as produced by a source adapter.

    ``extra`` holds whatever adapter-specific fields the source exposes
    (file size, the site's own category label, ...).
    """

    title: str
    url: str
    date: Optional[str] = None
    scraped_date: str = field(default_factory=utc_now_iso)
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def fingerprint(self) -> str:
        """Stable identity, see :func:`counselling_watch.fingerprint.fingerprint`."""
        return compute_fingerprint(self.url, self.title)

    def to_dict(self) -> dict:
        d = dict(self.extra)
        d.update({
            "title": self.title,
            "url": self.url,
            "date": self.date,
            "scrapedDate": self.scraped_date,
        })
        return d

    @classmethod
    def from_dict(cls, data: dict) -> Announcement:
        known = {"title", "url", "date", "scrapedDate", "scraped_date"}
        return cls(
            title=data["title"],
            url=data["url"],
            date=data.get("date") or None,
            scraped_date=data.get("scrapedDate") or data.get("scraped_date") or utc_now_iso(),
            extra={k: v for k, v in data.items() if k not in known},
        )


@dataclass(frozen=True)
class Event:
    """A triaged, classified announcement ready for the timeline.

    ``hash`` is only filled in on events handed back by reconciliation
    for fetching; timeline events leave it unset.
    """

    id: str
    title: str
    date: str
    type: DocTag
    url: str
    is_new: bool = False
    hash: Optional[str] = None

    def to_dict(self) -> dict:
        d = {
            "id": self.id,
            "title": self.title,
            "date": self.date,
            "type": self.type.value,
            "url": self.url,
            "isNew": self.is_new,
        }
        if self.hash is not None:
            d["hash"] = self.hash
        return d

    def __repr__(self) -> str:
        return f"Event(id={self.id!r}, title={self.title!r}, type={self.type.value!r})"


@dataclass
class RoundBucket:
    label: str
    events: list[Event] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"label": self.label, "events": [e.to_dict() for e in self.events]}


@dataclass
class Timeline:
    """Per-source view of events, bucketed by counselling round."""

    source_name: str
    rounds: dict[RoundTag, RoundBucket]
    updated_at: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> dict:
        return {
            "source_name": self.source_name,
            "updatedAt": self.updated_at,
            "rounds": {tag.value: bucket.to_dict() for tag, bucket in self.rounds.items()},
        }

"""Data models for queries, discovered links and extracted listing records."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Iterable

from pydantic import BaseModel, ConfigDict, Field, field_validator

from mapscraper.normalizers import normalize_href


class RecordStatus(str, Enum):
    """Outcome of processing one listing."""

    OK = "ok"
    NO_PHONE = "no_phone"
    CAPTCHA = "captcha"
    ERROR = "error"


class ExtractionSource(str, Enum):
    """Strategy that produced the first phone candidate."""

    BUTTON = "button"
    LINK = "link"
    ARIA = "aria"
    ABOUT_TAB = "about-tab"
    NONE = "none"


class Query(BaseModel):
    """One keyword searched within one region."""

    model_config = ConfigDict(frozen=True)

    keyword: str
    region: str

    @property
    def text(self) -> str:
        return f"{self.keyword} {self.region}".strip()


def build_queries(keywords: Iterable[str], regions: Iterable[str]) -> list[Query]:
    """Return the region-major cross product of *regions* and *keywords*."""

    keyword_list = [k.strip() for k in keywords if k and k.strip()]
    return [
        Query(keyword=keyword, region=region.strip())
        for region in regions
        if region and region.strip()
        for keyword in keyword_list
    ]


class LinkRecord(BaseModel):
    """A candidate listing link found inside the result feed."""

    model_config = ConfigDict(frozen=True)

    href: str
    display_text: str = ""
    aria_label: str = ""

    @property
    def key(self) -> str:
        return normalize_href(self.href)


class DetailRecord(BaseModel):
    """Fields extracted from a listing's detail page."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    keyword: str
    region: str
    maps_url: str
    name: str | None = None
    phones: tuple[str, ...] = ()
    raw_phone_strings: tuple[str, ...] = ()
    address: str | None = None
    category: str | None = None
    website: str | None = None
    extraction_source: ExtractionSource = ExtractionSource.NONE
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    status: RecordStatus = RecordStatus.OK
    error: str | None = None

    @field_validator("timestamp")
    @classmethod
    def _ensure_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


__all__ = [
    "DetailRecord",
    "ExtractionSource",
    "LinkRecord",
    "Query",
    "RecordStatus",
    "build_queries",
]

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from .session import SessionToken

MEDIA_TYPES = ("movie", "series")


@dataclass(frozen=True)
class MediaReference:
    media_type: str
    media_id: str
    # Season:episode style segment, kept verbatim (it may contain a colon)
    extra: Optional[str] = None


@dataclass(frozen=True)
class MediaMetadata:
    title: str
    year: Optional[int] = None
    alternate_titles: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ResolvedArchive:
    archive_url: str
    referer_url: str
    session_token: Optional[SessionToken] = None


@dataclass
class SubtitleItem:
    id: str
    lang: str
    url: str
    title: Optional[str] = None
    session_token: Optional[SessionToken] = None
    referer_url: Optional[str] = None
    # Untouched fields of an upstream entry, echoed back to the client
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_archive(cls, archive: ResolvedArchive, language: str, label: str, title: str) -> "SubtitleItem":
        return cls(
            id=language,
            lang=label,
            url=archive.archive_url,
            title=title,
            session_token=archive.session_token,
            referer_url=archive.referer_url,
        )

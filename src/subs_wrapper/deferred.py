from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qs, urlencode, urlsplit

from .models import SubtitleItem

DEFERRED_PATH = "/srt"
SUBTITLE_SUFFIX = ".srt"
UNSAFE_NAME_RE = re.compile(r"[^\w.\-()\[\] ]+")
KNOWN_SUFFIX_RE = re.compile(r"\.(srt|ass|ssa|sub|txt|zip|rar|7z)$", re.IGNORECASE)


@dataclass(frozen=True)
class DeferredRequest:
    archive_url: str
    charset: str
    name: str
    cookie: Optional[str] = None
    referer: Optional[str] = None


def sanitize_name(name: str) -> str:
    name = UNSAFE_NAME_RE.sub("_", (name or "").strip())
    name = KNOWN_SUFFIX_RE.sub("", name).strip(" ._") or "subtitles"
    return f"{name}{SUBTITLE_SUFFIX}"


def encode(item: SubtitleItem, base_url: str, charset: str = "cp1250", name: Optional[str] = None) -> str:
    """Build the self-referencing link that fetches and transcodes ``item`` later."""
    params = {
        "zip": item.url,
        "charset": charset,
        "name": sanitize_name(name or item.title or item.lang or item.id),
    }
    if item.session_token is not None:
        params["cookie"] = item.session_token.header_value()
    if item.referer_url:
        params["referer"] = item.referer_url
    return f"{base_url.rstrip('/')}{DEFERRED_PATH}?{urlencode(params)}"


def decode(url: str, default_charset: str = "cp1250") -> DeferredRequest:
    query = parse_qs(urlsplit(url).query, keep_blank_values=True)

    def _first(key: str) -> Optional[str]:
        values = query.get(key)
        return values[0] if values and values[0] else None

    archive_url = _first("zip")
    if not archive_url:
        raise ValueError("deferred link has no archive url")
    return DeferredRequest(
        archive_url=archive_url,
        charset=_first("charset") or default_charset,
        name=_first("name") or f"subtitles{SUBTITLE_SUFFIX}",
        cookie=_first("cookie"),
        referer=_first("referer"),
    )

from __future__ import annotations

import logging
from typing import Dict, List, Optional
from urllib.parse import quote

import httpx

from .errors import UpstreamUnavailable
from .models import MediaReference
from .settings import Settings

log = logging.getLogger("subs_wrapper.upstream")

SOURCE_KEYS = ("url", "src", "link", "download", "zip", "href", "file")


def upstream_url(settings: Settings, ref: MediaReference) -> str:
    # The extra segment goes out as received: "1:1" must keep its colon
    extra_part = f"/{ref.extra}" if ref.extra else ""
    return (
        f"{settings.upstream_base.rstrip('/')}/subtitles/"
        f"{quote(ref.media_type, safe='')}/{quote(ref.media_id, safe='')}{extra_part}.json"
    )


def source_url(entry: Dict) -> Optional[str]:
    for key in SOURCE_KEYS:
        value = entry.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


async def fetch_primary(client: httpx.AsyncClient, settings: Settings, ref: MediaReference) -> List[Dict]:
    url = upstream_url(settings, ref)
    try:
        resp = await client.get(url, headers={"User-Agent": settings.user_agent}, follow_redirects=True)
    except httpx.HTTPError as exc:
        raise UpstreamUnavailable(f"upstream error: {exc}") from exc
    if resp.status_code != 200:
        raise UpstreamUnavailable(f"upstream status: {resp.status_code}")
    try:
        data = resp.json()
    except ValueError as exc:
        raise UpstreamUnavailable("upstream returned invalid JSON") from exc

    subtitles = data.get("subtitles") if isinstance(data, dict) else None
    if not isinstance(subtitles, list):
        return []
    return [entry for entry in subtitles if isinstance(entry, dict)]

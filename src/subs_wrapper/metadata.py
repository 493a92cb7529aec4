from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional
from urllib.parse import quote, unquote

import httpx

from .models import MediaMetadata
from .settings import Settings

log = logging.getLogger("subs_wrapper.metadata")

YEAR_RE = re.compile(r"(19|20)\d{2}")


@dataclass
class StremioID:
    base: str
    season: Optional[str]
    episode: Optional[str]


def parse_stremio_id(raw_id: str) -> StremioID:
    """Parse Stremio IDs that may be URL-encoded once or twice.

    Examples of incoming IDs:
    - tt0369179                   (movie)
    - tt0369179:1:2               (series S01E02)
    - tt0369179%3A1%3A2           (encoded once)
    - tmdb:1399:1:2               (TMDb prefixed, series)
    """
    s = raw_id or ""
    # Decode up to twice to handle cases like %253A -> %3A -> :
    for _ in range(2):
        decoded = unquote(s)
        if decoded == s:
            break
        s = decoded

    parts = s.split(":")
    if parts[0].lower() == "tmdb" and len(parts) > 1:
        parts = [f"{parts[0]}:{parts[1]}"] + parts[2:]
    base = parts[0] if parts else s
    season = parts[1] if len(parts) > 1 and parts[1] else None
    episode = parts[2] if len(parts) > 2 and parts[2] else None
    return StremioID(base=base, season=season, episode=episode)


def normalize_year(raw: object) -> Optional[int]:
    if raw is None or raw == "":
        return None
    match = YEAR_RE.search(str(raw))
    return int(match.group(0)) if match else None


def _as_titles(value: object) -> List[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Iterable):
        return [str(v) for v in value if isinstance(v, str) and v.strip()]
    return []


def metadata_from_meta(meta: dict) -> Optional[MediaMetadata]:
    title = str(meta.get("name") or "").strip()
    if not title:
        return None

    year = normalize_year(meta.get("year"))
    if year is None:
        year = normalize_year(meta.get("releaseInfo") or meta.get("released"))

    seen = {title}
    alternates: List[str] = []
    for key in ("aka", "alternateName", "alternateTitles"):
        for alt in _as_titles(meta.get(key)):
            alt = alt.strip()
            if alt and alt not in seen:
                seen.add(alt)
                alternates.append(alt)

    return MediaMetadata(title=title, year=year, alternate_titles=tuple(alternates))


class MetadataResolver:
    """Looks up canonical title and year on Cinemeta."""

    def __init__(self, client: httpx.AsyncClient, settings: Settings) -> None:
        self._client = client
        self._settings = settings

    async def resolve(self, media_type: str, media_id: str) -> Optional[MediaMetadata]:
        tokens = parse_stremio_id(media_id)
        url = (
            f"{self._settings.cinemeta_base.rstrip('/')}/meta/"
            f"{quote(media_type, safe='')}/{quote(tokens.base, safe='')}.json"
        )
        try:
            resp = await self._client.get(url, headers={"User-Agent": self._settings.user_agent})
        except httpx.HTTPError as exc:
            log.warning("Cinemeta request failed for %s/%s: %s", media_type, media_id, exc)
            return None
        if resp.status_code != 200:
            log.warning("Cinemeta returned %s for %s/%s", resp.status_code, media_type, tokens.base)
            return None
        try:
            payload = resp.json()
        except ValueError:
            log.warning("Cinemeta returned invalid JSON for %s/%s", media_type, tokens.base)
            return None

        meta = payload.get("meta") if isinstance(payload, dict) else None
        metadata = metadata_from_meta(meta) if isinstance(meta, dict) else None
        if metadata is None:
            log.info("No title in Cinemeta metadata for %s/%s", media_type, tokens.base)
        return metadata

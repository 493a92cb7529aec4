from __future__ import annotations

import logging
import time
from typing import Dict, List, Optional

import httpx

from . import deferred
from .errors import UpstreamUnavailable
from .fallback import FallbackOrchestrator
from .metadata import MetadataResolver
from .models import MediaReference, SubtitleItem
from .settings import Settings
from .sources.podnapisi import DetailResolver, SearchClient
from .throttle import RequestThrottle
from .upstream import fetch_primary, source_url

log = logging.getLogger("subs_wrapper.service")

DEFAULT_FORMAT = "srt"


def _primary_items(entries: List[Dict], settings: Settings) -> List[SubtitleItem]:
    items: List[SubtitleItem] = []
    fallback_label = settings.language_label(settings.languages[0]) if settings.languages else "Slovenian"
    for idx, entry in enumerate(entries):
        url = source_url(entry)
        if not url:
            continue
        lang = entry.get("lang") or entry.get("language") or fallback_label
        items.append(
            SubtitleItem(
                id=str(entry.get("id") or f"{lang}_{idx}"),
                lang=str(lang),
                url=url,
                title=entry.get("title"),
                extra=dict(entry),
            )
        )
    return items


def to_payload(items: List[SubtitleItem], base_url: str, charset: str) -> List[Dict]:
    """Re-point every subtitle through the deferred /srt endpoint."""
    payload: List[Dict] = []
    for item in items:
        entry = dict(item.extra)
        entry.update(
            {
                "id": item.id,
                "lang": item.lang,
                "url": deferred.encode(item, base_url, charset=charset),
                "format": DEFAULT_FORMAT,
            }
        )
        if item.title:
            entry["title"] = item.title
        payload.append(entry)
    return payload


async def find_subtitles(
    client: httpx.AsyncClient,
    settings: Settings,
    ref: MediaReference,
    throttle: Optional[RequestThrottle] = None,
) -> List[SubtitleItem]:
    try:
        entries = await fetch_primary(client, settings, ref)
    except UpstreamUnavailable as exc:
        log.warning("Primary provider unavailable for %s/%s: %s", ref.media_type, ref.media_id, exc)
        entries = []

    items = _primary_items(entries, settings)
    if items:
        return items

    metadata = await MetadataResolver(client, settings).resolve(ref.media_type, ref.media_id)
    if metadata is None:
        return []

    search_client = SearchClient(client, settings, throttle)
    detail_resolver = DetailResolver(client, settings, throttle)
    orchestrator = FallbackOrchestrator.from_settings(settings, search_client.search, detail_resolver.resolve)
    hit = await orchestrator.find_fallback(metadata)
    return [hit] if hit is not None else []


async def search_subtitles(
    client: httpx.AsyncClient,
    settings: Settings,
    ref: MediaReference,
    base_url: str,
    throttle: Optional[RequestThrottle] = None,
) -> List[Dict]:
    t0 = time.perf_counter()
    try:
        items = await find_subtitles(client, settings, ref, throttle)
    except Exception:  # noqa: BLE001
        log.exception("Subtitles handler error for %s/%s", ref.media_type, ref.media_id)
        return []
    payload = to_payload(items, base_url, settings.default_charset)
    log.info(
        "Resolved %d subtitle(s) for %s/%s%s in %.0f ms",
        len(payload),
        ref.media_type,
        ref.media_id,
        f"/{ref.extra}" if ref.extra else "",
        (time.perf_counter() - t0) * 1000,
    )
    return payload

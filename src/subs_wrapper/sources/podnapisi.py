# -*- coding: utf-8 -*-
"""
podnapisi.net search and detail-page resolution.

Search results are scraped from the public HTML index; the detail page hands
out a session cookie that the final archive download must replay.
"""

from __future__ import annotations

import logging
from contextlib import nullcontext
from typing import List, Optional
from urllib.parse import urlencode

import httpx

from ..common import browser_headers
from ..models import ResolvedArchive
from ..session import SessionToken, origin_of
from ..settings import Settings
from ..throttle import RequestThrottle
from .links import extract_archive_link, extract_detail_links, subtitle_id

log = logging.getLogger("subs_wrapper.sources.podnapisi")

PROBE_OK = {200, 301, 302}


def _throttled(throttle: Optional[RequestThrottle]):
    return throttle.slot() if throttle is not None else nullcontext()


def _looks_downloadable(resp: httpx.Response) -> bool:
    disposition = resp.headers.get("content-disposition", "").lower()
    if "attachment" in disposition or "filename=" in disposition:
        return True
    ctype = resp.headers.get("content-type", "").lower()
    return bool(ctype) and "html" not in ctype and not ctype.startswith("text/")


def _capture_session(resp: httpx.Response, detail_url: str) -> Optional[SessionToken]:
    """Collect cookies set on the detail page, redirect hops included."""
    origin = origin_of(detail_url)
    cookies: List[str] = []
    for hop in [*resp.history, resp]:
        if origin_of(str(hop.url)) == origin:
            cookies.extend(hop.headers.get_list("set-cookie"))
    return SessionToken.from_set_cookie(cookies, detail_url)


class SearchClient:
    def __init__(
        self,
        client: httpx.AsyncClient,
        settings: Settings,
        throttle: Optional[RequestThrottle] = None,
    ) -> None:
        self._client = client
        self._settings = settings
        self._throttle = throttle

    def search_url(self, query: str, language: str) -> str:
        params = urlencode({"keywords": query, "language": language})
        return f"{self._settings.index_base.rstrip('/')}/subtitles/search/?{params}"

    async def search(self, query: str, language: str) -> List[str]:
        url = self.search_url(query, language)
        try:
            async with _throttled(self._throttle):
                resp = await self._client.get(
                    url,
                    headers=browser_headers(self._settings.user_agent),
                    follow_redirects=True,
                )
        except httpx.HTTPError as exc:
            log.warning("[podnapisi] search failed (%s, %s): %s", language, query, exc)
            return []
        if resp.status_code != 200:
            log.info("[podnapisi] search %s/%r returned %s", language, query, resp.status_code)
            return []

        links = extract_detail_links(resp.text, self._settings.index_base, limit=self._settings.max_detail_links)
        log.info("[podnapisi] search %s/%r → %d link(s)", language, query, len(links))
        return links


class DetailResolver:
    """Turns a detail link into a downloadable archive URL."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        settings: Settings,
        throttle: Optional[RequestThrottle] = None,
    ) -> None:
        self._client = client
        self._settings = settings
        self._throttle = throttle

    async def resolve(self, detail_url: str) -> Optional[ResolvedArchive]:
        archive, token = await self._scrape(detail_url)
        if archive is not None:
            return archive
        return await self._probe(detail_url, token)

    async def _scrape(self, detail_url: str):
        try:
            async with _throttled(self._throttle):
                resp = await self._client.get(
                    detail_url,
                    headers=browser_headers(self._settings.user_agent, referer=self._settings.index_base),
                    follow_redirects=True,
                )
        except httpx.HTTPError as exc:
            log.warning("[podnapisi] detail fetch failed for %s: %s", detail_url, exc)
            return None, None

        token = _capture_session(resp, detail_url)
        if resp.status_code != 200:
            log.info("[podnapisi] detail %s returned %s", detail_url, resp.status_code)
            return None, token

        if _looks_downloadable(resp):
            # Direct /download links answer with the archive itself
            return ResolvedArchive(archive_url=detail_url, referer_url=detail_url, session_token=token), token

        href = extract_archive_link(resp.text, detail_url)
        if not href:
            log.info("[podnapisi] no archive link on %s", detail_url)
            return None, token
        return ResolvedArchive(archive_url=href, referer_url=detail_url, session_token=token), token

    def _candidates(self, detail_url: str) -> List[str]:
        sub_id = subtitle_id(detail_url)
        if not sub_id:
            return []
        base = f"{self._settings.index_base.rstrip('/')}/subtitles/{sub_id}/download"
        return [f"{base}?container=zip", base]

    async def _probe(self, detail_url: str, token: Optional[SessionToken]) -> Optional[ResolvedArchive]:
        for candidate in self._candidates(detail_url):
            headers = browser_headers(self._settings.user_agent, referer=detail_url)
            if token is not None and token.applies_to(candidate):
                headers["Cookie"] = token.header_value()
            try:
                async with _throttled(self._throttle):
                    resp = await self._client.head(candidate, headers=headers, follow_redirects=False)
            except httpx.HTTPError as exc:
                log.info("[podnapisi] probe failed for %s: %s", candidate, exc)
                continue
            if resp.status_code in PROBE_OK:
                log.info("[podnapisi] probe %s → %s", candidate, resp.status_code)
                replay = token if token is not None and token.applies_to(candidate) else None
                return ResolvedArchive(archive_url=candidate, referer_url=detail_url, session_token=replay)
            log.debug("[podnapisi] probe %s → %s", candidate, resp.status_code)
        return None

from __future__ import annotations

import codecs
import logging
import re
from typing import Optional, Tuple
from urllib.parse import urljoin

import httpx
from charset_normalizer import from_bytes

from .common import browser_headers
from .errors import DecodeFailed, FetchFailed, NoSubtitleEntry, TranscodeError
from .extract import container_kind, extract_first_subtitle
from .session import SessionToken
from .settings import Settings

log = logging.getLogger("subs_wrapper.transcode")

MAX_REDIRECTS = 5
REDIRECT_CODES = {301, 302, 303, 307, 308}
AUTO_CHARSET = "auto"
FILENAME_RE = re.compile(r'filename\*?=(?:UTF-8\'\')?"?([^";]+)"?', re.IGNORECASE)


def _codec_name(charset: str) -> str:
    try:
        return codecs.lookup(charset).name
    except LookupError as exc:
        raise DecodeFailed(f"Unknown charset: {charset}") from exc


def to_utf8(data: bytes, charset: str) -> bytes:
    """Decode ``data`` from ``charset`` into UTF-8 bytes.

    Content that is already valid UTF-8 is passed through untouched; running
    it through a single-byte table would mangle every non-ASCII character.
    """
    if (charset or "").lower() == AUTO_CHARSET:
        match = from_bytes(data).best()
        if match is None:
            raise DecodeFailed("Could not detect subtitle encoding")
        return str(match).encode("utf-8")

    codec = _codec_name(charset)
    if codec == "utf-8":
        return data
    try:
        data.decode("utf-8")
        return data
    except UnicodeDecodeError:
        pass
    # Stray unassigned bytes (0x98 in cp1250) become U+FFFD instead of failing the file
    return data.decode(codec, errors="replace").encode("utf-8")


class ArchiveTranscoder:
    def __init__(self, client: httpx.AsyncClient, settings: Settings) -> None:
        self._client = client
        self._settings = settings

    async def transcode(
        self,
        archive_url: str,
        charset: Optional[str] = None,
        session_token: Optional[SessionToken] = None,
        referer: Optional[str] = None,
    ) -> bytes:
        charset = charset or self._settings.default_charset
        resp = await self._fetch(archive_url, session_token, referer)

        body = resp.content
        disposition = resp.headers.get("content-disposition", "")
        match = FILENAME_RE.search(disposition)
        kind = container_kind(archive_url, match.group(1) if match else "", body[:4])
        if kind:
            name, body = extract_first_subtitle(body, kind)
            log.info("Extracted %s (%d bytes) from %s archive", name, len(body), kind)
        return to_utf8(body, charset)

    async def _fetch(
        self,
        url: str,
        session_token: Optional[SessionToken],
        referer: Optional[str],
    ) -> httpx.Response:
        """GET ``url`` following redirects by hand.

        The session cookie is attached only on hops whose origin matches the
        one the token was captured from.
        """
        current = url
        for _ in range(MAX_REDIRECTS + 1):
            headers = browser_headers(self._settings.user_agent, referer=referer)
            headers["Accept"] = "*/*"
            if session_token is not None and session_token.applies_to(current):
                headers["Cookie"] = session_token.header_value()
            try:
                resp = await self._client.get(current, headers=headers, follow_redirects=False)
            except httpx.HTTPError as exc:
                raise FetchFailed(f"fetch {current}: {exc}") from exc

            location = resp.headers.get("location")
            if resp.status_code in REDIRECT_CODES and location:
                current = urljoin(current, location)
                continue
            if not resp.is_success:
                raise FetchFailed(f"fetch {resp.status_code}")
            return resp
        raise FetchFailed(f"too many redirects for {url}")


def parse_session(cookie: Optional[str], referer: Optional[str], archive_url: str) -> Optional[SessionToken]:
    """Bind a cookie from a deferred link to the page it was captured on."""
    if not cookie:
        return None
    return SessionToken.parse(cookie, referer or archive_url)


def describe(exc: TranscodeError) -> Tuple[int, str]:
    """Map a transcode failure to an HTTP status and message."""
    if isinstance(exc, FetchFailed):
        return 502, "Subtitle fetch failed"
    if isinstance(exc, NoSubtitleEntry):
        return 502, "No subtitle in archive"
    if isinstance(exc, DecodeFailed):
        return 500, "Subtitle decoding failed"
    return 500, "Subtitle processing error"

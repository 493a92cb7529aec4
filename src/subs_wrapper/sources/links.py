"""HTML link extraction for the podnapisi.net index.

Everything that depends on the index's markup lives here so the scraping
heuristics can be swapped or fed canned HTML in tests.
"""

from __future__ import annotations

import re
from typing import List, Optional
from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup

from ..session import origin_of

DETAIL_PATH_RE = re.compile(r"^/subtitles/\d+/")
SUBTITLE_ID_RE = re.compile(r"/subtitles/(\d+)(?:/|$)")
ARCHIVE_LINK_SELECTOR = "a[href*='.zip'], a[href*='/download']"


def _absolute(href: str, base_url: str) -> str:
    return urljoin(base_url if base_url.endswith("/") else base_url + "/", href)


def extract_detail_links(html: str, base_url: str, limit: Optional[int] = None) -> List[str]:
    """Collect detail-page links first, then direct ``/download`` links.

    Only links on the index's own origin are kept.
    """
    origin = origin_of(base_url)
    soup = BeautifulSoup(html or "", "html.parser")
    canonical: List[str] = []
    downloads: List[str] = []
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"].strip()
        if not href:
            continue
        absolute = _absolute(href, base_url)
        if origin_of(absolute) != origin:
            continue
        if "/download" in href:
            downloads.append(absolute)
        elif DETAIL_PATH_RE.match(urlsplit(absolute).path):
            canonical.append(absolute)

    links: List[str] = []
    seen = set()
    for link in canonical + downloads:
        if link in seen:
            continue
        seen.add(link)
        links.append(link)
    if limit is not None:
        links = links[: max(0, limit)]
    return links


def extract_archive_link(html: str, page_url: str) -> Optional[str]:
    """Return the first archive or ``/download`` link on a detail page."""
    soup = BeautifulSoup(html or "", "html.parser")
    anchor = soup.select_one(ARCHIVE_LINK_SELECTOR)
    if anchor is None:
        return None
    href = (anchor.get("href") or "").strip()
    if not href:
        return None
    return urljoin(page_url, href)


def subtitle_id(detail_url: str) -> Optional[str]:
    match = SUBTITLE_ID_RE.search(urlsplit(detail_url).path)
    return match.group(1) if match else None

from __future__ import annotations

import re
from typing import List, Optional

from .models import MediaMetadata

SEPARATOR_RE = re.compile(r"[:/|]")
WHITESPACE_RE = re.compile(r"\s+")
YEAR_TOKEN_RE = re.compile(r"(?<!\d)(?:19|20)\d{2}(?!\d)")


def normalize_query(text: str) -> str:
    text = SEPARATOR_RE.sub(" ", text or "")
    return WHITESPACE_RE.sub(" ", text).strip()


def strip_years(query: str) -> str:
    return normalize_query(YEAR_TOKEN_RE.sub(" ", query))


def build_queries(metadata: Optional[MediaMetadata]) -> List[str]:
    """Return search strings for ``metadata`` in priority order.

    title, title + year, every alternate title, every alternate + year, then
    the same list again with year tokens removed. Duplicates keep their first
    position.
    """
    if metadata is None or not normalize_query(metadata.title):
        return []

    year = str(metadata.year) if metadata.year else ""
    base = normalize_query(metadata.title)
    alternates = [a for a in (normalize_query(t) for t in metadata.alternate_titles) if a]

    candidates: List[str] = [base]
    if year:
        candidates.append(f"{base} {year}")
    candidates.extend(alternates)
    if year:
        candidates.extend(f"{alt} {year}" for alt in alternates)

    candidates.extend(strip_years(q) for q in list(candidates))

    ordered: List[str] = []
    seen = set()
    for query in candidates:
        if query and query not in seen:
            seen.add(query)
            ordered.append(query)
    return ordered

"""Session cookies captured from the subtitle index.

The index hands out a short-lived cookie on the detail page that the later
archive download has to present again. Only ``name=value`` pairs are kept so
that attributes like ``Path`` or ``Expires`` never leak into a replayed
``Cookie`` header, and the token remembers the origin it came from so it is
never sent anywhere else.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Tuple
from urllib.parse import urlsplit

_DEFAULT_PORTS = {"http": 80, "https": 443}


def origin_of(url: str) -> str:
    """Return ``scheme://host:port`` for ``url`` (lower-cased, explicit port)."""
    parts = urlsplit(url or "")
    scheme = (parts.scheme or "").lower()
    host = (parts.hostname or "").lower()
    if not scheme or not host:
        return ""
    try:
        port = parts.port or _DEFAULT_PORTS.get(scheme)
    except ValueError:
        return ""
    return f"{scheme}://{host}:{port}"


def _split_pair(chunk: str) -> Optional[Tuple[str, str]]:
    if "=" not in chunk:
        return None
    name, value = chunk.split("=", 1)
    name = name.strip()
    if not name:
        return None
    return name, value.strip()


@dataclass(frozen=True)
class SessionToken:
    pairs: Tuple[Tuple[str, str], ...]
    origin: str

    @classmethod
    def from_set_cookie(cls, headers: Iterable[str], url: str) -> Optional["SessionToken"]:
        """Collapse ``Set-Cookie`` header values into one replayable token."""
        merged: dict = {}
        for raw in headers:
            pair = _split_pair((raw or "").split(";", 1)[0])
            if pair:
                # A later Set-Cookie for the same name wins, as in a browser
                merged[pair[0]] = pair[1]
        if not merged:
            return None
        return cls(pairs=tuple(merged.items()), origin=origin_of(url))

    @classmethod
    def parse(cls, header_value: Optional[str], url: str) -> Optional["SessionToken"]:
        """Rebuild a token from a ``Cookie`` header value bound to ``url``'s origin."""
        if not header_value:
            return None
        pairs = [p for p in (_split_pair(c) for c in header_value.split(";")) if p]
        if not pairs:
            return None
        return cls(pairs=tuple(pairs), origin=origin_of(url))

    def header_value(self) -> str:
        return "; ".join(f"{name}={value}" for name, value in self.pairs)

    def applies_to(self, url: str) -> bool:
        return bool(self.origin) and origin_of(url) == self.origin

    def __str__(self) -> str:
        return self.header_value()

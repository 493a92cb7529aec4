# -*- coding: utf-8 -*-
"""Logging setup and request correlation shared by the wrapper modules.

Adds optional structured JSON logging for observability.
"""

from __future__ import annotations

import contextvars
import datetime
import json
import logging
import sys

# Per-request context for correlation
REQUEST_ID: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="")

TEXT_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        payload = {
            "ts": datetime.datetime.now(datetime.timezone.utc).isoformat(timespec="seconds"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        rid = REQUEST_ID.get("")
        if rid:
            payload["rid"] = rid
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


class RequestIdFilter(logging.Filter):
    """Prefix plain-text records with the current request id."""

    def filter(self, record: logging.LogRecord) -> bool:
        rid = REQUEST_ID.get("")
        if rid and not getattr(record, "_rid_tagged", False):
            if record.args:
                rid = rid.replace("%", "%%")
            record.msg = f"[rid={rid}] {record.msg}"
            record._rid_tagged = True
        return True


def setup_logging(level: str = "INFO", json_logs: bool = False) -> None:
    root = logging.getLogger()
    if getattr(root, "_subs_wrapper_configured", False):
        return

    handler = logging.StreamHandler(sys.stdout)
    if json_logs:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt="%H:%M:%S"))
        handler.addFilter(RequestIdFilter())

    root.addHandler(handler)
    root.setLevel(level.upper())
    root._subs_wrapper_configured = True  # type: ignore[attr-defined]

    logging.getLogger("subs_wrapper").setLevel(level.upper())
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    charset_logger = logging.getLogger("charset_normalizer")
    charset_logger.setLevel(logging.WARNING)
    charset_logger.propagate = False


def browser_headers(user_agent: str, referer: str | None = None) -> dict:
    """Return realistic browser-like headers."""
    headers = {
        "User-Agent": user_agent,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "sl,en-US;q=0.9,en;q=0.8",
    }
    if referer:
        headers["Referer"] = referer
    return headers

from __future__ import annotations

import hashlib
import logging
import time
import uuid
from typing import Optional
from urllib.parse import unquote

import httpx
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

from . import __version__
from .common import REQUEST_ID, setup_logging
from .deferred import decode as decode_deferred, sanitize_name
from .errors import TranscodeError
from .models import MEDIA_TYPES, MediaReference
from .service import search_subtitles
from .settings import Settings, settings
from .throttle import RequestThrottle
from .transcode import ArchiveTranscoder, describe, parse_session

# ---------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------
setup_logging(settings.log_level, settings.json_logs)
log = logging.getLogger("subs_wrapper.app")

SRT_MEDIA_TYPE = "application/x-subrip; charset=utf-8"

REQ_LATENCY = Histogram("subs_wrapper_request_seconds", "Request latency seconds", ["route"])
SEARCH_COUNT = Counter("subs_wrapper_search_total", "Subtitle searches", ["media_type"])
DOWNLOAD_COUNT = Counter("subs_wrapper_download_total", "Deferred subtitle downloads", ["outcome"])

# Shared by every request: the only cross-request resource is the index's patience
_THROTTLE: Optional[RequestThrottle] = None


def _throttle() -> RequestThrottle:
    global _THROTTLE
    if _THROTTLE is None:
        _THROTTLE = RequestThrottle(settings.outbound_max_concurrent, settings.outbound_min_interval)
    return _THROTTLE


def build_client(cfg: Settings) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=cfg.request_timeout)


# ---------------------------------------------------------------------
# App + middleware
# ---------------------------------------------------------------------
app = FastAPI(title="Podnapisi UTF-8 Wrapper")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "HEAD", "OPTIONS"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    incoming = request.headers.get("x-request-id")
    rid = (incoming or uuid.uuid4().hex[:16])[:64]
    token = REQUEST_ID.set(rid)
    try:
        response = await call_next(request)
    finally:
        REQUEST_ID.reset(token)
    response.headers["X-Request-ID"] = rid
    return response


# ---------------------------------------------------------------------
# Manifest / health
# ---------------------------------------------------------------------
MANIFEST = {
    "id": "subs-wrapper",
    "version": __version__,
    "name": "Podnapisi UTF-8 Wrapper",
    "description": "ZIP/CP1250 → UTF-8 .srt (ExoPlayer) + podnapisi.net fallback search",
    "resources": ["subtitles"],
    "types": list(MEDIA_TYPES),
    # IMDb and TMDb ids are both accepted
    "idPrefixes": ["tt", "tmdb"],
    "catalogs": [],
    "behaviorHints": {"configurable": False, "configurationRequired": False},
}


@app.get("/")
async def index() -> JSONResponse:
    return JSONResponse({"status": "ok", "manifest": "/manifest.json", "name": MANIFEST["name"]})


@app.get("/health")
async def health() -> JSONResponse:
    return JSONResponse({"ok": True, "version": __version__})


@app.get("/manifest.json")
async def manifest() -> JSONResponse:
    return JSONResponse(MANIFEST)


@app.get("/metrics")
async def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


# ---------------------------------------------------------------------
# Subtitle search
# ---------------------------------------------------------------------
def _public_base_url(request: Request) -> str:
    if settings.public_base_url:
        return settings.public_base_url.rstrip("/")
    # Respect incoming scheme by default; allow forwarding/override for proxies
    base = str(request.base_url).rstrip("/")
    xf_proto = request.headers.get("x-forwarded-proto")
    if settings.force_https or (xf_proto and xf_proto.lower() == "https"):
        base = base.replace("http://", "https://", 1)
    return base


async def _subtitles_response(request: Request, media_type: str, item_id: str, extra: Optional[str]) -> JSONResponse:
    t0 = time.time()
    if media_type not in MEDIA_TYPES:
        raise HTTPException(status_code=404, detail="Unsupported media type")
    SEARCH_COUNT.labels(media_type=media_type).inc()

    ref = MediaReference(media_type=media_type, media_id=unquote(item_id), extra=extra or None)
    async with build_client(settings) as client:
        subtitles = await search_subtitles(client, settings, ref, _public_base_url(request), throttle=_throttle())

    REQ_LATENCY.labels(route="subtitles").observe(time.time() - t0)
    return JSONResponse({"subtitles": subtitles})


@app.get("/subtitles/{media_type}/{item_id}.json")
async def subtitles(media_type: str, item_id: str, request: Request) -> JSONResponse:
    return await _subtitles_response(request, media_type, item_id, None)


# The extra segment (e.g. "1:1") is forwarded upstream verbatim
@app.get("/subtitles/{media_type}/{item_id}/{extra}.json")
async def subtitles_with_extra(media_type: str, item_id: str, extra: str, request: Request) -> JSONResponse:
    return await _subtitles_response(request, media_type, item_id, extra)


# ---------------------------------------------------------------------
# Deferred download: archive/raw subtitle -> UTF-8 .srt
# ---------------------------------------------------------------------
@app.api_route("/srt", methods=["GET", "HEAD"])
async def serve_srt(request: Request) -> Response:
    t0 = time.time()
    try:
        params = decode_deferred(str(request.url), settings.default_charset)
    except ValueError:
        return PlainTextResponse("Missing zip", status_code=400)

    filename = sanitize_name(params.name)
    charset = params.charset.lower()
    session_token = parse_session(params.cookie, params.referer, params.archive_url)

    try:
        async with build_client(settings) as client:
            content = await ArchiveTranscoder(client, settings).transcode(
                params.archive_url, charset, session_token=session_token, referer=params.referer
            )
    except TranscodeError as exc:
        status_code, message = describe(exc)
        log.error("Subtitle error (%s): %s", type(exc).__name__, exc)
        DOWNLOAD_COUNT.labels(outcome=type(exc).__name__).inc()
        return PlainTextResponse(message, status_code=status_code)

    DOWNLOAD_COUNT.labels(outcome="ok").inc()
    REQ_LATENCY.labels(route="srt").observe(time.time() - t0)

    current_etag = f'W/"{hashlib.md5(content).hexdigest()}"'
    headers = {
        "Content-Disposition": f'inline; filename="{filename}"',
        "Cache-Control": "public, max-age=3600",
        "ETag": current_etag,
    }
    inm = request.headers.get("if-none-match")
    if inm and inm.strip() == current_etag:
        return Response(status_code=304, headers=headers)
    if request.method == "HEAD":
        headers["Content-Length"] = str(len(content))
        return Response(status_code=200, headers=headers, media_type=SRT_MEDIA_TYPE)
    return Response(content=content, headers=headers, media_type=SRT_MEDIA_TYPE)


# ---------------------------------------------------------------------
# Debug
# ---------------------------------------------------------------------
@app.get("/debug/{path:path}")
async def debug(path: str, request: Request) -> JSONResponse:
    return JSONResponse(
        {
            "method": request.method,
            "path": request.url.path,
            "params": {"path": path},
            "query": dict(request.query_params),
            "note": "Example: /debug/subtitles/series/tt0944947/1:1.json",
        }
    )

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, List, Optional, Sequence

from .models import MediaMetadata, ResolvedArchive, SubtitleItem
from .queries import build_queries
from .settings import Settings

log = logging.getLogger("subs_wrapper.fallback")

SearchFn = Callable[[str, str], Awaitable[List[str]]]
ResolveFn = Callable[[str], Awaitable[Optional[ResolvedArchive]]]


class FallbackOrchestrator:
    """Priority-tiered search across languages, queries and detail links.

    Each language is a tier. The queries of a tier run concurrently (bounded
    by ``concurrency``); inside one query the links are resolved in the order
    the search returned them. The first resolved archive cancels everything
    still running and is the only result. A tier is started only after the
    previous one has failed completely.
    """

    def __init__(
        self,
        search: SearchFn,
        resolve: ResolveFn,
        languages: Sequence[str],
        concurrency: int = 1,
        labels: Optional[dict] = None,
    ) -> None:
        self._search = search
        self._resolve = resolve
        self._languages = list(languages)
        self._concurrency = max(1, concurrency)
        self._labels = labels or {}

    @classmethod
    def from_settings(cls, settings: Settings, search: SearchFn, resolve: ResolveFn) -> "FallbackOrchestrator":
        return cls(
            search=search,
            resolve=resolve,
            languages=settings.languages,
            concurrency=settings.fallback_concurrency,
            labels=settings.language_labels,
        )

    async def find_fallback(self, metadata: Optional[MediaMetadata]) -> Optional[SubtitleItem]:
        queries = build_queries(metadata)
        if not queries:
            log.info("[fallback] no title, skipping index search")
            return None

        t0 = time.perf_counter()
        for language in self._languages:
            hit = await self._run_tier(language, queries)
            if hit is not None:
                query, archive = hit
                log.info(
                    "[fallback] hit lang=%s query=%r archive=%s in %.0f ms",
                    language,
                    query,
                    archive.archive_url,
                    (time.perf_counter() - t0) * 1000,
                )
                return SubtitleItem.from_archive(
                    archive,
                    language=language,
                    label=self._labels.get(language, language),
                    title=f"Podnapisi: {query}",
                )
            log.info("[fallback] tier %s exhausted (%d queries)", language, len(queries))
        return None

    async def _run_tier(self, language: str, queries: List[str]):
        found = asyncio.Event()
        sem = asyncio.Semaphore(self._concurrency)

        async def attempt(query: str):
            async with sem:
                # Queued attempts must not start once another one has won
                if found.is_set():
                    return None
                try:
                    archive = await self._try_query(language, query, found)
                except asyncio.CancelledError:
                    raise
                except Exception as exc:  # noqa: BLE001
                    log.warning("[fallback] attempt %s/%r failed: %s", language, query, exc)
                    return None
                if archive is None:
                    return None
                found.set()
                return query, archive

        tasks = [asyncio.create_task(attempt(q)) for q in queries]
        try:
            pending = set(tasks)
            while pending:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                # Several tasks may finish in the same step; keep query order
                for task in tasks:
                    if task in done and not task.cancelled() and task.result() is not None:
                        return task.result()
            return None
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _try_query(self, language: str, query: str, found: asyncio.Event) -> Optional[ResolvedArchive]:
        links = await self._search(query, language)
        for link in links:
            if found.is_set():
                return None
            archive = await self._resolve(link)
            if archive is not None:
                return archive
        return None

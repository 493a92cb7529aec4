import asyncio

import pytest

from subs_wrapper.fallback import FallbackOrchestrator
from subs_wrapper.models import MediaMetadata, ResolvedArchive
from subs_wrapper.session import SessionToken

LABELS = {"sl": "Slovenian", "en": "English"}


class FakeIndex:
    """Records every search/resolve call; ``hits`` maps links to archives."""

    def __init__(self, results=None, hits=None, delays=None, fail_queries=()):
        self.results = results or {}
        self.hits = hits or {}
        self.delays = delays or {}
        self.fail_queries = set(fail_queries)
        self.searches = []
        self.resolves = []

    async def search(self, query, language):
        self.searches.append((language, query))
        if query in self.fail_queries:
            raise RuntimeError("parser exploded")
        await asyncio.sleep(self.delays.get((language, query), 0))
        return list(self.results.get((language, query), []))

    async def resolve(self, link):
        self.resolves.append(link)
        await asyncio.sleep(0)
        return self.hits.get(link)


def _archive(link):
    return ResolvedArchive(
        archive_url=f"{link}/download",
        referer_url=link,
        session_token=SessionToken.parse("sid=1", link),
    )


def _orchestrator(index, concurrency=1, languages=("sl", "en")):
    return FallbackOrchestrator(index.search, index.resolve, languages, concurrency=concurrency, labels=LABELS)


META = MediaMetadata(title="Example", year=2019)


@pytest.mark.asyncio
async def test_first_success_stops_everything():
    link = "https://idx.test/subtitles/1/example"
    index = FakeIndex(results={("sl", "Example"): [link]}, hits={link: _archive(link)})

    item = await _orchestrator(index).find_fallback(META)

    assert item.id == "sl"
    assert item.lang == "Slovenian"
    assert item.url == f"{link}/download"
    assert item.referer_url == link
    assert item.session_token.header_value() == "sid=1"
    assert item.title == "Podnapisi: Example"
    assert index.searches == [("sl", "Example")]
    assert index.resolves == [link]


@pytest.mark.asyncio
async def test_links_resolved_in_order_until_success():
    a, b, c = (f"https://idx.test/subtitles/{n}/x" for n in (1, 2, 3))
    index = FakeIndex(results={("sl", "Example"): [a, b, c]}, hits={b: _archive(b)})

    item = await _orchestrator(index).find_fallback(META)

    assert item.url == f"{b}/download"
    assert index.resolves == [a, b]
    assert index.searches == [("sl", "Example")]


@pytest.mark.asyncio
async def test_language_two_only_after_language_one_exhausted():
    link = "https://idx.test/subtitles/9/en"
    index = FakeIndex(results={("en", "Example 2019"): [link]}, hits={link: _archive(link)})

    item = await _orchestrator(index, concurrency=3).find_fallback(META)

    assert item.id == "en"
    assert item.lang == "English"
    sl_calls = [i for i, call in enumerate(index.searches) if call[0] == "sl"]
    en_calls = [i for i, call in enumerate(index.searches) if call[0] == "en"]
    assert {q for lang, q in index.searches if lang == "sl"} == {"Example", "Example 2019"}
    assert max(sl_calls) < min(en_calls)


@pytest.mark.asyncio
async def test_sequential_mode_preserves_query_order():
    link = "https://idx.test/subtitles/5/x"
    index = FakeIndex(results={("sl", "Example 2019"): [link]}, hits={link: _archive(link)})

    item = await _orchestrator(index, concurrency=1).find_fallback(META)

    assert item.title == "Podnapisi: Example 2019"
    assert index.searches == [("sl", "Example"), ("sl", "Example 2019")]


@pytest.mark.asyncio
async def test_concurrent_tier_cancels_slow_attempts():
    fast = "https://idx.test/subtitles/7/fast"
    slow = "https://idx.test/subtitles/8/slow"
    index = FakeIndex(
        results={("sl", "Example"): [slow], ("sl", "Example 2019"): [fast]},
        hits={fast: _archive(fast), slow: _archive(slow)},
        delays={("sl", "Example"): 5.0},
    )

    item = await asyncio.wait_for(_orchestrator(index, concurrency=2).find_fallback(META), timeout=2.0)

    assert item.url == f"{fast}/download"
    assert slow not in index.resolves
    assert all(lang == "sl" for lang, _ in index.searches)


@pytest.mark.asyncio
async def test_failing_attempt_is_skipped():
    link = "https://idx.test/subtitles/3/x"
    index = FakeIndex(
        results={("sl", "Example 2019"): [link]},
        hits={link: _archive(link)},
        fail_queries={"Example"},
    )

    item = await _orchestrator(index).find_fallback(META)

    assert item is not None
    assert index.searches == [("sl", "Example"), ("sl", "Example 2019")]


@pytest.mark.asyncio
async def test_exhausted_returns_none():
    index = FakeIndex()
    assert await _orchestrator(index).find_fallback(META) is None
    assert index.searches == [
        ("sl", "Example"),
        ("sl", "Example 2019"),
        ("en", "Example"),
        ("en", "Example 2019"),
    ]


@pytest.mark.parametrize("metadata", [None, MediaMetadata(title="")])
@pytest.mark.asyncio
async def test_no_title_skips_search(metadata):
    index = FakeIndex()
    assert await _orchestrator(index).find_fallback(metadata) is None
    assert index.searches == []
    assert index.resolves == []

"""Tests for entry filtering and the network probes behind named filters."""

from __future__ import annotations

import asyncio

import httpx
import pytest
import respx
from hypothesis import given, settings
from hypothesis import strategies as st

from feedrelay.feeds.filters import EntryFilter, FilterKind, NamedFilter, serialize_entry
from feedrelay.feeds.models import Link, NormalizedEntry
from feedrelay.feeds.probes import (
    UNAVAILABLE_PHRASE,
    InMemoryProbeCache,
    ProbeCaches,
    video_id_from_entry_id,
)

SHORTS = "https://www.youtube.com/shorts/{}"
WATCH = "https://www.youtube.com/watch?v={}"


def _entry(video_id: str, title: str, summary: str = "", href: str | None = None) -> NormalizedEntry:
    return NormalizedEntry(
        id=f"yt:video:{video_id}",
        title=title,
        summary=summary or None,
        links=[Link(href=href or WATCH.format(video_id), rel="alternate")],
    )


@pytest.fixture()
async def client():
    async with httpx.AsyncClient() as c:
        yield c


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------

class TestHelpers:
    def test_video_id_requires_three_parts(self) -> None:
        assert video_id_from_entry_id("yt:video:abc") == "abc"
        assert video_id_from_entry_id("tag:example.com,2024:post:1") is None
        assert video_id_from_entry_id("abc") is None

    def test_named_filter_from_unknown_name(self) -> None:
        assert NamedFilter.from_name("shorts").kind is FilterKind.SHORTS
        assert NamedFilter.from_name("weekends").kind is FilterKind.UNRECOGNIZED

    def test_serialization_is_case_folded(self) -> None:
        text = serialize_entry(_entry("a", "Hello WORLD"))
        assert "hello world" in text
        assert "WORLD" not in text


# ---------------------------------------------------------------------------
# text filters
# ---------------------------------------------------------------------------

class TestTextFilters:
    async def test_every_include_term_is_required(self, client) -> None:
        entries = [
            _entry("a", "Python and Rust"),
            _entry("b", "Python only"),
            _entry("c", "Nothing relevant"),
        ]
        kept = await EntryFilter(client, ProbeCaches(), includes=["python", "rust"]).apply(entries)
        assert [e.title for e in kept] == ["Python and Rust"]

    async def test_any_exclude_term_drops(self, client) -> None:
        entries = [
            _entry("a", "Weekly live stream"),
            _entry("b", "Tutorial", summary="contains a PREMIERE notice"),
            _entry("c", "Tutorial two"),
        ]
        kept = await EntryFilter(
            client, ProbeCaches(), excludes=["live", "premiere"]
        ).apply(entries)
        assert [e.id for e in kept] == ["yt:video:c"]

    async def test_terms_are_case_insensitive(self, client) -> None:
        entries = [_entry("a", "python tips")]
        kept = await EntryFilter(client, ProbeCaches(), includes=["PYTHON"]).apply(entries)
        assert len(kept) == 1

    async def test_terms_match_any_field(self, client) -> None:
        entries = [_entry("a", "Untitled", summary="deep dive into asyncio")]
        kept = await EntryFilter(client, ProbeCaches(), includes=["asyncio"]).apply(entries)
        assert len(kept) == 1

    async def test_empty_terms_are_ignored(self, client) -> None:
        entries = [_entry("a", "one"), _entry("b", "two")]
        entry_filter = EntryFilter(client, ProbeCaches(), includes=[""], excludes=[""])
        assert entry_filter.is_noop
        assert await entry_filter.apply(entries) == entries

    async def test_unknown_filter_is_ignored(self, client) -> None:
        entries = [_entry("a", "one")]
        entry_filter = EntryFilter(client, ProbeCaches(), filters=["weekends"])
        assert entry_filter.is_noop
        assert await entry_filter.apply(entries) == entries


# ---------------------------------------------------------------------------
# shorts filter
# ---------------------------------------------------------------------------

class TestShortsFilter:
    @respx.mock
    async def test_probe_distinguishes_shorts(self, client) -> None:
        respx.head(SHORTS.format("long1")).mock(
            return_value=httpx.Response(303, headers={"location": WATCH.format("long1")})
        )
        respx.head(SHORTS.format("short1")).mock(return_value=httpx.Response(200))
        caches = ProbeCaches()

        kept = await EntryFilter(client, caches, filters=["shorts"]).apply(
            [_entry("long1", "Long"), _entry("short1", "Short")]
        )

        assert [e.title for e in kept] == ["Long"]
        assert caches.shorts.get("short1") is True
        assert caches.shorts.get("long1") is False

    @respx.mock
    async def test_shorts_link_needs_no_probe(self, client) -> None:
        # No routes are registered: any request would fail the test.
        entry = _entry("s", "Short", href=SHORTS.format("s"))
        kept = await EntryFilter(client, ProbeCaches(), filters=["shorts"]).apply([entry])
        assert kept == []

    @respx.mock
    async def test_cached_verdict_skips_the_probe(self, client) -> None:
        caches = ProbeCaches(shorts=InMemoryProbeCache({"s1": True, "l1": False}))
        kept = await EntryFilter(client, caches, filters=["shorts"]).apply(
            [_entry("s1", "Short"), _entry("l1", "Long")]
        )
        assert [e.title for e in kept] == ["Long"]

    @respx.mock
    async def test_probe_failure_keeps_entry_uncached(self, client) -> None:
        respx.head(SHORTS.format("x")).mock(side_effect=httpx.ConnectTimeout("slow"))
        caches = ProbeCaches()

        kept = await EntryFilter(client, caches, filters=["shorts"]).apply([_entry("x", "X")])

        assert len(kept) == 1
        assert caches.shorts.get("x") is None

    @respx.mock
    async def test_entry_without_video_id_is_kept(self, client) -> None:
        entry = NormalizedEntry(id="tag-1234", title="Blog post")
        kept = await EntryFilter(client, ProbeCaches(), filters=["shorts"]).apply([entry])
        assert kept == [entry]


# ---------------------------------------------------------------------------
# country filter
# ---------------------------------------------------------------------------

class TestCountryFilter:
    @respx.mock
    async def test_geo_blocked_entries_are_dropped(self, client) -> None:
        respx.get(WATCH.format("blocked")).mock(
            return_value=httpx.Response(200, text=f"<html>{UNAVAILABLE_PHRASE}</html>")
        )
        respx.get(WATCH.format("open")).mock(
            return_value=httpx.Response(200, text="<html>player</html>")
        )
        caches = ProbeCaches()

        kept = await EntryFilter(client, caches, filters=["country"]).apply(
            [_entry("blocked", "Blocked"), _entry("open", "Open")]
        )

        assert [e.title for e in kept] == ["Open"]
        assert caches.country.get("blocked") is True


# ---------------------------------------------------------------------------
# composition
# ---------------------------------------------------------------------------

class TestComposition:
    @respx.mock
    async def test_text_filters_run_before_probes(self, client) -> None:
        # Only "keep" survives the text filter, so only its probe is mocked.
        respx.head(SHORTS.format("keep")).mock(
            return_value=httpx.Response(303, headers={"location": WATCH.format("keep")})
        )
        entries = [_entry("drop", "Excluded clip"), _entry("keep", "Good clip")]

        kept = await EntryFilter(
            client, ProbeCaches(), excludes=["excluded"], filters=["shorts"]
        ).apply(entries)

        assert [e.id for e in kept] == ["yt:video:keep"]

    async def test_order_is_preserved(self, client) -> None:
        entries = [_entry(str(i), f"episode {i} python") for i in range(20)]
        kept = await EntryFilter(client, ProbeCaches(), includes=["python"]).apply(entries)
        assert [e.id for e in kept] == [e.id for e in entries]


# ---------------------------------------------------------------------------
# properties
# ---------------------------------------------------------------------------

WORDS = ["python", "rust", "live", "premiere", "tips", "asyncio"]
word_sets = st.lists(st.sampled_from(WORDS), max_size=3, unique=True)


def _run(entry_filter_args: dict, entries: list[NormalizedEntry]) -> list[NormalizedEntry]:
    async def _apply() -> list[NormalizedEntry]:
        async with httpx.AsyncClient() as c:
            return await EntryFilter(c, **entry_filter_args).apply(entries)

    return asyncio.run(_apply())


@given(titles=st.lists(word_sets, min_size=1, max_size=6), includes=word_sets, excludes=word_sets)
@settings(max_examples=60, deadline=None)
def test_text_filters_keep_exactly_the_matching_entries(titles, includes, excludes) -> None:
    entries = [_entry(f"v{i}", " ".join(words) or "untitled") for i, words in enumerate(titles)]

    kept = _run({"caches": ProbeCaches(), "includes": includes, "excludes": excludes}, entries)

    expected = [
        e
        for e in entries
        if all(t in serialize_entry(e) for t in includes)
        and not any(t in serialize_entry(e) for t in excludes)
    ]
    assert kept == expected


@given(verdicts=st.lists(st.booleans(), min_size=1, max_size=8), excludes=word_sets)
@settings(max_examples=40, deadline=None)
def test_refiltering_with_fixed_cache_is_stable(verdicts, excludes) -> None:
    entries = [_entry(f"v{i}", WORDS[i % len(WORDS)]) for i in range(len(verdicts))]
    cache = InMemoryProbeCache({f"v{i}": short for i, short in enumerate(verdicts)})
    args = {"caches": ProbeCaches(shorts=cache), "excludes": excludes, "filters": ["shorts"]}

    first = _run(args, entries)

    assert _run(args, entries) == first
    assert _run(args, first) == first
    assert all(not verdicts[int(e.id.rsplit("v", 1)[1])] for e in first)

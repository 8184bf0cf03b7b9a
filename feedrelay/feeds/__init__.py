"""Feed package: fetch, parse, filter, convert and write syndication feeds."""

from feedrelay.feeds.converter import convert_feed
from feedrelay.feeds.fetcher import build_client, fetch_feed
from feedrelay.feeds.filters import EntryFilter
from feedrelay.feeds.models import ConvertedFeed, NormalizedFeed, RawResponse
from feedrelay.feeds.parser import parse_feed
from feedrelay.feeds.pipeline import FeedQuery, FeedResult, load_feed
from feedrelay.feeds.probes import InMemoryProbeCache, ProbeCaches
from feedrelay.feeds.writer import write_atom, write_rss

__all__ = [
    "build_client",
    "fetch_feed",
    "parse_feed",
    "EntryFilter",
    "convert_feed",
    "load_feed",
    "write_atom",
    "write_rss",
    "FeedQuery",
    "FeedResult",
    "InMemoryProbeCache",
    "ProbeCaches",
    "RawResponse",
    "NormalizedFeed",
    "ConvertedFeed",
]

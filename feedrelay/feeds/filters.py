"""Per-entry filtering.

An :class:`EntryFilter` combines three kinds of predicates, evaluated in this
order for every entry:

1. include terms: every term must occur in the entry's case-folded JSON
   serialization;
2. exclude terms: no term may occur in it;
3. named filters (``shorts``, ``country``) in the order the caller gave them,
   stopping at the first one that matches.

Entries are evaluated concurrently and the survivors are returned in their
original order.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Iterable, List, Optional, Sequence

import httpx

from feedrelay.feeds.models import NormalizedEntry
from feedrelay.feeds.probes import (
    ProbeCaches,
    probe_is_geo_blocked,
    probe_is_short,
    video_id_from_entry_id,
)
from feedrelay.logging import get_logger

logger = get_logger()

SHORTS_PATH = "/shorts/"


class FilterKind(str, Enum):
    SHORTS = "shorts"
    COUNTRY = "country"
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True)
class NamedFilter:
    kind: FilterKind
    name: str

    @classmethod
    def from_name(cls, name: str) -> "NamedFilter":
        try:
            kind = FilterKind(name)
        except ValueError:
            kind = FilterKind.UNRECOGNIZED
        return cls(kind=kind, name=name)


def serialize_entry(entry: NormalizedEntry) -> str:
    """Case-folded JSON text that include/exclude terms are matched against."""
    return json.dumps(asdict(entry), ensure_ascii=False, default=str).casefold()


class EntryFilter:
    """Composite predicate over feed entries.

    Args:
        client: HTTP client used by the network-backed filters.
        caches: Probe verdict caches shared across requests.
        includes: Terms that must all be present.
        excludes: Terms that must all be absent.
        filters: Named filters, evaluated in order.
        source: Feed URL, for log context only.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        caches: ProbeCaches,
        includes: Iterable[str] = (),
        excludes: Iterable[str] = (),
        filters: Iterable[str] = (),
        source: str = "",
    ) -> None:
        self.client = client
        self.caches = caches
        self.includes = [term.casefold() for term in includes if term]
        self.excludes = [term.casefold() for term in excludes if term]
        self.filters = [NamedFilter.from_name(name.casefold()) for name in filters if name]
        self.log = logger.bind(feed=source)
        for named in self.filters:
            if named.kind is FilterKind.UNRECOGNIZED:
                self.log.warning("filter_unknown", filter=named.name)

    @property
    def is_noop(self) -> bool:
        active = [f for f in self.filters if f.kind is not FilterKind.UNRECOGNIZED]
        return not (self.includes or self.excludes or active)

    async def apply(self, entries: Sequence[NormalizedEntry]) -> List[NormalizedEntry]:
        """Return the entries that survive every predicate, order preserved."""
        if self.is_noop:
            return list(entries)
        verdicts = await asyncio.gather(*(self.should_drop(entry) for entry in entries))
        return [entry for entry, drop in zip(entries, verdicts) if not drop]

    async def should_drop(self, entry: NormalizedEntry) -> bool:
        text = serialize_entry(entry)
        for term in self.includes:
            if term not in text:
                self.log.debug("entry_filtered", entry=entry.title, reason="missing_include", term=term)
                return True
        for term in self.excludes:
            if term in text:
                self.log.debug("entry_filtered", entry=entry.title, reason="excluded_text", term=term)
                return True

        for named in self.filters:
            if named.kind is FilterKind.SHORTS:
                matched = await self._is_short(entry)
            elif named.kind is FilterKind.COUNTRY:
                matched = await self._is_geo_blocked(entry)
            else:
                matched = False
            if matched:
                self.log.debug("entry_filtered", entry=entry.title, reason=named.kind.value)
                return True
        return False

    def _video_id(self, entry: NormalizedEntry, kind: FilterKind) -> Optional[str]:
        video_id = video_id_from_entry_id(entry.id)
        if video_id is None:
            self.log.warning("filter_missing_id", filter=kind.value, entry_id=entry.id)
        return video_id

    async def _is_short(self, entry: NormalizedEntry) -> bool:
        if any(SHORTS_PATH in link.href for link in entry.links):
            return True
        video_id = self._video_id(entry, FilterKind.SHORTS)
        if video_id is None:
            return False
        return bool(await probe_is_short(self.client, self.caches.shorts, video_id))

    async def _is_geo_blocked(self, entry: NormalizedEntry) -> bool:
        video_id = self._video_id(entry, FilterKind.COUNTRY)
        if video_id is None:
            return False
        return bool(await probe_is_geo_blocked(self.client, self.caches.country, video_id))

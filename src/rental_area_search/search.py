from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass
from operator import attrgetter
from typing import Callable, Iterable, List, Optional, Protocol, Tuple

from rental_area_search.errors import error_kind
from rental_area_search.logs import log_event
from rental_area_search.openrent.client import get_default_client
from rental_area_search.openrent.extract import extract_listings
from rental_area_search.openrent.models import Listing
from rental_area_search.region.area import Area, Polygon


logger = logging.getLogger("ras.search")


class ListingSource(Protocol):
    async def fetch_script(self, longitude: float, latitude: float, radius_km: int) -> str: ...


Extractor = Callable[[str], List[Listing]]


@dataclass(frozen=True)
class SearchResult:
    listings: Tuple[Listing, ...]
    polygons: Tuple[Polygon, ...]

    def to_dict(self) -> dict:
        return {
            "properties": [listing.to_dict() for listing in self.listings],
            "polygons": [polygon.to_dict() for polygon in self.polygons],
        }


def filter_listings(listings: Iterable[Listing], area: Area) -> List[Listing]:
    """Keep live listings inside the area, cheapest first.

    `sorted` is stable, so equal prices keep their source order.
    """

    kept = [
        listing
        for listing in listings
        if listing.live and area.contains(listing.longitude, listing.latitude)
    ]
    return sorted(kept, key=attrgetter("price"))


async def search(
    area: Area,
    *,
    source: Optional[ListingSource] = None,
    extractor: Optional[Extractor] = None,
) -> SearchResult:
    search_id = uuid.uuid4().hex[:12]
    start = time.perf_counter()
    center = area.center()
    radius_km = area.radius()
    source = source or get_default_client()
    extractor = extractor or extract_listings

    try:
        script = await source.fetch_script(center.longitude, center.latitude, radius_km)
        # V8 evaluation is CPU-bound; keep it off the event loop.
        candidates = await asyncio.to_thread(extractor, script)
    except Exception as exc:
        log_event(
            logger,
            "search_failed",
            level=logging.WARNING,
            search_id=search_id,
            error=error_kind(exc) or type(exc).__name__,
            detail=str(exc),
        )
        raise

    kept = filter_listings(candidates, area)
    log_event(
        logger,
        "search",
        search_id=search_id,
        center=center.to_pair(),
        radius_km=radius_km,
        candidates=len(candidates),
        kept=len(kept),
        seconds=round(time.perf_counter() - start, 6),
    )
    return SearchResult(listings=tuple(kept), polygons=area.polygons())

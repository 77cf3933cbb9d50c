import asyncio
import json
import logging

import pytest

from rental_area_search.errors import ScriptNotFoundError, SourceUnavailableError
from rental_area_search.openrent.models import Listing
from rental_area_search.region import Area
from rental_area_search.search import SearchResult, filter_listings, search


SQUARE = (
    '<kml xmlns="http://www.opengis.net/kml/2.2"><Placemark><Polygon>'
    "<outerBoundaryIs><LinearRing>"
    "<coordinates>0,0 10,0 10,10 0,10 0,0</coordinates>"
    "</LinearRing></outerBoundaryIs></Polygon></Placemark></kml>"
)


def _listing(id, lon, lat, price, live=True) -> Listing:
    return Listing(
        id=id,
        longitude=lon,
        latitude=lat,
        price=price,
        bedroom_count=1,
        shared=False,
        studio=False,
        live=live,
        furnished=False,
        url=f"https://www.openrent.co.uk/{id}",
    )


class FakeSource:
    def __init__(self, script="", error=None):
        self.script = script
        self.error = error
        self.calls = []

    async def fetch_script(self, longitude, latitude, radius_km):
        self.calls.append((longitude, latitude, radius_km))
        if self.error is not None:
            raise self.error
        return self.script


def test_filter_keeps_live_listings_inside_sorted_by_price():
    area = Area.from_kml(SQUARE)
    listings = [
        _listing(1, 5, 5, 700),
        _listing(2, 20, 20, 300),
        _listing(3, 1, 1, 500),
        _listing(4, 2, 2, 100, live=False),
    ]
    kept = filter_listings(listings, area)
    assert [l.price for l in kept] == [500, 700]
    assert [l.id for l in kept] == [3, 1]


def test_filter_sort_is_stable_for_equal_prices():
    area = Area.from_kml(SQUARE)
    listings = [
        _listing(10, 5, 5, 800),
        _listing(11, 6, 6, 600),
        _listing(12, 7, 7, 800),
        _listing(13, 8, 8, 600),
    ]
    assert [l.id for l in filter_listings(listings, area)] == [11, 13, 10, 12]


def test_filter_drops_boundary_points():
    area = Area.from_kml(SQUARE)
    assert filter_listings([_listing(1, 0, 5, 100), _listing(2, 10, 10, 100)], area) == []


def test_search_end_to_end_with_fixture_script(fixture_path, listing_script):
    area = Area.from_kml_file(fixture_path("area_with_hole.kml"))
    source = FakeSource(listing_script)

    result = asyncio.run(search(area, source=source))

    assert isinstance(result, SearchResult)
    assert len(source.calls) == 1
    lon, lat, radius = source.calls[0]
    assert lon == pytest.approx(-0.1)
    assert lat == pytest.approx(51.5)
    assert radius == 9

    # 1003 is not live, 1005 is outside, 1006 sits in the hole
    assert [l.id for l in result.listings] == [1002, 1001, 1004]
    assert [l.price for l in result.listings] == [950, 1500, 2100]
    assert result.polygons == area.polygons()

    payload = result.to_dict()
    assert set(payload) == {"properties", "polygons"}
    assert payload["properties"][0]["url"] == "https://www.openrent.co.uk/1002"
    assert len(payload["polygons"][0]["internals"]) == 1


def test_search_uses_injected_extractor():
    area = Area.from_kml(SQUARE)
    seen = []

    def extractor(script):
        seen.append(script)
        return [_listing(1, 5, 5, 900), _listing(2, 3, 3, 400)]

    result = asyncio.run(search(area, source=FakeSource("raw"), extractor=extractor))
    assert seen == ["raw"]
    assert [l.id for l in result.listings] == [2, 1]


@pytest.mark.parametrize(
    "error",
    [SourceUnavailableError("down"), ScriptNotFoundError("markup changed")],
)
def test_search_propagates_source_errors(error, caplog):
    area = Area.from_kml(SQUARE)
    caplog.set_level(logging.INFO, logger="ras.search")

    with pytest.raises(type(error)):
        asyncio.run(search(area, source=FakeSource(error=error)))

    events = [json.loads(r.getMessage()) for r in caplog.records if r.name == "ras.search"]
    assert events[-1]["event"] == "search_failed"
    assert events[-1]["error"] == type(error).__name__


def test_search_logs_summary_event(caplog):
    area = Area.from_kml(SQUARE)
    caplog.set_level(logging.INFO, logger="ras.search")

    asyncio.run(
        search(
            area,
            source=FakeSource("raw"),
            extractor=lambda script: [_listing(1, 5, 5, 900), _listing(2, 50, 50, 400)],
        )
    )

    events = [json.loads(r.getMessage()) for r in caplog.records if r.name == "ras.search"]
    assert len(events) == 1
    event = events[0]
    assert event["event"] == "search"
    assert event["candidates"] == 2
    assert event["kept"] == 1
    assert event["radius_km"] == area.radius()
    assert event["center"] == [5.0, 5.0]
    assert "search_id" in event and "seconds" in event

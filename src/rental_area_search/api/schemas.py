from __future__ import annotations

from typing import List, Tuple

from pydantic import BaseModel, Field


# [latitude, longitude]; the reverse of the internal order.
LatLng = Tuple[float, float]


class ListingOut(BaseModel):
    id: int
    longitude: float
    latitude: float
    price: int
    bedroom_count: int
    shared: bool
    studio: bool
    live: bool
    furnished: bool
    url: str


class PolygonOut(BaseModel):
    external: List[LatLng]
    internals: List[List[LatLng]] = Field(default_factory=list)


class SearchResponse(BaseModel):
    """Body of `POST /search`.

    `properties` is sorted by ascending price; `polygons` follows the
    order of the uploaded document.
    """

    properties: List[ListingOut] = Field(default_factory=list)
    polygons: List[PolygonOut] = Field(default_factory=list)

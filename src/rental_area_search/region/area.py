from __future__ import annotations

import math
from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple

from shapely.geometry import Point as ShapelyPoint

from rental_area_search.errors import EmptyRegionError
from rental_area_search.region.kml import (
    KMLSource,
    Primitive,
    Ring,
    parse_kml,
    primitives_bounds,
)


BBox = Tuple[float, float, float, float]

# Mean earth radius (IUGG), metres.
EARTH_RADIUS_M = 6371008.8


@dataclass(frozen=True)
class Point:
    longitude: float
    latitude: float

    def to_pair(self) -> List[float]:
        # Map clients expect [lat, lng].
        return [self.latitude, self.longitude]


@dataclass(frozen=True)
class Polygon:
    external: Tuple[Point, ...]
    internals: Tuple[Tuple[Point, ...], ...] = ()

    def to_dict(self) -> dict:
        return {
            "external": [p.to_pair() for p in self.external],
            "internals": [[p.to_pair() for p in ring] for ring in self.internals],
        }


def haversine_m(lon1: float, lat1: float, lon2: float, lat2: float) -> float:
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlmb = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2.0) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2.0) ** 2
    return 2.0 * EARTH_RADIUS_M * math.asin(math.sqrt(min(1.0, a)))


def _points(ring: Ring) -> Tuple[Point, ...]:
    return tuple(Point(longitude=x, latitude=y) for x, y in ring)


class Area:
    """A user-drawn search region.

    The bounding rectangle is computed once from all primitives; center and
    radius derive from it on demand. `contains` is the exact test, the
    circle is only a coarse superset handed to the listings source.
    """

    __slots__ = ("_primitives", "_bounds")

    def __init__(self, primitives: Tuple[Primitive, ...]):
        bounds = primitives_bounds(primitives)
        if bounds is None or any(math.isnan(v) for v in bounds):
            raise EmptyRegionError("region has no bounding rectangle")
        self._primitives = tuple(primitives)
        self._bounds: BBox = bounds

    @classmethod
    def from_kml(cls, document: KMLSource) -> "Area":
        return cls(parse_kml(document))

    @classmethod
    def from_kml_file(cls, path) -> "Area":
        return cls(parse_kml(Path(path)))

    @property
    def bounds(self) -> BBox:
        return self._bounds

    @property
    def primitives(self) -> Tuple[Primitive, ...]:
        return self._primitives

    def center(self) -> Point:
        min_lon, min_lat, max_lon, max_lat = self._bounds
        return Point(
            longitude=(min_lon + max_lon) / 2.0,
            latitude=(min_lat + max_lat) / 2.0,
        )

    def radius(self) -> int:
        """Kilometres from the bounding-rectangle center to its max corner.

        Rounded half away from zero. North of the equator the southern
        corners are slightly farther than the max corner: negligible for
        city-sized regions, a few percent for boxes spanning several degrees.
        """

        c = self.center()
        _, _, max_lon, max_lat = self._bounds
        km = haversine_m(c.longitude, c.latitude, max_lon, max_lat) / 1000.0
        return int(math.floor(km + 0.5))

    def contains(self, longitude: float, latitude: float) -> bool:
        # Boundary-exclusive: a point on an edge or inside a hole is outside.
        pt = ShapelyPoint(longitude, latitude)
        return any(p.geometry.contains(pt) for p in self._primitives)

    def polygons(self) -> Tuple[Polygon, ...]:
        out: List[Polygon] = []
        for p in self._primitives:
            if p.kind != "Polygon":
                continue
            exterior, *holes = p.rings
            out.append(
                Polygon(
                    external=_points(exterior),
                    internals=tuple(_points(h) for h in holes),
                )
            )
        return tuple(out)

    def __repr__(self) -> str:
        return f"Area(primitives={len(self._primitives)}, bounds={self._bounds!r})"


def parse_area(document: KMLSource) -> Area:
    """Parse a KML document (markup or a path) into an `Area`."""

    return Area.from_kml(document)

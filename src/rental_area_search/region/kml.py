from __future__ import annotations

import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Iterator, List, Tuple, Union

import lxml.etree as ET
from shapely.geometry import LinearRing, LineString, Point, Polygon
from shapely.errors import GEOSException
from shapely.geometry.base import BaseGeometry

from rental_area_search.errors import ParseError


Coord = Tuple[float, float]
Ring = Tuple[Coord, ...]
KMLSource = Union[bytes, str, os.PathLike]

_PRIMITIVES = ("Point", "LineString", "LinearRing", "Polygon")

# no network, no entity expansion, comments dropped
_PARSER = ET.XMLParser(
    resolve_entities=False,
    no_network=True,
    remove_comments=True,
    huge_tree=False,
)


@dataclass(frozen=True)
class Primitive:
    """One spatial primitive of a region.

    `rings` holds polygon rings (exterior first) exactly as encoded in the
    document; it is empty for every other geometry kind.
    """

    kind: str
    geometry: BaseGeometry
    rings: Tuple[Ring, ...] = ()


def _local(tag: Any) -> str:
    if not isinstance(tag, str):
        return ""
    return ET.QName(tag).localname


def _children(element, name: str) -> Iterator[Any]:
    for child in element:
        if _local(child.tag) == name:
            yield child


def _first(element, name: str):
    return next(_children(element, name), None)


def parse_coordinates(text: str) -> Ring:
    """Parse a KML `<coordinates>` body: `lon,lat[,alt]` tuples split by whitespace."""

    out: List[Coord] = []
    for chunk in (text or "").split():
        parts = chunk.split(",")
        if len(parts) not in (2, 3):
            raise ParseError(f"invalid coordinate tuple {chunk!r}")
        try:
            lon = float(parts[0])
            lat = float(parts[1])
        except ValueError as exc:
            raise ParseError(f"invalid coordinate tuple {chunk!r}") from exc
        if not (math.isfinite(lon) and math.isfinite(lat)):
            raise ParseError(f"non-finite coordinate {chunk!r}")
        if not (-180.0 <= lon <= 180.0 and -90.0 <= lat <= 90.0):
            raise ParseError(f"coordinate out of range {chunk!r}")
        out.append((lon, lat))
    return tuple(out)


def _coordinates_of(element) -> Ring:
    node = _first(element, "coordinates")
    if node is None:
        raise ParseError(f"<{_local(element.tag)}> has no <coordinates>")
    return parse_coordinates(node.text or "")


def _ring_of(boundary) -> Ring:
    ring = _first(boundary, "LinearRing")
    if ring is None:
        raise ParseError(f"<{_local(boundary.tag)}> has no <LinearRing>")
    coords = _coordinates_of(ring)
    if len(coords) < 3:
        raise ParseError("polygon ring needs at least three positions")
    return coords


def _polygon(element) -> Primitive:
    outer = _first(element, "outerBoundaryIs")
    if outer is None:
        raise ParseError("<Polygon> has no <outerBoundaryIs>")
    exterior = _ring_of(outer)
    interiors = tuple(_ring_of(b) for b in _children(element, "innerBoundaryIs"))
    try:
        geometry = Polygon(exterior, interiors)
    except (ValueError, GEOSException) as exc:
        raise ParseError(f"invalid polygon: {exc}") from exc
    return Primitive("Polygon", geometry, (exterior,) + interiors)


def _primitive(element) -> Primitive:
    kind = _local(element.tag)
    if kind == "Polygon":
        return _polygon(element)
    coords = _coordinates_of(element)
    if kind == "Point" and len(coords) != 1:
        raise ParseError("<Point> needs exactly one position")
    try:
        if kind == "Point":
            return Primitive(kind, Point(coords[0]))
        if kind == "LineString":
            return Primitive(kind, LineString(coords))
        return Primitive(kind, LinearRing(coords))
    except (ValueError, GEOSException) as exc:
        raise ParseError(f"invalid <{kind}>: {exc}") from exc


def _walk(element) -> Iterator[Primitive]:
    for child in element:
        name = _local(child.tag)
        if name in _PRIMITIVES:
            yield _primitive(child)
        else:
            # Document, Folder, Placemark and MultiGeometry are all containers.
            yield from _walk(child)


def _read(document: KMLSource) -> bytes:
    if isinstance(document, bytes):
        return document
    if isinstance(document, str):
        return document.encode("utf-8")
    try:
        return Path(document).read_bytes()
    except OSError as exc:
        raise ParseError(f"cannot read {document!s}: {exc}") from exc


def parse_kml(document: KMLSource) -> Tuple[Primitive, ...]:
    """Decode a KML document into its spatial primitives, in document order.

    `bytes` and `str` are treated as markup; anything path-like is read
    from disk first.
    """

    data = _read(document)
    try:
        root = ET.fromstring(data.strip(), parser=_PARSER)
    except (ET.XMLSyntaxError, ValueError) as exc:
        raise ParseError(f"malformed KML: {exc}") from exc
    if _local(root.tag) != "kml":
        raise ParseError(f"expected <kml> root, got <{_local(root.tag)}>")
    return tuple(_walk(root))


def primitives_bounds(primitives: Iterable[Primitive]) -> Tuple[float, float, float, float] | None:
    """Bounding rectangle over all primitives, or None when nothing has extent."""

    boxes = [p.geometry.bounds for p in primitives if not p.geometry.is_empty]
    if not boxes:
        return None
    return (
        min(b[0] for b in boxes),
        min(b[1] for b in boxes),
        max(b[2] for b in boxes),
        max(b[3] for b in boxes),
    )

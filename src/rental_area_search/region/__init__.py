from rental_area_search.region.area import Area, Point, Polygon, haversine_m, parse_area
from rental_area_search.region.kml import Primitive, parse_kml

__all__ = [
    "Area",
    "Point",
    "Polygon",
    "Primitive",
    "haversine_m",
    "parse_area",
    "parse_kml",
]

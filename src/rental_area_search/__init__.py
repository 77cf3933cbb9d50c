"""Rental listings inside a user-drawn KML region.

The public entry points are importable lazily so that `python -m
rental_area_search` does not pull in the web stack up front.
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["Area", "Listing", "SearchResult", "parse_area"]


def __getattr__(name: str):
    if name in ("Area", "parse_area"):
        from .region import Area, parse_area

        return {"Area": Area, "parse_area": parse_area}[name]
    if name == "Listing":
        from .openrent.models import Listing

        return Listing
    if name == "SearchResult":
        from .search import SearchResult

        return SearchResult
    raise AttributeError(name)

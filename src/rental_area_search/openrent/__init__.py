from rental_area_search.openrent.client import (
    OpenRentClient,
    close_default_client,
    find_listing_script,
    get_default_client,
)
from rental_area_search.openrent.extract import extract_listings
from rental_area_search.openrent.models import Listing

__all__ = [
    "Listing",
    "OpenRentClient",
    "close_default_client",
    "extract_listings",
    "find_listing_script",
    "get_default_client",
]

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Listing:
    """One rental record recovered from the search page script.

    `bedroom_count` keeps the source's sentinel values untouched.
    """

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

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "longitude": self.longitude,
            "latitude": self.latitude,
            "price": self.price,
            "bedroom_count": self.bedroom_count,
            "shared": self.shared,
            "studio": self.studio,
            "live": self.live,
            "furnished": self.furnished,
            "url": self.url,
        }


def listing_url(base: str, listing_id: int) -> str:
    if not base.endswith("/"):
        base = base + "/"
    return f"{base}{listing_id}"

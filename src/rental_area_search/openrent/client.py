from __future__ import annotations

import logging
import os
from typing import Optional

import httpx
from parsel import Selector

from rental_area_search.errors import ScriptNotFoundError, SourceUnavailableError
from rental_area_search.settings import get_settings


SCRIPT_MARKER = "// Initialise Variables for search js"
SCRIPT_CSS = 'script[type="text/javascript"]'

logger = logging.getLogger("ras.openrent")


def find_listing_script(html_text: str) -> str:
    """Return the text of the search-initialisation `<script>` block."""

    selector = Selector(text=html_text or "<html></html>")
    for node in selector.css(SCRIPT_CSS):
        text = "".join(node.xpath("text()").getall())
        if SCRIPT_MARKER in text:
            return text
    raise ScriptNotFoundError("listing script not found in search page")


def search_params(longitude: float, latitude: float, radius_km: int) -> dict:
    return {"lngn": float(longitude), "latn": float(latitude), "area": int(radius_km)}


class OpenRentClient:
    """Fetches the OpenRent commute-time search page for a circle.

    One attempt per call; retry policy belongs to the caller. The
    `httpx.AsyncClient` is created lazily and reused for pooling.
    """

    def __init__(
        self,
        search_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
        user_agent: Optional[str] = None,
    ):
        settings = get_settings()
        self.search_url = search_url or settings.source_url
        self.timeout = timeout if timeout is not None else settings.http_timeout_s
        self.user_agent = user_agent or settings.user_agent
        self._client = client
        self._owns_client = client is None

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        use_no_proxy = (
            os.environ.get("NO_PROXY_LOOKUP") == "1"
            or os.environ.get("CI") == "1"
        )
        self._client = httpx.AsyncClient(
            timeout=self.timeout, follow_redirects=True, trust_env=not use_no_proxy
        )
        return self._client

    async def fetch_page(self, longitude: float, latitude: float, radius_km: int) -> str:
        client = self._ensure_client()
        headers = {
            "User-Agent": self.user_agent,
            "Accept": "text/html,application/xhtml+xml",
        }
        try:
            response = await client.get(
                self.search_url,
                params=search_params(longitude, latitude, radius_km),
                headers=headers,
            )
        except httpx.HTTPError as exc:
            raise SourceUnavailableError(
                f"{type(exc).__name__} fetching {self.search_url}"
            ) from exc
        if response.status_code >= 400:
            logger.warning(
                "search page returned HTTP %s for %s", response.status_code, response.url
            )
        return response.text

    async def fetch_script(self, longitude: float, latitude: float, radius_km: int) -> str:
        html_text = await self.fetch_page(longitude, latitude, radius_km)
        return find_listing_script(html_text)

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None


_default_client: Optional[OpenRentClient] = None


def get_default_client() -> OpenRentClient:
    global _default_client
    if _default_client is None:
        _default_client = OpenRentClient()
    return _default_client


async def close_default_client() -> None:
    global _default_client
    if _default_client is not None:
        await _default_client.aclose()
    _default_client = None

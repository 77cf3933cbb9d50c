from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.staticfiles import StaticFiles

from rental_area_search import __version__
from rental_area_search.api.schemas import SearchResponse
from rental_area_search.errors import ParseError, SearchError
from rental_area_search.logs import log_event
from rental_area_search.openrent.client import close_default_client
from rental_area_search.region.area import Area
from rental_area_search.search import search
from rental_area_search.settings import get_settings


logger = logging.getLogger("ras.api")

SEARCH_FAILED = "search failed"


def health():
    return {"status": "ok"}


async def _read_upload(request: Request) -> bytes:
    """Return the first multipart field, whatever its name."""

    form = await request.form()
    try:
        for _, value in form.multi_items():
            if isinstance(value, str):
                return value.encode("utf-8")
            return await value.read()
    finally:
        await form.close()
    raise ParseError("upload has no fields")


app = FastAPI(title="rental-area-search", version=__version__)


if app:

    @app.get("/health")
    def health_route():
        return health()

    @app.post("/search", response_model=SearchResponse)
    async def search_route(request: Request):
        try:
            document = await _read_upload(request)
            area = Area.from_kml(document)
        except ParseError as exc:
            log_event(
                logger,
                "upload_rejected",
                level=logging.WARNING,
                error=type(exc).__name__,
                detail=str(exc),
            )
            raise HTTPException(status_code=500, detail=SEARCH_FAILED)

        try:
            result = await search(area)
        except SearchError:
            # Already logged with its kind by search().
            raise HTTPException(status_code=500, detail=SEARCH_FAILED)
        return result.to_dict()

    @app.on_event("shutdown")
    async def _close_http_client():
        await close_default_client()

    _static_dir = get_settings().static_dir
    if (_static_dir / "index.html").exists():
        app.mount(
            "/",
            StaticFiles(directory=str(_static_dir), html=True),
            name="static",
        )
    else:
        logger.warning("static dir %s has no index.html; map client not served", _static_dir)

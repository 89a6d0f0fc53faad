from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse

from ..auth.provider import AuthProvider
from ..core.errors import QueryError
from ..deps.auth import require_session
from ..services.charities import CATEGORIES, CharityFilters, filter_charities, list_charities, list_cities
from .common import render

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/search", response_class=HTMLResponse)
async def search_page(
    request: Request,
    q: str = "",
    city: str = "",
    category: str = "",
    auth: AuthProvider = Depends(require_session),
):
    filters = CharityFilters(query=q.strip(), city=city.strip(), category=category.strip())
    charities: list = []
    cities: list = []
    load_error = ""
    try:
        charities = await list_charities(auth.backend, auth.current_user.id)
        cities = await list_cities(auth.backend)
    except QueryError as exc:
        logger.error("Error fetching charities: %s", exc.message)
        load_error = "Could not load charities"
    results = filter_charities(charities, filters)
    context = {
        "filters": filters,
        "active_filters": filters.active(),
        "charities": results,
        "cities": cities,
        "categories": CATEGORIES,
        "load_error": load_error,
        "next_url": f"{request.url.path}?{request.url.query}" if request.url.query else request.url.path,
    }
    return render(request, auth, "search.html", context)

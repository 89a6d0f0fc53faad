from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse

from ..auth.provider import AuthProvider
from ..core.errors import QueryError
from ..deps.auth import require_session
from ..services.charities import (
    ALL_CATEGORIES,
    CATEGORIES,
    CharityFilters,
    filter_charities,
    list_mapped_charities,
)
from .common import render

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/map", response_class=HTMLResponse)
async def map_page(
    request: Request,
    q: str = "",
    category: str = ALL_CATEGORIES,
    selected: str = "",
    auth: AuthProvider = Depends(require_session),
):
    """Charities with coordinates; the list stands in for the interactive map."""

    filters = CharityFilters(query=q.strip(), category=category.strip(), match_address=True)
    charities: list = []
    load_error = ""
    try:
        charities = await list_mapped_charities(auth.backend)
    except QueryError as exc:
        logger.error("Error fetching charities: %s", exc.message)
        load_error = "Could not load charities"
    results = filter_charities(charities, filters)
    selected_charity = next((charity for charity in results if str(charity.get("id")) == selected), None)
    context = {
        "filters": filters,
        "charities": results,
        "selected_charity": selected_charity,
        "categories": (ALL_CATEGORIES, *CATEGORIES),
        "load_error": load_error,
    }
    return render(request, auth, "map.html", context)

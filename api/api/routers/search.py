"""Technician search for companies."""

from __future__ import annotations

import logging
from datetime import date

from aeromatch_core.matching.availability import SearchFilters
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from api.dependencies import CurrentUser, SessionDep
from api.middleware.rbac import Permission, require_permission
from api.schemas import SearchResponse
from api.services.search_service import SearchService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/search", tags=["search"])


class SearchRequest(BaseModel):
    """Request body for ``POST /search/technicians``.

    Dates are optional at the schema level so that a missing range is
    reported as a domain validation error (400) rather than a 422.
    """

    start_date: date | None = None
    end_date: date | None = None
    license_category: list[str] = Field(default_factory=list)
    aircraft_types: list[str] = Field(default_factory=list)
    specialties: list[str] = Field(default_factory=list)
    uk_license: bool = False
    right_to_work_uk: bool = False
    own_tools: bool = False


@router.post("/technicians", response_model=SearchResponse)
async def search_technicians(
    body: SearchRequest,
    session: SessionDep,
    user: CurrentUser = Depends(require_permission(Permission.SEARCH_TECHNICIANS)),
) -> SearchResponse:
    """Technicians available over the whole range, fresh availability first."""
    filters = SearchFilters(
        license_category=body.license_category,
        aircraft_types=body.aircraft_types,
        specialties=body.specialties,
        uk_license=body.uk_license,
        right_to_work_uk=body.right_to_work_uk,
        own_tools=body.own_tools,
    )
    results = await SearchService(session).search(body.start_date, body.end_date, filters)
    return SearchResponse(technicians=results, count=len(results))

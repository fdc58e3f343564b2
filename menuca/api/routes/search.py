"""
Public restaurant discovery for the storefront home page.

Ranking and distance filtering happen in the database: search goes
through the search_restaurants function, the featured strip reads
v_featured_restaurants.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from menuca.core.errors import BadRequestError
from menuca.database import get_db
from menuca.services.procedures import get_procedure_service

router = APIRouter(prefix="/api/search", tags=["Search"])


@router.get("/restaurants")
async def search_restaurants(
    q: Optional[str] = Query(None),
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    radius: float = Query(10.0, gt=0, le=100),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    if not q or not q.strip():
        raise BadRequestError("Search query is required")

    params = {"p_search_query": q.strip(), "p_limit": limit}
    # distance only narrows results when both coordinates are known
    if lat is not None and lng is not None:
        params.update(p_latitude=lat, p_longitude=lng, p_radius_km=radius)

    return await get_procedure_service().call(db, "search_restaurants", params)


@router.get("/featured")
async def featured_restaurants(
    limit: int = Query(12, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
) -> list[dict]:
    return await get_procedure_service().read_view(db, "v_featured_restaurants", limit=limit)

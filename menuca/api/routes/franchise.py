"""
Franchise chains: parent restaurants and their locations.

Reads come from reporting views and stored procedures; every write is an
edge function stamped with the acting user.
"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from menuca.api.deps import AdminContext, require_permission
from menuca.core.rbac import Action, Resource
from menuca.database import get_db
from menuca.schemas.onboarding import BulkFranchiseFeature, CreateFranchiseParent, LinkFranchiseChildren
from menuca.services.functions import invoke_or_raise
from menuca.services.procedures import get_procedure_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/franchise", tags=["Franchise"])

can_view = require_permission(Resource.FRANCHISE, Action.VIEW)
can_manage = require_permission(Resource.FRANCHISE, Action.MANAGE)


@router.get("/chains")
async def list_chains(
    admin: AdminContext = Depends(can_view),
    db: AsyncSession = Depends(get_db),
) -> list[dict]:
    return await get_procedure_service().read_view(
        db, "v_franchise_chains", order_by=[("location_count", True)],
    )


@router.post("/create-parent")
async def create_parent(
    body: CreateFranchiseParent,
    admin: AdminContext = Depends(can_manage),
):
    data = await invoke_or_raise(
        "create-franchise-parent",
        {**body.model_dump(), "created_by": admin.user.id},
        admin.access_token,
    )
    logger.info(f"Franchise parent '{body.franchise_brand_name}' created by {admin.admin_user.email}")
    return data


@router.post("/link-children")
async def link_children(
    body: LinkFranchiseChildren,
    admin: AdminContext = Depends(can_manage),
):
    payload = {"parent_restaurant_id": body.parent_restaurant_id, "updated_by": admin.user.id}
    if body.restaurant_id is not None:
        payload["restaurant_id"] = body.restaurant_id
    else:
        payload["child_restaurant_ids"] = body.child_restaurant_ids

    return await invoke_or_raise("convert-restaurant-to-franchise", payload, admin.access_token)


@router.post("/bulk-feature")
async def bulk_feature(
    body: BulkFranchiseFeature,
    admin: AdminContext = Depends(can_manage),
):
    data = await invoke_or_raise(
        "bulk-update-franchise-feature",
        {**body.model_dump(), "updated_by": admin.user.id},
        admin.access_token,
    )
    state = "enabled" if body.is_enabled else "disabled"
    logger.info(f"Franchise {body.parent_restaurant_id}: {body.feature_key} {state} for all locations")
    return data


@router.get("/{parent_id}")
async def get_franchise(
    parent_id: int,
    admin: AdminContext = Depends(can_view),
    db: AsyncSession = Depends(get_db),
) -> dict:
    procedures = get_procedure_service()
    summary = await procedures.call(db, "get_franchise_summary", {"p_parent_id": parent_id})
    children = await procedures.call(db, "get_franchise_children", {"p_parent_id": parent_id})
    if isinstance(summary, list):
        summary = summary[0] if summary else None
    return {"summary": summary, "children": children or []}


@router.get("/{parent_id}/analytics")
async def franchise_analytics(
    parent_id: int,
    period_days: int = Query(30, ge=1, le=365),
    admin: AdminContext = Depends(can_view),
    db: AsyncSession = Depends(get_db),
) -> dict:
    procedures = get_procedure_service()
    params = {"p_parent_id": parent_id, "p_period_days": period_days}

    analytics = await procedures.call(db, "get_franchise_analytics", params)
    comparison = await procedures.call(db, "compare_franchise_locations", params)
    coverage = await procedures.call(db, "get_franchise_menu_coverage", {"p_parent_id": parent_id})

    if isinstance(analytics, list):
        analytics = analytics[0] if analytics else None
    return {"analytics": analytics, "comparison": comparison or [], "menuCoverage": coverage}

"""
Custom domain monitoring: SSL and DNS verification status.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from menuca.api.deps import AdminContext, ensure_restaurant_access, require_permission
from menuca.core.errors import NotFoundError
from menuca.core.rbac import Action, Resource
from menuca.database import get_db
from menuca.models import RestaurantDomain
from menuca.services.functions import invoke_or_raise
from menuca.services.procedures import get_procedure_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/domains", tags=["Domains"])

can_view = require_permission(Resource.RESTAURANTS, Action.VIEW)

NEEDING_ATTENTION_LIMIT = 50


@router.get("/summary")
async def verification_summary(
    admin: AdminContext = Depends(can_view),
    db: AsyncSession = Depends(get_db),
) -> dict:
    rows = await get_procedure_service().read_view(db, "v_domain_verification_summary", limit=1)
    return rows[0] if rows else {}


@router.get("/needing-attention")
async def domains_needing_attention(
    admin: AdminContext = Depends(can_view),
    db: AsyncSession = Depends(get_db),
) -> list[dict]:
    rows = await get_procedure_service().read_view(
        db,
        "v_domains_needing_attention",
        order_by=[("priority_score", True), ("days_until_ssl_expires", False)],
        limit=NEEDING_ATTENTION_LIMIT,
    )
    if admin.restaurant_ids is not None:
        rows = [r for r in rows if r.get("restaurant_id") in admin.restaurant_ids]
    return rows


@router.post("/{domain_id}/verify")
async def verify_domain(
    domain_id: int,
    admin: AdminContext = Depends(require_permission(Resource.RESTAURANTS, Action.EDIT)),
    db: AsyncSession = Depends(get_db),
):
    domain = await db.get(RestaurantDomain, domain_id)
    if domain is None or domain.deleted_at is not None:
        raise NotFoundError("Domain not found")
    ensure_restaurant_access(admin, domain.restaurant_id)

    logger.info(f"Verification requested for {domain.domain}")
    return await invoke_or_raise("verify-single-domain", {"domain_id": domain_id}, admin.access_token)


@router.get("/{domain_id}/status")
async def domain_status(
    domain_id: int,
    admin: AdminContext = Depends(can_view),
    db: AsyncSession = Depends(get_db),
):
    data = await get_procedure_service().call(
        db, "get_domain_verification_status", {"p_domain_id": domain_id},
    )
    if not data:
        raise NotFoundError("Domain not found")
    return data[0] if isinstance(data, list) else data

"""
Admin dashboard figures and the order list.

Every query is limited to the admin's restaurants unless the admin is a
Super Admin.
"""

import logging
from collections import defaultdict
from datetime import datetime, time, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from menuca.api.deps import AdminContext, ensure_restaurant_access, require_permission
from menuca.core.errors import BadRequestError, NotFoundError
from menuca.core.rbac import Action, Resource
from menuca.database import get_db
from menuca.models import Order, OrderStatus, Restaurant, RestaurantStatus, User
from menuca.schemas.tablet import OrderStatusUpdate
from menuca.services.excel_manager import ExcelManager
from menuca.services.order_workflow import allowed_transitions, apply_status_change, can_transition
from menuca.tasks import enqueue, export_orders_to_excel
from menuca.utils import as_utc, model_to_dict, utcnow

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Dashboard"])

can_view_reports = require_permission(Resource.REPORTS, Action.VIEW)
can_view_orders = require_permission(Resource.ORDERS, Action.VIEW)
can_manage_orders = require_permission(Resource.ORDERS, Action.MANAGE)

TOP_RESTAURANT_DAYS = 30
TOP_RESTAURANT_COUNT = 5
EXPORT_LIMIT = 5000


def _scope(query, column, admin: AdminContext):
    if admin.restaurant_ids is not None:
        query = query.where(column.in_(admin.restaurant_ids))
    return query


def _orders_query(admin: AdminContext, restaurant_id: Optional[int], status: Optional[str]):
    query = select(Order)
    if restaurant_id is not None:
        ensure_restaurant_access(admin, restaurant_id)
        query = query.where(Order.restaurant_id == restaurant_id)
    else:
        query = _scope(query, Order.restaurant_id, admin)
    if status:
        query = query.where(Order.status == status)
    return query.order_by(Order.created_at.desc(), Order.id.desc())


def serialize_order_summary(order: Order) -> dict:
    data = model_to_dict(order)
    data["restaurant_name"] = order.restaurant.name if order.restaurant else None
    data["item_count"] = sum(item.quantity for item in order.items)
    return data


# =============================================================================
# DASHBOARD
# =============================================================================

@router.get("/api/dashboard/stats")
async def dashboard_stats(
    admin: AdminContext = Depends(can_view_reports),
    db: AsyncSession = Depends(get_db),
) -> dict:
    total_orders = await db.scalar(_scope(select(func.count(Order.id)), Order.restaurant_id, admin)) or 0
    total_revenue = await db.scalar(
        _scope(select(func.coalesce(func.sum(Order.total), 0.0)), Order.restaurant_id, admin)
    ) or 0.0
    active_restaurants = await db.scalar(_scope(
        select(func.count(Restaurant.id)).where(
            Restaurant.status == RestaurantStatus.ACTIVE.value,
            Restaurant.deleted_at.is_(None),
        ),
        Restaurant.id,
        admin,
    )) or 0

    if admin.restaurant_ids is None:
        total_users = await db.scalar(select(func.count(User.id))) or 0
    else:
        total_users = await db.scalar(_scope(
            select(func.count(func.distinct(Order.user_id))).where(Order.user_id.is_not(None)),
            Order.restaurant_id,
            admin,
        )) or 0

    since = utcnow() - timedelta(days=TOP_RESTAURANT_DAYS)
    top_query = _scope(
        select(
            Restaurant.id,
            Restaurant.name,
            func.count(Order.id).label("orders"),
            func.coalesce(func.sum(Order.total), 0.0).label("revenue"),
        )
        .select_from(Order)
        .join(Restaurant, Restaurant.id == Order.restaurant_id)
        .where(Order.created_at >= since)
        .group_by(Restaurant.id, Restaurant.name)
        .order_by(func.count(Order.id).desc())
        .limit(TOP_RESTAURANT_COUNT),
        Order.restaurant_id,
        admin,
    )
    top = (await db.execute(top_query)).all()

    return {
        "totalOrders": total_orders,
        "totalRevenue": round(float(total_revenue), 2),
        "activeRestaurants": active_restaurants,
        "totalUsers": total_users,
        "topRestaurants": [
            {"id": row.id, "name": row.name, "orders": row.orders, "revenue": round(float(row.revenue), 2)}
            for row in top
        ],
    }


@router.get("/api/dashboard/revenue")
async def revenue_by_day(
    days: int = Query(7, ge=1, le=365),
    restaurant_id: Optional[int] = Query(None),
    admin: AdminContext = Depends(can_view_reports),
    db: AsyncSession = Depends(get_db),
) -> list[dict]:
    """Revenue and order count per UTC day, oldest first; days without orders are zero."""
    today = utcnow().date()
    start = today - timedelta(days=days - 1)

    query = select(Order.created_at, Order.total).where(
        Order.created_at >= datetime.combine(start, time.min, tzinfo=timezone.utc),
        Order.status != OrderStatus.CANCELLED.value,
    )
    if restaurant_id is not None:
        ensure_restaurant_access(admin, restaurant_id)
        query = query.where(Order.restaurant_id == restaurant_id)
    else:
        query = _scope(query, Order.restaurant_id, admin)

    buckets: dict = defaultdict(lambda: {"revenue": 0.0, "orders": 0})
    for created_at, total in (await db.execute(query)).all():
        day = as_utc(created_at).date()
        buckets[day]["revenue"] += total or 0.0
        buckets[day]["orders"] += 1

    series = []
    for offset in range(days):
        day = start + timedelta(days=offset)
        bucket = buckets.get(day, {"revenue": 0.0, "orders": 0})
        series.append({
            "date": day.isoformat(),
            "label": day.strftime("%a"),
            "revenue": round(bucket["revenue"], 2),
            "orders": bucket["orders"],
        })
    return series


# =============================================================================
# ORDERS
# =============================================================================

@router.get("/api/orders")
async def list_orders(
    restaurant_id: Optional[int] = Query(None),
    status: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    admin: AdminContext = Depends(can_view_orders),
    db: AsyncSession = Depends(get_db),
) -> dict:
    if status and status not in {s.value for s in OrderStatus}:
        raise BadRequestError(f"Invalid status. Options: {[s.value for s in OrderStatus]}")

    query = _orders_query(admin, restaurant_id, status)
    total = await db.scalar(select(func.count()).select_from(query.order_by(None).subquery())) or 0
    orders = (await db.execute(query.offset(offset).limit(limit))).scalars().all()

    return {"total": total, "orders": [serialize_order_summary(o) for o in orders]}


@router.get("/api/orders/{order_id}")
async def get_order(
    order_id: int,
    admin: AdminContext = Depends(can_view_orders),
    db: AsyncSession = Depends(get_db),
) -> dict:
    order = await db.get(Order, order_id)
    if order is None:
        raise NotFoundError(f"Order #{order_id} not found")
    ensure_restaurant_access(admin, order.restaurant_id)

    data = serialize_order_summary(order)
    data["items"] = [model_to_dict(item) for item in order.items]
    data["allowed_transitions"] = allowed_transitions(order.status)
    return data


@router.patch("/api/orders/{order_id}/status")
async def update_order_status(
    order_id: int,
    body: OrderStatusUpdate,
    admin: AdminContext = Depends(can_manage_orders),
    db: AsyncSession = Depends(get_db),
) -> dict:
    order = await db.get(Order, order_id)
    if order is None:
        raise NotFoundError(f"Order #{order_id} not found")
    ensure_restaurant_access(admin, order.restaurant_id)

    previous = order.status
    if not can_transition(previous, body.status):
        raise BadRequestError(
            f"Cannot transition from '{previous}' to '{body.status}'",
            extra={"allowed_transitions": allowed_transitions(previous)},
        )

    await apply_status_change(
        db,
        order,
        body.status,
        notes=body.notes or f"Status changed to {body.status} by {admin.admin_user.email}",
        estimated_ready_minutes=body.estimated_ready_minutes,
        admin_id=admin.admin_user.id,
    )
    return {"success": True, "order": {"id": order.id, "previous_status": previous, "current_status": order.status}}


@router.post("/api/orders/export", status_code=202)
async def export_orders(
    restaurant_id: Optional[int] = Query(None),
    status: Optional[str] = Query(None),
    admin: AdminContext = Depends(can_manage_orders),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Queue an Excel export of the matching orders (newest first, capped)."""
    orders = (await db.execute(_orders_query(admin, restaurant_id, status).limit(EXPORT_LIMIT))).scalars().all()
    rows = [ExcelManager.order_to_row(o) for o in orders]

    queued = enqueue(export_orders_to_excel, rows, restaurant_id)
    logger.info(f"Export of {len(rows)} orders {'queued' if queued else 'not queued'} by {admin.admin_user.email}")
    return {"success": queued, "queued_orders": len(rows)}

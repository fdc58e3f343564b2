"""
Kitchen tablet API.

Tablets log in with their UUID and device key, then poll for new orders,
acknowledge them, print receipts and move orders through the status
workflow. Every endpoint except login and refresh needs a device session.
"""

import logging
from datetime import datetime, timedelta
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from menuca.api.deps import get_device_context
from menuca.core.errors import BadRequestError, ForbiddenError, NotFoundError, UnauthorizedError
from menuca.database import get_db
from menuca.models import Device, Order, OrderStatusHistory
from menuca.schemas.tablet import DeviceLogin, DeviceRefresh, Heartbeat, OrderStatusUpdate
from menuca.services.device_auth import (
    DeviceContext,
    create_device_session,
    get_default_device_config,
    get_device_config,
    refresh_session_token,
    update_device_heartbeat,
    verify_device_key,
)
from menuca.services.order_workflow import (
    allowed_transitions,
    apply_status_change,
    can_transition,
    to_tablet_order,
)
from menuca.services.receipts import generate_escpos_receipt, generate_text_receipt, order_to_receipt_data
from menuca.utils import as_utc, utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tablet", tags=["Tablet"])


async def _device_config(db: AsyncSession, device_id: int) -> dict:
    return await get_device_config(db, device_id) or get_default_device_config()


async def _load_order(db: AsyncSession, device: DeviceContext, order_id: int) -> Order:
    order = await db.get(Order, order_id)
    if order is None or order.restaurant_id != device.restaurant_id:
        raise NotFoundError("Order not found")
    return order


async def _status_history(db: AsyncSession, order_id: int) -> list[dict]:
    result = await db.execute(
        select(OrderStatusHistory)
        .where(OrderStatusHistory.order_id == order_id)
        .order_by(OrderStatusHistory.created_at.desc(), OrderStatusHistory.id.desc())
    )
    return [
        {"status": h.status, "notes": h.notes, "created_at": h.created_at}
        for h in result.scalars().all()
    ]


# =============================================================================
# AUTH
# =============================================================================

@router.post("/auth/login")
async def login(body: DeviceLogin, db: AsyncSession = Depends(get_db)) -> dict:
    result = await db.execute(select(Device).where(Device.uuid == body.device_uuid))
    device = result.scalar_one_or_none()

    if device is None:
        logger.info(f"Login for unknown device {body.device_uuid}")
        raise UnauthorizedError("Invalid credentials")
    if not device.is_active:
        raise ForbiddenError("Device has been deactivated")
    if not device.device_key_hash:
        logger.error(f"Device {device.id} has no key hash")
        raise ForbiddenError("Device not properly configured. Please contact support.")
    if not verify_device_key(body.device_key, device.device_key_hash):
        logger.warning(f"Device {device.id}: invalid key")
        raise UnauthorizedError("Invalid credentials")

    session = await create_device_session(db, device.id)
    device.last_boot_at = utcnow()
    await db.commit()
    await db.refresh(device)

    logger.info(f"Device {device.id} logged in for restaurant {device.restaurant_id}")
    return {
        "session_token": session.session_token,
        "expires_at": as_utc(session.expires_at).isoformat(),
        "device": {
            "id": device.id,
            "uuid": device.uuid,
            "name": device.device_name,
            "restaurant_id": device.restaurant_id,
            "restaurant_name": device.restaurant.name if device.restaurant else None,
        },
        "config": await _device_config(db, device.id),
    }


@router.post("/auth/refresh")
async def refresh(body: DeviceRefresh, db: AsyncSession = Depends(get_db)) -> dict:
    session = await refresh_session_token(db, body.session_token)
    if session is None:
        raise UnauthorizedError("Invalid or expired session. Please login again.")
    return {
        "session_token": session.session_token,
        "expires_at": as_utc(session.expires_at).isoformat(),
    }


@router.post("/heartbeat")
async def heartbeat(
    body: Heartbeat,
    device: DeviceContext = Depends(get_device_context),
    db: AsyncSession = Depends(get_db),
) -> dict:
    await update_device_heartbeat(
        db,
        device.device_id,
        battery_level=body.battery_level,
        printer_status=body.printer_status,
        app_version=body.app_version,
        last_print_at=body.last_print_at,
    )
    logger.debug(
        f"Heartbeat from device {device.device_id}: battery={body.battery_level}%, "
        f"printer={body.printer_status}, app={body.app_version}"
    )
    return {
        "success": True,
        "server_time": utcnow().isoformat(),
        "config_update": await get_device_config(db, device.device_id),
    }


# =============================================================================
# ORDERS
# =============================================================================

@router.get("/orders")
async def list_orders(
    status: Optional[str] = Query(None, description="Status, or comma-separated statuses"),
    since: Optional[datetime] = Query(None),
    limit: int = Query(50, ge=1, le=100),
    device: DeviceContext = Depends(get_device_context),
    db: AsyncSession = Depends(get_db),
) -> dict:
    query = (
        select(Order)
        .where(Order.restaurant_id == device.restaurant_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(limit)
    )
    if status:
        query = query.where(Order.status.in_([s.strip() for s in status.split(",") if s.strip()]))
    if since is not None:
        query = query.where(Order.created_at >= as_utc(since))

    orders = (await db.execute(query)).scalars().all()
    config = await _device_config(db, device.device_id)
    now = utcnow()

    return {
        "orders": [to_tablet_order(o) for o in orders],
        "total_count": len(orders),
        "next_poll_at": (now + timedelta(milliseconds=config["poll_interval_ms"])).isoformat(),
        "server_time": now.isoformat(),
    }


@router.get("/orders/{order_id}")
async def get_order(
    order_id: int,
    device: DeviceContext = Depends(get_device_context),
    db: AsyncSession = Depends(get_db),
) -> dict:
    order = await _load_order(db, device, order_id)
    return {"order": to_tablet_order(order), "status_history": await _status_history(db, order.id)}


@router.post("/orders/{order_id}")
async def acknowledge_order(
    order_id: int,
    device: DeviceContext = Depends(get_device_context),
    db: AsyncSession = Depends(get_db),
) -> dict:
    order = await _load_order(db, device, order_id)
    if order.acknowledged_at is not None:
        return {
            "success": True,
            "acknowledged_at": as_utc(order.acknowledged_at).isoformat(),
            "message": "Order was already acknowledged",
        }

    acknowledged_at = utcnow()
    order.acknowledged_at = acknowledged_at
    await db.commit()

    logger.info(f"Order #{order_id} acknowledged by device {device.device_id}")
    return {"success": True, "acknowledged_at": acknowledged_at.isoformat()}


@router.get("/orders/{order_id}/receipt")
async def order_receipt(
    order_id: int,
    format: Literal["text", "escpos"] = Query("text"),
    device: DeviceContext = Depends(get_device_context),
    db: AsyncSession = Depends(get_db),
) -> PlainTextResponse:
    order = await _load_order(db, device, order_id)
    restaurant_name = order.restaurant.name if order.restaurant else "Restaurant"

    data = order_to_receipt_data(to_tablet_order(order), restaurant_name)
    if format == "escpos":
        return PlainTextResponse(generate_escpos_receipt(data))
    return PlainTextResponse(generate_text_receipt(data))


@router.patch("/orders/{order_id}/status")
async def update_order_status(
    order_id: int,
    body: OrderStatusUpdate,
    device: DeviceContext = Depends(get_device_context),
    db: AsyncSession = Depends(get_db),
) -> dict:
    order = await _load_order(db, device, order_id)
    current = order.status

    if not can_transition(current, body.status):
        raise BadRequestError(
            f"Cannot transition from '{current}' to '{body.status}'",
            extra={"allowed_transitions": allowed_transitions(current)},
        )

    await apply_status_change(
        db,
        order,
        body.status,
        notes=body.notes or f"Status changed to {body.status} by device {device.device_id}",
        estimated_ready_minutes=body.estimated_ready_minutes,
        device_id=device.device_id,
    )

    return {
        "success": True,
        "order": {
            "id": order.id,
            "previous_status": current,
            "current_status": body.status,
            "estimated_ready_time": order.estimated_ready_time,
        },
        "status_history": await _status_history(db, order.id),
    }

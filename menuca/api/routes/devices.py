"""
Tablet device management for admins: registration, listing, updates and
key rotation. Device keys are shown once and stored only as bcrypt hashes.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from menuca.api.deps import AdminContext, ensure_restaurant_access, require_permission
from menuca.core.errors import BadRequestError, NotFoundError
from menuca.core.rbac import Action, Resource
from menuca.database import get_db
from menuca.models import Device, DeviceConfig, DeviceSession, Restaurant
from menuca.schemas.tablet import DeviceRegister, DeviceUpdate
from menuca.services.device_auth import (
    generate_device_key,
    generate_qr_code_data,
    get_default_device_config,
    hash_device_key,
    is_device_online,
    revoke_device_sessions,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Devices"])

can_view = require_permission(Resource.RESTAURANTS, Action.VIEW)
can_edit = require_permission(Resource.RESTAURANTS, Action.EDIT)


def serialize_device(device: Device) -> dict:
    return {
        "id": device.id,
        "uuid": device.uuid,
        "device_name": device.device_name,
        "restaurant_id": device.restaurant_id,
        "restaurant_name": device.restaurant.name if device.restaurant else None,
        "has_printing_support": device.has_printing_support,
        "is_active": device.is_active,
        "last_check_at": device.last_check_at,
        "last_boot_at": device.last_boot_at,
        "battery_level": device.battery_level,
        "printer_status": device.printer_status,
        "app_version": device.app_version,
        "firmware_version": device.firmware_version,
        "software_version": device.software_version,
        "created_at": device.created_at,
        "is_online": is_device_online(device),
    }


async def _load_device(db: AsyncSession, admin: AdminContext, device_id: int) -> Device:
    device = await db.get(Device, device_id)
    if device is None:
        raise NotFoundError("Device not found")
    if device.restaurant_id is not None:
        ensure_restaurant_access(admin, device.restaurant_id)
    elif not admin.is_super_admin:
        raise NotFoundError("Device not found")
    return device


@router.post("/api/tablet/auth/register", status_code=201)
async def register_device(
    body: DeviceRegister,
    admin: AdminContext = Depends(can_edit),
    db: AsyncSession = Depends(get_db),
) -> dict:
    ensure_restaurant_access(admin, body.restaurant_id)
    restaurant = await db.get(Restaurant, body.restaurant_id)
    if restaurant is None or restaurant.deleted_at is not None:
        raise NotFoundError("Restaurant not found")

    device_key = generate_device_key()
    device = Device(
        uuid=str(uuid.uuid4()),
        device_name=body.device_name,
        restaurant_id=body.restaurant_id,
        device_key_hash=hash_device_key(device_key),
        has_printing_support=body.has_printing_support,
        is_active=True,
        created_by=admin.admin_user.id,
    )
    db.add(device)
    await db.flush()
    db.add(DeviceConfig(device_id=device.id, **get_default_device_config()))
    await db.commit()
    await db.refresh(device)

    logger.info(f"Device {device.id} '{device.device_name}' registered for restaurant {body.restaurant_id}")
    return {
        "device_id": device.id,
        "device_uuid": device.uuid,
        "device_key": device_key,
        "qr_code_data": generate_qr_code_data(device.uuid, device_key),
        "message": "Device registered successfully. Save the device key - it cannot be retrieved later!",
    }


@router.get("/api/admin/devices")
async def list_devices(
    restaurant_id: Optional[int] = Query(None),
    is_active: Optional[bool] = Query(None),
    admin: AdminContext = Depends(can_view),
    db: AsyncSession = Depends(get_db),
) -> list[dict]:
    query = select(Device).order_by(Device.created_at.desc(), Device.id.desc())
    if restaurant_id is not None:
        ensure_restaurant_access(admin, restaurant_id)
        query = query.where(Device.restaurant_id == restaurant_id)
    elif admin.restaurant_ids is not None:
        query = query.where(Device.restaurant_id.in_(admin.restaurant_ids))
    if is_active is not None:
        query = query.where(Device.is_active.is_(is_active))

    devices = (await db.execute(query)).scalars().all()
    return [serialize_device(d) for d in devices]


@router.get("/api/admin/devices/{device_id}")
async def get_device(
    device_id: int,
    admin: AdminContext = Depends(can_view),
    db: AsyncSession = Depends(get_db),
) -> dict:
    return serialize_device(await _load_device(db, admin, device_id))


@router.patch("/api/admin/devices/{device_id}")
async def update_device(
    device_id: int,
    body: DeviceUpdate,
    admin: AdminContext = Depends(can_edit),
    db: AsyncSession = Depends(get_db),
) -> dict:
    device = await _load_device(db, admin, device_id)
    updates = body.model_dump(exclude_unset=True, exclude_none=True)
    if not updates:
        raise BadRequestError("No valid fields to update")

    if "restaurant_id" in updates:
        ensure_restaurant_access(admin, updates["restaurant_id"])
        if await db.get(Restaurant, updates["restaurant_id"]) is None:
            raise NotFoundError("Restaurant not found")

    for key, value in updates.items():
        setattr(device, key, value)
    if updates.get("is_active") is False:
        await revoke_device_sessions(db, device.id)
    await db.commit()
    await db.refresh(device)

    logger.info(f"Device {device_id} updated: {updates}")
    return serialize_device(device)


@router.delete("/api/admin/devices/{device_id}")
async def delete_device(
    device_id: int,
    admin: AdminContext = Depends(require_permission(Resource.RESTAURANTS, Action.DELETE)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    device = await _load_device(db, admin, device_id)

    await db.execute(delete(DeviceSession).where(DeviceSession.device_id == device.id))
    await db.execute(delete(DeviceConfig).where(DeviceConfig.device_id == device.id))
    await db.delete(device)
    await db.commit()

    logger.info(f"Device {device_id} deleted by {admin.admin_user.email}")
    return {"success": True}


@router.post("/api/admin/devices/{device_id}/regenerate-key")
async def regenerate_key(
    device_id: int,
    admin: AdminContext = Depends(can_edit),
    db: AsyncSession = Depends(get_db),
) -> dict:
    device = await _load_device(db, admin, device_id)

    device_key = generate_device_key()
    device.device_key_hash = hash_device_key(device_key)
    await revoke_device_sessions(db, device.id)
    await db.commit()

    logger.info(f"Device {device_id}: key regenerated, sessions revoked")
    return {
        "device_id": device.id,
        "device_uuid": device.uuid,
        "device_key": device_key,
        "qr_code_data": generate_qr_code_data(device.uuid, device_key),
        "message": "Device key regenerated. Save the new key - it cannot be retrieved later!",
    }

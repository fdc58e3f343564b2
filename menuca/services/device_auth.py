"""
Tablet Device Authentication

Kitchen tablets authenticate with a device UUID plus a device key. The key
is shown once at registration (also encoded in a setup QR code) and only
its bcrypt hash is stored. A successful login issues an opaque session
token that expires after DEVICE_SESSION_HOURS.

Usage:
    key = generate_device_key()
    device.device_key_hash = hash_device_key(key)
    ...
    if verify_device_key(supplied_key, device.device_key_hash):
        session = await create_device_session(db, device.id)
"""

import logging
import re
import secrets
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional
from urllib.parse import quote

import bcrypt
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from menuca.core.config import get_settings
from menuca.models import Device, DeviceConfig, DeviceSession
from menuca.utils import as_utc, utcnow

logger = logging.getLogger(__name__)

DEVICE_KEY_BYTES = 32
SESSION_TOKEN_BYTES = 48


@dataclass
class DeviceContext:
    """The authenticated device behind a session token."""
    device_id: int
    device_uuid: str
    restaurant_id: Optional[int]
    session_id: int


# =============================================================================
# KEYS AND TOKENS
# =============================================================================

def generate_device_key() -> str:
    return secrets.token_urlsafe(DEVICE_KEY_BYTES)


def generate_session_token() -> str:
    return secrets.token_urlsafe(SESSION_TOKEN_BYTES)


def hash_device_key(device_key: str, rounds: Optional[int] = None) -> str:
    rounds = rounds or get_settings().device_bcrypt_rounds
    hashed = bcrypt.hashpw(device_key.encode("utf-8"), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")


def verify_device_key(device_key: str, key_hash: str) -> bool:
    try:
        return bcrypt.checkpw(device_key.encode("utf-8"), key_hash.encode("utf-8"))
    except ValueError:
        # Malformed hash in the table
        logger.warning("Device key hash could not be parsed")
        return False


def generate_qr_code_data(device_uuid: str, device_key: str) -> str:
    """Payload encoded in the setup QR code scanned by the tablet app."""
    return f"menuca://device/setup?uuid={device_uuid}&key={quote(device_key, safe='')}"


def get_default_device_config() -> dict:
    settings = get_settings()
    return {
        "poll_interval_ms": settings.device_poll_interval_ms,
        "auto_print": True,
        "sound_enabled": True,
        "notification_tone": "default",
        "print_customer_copy": True,
        "print_kitchen_copy": True,
    }


async def get_device_config(db: AsyncSession, device_id: int) -> Optional[dict]:
    """Stored config for a device, or None when it has none."""
    result = await db.execute(select(DeviceConfig).where(DeviceConfig.device_id == device_id))
    config = result.scalar_one_or_none()
    return config.to_dict() if config else None


# =============================================================================
# SESSIONS
# =============================================================================

async def create_device_session(db: AsyncSession, device_id: int) -> DeviceSession:
    """
    Issue a fresh session for a device.

    A device holds at most one session: previous ones are deleted first.
    """
    settings = get_settings()

    await db.execute(delete(DeviceSession).where(DeviceSession.device_id == device_id))

    now = utcnow()
    session = DeviceSession(
        device_id=device_id,
        session_token=generate_session_token(),
        expires_at=now + timedelta(hours=settings.device_session_hours),
        last_activity_at=now,
    )
    db.add(session)
    await db.commit()
    await db.refresh(session)

    logger.info(f"Device {device_id}: session {session.id} created")
    return session


async def validate_session_token(db: AsyncSession, token: str) -> Optional[DeviceContext]:
    """
    Resolve a session token to its device.

    Returns None for unknown or expired tokens (expired sessions are
    deleted) and for deactivated devices.
    """
    result = await db.execute(select(DeviceSession).where(DeviceSession.session_token == token))
    session = result.scalar_one_or_none()
    if session is None:
        return None

    now = utcnow()
    if as_utc(session.expires_at) <= now:
        logger.info(f"Device {session.device_id}: session {session.id} expired")
        await db.delete(session)
        await db.commit()
        return None

    device = await db.get(Device, session.device_id)
    if device is None or not device.is_active:
        return None

    session.last_activity_at = now
    await db.commit()

    return DeviceContext(
        device_id=device.id,
        device_uuid=device.uuid,
        restaurant_id=device.restaurant_id,
        session_id=session.id,
    )


async def refresh_session_token(db: AsyncSession, token: str) -> Optional[DeviceSession]:
    """Rotate a still-valid session token; None when it can't be refreshed."""
    context = await validate_session_token(db, token)
    if context is None:
        return None

    settings = get_settings()
    session = await db.get(DeviceSession, context.session_id)
    now = utcnow()
    session.session_token = generate_session_token()
    session.expires_at = now + timedelta(hours=settings.device_session_hours)
    session.last_activity_at = now
    await db.commit()
    await db.refresh(session)
    return session


async def revoke_device_sessions(db: AsyncSession, device_id: int) -> None:
    await db.execute(delete(DeviceSession).where(DeviceSession.device_id == device_id))


async def update_device_heartbeat(
    db: AsyncSession,
    device_id: int,
    battery_level: Optional[int] = None,
    printer_status: Optional[str] = None,
    app_version: Optional[str] = None,
    last_print_at=None,
) -> None:
    device = await db.get(Device, device_id)
    if device is None:
        return
    device.last_check_at = utcnow()
    if battery_level is not None:
        device.battery_level = battery_level
    if printer_status is not None:
        device.printer_status = printer_status
    if app_version is not None:
        device.app_version = app_version
    if last_print_at is not None:
        device.last_print_at = last_print_at
    await db.commit()


def is_device_online(device: Device) -> bool:
    last_check = as_utc(device.last_check_at)
    if last_check is None:
        return False
    threshold = timedelta(seconds=get_settings().device_online_threshold_seconds)
    return utcnow() - last_check <= threshold


# =============================================================================
# PRIVACY
# =============================================================================

def mask_email(email: Optional[str]) -> Optional[str]:
    """Hide most of the local part: john@example.com -> jo***@example.com."""
    if not email:
        return None
    local, sep, domain = email.partition("@")
    if not sep or not local or not domain:
        return "***@***.***"
    if len(local) <= 2:
        return f"{local[0]}***@{domain}"
    return f"{local[:2]}***@{domain}"


def mask_phone(phone: Optional[str]) -> Optional[str]:
    """Keep only the last four digits: ***-***-1234."""
    if not phone:
        return None
    digits = re.sub(r"\D", "", phone)
    if len(digits) < 4:
        return "***-***-****"
    return f"***-***-{digits[-4:]}"

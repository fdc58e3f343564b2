"""
Small helpers shared by route handlers.
"""

import re
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on round trip)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# =============================================================================
# SLUGS
# =============================================================================

def slugify(text: str) -> str:
    """
    Convert a restaurant name into a URL slug.

    >>> slugify("Mario's Pizza & Grill")
    'marios-pizza-grill'
    """
    slug = text.lower().strip()
    slug = re.sub(r"['’]", "", slug)
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[\s_-]+", "-", slug)
    return slug.strip("-")


def create_restaurant_slug(restaurant_id: int, name: str) -> str:
    base = slugify(name)
    return f"{base}-{restaurant_id}" if base else str(restaurant_id)


def extract_id_from_slug(slug: str) -> Optional[int]:
    """
    Recover the restaurant id from "{name}-{id}" or a bare numeric slug.

    Returns None when no positive integer id can be found.
    """
    if not slug:
        return None
    candidate = slug.rsplit("-", 1)[-1]
    if candidate.isdigit() and int(candidate) > 0:
        return int(candidate)
    return None


# =============================================================================
# MODELS
# =============================================================================

def model_to_dict(obj, exclude: tuple[str, ...] = ()) -> dict:
    """Column values of a mapped object, keyed by column name."""
    return {
        column.key: getattr(obj, column.key)
        for column in obj.__table__.columns
        if column.key not in exclude
    }


def apply_updates(obj, updates: dict) -> list[str]:
    """Set attributes from a partial update; returns the changed field names."""
    changed = []
    for key, value in updates.items():
        if getattr(obj, key) != value:
            setattr(obj, key, value)
            changed.append(key)
    return changed

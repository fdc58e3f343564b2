"""
Order Export Workbooks

Writes order rows to per-restaurant Excel workbooks under DATA_DIRECTORY.
Exports run in Celery workers, several of which may target the same
workbook, so every read-modify-write happens under a file lock.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import pandas as pd
from filelock import FileLock, Timeout

from menuca.core.config import get_settings

logger = logging.getLogger(__name__)


class ExcelManager:
    """File-locked order exports."""

    ORDER_COLUMNS = [
        "order_id",
        "restaurant_id",
        "created_at",
        "order_type",
        "status",
        "payment_status",
        "payment_method",
        "customer_name",
        "customer_email",
        "customer_phone",
        "items",
        "subtotal",
        "delivery_fee",
        "tax",
        "tip",
        "discount",
        "total",
        "exported_at",
    ]

    @classmethod
    def data_dir(cls) -> Path:
        return Path(get_settings().data_directory)

    @classmethod
    def workbook_path(cls, restaurant_id: Optional[int]) -> Path:
        name = f"orders_restaurant_{restaurant_id}.xlsx" if restaurant_id else "orders_all.xlsx"
        return cls.data_dir() / name

    @classmethod
    def _load_or_create_df(cls, file_path: Path) -> pd.DataFrame:
        if file_path.exists():
            try:
                return pd.read_excel(file_path, engine="openpyxl")
            except Exception as e:
                logger.warning(f"Error reading {file_path}: {e}")
        return pd.DataFrame(columns=cls.ORDER_COLUMNS)

    @classmethod
    def export_orders(cls, rows: list[dict[str, Any]], restaurant_id: Optional[int] = None) -> dict[str, Any]:
        """
        Merge order rows into the restaurant's workbook.

        Rows already present (same order_id) are replaced so re-exports
        pick up status and payment changes.
        """
        file_path = cls.workbook_path(restaurant_id)
        lock_path = file_path.with_suffix(".xlsx.lock")
        timeout = get_settings().excel_lock_timeout

        result = {
            "success": False,
            "message": "",
            "file": str(file_path),
            "rows": 0,
            "exported_at": None,
        }

        cls.data_dir().mkdir(parents=True, exist_ok=True)

        try:
            with FileLock(str(lock_path), timeout=timeout):
                existing = cls._load_or_create_df(file_path)

                export_time = datetime.now(timezone.utc).isoformat()
                new_rows = pd.DataFrame(
                    [{**{c: row.get(c) for c in cls.ORDER_COLUMNS}, "exported_at": export_time} for row in rows],
                    columns=cls.ORDER_COLUMNS,
                )

                if existing.empty:
                    merged = new_rows
                else:
                    merged = pd.concat([existing, new_rows], ignore_index=True)
                    merged = merged.drop_duplicates(subset="order_id", keep="last")
                merged = merged.sort_values("order_id").reset_index(drop=True)
                merged.to_excel(str(file_path), index=False, engine="openpyxl")

                result.update(
                    success=True,
                    message=f"{len(new_rows)} orders exported",
                    rows=len(merged),
                    exported_at=export_time,
                )
                logger.info(f"Exported {len(new_rows)} orders to {file_path.name}")

        except Timeout:
            result["message"] = f"Lock timeout ({timeout}s)"
            logger.error(f"Lock timeout exporting to {file_path.name}")

        return result

    @staticmethod
    def order_to_row(order) -> dict[str, Any]:
        """Flatten an Order for the workbook."""
        items = "; ".join(
            f"{item.quantity}x {item.dish_name}" for item in order.items
        )
        address = order.delivery_address or {}
        return {
            "order_id": order.id,
            "restaurant_id": order.restaurant_id,
            "created_at": order.created_at.isoformat() if order.created_at else None,
            "order_type": order.order_type,
            "status": order.status,
            "payment_status": order.payment_status,
            "payment_method": order.payment_method,
            "customer_name": order.guest_name or address.get("name"),
            "customer_email": order.guest_email or address.get("email"),
            "customer_phone": order.guest_phone or address.get("phone"),
            "items": items,
            "subtotal": order.subtotal,
            "delivery_fee": order.delivery_fee,
            "tax": order.tax,
            "tip": order.tip,
            "discount": order.discount,
            "total": order.total,
        }

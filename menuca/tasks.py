"""
Celery Tasks
Email delivery and order exports run outside the request cycle.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Optional

from kombu.exceptions import OperationalError

from menuca.celery_worker import celery_app
from menuca.services.excel_manager import ExcelManager
from menuca.services.notifications import get_notification_service

logger = logging.getLogger(__name__)

RETRY_OPTIONS = dict(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(Exception,),
    retry_backoff=True,
)


def _check_sent(task_id: str, label: str, result) -> dict:
    if not result.success:
        # Raising hands the task back to Celery for a retry
        raise RuntimeError(f"{label} failed: {result.error_message}")
    logger.info(f"Task {task_id}: {label} sent ({result.message_id})")
    return {"success": True, "message_id": result.message_id}


@celery_app.task(**RETRY_OPTIONS)
def send_welcome_email(self, to_email: str, first_name: Optional[str] = None) -> dict:
    service = get_notification_service()
    result = asyncio.run(service.send_welcome_email(to_email, first_name))
    return _check_sent(self.request.id, f"Welcome email to {to_email}", result)


@celery_app.task(**RETRY_OPTIONS)
def send_order_confirmation(self, to_email: str, order: dict) -> dict:
    service = get_notification_service()
    result = asyncio.run(service.send_order_confirmation(to_email, order))
    return _check_sent(self.request.id, f"Order #{order.get('order_id')} confirmation", result)


@celery_app.task(**RETRY_OPTIONS)
def send_order_status_email(
    self, to_email: str, order_id: int, status: str, restaurant_name: Optional[str] = None
) -> dict:
    service = get_notification_service()
    result = asyncio.run(
        service.send_order_status_update(to_email, order_id, status, restaurant_name)
    )
    return _check_sent(self.request.id, f"Order #{order_id} status '{status}'", result)


@celery_app.task(**RETRY_OPTIONS)
def export_orders_to_excel(self, rows: list[dict], restaurant_id: Optional[int] = None) -> dict:
    """Write order rows to the restaurant's export workbook."""
    task_id = self.request.id
    start_time = time.time()

    result = ExcelManager.export_orders(rows, restaurant_id)

    elapsed = round(time.time() - start_time, 3)
    result["task_id"] = task_id
    result["processing_time_seconds"] = elapsed

    if result["success"]:
        logger.info(f"Task {task_id}: {len(rows)} orders exported in {elapsed}s")
    else:
        logger.warning(f"Task {task_id}: export failed - {result['message']}")
    return result


@celery_app.task
def health_check() -> dict:
    return {
        "status": "healthy",
        "worker": "celery",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def enqueue(task, *args, **kwargs) -> bool:
    """Queue a task from a request handler; a broker outage is logged, not raised."""
    try:
        task.delay(*args, **kwargs)
    except OperationalError as e:
        logger.error(f"Could not queue {task.name}: {e}")
        return False
    return True

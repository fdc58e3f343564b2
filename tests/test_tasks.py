"""Celery tasks, run eagerly with Task.apply."""

from kombu.exceptions import OperationalError

from menuca.services.notifications import get_notification_service
from menuca.tasks import (
    enqueue,
    export_orders_to_excel,
    health_check,
    send_order_confirmation,
    send_order_status_email,
    send_welcome_email,
)


def test_welcome_email():
    result = send_welcome_email.apply(args=["ana@menu.ca", "Ana"]).get()
    assert result["success"]
    sent = get_notification_service().sent
    assert sent[-1]["to"] == "ana@menu.ca"
    assert sent[-1]["subject"] == "Welcome to Menu.ca!"
    assert "Ana" in sent[-1]["html"]


def test_order_confirmation_email():
    order = {
        "order_id": 17,
        "restaurant_name": "Mario's Pizza",
        "items": [{"name": "Margherita", "quantity": 2, "size": "large", "unit_price": 16.0}],
        "subtotal": 32.0,
        "delivery_fee": 0.0,
        "tax": 4.16,
        "total": 36.16,
        "delivery_address": None,
    }
    send_order_confirmation.apply(args=["ana@menu.ca", order]).get()
    message = get_notification_service().sent[-1]
    assert message["subject"] == "Order Confirmed #17 - Mario's Pizza"
    assert "Margherita" in message["html"]
    assert "$36.16" in message["text"]


def test_order_status_email():
    send_order_status_email.apply(args=["ana@menu.ca", 17, "ready", "Mario's Pizza"]).get()
    assert get_notification_service().sent[-1]["subject"] == "Order #17 update"


def test_export_task_reports_timing(data_dir):
    result = export_orders_to_excel.apply(args=[[{"order_id": 1, "total": 10.0}], 5]).get()
    assert result["success"]
    assert result["task_id"]
    assert result["processing_time_seconds"] >= 0
    assert (data_dir / "orders_restaurant_5.xlsx").exists()


def test_health_check_task():
    assert health_check.apply().get()["status"] == "healthy"


def test_enqueue_records_task(queued):
    assert enqueue(send_welcome_email, "ana@menu.ca", first_name="Ana")
    assert queued == [("menuca.tasks.send_welcome_email", ("ana@menu.ca",), {"first_name": "Ana"})]


def test_enqueue_survives_broker_outage(monkeypatch):
    def unavailable(*args, **kwargs):
        raise OperationalError("broker down")

    monkeypatch.setattr(send_welcome_email, "delay", unavailable)
    assert enqueue(send_welcome_email, "ana@menu.ca") is False

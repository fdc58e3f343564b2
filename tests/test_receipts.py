"""Thermal receipt rendering."""

from menuca.services.receipts import (
    ESC,
    RECEIPT_WIDTH,
    center_text,
    generate_escpos_receipt,
    generate_text_receipt,
    order_to_receipt_data,
    pad_line,
    wrap_text,
)

TABLET_ORDER = {
    "order_number": "1042",
    "order_type": "delivery",
    "created_at": "2025-03-14T18:30:00+00:00",
    "payment_status": "paid",
    "customer": {"name": "Jane Doe", "phone": "***-***-1234"},
    "delivery_address": {
        "street": "100 Bank St",
        "city": "Ottawa",
        "postal_code": "K1P 1J1",
        "instructions": "Ring twice",
    },
    "items": [
        {
            "name": "Margherita",
            "quantity": 2,
            "size": "default",
            "subtotal": 28.00,
            "modifiers": [{"name": "Olives"}],
            "special_instructions": "Well done",
        },
        {"name": "Garlic Bread", "quantity": 1, "size": "large", "subtotal": 6.00, "modifiers": []},
    ],
    "subtotal": 34.00,
    "delivery_fee": 3.00,
    "tax_amount": 4.81,
    "tip_amount": 0,
    "total_amount": 41.81,
    "service_time": {"type": "asap"},
}


def test_layout_helpers():
    line = pad_line("Subtotal:", "$34.00")
    assert len(line) == RECEIPT_WIDTH
    assert line.startswith("Subtotal:") and line.endswith("$34.00")
    assert center_text("HI", width=10) == "    HI"
    assert wrap_text("one two three", width=8) == ["one two", "three"]


def test_receipt_data_from_tablet_order():
    data = order_to_receipt_data(TABLET_ORDER, "Mario's Pizza")
    assert data.order_type == "DELIVERY"
    assert data.payment_status == "PAID"
    assert data.items[0].size is None
    assert data.items[1].size == "large"
    assert data.items[0].modifiers == ["Olives"]
    assert data.tip is None
    assert data.order_time == "Mar 14, 2025, 06:30 PM"


def test_unpaid_status_is_uppercased():
    data = order_to_receipt_data({**TABLET_ORDER, "payment_status": "pending"}, "Mario's")
    assert data.payment_status == "PENDING"


def test_text_receipt():
    text = generate_text_receipt(order_to_receipt_data(TABLET_ORDER, "Mario's Pizza"))
    assert "MARIO'S PIZZA" in text
    assert "Order #: 1042" in text
    assert "DELIVER TO:" in text
    assert "ORDER ITEMS" in text
    assert "Size: large" in text
    assert "- Olives" in text
    assert "Delivery Fee:" in text
    assert "Tip:" not in text
    assert pad_line("TOTAL:", "$41.81") in text
    assert "THANK YOU!" in text


def test_escpos_receipt_is_framed_by_init_and_cut():
    receipt = generate_escpos_receipt(order_to_receipt_data(TABLET_ORDER, "Mario's Pizza"))
    assert receipt.startswith(ESC.INIT)
    assert receipt.endswith(ESC.CUT_PARTIAL)
    assert "*** DELIVERY ***" in receipt
    assert "+ Olives" in receipt

"""
Kitchen receipt formatting for 80mm thermal printers.

Two renderings of the same data: plain text (48 columns) for previews and
printers driven by the tablet OS, and ESC/POS for direct printing.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

RECEIPT_WIDTH = 48
DIVIDER = "=" * RECEIPT_WIDTH
LINE = "-" * RECEIPT_WIDTH


class ESC:
    """ESC/POS command sequences."""
    INIT = "\x1b\x40"
    ALIGN_LEFT = "\x1b\x61\x00"
    ALIGN_CENTER = "\x1b\x61\x01"
    ALIGN_RIGHT = "\x1b\x61\x02"
    NORMAL = "\x1b\x21\x00"
    DOUBLE_HEIGHT = "\x1b\x21\x10"
    DOUBLE_WIDTH = "\x1b\x21\x20"
    DOUBLE_SIZE = "\x1b\x21\x30"
    BOLD_ON = "\x1b\x45\x01"
    BOLD_OFF = "\x1b\x45\x00"
    LINE_FEED = "\x0a"
    CUT_PAPER = "\x1d\x56\x00"
    CUT_PARTIAL = "\x1d\x56\x01"


@dataclass
class ReceiptItem:
    quantity: int
    name: str
    price: float
    size: Optional[str] = None
    modifiers: list[str] = field(default_factory=list)
    special_instructions: Optional[str] = None


@dataclass
class ReceiptData:
    restaurant_name: str
    order_number: str
    order_type: str
    order_time: str
    customer_name: str
    customer_phone: Optional[str]
    items: list[ReceiptItem]
    subtotal: float
    delivery_fee: float
    tax: float
    total: float
    payment_status: str
    tip: Optional[float] = None
    delivery_address: Optional[dict] = None
    scheduled_for: Optional[str] = None


def format_price(amount: float) -> str:
    return f"${amount:.2f}"


def pad_line(left: str, right: str, width: int = RECEIPT_WIDTH) -> str:
    padding = width - len(left) - len(right)
    if padding <= 0:
        return f"{left[:width - len(right) - 1]} {right}"
    return f"{left}{' ' * padding}{right}"


def center_text(text: str, width: int = RECEIPT_WIDTH) -> str:
    if len(text) >= width:
        return text[:width]
    return " " * ((width - len(text)) // 2) + text


def wrap_text(text: str, width: int = RECEIPT_WIDTH, indent: int = 0) -> list[str]:
    lines = []
    current = " " * indent
    for word in text.split():
        if len(current) + len(word) + 1 <= width:
            current += (" " if current.strip() else "") + word
        else:
            if current.strip():
                lines.append(current)
            current = " " * indent + word
    if current.strip():
        lines.append(current)
    return lines


def _format_time(iso_value: Optional[str], with_year: bool = True) -> Optional[str]:
    if not iso_value:
        return None
    moment = datetime.fromisoformat(iso_value)
    pattern = "%b %d, %Y, %I:%M %p" if with_year else "%b %d, %I:%M %p"
    return moment.strftime(pattern)


def order_to_receipt_data(order: dict, restaurant_name: str) -> ReceiptData:
    """Build receipt data from a tablet order (see to_tablet_order)."""
    service_time = order.get("service_time") or {}
    scheduled = None
    if service_time.get("type") == "scheduled":
        scheduled = _format_time(service_time.get("scheduledTime"), with_year=False)

    payment_status = order.get("payment_status") or "pending"

    return ReceiptData(
        restaurant_name=restaurant_name,
        order_number=order["order_number"],
        order_type=order["order_type"].upper(),
        order_time=_format_time(order.get("created_at")) or "",
        customer_name=order["customer"]["name"],
        customer_phone=order["customer"].get("phone"),
        delivery_address=order.get("delivery_address"),
        items=[
            ReceiptItem(
                quantity=item["quantity"],
                name=item["name"],
                price=item["subtotal"],
                size=item["size"] if item.get("size") not in (None, "default") else None,
                modifiers=[m["name"] for m in item.get("modifiers", [])],
                special_instructions=item.get("special_instructions"),
            )
            for item in order.get("items", [])
        ],
        subtotal=order["subtotal"],
        delivery_fee=order.get("delivery_fee") or 0.0,
        tax=order.get("tax_amount") or 0.0,
        tip=order.get("tip_amount") or None,
        total=order["total_amount"],
        payment_status="PAID" if payment_status == "paid" else payment_status.upper(),
        scheduled_for=scheduled,
    )


def generate_text_receipt(data: ReceiptData) -> str:
    lines = [
        DIVIDER,
        center_text(data.restaurant_name.upper()),
        DIVIDER,
        f"Order #: {data.order_number}",
        f"Type: {data.order_type}",
        f"Time: {data.order_time}",
        LINE,
        "",
        f"CUSTOMER: {data.customer_name}",
        f"PHONE: {data.customer_phone or ''}",
    ]

    if data.delivery_address:
        address = data.delivery_address
        lines += ["", "DELIVER TO:", address.get("street", "")]
        lines.append(f"{address.get('city', '')}, {address.get('postal_code', '')}")
        if address.get("instructions"):
            lines += wrap_text(f"Instructions: {address['instructions']}")

    lines += ["", DIVIDER, center_text("ORDER ITEMS"), DIVIDER, ""]

    for item in data.items:
        lines.append(pad_line(f"{item.quantity}x  {item.name}", format_price(item.price)))
        if item.size:
            lines.append(f"    Size: {item.size}")
        for modifier in item.modifiers:
            lines.append(f"    - {modifier}")
        if item.special_instructions:
            lines += wrap_text(f"** {item.special_instructions} **", indent=4)
        lines.append("")

    lines.append(LINE)
    lines.append(pad_line("Subtotal:", format_price(data.subtotal)))
    if data.delivery_fee > 0:
        lines.append(pad_line("Delivery Fee:", format_price(data.delivery_fee)))
    lines.append(pad_line("Tax:", format_price(data.tax)))
    if data.tip and data.tip > 0:
        lines.append(pad_line("Tip:", format_price(data.tip)))
    lines += [DIVIDER, pad_line("TOTAL:", format_price(data.total)), DIVIDER]
    lines.append(data.payment_status)

    if data.scheduled_for:
        lines += ["", f"Scheduled: {data.scheduled_for}"]

    lines += ["", DIVIDER, center_text("THANK YOU!"), DIVIDER, "", "", ""]
    return "\n".join(lines)


def generate_escpos_receipt(data: ReceiptData) -> str:
    lf = ESC.LINE_FEED
    out = [ESC.INIT]

    out += [ESC.ALIGN_CENTER, ESC.DOUBLE_SIZE, ESC.BOLD_ON, data.restaurant_name.upper() + lf, ESC.BOLD_OFF, ESC.NORMAL]
    out += [ESC.DOUBLE_HEIGHT, f"*** {data.order_type} ***" + lf, ESC.NORMAL]

    out += [ESC.ALIGN_LEFT, f"Order #: {data.order_number}" + lf, f"Time: {data.order_time}" + lf, LINE + lf]
    out += [ESC.BOLD_ON, f"Customer: {data.customer_name}" + lf, ESC.BOLD_OFF, f"Phone: {data.customer_phone or ''}" + lf]

    if data.delivery_address:
        address = data.delivery_address
        out += [lf, ESC.BOLD_ON, "DELIVER TO:" + lf, ESC.BOLD_OFF, address.get("street", "") + lf]
        out.append(f"{address.get('city', '')}, {address.get('postal_code', '')}" + lf)
        if address.get("instructions"):
            out += [lf, "Instructions:" + lf, address["instructions"] + lf]

    out += [lf, DIVIDER + lf, ESC.ALIGN_CENTER, ESC.BOLD_ON, "ORDER ITEMS" + lf, ESC.BOLD_OFF, ESC.ALIGN_LEFT, DIVIDER + lf]

    for item in data.items:
        out += [lf, ESC.BOLD_ON, f"{item.quantity}x {item.name}" + lf, ESC.BOLD_OFF]
        if item.size:
            out.append(f"   Size: {item.size}" + lf)
        for modifier in item.modifiers:
            out.append(f"   + {modifier}" + lf)
        if item.special_instructions:
            out += [ESC.BOLD_ON, f"   ** {item.special_instructions} **" + lf, ESC.BOLD_OFF]
        out += [ESC.ALIGN_RIGHT, format_price(item.price) + lf, ESC.ALIGN_LEFT]

    out += [lf, LINE + lf, pad_line("Subtotal:", format_price(data.subtotal)) + lf]
    if data.delivery_fee > 0:
        out.append(pad_line("Delivery Fee:", format_price(data.delivery_fee)) + lf)
    out.append(pad_line("Tax:", format_price(data.tax)) + lf)
    if data.tip and data.tip > 0:
        out.append(pad_line("Tip:", format_price(data.tip)) + lf)
    out += [DIVIDER + lf, ESC.DOUBLE_HEIGHT, ESC.BOLD_ON, pad_line("TOTAL:", format_price(data.total)) + lf, ESC.BOLD_OFF, ESC.NORMAL]

    out += [ESC.ALIGN_CENTER, ESC.DOUBLE_HEIGHT, data.payment_status + lf, ESC.NORMAL]
    if data.scheduled_for:
        out += [ESC.BOLD_ON, f"Scheduled: {data.scheduled_for}" + lf, ESC.BOLD_OFF]

    out += [lf, "THANK YOU!" + lf, lf, lf, lf, ESC.CUT_PARTIAL]
    return "".join(out)

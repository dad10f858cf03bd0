"""Invoice PDFs and CSV order exports."""

from __future__ import annotations

import csv
import io
import os
from datetime import datetime
from typing import Iterable, Mapping, Optional

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

CURRENCY = os.getenv("INVOICE_CURRENCY", "Rs.")
EXPORT_HEADER = (
    "Order ID",
    "Date",
    "Customer",
    "Phone",
    "Email",
    "Status",
    "Payment Status",
    "Total",
    "Items",
)

PAGE_WIDTH, PAGE_HEIGHT = A4
MARGIN = 40
COLUMN_X = {"product": MARGIN, "qty": 300, "price": 360, "subtotal": PAGE_WIDTH - MARGIN}


def _format_money(value: object) -> str:
    return f"{CURRENCY}{float(value or 0):,.2f}"


def _format_date(value: object) -> str:
    if not value:
        return ""
    try:
        return datetime.fromisoformat(str(value)).strftime("%a %b %d %Y")
    except ValueError:
        return str(value)


def _fit(text: str, limit: int = 48) -> str:
    return text if len(text) <= limit else f"{text[: limit - 1]}…"


class _InvoiceCanvas:
    """Tracks the write cursor and starts new pages when the bottom margin is reached."""

    def __init__(self, buffer: io.BytesIO, title: str) -> None:
        self.pdf = canvas.Canvas(buffer, pagesize=A4)
        self.pdf.setTitle(title)
        self.y = PAGE_HEIGHT - MARGIN

    def line(self, text: str, *, size: int = 11, bold: bool = False, x: float = MARGIN, gap: float = 1.4) -> None:
        self.ensure_space(size * gap)
        self.pdf.setFont("Helvetica-Bold" if bold else "Helvetica", size)
        self.pdf.drawString(x, self.y, text)
        self.y -= size * gap

    def right(self, text: str, *, size: int = 11, bold: bool = False) -> None:
        self.ensure_space(size * 1.4)
        self.pdf.setFont("Helvetica-Bold" if bold else "Helvetica", size)
        self.pdf.drawRightString(PAGE_WIDTH - MARGIN, self.y, text)
        self.y -= size * 1.4

    def rule(self) -> None:
        self.ensure_space(8)
        self.pdf.line(MARGIN, self.y + 4, PAGE_WIDTH - MARGIN, self.y + 4)
        self.y -= 8

    def skip(self, amount: float = 10) -> None:
        self.y -= amount

    def ensure_space(self, height: float) -> bool:
        if self.y - height >= MARGIN:
            return False
        self.pdf.showPage()
        self.y = PAGE_HEIGHT - MARGIN
        return True

    def row(self, product: str, qty: str, price: str, subtotal: str, *, bold: bool = False) -> None:
        self.pdf.setFont("Helvetica-Bold" if bold else "Helvetica", 11)
        self.pdf.drawString(COLUMN_X["product"], self.y, product)
        self.pdf.drawString(COLUMN_X["qty"], self.y, qty)
        self.pdf.drawString(COLUMN_X["price"], self.y, price)
        self.pdf.drawRightString(COLUMN_X["subtotal"], self.y, subtotal)
        self.y -= 16

    def finish(self) -> None:
        self.pdf.showPage()
        self.pdf.save()


def render_invoice_pdf(order: Mapping[str, object], seller: Optional[Mapping[str, object]]) -> bytes:
    """Lay out a single-order invoice and return the PDF bytes."""

    buffer = io.BytesIO()
    doc = _InvoiceCanvas(buffer, f"Invoice {order['id']}")
    seller = seller or {}

    doc.line(str(seller.get("businessName") or "Invoice"), size=22, bold=True)
    if seller.get("gstNumber"):
        doc.line(f"GST: {seller['gstNumber']}", size=10)
    if seller.get("phone"):
        doc.line(f"Phone: {seller['phone']}", size=10)
    doc.line(f"Invoice Date: {_format_date(order.get('createdAt'))}", size=10)
    if order.get("invoiceNumber"):
        doc.line(f"Invoice No: {order['invoiceNumber']}", size=10)
    doc.line(f"Order ID: #{order['id']}", size=10)
    doc.skip()

    doc.line("Bill To:", size=14, bold=True)
    for value in (
        order.get("customerName"),
        order.get("customerEmail"),
        order.get("customerPhone"),
    ):
        if value:
            doc.line(str(value), size=12)
    for address_line in str(order.get("shippingAddress") or "").splitlines():
        if address_line.strip():
            doc.line(address_line.strip(), size=12)
    doc.skip()

    doc.line("Order Items", size=14, bold=True)

    def _table_header() -> None:
        doc.row("Product", "Qty", "Price", "Subtotal", bold=True)
        doc.rule()

    _table_header()
    for item in order.get("products") or []:
        if doc.ensure_space(16):
            _table_header()
        price = float(item.get("priceAtPurchase") or 0)
        quantity = int(item.get("quantity") or 0)
        doc.row(
            _fit(str(item.get("productName") or "")),
            str(quantity),
            _format_money(price),
            _format_money(price * quantity),
        )
    doc.skip()

    doc.right(f"Subtotal: {_format_money(order.get('subtotal'))}", size=12)
    doc.right(f"Tax (GST): {_format_money(order.get('tax'))}", size=12)
    doc.right(f"Total: {_format_money(order.get('totalAmount'))}", size=14, bold=True)
    doc.skip()

    if order.get("paymentStatus"):
        doc.line(f"Payment Status: {str(order['paymentStatus']).upper()}", size=12)
    if order.get("paymentMethod"):
        doc.line(f"Payment Method: {order['paymentMethod']}", size=12)
    doc.skip(24)

    doc.ensure_space(14)
    doc.pdf.setFont("Helvetica", 10)
    doc.pdf.drawCentredString(PAGE_WIDTH / 2, doc.y, "Thank you for your order!")
    doc.finish()
    return buffer.getvalue()


def _items_summary(order: Mapping[str, object]) -> str:
    return " | ".join(
        f"{item.get('productName')} (x{item.get('quantity')})" for item in order.get("products") or []
    )


def orders_to_csv(orders: Iterable[Mapping[str, object]]) -> str:
    """Render orders as CSV text with one row per order."""

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(EXPORT_HEADER)
    for order in orders:
        writer.writerow(
            [
                order["id"],
                order.get("createdAt") or "",
                order.get("customerName") or "",
                order.get("customerPhone") or "",
                order.get("customerEmail") or "",
                order.get("status") or "",
                order.get("paymentStatus") or "",
                f"{float(order.get('totalAmount') or 0):.2f}",
                _items_summary(order),
            ]
        )
    return buffer.getvalue()

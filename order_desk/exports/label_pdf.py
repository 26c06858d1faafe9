"""
Order Delivery Labels – PDF Generator
=====================================

One boxed label per order: an Order ID / Status header pair, then NAME,
CONTACT, COD BILL and a word-wrapped ADDRESS. Labels flow top to bottom and
a new page starts when the space left cannot hold the next label.

Layout is computed by ``plan_label_pages`` (pure, no file output) and drawn
by ``generate_label_pdf`` with the reportlab canvas.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from order_desk import config
from order_desk.errors import EmptyExportError
from order_desk.models import OrderRecord, now_millis

PAGE_WIDTH, PAGE_HEIGHT = A4

# All layout values in points, measured from the top of the page
MARGIN_X = 14 * mm
TOP_MARGIN = 20 * mm
BOTTOM_MARGIN = 15 * mm
SHEET_HEADER_HEIGHT = 25 * mm
TEXT_INSET = 4 * mm
LINE_STEP = 8 * mm  # between header and body lines
ADDRESS_LINE_STEP = 5 * mm  # between wrapped address lines
LABEL_PADDING = 6 * mm
LABEL_GAP = 10 * mm

BODY_FONT = "Helvetica"
BODY_BOLD_FONT = "Helvetica-Bold"
ADDRESS_FONT_SIZE = 10


@dataclass
class LabelBlock:
    order: OrderRecord
    top: float
    height: float
    address_lines: List[str] = field(default_factory=list)


def wrap_address(address: str, width: float = None) -> List[str]:
    """Split ``ADDRESS: <address>`` into lines that fit the label width."""
    width = width if width is not None else PAGE_WIDTH - 2 * MARGIN_X - 2 * TEXT_INSET - 4 * mm
    lines = simpleSplit(f"ADDRESS: {address}", BODY_FONT, ADDRESS_FONT_SIZE, width)
    return lines or ["ADDRESS:"]


def label_height(address_lines: List[str]) -> float:
    # header + 3 bold lines + first address line, then extra wrapped lines
    return 5 * LINE_STEP + (len(address_lines) - 1) * ADDRESS_LINE_STEP + LABEL_PADDING


def plan_label_pages(
    orders: List[OrderRecord],
    page_height: float = PAGE_HEIGHT,
    wrap_width: float = None,
) -> List[List[LabelBlock]]:
    """
    Assign each order to a page and a vertical position.

    The first page starts below the sheet header; later pages start at the top
    margin. Input order is preserved.
    """
    pages: List[List[LabelBlock]] = [[]]
    y = TOP_MARGIN + SHEET_HEADER_HEIGHT
    for order in orders:
        lines = wrap_address(order.address, wrap_width)
        height = label_height(lines)
        if y + height > page_height - BOTTOM_MARGIN and pages[-1]:
            pages.append([])
            y = TOP_MARGIN
        pages[-1].append(LabelBlock(order=order, top=y, height=height, address_lines=lines))
        y += height + LABEL_GAP
    return pages


def label_filename(timestamp_ms: Optional[int] = None) -> str:
    return f"delivery_orders_{timestamp_ms if timestamp_ms is not None else now_millis()}.pdf"


def _draw_sheet_header(pdf: canvas.Canvas, count: int) -> None:
    y = PAGE_HEIGHT - TOP_MARGIN
    pdf.setFont(BODY_BOLD_FONT, 18)
    pdf.setFillColor(colors.HexColor("#4F46E5"))
    pdf.drawString(MARGIN_X, y, "Order Delivery Labels")

    pdf.setFont(BODY_FONT, 10)
    pdf.setFillColor(colors.HexColor("#64748B"))
    pdf.drawString(MARGIN_X, y - 8 * mm, f"Generated on: {datetime.now().strftime('%d %b %Y, %I:%M %p')}")
    pdf.drawString(MARGIN_X, y - 13 * mm, f"Total Orders: {count}")


def _draw_label(pdf: canvas.Canvas, block: LabelBlock) -> None:
    order = block.order
    top = PAGE_HEIGHT - block.top
    x = MARGIN_X + TEXT_INSET

    pdf.setStrokeColor(colors.HexColor("#E2E8F0"))
    pdf.rect(MARGIN_X, top - block.height, PAGE_WIDTH - 2 * MARGIN_X, block.height)

    pdf.setFont(BODY_FONT, 10)
    pdf.setFillColor(colors.HexColor("#475569"))
    pdf.drawString(x, top - LINE_STEP, f"Order ID: {order.order_id}")
    pdf.drawRightString(PAGE_WIDTH - MARGIN_X - TEXT_INSET, top - LINE_STEP, f"Status: {order.status.value}")

    pdf.setFont(BODY_BOLD_FONT, 11)
    pdf.setFillColor(colors.HexColor("#0F172A"))
    pdf.drawString(x, top - 2 * LINE_STEP, f"NAME: {order.name}")
    pdf.drawString(x, top - 3 * LINE_STEP, f"CONTACT: {order.contact}")
    pdf.drawString(x, top - 4 * LINE_STEP, f"COD BILL: {order.cod_bill}")

    pdf.setFont(BODY_FONT, ADDRESS_FONT_SIZE)
    pdf.setFillColor(colors.HexColor("#334155"))
    y = top - 5 * LINE_STEP
    for line in block.address_lines:
        pdf.drawString(x, y, line)
        y -= ADDRESS_LINE_STEP


def generate_label_pdf(
    orders: List[OrderRecord],
    output_dir: Optional[str] = None,
    timestamp_ms: Optional[int] = None,
) -> str:
    """
    Render the label sheet.

    Args:
        orders: Orders in display order.
        output_dir: Directory for the PDF. Defaults to config.EXPORT_FOLDER.
        timestamp_ms: Epoch milliseconds for the filename. Defaults to now.

    Returns:
        Absolute path to the generated PDF file.
    """
    if not orders:
        raise EmptyExportError("No orders to export")

    out_dir = output_dir or config.EXPORT_FOLDER
    os.makedirs(out_dir, exist_ok=True)
    pdf_path = os.path.join(out_dir, label_filename(timestamp_ms))

    pdf = canvas.Canvas(pdf_path, pagesize=A4)
    pdf.setTitle("Order Delivery Labels")
    pages = plan_label_pages(orders)
    for page_no, blocks in enumerate(pages):
        if page_no == 0:
            _draw_sheet_header(pdf, len(orders))
        for block in blocks:
            _draw_label(pdf, block)
        pdf.showPage()
    pdf.save()
    return os.path.abspath(pdf_path)

"""
Daily Delivery Report – PDF Generator
=====================================

Summarizes one day of history: date, total orders, success rate, a
status-count table and the cancellation-reason breakdown. The numbers come
from ``analytics()`` over the day view; the current batch never feeds the
report.
"""
from __future__ import annotations

import os
from datetime import datetime
from typing import List, Optional

from reportlab.lib import colors
from reportlab.lib.enums import TA_LEFT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from order_desk import config
from order_desk.analytics import OrderAnalytics, analytics
from order_desk.errors import EmptyExportError
from order_desk.models import OrderRecord


def report_filename(date: str) -> str:
    return f"daily_report_{date}.pdf"


def status_table_rows(summary: OrderAnalytics) -> List[List[str]]:
    """Header row plus one row per status, in report order."""
    rows = [["Status", "Count"]]
    for status, count in summary.status_counts().items():
        rows.append([status, str(count)])
    return rows


def cancel_reason_rows(summary: OrderAnalytics) -> List[List[str]]:
    return [[reason, str(count)] for reason, count in summary.cancel_reasons.items()]


def generate_daily_report_pdf(
    day_orders: List[OrderRecord],
    date: str,
    output_dir: Optional[str] = None,
) -> str:
    """
    Generate the daily report.

    Args:
        day_orders: Orders of the day view for ``date``.
        date: ``YYYY-MM-DD``; shown in the header and used in the filename.
        output_dir: Directory for the PDF. Defaults to config.EXPORT_FOLDER.

    Returns:
        Absolute path to the generated PDF file.
    """
    if not day_orders:
        raise EmptyExportError(f"No orders recorded on {date}")

    summary = analytics(day_orders)

    out_dir = output_dir or config.EXPORT_FOLDER
    os.makedirs(out_dir, exist_ok=True)
    pdf_path = os.path.join(out_dir, report_filename(date))

    doc = SimpleDocTemplate(
        pdf_path,
        pagesize=A4,
        leftMargin=14 * mm,
        rightMargin=14 * mm,
        topMargin=15 * mm,
        bottomMargin=15 * mm,
        title=f"Daily Delivery Report {date}",
    )

    styles = getSampleStyleSheet()
    elements = []

    # ── Header ──────────────────────────────────────────────────
    title_style = ParagraphStyle(
        "ReportTitle",
        parent=styles["Heading1"],
        fontSize=22,
        alignment=TA_LEFT,
        spaceAfter=10,
        textColor=colors.HexColor("#4F46E5"),
    )
    meta_style = ParagraphStyle(
        "ReportMeta",
        parent=styles["Normal"],
        fontSize=12,
        leading=17,
        textColor=colors.HexColor("#64748B"),
    )
    section_style = ParagraphStyle(
        "ReportSection",
        parent=styles["Heading2"],
        fontSize=14,
        spaceBefore=10,
        spaceAfter=6,
        textColor=colors.HexColor("#0F172A"),
    )

    elements.append(Paragraph("Daily Delivery Report", title_style))
    elements.append(Paragraph(f"Date: {date}", meta_style))
    elements.append(Paragraph(f"Total Orders: {summary.total}", meta_style))
    elements.append(Paragraph(f"Success Rate: {summary.success_rate}%", meta_style))
    elements.append(Spacer(1, 8 * mm))

    # ── Status table ────────────────────────────────────────────
    elements.append(Paragraph("Summary Statistics", section_style))
    status_table = Table(status_table_rows(summary), colWidths=[60 * mm, 30 * mm])
    status_table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#1a1a2e")),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 10),
        ("ALIGN", (1, 0), (1, -1), "RIGHT"),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.HexColor("#cccccc")),
        ("TOPPADDING", (0, 0), (-1, -1), 4),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
    ]))
    elements.append(status_table)
    elements.append(Spacer(1, 8 * mm))

    # ── Cancellation analysis ───────────────────────────────────
    elements.append(Paragraph("Cancellation Analysis", section_style))
    reason_rows = cancel_reason_rows(summary)
    if reason_rows:
        reason_table = Table([["Reason", "Count"]] + reason_rows, colWidths=[110 * mm, 30 * mm])
        reason_table.setStyle(TableStyle([
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 10),
            ("ALIGN", (1, 0), (1, -1), "RIGHT"),
            ("LINEBELOW", (0, 0), (-1, 0), 1, colors.HexColor("#1a1a2e")),
            ("TOPPADDING", (0, 0), (-1, -1), 3),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
        ]))
        elements.append(reason_table)
    else:
        elements.append(Paragraph("No cancellations recorded.", styles["Normal"]))

    # ── Footer ──────────────────────────────────────────────────
    elements.append(Spacer(1, 10 * mm))
    footer_style = ParagraphStyle(
        "Footer",
        parent=styles["Normal"],
        fontSize=7,
        textColor=colors.HexColor("#999999"),
    )
    elements.append(Paragraph(
        f"Generated by COD Order Desk | {datetime.now().strftime('%d %b %Y %H:%M')}",
        footer_style,
    ))

    doc.build(elements)
    return os.path.abspath(pdf_path)

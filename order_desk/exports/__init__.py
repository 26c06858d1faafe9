"""
Exports module for COD Order Desk
Copy-ready text, delivery label sheets and daily reports
"""

from .text_export import format_order_text, format_orders_text
from .label_pdf import generate_label_pdf, plan_label_pages
from .report_pdf import generate_daily_report_pdf

__all__ = [
    'format_order_text',
    'format_orders_text',
    'generate_label_pdf',
    'plan_label_pages',
    'generate_daily_report_pdf',
]

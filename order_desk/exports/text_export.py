"""
Copy-ready text blocks for orders.

Each order renders as six labeled lines in a fixed order; records are
separated by one blank line and keep the input order.
"""
from typing import List

from order_desk.models import OrderRecord


def format_order_text(order: OrderRecord) -> str:
    return (
        f"ID: {order.order_id}\n"
        f"NAME: {order.name}\n"
        f"CONTACT: {order.contact}\n"
        f"COD BILL: {order.cod_bill}\n"
        f"ADDRESS: {order.address}\n"
        f"STATUS: {order.status.value}"
    )


def format_orders_text(orders: List[OrderRecord]) -> str:
    return '\n\n'.join(format_order_text(order) for order in orders)

"""
Order Analytics & Filtering
Derives the listing views (current batch or day view), status filtering,
summary statistics and the repeated-customer flag. Nothing here mutates
orders.
"""
from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Union

from order_desk.history_store import HistoryStore
from order_desk.models import ALL_STATUSES, Batch, OrderRecord, OrderStatus, ViewRole


@dataclass
class OrderAnalytics:
    """Summary of a flat order list."""
    total: int = 0
    pending: int = 0
    out_for_delivery: int = 0
    delivered: int = 0
    cancelled: int = 0
    success_rate: int = 0
    cancel_reasons: Dict[str, int] = field(default_factory=dict)

    def status_counts(self) -> Dict[str, int]:
        """Counts keyed by the status display value."""
        return {
            OrderStatus.DELIVERED.value: self.delivered,
            OrderStatus.CANCELLED.value: self.cancelled,
            OrderStatus.PENDING.value: self.pending,
            OrderStatus.OUT_FOR_DELIVERY.value: self.out_for_delivery,
        }

    def to_dict(self) -> Dict:
        return {
            'total': self.total,
            'pending': self.pending,
            'out_for_delivery': self.out_for_delivery,
            'delivered': self.delivered,
            'cancelled': self.cancelled,
            'success_rate': self.success_rate,
            'cancel_reasons': dict(self.cancel_reasons),
        }


def success_rate(delivered: int, total: int) -> int:
    """Percentage delivered, rounded half-up to an integer. 0 for an empty list."""
    if total == 0:
        return 0
    rate = Decimal(100 * delivered) / Decimal(total)
    return int(rate.quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def analytics(orders: List[OrderRecord]) -> OrderAnalytics:
    total = len(orders)
    counts = Counter(order.status for order in orders)

    # Counter keeps first-seen order
    reasons: Counter = Counter()
    for order in orders:
        if order.status == OrderStatus.CANCELLED and order.cancel_reason:
            reasons[order.cancel_reason] += 1

    delivered = counts[OrderStatus.DELIVERED]
    return OrderAnalytics(
        total=total,
        pending=counts[OrderStatus.PENDING],
        out_for_delivery=counts[OrderStatus.OUT_FOR_DELIVERY],
        delivered=delivered,
        cancelled=counts[OrderStatus.CANCELLED],
        success_rate=success_rate(delivered, total),
        cancel_reasons=dict(reasons),
    )


def repeated_customer(order: OrderRecord, all_orders: List[OrderRecord]) -> bool:
    """
    True when at least two orders in ``all_orders`` share this order's address
    or contact (the order itself counts). Raw string equality, no normalization.
    """
    matches = sum(
        1 for other in all_orders
        if other.address == order.address or other.contact == order.contact
    )
    return matches >= 2


def day_view(history: HistoryStore, date: str) -> List[OrderRecord]:
    return history.find_by_date(date)


def select_view_source(
    current_batch: Optional[Batch],
    day_orders: List[OrderRecord],
    role: ViewRole = ViewRole.ADMIN,
) -> List[OrderRecord]:
    """
    The listing source: the current batch when one is active and the admin is
    looking, otherwise the day view. The two are never merged.
    """
    if role == ViewRole.ADMIN and current_batch is not None:
        return current_batch.orders
    return day_orders


def filter_by_status(
    orders: List[OrderRecord],
    selected: Union[OrderStatus, str] = ALL_STATUSES,
) -> List[OrderRecord]:
    """Orders whose status equals ``selected`` (or all of them for ``"All"``), order preserved."""
    if selected == ALL_STATUSES:
        return list(orders)
    if not isinstance(selected, OrderStatus):
        selected = OrderStatus(selected)
    return [order for order in orders if order.status == selected]

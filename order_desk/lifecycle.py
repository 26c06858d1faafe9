"""
Order Lifecycle Engine

Status transitions and field edits for orders, broadcast by ``order_id`` to
every surface that holds a copy: the current batch (if any) and every batch
in history. The two surfaces never share storage, so each mutation is a full
rewrite of both.

Transitions:

    Pending -> Out for Delivery -> Delivered
    Pending -> Out for Delivery -> Cancelled
    Pending ---------------------> Cancelled

Anything else, including every transition out of Delivered/Cancelled, leaves
the order unchanged. The diagram is checked once per call against the copy
``find_order`` returns; when the move is allowed every copy is overwritten
with the same status and side fields, so copies that disagree converge.
"""
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from order_desk import config
from order_desk.history_store import HistoryStore
from order_desk.models import Batch, EDITABLE_FIELDS, OrderRecord, OrderStatus
from order_desk.utils.logger import get_logger

ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.OUT_FOR_DELIVERY, OrderStatus.CANCELLED},
    OrderStatus.OUT_FOR_DELIVERY: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def format_delivery_time(moment: datetime) -> str:
    """ISO-8601 UTC with milliseconds and a ``Z`` suffix, e.g. ``2024-05-01T09:30:00.000Z``."""
    return moment.astimezone(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


class LifecycleEngine:
    """Applies order mutations to the current batch and history together."""

    def __init__(
        self,
        history: HistoryStore,
        current_batch: Callable[[], Optional[Batch]],
        agent_name: str = None,
        clock: Callable[[], datetime] = None,
        logger=None,
    ):
        """
        Args:
            history: the persisted batch log.
            current_batch: returns the active batch or None; the caller owns it.
            agent_name: identity stamped at delivery. Defaults to config.
            clock: returns the current instant (timezone-aware).
        """
        self.history = history
        self.current_batch = current_batch
        self.agent_name = agent_name or config.DELIVERY_AGENT_NAME
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.logger = logger or get_logger()

    # ────────────────────────────────────────────────────────────
    # Exposed operations
    # ────────────────────────────────────────────────────────────

    def find_order(self, order_id: str) -> Optional[OrderRecord]:
        """Current-batch copy if present, otherwise the newest history copy."""
        current = self.current_batch()
        if current is not None:
            for order in current.orders:
                if order.order_id == order_id:
                    return order
        return self.history.find_order(order_id)

    def mark_out_for_delivery(self, order_id: str) -> int:
        return self._transition(order_id, OrderStatus.OUT_FOR_DELIVERY, 'out-for-delivery')

    def mark_delivered(self, order_id: str) -> int:
        # One instant for every copy
        delivered_at = format_delivery_time(self.clock())
        return self._transition(
            order_id,
            OrderStatus.DELIVERED,
            'delivered',
            delivery_agent=self.agent_name,
            delivery_time=delivered_at,
        )

    def cancel(self, order_id: str, reason: str) -> int:
        """Cancel with ``reason`` as given. Reason validation belongs to the caller."""
        return self._transition(order_id, OrderStatus.CANCELLED, f'cancelled ({reason})', cancel_reason=reason)

    def edit_fields(self, order_id: str, patch: Dict[str, str]) -> int:
        """Replace name/contact/cod_bill/address on every copy. Other keys are ignored."""
        changes = {k: str(v) for k, v in patch.items() if k in EDITABLE_FIELDS and v is not None}
        if not changes:
            return 0

        def update(order: OrderRecord) -> OrderRecord:
            return replace(order, **changes)

        return self._broadcast(order_id, update, f"edit {sorted(changes)}")

    # ────────────────────────────────────────────────────────────
    # Propagation
    # ────────────────────────────────────────────────────────────

    def _transition(
        self,
        order_id: str,
        target: OrderStatus,
        action: str,
        delivery_agent: Optional[str] = None,
        delivery_time: Optional[str] = None,
        cancel_reason: Optional[str] = None,
    ) -> int:
        """Move every copy of ``order_id`` to ``target`` if ``find_order``'s copy may.

        Side fields are set exactly as given, so a copy never keeps stamps
        from a status it no longer has. Returns 0 without persisting when
        the order is unknown or the move is not in the diagram.
        """
        order = self.find_order(order_id)
        if order is None or not can_transition(order.status, target):
            self.logger.log_transition(order_id, action, 0)
            return 0

        def update(stored: OrderRecord) -> OrderRecord:
            return replace(
                stored,
                status=target,
                delivery_agent=delivery_agent,
                delivery_time=delivery_time,
                cancel_reason=cancel_reason,
            )

        return self._broadcast(order_id, update, action)

    def _broadcast(self, order_id: str, update: Callable[[OrderRecord], OrderRecord], action: str) -> int:
        """Map ``update`` over both surfaces for records matching ``order_id``.

        Returns the number of copies that actually changed.
        """
        changed = 0

        def apply(order: OrderRecord) -> OrderRecord:
            nonlocal changed
            if order.order_id != order_id:
                return order
            updated = update(order)
            if updated != order:
                changed += 1
            return updated

        current = self.current_batch()
        if current is not None:
            current.orders = [apply(order) for order in current.orders]

        self.history.apply(apply)

        self.logger.log_transition(order_id, action, changed)
        return changed

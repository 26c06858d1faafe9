"""
Order Desk Session
Owns the current batch, the extraction "processing" state, the history
store and the lifecycle engine. This is the caller-facing boundary: input
checks, cancel-reason resolution and the delivered-order edit lock live here,
not in the engine.

One instance per process; the API keeps it on ``app.state``.
"""
import asyncio
import time
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from order_desk import config
from order_desk.analytics import (
    OrderAnalytics,
    analytics,
    day_view,
    filter_by_status,
    repeated_customer,
    select_view_source,
)
from order_desk.errors import (
    EmptyExportError,
    EmptyInputError,
    ExtractionError,
    ExtractionInProgressError,
    MissingCancelReasonError,
    OrderLockedError,
    OrderNotFoundError,
)
from order_desk.exports.label_pdf import generate_label_pdf
from order_desk.exports.report_pdf import generate_daily_report_pdf
from order_desk.history_store import HistoryStore
from order_desk.lifecycle import LifecycleEngine
from order_desk.models import (
    ALL_STATUSES,
    Batch,
    OrderRecord,
    OrderStatus,
    SourceKind,
    ViewRole,
    generate_batch_id,
    now_millis,
)
from order_desk.utils.logger import get_logger

SOURCE_CURRENT_BATCH = 'current_batch'
SOURCE_DAY_VIEW = 'day_view'


def today() -> str:
    """Local calendar date, ``YYYY-MM-DD``."""
    return datetime.now().strftime('%Y-%m-%d')


def resolve_cancel_reason(reason: Optional[str], custom_reason: Optional[str] = None) -> str:
    """
    Turn the operator's choice into the reason string stored on the order.

    ``Other`` must come with non-blank custom text, which replaces it.

    Raises:
        MissingCancelReasonError: no usable reason.
    """
    reason = (reason or '').strip()
    if not reason:
        raise MissingCancelReasonError("Please select a reason for cancelling this delivery.")
    if reason == config.CANCEL_REASON_OTHER:
        custom = (custom_reason or '').strip()
        if not custom:
            raise MissingCancelReasonError("Please enter a custom cancellation reason.")
        return custom
    return reason


class OrderDesk:
    """Process-wide order desk state and operations"""

    def __init__(
        self,
        history: HistoryStore,
        gateway,
        agent_name: str = None,
        clock: Callable[[], datetime] = None,
        logger=None,
    ):
        """
        Args:
            history: loaded HistoryStore.
            gateway: object with ``extract_from_text(text)`` and
                ``extract_from_image(data, content_type)``.
            agent_name: identity stamped on delivered orders.
            clock: instant source for delivery stamps (tests).
        """
        self.history = history
        self.gateway = gateway
        self.logger = logger or get_logger()
        self.current_batch: Optional[Batch] = None
        self.is_processing = False
        self.last_error: Optional[str] = None
        self._last_batch_id: Optional[str] = history.latest_id()
        self.engine = LifecycleEngine(
            history,
            current_batch=lambda: self.current_batch,
            agent_name=agent_name,
            clock=clock,
            logger=self.logger,
        )

    # ────────────────────────────────────────────────────────────
    # Extraction
    # ────────────────────────────────────────────────────────────

    async def extract_text(self, text: str) -> Batch:
        if not text or not text.strip():
            raise EmptyInputError("Please enter some text to process.")
        return await self._run_extraction(
            SourceKind.TEXT, len(text.encode('utf-8')), self.gateway.extract_from_text, text
        )

    async def extract_image(self, data: bytes, content_type: str) -> Batch:
        if not data:
            raise EmptyInputError("Please upload an image to process.")
        return await self._run_extraction(
            SourceKind.IMAGE, len(data), self.gateway.extract_from_image, data, content_type
        )

    async def _run_extraction(self, source_kind: SourceKind, payload_size: int, call, *args) -> Batch:
        """
        Run one gateway call off the event loop.

        Only one extraction may be outstanding; transitions and edits keep
        working meanwhile. Starting clears the current batch; on failure
        history is untouched and ``last_error`` is set.
        """
        if self.is_processing:
            raise ExtractionInProgressError("An extraction is already in progress.")

        self.is_processing = True
        self.current_batch = None
        self.last_error = None
        started = time.time()
        self.logger.log_extraction_start(source_kind.value, payload_size)
        try:
            orders = await asyncio.to_thread(call, *args)
        except (EmptyInputError, ExtractionError) as e:
            self.last_error = str(e)
            raise
        finally:
            self.is_processing = False

        batch = self._new_batch(orders, source_kind)
        self.history.append(batch)
        self.current_batch = batch.copy()
        self.logger.log_extraction_complete(batch.id, len(batch.orders), time.time() - started)
        return self.current_batch

    def _new_batch(self, orders: List[OrderRecord], source_kind: SourceKind) -> Batch:
        timestamp = now_millis()
        batch_id = generate_batch_id(timestamp, self._last_batch_id)
        self._last_batch_id = batch_id
        return Batch(id=batch_id, timestamp=timestamp, orders=list(orders), source_kind=source_kind)

    def dismiss_current_batch(self) -> None:
        """Back to the input screen. History is untouched."""
        self.current_batch = None

    # ────────────────────────────────────────────────────────────
    # Lifecycle
    # ────────────────────────────────────────────────────────────

    def find_order(self, order_id: str) -> Optional[OrderRecord]:
        """Current-batch copy if present, otherwise the newest history copy."""
        return self.engine.find_order(order_id)

    def _require_order(self, order_id: str) -> OrderRecord:
        order = self.find_order(order_id)
        if order is None:
            raise OrderNotFoundError(f"Order {order_id} not found")
        return order

    def mark_out_for_delivery(self, order_id: str) -> OrderRecord:
        self._require_order(order_id)
        self.engine.mark_out_for_delivery(order_id)
        return self.find_order(order_id)

    def mark_delivered(self, order_id: str) -> OrderRecord:
        self._require_order(order_id)
        self.engine.mark_delivered(order_id)
        return self.find_order(order_id)

    def cancel(self, order_id: str, reason: Optional[str], custom_reason: Optional[str] = None) -> OrderRecord:
        final_reason = resolve_cancel_reason(reason, custom_reason)
        self._require_order(order_id)
        self.engine.cancel(order_id, final_reason)
        return self.find_order(order_id)

    def edit_order(self, order_id: str, patch: Dict[str, str]) -> OrderRecord:
        order = self._require_order(order_id)
        if order.status == OrderStatus.DELIVERED:
            raise OrderLockedError(f"Order {order_id} is delivered and can no longer be edited")
        self.engine.edit_fields(order_id, patch)
        return self.find_order(order_id)

    # ────────────────────────────────────────────────────────────
    # Views
    # ────────────────────────────────────────────────────────────

    def day_orders(self, date: Optional[str] = None) -> List[OrderRecord]:
        return day_view(self.history, date or today())

    def view_source(self, role: ViewRole, date: Optional[str] = None) -> Tuple[str, List[OrderRecord]]:
        """The unfiltered listing for ``role`` and the name of its source."""
        orders = select_view_source(self.current_batch, self.day_orders(date), role)
        use_batch = self.current_batch is not None and orders is self.current_batch.orders
        return (SOURCE_CURRENT_BATCH if use_batch else SOURCE_DAY_VIEW), orders

    def view_orders(
        self,
        role: ViewRole,
        date: Optional[str] = None,
        status=ALL_STATUSES,
    ) -> Tuple[str, List[Tuple[OrderRecord, bool]]]:
        """
        Filtered listing with the repeated-customer flag of each order.

        The flag is computed against the unfiltered source so filtering never
        hides a repeat.
        """
        source, orders = self.view_source(role, date)
        return source, [
            (order, repeated_customer(order, orders))
            for order in filter_by_status(orders, status)
        ]

    def view_analytics(self, role: ViewRole, date: Optional[str] = None) -> OrderAnalytics:
        _, orders = self.view_source(role, date)
        return analytics(orders)

    # ────────────────────────────────────────────────────────────
    # History
    # ────────────────────────────────────────────────────────────

    def open_history_batch(self, batch_id: str) -> Optional[Batch]:
        """Make an independent copy of a stored batch the current batch."""
        batch = self.history.get(batch_id)
        if batch is None:
            return None
        self.current_batch = batch.copy()
        return self.current_batch

    def delete_history_batch(self, batch_id: str) -> None:
        self.history.remove(batch_id)

    def clear_history(self) -> None:
        self.history.clear()

    # ────────────────────────────────────────────────────────────
    # Exports
    # ────────────────────────────────────────────────────────────

    def export_labels(self, date: Optional[str] = None, output_dir: Optional[str] = None) -> str:
        """Label sheet of the current batch, or of the day view when none is active."""
        orders = self.current_batch.orders if self.current_batch is not None else self.day_orders(date)
        return generate_label_pdf(orders, output_dir=output_dir)

    def export_report(self, date: Optional[str] = None, output_dir: Optional[str] = None) -> str:
        """Daily report from the day view only."""
        date = date or today()
        orders = self.day_orders(date)
        if not orders:
            raise EmptyExportError(f"No orders recorded on {date}")
        return generate_daily_report_pdf(orders, date, output_dir=output_dir)

"""
Order Desk – Session Tests
==========================

Exercises the desk with an in-memory history and a mock gateway.

Verifies:
- Extraction creates a batch in history and an independent current batch.
- A new extraction clears the current batch; a failed one leaves history unchanged.
- Only one extraction at a time; transitions still work meanwhile.
- Cancel-reason resolution, unknown ids and the delivered-order edit lock.
- View selection and exports.
"""
import asyncio
import os
import shutil
import sys
import tempfile
import threading
import unittest
from datetime import datetime, timezone
from unittest.mock import MagicMock

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from order_desk.desk import (
    SOURCE_CURRENT_BATCH,
    SOURCE_DAY_VIEW,
    OrderDesk,
    resolve_cancel_reason,
    today,
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
from order_desk.history_store import HistoryStore
from order_desk.local_store import MemoryStore
from order_desk.models import Batch, OrderRecord, OrderStatus, SourceKind, ViewRole, now_millis


def _orders(*ids):
    return [
        OrderRecord(
            order_id=order_id,
            name=f"Customer {order_id}",
            contact="01711000000" if order_id.endswith("1") else f"0190000{order_id[-4:]}",
            cod_bill="650",
            address=f"House {order_id[-2:]}, Mirpur",
        )
        for order_id in ids
    ]


def _make_desk(gateway=None):
    history = HistoryStore(MemoryStore(), capacity=50, logger=MagicMock())
    return OrderDesk(
        history,
        gateway or MagicMock(),
        agent_name="Agent Rahim",
        clock=lambda: datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc),
        logger=MagicMock(),
    )


class TestCancelReason(unittest.TestCase):

    def test_predefined_reason_kept(self):
        self.assertEqual(resolve_cancel_reason("Phone unreachable"), "Phone unreachable")

    def test_other_uses_custom_text(self):
        self.assertEqual(resolve_cancel_reason("Other", "  Gate locked "), "Gate locked")

    def test_missing_reason_rejected(self):
        for reason, custom in (("", None), ("   ", None), (None, None), ("Other", ""), ("Other", "  ")):
            with self.assertRaises(MissingCancelReasonError):
                resolve_cancel_reason(reason, custom)


class TestExtraction(unittest.IsolatedAsyncioTestCase):

    async def test_text_extraction_creates_batch(self):
        gateway = MagicMock()
        gateway.extract_from_text.return_value = _orders("OF-1001", "OF-1002")
        desk = _make_desk(gateway)

        batch = await desk.extract_text("two orders")

        self.assertIs(desk.current_batch, batch)
        self.assertEqual(batch.source_kind, SourceKind.TEXT)
        self.assertEqual(len(desk.history), 1)
        stored = desk.history.get(batch.id)
        self.assertEqual(stored.orders, batch.orders)
        self.assertIsNot(stored.orders[0], batch.orders[0])
        self.assertFalse(desk.is_processing)
        self.assertEqual(batch.local_date, today())

    async def test_image_extraction_passes_bytes(self):
        gateway = MagicMock()
        gateway.extract_from_image.return_value = _orders("OF-1001")
        desk = _make_desk(gateway)

        batch = await desk.extract_image(b"\x89PNG...", "image/png")

        gateway.extract_from_image.assert_called_once_with(b"\x89PNG...", "image/png")
        self.assertEqual(batch.source_kind, SourceKind.IMAGE)

    async def test_batch_ids_strictly_increase(self):
        gateway = MagicMock()
        gateway.extract_from_text.side_effect = lambda text: _orders("OF-1001")
        desk = _make_desk(gateway)

        first = await desk.extract_text("a")
        second = await desk.extract_text("b")
        self.assertGreater(int(second.id), int(first.id))

    async def test_blank_text_rejected_before_gateway(self):
        gateway = MagicMock()
        desk = _make_desk(gateway)
        with self.assertRaises(EmptyInputError):
            await desk.extract_text("  ")
        gateway.extract_from_text.assert_not_called()
        self.assertEqual(len(desk.history), 0)

    async def test_failure_clears_current_batch_keeps_history(self):
        gateway = MagicMock()
        gateway.extract_from_text.return_value = _orders("OF-1001")
        desk = _make_desk(gateway)
        previous = await desk.extract_text("first")

        gateway.extract_from_text.side_effect = ExtractionError()
        with self.assertRaises(ExtractionError):
            await desk.extract_text("second")

        self.assertIsNone(desk.current_batch)
        self.assertEqual(len(desk.history), 1)
        self.assertEqual(desk.history.get(previous.id).orders, previous.orders)
        self.assertFalse(desk.is_processing)
        self.assertEqual(desk.last_error, ExtractionError.GENERIC_MESSAGE)

    async def test_one_extraction_at_a_time(self):
        release = threading.Event()
        gateway = MagicMock()

        def slow_extract(text):
            release.wait(5)
            return _orders("OF-2001")

        gateway.extract_from_text.side_effect = slow_extract
        desk = _make_desk(gateway)
        earlier = _batch_for_today(_orders("OF-1001"))
        desk.history.append(earlier)
        desk.current_batch = earlier.copy()

        running = asyncio.create_task(desk.extract_text("first"))
        await asyncio.sleep(0)
        self.assertTrue(desk.is_processing)
        self.assertIsNone(desk.current_batch)

        with self.assertRaises(ExtractionInProgressError):
            await desk.extract_text("second")

        # Transitions are not blocked by an outstanding extraction
        updated = desk.mark_out_for_delivery("OF-1001")
        self.assertEqual(updated.status, OrderStatus.OUT_FOR_DELIVERY)

        release.set()
        batch = await running
        self.assertEqual([o.order_id for o in batch.orders], ["OF-2001"])
        self.assertFalse(desk.is_processing)
        self.assertEqual(desk.history.find_order("OF-1001").status, OrderStatus.OUT_FOR_DELIVERY)


def _batch_for_today(orders):
    ts = now_millis() - 1000
    return Batch(id=str(ts), timestamp=ts, orders=orders)


class TestOrderOperations(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        gateway = MagicMock()
        gateway.extract_from_text.return_value = _orders("OF-1001", "OF-1002", "OF-1003")
        self.desk = _make_desk(gateway)
        self.batch = await self.desk.extract_text("orders")

    def test_unknown_order(self):
        with self.assertRaises(OrderNotFoundError):
            self.desk.mark_out_for_delivery("OF-9999")
        with self.assertRaises(OrderNotFoundError):
            self.desk.cancel("OF-9999", "Phone unreachable")
        with self.assertRaises(OrderNotFoundError):
            self.desk.edit_order("OF-9999", {"name": "x"})

    def test_deliver_reaches_both_surfaces(self):
        self.desk.mark_out_for_delivery("OF-1001")
        order = self.desk.mark_delivered("OF-1001")

        self.assertEqual(order.status, OrderStatus.DELIVERED)
        self.assertEqual(order.delivery_agent, "Agent Rahim")
        stored = self.desk.history.find_order("OF-1001")
        self.assertEqual(stored.delivery_time, order.delivery_time)

    def test_cancel_requires_reason(self):
        with self.assertRaises(MissingCancelReasonError):
            self.desk.cancel("OF-1002", "")
        self.assertEqual(self.desk.find_order("OF-1002").status, OrderStatus.PENDING)

    def test_cancel_with_other(self):
        order = self.desk.cancel("OF-1002", "Other", "Customer moved")
        self.assertEqual(order.cancel_reason, "Customer moved")
        self.assertEqual(self.desk.history.find_order("OF-1002").cancel_reason, "Customer moved")

    def test_edit_propagates(self):
        order = self.desk.edit_order("OF-1003", {"address": "Uttara 7", "status": "Delivered"})
        self.assertEqual(order.address, "Uttara 7")
        self.assertEqual(order.status, OrderStatus.PENDING)
        self.assertEqual(self.desk.history.find_order("OF-1003").address, "Uttara 7")

    def test_delivered_order_is_locked(self):
        self.desk.mark_out_for_delivery("OF-1001")
        self.desk.mark_delivered("OF-1001")
        with self.assertRaises(OrderLockedError):
            self.desk.edit_order("OF-1001", {"name": "Changed"})

    def test_dismiss_keeps_history(self):
        self.desk.dismiss_current_batch()
        self.assertIsNone(self.desk.current_batch)
        self.assertEqual(len(self.desk.history), 1)
        # Still reachable through history
        self.assertEqual(self.desk.mark_out_for_delivery("OF-1001").status, OrderStatus.OUT_FOR_DELIVERY)

    def test_open_history_batch_is_a_copy(self):
        self.desk.dismiss_current_batch()
        opened = self.desk.open_history_batch(self.batch.id)
        self.assertIs(self.desk.current_batch, opened)
        self.assertIsNot(opened.orders[0], self.desk.history.get(self.batch.id).orders[0])
        self.assertIsNone(self.desk.open_history_batch("404"))

    def test_views_by_role(self):
        source, rows = self.desk.view_orders(ViewRole.ADMIN)
        self.assertEqual(source, SOURCE_CURRENT_BATCH)
        self.assertEqual(len(rows), 3)

        source, rows = self.desk.view_orders(ViewRole.AGENT)
        self.assertEqual(source, SOURCE_DAY_VIEW)
        self.assertEqual(len(rows), 3)

        source, rows = self.desk.view_orders(ViewRole.AGENT, date="2000-01-01")
        self.assertEqual(rows, [])

    def test_view_filter_and_repeat_flag(self):
        self.desk.cancel("OF-1002", "Phone unreachable")
        _, rows = self.desk.view_orders(ViewRole.ADMIN, status="Cancelled")
        self.assertEqual([(o.order_id, repeated) for o, repeated in rows], [("OF-1002", False)])

    def test_view_analytics(self):
        self.desk.mark_out_for_delivery("OF-1001")
        self.desk.mark_delivered("OF-1001")
        summary = self.desk.view_analytics(ViewRole.AGENT)
        self.assertEqual(summary.total, 3)
        self.assertEqual(summary.delivered, 1)
        self.assertEqual(summary.success_rate, 33)

    def test_delete_and_clear_history(self):
        self.desk.delete_history_batch("404")
        self.assertEqual(len(self.desk.history), 1)
        self.desk.delete_history_batch(self.batch.id)
        self.assertEqual(len(self.desk.history), 0)
        self.desk.clear_history()
        self.assertEqual(len(self.desk.history), 0)


class TestDeskExports(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.temp_dir = tempfile.mkdtemp(prefix="order_desk_desk_")
        gateway = MagicMock()
        gateway.extract_from_text.return_value = _orders("OF-1001", "OF-1002")
        self.desk = _make_desk(gateway)

    async def asyncTearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    async def test_labels_from_current_batch(self):
        await self.desk.extract_text("orders")
        path = self.desk.export_labels(output_dir=self.temp_dir)
        self.assertTrue(os.path.basename(path).startswith("delivery_orders_"))
        self.assertTrue(os.path.isfile(path))

    async def test_labels_with_nothing_to_print(self):
        with self.assertRaises(EmptyExportError):
            self.desk.export_labels(output_dir=self.temp_dir)

    async def test_report_uses_day_view(self):
        await self.desk.extract_text("orders")
        path = self.desk.export_report(output_dir=self.temp_dir)
        self.assertEqual(os.path.basename(path), f"daily_report_{today()}.pdf")

    async def test_report_for_empty_day(self):
        await self.desk.extract_text("orders")
        with self.assertRaises(EmptyExportError):
            self.desk.export_report("2000-01-01", output_dir=self.temp_dir)


if __name__ == "__main__":
    unittest.main()

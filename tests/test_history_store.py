"""
Order Desk – History Store Tests
================================

Verifies:
- Newest-first ordering and eviction at capacity.
- Remove is by id and idempotent.
- Saved layout and reload.
- Corrupt saved history loads empty and is overwritten on the next write.
- Out-of-range timestamps and inconsistent orders are rejected at load.
- Day view boundaries use the local calendar date.
"""
import json
import os
import sys
import unittest
from dataclasses import replace
from datetime import datetime
from unittest.mock import MagicMock

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from order_desk.history_store import HistoryStore
from order_desk.local_store import MemoryStore
from order_desk.models import Batch, OrderRecord, OrderStatus, SourceKind

KEY = "order_history"


def _order(order_id, **kwargs):
    fields = dict(order_id=order_id, name="Customer", contact="017", cod_bill="500", address="Mirpur")
    fields.update(kwargs)
    return OrderRecord(**fields)


def _batch(batch_id, when=None, orders=None):
    if when is None:
        timestamp = int(batch_id)
    else:
        timestamp = int(when.timestamp() * 1000)
    return Batch(id=str(batch_id), timestamp=timestamp, orders=orders or [])


class TestHistoryStore(unittest.TestCase):

    def setUp(self):
        self.store = MemoryStore()
        self.logger = MagicMock()
        self.history = HistoryStore(self.store, storage_key=KEY, capacity=50, logger=self.logger)

    def test_append_is_newest_first(self):
        self.history.append(_batch(1000))
        self.history.append(_batch(2000))
        self.assertEqual([b.id for b in self.history.batches()], ["2000", "1000"])
        self.assertEqual(self.history.latest_id(), "2000")

    def test_capacity_evicts_oldest(self):
        """51 appends keep the 50 most recent."""
        for i in range(1, 52):
            self.history.append(_batch(i * 1000))
        ids = [b.id for b in self.history.batches()]
        self.assertEqual(len(ids), 50)
        self.assertEqual(ids[0], "51000")
        self.assertNotIn("1000", ids)
        self.assertEqual(len(json.loads(self.store.get_item(KEY))), 50)

    def test_remove_only_matching_batch(self):
        for i in (1, 2, 3):
            self.history.append(_batch(i * 1000))
        self.history.remove("2000")
        self.assertEqual([b.id for b in self.history.batches()], ["3000", "1000"])

        saved = self.store.get_item(KEY)
        self.history.remove("2000")
        self.assertEqual(self.store.get_item(KEY), saved)
        self.assertEqual(len(self.history), 2)

    def test_clear(self):
        self.history.append(_batch(1000))
        self.history.clear()
        self.assertEqual(len(self.history), 0)
        self.assertEqual(json.loads(self.store.get_item(KEY)), [])

    def test_saved_layout(self):
        delivered = _order(
            "OF-1001",
            status=OrderStatus.DELIVERED,
            delivery_agent="Agent Rahim",
            delivery_time="2024-05-01T09:30:00.000Z",
        )
        batch = Batch(id="1000", timestamp=1000, orders=[delivered], source_kind=SourceKind.IMAGE)
        self.history.append(batch)

        saved = json.loads(self.store.get_item(KEY))
        self.assertEqual(set(saved[0]), {"id", "timestamp", "orders", "sourceType"})
        order = saved[0]["orders"][0]
        self.assertEqual(order["codBill"], "500")
        self.assertEqual(order["delivery_agent"], "Agent Rahim")
        self.assertEqual(order["status"], "Delivered")

    def test_reload_restores_batches(self):
        self.history.append(_batch(1000, orders=[_order("OF-1001")]))
        self.history.append(_batch(2000, orders=[_order("OF-1002")]))

        reloaded = HistoryStore(self.store, storage_key=KEY, capacity=50, logger=self.logger)
        self.assertEqual([b.id for b in reloaded.batches()], ["2000", "1000"])
        self.assertEqual(reloaded.get("1000").orders[0].order_id, "OF-1001")

    def test_corrupt_history_loads_empty(self):
        store = MemoryStore({KEY: "{broken"})
        history = HistoryStore(store, storage_key=KEY, capacity=50, logger=self.logger)
        self.assertEqual(len(history), 0)
        self.logger.warning.assert_called()

        history.append(_batch(1000))
        self.assertEqual(len(json.loads(store.get_item(KEY))), 1)

    def test_wrong_shape_loads_empty(self):
        for raw in ('{"id": 1}', '[{"id": "1"}]', '[{"id": "1", "timestamp": 1, "orders": [{"order_id": "x"}]}]'):
            history = HistoryStore(MemoryStore({KEY: raw}), storage_key=KEY, capacity=50, logger=self.logger)
            self.assertEqual(len(history), 0, raw)

    def test_unrepresentable_timestamp_loads_empty(self):
        for timestamp in ("1e20", "1e999", "-1e20"):
            raw = '[{"id": "1", "timestamp": %s, "orders": [], "sourceType": "text"}]' % timestamp
            history = HistoryStore(MemoryStore({KEY: raw}), storage_key=KEY, capacity=50, logger=self.logger)
            self.assertEqual(len(history), 0, raw)
            self.assertEqual(history.find_by_date("2024-05-01"), [])

    def test_inconsistent_orders_dropped_on_load(self):
        saved = _batch(1000, orders=[
            _order("OF-1001"),
            _order("OF-1002", status=OrderStatus.DELIVERED),
            _order("OF-1003", status=OrderStatus.CANCELLED, cancel_reason="Refused delivery"),
            _order("OF-1004", cancel_reason="Refused delivery"),
        ])
        store = MemoryStore({KEY: json.dumps([saved.to_dict()])})
        logger = MagicMock()

        history = HistoryStore(store, storage_key=KEY, capacity=50, logger=logger)

        self.assertEqual([o.order_id for o in history.get("1000").orders], ["OF-1001", "OF-1003"])
        self.assertEqual(logger.warning.call_count, 2)
        self.assertIsNone(history.find_order("OF-1002"))

    def test_get_missing_returns_none(self):
        self.assertIsNone(self.history.get("404"))

    def test_find_order_prefers_newest_batch(self):
        self.history.append(_batch(1000, orders=[_order("OF-1001", name="Old")]))
        self.history.append(_batch(2000, orders=[_order("OF-1001", name="New")]))
        self.assertEqual(self.history.find_order("OF-1001").name, "New")
        self.assertIsNone(self.history.find_order("OF-9999"))

    def test_apply_rewrites_every_batch(self):
        self.history.append(_batch(1000, orders=[_order("OF-1001")]))
        self.history.append(_batch(2000, orders=[_order("OF-1001"), _order("OF-1002")]))

        self.history.apply(lambda o: replace(o, name="Renamed") if o.order_id == "OF-1001" else o)

        names = [o.name for b in self.history.batches() for o in b.orders if o.order_id == "OF-1001"]
        self.assertEqual(names, ["Renamed", "Renamed"])
        self.assertIn("Renamed", self.store.get_item(KEY))


class TestFindByDate(unittest.TestCase):
    """Day view is keyed on the local calendar date of the batch timestamp."""

    def setUp(self):
        self.history = HistoryStore(MemoryStore(), storage_key=KEY, capacity=50, logger=MagicMock())
        self.history.append(_batch(1, when=datetime(2024, 4, 30, 23, 59), orders=[_order("OF-0430")]))
        self.history.append(_batch(2, when=datetime(2024, 5, 1, 0, 0), orders=[_order("OF-0501")]))
        self.history.append(_batch(3, when=datetime(2024, 5, 1, 18, 0), orders=[_order("OF-0502"), _order("OF-0503")]))
        self.history.append(_batch(4, when=datetime(2024, 5, 2, 0, 0), orders=[_order("OF-0504")]))

    def test_only_same_day_batches(self):
        ids = [o.order_id for o in self.history.find_by_date("2024-05-01")]
        self.assertEqual(ids, ["OF-0502", "OF-0503", "OF-0501"])

    def test_no_batches_that_day(self):
        self.assertEqual(self.history.find_by_date("2024-06-01"), [])


if __name__ == "__main__":
    unittest.main()

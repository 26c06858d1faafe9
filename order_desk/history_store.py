"""
History Store

Capacity-bounded, newest-first log of extraction batches.

Persistence is write-through: every mutating call serializes the full list
into the key/value store under one key. Loading happens once at
construction; a corrupt or unreadable saved value yields an empty history
(logged, never raised). Orders whose status contradicts their delivery or
cancel fields are dropped individually at load.
"""
import json
from typing import Callable, List, Optional

from order_desk import config
from order_desk.models import Batch, OrderRecord
from order_desk.utils.logger import get_logger


class HistoryStore:
    """Ordered batch log with load-on-init and persist-on-mutation."""

    def __init__(self, store, storage_key: str = None, capacity: int = None, logger=None):
        """
        Args:
            store: object with ``get_item(key)`` / ``set_item(key, value)``
                (``LocalStore`` or ``MemoryStore``).
            storage_key: key the history is saved under.
            capacity: maximum number of batches kept.
            logger: optional ``DeskLogger``; defaults to the global one.
        """
        self.store = store
        self.storage_key = storage_key or config.HISTORY_STORAGE_KEY
        self.capacity = capacity or config.HISTORY_CAPACITY
        self.logger = logger or get_logger()
        self._batches: List[Batch] = []
        self.load()

    # ────────────────────────────────────────────────────────────
    # Persistence
    # ────────────────────────────────────────────────────────────

    def load(self) -> None:
        """Restore from the store. Anything unreadable becomes an empty history."""
        try:
            raw = self.store.get_item(self.storage_key)
            if raw is None:
                self._batches = []
                return
            data = json.loads(raw)
            if not isinstance(data, list):
                raise ValueError("saved history is not a list")
            batches = [Batch.from_dict(item) for item in data][:self.capacity]
        except (OSError, OverflowError, ValueError, KeyError, TypeError) as e:
            self.logger.warning(f"Failed to load history, starting empty: {e}", component="History")
            self._batches = []
            return

        for batch in batches:
            batch.orders = [order for order in batch.orders if self._keep_loaded(batch, order)]
        self._batches = batches
        self.logger.log_history_change('loaded', size=len(self._batches))

    def _keep_loaded(self, batch: Batch, order: OrderRecord) -> bool:
        if order.is_consistent():
            return True
        self.logger.warning(
            f"Dropping order {order.order_id} from batch {batch.id}: "
            f"status {order.status.value} does not match its delivery/cancel fields",
            component="History",
        )
        return False

    def persist(self) -> None:
        """Overwrite the saved history with the in-memory state."""
        payload = json.dumps([batch.to_dict() for batch in self._batches], ensure_ascii=False)
        self.store.set_item(self.storage_key, payload)

    # ────────────────────────────────────────────────────────────
    # Mutations
    # ────────────────────────────────────────────────────────────

    def append(self, batch: Batch) -> None:
        """Insert at the front, evicting the oldest entries past capacity."""
        self._batches.insert(0, batch)
        del self._batches[self.capacity:]
        self.persist()
        self.logger.log_history_change('append', batch.id, len(self._batches))

    def remove(self, batch_id: str) -> None:
        """Remove the batch with ``batch_id``. Absent ids are a no-op."""
        remaining = [b for b in self._batches if b.id != batch_id]
        if len(remaining) == len(self._batches):
            return
        self._batches = remaining
        self.persist()
        self.logger.log_history_change('remove', batch_id, len(self._batches))

    def clear(self) -> None:
        self._batches = []
        self.persist()
        self.logger.log_history_change('clear', size=0)

    def apply(self, transform: Callable[[OrderRecord], OrderRecord]) -> None:
        """Rewrite every batch's order list through ``transform`` and persist once."""
        for batch in self._batches:
            batch.orders = [transform(order) for order in batch.orders]
        self.persist()

    # ────────────────────────────────────────────────────────────
    # Queries
    # ────────────────────────────────────────────────────────────

    def batches(self) -> List[Batch]:
        """Stored batches, newest first."""
        return list(self._batches)

    def get(self, batch_id: str) -> Optional[Batch]:
        """Load-by-id. Returns None if absent."""
        return next((b for b in self._batches if b.id == batch_id), None)

    def find_by_date(self, date: str) -> List[OrderRecord]:
        """Orders of every batch created on local calendar day ``date`` (YYYY-MM-DD), in stored order."""
        orders: List[OrderRecord] = []
        for batch in self._batches:
            if batch.local_date == date:
                orders.extend(batch.orders)
        return orders

    def find_order(self, order_id: str) -> Optional[OrderRecord]:
        """First stored copy of ``order_id`` (newest batch first)."""
        for batch in self._batches:
            for order in batch.orders:
                if order.order_id == order_id:
                    return order
        return None

    def latest_id(self) -> Optional[str]:
        return self._batches[0].id if self._batches else None

    def __len__(self) -> int:
        return len(self._batches)

"""
Order Desk Data Models

Pure definitions -- no side effects, no imports of external services.

Dict (de)serialization uses the persisted field names: ``order_id``,
``codBill``, ``delivery_agent``, ``delivery_time``, ``cancel_reason`` on
orders and ``id``, ``timestamp``, ``orders``, ``sourceType`` on batches.
Previously saved history depends on these exact spellings.
"""
import copy
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

ALL_STATUSES = 'All'


class OrderStatus(Enum):
    """Delivery lifecycle states for an order."""
    PENDING = 'Pending'
    OUT_FOR_DELIVERY = 'Out for Delivery'
    DELIVERED = 'Delivered'
    CANCELLED = 'Cancelled'


class SourceKind(Enum):
    """Provenance of a batch. Display only."""
    IMAGE = 'image'
    TEXT = 'text'


class ViewRole(Enum):
    """Display mode. Selects which orders are shown; grants nothing."""
    ADMIN = 'admin'
    AGENT = 'agent'


# Fields the admin may edit after extraction
EDITABLE_FIELDS = ('name', 'contact', 'cod_bill', 'address')


@dataclass
class OrderRecord:
    """One delivery order."""
    order_id: str
    name: str
    contact: str
    cod_bill: str
    address: str
    status: OrderStatus = OrderStatus.PENDING
    delivery_agent: Optional[str] = None
    delivery_time: Optional[str] = None
    cancel_reason: Optional[str] = None

    def is_consistent(self) -> bool:
        """Check the status/side-field invariant.

        Delivery stamps exist iff Delivered; a non-empty cancel reason exists
        iff Cancelled.
        """
        delivered = self.status == OrderStatus.DELIVERED
        cancelled = self.status == OrderStatus.CANCELLED
        has_delivery = bool(self.delivery_agent) and bool(self.delivery_time)
        no_delivery = self.delivery_agent is None and self.delivery_time is None
        if delivered != has_delivery or (not delivered and not no_delivery):
            return False
        if cancelled:
            return bool(self.cancel_reason)
        return self.cancel_reason is None

    def to_dict(self) -> dict:
        """Convert to the persisted/wire dict shape. Unset optionals are omitted."""
        data = {
            'order_id': self.order_id,
            'name': self.name,
            'contact': self.contact,
            'codBill': self.cod_bill,
            'address': self.address,
            'status': self.status.value,
        }
        if self.delivery_agent is not None:
            data['delivery_agent'] = self.delivery_agent
        if self.delivery_time is not None:
            data['delivery_time'] = self.delivery_time
        if self.cancel_reason is not None:
            data['cancel_reason'] = self.cancel_reason
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'OrderRecord':
        """Create an OrderRecord from a persisted dict.

        Raises:
            KeyError: a required field is missing.
            ValueError: the status is not a known value.
        """
        return cls(
            order_id=str(data['order_id']),
            name=str(data['name']),
            contact=str(data['contact']),
            cod_bill=str(data['codBill']),
            address=str(data['address']),
            status=OrderStatus(data.get('status', OrderStatus.PENDING.value)),
            delivery_agent=data.get('delivery_agent'),
            delivery_time=data.get('delivery_time'),
            cancel_reason=data.get('cancel_reason'),
        )


@dataclass
class Batch:
    """One extraction result, as stored in history."""
    id: str
    timestamp: int  # epoch milliseconds
    orders: List[OrderRecord] = field(default_factory=list)
    source_kind: SourceKind = SourceKind.TEXT

    @property
    def local_date(self) -> str:
        """Calendar date of the timestamp in local time, ``YYYY-MM-DD``."""
        return datetime.fromtimestamp(self.timestamp / 1000).strftime('%Y-%m-%d')

    def copy(self) -> 'Batch':
        """Independent deep copy; mutations on it never reach the original."""
        return copy.deepcopy(self)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'timestamp': self.timestamp,
            'orders': [order.to_dict() for order in self.orders],
            'sourceType': self.source_kind.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Batch':
        """Create a Batch from a persisted dict.

        Raises:
            KeyError: a required field is missing.
            ValueError, OverflowError, OSError: the timestamp is not a
                representable local date, or a status is unknown.
        """
        batch = cls(
            id=str(data['id']),
            timestamp=int(data['timestamp']),
            orders=[OrderRecord.from_dict(o) for o in data.get('orders', [])],
            source_kind=SourceKind(data.get('sourceType', SourceKind.TEXT.value)),
        )
        # Raises for timestamps outside the platform date range
        batch.local_date
        return batch


def now_millis() -> int:
    """Current instant as epoch milliseconds."""
    return int(time.time() * 1000)


def generate_batch_id(timestamp: int, last_id: Optional[str] = None) -> str:
    """
    Generate a batch id from its creation time.

    Format: epoch milliseconds as a decimal string (e.g. ``1714550400123``).
    When ``last_id`` is at or after ``timestamp`` (two batches within one
    millisecond) the id is bumped past it so ids stay strictly increasing.
    """
    candidate = timestamp
    if last_id is not None and last_id.isdigit():
        candidate = max(candidate, int(last_id) + 1)
    return str(candidate)

"""
Pydantic request and response models for the REST API.
"""
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from order_desk.models import Batch, OrderRecord


class OrderOut(BaseModel):
    """One order as shown to clients."""
    order_id: str
    name: str
    contact: str
    cod_bill: str
    address: str
    status: str
    delivery_agent: Optional[str] = None
    delivery_time: Optional[str] = None
    cancel_reason: Optional[str] = None
    repeated_customer: Optional[bool] = None

    @classmethod
    def from_record(cls, order: OrderRecord, repeated: Optional[bool] = None) -> "OrderOut":
        return cls(
            order_id=order.order_id,
            name=order.name,
            contact=order.contact,
            cod_bill=order.cod_bill,
            address=order.address,
            status=order.status.value,
            delivery_agent=order.delivery_agent,
            delivery_time=order.delivery_time,
            cancel_reason=order.cancel_reason,
            repeated_customer=repeated,
        )


class BatchOut(BaseModel):
    """A batch with its orders."""
    id: str
    timestamp: int = Field(..., description="Creation time, epoch milliseconds")
    date: str = Field(..., description="Local calendar date of creation")
    source_type: str
    order_count: int
    orders: List[OrderOut] = []

    @classmethod
    def from_batch(cls, batch: Batch) -> "BatchOut":
        return cls(
            id=batch.id,
            timestamp=batch.timestamp,
            date=batch.local_date,
            source_type=batch.source_kind.value,
            order_count=len(batch.orders),
            orders=[OrderOut.from_record(order) for order in batch.orders],
        )


class BatchSummary(BaseModel):
    """History listing entry."""
    id: str
    timestamp: int
    date: str
    source_type: str
    order_count: int


class OrderListResponse(BaseModel):
    source: str = Field(..., description="current_batch or day_view")
    count: int
    orders: List[OrderOut] = []


class AnalyticsResponse(BaseModel):
    total: int
    pending: int
    out_for_delivery: int
    delivered: int
    cancelled: int
    success_rate: int = Field(..., description="Delivered share of total, whole percent")
    cancel_reasons: Dict[str, int] = {}


class TextExtractionRequest(BaseModel):
    text: str = Field(..., description="Pasted order data")


class CancelRequest(BaseModel):
    reason: str = Field(..., description="One of the predefined reasons, or 'Other'")
    custom_reason: Optional[str] = Field(None, description="Required when reason is 'Other'")


class OrderPatch(BaseModel):
    """Editable fields. Omitted fields are left unchanged."""
    name: Optional[str] = None
    contact: Optional[str] = None
    cod_bill: Optional[str] = None
    address: Optional[str] = None


class TextResponse(BaseModel):
    count: int
    text: str


class MessageResponse(BaseModel):
    message: str
    detail: Optional[str] = None

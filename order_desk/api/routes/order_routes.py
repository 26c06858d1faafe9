"""
Order routes - listing views, analytics, copy text, status transitions and edits.

Every mutation reaches all copies of the order: the current batch and each
history batch containing it.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from order_desk import config
from order_desk.analytics import filter_by_status
from order_desk.api.helpers import DATE_PATTERN, get_desk, http_error, parse_status_filter
from order_desk.api.schemas import (
    AnalyticsResponse,
    CancelRequest,
    MessageResponse,
    OrderListResponse,
    OrderOut,
    OrderPatch,
    TextResponse,
)
from order_desk.desk import OrderDesk
from order_desk.errors import OrderDeskError, OrderNotFoundError
from order_desk.exports.text_export import format_order_text, format_orders_text
from order_desk.models import ViewRole

router = APIRouter()

_NOT_FOUND = {404: {"model": MessageResponse}}


# ── Views ────────────────────────────────────────────────────────

@router.get(
    "",
    response_model=OrderListResponse,
    summary="List orders for the selected view",
)
async def list_orders(
    role: ViewRole = Query(ViewRole.AGENT, description="admin or agent"),
    date: Optional[str] = Query(None, pattern=DATE_PATTERN, description="Day view date, YYYY-MM-DD (default today)"),
    status: Optional[str] = Query(None, description="All, Pending, Out for Delivery, Delivered or Cancelled"),
    desk: OrderDesk = Depends(get_desk),
):
    """
    Admins see the current batch when one is active, everyone else the
    day view. Each order carries its repeated-customer flag.
    """
    selected = parse_status_filter(status)
    source, rows = desk.view_orders(role, date, selected)
    return OrderListResponse(
        source=source,
        count=len(rows),
        orders=[OrderOut.from_record(order, repeated) for order, repeated in rows],
    )


@router.get(
    "/analytics",
    response_model=AnalyticsResponse,
    summary="Summary statistics for the selected view",
)
async def order_analytics(
    role: ViewRole = Query(ViewRole.AGENT),
    date: Optional[str] = Query(None, pattern=DATE_PATTERN),
    desk: OrderDesk = Depends(get_desk),
):
    return AnalyticsResponse(**desk.view_analytics(role, date).to_dict())


@router.get(
    "/text",
    response_model=TextResponse,
    summary="Copy-ready text for the listed orders",
)
async def orders_text(
    role: ViewRole = Query(ViewRole.AGENT),
    date: Optional[str] = Query(None, pattern=DATE_PATTERN),
    status: Optional[str] = Query(None),
    desk: OrderDesk = Depends(get_desk),
):
    selected = parse_status_filter(status)
    _, orders = desk.view_source(role, date)
    orders = filter_by_status(orders, selected)
    return TextResponse(count=len(orders), text=format_orders_text(orders))


@router.get(
    "/cancel-reasons",
    response_model=List[str],
    summary="Predefined cancellation reasons",
)
async def cancel_reasons():
    """The last entry, 'Other', requires a custom reason."""
    return list(config.CANCEL_REASONS)


@router.get(
    "/{order_id}/text",
    response_model=TextResponse,
    responses=_NOT_FOUND,
    summary="Copy-ready text for one order",
)
async def order_text(order_id: str, desk: OrderDesk = Depends(get_desk)):
    order = desk.find_order(order_id)
    if order is None:
        raise http_error(OrderNotFoundError(f"Order {order_id} not found"))
    return TextResponse(count=1, text=format_order_text(order))


# ── Transitions ──────────────────────────────────────────────────

@router.post(
    "/{order_id}/out-for-delivery",
    response_model=OrderOut,
    responses=_NOT_FOUND,
    summary="Mark an order out for delivery",
)
async def mark_out_for_delivery(order_id: str, desk: OrderDesk = Depends(get_desk)):
    """Pending orders only; any other status is left as it is."""
    try:
        return OrderOut.from_record(desk.mark_out_for_delivery(order_id))
    except OrderDeskError as e:
        raise http_error(e)


@router.post(
    "/{order_id}/deliver",
    response_model=OrderOut,
    responses=_NOT_FOUND,
    summary="Mark an order delivered",
)
async def mark_delivered(order_id: str, desk: OrderDesk = Depends(get_desk)):
    """Stamps the delivery agent and time on every copy of the order."""
    try:
        return OrderOut.from_record(desk.mark_delivered(order_id))
    except OrderDeskError as e:
        raise http_error(e)


@router.post(
    "/{order_id}/cancel",
    response_model=OrderOut,
    responses={400: {"model": MessageResponse}, **_NOT_FOUND},
    summary="Cancel an order",
)
async def cancel_order(order_id: str, body: CancelRequest, desk: OrderDesk = Depends(get_desk)):
    """
    Cancel with a reason.

    - **reason**: one of `/orders/cancel-reasons`
    - **custom_reason**: required text when reason is `Other`
    """
    try:
        return OrderOut.from_record(desk.cancel(order_id, body.reason, body.custom_reason))
    except OrderDeskError as e:
        raise http_error(e)


@router.patch(
    "/{order_id}",
    response_model=OrderOut,
    responses={409: {"model": MessageResponse}, **_NOT_FOUND},
    summary="Edit order fields",
)
async def edit_order(order_id: str, body: OrderPatch, desk: OrderDesk = Depends(get_desk)):
    """Delivered orders are locked and answer 409."""
    try:
        return OrderOut.from_record(desk.edit_order(order_id, body.model_dump(exclude_none=True)))
    except OrderDeskError as e:
        raise http_error(e)

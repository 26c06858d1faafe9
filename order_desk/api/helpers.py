"""
API helper functions shared across route modules.
Desk lookup from app state, query-value parsing and the mapping from desk
errors to HTTP responses.
"""
from typing import Optional

from fastapi import HTTPException, Request, status

from order_desk.desk import OrderDesk
from order_desk.errors import (
    EmptyExportError,
    EmptyInputError,
    ExtractionError,
    ExtractionInProgressError,
    MissingCancelReasonError,
    OrderDeskError,
    OrderLockedError,
    OrderNotFoundError,
)
from order_desk.models import ALL_STATUSES, OrderStatus

DATE_PATTERN = r'^\d{4}-\d{2}-\d{2}$'

_STATUS_CODES = {
    EmptyInputError: status.HTTP_400_BAD_REQUEST,
    MissingCancelReasonError: status.HTTP_400_BAD_REQUEST,
    EmptyExportError: status.HTTP_404_NOT_FOUND,
    OrderNotFoundError: status.HTTP_404_NOT_FOUND,
    ExtractionInProgressError: status.HTTP_409_CONFLICT,
    OrderLockedError: status.HTTP_409_CONFLICT,
    ExtractionError: status.HTTP_502_BAD_GATEWAY,
}


def get_desk(request: Request) -> OrderDesk:
    """Dependency: the process-wide desk held on ``app.state``."""
    desk = getattr(request.app.state, "desk", None)
    if desk is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Order desk is not initialized",
        )
    return desk


def http_error(error: OrderDeskError) -> HTTPException:
    """Translate a desk error into the HTTPException the client sees."""
    code = _STATUS_CODES.get(type(error), status.HTTP_500_INTERNAL_SERVER_ERROR)
    return HTTPException(status_code=code, detail=str(error))


def parse_status_filter(value: Optional[str]) -> str:
    """
    Validate a ``status`` query value: ``All`` or one of the status labels.

    Raises:
        HTTPException 400 for anything else.
    """
    if not value or value == ALL_STATUSES:
        return ALL_STATUSES
    valid = [s.value for s in OrderStatus]
    if value not in valid:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown status '{value}'. Use one of: {', '.join([ALL_STATUSES] + valid)}",
        )
    return value

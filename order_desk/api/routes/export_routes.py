"""
Export routes - delivery label sheet and daily report PDF downloads.
"""
import os
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import FileResponse

from order_desk.api.helpers import DATE_PATTERN, get_desk, http_error
from order_desk.api.schemas import MessageResponse
from order_desk.desk import OrderDesk
from order_desk.errors import OrderDeskError

router = APIRouter()


def _pdf_response(path: str) -> FileResponse:
    return FileResponse(
        path=path,
        media_type="application/pdf",
        filename=os.path.basename(path),
    )


@router.get(
    "/labels",
    responses={404: {"model": MessageResponse}},
    summary="Download delivery labels (PDF)",
)
async def download_labels(
    request: Request,
    date: Optional[str] = Query(None, pattern=DATE_PATTERN, description="Day view date when no batch is active"),
    desk: OrderDesk = Depends(get_desk),
):
    """
    Labels for the current batch, or for the day view when no batch is
    active. 404 when there is nothing to print.
    """
    try:
        path = desk.export_labels(date, output_dir=request.app.state.export_dir)
    except OrderDeskError as e:
        raise http_error(e)
    return _pdf_response(path)


@router.get(
    "/report",
    responses={404: {"model": MessageResponse}},
    summary="Download the daily report (PDF)",
)
async def download_report(
    request: Request,
    date: Optional[str] = Query(None, pattern=DATE_PATTERN, description="Report date, YYYY-MM-DD (default today)"),
    desk: OrderDesk = Depends(get_desk),
):
    """Built from history only; the current batch never feeds the report."""
    try:
        path = desk.export_report(date, output_dir=request.app.state.export_dir)
    except OrderDeskError as e:
        raise http_error(e)
    return _pdf_response(path)

"""
Extraction routes - turn pasted text or an order screenshot into a new batch.
Only one extraction runs at a time; order transitions keep working meanwhile.
"""
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from order_desk.api.helpers import get_desk, http_error
from order_desk.api.schemas import BatchOut, MessageResponse, TextExtractionRequest
from order_desk.desk import OrderDesk
from order_desk.errors import OrderDeskError

router = APIRouter()

_ERROR_RESPONSES = {
    400: {"model": MessageResponse},
    409: {"model": MessageResponse},
    502: {"model": MessageResponse},
}


@router.post(
    "/text",
    response_model=BatchOut,
    status_code=status.HTTP_201_CREATED,
    responses=_ERROR_RESPONSES,
    summary="Extract orders from pasted text",
)
async def extract_text(body: TextExtractionRequest, desk: OrderDesk = Depends(get_desk)):
    """
    Send the text to the extraction model and record the result as a new batch.

    The batch becomes the current batch and is added to history.
    """
    try:
        batch = await desk.extract_text(body.text)
    except OrderDeskError as e:
        raise http_error(e)
    return BatchOut.from_batch(batch)


@router.post(
    "/image",
    response_model=BatchOut,
    status_code=status.HTTP_201_CREATED,
    responses=_ERROR_RESPONSES,
    summary="Extract orders from a screenshot",
)
async def extract_image(
    file: UploadFile = File(..., description="Order screenshot (jpg, png, webp)"),
    desk: OrderDesk = Depends(get_desk),
):
    """
    Upload an image of an order table or chat.

    Unsupported or unreadable images are rejected with 400 before the model
    is called.
    """
    data = await file.read()
    if not data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Empty file uploaded")
    try:
        batch = await desk.extract_image(data, file.content_type or "")
    except OrderDeskError as e:
        raise http_error(e)
    return BatchOut.from_batch(batch)


@router.delete(
    "/current",
    response_model=MessageResponse,
    summary="Dismiss the current batch",
)
async def dismiss_current(desk: OrderDesk = Depends(get_desk)):
    """Return to the input screen. History is not touched."""
    desk.dismiss_current_batch()
    return MessageResponse(message="Current batch dismissed")

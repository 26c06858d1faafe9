"""
History routes - list, re-open and delete past batches.
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from order_desk.api.helpers import get_desk
from order_desk.api.schemas import BatchOut, BatchSummary, MessageResponse
from order_desk.desk import OrderDesk

router = APIRouter()


@router.get(
    "",
    response_model=List[BatchSummary],
    summary="List stored batches, newest first",
)
async def list_history(desk: OrderDesk = Depends(get_desk)):
    return [
        BatchSummary(
            id=batch.id,
            timestamp=batch.timestamp,
            date=batch.local_date,
            source_type=batch.source_kind.value,
            order_count=len(batch.orders),
        )
        for batch in desk.history.batches()
    ]


@router.post(
    "/{batch_id}/open",
    response_model=BatchOut,
    responses={404: {"model": MessageResponse}},
    summary="Re-open a stored batch as the current batch",
)
async def open_batch(batch_id: str, desk: OrderDesk = Depends(get_desk)):
    """The current batch becomes an independent copy of the stored batch."""
    batch = desk.open_history_batch(batch_id)
    if batch is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Batch {batch_id} not found",
        )
    return BatchOut.from_batch(batch)


@router.delete(
    "/{batch_id}",
    response_model=MessageResponse,
    summary="Delete one stored batch",
)
async def delete_batch(batch_id: str, desk: OrderDesk = Depends(get_desk)):
    """Deleting an unknown id is a no-op."""
    desk.delete_history_batch(batch_id)
    return MessageResponse(message="Batch deleted", detail=batch_id)


@router.delete(
    "",
    response_model=MessageResponse,
    summary="Delete all stored batches",
)
async def clear_history(desk: OrderDesk = Depends(get_desk)):
    desk.clear_history()
    return MessageResponse(message="History cleared")

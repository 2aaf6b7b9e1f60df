from dataclasses import asdict

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from uuid import UUID

from core.enums import StockPool
from db.database import get_async_session
from schemas.consignment import (
    ConsignmentBulkReturnRead,
    ConsignmentReturnAllCreate,
    ConsignmentReturnCreate,
    ConsignmentReturnFailure,
    ConsignmentReturnHistoryRead,
    ConsignmentReturnRead,
    EventReturnSummary,
    ReturnSummaryItem,
)
from services.consignment import ConsignmentService, ReturnResult

router = APIRouter()


def _serialize_return(r: ReturnResult) -> ConsignmentReturnRead:
    data = asdict(r)
    data["pool"] = r.pool.value
    return ConsignmentReturnRead(**data)


@router.get("/bars/{bar_id}/consignment/summary", response_model=List[ReturnSummaryItem])
async def bar_return_summary(bar_id: UUID, db: AsyncSession = Depends(get_async_session)):
    items = await ConsignmentService(db).bar_return_summary(bar_id)
    return [ReturnSummaryItem(**{**i, "pool": i["pool"].value}) for i in items]


@router.get("/events/{event_id}/consignment/summary", response_model=EventReturnSummary)
async def event_return_summary(event_id: UUID, db: AsyncSession = Depends(get_async_session)):
    summary = await ConsignmentService(db).event_return_summary(event_id)
    for group in summary["by_supplier"]:
        group["items"] = [{**i, "pool": i["pool"].value} for i in group["items"]]
    return EventReturnSummary(**summary)


@router.post(
    "/bars/{bar_id}/consignment/returns",
    response_model=ConsignmentReturnRead,
    status_code=status.HTTP_201_CREATED,
)
async def execute_return(
    bar_id: UUID,
    payload: ConsignmentReturnCreate,
    db: AsyncSession = Depends(get_async_session),
):
    """Return one consignment lot to its supplier. The amount is the lot's full current quantity."""
    result = await ConsignmentService(db).execute_return(
        bar_id,
        payload.drink_id,
        payload.supplier_id,
        StockPool(payload.pool),
        performed_by=payload.performed_by,
        notes=payload.notes,
    )
    return _serialize_return(result)


@router.post("/bars/{bar_id}/consignment/returns/all", response_model=ConsignmentBulkReturnRead)
async def execute_all_returns(
    bar_id: UUID,
    payload: Optional[ConsignmentReturnAllCreate] = None,
    db: AsyncSession = Depends(get_async_session),
):
    out = await ConsignmentService(db).execute_all_returns(
        bar_id, performed_by=payload.performed_by if payload else None
    )
    return ConsignmentBulkReturnRead(
        bar_id=out["bar_id"],
        returned=[_serialize_return(r) for r in out["returned"]],
        failed=[ConsignmentReturnFailure(**{**f, "pool": f["pool"].value}) for f in out["failed"]],
    )


@router.get("/bars/{bar_id}/consignment/returns", response_model=List[ConsignmentReturnHistoryRead])
async def list_returns(bar_id: UUID, db: AsyncSession = Depends(get_async_session)):
    returns = await ConsignmentService(db).list_returns(bar_id)
    return [ConsignmentReturnHistoryRead(**r.to_schema) for r in returns]

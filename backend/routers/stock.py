from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from uuid import UUID

from core.enums import OwnershipMode, StockPool
from core.exceptions import NotFound
from db.database import get_async_session, Bar as BarModel
from schemas.stock import (
    InventoryMovementRead,
    StockLotRead,
    StockPoolName,
    StockReceiveCreate,
    StockReceiveRead,
    StockTransferCreate,
    StockTransferRead,
)
from services.stock_ledger import LotKey, StockLedger

router = APIRouter()


@router.get("/{bar_id}/stock", response_model=List[StockLotRead])
async def list_bar_stock(
    bar_id: UUID,
    pool: Optional[StockPoolName] = Query(default=None),
    db: AsyncSession = Depends(get_async_session),
):
    if not await db.get(BarModel, bar_id):
        raise NotFound("Bar", bar_id)
    lots = await StockLedger(db).lots_for_bar(bar_id, StockPool(pool) if pool else None)
    return [StockLotRead(**lot.to_schema) for lot in lots]


@router.post("/{bar_id}/stock", response_model=StockReceiveRead, status_code=status.HTTP_201_CREATED)
async def receive_stock(bar_id: UUID, payload: StockReceiveCreate, db: AsyncSession = Depends(get_async_session)):
    key = LotKey(bar_id, payload.drink_id, payload.supplier_id, StockPool(payload.pool))
    out = await StockLedger(db).receive(
        key,
        payload.quantity,
        unit_cost=payload.unit_cost,
        currency=payload.currency,
        ownership_mode=OwnershipMode(payload.ownership_mode),
        notes=payload.notes,
    )
    return StockReceiveRead(**out)


@router.post("/{bar_id}/stock/transfer", response_model=StockTransferRead)
async def transfer_stock(bar_id: UUID, payload: StockTransferCreate, db: AsyncSession = Depends(get_async_session)):
    source = LotKey(bar_id, payload.drink_id, payload.supplier_id, StockPool(payload.pool))
    out = await StockLedger(db).transfer(source, payload.to_bar_id, payload.quantity, notes=payload.notes)
    return StockTransferRead(**out)


@router.get("/{bar_id}/movements", response_model=List[InventoryMovementRead])
async def list_bar_movements(bar_id: UUID, db: AsyncSession = Depends(get_async_session)):
    if not await db.get(BarModel, bar_id):
        raise NotFound("Bar", bar_id)
    movements = await StockLedger(db).movements_for_bar(bar_id)
    return [InventoryMovementRead(**m.to_schema) for m in movements]

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from uuid import UUID

from db.database import get_async_session
from schemas.sales import DepletionRead, SaleCreate, SaleRead, SaleResultRead
from schemas.stock import InventoryMovementRead
from services.notifications import SaleNotifier
from services.sales import SalesService

router = APIRouter()


def get_sale_notifier(request: Request) -> Optional[SaleNotifier]:
    return getattr(request.app.state, "sale_notifier", None)


@router.post("/{bar_id}/sales", response_model=SaleResultRead, status_code=status.HTTP_201_CREATED)
async def create_sale(
    bar_id: UUID,
    payload: SaleCreate,
    db: AsyncSession = Depends(get_async_session),
    notifier: Optional[SaleNotifier] = Depends(get_sale_notifier),
):
    """Register a POS sale and deplete bar stock for it."""
    result = await SalesService(db, notifier).sell(bar_id, payload.cocktail_id, payload.quantity)
    return SaleResultRead(
        sale=SaleRead(**result.sale.to_schema),
        pool=result.pool.value,
        depletions=[
            DepletionRead(
                bar_id=d.bar_id,
                drink_id=d.drink_id,
                supplier_id=d.supplier_id,
                pool=d.pool.value,
                amount=d.amount,
                unit_cost=d.unit_cost,
                ownership_mode=d.ownership_mode,
            )
            for d in result.depletions
        ],
    )


@router.get("/{bar_id}/sales", response_model=List[SaleRead])
async def list_sales(bar_id: UUID, db: AsyncSession = Depends(get_async_session)):
    sales = await SalesService(db).list_sales(bar_id)
    return [SaleRead(**s.to_schema) for s in sales]


@router.get("/{bar_id}/sales/{sale_id}", response_model=SaleRead)
async def get_sale(bar_id: UUID, sale_id: UUID, db: AsyncSession = Depends(get_async_session)):
    sale = await SalesService(db).get_sale(bar_id, sale_id)
    return SaleRead(**sale.to_schema)


@router.get("/{bar_id}/sales/{sale_id}/movements", response_model=List[InventoryMovementRead])
async def list_sale_movements(bar_id: UUID, sale_id: UUID, db: AsyncSession = Depends(get_async_session)):
    movements = await SalesService(db).sale_movements(bar_id, sale_id)
    return [InventoryMovementRead(**m.to_schema) for m in movements]

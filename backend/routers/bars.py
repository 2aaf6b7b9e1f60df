from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from core.exceptions import NotFound
from db.database import get_async_session, Bar as BarModel
from schemas.events import BarRead, BarUpdate

router = APIRouter()


@router.get("/{bar_id}", response_model=BarRead)
async def get_bar(bar_id: UUID, db: AsyncSession = Depends(get_async_session)):
    bar = await db.get(BarModel, bar_id)
    if not bar:
        raise NotFound("Bar", bar_id)
    return BarRead(**bar.to_schema)


@router.patch("/{bar_id}", response_model=BarRead)
async def update_bar(bar_id: UUID, payload: BarUpdate, db: AsyncSession = Depends(get_async_session)):
    bar = await db.get(BarModel, bar_id)
    if not bar:
        raise NotFound("Bar", bar_id)

    data = payload.model_dump(exclude_unset=True)
    if data.get("name"):
        bar.name = data["name"].strip()
    if data.get("bar_type") is not None:
        bar.bar_type = data["bar_type"]

    await db.commit()
    await db.refresh(bar)
    return BarRead(**bar.to_schema)

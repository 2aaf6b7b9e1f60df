from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from uuid import UUID

from core.exceptions import NotFound
from db.database import get_async_session, Drink as DrinkModel
from schemas.catalog import DrinkCreate, DrinkRead, DrinkUpdate

router = APIRouter()


@router.get("/", response_model=List[DrinkRead])
async def list_drinks(db: AsyncSession = Depends(get_async_session)):
    res = await db.execute(select(DrinkModel).order_by(func.lower(DrinkModel.name).asc()))
    return [DrinkRead(**d.to_schema) for d in res.scalars().all()]


@router.post("/", response_model=DrinkRead, status_code=status.HTTP_201_CREATED)
async def create_drink(payload: DrinkCreate, db: AsyncSession = Depends(get_async_session)):
    if payload.sku:
        existing = await db.execute(select(DrinkModel).where(DrinkModel.sku == payload.sku))
        if existing.scalar_one_or_none():
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Drink with this SKU already exists")

    d = DrinkModel(name=payload.name, brand=payload.brand, sku=payload.sku, volume_ml=payload.volume_ml)
    db.add(d)
    await db.commit()
    await db.refresh(d)
    return DrinkRead(**d.to_schema)


@router.get("/{drink_id}", response_model=DrinkRead)
async def get_drink(drink_id: UUID, db: AsyncSession = Depends(get_async_session)):
    d = await db.get(DrinkModel, drink_id)
    if not d:
        raise NotFound("Drink", drink_id)
    return DrinkRead(**d.to_schema)


@router.patch("/{drink_id}", response_model=DrinkRead)
async def update_drink(drink_id: UUID, payload: DrinkUpdate, db: AsyncSession = Depends(get_async_session)):
    d = await db.get(DrinkModel, drink_id)
    if not d:
        raise NotFound("Drink", drink_id)

    data = payload.model_dump(exclude_unset=True)
    if data.get("name"):
        d.name = data["name"].strip()
    if "brand" in data:
        d.brand = data["brand"]
    if "sku" in data:
        d.sku = (data["sku"] or "").strip().upper() or None
    if data.get("volume_ml") is not None:
        d.volume_ml = data["volume_ml"]

    await db.commit()
    await db.refresh(d)
    return DrinkRead(**d.to_schema)

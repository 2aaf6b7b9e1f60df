from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from schemas.catalog import CocktailCreate, CocktailRead, CocktailUpdate
from db.database import get_async_session, Cocktail as CocktailModel
from core.exceptions import NotFound
from typing import List
from uuid import UUID

router = APIRouter()


@router.get("/", response_model=List[CocktailRead])
async def get_cocktails(db: AsyncSession = Depends(get_async_session)):
    """Get all catalog cocktails"""
    result = await db.execute(select(CocktailModel).order_by(func.lower(CocktailModel.name).asc()))
    return [CocktailRead(**c.to_schema) for c in result.scalars().all()]


@router.get("/{cocktail_id}", response_model=CocktailRead)
async def get_cocktail(cocktail_id: UUID, db: AsyncSession = Depends(get_async_session)):
    cocktail = await db.get(CocktailModel, cocktail_id)
    if not cocktail:
        raise NotFound("Cocktail", cocktail_id)
    return CocktailRead(**cocktail.to_schema)


@router.post("/", response_model=CocktailRead, status_code=status.HTTP_201_CREATED)
async def create_cocktail(cocktail: CocktailCreate, db: AsyncSession = Depends(get_async_session)):
    """Create a catalog cocktail. Event recipes match it by name."""
    existing = await db.execute(
        select(CocktailModel).where(func.lower(CocktailModel.name) == cocktail.name.lower())
    )
    if existing.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Cocktail '{cocktail.name}' already exists"
        )

    model = CocktailModel(name=cocktail.name, volume_ml=cocktail.volume_ml)
    db.add(model)
    await db.commit()
    await db.refresh(model)
    return CocktailRead(**model.to_schema)


@router.patch("/{cocktail_id}", response_model=CocktailRead)
async def update_cocktail(cocktail_id: UUID, payload: CocktailUpdate, db: AsyncSession = Depends(get_async_session)):
    model = await db.get(CocktailModel, cocktail_id)
    if not model:
        raise NotFound("Cocktail", cocktail_id)

    data = payload.model_dump(exclude_unset=True)
    if data.get("name"):
        model.name = data["name"].strip()
    if data.get("volume_ml") is not None:
        model.volume_ml = data["volume_ml"]

    await db.commit()
    await db.refresh(model)
    return CocktailRead(**model.to_schema)

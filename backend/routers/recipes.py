from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from uuid import UUID

from db.database import get_async_session, BarRecipeOverride as BarRecipeOverrideModel, EventRecipe as EventRecipeModel
from schemas.events import BarTypeName
from schemas.recipes import (
    EventRecipeCreate,
    EventRecipeRead,
    EventRecipeUpdate,
    RecipeComponentRead,
    RecipeOverrideRead,
    RecipeOverrideUpsert,
)
from services.recipes import RecipeStore

router = APIRouter()


def _components(items) -> List[RecipeComponentRead]:
    return [
        RecipeComponentRead(
            drink_id=c.drink_id,
            drink_name=c.drink.name if c.drink else None,
            percentage=int(c.percentage),
        )
        for c in items
    ]


def _serialize_recipe(r: EventRecipeModel) -> EventRecipeRead:
    return EventRecipeRead(
        id=r.id,
        event_id=r.event_id,
        cocktail_name=r.cocktail_name,
        glass_volume_ml=int(r.glass_volume_ml),
        is_direct_sale=bool(r.is_direct_sale),
        bar_types=[bt.bar_type for bt in r.bar_types],
        components=_components(r.components),
        created_at=r.created_at,
    )


def _serialize_override(o: BarRecipeOverrideModel) -> RecipeOverrideRead:
    return RecipeOverrideRead(
        id=o.id,
        bar_id=o.bar_id,
        cocktail_id=o.cocktail_id,
        is_direct_sale=bool(o.is_direct_sale),
        components=_components(o.components),
        updated_at=o.updated_at,
    )


@router.get("/events/{event_id}/recipes", response_model=List[EventRecipeRead])
async def list_event_recipes(
    event_id: UUID,
    bar_type: Optional[BarTypeName] = Query(default=None),
    db: AsyncSession = Depends(get_async_session),
):
    recipes = await RecipeStore(db).list_event_recipes(event_id, bar_type)
    return [_serialize_recipe(r) for r in recipes]


@router.post("/events/{event_id}/recipes", response_model=EventRecipeRead, status_code=status.HTTP_201_CREATED)
async def create_event_recipe(
    event_id: UUID,
    payload: EventRecipeCreate,
    db: AsyncSession = Depends(get_async_session),
):
    recipe = await RecipeStore(db).create_event_recipe(
        event_id,
        cocktail_name=payload.cocktail_name,
        glass_volume_ml=payload.glass_volume_ml,
        bar_types=payload.bar_types,
        components=payload.components,
        is_direct_sale=payload.is_direct_sale,
    )
    return _serialize_recipe(recipe)


@router.get("/events/{event_id}/recipes/{recipe_id}", response_model=EventRecipeRead)
async def get_event_recipe(event_id: UUID, recipe_id: UUID, db: AsyncSession = Depends(get_async_session)):
    return _serialize_recipe(await RecipeStore(db).get_event_recipe(event_id, recipe_id))


@router.patch("/events/{event_id}/recipes/{recipe_id}", response_model=EventRecipeRead)
async def update_event_recipe(
    event_id: UUID,
    recipe_id: UUID,
    payload: EventRecipeUpdate,
    db: AsyncSession = Depends(get_async_session),
):
    data = payload.model_dump(exclude_unset=True)
    if "components" in data:
        data["components"] = payload.components
    recipe = await RecipeStore(db).update_event_recipe(event_id, recipe_id, **data)
    return _serialize_recipe(recipe)


@router.delete("/events/{event_id}/recipes/{recipe_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event_recipe(event_id: UUID, recipe_id: UUID, db: AsyncSession = Depends(get_async_session)):
    await RecipeStore(db).delete_event_recipe(event_id, recipe_id)
    return None


@router.get("/bars/{bar_id}/recipe-overrides", response_model=List[RecipeOverrideRead])
async def list_overrides(bar_id: UUID, db: AsyncSession = Depends(get_async_session)):
    return [_serialize_override(o) for o in await RecipeStore(db).list_overrides(bar_id)]


@router.get("/bars/{bar_id}/recipe-overrides/{cocktail_id}", response_model=RecipeOverrideRead)
async def get_override(bar_id: UUID, cocktail_id: UUID, db: AsyncSession = Depends(get_async_session)):
    return _serialize_override(await RecipeStore(db).get_override(bar_id, cocktail_id))


@router.put("/bars/{bar_id}/recipe-overrides/{cocktail_id}", response_model=RecipeOverrideRead)
async def upsert_override(
    bar_id: UUID,
    cocktail_id: UUID,
    payload: RecipeOverrideUpsert,
    db: AsyncSession = Depends(get_async_session),
):
    override = await RecipeStore(db).upsert_override(
        bar_id,
        cocktail_id,
        components=payload.components,
        is_direct_sale=payload.is_direct_sale,
    )
    return _serialize_override(override)


@router.delete("/bars/{bar_id}/recipe-overrides/{cocktail_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_override(bar_id: UUID, cocktail_id: UUID, db: AsyncSession = Depends(get_async_session)):
    await RecipeStore(db).delete_override(bar_id, cocktail_id)
    return None

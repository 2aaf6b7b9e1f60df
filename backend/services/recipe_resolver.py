"""
Recipe resolution for a (bar, cocktail) pair.

Priority: bar override > event recipe for the bar's type. The stock pool is
read from the stored `is_direct_sale` flag here, once, and travels with the
resolved recipe from then on.
"""

from dataclasses import dataclass
from typing import Optional, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.enums import DepletionPolicy, StockPool
from core.exceptions import NoRecipe, NotFound
from db.database import (
    Bar as BarModel,
    BarRecipeOverride as BarRecipeOverrideModel,
    BarRecipeOverrideComponent as BarRecipeOverrideComponentModel,
    Cocktail as CocktailModel,
    Event as EventModel,
    EventRecipe as EventRecipeModel,
    EventRecipeBarType as EventRecipeBarTypeModel,
    EventRecipeComponent as EventRecipeComponentModel,
)


@dataclass(frozen=True)
class BarContext:
    bar_id: UUID
    event_id: UUID
    bar_type: str
    depletion_policy: DepletionPolicy


@dataclass(frozen=True)
class CocktailInfo:
    cocktail_id: UUID
    name: str
    volume_ml: int


@dataclass(frozen=True)
class ResolvedComponent:
    drink_id: UUID
    drink_name: str
    percentage: int


@dataclass(frozen=True)
class ResolvedRecipe:
    cocktail: CocktailInfo
    components: Tuple[ResolvedComponent, ...]
    serving_volume_ml: int
    pool: StockPool
    source: str  # 'override' | 'event_recipe'


def pool_for(is_direct_sale: bool) -> StockPool:
    return StockPool.DIRECT_SALE if is_direct_sale else StockPool.RECIPE_INGREDIENT


class RecipeResolver:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_bar(self, bar_id: UUID) -> BarContext:
        res = await self.db.execute(
            select(BarModel, EventModel.depletion_policy)
            .join(EventModel, EventModel.id == BarModel.event_id)
            .where(BarModel.id == bar_id)
        )
        row = res.first()
        if row is None:
            raise NotFound("Bar", bar_id)
        bar, policy = row
        return BarContext(
            bar_id=bar.id,
            event_id=bar.event_id,
            bar_type=bar.bar_type,
            depletion_policy=DepletionPolicy(policy),
        )

    async def get_cocktail(self, cocktail_id: UUID) -> CocktailInfo:
        cocktail = await self.db.get(CocktailModel, cocktail_id)
        if cocktail is None:
            raise NotFound("Cocktail", cocktail_id)
        return CocktailInfo(cocktail_id=cocktail.id, name=cocktail.name, volume_ml=int(cocktail.volume_ml))

    async def resolve(self, bar: BarContext, cocktail: CocktailInfo) -> ResolvedRecipe:
        override = await self._find_override(bar.bar_id, cocktail.cocktail_id)
        if override is not None:
            # Overrides carry no glass volume of their own.
            return ResolvedRecipe(
                cocktail=cocktail,
                components=tuple(
                    ResolvedComponent(c.drink_id, c.drink.name, int(c.percentage))
                    for c in override.components
                ),
                serving_volume_ml=cocktail.volume_ml,
                pool=pool_for(override.is_direct_sale),
                source="override",
            )

        recipe = await self._find_event_recipe(bar.event_id, bar.bar_type, cocktail.name)
        if recipe is None or not recipe.components:
            raise NoRecipe(bar.bar_id, cocktail.cocktail_id, cocktail.name)

        return ResolvedRecipe(
            cocktail=cocktail,
            components=tuple(
                ResolvedComponent(c.drink_id, c.drink.name, int(c.percentage))
                for c in recipe.components
            ),
            serving_volume_ml=int(recipe.glass_volume_ml),
            pool=pool_for(recipe.is_direct_sale),
            source="event_recipe",
        )

    async def _find_override(self, bar_id: UUID, cocktail_id: UUID) -> Optional[BarRecipeOverrideModel]:
        res = await self.db.execute(
            select(BarRecipeOverrideModel)
            .options(
                selectinload(BarRecipeOverrideModel.components).selectinload(BarRecipeOverrideComponentModel.drink)
            )
            .where(
                BarRecipeOverrideModel.bar_id == bar_id,
                BarRecipeOverrideModel.cocktail_id == cocktail_id,
            )
        )
        override = res.scalar_one_or_none()
        if override is None or not override.components:
            return None
        return override

    async def _find_event_recipe(self, event_id: UUID, bar_type: str, cocktail_name: str) -> Optional[EventRecipeModel]:
        res = await self.db.execute(
            select(EventRecipeModel)
            .join(EventRecipeBarTypeModel, EventRecipeBarTypeModel.recipe_id == EventRecipeModel.id)
            .options(selectinload(EventRecipeModel.components).selectinload(EventRecipeComponentModel.drink))
            .where(
                EventRecipeModel.event_id == event_id,
                EventRecipeModel.cocktail_name == cocktail_name,
                EventRecipeBarTypeModel.bar_type == bar_type,
            )
            .order_by(EventRecipeModel.created_at.asc())
        )
        # Unique per (event, cocktail name, bar type); keep the oldest if data predates that rule.
        return res.scalars().first()

"""
Event recipes and bar overrides: validated writes plus the reads the API needs.
"""

import logging
from typing import Iterable, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.enums import BarType
from core.exceptions import InvalidRecipe, NotFound
from db.database import (
    Bar as BarModel,
    BarRecipeOverride as BarRecipeOverrideModel,
    BarRecipeOverrideComponent as BarRecipeOverrideComponentModel,
    Cocktail as CocktailModel,
    Drink as DrinkModel,
    Event as EventModel,
    EventRecipe as EventRecipeModel,
    EventRecipeBarType as EventRecipeBarTypeModel,
    EventRecipeComponent as EventRecipeComponentModel,
    utcnow,
)

logger = logging.getLogger(__name__)


def validate_components(components: Sequence, is_direct_sale: bool) -> None:
    """`components` items expose `drink_id` and `percentage`."""
    if not components:
        raise InvalidRecipe("A recipe needs at least one component")

    seen = set()
    for c in components:
        if c.drink_id in seen:
            raise InvalidRecipe(f"Drink {c.drink_id} appears more than once in the recipe")
        seen.add(c.drink_id)
        if not 1 <= int(c.percentage) <= 100:
            raise InvalidRecipe(f"Component percentage must be between 1 and 100 (got {c.percentage})")

    total = sum(int(c.percentage) for c in components)
    if total > 100:
        raise InvalidRecipe(f"Total percentage of components ({total}%) exceeds maximum allowed (100%)")

    if is_direct_sale and not (len(components) == 1 and int(components[0].percentage) == 100):
        raise InvalidRecipe("Direct sale is only valid for a single component at 100%")


def _normalize_bar_types(bar_types: Iterable) -> List[str]:
    out: List[str] = []
    for bt in bar_types:
        try:
            value = BarType(bt).value
        except ValueError:
            raise InvalidRecipe(f"Unknown bar type: {bt}")
        if value not in out:
            out.append(value)
    return out


class RecipeStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _ensure_drinks(self, components: Sequence) -> None:
        ids = {c.drink_id for c in components}
        res = await self.db.execute(select(DrinkModel.id).where(DrinkModel.id.in_(ids)))
        missing = ids - set(res.scalars().all())
        if missing:
            raise NotFound("Drink", next(iter(missing)))

    async def _ensure_event(self, event_id: UUID) -> EventModel:
        event = await self.db.get(EventModel, event_id)
        if event is None:
            raise NotFound("Event", event_id)
        return event

    async def _check_bar_type_overlap(
        self, event_id: UUID, cocktail_name: str, bar_types: List[str], exclude_id: Optional[UUID] = None
    ) -> None:
        stmt = (
            select(EventRecipeBarTypeModel.bar_type)
            .join(EventRecipeModel, EventRecipeModel.id == EventRecipeBarTypeModel.recipe_id)
            .where(
                EventRecipeModel.event_id == event_id,
                EventRecipeModel.cocktail_name == cocktail_name,
                EventRecipeBarTypeModel.bar_type.in_(bar_types),
            )
        )
        if exclude_id is not None:
            stmt = stmt.where(EventRecipeModel.id != exclude_id)
        overlapping = sorted(set((await self.db.execute(stmt)).scalars().all()))
        if overlapping:
            raise InvalidRecipe(
                f'A recipe "{cocktail_name}" already exists for bar types: {", ".join(overlapping)}'
            )

    # ----- event recipes -----

    async def list_event_recipes(self, event_id: UUID, bar_type: Optional[str] = None) -> List[EventRecipeModel]:
        await self._ensure_event(event_id)
        stmt = (
            select(EventRecipeModel)
            .options(
                selectinload(EventRecipeModel.components).selectinload(EventRecipeComponentModel.drink),
                selectinload(EventRecipeModel.bar_types),
            )
            .where(EventRecipeModel.event_id == event_id)
            .order_by(EventRecipeModel.cocktail_name, EventRecipeModel.created_at)
        )
        if bar_type is not None:
            stmt = stmt.join(EventRecipeBarTypeModel, EventRecipeBarTypeModel.recipe_id == EventRecipeModel.id).where(
                EventRecipeBarTypeModel.bar_type == bar_type
            )
        res = await self.db.execute(stmt)
        return list(res.scalars().unique().all())

    async def get_event_recipe(self, event_id: UUID, recipe_id: UUID) -> EventRecipeModel:
        res = await self.db.execute(
            select(EventRecipeModel)
            .options(
                selectinload(EventRecipeModel.components).selectinload(EventRecipeComponentModel.drink),
                selectinload(EventRecipeModel.bar_types),
            )
            .where(EventRecipeModel.id == recipe_id, EventRecipeModel.event_id == event_id)
            .execution_options(populate_existing=True)
        )
        recipe = res.scalar_one_or_none()
        if recipe is None:
            raise NotFound("Recipe", recipe_id)
        return recipe

    async def create_event_recipe(
        self,
        event_id: UUID,
        *,
        cocktail_name: str,
        glass_volume_ml: int,
        bar_types: Sequence,
        components: Sequence,
        is_direct_sale: bool = False,
    ) -> EventRecipeModel:
        await self._ensure_event(event_id)
        name = cocktail_name.strip()
        if not name:
            raise InvalidRecipe("cocktail_name cannot be empty")
        if int(glass_volume_ml) <= 0:
            raise InvalidRecipe("glass_volume_ml must be > 0")
        validate_components(components, is_direct_sale)
        await self._ensure_drinks(components)
        types = _normalize_bar_types(bar_types)
        await self._check_bar_type_overlap(event_id, name, types)

        recipe = EventRecipeModel(
            event_id=event_id,
            cocktail_name=name,
            glass_volume_ml=int(glass_volume_ml),
            is_direct_sale=bool(is_direct_sale),
            created_at=utcnow(),
            components=[
                EventRecipeComponentModel(drink_id=c.drink_id, percentage=int(c.percentage), sort_order=i)
                for i, c in enumerate(components)
            ],
            bar_types=[EventRecipeBarTypeModel(bar_type=bt) for bt in types],
        )
        try:
            self.db.add(recipe)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            logger.exception("creating recipe %s for event %s failed", name, event_id)
            raise
        logger.info("recipe %s created for event %s (bar types: %s)", name, event_id, types)
        return await self.get_event_recipe(event_id, recipe.id)

    async def update_event_recipe(
        self,
        event_id: UUID,
        recipe_id: UUID,
        *,
        cocktail_name: Optional[str] = None,
        glass_volume_ml: Optional[int] = None,
        bar_types: Optional[Sequence] = None,
        components: Optional[Sequence] = None,
        is_direct_sale: Optional[bool] = None,
    ) -> EventRecipeModel:
        recipe = await self.get_event_recipe(event_id, recipe_id)

        name = cocktail_name.strip() if cocktail_name is not None else recipe.cocktail_name
        if not name:
            raise InvalidRecipe("cocktail_name cannot be empty")
        if glass_volume_ml is not None and int(glass_volume_ml) <= 0:
            raise InvalidRecipe("glass_volume_ml must be > 0")
        direct = recipe.is_direct_sale if is_direct_sale is None else bool(is_direct_sale)
        effective_components = components if components is not None else recipe.components
        validate_components(effective_components, direct)
        if components is not None:
            await self._ensure_drinks(components)
        types = (
            _normalize_bar_types(bar_types) if bar_types is not None else [bt.bar_type for bt in recipe.bar_types]
        )
        if cocktail_name is not None or bar_types is not None:
            await self._check_bar_type_overlap(event_id, name, types, exclude_id=recipe.id)

        try:
            recipe.cocktail_name = name
            recipe.is_direct_sale = direct
            if glass_volume_ml is not None:
                recipe.glass_volume_ml = int(glass_volume_ml)
            if components is not None:
                recipe.components.clear()
                await self.db.flush()
                recipe.components = [
                    EventRecipeComponentModel(drink_id=c.drink_id, percentage=int(c.percentage), sort_order=i)
                    for i, c in enumerate(components)
                ]
            if bar_types is not None:
                recipe.bar_types.clear()
                await self.db.flush()
                recipe.bar_types = [EventRecipeBarTypeModel(bar_type=bt) for bt in types]
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            logger.exception("updating recipe %s failed", recipe_id)
            raise
        return await self.get_event_recipe(event_id, recipe_id)

    async def delete_event_recipe(self, event_id: UUID, recipe_id: UUID) -> None:
        recipe = await self.get_event_recipe(event_id, recipe_id)
        try:
            await self.db.delete(recipe)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

    # ----- bar overrides -----

    async def get_override(self, bar_id: UUID, cocktail_id: UUID) -> BarRecipeOverrideModel:
        res = await self.db.execute(
            select(BarRecipeOverrideModel)
            .options(
                selectinload(BarRecipeOverrideModel.components).selectinload(BarRecipeOverrideComponentModel.drink)
            )
            .where(
                BarRecipeOverrideModel.bar_id == bar_id,
                BarRecipeOverrideModel.cocktail_id == cocktail_id,
            )
            .execution_options(populate_existing=True)
        )
        override = res.scalar_one_or_none()
        if override is None:
            raise NotFound("Recipe override", f"{bar_id}/{cocktail_id}")
        return override

    async def list_overrides(self, bar_id: UUID) -> List[BarRecipeOverrideModel]:
        if await self.db.get(BarModel, bar_id) is None:
            raise NotFound("Bar", bar_id)
        res = await self.db.execute(
            select(BarRecipeOverrideModel)
            .options(
                selectinload(BarRecipeOverrideModel.components).selectinload(BarRecipeOverrideComponentModel.drink)
            )
            .where(BarRecipeOverrideModel.bar_id == bar_id)
        )
        return list(res.scalars().all())

    async def upsert_override(
        self,
        bar_id: UUID,
        cocktail_id: UUID,
        *,
        components: Sequence,
        is_direct_sale: bool = False,
    ) -> BarRecipeOverrideModel:
        """Replace the override for (bar, cocktail), creating it if needed."""
        if await self.db.get(BarModel, bar_id) is None:
            raise NotFound("Bar", bar_id)
        if await self.db.get(CocktailModel, cocktail_id) is None:
            raise NotFound("Cocktail", cocktail_id)
        validate_components(components, is_direct_sale)
        await self._ensure_drinks(components)

        try:
            override = await self.get_override(bar_id, cocktail_id)
        except NotFound:
            override = BarRecipeOverrideModel(bar_id=bar_id, cocktail_id=cocktail_id, components=[])
            self.db.add(override)

        try:
            override.is_direct_sale = bool(is_direct_sale)
            override.updated_at = utcnow()
            override.components.clear()
            await self.db.flush()
            override.components = [
                BarRecipeOverrideComponentModel(drink_id=c.drink_id, percentage=int(c.percentage), sort_order=i)
                for i, c in enumerate(components)
            ]
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            logger.exception("saving override for bar %s cocktail %s failed", bar_id, cocktail_id)
            raise
        logger.info("recipe override saved for bar %s cocktail %s", bar_id, cocktail_id)
        return await self.get_override(bar_id, cocktail_id)

    async def delete_override(self, bar_id: UUID, cocktail_id: UUID) -> None:
        override = await self.get_override(bar_id, cocktail_id)
        try:
            await self.db.delete(override)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, field_validator

from schemas.events import BarTypeName


class RecipeComponentIn(BaseModel):
    drink_id: UUID
    percentage: int

    @field_validator("percentage")
    @classmethod
    def _percentage(cls, v: int) -> int:
        if not 1 <= v <= 100:
            raise ValueError("percentage must be between 1 and 100")
        return v


class RecipeComponentRead(BaseModel):
    drink_id: UUID
    drink_name: Optional[str] = None
    percentage: int


class EventRecipeRead(BaseModel):
    id: UUID
    event_id: UUID
    cocktail_name: str
    glass_volume_ml: int
    is_direct_sale: bool
    bar_types: List[BarTypeName]
    components: List[RecipeComponentRead]
    created_at: datetime


class EventRecipeCreate(BaseModel):
    cocktail_name: str
    glass_volume_ml: int
    bar_types: List[BarTypeName] = []
    components: List[RecipeComponentIn]
    # Only valid with a single component at 100% (sealed units sold as-is).
    is_direct_sale: bool = False

    @field_validator("cocktail_name")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("cocktail_name is required")
        return v

    @field_validator("glass_volume_ml")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("glass_volume_ml must be > 0")
        return v


class EventRecipeUpdate(BaseModel):
    cocktail_name: Optional[str] = None
    glass_volume_ml: Optional[int] = None
    bar_types: Optional[List[BarTypeName]] = None
    components: Optional[List[RecipeComponentIn]] = None
    is_direct_sale: Optional[bool] = None


class RecipeOverrideUpsert(BaseModel):
    components: List[RecipeComponentIn]
    is_direct_sale: bool = False


class RecipeOverrideRead(BaseModel):
    id: UUID
    bar_id: UUID
    cocktail_id: UUID
    is_direct_sale: bool
    components: List[RecipeComponentRead]
    updated_at: datetime

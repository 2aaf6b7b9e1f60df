from datetime import datetime
from typing import List
from uuid import UUID

from pydantic import BaseModel, field_validator

from schemas.stock import OwnershipModeName, StockPoolName


class SaleCreate(BaseModel):
    cocktail_id: UUID
    quantity: int = 1

    @field_validator("quantity")
    @classmethod
    def _at_least_one(cls, v: int) -> int:
        if v < 1:
            raise ValueError("quantity must be >= 1")
        return v


class SaleRead(BaseModel):
    id: UUID
    bar_id: UUID
    cocktail_id: UUID
    quantity: int
    created_at: datetime


class DepletionRead(BaseModel):
    bar_id: UUID
    drink_id: UUID
    supplier_id: UUID
    pool: StockPoolName
    amount: int
    unit_cost: int
    ownership_mode: OwnershipModeName


class SaleResultRead(BaseModel):
    sale: SaleRead
    pool: StockPoolName
    depletions: List[DepletionRead]

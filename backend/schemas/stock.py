from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, field_validator


StockPoolName = Literal["direct_sale", "recipe_ingredient"]
OwnershipModeName = Literal["purchased", "consignment"]
MovementTypeName = Literal["input", "sale", "return", "transfer_in", "transfer_out"]


def _currency(v: Optional[str]) -> str:
    v = (v or "").strip().upper()
    if len(v) != 3:
        raise ValueError("currency must be a 3-letter code (e.g. ARS)")
    return v


class StockLotRead(BaseModel):
    id: UUID
    bar_id: UUID
    drink_id: UUID
    supplier_id: UUID
    pool: StockPoolName
    quantity: int
    unit_cost: int
    currency: str
    ownership_mode: OwnershipModeName
    received_at: datetime


class StockReceiveCreate(BaseModel):
    drink_id: UUID
    supplier_id: UUID
    pool: StockPoolName = "recipe_ingredient"
    quantity: int
    unit_cost: int = 0
    currency: str = "ARS"
    ownership_mode: OwnershipModeName = "purchased"
    notes: Optional[str] = None

    @field_validator("quantity")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("quantity must be > 0")
        return v

    @field_validator("unit_cost")
    @classmethod
    def _non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("unit_cost must be >= 0")
        return v

    @field_validator("currency")
    @classmethod
    def _currency(cls, v: str) -> str:
        return _currency(v)


class StockReceiveRead(BaseModel):
    movement_id: UUID
    quantity: int


class StockTransferCreate(BaseModel):
    to_bar_id: UUID
    drink_id: UUID
    supplier_id: UUID
    pool: StockPoolName = "recipe_ingredient"
    quantity: int
    notes: Optional[str] = None

    @field_validator("quantity")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("quantity must be > 0")
        return v


class StockTransferRead(BaseModel):
    transfer_id: UUID
    from_bar_id: UUID
    to_bar_id: UUID
    drink_id: UUID
    supplier_id: UUID
    pool: StockPoolName
    quantity: int
    to_quantity: int


class InventoryMovementRead(BaseModel):
    id: UUID
    bar_id: UUID
    drink_id: UUID
    supplier_id: UUID
    pool: StockPoolName
    quantity: int
    type: MovementTypeName
    reference_id: Optional[UUID] = None
    notes: Optional[str] = None
    created_at: datetime

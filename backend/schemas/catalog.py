from typing import Optional
from uuid import UUID

from pydantic import BaseModel, field_validator


class DrinkRead(BaseModel):
    id: UUID
    name: str
    brand: Optional[str] = None
    sku: Optional[str] = None
    volume_ml: int


class DrinkCreate(BaseModel):
    name: str
    brand: Optional[str] = None
    sku: Optional[str] = None
    volume_ml: int

    @field_validator("name")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("name is required")
        return v

    @field_validator("sku")
    @classmethod
    def _sku(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip().upper()
        return v or None

    @field_validator("volume_ml")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("volume_ml must be > 0")
        return v


class DrinkUpdate(BaseModel):
    name: Optional[str] = None
    brand: Optional[str] = None
    sku: Optional[str] = None
    volume_ml: Optional[int] = None

    @field_validator("volume_ml")
    @classmethod
    def _positive(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v <= 0:
            raise ValueError("volume_ml must be > 0")
        return v


class CocktailRead(BaseModel):
    id: UUID
    name: str
    volume_ml: int


class CocktailCreate(BaseModel):
    name: str
    volume_ml: int

    @field_validator("name")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("name is required")
        return v

    @field_validator("volume_ml")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("volume_ml must be > 0")
        return v


class CocktailUpdate(BaseModel):
    name: Optional[str] = None
    volume_ml: Optional[int] = None

    @field_validator("volume_ml")
    @classmethod
    def _positive(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v <= 0:
            raise ValueError("volume_ml must be > 0")
        return v

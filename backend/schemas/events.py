from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, field_validator


DepletionPolicyName = Literal["cheapest_first", "fifo", "consignment_last"]
BarTypeName = Literal["VIP", "general", "backstage", "lounge"]


class EventRead(BaseModel):
    id: UUID
    name: str
    depletion_policy: DepletionPolicyName
    created_at: datetime


class EventCreate(BaseModel):
    name: str
    depletion_policy: DepletionPolicyName = "cheapest_first"

    @field_validator("name")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("name is required")
        return v


class EventUpdate(BaseModel):
    name: Optional[str] = None
    depletion_policy: Optional[DepletionPolicyName] = None

    @field_validator("name")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("cannot be empty")
        return v


class BarRead(BaseModel):
    id: UUID
    event_id: UUID
    name: str
    bar_type: BarTypeName


class BarCreate(BaseModel):
    name: str
    bar_type: BarTypeName = "general"

    @field_validator("name")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("name is required")
        return v


class BarUpdate(BaseModel):
    name: Optional[str] = None
    bar_type: Optional[BarTypeName] = None

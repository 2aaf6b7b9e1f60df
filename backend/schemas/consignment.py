from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel

from schemas.stock import StockPoolName


class ConsignmentReturnCreate(BaseModel):
    # No quantity: the returned amount is always the lot's current quantity.
    drink_id: UUID
    supplier_id: UUID
    pool: StockPoolName = "recipe_ingredient"
    performed_by: Optional[UUID] = None
    notes: Optional[str] = None


class ConsignmentReturnAllCreate(BaseModel):
    performed_by: Optional[UUID] = None


class ConsignmentReturnRead(BaseModel):
    return_id: UUID
    bar_id: UUID
    drink_id: UUID
    drink_sku: Optional[str] = None
    supplier_id: UUID
    pool: StockPoolName
    quantity_returned: int
    returned_at: datetime
    performed_by: Optional[UUID] = None


class ConsignmentReturnFailure(BaseModel):
    drink_id: UUID
    supplier_id: UUID
    pool: StockPoolName
    error: str
    detail: str


class ConsignmentBulkReturnRead(BaseModel):
    bar_id: UUID
    returned: List[ConsignmentReturnRead]
    failed: List[ConsignmentReturnFailure]


class ReturnSummaryItem(BaseModel):
    bar_id: UUID
    bar_name: Optional[str] = None
    supplier_id: UUID
    supplier_name: Optional[str] = None
    drink_id: UUID
    drink_name: Optional[str] = None
    drink_sku: Optional[str] = None
    pool: StockPoolName
    current_quantity: int
    total_received: int
    total_consumed: int
    total_returned: int
    quantity_to_return: int


class SupplierReturnGroup(BaseModel):
    supplier_id: UUID
    supplier_name: Optional[str] = None
    items: List[ReturnSummaryItem]
    total_to_return: int


class EventReturnSummary(BaseModel):
    event_id: UUID
    event_name: str
    by_supplier: List[SupplierReturnGroup]
    grand_total: int


class ConsignmentReturnHistoryRead(BaseModel):
    id: UUID
    bar_id: UUID
    drink_id: UUID
    supplier_id: UUID
    pool: StockPoolName
    quantity_returned: int
    performed_by: Optional[UUID] = None
    notes: Optional[str] = None
    returned_at: datetime

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from uuid import UUID

from core.exceptions import NotFound
from db.database import get_async_session, Supplier as SupplierModel
from schemas.suppliers import SupplierRead, SupplierCreate, SupplierUpdate

router = APIRouter()


@router.get("/", response_model=List[SupplierRead])
async def list_suppliers(db: AsyncSession = Depends(get_async_session)):
    res = await db.execute(select(SupplierModel).order_by(func.lower(SupplierModel.name).asc()))
    return [SupplierRead(**s.to_schema) for s in res.scalars().all()]


@router.post("/", response_model=SupplierRead, status_code=status.HTTP_201_CREATED)
async def create_supplier(payload: SupplierCreate, db: AsyncSession = Depends(get_async_session)):
    existing = await db.execute(select(SupplierModel).where(func.lower(SupplierModel.name) == payload.name.lower()))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Supplier already exists")

    m = SupplierModel(name=payload.name, contact=payload.contact, notes=payload.notes)
    db.add(m)
    await db.commit()
    await db.refresh(m)
    return SupplierRead(**m.to_schema)


@router.get("/{supplier_id}", response_model=SupplierRead)
async def get_supplier(supplier_id: UUID, db: AsyncSession = Depends(get_async_session)):
    m = await db.get(SupplierModel, supplier_id)
    if not m:
        raise NotFound("Supplier", supplier_id)
    return SupplierRead(**m.to_schema)


@router.patch("/{supplier_id}", response_model=SupplierRead)
async def update_supplier(
    supplier_id: UUID,
    payload: SupplierUpdate,
    db: AsyncSession = Depends(get_async_session),
):
    m = await db.get(SupplierModel, supplier_id)
    if not m:
        raise NotFound("Supplier", supplier_id)

    data = payload.model_dump(exclude_unset=True)
    if "name" in data and data["name"] is not None:
        m.name = data["name"].strip()
    if "contact" in data:
        m.contact = data["contact"]
    if "notes" in data:
        m.notes = data["notes"]

    await db.commit()
    await db.refresh(m)
    return SupplierRead(**m.to_schema)

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from uuid import UUID

from core.exceptions import NotFound
from db.database import get_async_session, Bar as BarModel, Event as EventModel
from schemas.events import BarCreate, BarRead, EventCreate, EventRead, EventUpdate

router = APIRouter()


async def _get_event(db: AsyncSession, event_id: UUID) -> EventModel:
    ev = await db.get(EventModel, event_id)
    if not ev:
        raise NotFound("Event", event_id)
    return ev


@router.get("/", response_model=List[EventRead])
async def list_events(db: AsyncSession = Depends(get_async_session)):
    res = await db.execute(select(EventModel).order_by(EventModel.created_at.desc()))
    return [EventRead(**e.to_schema) for e in res.scalars().all()]


@router.post("/", response_model=EventRead, status_code=status.HTTP_201_CREATED)
async def create_event(payload: EventCreate, db: AsyncSession = Depends(get_async_session)):
    ev = EventModel(name=payload.name, depletion_policy=payload.depletion_policy)
    db.add(ev)
    await db.commit()
    await db.refresh(ev)
    return EventRead(**ev.to_schema)


@router.get("/{event_id}", response_model=EventRead)
async def get_event(event_id: UUID, db: AsyncSession = Depends(get_async_session)):
    ev = await _get_event(db, event_id)
    return EventRead(**ev.to_schema)


@router.patch("/{event_id}", response_model=EventRead)
async def update_event(event_id: UUID, payload: EventUpdate, db: AsyncSession = Depends(get_async_session)):
    ev = await _get_event(db, event_id)
    data = payload.model_dump(exclude_unset=True)
    if data.get("name") is not None:
        ev.name = data["name"]
    # Takes effect from the next sale; committed sales keep the lots they drew.
    if data.get("depletion_policy") is not None:
        ev.depletion_policy = data["depletion_policy"]
    await db.commit()
    await db.refresh(ev)
    return EventRead(**ev.to_schema)


@router.get("/{event_id}/bars", response_model=List[BarRead])
async def list_bars(event_id: UUID, db: AsyncSession = Depends(get_async_session)):
    await _get_event(db, event_id)
    res = await db.execute(select(BarModel).where(BarModel.event_id == event_id).order_by(BarModel.name.asc()))
    return [BarRead(**b.to_schema) for b in res.scalars().all()]


@router.post("/{event_id}/bars", response_model=BarRead, status_code=status.HTTP_201_CREATED)
async def create_bar(event_id: UUID, payload: BarCreate, db: AsyncSession = Depends(get_async_session)):
    await _get_event(db, event_id)
    bar = BarModel(event_id=event_id, name=payload.name, bar_type=payload.bar_type)
    db.add(bar)
    await db.commit()
    await db.refresh(bar)
    return BarRead(**bar.to_schema)

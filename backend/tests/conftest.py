"""Pytest configuration and fixtures."""

import os

# The app builds its engine at import time; keep it off Postgres under test.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"

import uuid
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Iterable, Optional, Tuple

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from core.enums import MovementType, OwnershipMode, StockPool
from db.database import (
    Base,
    Bar,
    BarRecipeOverride,
    BarRecipeOverrideComponent,
    Cocktail,
    ConsignmentReturn,
    Drink,
    Event,
    EventRecipe,
    EventRecipeBarType,
    EventRecipeComponent,
    InventoryMovement,
    Sale,
    StockLot,
    Supplier,
    get_async_session,
)
from main import app
from services.notifications import SaleBroadcaster

BASE_TIME = datetime(2025, 1, 1, 18, 0, tzinfo=timezone.utc)


@pytest.fixture
async def engine(tmp_path):
    """A fresh SQLite file database per test."""
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'barstock.db'}")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


@pytest.fixture
def sale_broadcaster() -> SaleBroadcaster:
    return SaleBroadcaster(maxsize=100)


@pytest.fixture
async def client(session_maker, sale_broadcaster) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app with the test database wired in."""

    async def override_get_async_session():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_async_session] = override_get_async_session
    app.state.sale_broadcaster = sale_broadcaster
    app.state.sale_notifier = sale_broadcaster
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
    app.state.sale_broadcaster = None
    app.state.sale_notifier = None


class Seed:
    """Builds catalog, recipe and stock rows directly through the ORM."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _save(self, obj):
        self.db.add(obj)
        await self.db.commit()
        return obj

    async def event(self, name: str = "Festival", policy: str = "cheapest_first") -> Event:
        return await self._save(Event(name=name, depletion_policy=policy, created_at=BASE_TIME))

    async def bar(self, event: Event, name: str = "Main bar", bar_type: str = "general") -> Bar:
        return await self._save(Bar(event_id=event.id, name=name, bar_type=bar_type))

    async def drink(self, name: str, volume_ml: int = 750, sku: Optional[str] = None) -> Drink:
        return await self._save(Drink(name=name, volume_ml=volume_ml, sku=sku))

    async def supplier(self, name: str) -> Supplier:
        return await self._save(Supplier(name=name))

    async def cocktail(self, name: str, volume_ml: int = 300) -> Cocktail:
        return await self._save(Cocktail(name=name, volume_ml=volume_ml))

    async def recipe(
        self,
        event: Event,
        cocktail_name: str,
        glass_volume_ml: int,
        components: Iterable[Tuple[Drink, int]],
        bar_types: Iterable[str] = ("general",),
        is_direct_sale: bool = False,
    ) -> EventRecipe:
        return await self._save(
            EventRecipe(
                event_id=event.id,
                cocktail_name=cocktail_name,
                glass_volume_ml=glass_volume_ml,
                is_direct_sale=is_direct_sale,
                components=[
                    EventRecipeComponent(drink_id=d.id, percentage=p, sort_order=i)
                    for i, (d, p) in enumerate(components)
                ],
                bar_types=[EventRecipeBarType(bar_type=bt) for bt in bar_types],
            )
        )

    async def override(
        self,
        bar: Bar,
        cocktail: Cocktail,
        components: Iterable[Tuple[Drink, int]],
        is_direct_sale: bool = False,
    ) -> BarRecipeOverride:
        return await self._save(
            BarRecipeOverride(
                bar_id=bar.id,
                cocktail_id=cocktail.id,
                is_direct_sale=is_direct_sale,
                components=[
                    BarRecipeOverrideComponent(drink_id=d.id, percentage=p, sort_order=i)
                    for i, (d, p) in enumerate(components)
                ],
            )
        )

    async def lot(
        self,
        bar: Bar,
        drink: Drink,
        supplier: Supplier,
        quantity: int,
        *,
        unit_cost: int = 1000,
        ownership_mode: OwnershipMode = OwnershipMode.PURCHASED,
        pool: StockPool = StockPool.RECIPE_INGREDIENT,
        received_minutes: int = 0,
    ) -> StockLot:
        """Lot plus the matching input movement, so the ledger balances from the start."""
        lot = StockLot(
            bar_id=bar.id,
            drink_id=drink.id,
            supplier_id=supplier.id,
            pool=pool.value,
            quantity=quantity,
            unit_cost=unit_cost,
            currency="ARS",
            ownership_mode=ownership_mode.value,
            received_at=BASE_TIME + timedelta(minutes=received_minutes),
        )
        self.db.add(lot)
        self.db.add(
            InventoryMovement(
                id=uuid.uuid4(),
                bar_id=bar.id,
                drink_id=drink.id,
                supplier_id=supplier.id,
                pool=pool.value,
                quantity=quantity,
                type=MovementType.INPUT.value,
                created_at=BASE_TIME + timedelta(minutes=received_minutes),
            )
        )
        await self.db.commit()
        return lot


@pytest.fixture
def seed(db) -> Seed:
    return Seed(db)


async def lot_quantity(db: AsyncSession, lot: StockLot) -> int:
    res = await db.execute(
        select(StockLot.quantity).where(StockLot.id == lot.id).execution_options(populate_existing=True)
    )
    return int(res.scalar_one())


async def count_rows(db: AsyncSession, model) -> int:
    res = await db.execute(select(func.count()).select_from(model))
    return int(res.scalar_one())


async def snapshot(db: AsyncSession) -> dict:
    """Lot quantities and row counts, for before/after comparisons."""
    res = await db.execute(select(StockLot.id, StockLot.quantity).order_by(StockLot.id))
    return {
        "lots": {row[0]: int(row[1]) for row in res.all()},
        "sales": await count_rows(db, Sale),
        "movements": await count_rows(db, InventoryMovement),
        "returns": await count_rows(db, ConsignmentReturn),
    }

from collections.abc import AsyncGenerator
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from core.config import settings


class Base(DeclarativeBase):
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


engine = create_async_engine(settings.database_url, echo=settings.database_echo)
async_session_maker = async_sessionmaker(engine, expire_on_commit=False)


async def create_db_and_tables():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        yield session


# Models register themselves on Base.metadata; re-exported for routers/services.
from .event import Event, Bar  # noqa: E402
from .drink import Drink  # noqa: E402
from .supplier import Supplier  # noqa: E402
from .cocktail import Cocktail  # noqa: E402
from .recipe import (  # noqa: E402
    EventRecipe,
    EventRecipeComponent,
    EventRecipeBarType,
    BarRecipeOverride,
    BarRecipeOverrideComponent,
)
from .sale import Sale  # noqa: E402
from .inventory import StockLot, InventoryMovement, ConsignmentReturn  # noqa: E402

__all__ = [
    "Base",
    "engine",
    "async_session_maker",
    "create_db_and_tables",
    "get_async_session",
    "utcnow",
    "Event",
    "Bar",
    "Drink",
    "Supplier",
    "Cocktail",
    "EventRecipe",
    "EventRecipeComponent",
    "EventRecipeBarType",
    "BarRecipeOverride",
    "BarRecipeOverrideComponent",
    "Sale",
    "StockLot",
    "InventoryMovement",
    "ConsignmentReturn",
]

"""
Stock ledger: per-lot quantities plus the append-only movement log.

Every quantity change goes through a single SQL statement (conditional
decrement or upsert increment) and is paired with an InventoryMovement row in
the same transaction, so for any lot the signed movement sum equals its
quantity. Callers own commit/rollback.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from core.enums import MovementType, OwnershipMode, StockPool
from core.exceptions import InsufficientStock, InvalidQuantity, InvalidTransfer, NotFound
from db.database import Bar as BarModel, Drink as DrinkModel, utcnow
from db.inventory import InventoryMovement as InventoryMovementModel, StockLot as StockLotModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LotKey:
    bar_id: UUID
    drink_id: UUID
    supplier_id: UUID
    pool: StockPool

    @classmethod
    def of(cls, lot: StockLotModel) -> "LotKey":
        return cls(lot.bar_id, lot.drink_id, lot.supplier_id, StockPool(lot.pool))


def _key_filter(key: LotKey):
    return (
        StockLotModel.bar_id == key.bar_id,
        StockLotModel.drink_id == key.drink_id,
        StockLotModel.supplier_id == key.supplier_id,
        StockLotModel.pool == key.pool.value,
    )


class StockLedger:
    def __init__(self, db: AsyncSession):
        self.db = db

    # ----- reads -----

    async def lots_for(self, bar_id: UUID, drink_id: UUID, pool: StockPool) -> List[StockLotModel]:
        """Positive-quantity lots for (bar, drink, pool), freshly read from the store."""
        res = await self.db.execute(
            select(StockLotModel)
            .where(
                StockLotModel.bar_id == bar_id,
                StockLotModel.drink_id == drink_id,
                StockLotModel.pool == pool.value,
                StockLotModel.quantity > 0,
            )
            .execution_options(populate_existing=True)
        )
        return list(res.scalars().all())

    async def available(self, bar_id: UUID, drink_id: UUID, pool: StockPool) -> int:
        res = await self.db.execute(
            select(func.coalesce(func.sum(StockLotModel.quantity), 0)).where(
                StockLotModel.bar_id == bar_id,
                StockLotModel.drink_id == drink_id,
                StockLotModel.pool == pool.value,
            )
        )
        return int(res.scalar_one())

    async def get_lot(self, key: LotKey) -> Optional[StockLotModel]:
        res = await self.db.execute(
            select(StockLotModel).where(*_key_filter(key)).execution_options(populate_existing=True)
        )
        return res.scalar_one_or_none()

    async def lots_for_bar(self, bar_id: UUID, pool: Optional[StockPool] = None) -> List[StockLotModel]:
        stmt = select(StockLotModel).where(StockLotModel.bar_id == bar_id)
        if pool is not None:
            stmt = stmt.where(StockLotModel.pool == pool.value)
        stmt = stmt.order_by(StockLotModel.drink_id, StockLotModel.received_at)
        res = await self.db.execute(stmt.execution_options(populate_existing=True))
        return list(res.scalars().all())

    async def movements_for_bar(self, bar_id: UUID) -> List[InventoryMovementModel]:
        res = await self.db.execute(
            select(InventoryMovementModel)
            .where(InventoryMovementModel.bar_id == bar_id)
            .order_by(InventoryMovementModel.created_at.desc())
        )
        return list(res.scalars().all())

    async def movements_for_reference(
        self, reference_id: UUID, movement_type: Optional[MovementType] = None
    ) -> List[InventoryMovementModel]:
        stmt = select(InventoryMovementModel).where(InventoryMovementModel.reference_id == reference_id)
        if movement_type is not None:
            stmt = stmt.where(InventoryMovementModel.type == movement_type.value)
        res = await self.db.execute(stmt.order_by(InventoryMovementModel.created_at.asc()))
        return list(res.scalars().all())

    async def movements_for_lot(self, key: LotKey) -> List[InventoryMovementModel]:
        res = await self.db.execute(
            select(InventoryMovementModel)
            .where(
                InventoryMovementModel.bar_id == key.bar_id,
                InventoryMovementModel.drink_id == key.drink_id,
                InventoryMovementModel.supplier_id == key.supplier_id,
                InventoryMovementModel.pool == key.pool.value,
            )
            .order_by(InventoryMovementModel.created_at.asc())
        )
        return list(res.scalars().all())

    async def ledger_balance(self, key: LotKey) -> int:
        res = await self.db.execute(
            select(func.coalesce(func.sum(InventoryMovementModel.quantity), 0)).where(
                InventoryMovementModel.bar_id == key.bar_id,
                InventoryMovementModel.drink_id == key.drink_id,
                InventoryMovementModel.supplier_id == key.supplier_id,
                InventoryMovementModel.pool == key.pool.value,
            )
        )
        return int(res.scalar_one())

    # ----- writes (no commit) -----

    async def conditional_decrement(self, key: LotKey, amount: int) -> bool:
        """Decrement only if the lot keeps quantity >= 0. Returns False when no row matched."""
        res = await self.db.execute(
            update(StockLotModel)
            .where(*_key_filter(key), StockLotModel.quantity >= amount)
            .values(quantity=StockLotModel.quantity - amount)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount == 1

    async def increment(
        self,
        key: LotKey,
        amount: int,
        *,
        unit_cost: int,
        currency: str,
        ownership_mode: OwnershipMode,
    ) -> int:
        """Upsert: create the lot with `amount` or add `amount` to it. Returns the new quantity."""
        dialect = self.db.bind.dialect.name if self.db.bind is not None else "postgresql"
        insert = postgresql.insert if dialect == "postgresql" else sqlite.insert

        stock_tbl = StockLotModel.__table__
        upsert = (
            insert(stock_tbl)
            .values(
                id=uuid.uuid4(),
                bar_id=key.bar_id,
                drink_id=key.drink_id,
                supplier_id=key.supplier_id,
                pool=key.pool.value,
                quantity=amount,
                unit_cost=unit_cost,
                currency=currency,
                ownership_mode=ownership_mode.value,
                received_at=utcnow(),
            )
        )
        upsert = upsert.on_conflict_do_update(
            index_elements=["bar_id", "drink_id", "supplier_id", "pool"],
            set_={"quantity": stock_tbl.c.quantity + amount},
        ).returning(stock_tbl.c.quantity)
        row = (await self.db.execute(upsert)).first()
        return int(row.quantity) if row else 0

    def record_movement(
        self,
        key: LotKey,
        quantity: int,
        movement_type: MovementType,
        reference_id: Optional[UUID] = None,
        notes: Optional[str] = None,
    ) -> InventoryMovementModel:
        movement = InventoryMovementModel(
            id=uuid.uuid4(),
            bar_id=key.bar_id,
            drink_id=key.drink_id,
            supplier_id=key.supplier_id,
            pool=key.pool.value,
            quantity=int(quantity),
            type=movement_type.value,
            reference_id=reference_id,
            notes=notes,
            created_at=utcnow(),
        )
        self.db.add(movement)
        return movement

    # ----- transactional operations -----

    async def receive(
        self,
        key: LotKey,
        quantity: int,
        *,
        unit_cost: int,
        currency: str,
        ownership_mode: OwnershipMode,
        notes: Optional[str] = None,
    ) -> dict:
        """Stock input to a bar lot (purchase or assignment). Creates the lot on first receipt."""
        if quantity <= 0:
            raise InvalidQuantity(quantity)
        bar = await self.db.get(BarModel, key.bar_id)
        if bar is None:
            raise NotFound("Bar", key.bar_id)
        drink = await self.db.get(DrinkModel, key.drink_id)
        if drink is None:
            raise NotFound("Drink", key.drink_id)

        try:
            new_qty = await self.increment(
                key, quantity, unit_cost=unit_cost, currency=currency, ownership_mode=ownership_mode
            )
            movement = self.record_movement(key, quantity, MovementType.INPUT, notes=notes)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            logger.exception("receive failed for %s", key)
            raise

        logger.info("received %s ml of drink %s into bar %s (%s)", quantity, key.drink_id, key.bar_id, key.pool.value)
        return {"movement_id": movement.id, "quantity": new_qty}

    async def transfer(
        self,
        source: LotKey,
        to_bar_id: UUID,
        quantity: int,
        notes: Optional[str] = None,
    ) -> dict:
        """Move ml between two bars of the same event; both legs commit together."""
        if quantity <= 0:
            raise InvalidQuantity(quantity)
        if source.bar_id == to_bar_id:
            raise InvalidTransfer("Cannot move stock to the same bar")

        from_bar = await self.db.get(BarModel, source.bar_id)
        if from_bar is None:
            raise NotFound("Bar", source.bar_id)
        to_bar = await self.db.get(BarModel, to_bar_id)
        if to_bar is None:
            raise NotFound("Bar", to_bar_id)
        if from_bar.event_id != to_bar.event_id:
            raise InvalidTransfer("Stock can only be moved between bars of the same event")

        lot = await self.get_lot(source)
        if lot is None:
            raise NotFound("Stock lot", f"{source.bar_id}/{source.drink_id}/{source.supplier_id}/{source.pool.value}")
        if lot.quantity < quantity:
            raise InsufficientStock(source.drink_id, quantity, lot.quantity)

        dest = LotKey(to_bar_id, source.drink_id, source.supplier_id, source.pool)
        transfer_id = uuid.uuid4()
        try:
            if not await self.conditional_decrement(source, quantity):
                current = await self.get_lot(source)
                raise InsufficientStock(source.drink_id, quantity, current.quantity if current else 0)
            new_dest_qty = await self.increment(
                dest,
                quantity,
                unit_cost=lot.unit_cost,
                currency=lot.currency,
                ownership_mode=OwnershipMode(lot.ownership_mode),
            )
            self.record_movement(source, -quantity, MovementType.TRANSFER_OUT, transfer_id, notes)
            self.record_movement(dest, quantity, MovementType.TRANSFER_IN, transfer_id, notes)
            await self.db.commit()
        except InsufficientStock:
            await self.db.rollback()
            logger.warning("transfer of %s ml from bar %s rejected: stock changed", quantity, source.bar_id)
            raise
        except Exception:
            await self.db.rollback()
            logger.exception("transfer failed for %s", source)
            raise

        return {
            "transfer_id": transfer_id,
            "from_bar_id": source.bar_id,
            "to_bar_id": to_bar_id,
            "drink_id": source.drink_id,
            "supplier_id": source.supplier_id,
            "pool": source.pool,
            "quantity": quantity,
            "to_quantity": new_dest_qty,
        }

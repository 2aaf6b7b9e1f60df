"""
Consignment returns.

The quantity returned is always the lot's quantity at the moment of return.
It is never taken from the caller. Each return is one transaction: lot to 0,
a ConsignmentReturn row and a balancing negative movement.
"""

import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.enums import MovementType, OwnershipMode, StockPool
from core.exceptions import AlreadyReturned, InventoryError, InvalidOwnership, NotFound, ReturnConflict
from db.database import (
    Bar as BarModel,
    ConsignmentReturn as ConsignmentReturnModel,
    Event as EventModel,
    InventoryMovement as InventoryMovementModel,
    StockLot as StockLotModel,
    utcnow,
)
from services.stock_ledger import LotKey, StockLedger

logger = logging.getLogger(__name__)

_Key = Tuple[UUID, UUID, UUID, str]


@dataclass
class ReturnResult:
    return_id: UUID
    bar_id: UUID
    drink_id: UUID
    drink_sku: Optional[str]
    supplier_id: UUID
    pool: StockPool
    quantity_returned: int
    returned_at: datetime
    performed_by: Optional[UUID]


def _failure(drink_id: UUID, supplier_id: UUID, pool: StockPool, error: Exception, detail: str) -> dict:
    return {
        "drink_id": drink_id,
        "supplier_id": supplier_id,
        "pool": pool,
        "error": error.__class__.__name__,
        "detail": detail,
    }


class ConsignmentService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.ledger = StockLedger(db)

    async def _get_bar(self, bar_id: UUID) -> BarModel:
        bar = await self.db.get(BarModel, bar_id)
        if bar is None:
            raise NotFound("Bar", bar_id)
        return bar

    async def _consignment_lots(self, *where) -> List[StockLotModel]:
        res = await self.db.execute(
            select(StockLotModel)
            .options(
                selectinload(StockLotModel.drink),
                selectinload(StockLotModel.supplier),
                selectinload(StockLotModel.bar),
            )
            .where(
                StockLotModel.ownership_mode == OwnershipMode.CONSIGNMENT.value,
                StockLotModel.quantity > 0,
                *where,
            )
            .order_by(StockLotModel.bar_id, StockLotModel.supplier_id, StockLotModel.drink_id)
            .execution_options(populate_existing=True)
        )
        return list(res.scalars().all())

    async def _history(self, bar_ids: List[UUID]) -> Tuple[Dict[_Key, int], Dict[_Key, int], Dict[_Key, int]]:
        """(received, consumed, returned) per lot key for the given bars."""
        received: Dict[_Key, int] = defaultdict(int)
        consumed: Dict[_Key, int] = defaultdict(int)
        returned: Dict[_Key, int] = defaultdict(int)
        if not bar_ids:
            return received, consumed, returned

        m = InventoryMovementModel
        res = await self.db.execute(
            select(m.bar_id, m.drink_id, m.supplier_id, m.pool, m.type, func.sum(m.quantity))
            .where(
                m.bar_id.in_(bar_ids),
                m.type.in_([MovementType.INPUT.value, MovementType.TRANSFER_IN.value, MovementType.SALE.value]),
            )
            .group_by(m.bar_id, m.drink_id, m.supplier_id, m.pool, m.type)
        )
        for bar_id, drink_id, supplier_id, pool, mtype, total in res.all():
            key = (bar_id, drink_id, supplier_id, pool)
            if mtype == MovementType.SALE.value:
                consumed[key] += abs(int(total or 0))
            else:
                received[key] += int(total or 0)

        r = ConsignmentReturnModel
        res = await self.db.execute(
            select(r.bar_id, r.drink_id, r.supplier_id, r.pool, func.sum(r.quantity_returned))
            .where(r.bar_id.in_(bar_ids))
            .group_by(r.bar_id, r.drink_id, r.supplier_id, r.pool)
        )
        for bar_id, drink_id, supplier_id, pool, total in res.all():
            returned[(bar_id, drink_id, supplier_id, pool)] += int(total or 0)
        return received, consumed, returned

    @staticmethod
    def _summary_item(lot: StockLotModel, received: int, consumed: int, returned: int) -> dict:
        return {
            "bar_id": lot.bar_id,
            "bar_name": lot.bar.name if lot.bar else None,
            "supplier_id": lot.supplier_id,
            "supplier_name": lot.supplier.name if lot.supplier else None,
            "drink_id": lot.drink_id,
            "drink_name": lot.drink.name if lot.drink else None,
            "drink_sku": lot.drink.sku if lot.drink else None,
            "pool": StockPool(lot.pool),
            "current_quantity": int(lot.quantity),
            "total_received": received,
            "total_consumed": consumed,
            "total_returned": returned,
            # System-determined, not negotiable
            "quantity_to_return": int(lot.quantity),
        }

    async def bar_return_summary(self, bar_id: UUID) -> List[dict]:
        await self._get_bar(bar_id)
        lots = await self._consignment_lots(StockLotModel.bar_id == bar_id)
        received, consumed, returned = await self._history([bar_id])
        out = []
        for lot in lots:
            key = (lot.bar_id, lot.drink_id, lot.supplier_id, lot.pool)
            out.append(self._summary_item(lot, received[key], consumed[key], returned[key]))
        return out

    async def event_return_summary(self, event_id: UUID) -> dict:
        event = await self.db.get(EventModel, event_id)
        if event is None:
            raise NotFound("Event", event_id)

        bar_ids = list((await self.db.execute(select(BarModel.id).where(BarModel.event_id == event_id))).scalars().all())
        lots = await self._consignment_lots(StockLotModel.bar_id.in_(bar_ids)) if bar_ids else []
        received, consumed, returned = await self._history(bar_ids)

        by_supplier: Dict[UUID, dict] = {}
        for lot in lots:
            key = (lot.bar_id, lot.drink_id, lot.supplier_id, lot.pool)
            item = self._summary_item(lot, received[key], consumed[key], returned[key])
            group = by_supplier.get(lot.supplier_id)
            if group is None:
                group = {
                    "supplier_id": lot.supplier_id,
                    "supplier_name": item["supplier_name"],
                    "items": [],
                    "total_to_return": 0,
                }
                by_supplier[lot.supplier_id] = group
            group["items"].append(item)
            group["total_to_return"] += item["quantity_to_return"]

        groups = list(by_supplier.values())
        return {
            "event_id": event.id,
            "event_name": event.name,
            "by_supplier": groups,
            "grand_total": sum(g["total_to_return"] for g in groups),
        }

    async def execute_return(
        self,
        bar_id: UUID,
        drink_id: UUID,
        supplier_id: UUID,
        pool: StockPool = StockPool.RECIPE_INGREDIENT,
        performed_by: Optional[UUID] = None,
        notes: Optional[str] = None,
    ) -> ReturnResult:
        await self._get_bar(bar_id)
        key = LotKey(bar_id, drink_id, supplier_id, StockPool(pool))

        res = await self.db.execute(
            select(StockLotModel)
            .options(selectinload(StockLotModel.drink))
            .where(
                StockLotModel.bar_id == bar_id,
                StockLotModel.drink_id == drink_id,
                StockLotModel.supplier_id == supplier_id,
                StockLotModel.pool == key.pool.value,
            )
            .execution_options(populate_existing=True)
        )
        lot = res.scalar_one_or_none()
        if lot is None:
            raise NotFound("Stock lot", f"{bar_id}/{drink_id}/{supplier_id}/{key.pool.value}")
        if lot.ownership_mode != OwnershipMode.CONSIGNMENT.value:
            raise InvalidOwnership(bar_id, drink_id, supplier_id, lot.ownership_mode)
        if int(lot.quantity) <= 0:
            raise AlreadyReturned(bar_id, drink_id, supplier_id)

        quantity_to_return = int(lot.quantity)
        drink_sku = lot.drink.sku if lot.drink else None
        return_id = uuid.uuid4()
        returned_at = utcnow()

        try:
            res = await self.db.execute(
                update(StockLotModel)
                .where(
                    StockLotModel.bar_id == bar_id,
                    StockLotModel.drink_id == drink_id,
                    StockLotModel.supplier_id == supplier_id,
                    StockLotModel.pool == key.pool.value,
                    StockLotModel.quantity == quantity_to_return,
                )
                .values(quantity=0)
                .execution_options(synchronize_session=False)
            )
            if res.rowcount != 1:
                current = await self.ledger.get_lot(key)
                if current is None or int(current.quantity) == 0:
                    raise AlreadyReturned(bar_id, drink_id, supplier_id)
                raise ReturnConflict(bar_id, drink_id, supplier_id, quantity_to_return)

            self.db.add(
                ConsignmentReturnModel(
                    id=return_id,
                    bar_id=bar_id,
                    drink_id=drink_id,
                    supplier_id=supplier_id,
                    pool=key.pool.value,
                    quantity_returned=quantity_to_return,
                    performed_by=performed_by,
                    notes=notes,
                    returned_at=returned_at,
                )
            )
            self.ledger.record_movement(
                key,
                -quantity_to_return,
                MovementType.RETURN,
                reference_id=return_id,
                notes=notes or "Consignment return to supplier",
            )
            await self.db.commit()
        except InventoryError:
            await self.db.rollback()
            raise
        except Exception:
            await self.db.rollback()
            logger.exception("consignment return failed for %s", key)
            raise

        logger.info(
            "consignment return %s: %s ml of drink %s to supplier %s from bar %s",
            return_id, quantity_to_return, drink_id, supplier_id, bar_id,
        )
        return ReturnResult(
            return_id=return_id,
            bar_id=bar_id,
            drink_id=drink_id,
            drink_sku=drink_sku,
            supplier_id=supplier_id,
            pool=key.pool,
            quantity_returned=quantity_to_return,
            returned_at=returned_at,
            performed_by=performed_by,
        )

    async def execute_all_returns(self, bar_id: UUID, performed_by: Optional[UUID] = None) -> dict:
        """Return every positive consignment lot of a bar. Each lot is its own transaction."""
        await self._get_bar(bar_id)
        lots = await self._consignment_lots(StockLotModel.bar_id == bar_id)
        targets = [(lot.drink_id, lot.supplier_id, StockPool(lot.pool)) for lot in lots]

        returned: List[ReturnResult] = []
        failed: List[dict] = []
        for drink_id, supplier_id, pool in targets:
            try:
                returned.append(
                    await self.execute_return(
                        bar_id, drink_id, supplier_id, pool,
                        performed_by=performed_by,
                        notes="Bulk return at event close",
                    )
                )
            except InventoryError as e:
                logger.warning("bulk return skipped drink %s supplier %s in bar %s: %s", drink_id, supplier_id, bar_id, e.message)
                failed.append(_failure(drink_id, supplier_id, pool, e, e.message))
            except Exception as e:
                # Lots already returned stay committed; report this one and keep going.
                logger.exception("bulk return failed for drink %s supplier %s in bar %s", drink_id, supplier_id, bar_id)
                failed.append(_failure(drink_id, supplier_id, pool, e, str(e)))
        return {"bar_id": bar_id, "returned": returned, "failed": failed}

    async def list_returns(self, bar_id: UUID) -> List[ConsignmentReturnModel]:
        await self._get_bar(bar_id)
        res = await self.db.execute(
            select(ConsignmentReturnModel)
            .where(ConsignmentReturnModel.bar_id == bar_id)
            .order_by(ConsignmentReturnModel.returned_at.desc())
        )
        return list(res.scalars().all())

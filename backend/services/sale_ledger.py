"""
Sale ledger writer.

One transaction: sale row, every planned lot decrement (conditional, never
read-modify-write) and one negative movement per deduction. Any failure rolls
all of it back. The dashboard notification goes out only after commit.
"""

import logging
import uuid
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from core.enums import MovementType
from core.exceptions import InsufficientStock
from db.database import Sale as SaleModel, utcnow
from services.depletion import DepletionPlan
from services.notifications import NullSaleNotifier, SaleNotification, SaleNotifier
from services.stock_ledger import StockLedger

logger = logging.getLogger(__name__)


class SaleLedgerWriter:
    def __init__(self, db: AsyncSession, notifier: Optional[SaleNotifier] = None):
        self.db = db
        self.ledger = StockLedger(db)
        self.notifier = notifier or NullSaleNotifier()

    async def commit_sale(
        self,
        *,
        event_id: UUID,
        cocktail_id: UUID,
        quantity: int,
        plan: DepletionPlan,
    ) -> SaleModel:
        sale = SaleModel(
            id=uuid.uuid4(),
            bar_id=plan.bar_id,
            cocktail_id=cocktail_id,
            quantity=int(quantity),
            created_at=utcnow(),
        )
        try:
            self.db.add(sale)
            await self.db.flush()

            for deduction in plan.deductions:
                if not await self.ledger.conditional_decrement(deduction.key, deduction.amount):
                    # Another sale drew the lot down after planning. Undo this sale's
                    # earlier decrements before reading what is really left.
                    await self.db.rollback()
                    requirement = plan.requirements[deduction.drink_id]
                    available = await self.ledger.available(plan.bar_id, deduction.drink_id, plan.pool)
                    raise InsufficientStock(
                        deduction.drink_id, requirement.required_ml, available, requirement.drink_name
                    )
                self.ledger.record_movement(
                    deduction.key,
                    -deduction.amount,
                    MovementType.SALE,
                    reference_id=sale.id,
                )

            await self.db.commit()
        except InsufficientStock as e:
            await self.db.rollback()
            logger.warning(
                "sale rolled back in bar %s: drink %s required=%s available=%s",
                plan.bar_id, e.drink_id, e.required, e.available,
            )
            raise
        except Exception:
            await self.db.rollback()
            logger.exception("sale commit failed in bar %s", plan.bar_id)
            raise

        logger.info(
            "sale %s committed: bar=%s cocktail=%s qty=%s lots=%s",
            sale.id, plan.bar_id, cocktail_id, quantity, len(plan.deductions),
        )
        await self._notify(event_id, sale, plan)
        return sale

    async def _notify(self, event_id: UUID, sale: SaleModel, plan: DepletionPlan) -> None:
        notification = SaleNotification(
            event_id=event_id,
            bar_id=plan.bar_id,
            sale={
                "id": sale.id,
                "cocktail_id": sale.cocktail_id,
                "quantity": sale.quantity,
                "created_at": sale.created_at,
            },
            depletions=[d.to_dict() for d in plan.deductions],
        )
        try:
            await self.notifier.publish(notification)
        except Exception:
            # The sale is committed; a lost dashboard update must not surface as a failure.
            logger.exception("sale %s notification not delivered", sale.id)

"""
Sale entry point: resolve recipe -> compute consumption -> plan lots -> commit.

All validation and planning finish before the first write; the ledger writer
performs the only mutation as one transaction.
"""

from dataclasses import dataclass
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.enums import MovementType, StockPool
from core.exceptions import InvalidQuantity, NotFound
from db.database import InventoryMovement as InventoryMovementModel, Sale as SaleModel
from services.consumption import calculate_consumption
from services.depletion import DepletionPlanner, LotDeduction
from services.notifications import SaleNotifier
from services.recipe_resolver import RecipeResolver
from services.sale_ledger import SaleLedgerWriter
from services.stock_ledger import StockLedger


@dataclass
class SaleResult:
    sale: SaleModel
    pool: StockPool
    depletions: List[LotDeduction]


class SalesService:
    def __init__(self, db: AsyncSession, notifier: Optional[SaleNotifier] = None):
        self.db = db
        self.resolver = RecipeResolver(db)
        self.ledger = StockLedger(db)
        self.planner = DepletionPlanner(self.ledger)
        self.writer = SaleLedgerWriter(db, notifier)

    async def sell(self, bar_id: UUID, cocktail_id: UUID, quantity: int) -> SaleResult:
        if int(quantity) < 1:
            raise InvalidQuantity(quantity, "quantity must be >= 1")

        bar = await self.resolver.get_bar(bar_id)
        cocktail = await self.resolver.get_cocktail(cocktail_id)
        recipe = await self.resolver.resolve(bar, cocktail)

        consumption = calculate_consumption(recipe.components, recipe.serving_volume_ml, quantity, recipe.pool)
        plan = await self.planner.plan(bar.bar_id, consumption, bar.depletion_policy)

        sale = await self.writer.commit_sale(
            event_id=bar.event_id,
            cocktail_id=cocktail.cocktail_id,
            quantity=quantity,
            plan=plan,
        )
        return SaleResult(sale=sale, pool=plan.pool, depletions=list(plan.deductions))

    async def list_sales(self, bar_id: UUID) -> List[SaleModel]:
        await self.resolver.get_bar(bar_id)
        res = await self.db.execute(
            select(SaleModel).where(SaleModel.bar_id == bar_id).order_by(SaleModel.created_at.desc())
        )
        return list(res.scalars().all())

    async def get_sale(self, bar_id: UUID, sale_id: UUID) -> SaleModel:
        sale = await self.db.get(SaleModel, sale_id)
        if sale is None or sale.bar_id != bar_id:
            raise NotFound("Sale", sale_id)
        return sale

    async def sale_movements(self, bar_id: UUID, sale_id: UUID) -> List[InventoryMovementModel]:
        await self.get_sale(bar_id, sale_id)
        return await self.ledger.movements_for_reference(sale_id, MovementType.SALE)

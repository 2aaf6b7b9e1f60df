"""
Depletion planning: choose which lots pay for each drink requirement.

Planning is read-only. Lots are ordered by the event's policy and drained
greedily; if the pool cannot cover a drink the whole plan fails before any
lot is touched.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List, Sequence
from uuid import UUID

from core.enums import DepletionPolicy, OwnershipMode, StockPool
from core.exceptions import InsufficientStock
from db.inventory import StockLot as StockLotModel
from services.consumption import Consumption, DrinkRequirement
from services.stock_ledger import LotKey, StockLedger

logger = logging.getLogger(__name__)


def _received(lot: StockLotModel) -> datetime:
    # SQLite hands back naive datetimes; those are stored as UTC.
    ts = lot.received_at
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def _cheapest_first(lot: StockLotModel) -> tuple:
    return (int(lot.unit_cost), _received(lot), str(lot.supplier_id))


def _fifo(lot: StockLotModel) -> tuple:
    return (_received(lot), str(lot.supplier_id))


def _consignment_last(lot: StockLotModel) -> tuple:
    consignment = lot.ownership_mode == OwnershipMode.CONSIGNMENT.value
    return (1 if consignment else 0, int(lot.unit_cost), _received(lot), str(lot.supplier_id))


POLICY_SORT_KEYS: Dict[DepletionPolicy, Callable[[StockLotModel], tuple]] = {
    DepletionPolicy.CHEAPEST_FIRST: _cheapest_first,
    DepletionPolicy.FIFO: _fifo,
    DepletionPolicy.CONSIGNMENT_LAST: _consignment_last,
}

_missing = set(DepletionPolicy) - set(POLICY_SORT_KEYS)
if _missing:
    raise RuntimeError(f"No lot ordering defined for depletion policies: {sorted(p.value for p in _missing)}")


def order_lots(lots: Sequence[StockLotModel], policy: DepletionPolicy) -> List[StockLotModel]:
    return sorted(lots, key=POLICY_SORT_KEYS[DepletionPolicy(policy)])


@dataclass(frozen=True)
class LotDeduction:
    bar_id: UUID
    drink_id: UUID
    supplier_id: UUID
    pool: StockPool
    amount: int
    unit_cost: int
    ownership_mode: str

    @property
    def key(self) -> LotKey:
        return LotKey(self.bar_id, self.drink_id, self.supplier_id, self.pool)

    def to_dict(self) -> dict:
        return {
            "bar_id": self.bar_id,
            "drink_id": self.drink_id,
            "supplier_id": self.supplier_id,
            "pool": self.pool.value,
            "amount": self.amount,
        }


@dataclass
class DepletionPlan:
    bar_id: UUID
    pool: StockPool
    policy: DepletionPolicy
    deductions: List[LotDeduction] = field(default_factory=list)
    requirements: Dict[UUID, DrinkRequirement] = field(default_factory=dict)

    def total_for(self, drink_id: UUID) -> int:
        return sum(d.amount for d in self.deductions if d.drink_id == drink_id)


def allocate(
    requirement: DrinkRequirement,
    lots: Sequence[StockLotModel],
    policy: DepletionPolicy,
    pool: StockPool,
) -> List[LotDeduction]:
    """Greedy draw-down over policy-ordered lots. Raises InsufficientStock without side effects."""
    ordered = [lot for lot in order_lots(lots, policy) if int(lot.quantity) > 0]
    available = sum(int(lot.quantity) for lot in ordered)
    if available < requirement.required_ml:
        raise InsufficientStock(requirement.drink_id, requirement.required_ml, available, requirement.drink_name)

    out: List[LotDeduction] = []
    remaining = requirement.required_ml
    for lot in ordered:
        if remaining <= 0:
            break
        take = min(int(lot.quantity), remaining)
        remaining -= take
        out.append(
            LotDeduction(
                bar_id=lot.bar_id,
                drink_id=lot.drink_id,
                supplier_id=lot.supplier_id,
                pool=pool,
                amount=take,
                unit_cost=int(lot.unit_cost),
                ownership_mode=lot.ownership_mode,
            )
        )
    return out


class DepletionPlanner:
    def __init__(self, ledger: StockLedger):
        self.ledger = ledger

    async def plan(self, bar_id: UUID, consumption: Consumption, policy: DepletionPolicy) -> DepletionPlan:
        plan = DepletionPlan(bar_id=bar_id, pool=consumption.pool, policy=DepletionPolicy(policy))
        for requirement in consumption.requirements:
            if requirement.required_ml <= 0:
                continue
            lots = await self.ledger.lots_for(bar_id, requirement.drink_id, consumption.pool)
            try:
                deductions = allocate(requirement, lots, plan.policy, consumption.pool)
            except InsufficientStock as e:
                logger.warning(
                    "insufficient %s stock in bar %s: %s (required=%s available=%s)",
                    consumption.pool.value, bar_id, requirement.drink_name, e.required, e.available,
                )
                raise
            plan.deductions.extend(deductions)
            plan.requirements[requirement.drink_id] = requirement
        return plan


"""Turn a resolved recipe and a sold quantity into per-drink ml requirements."""

from dataclasses import dataclass
from typing import Iterable, List, Tuple
from uuid import UUID

from core.enums import StockPool
from services.recipe_resolver import ResolvedComponent


@dataclass(frozen=True)
class DrinkRequirement:
    drink_id: UUID
    drink_name: str
    required_ml: int


@dataclass(frozen=True)
class Consumption:
    pool: StockPool
    requirements: Tuple[DrinkRequirement, ...]


def required_ml(serving_volume_ml: int, percentage: int, quantity: int) -> int:
    """ceil(volume * percentage * quantity / 100) in integer arithmetic; never rounds down."""
    return -(-(int(serving_volume_ml) * int(percentage) * int(quantity)) // 100)


def calculate_consumption(
    components: Iterable[ResolvedComponent],
    serving_volume_ml: int,
    quantity: int,
    pool: StockPool,
) -> Consumption:
    # Components need not sum to 100%: the remainder (ice, dilution) is untracked.
    requirements: List[DrinkRequirement] = [
        DrinkRequirement(
            drink_id=c.drink_id,
            drink_name=c.drink_name,
            required_ml=required_ml(serving_volume_ml, c.percentage, quantity),
        )
        for c in components
    ]
    return Consumption(pool=pool, requirements=tuple(requirements))

"""Closed vocabularies stored as text columns."""

from enum import Enum


class StockPool(str, Enum):
    # Whole physical units sold as-is (sealed can, bottle of water).
    DIRECT_SALE = "direct_sale"
    # Fractional consumption through recipes.
    RECIPE_INGREDIENT = "recipe_ingredient"


class OwnershipMode(str, Enum):
    PURCHASED = "purchased"
    CONSIGNMENT = "consignment"


class DepletionPolicy(str, Enum):
    CHEAPEST_FIRST = "cheapest_first"
    FIFO = "fifo"
    CONSIGNMENT_LAST = "consignment_last"


class MovementType(str, Enum):
    INPUT = "input"
    SALE = "sale"
    RETURN = "return"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"


class BarType(str, Enum):
    VIP = "VIP"
    GENERAL = "general"
    BACKSTAGE = "backstage"
    LOUNGE = "lounge"

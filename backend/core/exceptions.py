from typing import Any, Dict, Optional
from uuid import UUID


class InventoryError(Exception):
    """Base class for errors raised by the stock engine."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"detail": self.message, "error": self.__class__.__name__}
        for k, v in self.details.items():
            out[k] = str(v) if isinstance(v, UUID) else v
        return out


class NotFound(InventoryError):
    def __init__(self, entity: str, identifier: Any):
        self.entity = entity
        self.identifier = identifier
        super().__init__(
            f"{entity} {identifier} not found",
            {"entity": entity, "id": identifier},
        )


class NoRecipe(InventoryError):
    def __init__(self, bar_id: UUID, cocktail_id: UUID, cocktail_name: str):
        self.bar_id = bar_id
        self.cocktail_id = cocktail_id
        self.cocktail_name = cocktail_name
        super().__init__(
            f'No recipe found for cocktail "{cocktail_name}" in this bar',
            {"bar_id": bar_id, "cocktail_id": cocktail_id, "cocktail_name": cocktail_name},
        )


class InsufficientStock(InventoryError):
    def __init__(self, drink_id: UUID, required: int, available: int, drink_name: Optional[str] = None):
        self.drink_id = drink_id
        self.required = int(required)
        self.available = int(available)
        self.drink_name = drink_name
        label = f'"{drink_name}"' if drink_name else f"ID {drink_id}"
        super().__init__(
            f"Insufficient stock for drink {label}. Required: {self.required} ml, Available: {self.available} ml",
            {
                "drink_id": drink_id,
                "drink_name": drink_name,
                "required": self.required,
                "available": self.available,
            },
        )


class InvalidOwnership(InventoryError):
    def __init__(self, bar_id: UUID, drink_id: UUID, supplier_id: UUID, ownership_mode: str):
        super().__init__(
            f"Only consignment stock can be returned. This stock is marked as {ownership_mode}.",
            {"bar_id": bar_id, "drink_id": drink_id, "supplier_id": supplier_id, "ownership_mode": ownership_mode},
        )


class AlreadyReturned(InventoryError):
    def __init__(self, bar_id: UUID, drink_id: UUID, supplier_id: UUID):
        super().__init__(
            "No stock available to return. Quantity is 0.",
            {"bar_id": bar_id, "drink_id": drink_id, "supplier_id": supplier_id},
        )


class ReturnConflict(InventoryError):
    def __init__(self, bar_id: UUID, drink_id: UUID, supplier_id: UUID, expected: int):
        super().__init__(
            f"Stock changed while the return of {expected} ml was being recorded; reload and try again",
            {"bar_id": bar_id, "drink_id": drink_id, "supplier_id": supplier_id, "expected": expected},
        )


class InvalidRecipe(InventoryError):
    def __init__(self, message: str):
        super().__init__(message)


class InvalidTransfer(InventoryError):
    def __init__(self, message: str):
        super().__init__(message)


class InvalidQuantity(InventoryError):
    def __init__(self, quantity: int, message: str = "quantity must be > 0"):
        super().__init__(message, {"quantity": quantity})

"""
Stock ledger (per-bar lots split by pool).

Models:
- StockLot (quantity per bar/drink/supplier/pool, never deleted at 0)
- InventoryMovement (append-only signed deltas, one per lot change)
- ConsignmentReturn (what was handed back to the supplier)
"""

from .stock import StockLot
from .movement import InventoryMovement
from .consignment_return import ConsignmentReturn

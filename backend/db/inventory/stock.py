import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from ..database import Base, utcnow


class StockLot(Base):
    __tablename__ = "stock_lots"
    __table_args__ = (
        UniqueConstraint("bar_id", "drink_id", "supplier_id", "pool", name="ux_stock_lots_key"),
        CheckConstraint("quantity >= 0", name="ck_stock_lots_quantity_non_negative"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    bar_id = Column(UUID(as_uuid=True), ForeignKey("bars.id", ondelete="CASCADE"), nullable=False, index=True)
    drink_id = Column(UUID(as_uuid=True), ForeignKey("drinks.id", ondelete="RESTRICT"), nullable=False, index=True)
    supplier_id = Column(UUID(as_uuid=True), ForeignKey("suppliers.id", ondelete="RESTRICT"), nullable=False, index=True)
    pool = Column(Text, nullable=False, index=True)  # 'direct_sale' | 'recipe_ingredient'

    quantity = Column(Integer, nullable=False, default=0)  # ml
    unit_cost = Column(Integer, nullable=False, default=0)  # minor units per physical unit
    currency = Column(Text, nullable=False, default="ARS")
    ownership_mode = Column(Text, nullable=False, default="purchased")  # 'purchased' | 'consignment'
    received_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    bar = relationship("Bar")
    drink = relationship("Drink")
    supplier = relationship("Supplier")

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "bar_id": self.bar_id,
            "drink_id": self.drink_id,
            "supplier_id": self.supplier_id,
            "pool": self.pool,
            "quantity": self.quantity,
            "unit_cost": self.unit_cost,
            "currency": self.currency,
            "ownership_mode": self.ownership_mode,
            "received_at": self.received_at,
        }

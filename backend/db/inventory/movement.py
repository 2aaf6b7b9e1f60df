import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from ..database import Base, utcnow


class InventoryMovement(Base):
    __tablename__ = "inventory_movements"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    bar_id = Column(UUID(as_uuid=True), ForeignKey("bars.id", ondelete="CASCADE"), nullable=False, index=True)
    drink_id = Column(UUID(as_uuid=True), ForeignKey("drinks.id", ondelete="RESTRICT"), nullable=False, index=True)
    supplier_id = Column(UUID(as_uuid=True), ForeignKey("suppliers.id", ondelete="RESTRICT"), nullable=False, index=True)
    pool = Column(Text, nullable=False)

    quantity = Column(Integer, nullable=False)  # signed ml
    type = Column(Text, nullable=False, index=True)  # input | sale | return | transfer_in | transfer_out
    # Sale, consignment return or transfer that produced this row
    reference_id = Column(UUID(as_uuid=True), nullable=True, index=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

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
            "type": self.type,
            "reference_id": self.reference_id,
            "notes": self.notes,
            "created_at": self.created_at,
        }

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from ..database import Base, utcnow


class ConsignmentReturn(Base):
    __tablename__ = "consignment_returns"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    bar_id = Column(UUID(as_uuid=True), ForeignKey("bars.id", ondelete="CASCADE"), nullable=False, index=True)
    drink_id = Column(UUID(as_uuid=True), ForeignKey("drinks.id", ondelete="RESTRICT"), nullable=False, index=True)
    supplier_id = Column(UUID(as_uuid=True), ForeignKey("suppliers.id", ondelete="RESTRICT"), nullable=False, index=True)
    pool = Column(Text, nullable=False)

    # Always the lot quantity at the moment of return
    quantity_returned = Column(Integer, nullable=False)
    performed_by = Column(UUID(as_uuid=True), nullable=True)
    notes = Column(Text, nullable=True)
    returned_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

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
            "quantity_returned": self.quantity_returned,
            "performed_by": self.performed_by,
            "notes": self.notes,
            "returned_at": self.returned_at,
        }

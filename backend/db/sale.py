import uuid
from sqlalchemy import Column, DateTime, ForeignKey, Integer
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from .database import Base, utcnow


class Sale(Base):
    """Immutable record of one committed depletion. Refunds are separate compensating flows."""
    __tablename__ = "sales"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    bar_id = Column(UUID(as_uuid=True), ForeignKey("bars.id", ondelete="CASCADE"), nullable=False, index=True)
    cocktail_id = Column(UUID(as_uuid=True), ForeignKey("cocktails.id", ondelete="RESTRICT"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    cocktail = relationship("Cocktail")

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "bar_id": self.bar_id,
            "cocktail_id": self.cocktail_id,
            "quantity": self.quantity,
            "created_at": self.created_at,
        }

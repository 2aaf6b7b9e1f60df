import uuid
from sqlalchemy import Column, Integer, String
from sqlalchemy.dialects.postgresql import UUID

from .database import Base


class Drink(Base):
    """Purchasable ingredient SKU. volume_ml is the size of one physical unit."""
    __tablename__ = "drinks"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False, index=True)
    brand = Column(String, nullable=True)
    sku = Column(String, nullable=True, unique=True)
    volume_ml = Column(Integer, nullable=False)

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "name": self.name,
            "brand": self.brand,
            "sku": self.sku,
            "volume_ml": self.volume_ml,
        }

import uuid
from sqlalchemy import Column, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from .database import Base


class Cocktail(Base):
    """Catalog product sold at the POS. volume_ml is the declared serving size."""
    __tablename__ = "cocktails"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False, unique=True, index=True)
    volume_ml = Column(Integer, nullable=False)

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "name": self.name,
            "volume_ml": self.volume_ml,
        }

import uuid
from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from .database import Base, utcnow


class Event(Base):
    __tablename__ = "events"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    # 'cheapest_first' | 'fifo' | 'consignment_last'
    depletion_policy = Column(Text, nullable=False, default="cheapest_first")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    bars = relationship("Bar", back_populates="event", cascade="all, delete-orphan")
    recipes = relationship("EventRecipe", back_populates="event", cascade="all, delete-orphan")

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "name": self.name,
            "depletion_policy": self.depletion_policy,
            "created_at": self.created_at,
        }


class Bar(Base):
    __tablename__ = "bars"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    event_id = Column(UUID(as_uuid=True), ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    # 'VIP' | 'general' | 'backstage' | 'lounge'
    bar_type = Column(Text, nullable=False, index=True)

    event = relationship("Event", back_populates="bars")

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "event_id": self.event_id,
            "name": self.name,
            "bar_type": self.bar_type,
        }

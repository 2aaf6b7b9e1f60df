"""
Recipes per event (scoped to bar types) and per-bar overrides.

Component percentages are integers in [1, 100]; the sum per recipe is <= 100.
`is_direct_sale` is the stored pool-routing decision: True routes sales to the
DirectSale pool and is only valid for a single component at 100%.
"""

import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from .database import Base, utcnow


class EventRecipe(Base):
    __tablename__ = "event_recipes"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    event_id = Column(UUID(as_uuid=True), ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    cocktail_name = Column(String, nullable=False, index=True)
    glass_volume_ml = Column(Integer, nullable=False)
    is_direct_sale = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    event = relationship("Event", back_populates="recipes")
    components = relationship(
        "EventRecipeComponent",
        back_populates="recipe",
        cascade="all, delete-orphan",
        order_by="EventRecipeComponent.sort_order",
    )
    bar_types = relationship("EventRecipeBarType", back_populates="recipe", cascade="all, delete-orphan")


class EventRecipeComponent(Base):
    __tablename__ = "event_recipe_components"
    __table_args__ = (UniqueConstraint("recipe_id", "drink_id", name="ux_event_recipe_component_drink"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    recipe_id = Column(UUID(as_uuid=True), ForeignKey("event_recipes.id", ondelete="CASCADE"), nullable=False, index=True)
    drink_id = Column(UUID(as_uuid=True), ForeignKey("drinks.id", ondelete="RESTRICT"), nullable=False, index=True)
    percentage = Column(Integer, nullable=False)
    sort_order = Column(Integer, nullable=False, default=0)

    recipe = relationship("EventRecipe", back_populates="components")
    drink = relationship("Drink")


class EventRecipeBarType(Base):
    __tablename__ = "event_recipe_bar_types"
    __table_args__ = (UniqueConstraint("recipe_id", "bar_type", name="ux_event_recipe_bar_type"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    recipe_id = Column(UUID(as_uuid=True), ForeignKey("event_recipes.id", ondelete="CASCADE"), nullable=False, index=True)
    bar_type = Column(Text, nullable=False)

    recipe = relationship("EventRecipe", back_populates="bar_types")


class BarRecipeOverride(Base):
    __tablename__ = "bar_recipe_overrides"
    __table_args__ = (UniqueConstraint("bar_id", "cocktail_id", name="ux_bar_recipe_override_bar_cocktail"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    bar_id = Column(UUID(as_uuid=True), ForeignKey("bars.id", ondelete="CASCADE"), nullable=False, index=True)
    cocktail_id = Column(UUID(as_uuid=True), ForeignKey("cocktails.id", ondelete="CASCADE"), nullable=False, index=True)
    is_direct_sale = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    components = relationship(
        "BarRecipeOverrideComponent",
        back_populates="override",
        cascade="all, delete-orphan",
        order_by="BarRecipeOverrideComponent.sort_order",
    )


class BarRecipeOverrideComponent(Base):
    __tablename__ = "bar_recipe_override_components"
    __table_args__ = (UniqueConstraint("override_id", "drink_id", name="ux_bar_override_component_drink"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    override_id = Column(
        UUID(as_uuid=True),
        ForeignKey("bar_recipe_overrides.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    drink_id = Column(UUID(as_uuid=True), ForeignKey("drinks.id", ondelete="RESTRICT"), nullable=False, index=True)
    percentage = Column(Integer, nullable=False)
    sort_order = Column(Integer, nullable=False, default=0)

    override = relationship("BarRecipeOverride", back_populates="components")
    drink = relationship("Drink")

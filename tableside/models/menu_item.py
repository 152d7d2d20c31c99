import enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text

from tableside.core.database import Base
from tableside.models.types import Money, status_column_type, utcnow


class MenuCategory(str, enum.Enum):
    APPETIZERS = "appetizers"
    MAINS = "mains"
    DRINKS = "drinks"
    DESSERTS = "desserts"
    SPECIALS = "specials"


class MenuItem(Base):
    __tablename__ = "menu_items"
    __table_args__ = (Index("ix_menu_items_organization_category", "organization_id", "category"),)

    id = Column(Integer, primary_key=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=True)
    name = Column(String, nullable=False)
    category = Column(status_column_type(MenuCategory, "menu_category"), nullable=False)
    price = Column(Money, nullable=False)
    description = Column(Text, default="", nullable=False)
    image_url = Column(String, default="", nullable=False)
    available = Column(Boolean, default=True, nullable=False)
    preparation_time_minutes = Column(Integer, default=15, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

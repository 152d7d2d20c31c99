import enum

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text

from tableside.core.database import Base
from tableside.models.types import status_column_type, utcnow


class OrganizationType(str, enum.Enum):
    RESTAURANT = "restaurant"
    QUEUE_BUSINESS = "queue_business"


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    slug = Column(String, unique=True, nullable=False)
    type = Column(
        status_column_type(OrganizationType, "organization_type"),
        default=OrganizationType.RESTAURANT,
        nullable=False,
    )
    email = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    address = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

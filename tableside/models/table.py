import enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from tableside.core.database import Base
from tableside.models.types import status_column_type, utcnow


class TableStatus(str, enum.Enum):
    FREE = "free"
    OCCUPIED = "occupied"
    RESERVED = "reserved"


class DiningTable(Base):
    __tablename__ = "tables"

    id = Column(Integer, primary_key=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), index=True, nullable=True)

    number = Column(Integer, nullable=False)
    capacity = Column(Integer, default=4, nullable=False)
    status = Column(status_column_type(TableStatus, "table_status"), default=TableStatus.FREE, nullable=False)
    # Token encoded in the table's QR code
    qr_code = Column(String, unique=True, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    orders = relationship("Order", back_populates="table")

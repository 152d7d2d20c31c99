import enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text

from tableside.core.database import Base
from tableside.models.types import status_column_type, utcnow


class ReservationStatus(str, enum.Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class Reservation(Base):
    __tablename__ = "reservations"

    id = Column(Integer, primary_key=True)
    table_id = Column(Integer, ForeignKey("tables.id"), index=True, nullable=False)
    customer_name = Column(String, nullable=False)
    customer_phone = Column(String, nullable=True)
    guest_count = Column(Integer, nullable=False)
    reservation_time = Column(DateTime(timezone=True), index=True, nullable=False)
    status = Column(
        status_column_type(ReservationStatus, "reservation_status"),
        default=ReservationStatus.CONFIRMED,
        nullable=False,
    )
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

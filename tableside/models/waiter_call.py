from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Text

from tableside.core.database import Base
from tableside.models.types import utcnow


class WaiterCall(Base):
    __tablename__ = "waiter_calls"

    id = Column(Integer, primary_key=True)
    table_id = Column(Integer, ForeignKey("tables.id"), index=True, nullable=False)
    reason = Column(Text, nullable=True)
    resolved = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

import enum
from decimal import Decimal
from typing import Iterable

from sqlalchemy import Column, DateTime, ForeignKey, Integer
from sqlalchemy.orm import relationship

from tableside.core.database import Base
from tableside.models.types import Money, status_column_type, to_money, utcnow


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


TERMINAL_ORDER_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED})


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    table_id = Column(Integer, ForeignKey("tables.id"), index=True, nullable=False)

    status = Column(status_column_type(OrderStatus, "order_status"), default=OrderStatus.PENDING, nullable=False)
    # Derived from the non-cancelled items; only written through recompute_total()
    total = Column(Money, default=Decimal("0.00"), nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    table = relationship("DiningTable", back_populates="orders")
    order_items = relationship("OrderItem", back_populates="order", order_by="OrderItem.id")
    payment = relationship("Payment", back_populates="order", uselist=False)

    def recompute_total(self, items: Iterable | None = None) -> Decimal:
        """Sets ``total`` to the sum of price x quantity over non-cancelled items."""
        source = self.order_items if items is None else items
        total = sum((item.line_total for item in source if not item.is_cancelled), Decimal("0.00"))
        self.total = to_money(total)
        return self.total

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_ORDER_STATUSES

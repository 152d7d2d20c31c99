import enum
from decimal import Decimal

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from tableside.core.database import Base
from tableside.models.types import Money, status_column_type, to_money, utcnow


class OrderItemStatus(str, enum.Enum):
    QUEUED = "queued"
    PREPARING = "preparing"
    ALMOST_READY = "almost_ready"
    READY = "ready"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id"), index=True, nullable=False)
    menu_item_id = Column(Integer, ForeignKey("menu_items.id"), index=True, nullable=False)

    quantity = Column(Integer, default=1, nullable=False)
    notes = Column(Text, nullable=True)
    status = Column(
        status_column_type(OrderItemStatus, "order_item_status"),
        default=OrderItemStatus.QUEUED,
        nullable=False,
    )
    # Snapshot of MenuItem.price when the item was ordered
    price = Column(Money, nullable=False)
    started_preparing_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    order = relationship("Order", back_populates="order_items")
    menu_item = relationship("MenuItem")

    @property
    def is_cancelled(self) -> bool:
        return self.status == OrderItemStatus.CANCELLED

    @property
    def line_total(self) -> Decimal:
        return to_money(to_money(self.price) * int(self.quantity or 0))

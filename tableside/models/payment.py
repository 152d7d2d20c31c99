import enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from tableside.core.database import Base
from tableside.models.types import Money, status_column_type, utcnow


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    CARD = "card"


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True)
    # One payment per order, split bills included
    order_id = Column(Integer, ForeignKey("orders.id"), unique=True, nullable=False)
    table_id = Column(Integer, ForeignKey("tables.id"), index=True, nullable=False)

    amount = Column(Money, nullable=False)
    method = Column(status_column_type(PaymentMethod, "payment_method"), nullable=False)
    created_at = Column(DateTime(timezone=True), index=True, default=utcnow, nullable=False)

    order = relationship("Order", back_populates="payment")
    table = relationship("DiningTable")
    shares = relationship("BillShare", back_populates="payment", order_by="BillShare.id")


class BillShare(Base):
    __tablename__ = "bill_shares"

    id = Column(Integer, primary_key=True)
    payment_id = Column(Integer, ForeignKey("payments.id"), index=True, nullable=False)

    customer_name = Column(String, nullable=False)
    amount = Column(Money, nullable=False)
    paid = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    payment = relationship("Payment", back_populates="shares")

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, Text

from tableside.core.database import Base
from tableside.models.types import utcnow


class DishReview(Base):
    __tablename__ = "dish_reviews"
    __table_args__ = (CheckConstraint("rating BETWEEN 1 AND 5", name="ck_dish_reviews_rating"),)

    id = Column(Integer, primary_key=True)
    menu_item_id = Column(Integer, ForeignKey("menu_items.id"), index=True, nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    customer_name = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

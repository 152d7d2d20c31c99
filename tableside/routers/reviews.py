from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import Field
from sqlalchemy.orm import Session

from tableside.core.database import get_db
from tableside.core.errors import NotFoundError
from tableside.models.dish_review import DishReview
from tableside.schemas.base import CamelModel
from tableside.services import storage
from tableside.services.broadcaster import broadcaster
from tableside.services.serializers import review_to_dict

router = APIRouter(prefix="/api", tags=["reviews"])


class ReviewCreate(CamelModel):
    menu_item_id: int
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = None
    customer_name: Optional[str] = None


@router.get("/reviews/{menu_item_id}")
def list_reviews(menu_item_id: int, db: Session = Depends(get_db)):
    reviews = storage.list_reviews_for_menu_item(db, menu_item_id)
    average = round(sum(review.rating for review in reviews) / len(reviews), 1) if reviews else 0
    return {
        "reviews": [review_to_dict(review) for review in reviews],
        "averageRating": average,
    }


@router.post("/reviews", status_code=201)
def create_review(payload: ReviewCreate, db: Session = Depends(get_db)):
    if storage.get_menu_item(db, payload.menu_item_id) is None:
        raise NotFoundError("Menu item not found")

    review = DishReview(
        menu_item_id=payload.menu_item_id,
        rating=payload.rating,
        comment=payload.comment,
        customer_name=payload.customer_name,
    )
    try:
        db.add(review)
        db.commit()
    except Exception:
        db.rollback()
        raise

    data = review_to_dict(review)
    broadcaster.broadcast("review_created", data)
    return data

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from tableside.core.database import get_db
from tableside.core.errors import ValidationFailure
from tableside.services import analytics

router = APIRouter(prefix="/api/analytics", tags=["analytics"])


@router.get("/sales")
def sales(
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    db: Session = Depends(get_db),
):
    start, end = analytics.resolve_sales_window(start, end)
    if start > end:
        raise ValidationFailure("start must be before end")
    return analytics.sales_summary(db, start, end)


@router.get("/popular-items")
def popular_items(limit: int = Query(10, ge=1, le=100), db: Session = Depends(get_db)):
    return analytics.popular_items(db, limit=limit)


@router.get("/cancellation-rate")
def cancellation_rate(db: Session = Depends(get_db)):
    return {"cancellationRate": analytics.cancellation_rate(db)}

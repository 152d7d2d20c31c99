from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from tableside.models.menu_item import MenuItem
from tableside.models.order_item import OrderItem, OrderItemStatus
from tableside.models.types import to_money
from tableside.services import storage
from tableside.services.serializers import money_str

DEFAULT_SALES_WINDOW_DAYS = 30


def resolve_sales_window(
    start: Optional[datetime],
    end: Optional[datetime],
    now: Optional[datetime] = None,
) -> tuple[datetime, datetime]:
    now = now or datetime.now(timezone.utc)
    end = _as_utc(end) if end else now
    start = _as_utc(start) if start else end - timedelta(days=DEFAULT_SALES_WINDOW_DAYS)
    return start, end


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def sales_summary(db: Session, start: datetime, end: datetime) -> Dict[str, Any]:
    payments = storage.list_payments_between(db, start, end)
    revenue = sum((to_money(payment.amount) for payment in payments), Decimal("0.00"))
    by_method: Dict[str, Decimal] = {}
    for payment in payments:
        key = getattr(payment.method, "value", payment.method)
        by_method[key] = by_method.get(key, Decimal("0.00")) + to_money(payment.amount)

    count = len(payments)
    average = revenue / count if count else Decimal("0.00")
    return {
        "start": start.isoformat(),
        "end": end.isoformat(),
        "totalRevenue": money_str(revenue),
        "paymentCount": count,
        "averageTicket": money_str(average),
        "revenueByMethod": {method: money_str(total) for method, total in sorted(by_method.items())},
    }


def popular_items(db: Session, limit: int = 10) -> List[Dict[str, Any]]:
    quantity = func.sum(OrderItem.quantity).label("quantity")
    rows = (
        db.query(MenuItem.id, MenuItem.name, MenuItem.category, quantity)
        .join(OrderItem, OrderItem.menu_item_id == MenuItem.id)
        .filter(OrderItem.status != OrderItemStatus.CANCELLED)
        .group_by(MenuItem.id, MenuItem.name, MenuItem.category)
        .order_by(desc(quantity), MenuItem.name.asc())
        .limit(limit)
        .all()
    )
    return [
        {
            "menuItemId": row.id,
            "name": row.name,
            "category": getattr(row.category, "value", row.category),
            "totalQuantity": int(row.quantity or 0),
        }
        for row in rows
    ]


def cancellation_rate(db: Session) -> float:
    total = db.query(func.count(OrderItem.id)).scalar() or 0
    if not total:
        return 0.0
    cancelled = (
        db.query(func.count(OrderItem.id))
        .filter(OrderItem.status == OrderItemStatus.CANCELLED)
        .scalar()
        or 0
    )
    return round(cancelled * 100.0 / total, 2)

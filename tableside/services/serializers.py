from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from tableside.models.dish_review import DishReview
from tableside.models.menu_item import MenuItem
from tableside.models.order import Order
from tableside.models.order_item import OrderItem
from tableside.models.payment import BillShare, Payment
from tableside.models.reservation import Reservation
from tableside.models.table import DiningTable
from tableside.models.types import to_money
from tableside.models.waiter_call import WaiterCall


def money_str(value: Decimal | float | int | str | None) -> str:
    return f"{to_money(value):.2f}"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _enum_value(value: Any) -> Any:
    return getattr(value, "value", value)


def table_to_dict(table: DiningTable) -> Dict[str, Any]:
    return {
        "id": table.id,
        "organizationId": table.organization_id,
        "number": table.number,
        "capacity": table.capacity,
        "status": _enum_value(table.status),
        "qrCode": table.qr_code,
        "createdAt": _iso(table.created_at),
    }


def menu_item_to_dict(item: MenuItem) -> Dict[str, Any]:
    return {
        "id": item.id,
        "organizationId": item.organization_id,
        "name": item.name,
        "category": _enum_value(item.category),
        "price": money_str(item.price),
        "description": item.description,
        "imageUrl": item.image_url,
        "available": item.available,
        "preparationTimeMinutes": item.preparation_time_minutes,
        "createdAt": _iso(item.created_at),
    }


def order_item_to_dict(item: OrderItem, include_menu_item: bool = False) -> Dict[str, Any]:
    payload = {
        "id": item.id,
        "orderId": item.order_id,
        "menuItemId": item.menu_item_id,
        "quantity": item.quantity,
        "notes": item.notes,
        "status": _enum_value(item.status),
        "price": money_str(item.price),
        "startedPreparingAt": _iso(item.started_preparing_at),
        "createdAt": _iso(item.created_at),
    }
    if include_menu_item:
        payload["menuItem"] = menu_item_to_dict(item.menu_item) if item.menu_item is not None else None
    return payload


def order_to_dict(order: Order, include_items: bool = True) -> Dict[str, Any]:
    payload = {
        "id": order.id,
        "tableId": order.table_id,
        "status": _enum_value(order.status),
        "total": money_str(order.total),
        "createdAt": _iso(order.created_at),
        "updatedAt": _iso(order.updated_at),
    }
    if include_items:
        payload["orderItems"] = [order_item_to_dict(item, include_menu_item=True) for item in order.order_items]
        payload["table"] = table_to_dict(order.table) if order.table is not None else None
    return payload


def payment_to_dict(payment: Payment) -> Dict[str, Any]:
    return {
        "id": payment.id,
        "orderId": payment.order_id,
        "tableId": payment.table_id,
        "amount": money_str(payment.amount),
        "method": _enum_value(payment.method),
        "createdAt": _iso(payment.created_at),
    }


def bill_share_to_dict(share: BillShare) -> Dict[str, Any]:
    return {
        "id": share.id,
        "paymentId": share.payment_id,
        "customerName": share.customer_name,
        "amount": money_str(share.amount),
        "paid": share.paid,
        "createdAt": _iso(share.created_at),
    }


def waiter_call_to_dict(call: WaiterCall) -> Dict[str, Any]:
    return {
        "id": call.id,
        "tableId": call.table_id,
        "reason": call.reason,
        "resolved": call.resolved,
        "createdAt": _iso(call.created_at),
    }


def reservation_to_dict(reservation: Reservation) -> Dict[str, Any]:
    return {
        "id": reservation.id,
        "tableId": reservation.table_id,
        "customerName": reservation.customer_name,
        "customerPhone": reservation.customer_phone,
        "guestCount": reservation.guest_count,
        "reservationTime": _iso(reservation.reservation_time),
        "status": _enum_value(reservation.status),
        "notes": reservation.notes,
        "createdAt": _iso(reservation.created_at),
    }


def review_to_dict(review: DishReview) -> Dict[str, Any]:
    return {
        "id": review.id,
        "menuItemId": review.menu_item_id,
        "rating": review.rating,
        "comment": review.comment,
        "customerName": review.customer_name,
        "createdAt": _iso(review.created_at),
    }

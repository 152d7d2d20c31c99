from __future__ import annotations

from typing import Any, Dict

from tableside.models.order import Order
from tableside.models.order_item import OrderItem
from tableside.models.payment import Payment
from tableside.services.broadcaster import broadcaster
from tableside.services.serializers import order_item_to_dict, order_to_dict, payment_to_dict

ORDER_CREATED = "order_created"
ORDER_CONFIRMED = "order_confirmed"
ORDER_ITEM_STATUS_UPDATED = "order_item_status_updated"
ORDER_READY = "order_ready"
ORDER_ITEM_CANCELLED = "order_item_cancelled"
PAYMENT_PROCESSED = "payment_processed"
SPLIT_BILL_COMPLETED = "split_bill_completed"


def emit(event_type: str, data: Any) -> None:
    broadcaster.broadcast(event_type, data)


def emit_order_created(order: Order) -> None:
    emit(ORDER_CREATED, order_to_dict(order))


def emit_order_confirmed(order: Order) -> None:
    emit(ORDER_CONFIRMED, order_to_dict(order))


def emit_order_item_status_updated(item: OrderItem, order: Order) -> None:
    emit(ORDER_ITEM_STATUS_UPDATED, {"item": order_item_to_dict(item), "order": order_to_dict(order)})


def emit_order_ready(order: Order) -> None:
    emit(ORDER_READY, order_to_dict(order))


def emit_order_item_cancelled(order: Order) -> None:
    emit(ORDER_ITEM_CANCELLED, order_to_dict(order))


def build_payment_payload(payment: Payment, is_split_bill: bool) -> Dict[str, Any]:
    return {
        "payment": payment_to_dict(payment),
        "orderId": payment.order_id,
        "tableId": payment.table_id,
        "isSplitBill": is_split_bill,
    }


def emit_payment_processed(payment: Payment, is_split_bill: bool = False) -> None:
    emit(PAYMENT_PROCESSED, build_payment_payload(payment, is_split_bill))


def emit_split_bill_completed(payment_id: int, order_id: int, table_id: int) -> None:
    emit(SPLIT_BILL_COMPLETED, {"paymentId": payment_id, "orderId": order_id, "tableId": table_id})

from __future__ import annotations

import logging
from typing import Iterable, List

from sqlalchemy.orm import Session

from tableside.core.errors import InvalidStateError, NotFoundError, ValidationFailure
from tableside.models.order import Order, OrderStatus
from tableside.models.order_item import OrderItem, OrderItemStatus
from tableside.models.table import TableStatus
from tableside.models.types import to_money, utcnow
from tableside.services import storage
from tableside.services.order_events import (
    emit_order_confirmed,
    emit_order_created,
    emit_order_item_cancelled,
    emit_order_item_status_updated,
    emit_order_ready,
)

logger = logging.getLogger(__name__)

# "pending" is not an item state; queued is the only state before the kitchen picks an item up
CANCELLABLE_ITEM_STATUSES = frozenset({OrderItemStatus.QUEUED})
SETTLED_ITEM_STATUSES = frozenset(
    {OrderItemStatus.READY, OrderItemStatus.DELIVERED, OrderItemStatus.CANCELLED}
)


def _normalize_requested_items(items: Iterable[dict]) -> List[dict]:
    normalized: List[dict] = []
    for index, entry in enumerate(items, start=1):
        try:
            menu_item_id = int(entry.get("menu_item_id"))
        except (TypeError, ValueError) as exc:
            raise ValidationFailure(f"Item {index}: menuItemId is required") from exc
        try:
            quantity = int(entry.get("quantity", 1))
        except (TypeError, ValueError) as exc:
            raise ValidationFailure(f"Item {index}: quantity must be an integer") from exc
        if quantity < 1:
            raise ValidationFailure(f"Item {index}: quantity must be at least 1")
        notes = entry.get("notes")
        normalized.append(
            {
                "menu_item_id": menu_item_id,
                "quantity": quantity,
                "notes": notes.strip() if isinstance(notes, str) and notes.strip() else None,
            }
        )
    return normalized


def all_items_settled(order: Order) -> bool:
    return all(item.status in SETTLED_ITEM_STATUSES for item in order.order_items)


def create_order(db: Session, table_id: int, items: Iterable[dict]) -> Order:
    """Opens an order for a table, snapshotting current menu prices onto each item.

    Items that reference an unknown menu item are skipped. The table is
    flipped to occupied in the same commit.
    """
    requested = _normalize_requested_items(items)

    table = storage.get_table(db, table_id)
    if table is None:
        raise NotFoundError("Table not found")

    try:
        order = Order(table_id=table.id, status=OrderStatus.PENDING)
        db.add(order)
        db.flush()

        created_items: List[OrderItem] = []
        for entry in requested:
            menu_item = storage.get_menu_item(db, entry["menu_item_id"])
            if menu_item is None:
                logger.info("skipping unknown menu item menu_item_id=%s order_id=%s", entry["menu_item_id"], order.id)
                continue
            order_item = OrderItem(
                order_id=order.id,
                menu_item_id=menu_item.id,
                quantity=entry["quantity"],
                notes=entry["notes"],
                status=OrderItemStatus.QUEUED,
                price=to_money(menu_item.price),
            )
            db.add(order_item)
            created_items.append(order_item)

        order.recompute_total(created_items)
        table.status = TableStatus.OCCUPIED
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("order created order_id=%s table_id=%s items=%s", order.id, table.id, len(created_items))
    hydrated = storage.get_order_with_items(db, order.id)
    emit_order_created(hydrated)
    return hydrated


def get_order(db: Session, order_id: int) -> Order:
    order = storage.get_order_with_items(db, order_id)
    if order is None:
        raise NotFoundError("Order not found")
    return order


def confirm_order(db: Session, order_id: int) -> Order:
    order = storage.get_order(db, order_id)
    if order is None:
        raise NotFoundError("Order not found")
    if order.is_terminal:
        raise InvalidStateError(f"Order is already {order.status.value}")

    try:
        order.status = OrderStatus.CONFIRMED
        db.commit()
    except Exception:
        db.rollback()
        raise

    hydrated = storage.get_order_with_items(db, order.id)
    emit_order_confirmed(hydrated)
    return hydrated


def _get_item_in_order(db: Session, order_id: int, item_id: int) -> OrderItem:
    item = storage.get_order_item(db, item_id)
    if item is None or item.order_id != order_id:
        raise NotFoundError("Order item not found")
    return item


def update_order_item_status(
    db: Session,
    order_id: int,
    item_id: int,
    new_status: OrderItemStatus,
) -> OrderItem:
    """Overwrites an item's status. Any enum value is accepted so staff can correct mistakes."""
    new_status = OrderItemStatus(new_status)
    item = _get_item_in_order(db, order_id, item_id)

    try:
        item.status = new_status
        if new_status == OrderItemStatus.PREPARING and item.started_preparing_at is None:
            item.started_preparing_at = utcnow()
        db.commit()
    except Exception:
        db.rollback()
        raise

    order = storage.get_order_with_items(db, order_id)
    emit_order_item_status_updated(item, order)
    if new_status == OrderItemStatus.READY and all_items_settled(order):
        logger.info("order ready for pickup order_id=%s", order.id)
        emit_order_ready(order)
    return item


def cancel_order_item(db: Session, order_id: int, item_id: int) -> OrderItem:
    """Cancels a queued item and shrinks the order total accordingly."""
    try:
        # Row lock on the order serializes concurrent cancellations of sibling items
        order = storage.get_order(db, order_id, for_update=True)
        if order is None:
            raise NotFoundError("Order not found")
        item = _get_item_in_order(db, order_id, item_id)
        if item.status not in CANCELLABLE_ITEM_STATUSES:
            raise InvalidStateError("Cannot cancel item that is already being prepared or delivered")

        item.status = OrderItemStatus.CANCELLED
        db.flush()

        order.recompute_total(storage.list_order_items(db, order.id))
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("order item cancelled order_id=%s item_id=%s total=%s", order.id, item.id, order.total)
    hydrated = storage.get_order_with_items(db, order.id)
    emit_order_item_cancelled(hydrated)
    return item

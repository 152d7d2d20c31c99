"""Typed lookups and queries over the relational store.

Nothing here commits: callers own the unit of work and decide when to
flush, commit or roll back.
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session, joinedload, selectinload

from tableside.models.dish_review import DishReview
from tableside.models.menu_item import MenuItem
from tableside.models.order import Order, OrderStatus, TERMINAL_ORDER_STATUSES
from tableside.models.order_item import OrderItem
from tableside.models.payment import BillShare, Payment
from tableside.models.reservation import Reservation
from tableside.models.table import DiningTable, TableStatus
from tableside.models.waiter_call import WaiterCall


def _hydrated_orders(db: Session):
    return db.query(Order).options(
        selectinload(Order.order_items).joinedload(OrderItem.menu_item),
        joinedload(Order.table),
    )


# Tables

def get_table(db: Session, table_id: int) -> Optional[DiningTable]:
    return db.query(DiningTable).filter(DiningTable.id == table_id).first()


def get_table_by_qr_code(db: Session, qr_code: str) -> Optional[DiningTable]:
    return db.query(DiningTable).filter(DiningTable.qr_code == qr_code).first()


def list_tables(db: Session, organization_id: Optional[int] = None) -> List[DiningTable]:
    query = db.query(DiningTable)
    if organization_id is not None:
        query = query.filter(DiningTable.organization_id == organization_id)
    return query.order_by(DiningTable.number.asc(), DiningTable.id.asc()).all()


def list_occupied_tables(db: Session) -> List[DiningTable]:
    return (
        db.query(DiningTable)
        .filter(DiningTable.status == TableStatus.OCCUPIED)
        .order_by(DiningTable.number.asc())
        .all()
    )


def count_orders_for_table(db: Session, table_id: int) -> int:
    return db.query(Order).filter(Order.table_id == table_id).count()


# Menu

def get_menu_item(db: Session, menu_item_id: int) -> Optional[MenuItem]:
    return db.query(MenuItem).filter(MenuItem.id == menu_item_id).first()


def list_menu_items(
    db: Session,
    organization_id: Optional[int] = None,
    available_only: bool = False,
) -> List[MenuItem]:
    query = db.query(MenuItem)
    if organization_id is not None:
        query = query.filter(MenuItem.organization_id == organization_id)
    if available_only:
        query = query.filter(MenuItem.available.is_(True))
    return query.order_by(MenuItem.category.asc(), MenuItem.name.asc()).all()


def count_order_items_for_menu_item(db: Session, menu_item_id: int) -> int:
    return db.query(OrderItem).filter(OrderItem.menu_item_id == menu_item_id).count()


# Orders

def get_order(db: Session, order_id: int, *, for_update: bool = False) -> Optional[Order]:
    query = db.query(Order).filter(Order.id == order_id)
    if for_update:
        query = query.with_for_update().populate_existing()
    return query.first()


def get_order_with_items(db: Session, order_id: int) -> Optional[Order]:
    return _hydrated_orders(db).filter(Order.id == order_id).populate_existing().first()


def list_orders(db: Session) -> List[Order]:
    return _hydrated_orders(db).order_by(desc(Order.created_at), desc(Order.id)).all()


def list_orders_by_status(db: Session, status: OrderStatus) -> List[Order]:
    return (
        _hydrated_orders(db)
        .filter(Order.status == status)
        .order_by(desc(Order.created_at), desc(Order.id))
        .all()
    )


def list_orders_for_table(
    db: Session,
    table_id: int,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> List[Order]:
    query = (
        _hydrated_orders(db)
        .filter(Order.table_id == table_id)
        .order_by(desc(Order.created_at), desc(Order.id))
    )
    if offset:
        query = query.offset(offset)
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def list_active_orders_for_table(db: Session, table_id: int) -> List[Order]:
    return (
        _hydrated_orders(db)
        .filter(Order.table_id == table_id, Order.status.notin_(TERMINAL_ORDER_STATUSES))
        .order_by(Order.created_at.asc(), Order.id.asc())
        .all()
    )


def get_order_item(db: Session, item_id: int) -> Optional[OrderItem]:
    return db.query(OrderItem).filter(OrderItem.id == item_id).first()


def list_order_items(db: Session, order_id: int) -> List[OrderItem]:
    return (
        db.query(OrderItem)
        .filter(OrderItem.order_id == order_id)
        .order_by(OrderItem.id.asc())
        .populate_existing()
        .all()
    )


# Payments

def get_payment(db: Session, payment_id: int) -> Optional[Payment]:
    return db.query(Payment).filter(Payment.id == payment_id).first()


def lock_payment(db: Session, payment_id: int) -> Optional[Payment]:
    """Loads the payment row with SELECT ... FOR UPDATE where the dialect supports it."""
    return (
        db.query(Payment)
        .filter(Payment.id == payment_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


def get_payment_for_order(db: Session, order_id: int) -> Optional[Payment]:
    return db.query(Payment).filter(Payment.order_id == order_id).first()


def list_payments(db: Session) -> List[Payment]:
    return db.query(Payment).order_by(desc(Payment.created_at), desc(Payment.id)).all()


def list_payments_between(db: Session, start: datetime, end: datetime) -> List[Payment]:
    return (
        db.query(Payment)
        .filter(Payment.created_at >= start, Payment.created_at <= end)
        .order_by(Payment.created_at.asc())
        .all()
    )


def get_bill_share(db: Session, share_id: int, *, for_update: bool = False) -> Optional[BillShare]:
    query = db.query(BillShare).filter(BillShare.id == share_id)
    if for_update:
        query = query.with_for_update().populate_existing()
    return query.first()


def list_bill_shares(db: Session, payment_id: int) -> List[BillShare]:
    return (
        db.query(BillShare)
        .filter(BillShare.payment_id == payment_id)
        .order_by(BillShare.id.asc())
        .populate_existing()
        .all()
    )


# Waiter calls, reservations, reviews

def get_waiter_call(db: Session, call_id: int) -> Optional[WaiterCall]:
    return db.query(WaiterCall).filter(WaiterCall.id == call_id).first()


def list_open_waiter_calls(db: Session) -> List[WaiterCall]:
    return (
        db.query(WaiterCall)
        .filter(WaiterCall.resolved.is_(False))
        .order_by(WaiterCall.created_at.asc(), WaiterCall.id.asc())
        .all()
    )


def get_reservation(db: Session, reservation_id: int) -> Optional[Reservation]:
    return db.query(Reservation).filter(Reservation.id == reservation_id).first()


def list_reservations(
    db: Session,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> List[Reservation]:
    query = db.query(Reservation)
    if start is not None:
        query = query.filter(Reservation.reservation_time >= start)
    if end is not None:
        query = query.filter(Reservation.reservation_time < end)
    return query.order_by(Reservation.reservation_time.asc(), Reservation.id.asc()).all()


def list_reviews_for_menu_item(db: Session, menu_item_id: int) -> List[DishReview]:
    return (
        db.query(DishReview)
        .filter(DishReview.menu_item_id == menu_item_id)
        .order_by(desc(DishReview.created_at), desc(DishReview.id))
        .all()
    )

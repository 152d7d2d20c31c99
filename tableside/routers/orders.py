from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import Field
from sqlalchemy.orm import Session

from tableside.core.database import get_db
from tableside.models.order import OrderStatus
from tableside.models.order_item import OrderItemStatus
from tableside.schemas.base import CamelModel
from tableside.services import orders as order_service
from tableside.services import storage
from tableside.services.serializers import order_item_to_dict, order_to_dict

router = APIRouter(prefix="/api", tags=["orders"])


class OrderItemCreate(CamelModel):
    menu_item_id: int
    quantity: int = Field(1, ge=1)
    notes: Optional[str] = None


class OrderCreate(CamelModel):
    table_id: int
    items: List[OrderItemCreate] = Field(..., min_length=1)


class ItemStatusUpdate(CamelModel):
    status: OrderItemStatus


@router.get("/orders")
def list_orders(db: Session = Depends(get_db)):
    return [order_to_dict(order) for order in storage.list_orders(db)]


@router.get("/orders/status/{status}")
def list_orders_by_status(status: OrderStatus, db: Session = Depends(get_db)):
    return [order_to_dict(order) for order in storage.list_orders_by_status(db, status)]


@router.post("/orders", status_code=201)
def create_order(payload: OrderCreate, db: Session = Depends(get_db)):
    order = order_service.create_order(
        db,
        table_id=payload.table_id,
        items=[item.model_dump() for item in payload.items],
    )
    return order_to_dict(order)


@router.get("/orders/{order_id}")
def get_order(order_id: int, db: Session = Depends(get_db)):
    return order_to_dict(order_service.get_order(db, order_id))


@router.patch("/orders/{order_id}/confirm")
def confirm_order(order_id: int, db: Session = Depends(get_db)):
    return order_to_dict(order_service.confirm_order(db, order_id))


@router.patch("/orders/{order_id}/items/{item_id}/status")
def update_item_status(
    order_id: int,
    item_id: int,
    body: ItemStatusUpdate,
    db: Session = Depends(get_db),
):
    item = order_service.update_order_item_status(db, order_id=order_id, item_id=item_id, new_status=body.status)
    return order_item_to_dict(item)


@router.patch("/orders/{order_id}/items/{item_id}/cancel")
def cancel_item(order_id: int, item_id: int, db: Session = Depends(get_db)):
    item = order_service.cancel_order_item(db, order_id=order_id, item_id=item_id)
    return order_item_to_dict(item)

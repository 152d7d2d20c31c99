from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from pydantic import Field
from sqlalchemy.orm import Session

from tableside.core.database import get_db
from tableside.core.errors import InvalidStateError, NotFoundError, ValidationFailure
from tableside.models.menu_item import MenuCategory, MenuItem
from tableside.models.types import to_money
from tableside.schemas.base import CamelModel
from tableside.services import storage
from tableside.services.broadcaster import broadcaster
from tableside.services.serializers import menu_item_to_dict

router = APIRouter(prefix="/api", tags=["menu"])


class MenuItemCreate(CamelModel):
    name: str = Field(..., min_length=1)
    category: MenuCategory
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    description: str = ""
    image_url: str = ""
    available: bool = True
    preparation_time_minutes: int = Field(15, ge=1)
    organization_id: Optional[int] = None


class MenuItemUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1)
    category: Optional[MenuCategory] = None
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    description: Optional[str] = None
    image_url: Optional[str] = None
    available: Optional[bool] = None
    preparation_time_minutes: Optional[int] = Field(None, ge=1)


def _get_menu_item_or_404(db: Session, menu_item_id: int) -> MenuItem:
    item = storage.get_menu_item(db, menu_item_id)
    if item is None:
        raise NotFoundError("Menu item not found")
    return item


@router.get("/menu")
def list_menu(
    organization_id: Optional[int] = Query(None, alias="organizationId"),
    available_only: bool = Query(False, alias="availableOnly"),
    db: Session = Depends(get_db),
):
    items = storage.list_menu_items(db, organization_id=organization_id, available_only=available_only)
    return [menu_item_to_dict(item) for item in items]


@router.post("/menu", status_code=201)
def create_menu_item(payload: MenuItemCreate, db: Session = Depends(get_db)):
    item = MenuItem(
        organization_id=payload.organization_id,
        name=payload.name.strip(),
        category=payload.category,
        price=to_money(payload.price),
        description=payload.description,
        image_url=payload.image_url,
        available=payload.available,
        preparation_time_minutes=payload.preparation_time_minutes,
    )
    try:
        db.add(item)
        db.commit()
    except Exception:
        db.rollback()
        raise

    data = menu_item_to_dict(item)
    broadcaster.broadcast("menu_item_created", data)
    return data


@router.patch("/menu/{menu_item_id}")
def update_menu_item(menu_item_id: int, payload: MenuItemUpdate, db: Session = Depends(get_db)):
    item = _get_menu_item_or_404(db, menu_item_id)
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationFailure("No fields to update")
    if "name" in changes and changes["name"] is not None:
        changes["name"] = changes["name"].strip()
    if changes.get("price") is not None:
        # Existing order items keep the price they were ordered at
        changes["price"] = to_money(changes["price"])

    try:
        for field, value in changes.items():
            if value is None:
                continue
            setattr(item, field, value)
        db.commit()
    except Exception:
        db.rollback()
        raise

    data = menu_item_to_dict(item)
    broadcaster.broadcast("menu_item_updated", data)
    return data


@router.delete("/menu/{menu_item_id}", status_code=204)
def delete_menu_item(menu_item_id: int, db: Session = Depends(get_db)):
    item = _get_menu_item_or_404(db, menu_item_id)
    if storage.count_order_items_for_menu_item(db, item.id):
        raise InvalidStateError("Cannot delete a menu item that has been ordered; mark it unavailable instead")
    try:
        db.delete(item)
        db.commit()
    except Exception:
        db.rollback()
        raise

    broadcaster.broadcast("menu_item_deleted", {"id": menu_item_id})
    return Response(status_code=204)

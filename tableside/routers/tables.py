import secrets
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from pydantic import Field
from sqlalchemy.orm import Session

from tableside.core.database import get_db
from tableside.core.errors import InvalidStateError, NotFoundError, ValidationFailure
from tableside.models.table import DiningTable, TableStatus
from tableside.schemas.base import CamelModel
from tableside.services import storage
from tableside.services.broadcaster import broadcaster
from tableside.services.serializers import order_to_dict, table_to_dict

router = APIRouter(prefix="/api", tags=["tables"])


class TableCreate(CamelModel):
    number: int = Field(..., ge=1)
    capacity: int = Field(4, ge=1)
    status: TableStatus = TableStatus.FREE
    qr_code: Optional[str] = None
    organization_id: Optional[int] = None


class TableStatusUpdate(CamelModel):
    status: TableStatus


def _get_table_or_404(db: Session, table_id: int) -> DiningTable:
    table = storage.get_table(db, table_id)
    if table is None:
        raise NotFoundError("Table not found")
    return table


@router.get("/tables")
def list_tables(
    organization_id: Optional[int] = Query(None, alias="organizationId"),
    db: Session = Depends(get_db),
):
    return [table_to_dict(table) for table in storage.list_tables(db, organization_id=organization_id)]


@router.get("/tables/occupied")
def list_occupied_tables(db: Session = Depends(get_db)):
    result = []
    for table in storage.list_occupied_tables(db):
        payload = table_to_dict(table)
        payload["orders"] = [order_to_dict(order) for order in storage.list_active_orders_for_table(db, table.id)]
        result.append(payload)
    return result


@router.get("/tables/{table_id}")
def get_table(table_id: int, db: Session = Depends(get_db)):
    return table_to_dict(_get_table_or_404(db, table_id))


@router.get("/tables/{table_id}/orders")
def list_table_orders(
    table_id: int,
    limit: Optional[int] = Query(None, ge=1),
    offset: Optional[int] = Query(None, ge=0),
    db: Session = Depends(get_db),
):
    _get_table_or_404(db, table_id)
    orders = storage.list_orders_for_table(db, table_id, limit=limit, offset=offset)
    return [order_to_dict(order) for order in orders]


@router.post("/tables", status_code=201)
def create_table(payload: TableCreate, db: Session = Depends(get_db)):
    qr_code = (payload.qr_code or "").strip() or secrets.token_urlsafe(16)
    if storage.get_table_by_qr_code(db, qr_code) is not None:
        raise ValidationFailure("QR code already assigned to another table")

    table = DiningTable(
        organization_id=payload.organization_id,
        number=payload.number,
        capacity=payload.capacity,
        status=payload.status,
        qr_code=qr_code,
    )
    try:
        db.add(table)
        db.commit()
    except Exception:
        db.rollback()
        raise

    data = table_to_dict(table)
    broadcaster.broadcast("table_created", data)
    return data


@router.patch("/tables/{table_id}")
def update_table_status(table_id: int, body: TableStatusUpdate, db: Session = Depends(get_db)):
    table = _get_table_or_404(db, table_id)
    try:
        table.status = body.status
        db.commit()
    except Exception:
        db.rollback()
        raise

    data = table_to_dict(table)
    broadcaster.broadcast("table_updated", data)
    return data


@router.delete("/tables/{table_id}", status_code=204)
def delete_table(table_id: int, db: Session = Depends(get_db)):
    table = _get_table_or_404(db, table_id)
    if storage.count_orders_for_table(db, table.id):
        raise InvalidStateError("Cannot delete a table that has orders")
    try:
        db.delete(table)
        db.commit()
    except Exception:
        db.rollback()
        raise

    broadcaster.broadcast("table_deleted", {"id": table_id})
    return Response(status_code=204)

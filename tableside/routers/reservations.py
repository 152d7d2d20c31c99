from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Response
from pydantic import Field, field_validator
from sqlalchemy.orm import Session

from tableside.core.database import get_db
from tableside.core.errors import NotFoundError
from tableside.models.reservation import Reservation, ReservationStatus
from tableside.schemas.base import CamelModel
from tableside.services import storage
from tableside.services.broadcaster import broadcaster
from tableside.services.serializers import reservation_to_dict

router = APIRouter(prefix="/api", tags=["reservations"])


class ReservationCreate(CamelModel):
    table_id: int
    customer_name: str = Field(..., min_length=1)
    customer_phone: Optional[str] = None
    guest_count: int = Field(..., ge=1)
    reservation_time: datetime
    notes: Optional[str] = None

    @field_validator("customer_name")
    @classmethod
    def strip_customer_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Customer name is required")
        return value


class ReservationStatusUpdate(CamelModel):
    status: ReservationStatus


def _get_reservation_or_404(db: Session, reservation_id: int) -> Reservation:
    reservation = storage.get_reservation(db, reservation_id)
    if reservation is None:
        raise NotFoundError("Reservation not found")
    return reservation


@router.get("/reservations")
def list_reservations(db: Session = Depends(get_db)):
    return [reservation_to_dict(reservation) for reservation in storage.list_reservations(db)]


@router.get("/reservations/date/{day}")
def list_reservations_by_date(day: date, db: Session = Depends(get_db)):
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    end = start + timedelta(days=1)
    return [reservation_to_dict(reservation) for reservation in storage.list_reservations(db, start=start, end=end)]


@router.post("/reservations", status_code=201)
def create_reservation(payload: ReservationCreate, db: Session = Depends(get_db)):
    if storage.get_table(db, payload.table_id) is None:
        raise NotFoundError("Table not found")

    reservation = Reservation(
        table_id=payload.table_id,
        customer_name=payload.customer_name,
        customer_phone=payload.customer_phone,
        guest_count=payload.guest_count,
        reservation_time=payload.reservation_time,
        status=ReservationStatus.CONFIRMED,
        notes=payload.notes,
    )
    try:
        db.add(reservation)
        db.commit()
    except Exception:
        db.rollback()
        raise

    data = reservation_to_dict(reservation)
    broadcaster.broadcast("reservation_created", data)
    return data


@router.patch("/reservations/{reservation_id}/status")
def update_reservation_status(
    reservation_id: int,
    body: ReservationStatusUpdate,
    db: Session = Depends(get_db),
):
    reservation = _get_reservation_or_404(db, reservation_id)
    try:
        reservation.status = body.status
        db.commit()
    except Exception:
        db.rollback()
        raise

    data = reservation_to_dict(reservation)
    broadcaster.broadcast("reservation_updated", data)
    return data


@router.delete("/reservations/{reservation_id}", status_code=204)
def delete_reservation(reservation_id: int, db: Session = Depends(get_db)):
    reservation = _get_reservation_or_404(db, reservation_id)
    try:
        db.delete(reservation)
        db.commit()
    except Exception:
        db.rollback()
        raise

    broadcaster.broadcast("reservation_deleted", {"id": reservation_id})
    return Response(status_code=204)

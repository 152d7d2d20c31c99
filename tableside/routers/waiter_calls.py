from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from tableside.core.database import get_db
from tableside.core.errors import NotFoundError
from tableside.models.waiter_call import WaiterCall
from tableside.schemas.base import CamelModel
from tableside.services import storage
from tableside.services.broadcaster import broadcaster
from tableside.services.serializers import waiter_call_to_dict

router = APIRouter(prefix="/api", tags=["waiter-calls"])


class WaiterCallCreate(CamelModel):
    table_id: int
    reason: Optional[str] = None


@router.get("/waiter-calls")
def list_waiter_calls(db: Session = Depends(get_db)):
    return [waiter_call_to_dict(call) for call in storage.list_open_waiter_calls(db)]


@router.post("/waiter-calls", status_code=201)
def create_waiter_call(payload: WaiterCallCreate, db: Session = Depends(get_db)):
    if storage.get_table(db, payload.table_id) is None:
        raise NotFoundError("Table not found")

    call = WaiterCall(table_id=payload.table_id, reason=(payload.reason or "").strip() or None)
    try:
        db.add(call)
        db.commit()
    except Exception:
        db.rollback()
        raise

    data = waiter_call_to_dict(call)
    broadcaster.broadcast("waiter_called", data)
    return data


@router.patch("/waiter-calls/{call_id}/resolve")
def resolve_waiter_call(call_id: int, db: Session = Depends(get_db)):
    call = storage.get_waiter_call(db, call_id)
    if call is None:
        # Already gone; staff terminals may race on the same call
        return {"success": True}

    try:
        call.resolved = True
        db.commit()
    except Exception:
        db.rollback()
        raise

    broadcaster.broadcast("waiter_call_resolved", {"id": call_id})
    return {"success": True}

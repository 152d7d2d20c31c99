from typing import Any, List

from fastapi import APIRouter, Depends
from pydantic import Field
from sqlalchemy.orm import Session

from tableside.core.database import get_db
from tableside.models.payment import PaymentMethod
from tableside.schemas.base import CamelModel
from tableside.services import settlement, storage
from tableside.services.serializers import bill_share_to_dict, payment_to_dict

router = APIRouter(prefix="/api", tags=["payments"])


class PaymentCreate(CamelModel):
    order_id: int
    table_id: int
    amount: Any
    method: PaymentMethod


class BillShareIn(CamelModel):
    # Checked by the settlement service so errors name the share index
    customer_name: Any = None
    amount: Any = None


class SplitBillCreate(CamelModel):
    order_id: int
    table_id: int
    method: PaymentMethod
    shares: List[BillShareIn] = Field(default_factory=list)


@router.post("/payments", status_code=201)
def record_payment(payload: PaymentCreate, db: Session = Depends(get_db)):
    payment = settlement.record_payment(
        db,
        order_id=payload.order_id,
        table_id=payload.table_id,
        amount=payload.amount,
        method=payload.method,
    )
    return payment_to_dict(payment)


@router.get("/payments/history")
def payment_history(db: Session = Depends(get_db)):
    return [payment_to_dict(payment) for payment in storage.list_payments(db)]


@router.post("/split-bill", status_code=201)
def create_split_bill(payload: SplitBillCreate, db: Session = Depends(get_db)):
    payment, shares = settlement.create_split_bill(
        db,
        order_id=payload.order_id,
        table_id=payload.table_id,
        method=payload.method,
        shares=[share.model_dump() for share in payload.shares],
    )
    return {
        "payment": payment_to_dict(payment),
        "shares": [bill_share_to_dict(share) for share in shares],
    }


@router.get("/bill-shares/payment/{payment_id}")
def list_bill_shares(payment_id: int, db: Session = Depends(get_db)):
    return [bill_share_to_dict(share) for share in settlement.list_bill_shares(db, payment_id)]


@router.patch("/bill-shares/{share_id}/paid")
def mark_share_paid(share_id: int, db: Session = Depends(get_db)):
    result = settlement.mark_share_as_paid(db, share_id)
    return {
        "success": True,
        "share": bill_share_to_dict(result.share),
        "allPaid": result.all_paid,
        "completed": result.completed,
    }

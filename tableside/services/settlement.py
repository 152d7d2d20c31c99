"""Payment recording and split-bill settlement.

Split bills anchor every share on one Payment row. The order is only
completed (and its table freed) once every share is paid, and that check
runs in the same transaction as the flag flip that can satisfy it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tableside.core.config import SPLIT_BILL_TOLERANCE
from tableside.core.errors import IntegrityFailure, InvalidStateError, NotFoundError, ValidationFailure
from tableside.models.order import Order, OrderStatus
from tableside.models.payment import BillShare, Payment, PaymentMethod
from tableside.models.table import TableStatus
from tableside.models.types import MAX_MONEY, to_money
from tableside.services import storage
from tableside.services.order_events import emit_payment_processed, emit_split_bill_completed

logger = logging.getLogger(__name__)

DUPLICATE_PAYMENT_MESSAGE = "Payment already recorded for this order"


@dataclass
class ShareSettlement:
    share: BillShare
    all_paid: bool
    completed: bool


def _integrity_failure(message: str, **context) -> IntegrityFailure:
    logger.error("data integrity anomaly: %s context=%s", message, context)
    return IntegrityFailure(message)


def _parse_amount(raw) -> Optional[Decimal]:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        amount = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount


def _money_amount(raw, prefix: str = "") -> Decimal:
    amount = _parse_amount(raw)
    if amount is None or amount <= 0:
        raise ValidationFailure(f"{prefix}Amount must be positive")
    if amount > MAX_MONEY:
        raise ValidationFailure(f"{prefix}Amount must not exceed {MAX_MONEY}")
    amount = to_money(amount)
    # Sub-cent inputs round down to zero
    if amount <= 0:
        raise ValidationFailure(f"{prefix}Amount must be positive")
    return amount


def _ensure_payable(db: Session, order: Order, table_id: int) -> None:
    if order.table_id != table_id:
        raise ValidationFailure("Order does not belong to this table")
    if storage.get_payment_for_order(db, order.id) is not None:
        raise InvalidStateError(DUPLICATE_PAYMENT_MESSAGE)


def record_payment(
    db: Session,
    order_id: int,
    table_id: int,
    amount,
    method: PaymentMethod,
) -> Payment:
    """Records a single (non-split) payment, completing the order and freeing the table."""
    method = PaymentMethod(method)
    parsed_amount = _money_amount(amount)

    try:
        order = storage.get_order(db, order_id, for_update=True)
        if order is None:
            raise NotFoundError("Order not found")
        if order.is_terminal:
            raise InvalidStateError(f"Order is already {order.status.value}")
        _ensure_payable(db, order, table_id)

        table = storage.get_table(db, order.table_id)
        if table is None:
            raise _integrity_failure("Order references a missing table", order_id=order.id, table_id=order.table_id)

        payment = Payment(
            order_id=order.id,
            table_id=table.id,
            amount=parsed_amount,
            method=method,
        )
        db.add(payment)
        order.status = OrderStatus.COMPLETED
        table.status = TableStatus.FREE
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise InvalidStateError(DUPLICATE_PAYMENT_MESSAGE) from exc
    except Exception:
        db.rollback()
        raise

    logger.info("payment recorded payment_id=%s order_id=%s amount=%s", payment.id, payment.order_id, payment.amount)
    emit_payment_processed(payment, is_split_bill=False)
    return payment


def _validate_shares(shares: List[dict]) -> List[Tuple[str, Decimal]]:
    validated: List[Tuple[str, Decimal]] = []
    for index, share in enumerate(shares, start=1):
        customer_name = share.get("customer_name")
        customer_name = customer_name.strip() if isinstance(customer_name, str) else ""
        if not customer_name:
            raise ValidationFailure(f"Share {index}: Customer name is required")
        amount = _money_amount(share.get("amount"), prefix=f"Share {index}: ")
        validated.append((customer_name, amount))
    return validated


def create_split_bill(
    db: Session,
    order_id: int,
    table_id: int,
    method: PaymentMethod,
    shares: Iterable[dict],
) -> Tuple[Payment, List[BillShare]]:
    """Creates one Payment and its unpaid BillShares atomically.

    The order's stored total is authoritative: shares must add up to it
    within SPLIT_BILL_TOLERANCE. Nothing is broadcast until settlement.
    """
    method = PaymentMethod(method)
    shares = list(shares or [])

    try:
        order = storage.get_order(db, order_id, for_update=True)
        if order is None:
            raise NotFoundError("Order not found")
        if order.status != OrderStatus.CONFIRMED:
            raise InvalidStateError("Order must be confirmed to create split bill")
        if not shares:
            raise ValidationFailure("At least one bill share is required")

        authoritative_total = to_money(order.total)
        validated = _validate_shares(shares)

        shares_total = sum((amount for _, amount in validated), Decimal("0.00"))
        if abs(shares_total - authoritative_total) > SPLIT_BILL_TOLERANCE:
            raise ValidationFailure(
                f"Shares total (${shares_total:.2f}) must equal order total (${authoritative_total:.2f})"
            )

        _ensure_payable(db, order, table_id)

        payment = Payment(
            order_id=order.id,
            table_id=order.table_id,
            amount=authoritative_total,
            method=method,
        )
        db.add(payment)
        db.flush()

        created_shares: List[BillShare] = []
        for customer_name, amount in validated:
            share = BillShare(payment_id=payment.id, customer_name=customer_name, amount=amount, paid=False)
            db.add(share)
            created_shares.append(share)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise InvalidStateError(DUPLICATE_PAYMENT_MESSAGE) from exc
    except Exception:
        db.rollback()
        raise

    logger.info(
        "split bill created payment_id=%s order_id=%s shares=%s",
        payment.id,
        payment.order_id,
        len(created_shares),
    )
    return payment, created_shares


def mark_share_as_paid(db: Session, share_id: int) -> ShareSettlement:
    """Marks one share paid; the last one completes the order and frees the table.

    The payment row is locked before the flag flip so concurrent calls for
    sibling shares run one after the other and only the call that pays the
    last share observes "all paid". Re-marking an already paid share
    changes nothing.
    """
    completion: Optional[Tuple[int, int, int]] = None
    try:
        share = storage.get_bill_share(db, share_id, for_update=True)
        if share is None:
            raise NotFoundError("Share not found")

        payment = storage.lock_payment(db, share.payment_id)
        if payment is None or not payment.order_id or not payment.table_id:
            raise _integrity_failure(
                "Payment not found or missing order/table reference",
                share_id=share.id,
                payment_id=share.payment_id,
            )

        if share.paid:
            db.rollback()
            return ShareSettlement(share=share, all_paid=_all_paid(db, payment.id), completed=False)

        share.paid = True
        db.flush()

        all_paid = _all_paid(db, payment.id)
        if all_paid:
            order = storage.get_order(db, payment.order_id, for_update=True)
            table = storage.get_table(db, payment.table_id)
            if order is None or table is None:
                raise _integrity_failure(
                    "Payment not found or missing order/table reference",
                    payment_id=payment.id,
                    order_id=payment.order_id,
                    table_id=payment.table_id,
                )
            order.status = OrderStatus.COMPLETED
            table.status = TableStatus.FREE
            completion = (payment.id, order.id, table.id)

        db.commit()
    except Exception:
        db.rollback()
        raise

    if completion is not None:
        logger.info("split bill settled payment_id=%s order_id=%s table_id=%s", *completion)
        emit_split_bill_completed(*completion)
    return ShareSettlement(share=share, all_paid=all_paid, completed=completion is not None)


def _all_paid(db: Session, payment_id: int) -> bool:
    return all(share.paid for share in storage.list_bill_shares(db, payment_id))


def list_bill_shares(db: Session, payment_id: int) -> List[BillShare]:
    if storage.get_payment(db, payment_id) is None:
        raise NotFoundError("Payment not found")
    return storage.list_bill_shares(db, payment_id)

from __future__ import annotations

import enum
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Type

from sqlalchemy import Enum, Numeric

CENT = Decimal("0.01")
# Largest value a Numeric(10, 2) column holds
MAX_MONEY = Decimal("99999999.99")

# Fixed-point money columns, 2 places
Money = Numeric(10, 2, asdecimal=True)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_money(value) -> Decimal:
    if isinstance(value, Decimal):
        amount = value
    else:
        amount = Decimal(str(value if value is not None else 0))
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def status_column_type(enum_cls: Type[enum.Enum], name: str) -> Enum:
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        length=32,
        validate_strings=True,
        values_callable=lambda members: [member.value for member in members],
    )

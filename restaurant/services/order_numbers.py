import secrets
from datetime import datetime
from typing import Optional
from sqlalchemy import select
from sqlalchemy.orm import Session
from restaurant.core.errors import ConflictError
from restaurant.db.models import Order, now_utc

MAX_ATTEMPTS = 5

def generate_order_number(now: Optional[datetime] = None) -> str:
    """``ORD-20260117-9F3A01BC``: date plus 32 random bits."""
    stamp = (now or now_utc()).strftime('%Y%m%d')
    return f"ORD-{stamp}-{secrets.token_hex(4).upper()}"

def allocate_order_number(db: Session) -> str:
    # the unique constraint on orders.order_number is the final guard
    for _ in range(MAX_ATTEMPTS):
        candidate = generate_order_number()
        taken = db.execute(select(Order.id).where(Order.order_number == candidate)).first()
        if not taken:
            return candidate
    raise ConflictError("Could not allocate a unique order number")

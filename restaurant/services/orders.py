"""Order workflow: placement, payment initiation, payment reconciliation and
administrative status changes.

Prices always come from ``menu_items``; anything a client sends as a price is
never read. The order header and its line items are written in one
transaction, so a failed item insert leaves no header behind.

Reconciliation is keyed by any reference issued for the order (see
``payment_attempts``) and is idempotent: gateway webhooks are delivered at
least once and may race a pull-verify, so replaying an event must not produce
a second transition.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional, Tuple
import json
import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from restaurant.core.errors import (
    AuthorizationError,
    ConflictError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from restaurant.db.models import (
    Address,
    MenuItem,
    Order,
    OrderItem,
    OrderStatus,
    PaymentAttempt,
    PaymentStatus,
    User,
    now_utc,
)
from restaurant.schemas import OrderCreate, OrderItemIn
from restaurant.services import pricing
from restaurant.services.order_numbers import allocate_order_number
from restaurant.services.paystack import InitializedTransaction, PaystackClient, to_minor_units

logger = logging.getLogger(__name__)

ORDER_NOT_FOUND = "Order not found."
TERMINAL_STATUSES = {OrderStatus.COMPLETED, OrderStatus.CANCELLED}
PAYABLE_STATUSES = {OrderStatus.PENDING, OrderStatus.PAYMENT_PENDING}

# webhook event name -> gateway transaction status
EVENT_STATUS = {
    "charge.success": "success",
    "charge.failed": "failed",
    "refund.processed": "reversed",
}


@dataclass
class PricedLine:
    request: OrderItemIn
    menu_item: MenuItem

    @property
    def unit_price(self) -> Decimal:
        return self.menu_item.price

    @property
    def line_total(self) -> Decimal:
        return self.menu_item.price * self.request.quantity


@dataclass
class PricedOrder:
    lines: List[PricedLine]
    subtotal: Decimal
    delivery_fee: Decimal
    address: Optional[Address] = None

    @property
    def total_amount(self) -> Decimal:
        return self.subtotal + self.delivery_fee


@dataclass
class ReconcileResult:
    order: Order
    changed: bool
    previous: Tuple[PaymentStatus, OrderStatus]


# --- pricing ---

def _resolve_menu_items(db: Session, lines: List[OrderItemIn], reject_unavailable: bool) -> Dict[int, MenuItem]:
    ids = {line.id for line in lines}
    rows = db.execute(select(MenuItem).where(MenuItem.id.in_(ids))).scalars().all()
    found = {m.id: m for m in rows}
    missing = sorted(ids - found.keys())
    if missing:
        raise ValidationError(f"Unknown menu item id(s): {', '.join(str(i) for i in missing)}")
    if reject_unavailable:
        unavailable = sorted(m.id for m in rows if not m.is_available)
        if unavailable:
            raise ValidationError(f"Menu item(s) not available: {', '.join(str(i) for i in unavailable)}")
    return found


def _resolve_address(db: Session, user: User, address_id: int) -> Address:
    stmt = select(Address).where(Address.id == address_id, Address.user_id == user.id)
    address = db.execute(stmt).scalar_one_or_none()
    if not address:
        raise NotFoundError("Address not found.")
    return address


def price_order(db: Session, user: User, payload: OrderCreate, reject_unavailable: bool = True) -> PricedOrder:
    """Validate an order request and compute its authoritative totals."""
    if not payload.items:
        raise ValidationError("Order must contain items.")
    if not payload.is_pickup and payload.address_id is None:
        raise ValidationError("Address ID is required for delivery.")

    menu = _resolve_menu_items(db, payload.items, reject_unavailable)
    lines = [PricedLine(request=line, menu_item=menu[line.id]) for line in payload.items]
    subtotal = sum((line.line_total for line in lines), Decimal("0")).quantize(pricing.CENT)

    if payload.is_pickup:
        return PricedOrder(lines=lines, subtotal=subtotal, delivery_fee=pricing.ZERO)

    address = _resolve_address(db, user, payload.address_id)
    fee = pricing.delivery_fee(address.city, subtotal)
    return PricedOrder(lines=lines, subtotal=subtotal, delivery_fee=fee, address=address)


# --- placement ---

def _insert_items(db: Session, order: Order, lines: List[PricedLine]) -> None:
    for line in lines:
        db.add(OrderItem(
            order_id=order.id,
            menu_item_id=line.menu_item.id,
            quantity=line.request.quantity,
            price_at_order=line.unit_price,
            special_instructions=line.request.special_instructions,
        ))
    db.flush()


def create_order(db: Session, user: User, payload: OrderCreate, reject_unavailable: bool = True) -> Order:
    priced = price_order(db, user, payload, reject_unavailable)
    now = now_utc()
    order_number = allocate_order_number(db)
    order = Order(
        order_number=order_number,
        user_id=user.id,
        address_id=priced.address.id if priced.address else None,
        delivery_notes=payload.delivery_notes,
        is_pickup=payload.is_pickup,
        subtotal=priced.subtotal,
        delivery_fee=priced.delivery_fee,
        total_amount=priced.total_amount,
        status=OrderStatus.PENDING,
        payment_status=PaymentStatus.PENDING,
        created_at=now,
        updated_at=now,
    )
    try:
        db.add(order)
        db.flush()
        _insert_items(db, order, priced.lines)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("order %s not created; header and items rolled back", order_number)
        raise InternalError("Failed to create order.")
    db.refresh(order)
    logger.info("order %s created for user %s total=%s", order.order_number, user.id, order.total_amount)
    return order


# --- reads ---

def get_visible_order(db: Session, actor: User, order_id: int) -> Order:
    order = db.get(Order, order_id)
    if not order or (order.user_id != actor.id and not actor.is_admin):
        raise NotFoundError(ORDER_NOT_FOUND)
    return order


# --- payment ---

def _open_attempt(order: Order) -> Optional[PaymentAttempt]:
    for attempt in order.payment_attempts:
        if attempt.reference == order.payment_reference and attempt.authorization_url:
            return attempt
    return None


def initiate_payment(db: Session, gateway: PaystackClient, actor: User, order_id: int,
                     email: Optional[str] = None) -> InitializedTransaction:
    """Start (or resume) a gateway checkout for an order.

    While a checkout is open its authorization URL is handed out again rather
    than minting a second transaction. After a failure a new transaction is
    issued; the earlier references stay resolvable through
    ``payment_attempts`` so a late payment on an old checkout still lands.
    """
    order = db.get(Order, order_id)
    if not order:
        raise NotFoundError(ORDER_NOT_FOUND)
    if order.user_id != actor.id and not actor.is_admin:
        raise AuthorizationError("Not authorized to initiate payment for this order.")
    if order.payment_status == PaymentStatus.PAID:
        raise ValidationError("Order has already been paid.")
    if order.payment_status == PaymentStatus.DISCREPANCY:
        raise ConflictError("Order payment is held for reconciliation.")
    if order.status not in PAYABLE_STATUSES:
        raise ValidationError(f"Payment cannot be initiated for order in '{order.status.value}' status.")

    if order.payment_status == PaymentStatus.INITIATED:
        attempt = _open_attempt(order)
        if attempt:
            logger.info("order %s resumes open payment %s", order.order_number, attempt.reference)
            return InitializedTransaction(authorization_url=attempt.authorization_url, reference=attempt.reference)

    # gateway errors propagate before anything is written, so the call can be retried
    txn = gateway.initialize_transaction(
        email or actor.email,
        order.total_amount,
        {"order_id": order.id, "order_number": order.order_number},
    )
    now = now_utc()
    order.payment_attempts.append(PaymentAttempt(
        reference=txn.reference,
        authorization_url=txn.authorization_url,
        amount=order.total_amount,
        created_at=now,
    ))
    order.payment_reference = txn.reference
    order.payment_status = PaymentStatus.INITIATED
    if order.status == OrderStatus.PENDING:
        order.status = OrderStatus.PAYMENT_PENDING
    order.updated_at = now
    db.commit()
    logger.info("payment initiated for order %s reference=%s", order.order_number, txn.reference)
    return txn


def _find_by_reference(db: Session, reference: str) -> Optional[Order]:
    stmt = (
        select(Order)
        .join(PaymentAttempt, PaymentAttempt.order_id == Order.id)
        .where(PaymentAttempt.reference == reference)
    )
    return db.execute(stmt).scalar_one_or_none()


def reconcile_payment(db: Session, reference: str, gateway_status: str, amount_minor: int) -> ReconcileResult:
    order = _find_by_reference(db, reference)
    if not order:
        raise NotFoundError(ORDER_NOT_FOUND)

    status = (gateway_status or "").lower()
    previous = (order.payment_status, order.status)
    before = (order.payment_status, order.status, order.payment_reference)
    superseded = reference != order.payment_reference

    if order.payment_status == PaymentStatus.PAID and (status != "reversed" or superseded):
        if status == "success" and superseded:
            logger.warning("order %s already paid by %s; second charge %s needs a refund",
                           order.order_number, order.payment_reference, reference)
        else:
            logger.info("order %s already paid; %s event for %s ignored", order.order_number, status, reference)
        return ReconcileResult(order=order, changed=False, previous=previous)

    if status == "success":
        # a charge on any issued checkout counts, not only the newest one
        order.payment_reference = reference
        if amount_minor == to_minor_units(order.total_amount):
            order.payment_status = PaymentStatus.PAID
            if order.status in PAYABLE_STATUSES:
                order.status = OrderStatus.PROCESSING
        else:
            order.payment_status = PaymentStatus.DISCREPANCY
            logger.warning(
                "order %s paid %s kobo, expected %s; held for reconciliation",
                order.order_number, amount_minor, to_minor_units(order.total_amount),
            )
    elif superseded:
        logger.info("order %s: %s event for superseded reference %s ignored", order.order_number, status, reference)
        return ReconcileResult(order=order, changed=False, previous=previous)
    elif status in ("failed", "abandoned"):
        order.payment_status = PaymentStatus.FAILED
    elif status == "reversed":
        order.payment_status = PaymentStatus.REVERSED
    else:
        logger.info("order %s: gateway status %r leaves order unchanged", order.order_number, status)
        return ReconcileResult(order=order, changed=False, previous=previous)

    if (order.payment_status, order.status, order.payment_reference) == before:
        return ReconcileResult(order=order, changed=False, previous=previous)

    order.updated_at = now_utc()
    db.commit()
    logger.info(
        "order %s payment %s -> %s, status %s -> %s",
        order.order_number, previous[0].value, order.payment_status.value,
        previous[1].value, order.status.value,
    )
    return ReconcileResult(order=order, changed=True, previous=previous)


def verify_payment(db: Session, gateway: PaystackClient, actor: User, reference: str) -> Order:
    order = _find_by_reference(db, reference)
    if not order or (order.user_id != actor.id and not actor.is_admin):
        raise NotFoundError(ORDER_NOT_FOUND)
    txn = gateway.verify_transaction(reference)
    return reconcile_payment(db, reference, txn.status, txn.amount_minor).order


def handle_webhook(db: Session, gateway: PaystackClient, raw_body: bytes, signature: Optional[str]) -> str:
    """Process one gateway webhook delivery.

    Returns ``processed``, ``duplicate`` or ``ignored``. Only an invalid
    signature or an unparseable body raises.
    """
    if not gateway.verify_signature(raw_body, signature):
        logger.warning("webhook rejected: bad signature")
        raise ValidationError("Invalid signature.")
    try:
        event = json.loads(raw_body)
    except ValueError:
        raise ValidationError("Malformed webhook payload.")
    if not isinstance(event, dict):
        raise ValidationError("Malformed webhook payload.")

    # acknowledged with 200 even when unusable; an error status only triggers redelivery
    data = event.get("data") or {}
    if not isinstance(data, dict):
        logger.warning("webhook %s with non-object data ignored", event.get("event"))
        return "ignored"
    reference = data.get("reference") or data.get("transaction_reference")
    status = EVENT_STATUS.get(event.get("event", ""), data.get("status", ""))
    if not reference:
        logger.info("webhook %s without reference ignored", event.get("event"))
        return "ignored"
    try:
        amount_minor = int(data.get("amount") or 0)
    except (TypeError, ValueError):
        logger.warning("webhook for %s with unreadable amount %r ignored", reference, data.get("amount"))
        return "ignored"
    try:
        result = reconcile_payment(db, str(reference), str(status or ""), amount_minor)
    except NotFoundError:
        logger.info("webhook for unknown reference %s ignored", reference)
        return "ignored"
    return "processed" if result.changed else "duplicate"


# --- administration ---

def update_status(db: Session, actor: User, order_id: int, target: str) -> Order:
    if not actor.is_admin:
        raise AuthorizationError("Admin access required")
    try:
        new_status = OrderStatus(target)
    except ValueError:
        allowed = ", ".join(s.value for s in OrderStatus)
        raise ValidationError(f"Valid order status is required. One of: {allowed}.")
    order = db.get(Order, order_id)
    if not order:
        raise NotFoundError(ORDER_NOT_FOUND)
    if order.status in TERMINAL_STATUSES and new_status != order.status:
        raise ConflictError(f"Order is already {order.status.value}.")
    order.status = new_status
    order.updated_at = now_utc()
    db.commit()
    db.refresh(order)
    logger.info("order %s status set to %s by admin %s", order.order_number, new_status.value, actor.id)
    return order

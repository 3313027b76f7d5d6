import math
from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from restaurant.api.deps import get_db, get_gateway
from restaurant.core.auth import get_current_user, require_admin
from restaurant.core.config import Settings, get_settings
from restaurant.db.models import Order, User
from restaurant.schemas import (
    OrderCreate,
    OrderPage,
    OrderQuote,
    OrderRead,
    PaymentInit,
    PaymentInitResponse,
    PaymentVerifyResponse,
    QuoteLine,
    StatusUpdate,
    order_summary,
    order_view,
)
from restaurant.services import orders as workflow
from restaurant.services.paystack import PaystackClient

router = APIRouter()  # main.py mounts at /api/orders


@router.post("/", response_model=OrderRead, status_code=201)
def create_order(payload: OrderCreate, user: User = Depends(get_current_user),
                 db: Session = Depends(get_db), cfg: Settings = Depends(get_settings)):
    order = workflow.create_order(db, user, payload, reject_unavailable=cfg.REJECT_UNAVAILABLE_ITEMS)
    return order_view(order)


@router.post("/quote", response_model=OrderQuote)
def quote_order(payload: OrderCreate, user: User = Depends(get_current_user),
                db: Session = Depends(get_db), cfg: Settings = Depends(get_settings)):
    priced = workflow.price_order(db, user, payload, reject_unavailable=cfg.REJECT_UNAVAILABLE_ITEMS)
    return OrderQuote(
        lines=[
            QuoteLine(
                menu_item_id=line.menu_item.id,
                name=line.menu_item.name,
                quantity=line.request.quantity,
                unit_price=line.unit_price,
                line_total=line.line_total,
            )
            for line in priced.lines
        ],
        subtotal=priced.subtotal,
        delivery_fee=priced.delivery_fee,
        total_amount=priced.total_amount,
    )


@router.get("/", response_model=OrderPage, dependencies=[Depends(require_admin)])
def list_orders(page: int = Query(1, ge=1), limit: int = Query(10, ge=1, le=100), db: Session = Depends(get_db)):
    total = db.execute(select(func.count(Order.id))).scalar_one()
    stmt = (
        select(Order)
        .options(selectinload(Order.user), selectinload(Order.address))
        .order_by(Order.created_at.desc(), Order.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    rows = db.execute(stmt).scalars().all()
    return OrderPage(
        current_page=page,
        total_pages=math.ceil(total / limit),
        total_orders=total,
        orders=[order_summary(o) for o in rows],
    )


@router.get("/verify/{reference}", response_model=PaymentVerifyResponse)
def verify_payment(reference: str, user: User = Depends(get_current_user), db: Session = Depends(get_db),
                   gateway: PaystackClient = Depends(get_gateway)):
    order = workflow.verify_payment(db, gateway, user, reference)
    return PaymentVerifyResponse(reference=reference, payment_status=order.payment_status, order=order_view(order))


@router.get("/{order_id}", response_model=OrderRead)
def get_order(order_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return order_view(workflow.get_visible_order(db, user, order_id))


@router.post("/{order_id}/pay", response_model=PaymentInitResponse)
def initiate_payment(order_id: int, payload: PaymentInit | None = None, user: User = Depends(get_current_user),
                     db: Session = Depends(get_db), gateway: PaystackClient = Depends(get_gateway)):
    email = str(payload.email) if payload and payload.email else None
    txn = workflow.initiate_payment(db, gateway, user, order_id, email)
    return PaymentInitResponse(authorization_url=txn.authorization_url, reference=txn.reference)


@router.patch("/{order_id}/status", response_model=OrderRead)
def update_order_status(order_id: int, payload: StatusUpdate, admin: User = Depends(require_admin),
                        db: Session = Depends(get_db)):
    return order_view(workflow.update_status(db, admin, order_id, payload.status))

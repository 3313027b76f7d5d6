from decimal import Decimal
from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload
from restaurant.api.deps import get_db
from restaurant.core.auth import require_admin
from restaurant.db.models import MenuItem, Order, OrderStatus, PaymentStatus
from restaurant.schemas import DashboardRead, DashboardStat, RecentOrder

router = APIRouter(dependencies=[Depends(require_admin)])

@router.get("/", response_model=DashboardRead)
def dashboard_stats(db: Session = Depends(get_db)):
    total_orders = db.execute(select(func.count(Order.id))).scalar_one()
    # only settled money counts as revenue
    revenue = db.execute(
        select(func.coalesce(func.sum(Order.total_amount), 0)).where(Order.payment_status == PaymentStatus.PAID)
    ).scalar_one()
    # awaiting payment, whether or not checkout has started
    pending = db.execute(
        select(func.count(Order.id)).where(Order.status.in_([OrderStatus.PENDING, OrderStatus.PAYMENT_PENDING]))
    ).scalar_one()
    menu_items = db.execute(select(func.count(MenuItem.id))).scalar_one()
    recent = db.execute(
        select(Order).options(selectinload(Order.user)).order_by(Order.created_at.desc(), Order.id.desc()).limit(5)
    ).scalars().all()
    return DashboardRead(
        stats=[
            DashboardStat(title="Total Orders", value=total_orders),
            DashboardStat(title="Total Revenue", value=Decimal(str(revenue)).quantize(Decimal("0.01"))),
            DashboardStat(title="Pending Orders", value=pending),
            DashboardStat(title="Menu Items", value=menu_items),
        ],
        recent_orders=[
            RecentOrder(
                id=o.id,
                order_number=o.order_number,
                total_amount=o.total_amount,
                status=o.status,
                customer_name=o.user.full_name if o.user else None,
                created_at=o.created_at,
            )
            for o in recent
        ],
    )

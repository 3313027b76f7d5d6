from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List
from decimal import Decimal
from datetime import datetime
from restaurant.db.models import OrderStatus, PaymentStatus

# --- auth / users ---
class RegisterPayload(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)
    full_name: str = Field(min_length=1)
    phone_number: Optional[str] = None

class LoginPayload(BaseModel):
    email: EmailStr
    password: str

class UserRead(BaseModel):
    id: int
    email: EmailStr
    full_name: str
    phone_number: Optional[str] = None
    role: str
    created_at: Optional[datetime] = None
    class Config: from_attributes = True

class TokenResponse(BaseModel):
    token: str
    user: UserRead

class ProfileUpdate(BaseModel):
    full_name: Optional[str] = None
    phone_number: Optional[str] = None

class RoleUpdate(BaseModel):
    role: str

# --- addresses ---
class AddressCreate(BaseModel):
    street_address: str = Field(min_length=1)
    city: str = Field(min_length=1)
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: str = Field(min_length=1)
    is_default: bool = False

class AddressUpdate(BaseModel):
    street_address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    is_default: Optional[bool] = None

class AddressRead(BaseModel):
    id: int
    street_address: str
    city: str
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: str
    is_default: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    class Config: from_attributes = True

# --- menu ---
class CategoryBase(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    image_url: Optional[str] = None
class CategoryCreate(CategoryBase): pass
class CategoryRead(CategoryBase):
    id: int
    class Config: from_attributes = True

class MenuItemBase(BaseModel):
    category_id: int
    name: str = Field(min_length=1)
    description: Optional[str] = None
    price: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    image_url: Optional[str] = None
    is_available: bool = True
class MenuItemCreate(MenuItemBase): pass
class MenuItemUpdate(MenuItemBase):
    is_available: Optional[bool] = None
class AvailabilityUpdate(BaseModel):
    is_available: bool
class MenuItemRead(MenuItemBase):
    id: int
    category_name: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

# --- orders ---
class OrderItemIn(BaseModel):
    id: int
    quantity: int = Field(gt=0)
    special_instructions: Optional[str] = None

class OrderCreate(BaseModel):
    items: List[OrderItemIn] = []
    address_id: Optional[int] = None
    delivery_notes: Optional[str] = None
    is_pickup: bool = False

class QuoteLine(BaseModel):
    menu_item_id: int
    name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal

class OrderQuote(BaseModel):
    lines: List[QuoteLine]
    subtotal: Decimal
    delivery_fee: Decimal
    total_amount: Decimal

class OrderItemRead(BaseModel):
    id: int
    menu_item_id: int
    menu_item_name: Optional[str] = None
    image_url: Optional[str] = None
    quantity: int
    price_at_order: Decimal
    special_instructions: Optional[str] = None

class OrderRead(BaseModel):
    id: int
    order_number: str
    user_id: int
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    address_id: Optional[int] = None
    delivery_address: Optional[str] = None
    delivery_notes: Optional[str] = None
    is_pickup: bool
    subtotal: Decimal
    delivery_fee: Decimal
    total_amount: Decimal
    status: OrderStatus
    payment_status: PaymentStatus
    payment_reference: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemRead] = []

class OrderSummary(BaseModel):
    id: int
    order_number: str
    total_amount: Decimal
    status: OrderStatus
    payment_status: PaymentStatus
    payment_reference: Optional[str] = None
    delivery_notes: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    delivery_address: Optional[str] = None
    created_at: datetime

class OrderPage(BaseModel):
    current_page: int
    total_pages: int
    total_orders: int
    orders: List[OrderSummary]

class StatusUpdate(BaseModel):
    status: str

class PaymentInit(BaseModel):
    email: Optional[EmailStr] = None

class PaymentInitResponse(BaseModel):
    authorization_url: str
    reference: str

class PaymentVerifyResponse(BaseModel):
    reference: str
    payment_status: PaymentStatus
    order: OrderRead

# --- dashboard ---
class DashboardStat(BaseModel):
    title: str
    value: Decimal | int

class RecentOrder(BaseModel):
    id: int
    order_number: str
    total_amount: Decimal
    status: OrderStatus
    customer_name: Optional[str] = None
    created_at: datetime

class DashboardRead(BaseModel):
    stats: List[DashboardStat]
    recent_orders: List[RecentOrder]

# --- views ---
def order_view(order) -> OrderRead:
    """Explicit field selection from an Order row and its relations."""
    user, address = order.user, order.address
    return OrderRead(
        id=order.id,
        order_number=order.order_number,
        user_id=order.user_id,
        customer_name=user.full_name if user else None,
        customer_email=user.email if user else None,
        address_id=order.address_id,
        delivery_address=address.one_line() if address else None,
        delivery_notes=order.delivery_notes,
        is_pickup=order.is_pickup,
        subtotal=order.subtotal,
        delivery_fee=order.delivery_fee,
        total_amount=order.total_amount,
        status=order.status,
        payment_status=order.payment_status,
        payment_reference=order.payment_reference,
        created_at=order.created_at,
        updated_at=order.updated_at,
        items=[
            OrderItemRead(
                id=it.id,
                menu_item_id=it.menu_item_id,
                menu_item_name=it.menu_item.name if it.menu_item else None,
                image_url=it.menu_item.image_url if it.menu_item else None,
                quantity=it.quantity,
                price_at_order=it.price_at_order,
                special_instructions=it.special_instructions,
            )
            for it in order.items
        ],
    )

def order_summary(order) -> OrderSummary:
    user, address = order.user, order.address
    return OrderSummary(
        id=order.id,
        order_number=order.order_number,
        total_amount=order.total_amount,
        status=order.status,
        payment_status=order.payment_status,
        payment_reference=order.payment_reference,
        delivery_notes=order.delivery_notes,
        customer_name=user.full_name if user else None,
        customer_email=user.email if user else None,
        delivery_address=address.one_line() if address else None,
        created_at=order.created_at,
    )

def menu_item_view(item) -> MenuItemRead:
    return MenuItemRead(
        id=item.id,
        category_id=item.category_id,
        category_name=item.category.name if item.category else 'Uncategorized',
        name=item.name,
        description=item.description,
        price=item.price,
        image_url=item.image_url,
        is_available=item.is_available,
        created_at=item.created_at,
        updated_at=item.updated_at,
    )

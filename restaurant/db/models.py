from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Integer, String, Text, Boolean, DateTime, ForeignKey, Numeric, CheckConstraint, Index, text, Enum as SAEnum
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from restaurant.db.session import Base

def now_utc() -> datetime:
    # naive UTC, matching the DateTime() columns
    return datetime.now(timezone.utc).replace(tzinfo=None)

class Role(str, Enum):
    ADMIN = "admin"
    USER = "user"

class OrderStatus(str, Enum):
    PENDING = "pending"
    PAYMENT_PENDING = "payment_pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

class PaymentStatus(str, Enum):
    PENDING = "pending"
    INITIATED = "initiated"
    PAID = "paid"
    FAILED = "failed"
    DISCREPANCY = "discrepancy"
    REVERSED = "reversed"

def _str_enum(enum_cls):
    return SAEnum(enum_cls, native_enum=False, length=32, values_callable=lambda e: [m.value for m in e])

class User(Base):
    __tablename__ = 'users'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone_number: Mapped[str | None] = mapped_column(String(32), nullable=True)
    role: Mapped[str] = mapped_column(String(32), default=Role.USER.value)
    created_at: Mapped[datetime] = mapped_column(DateTime(), default=now_utc)
    updated_at: Mapped[datetime] = mapped_column(DateTime(), default=now_utc)
    addresses = relationship('Address', back_populates='user', cascade='all, delete-orphan')
    orders = relationship('Order', back_populates='user', passive_deletes=True)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value

class Address(Base):
    __tablename__ = 'user_addresses'
    __table_args__ = (
        Index('uq_user_addresses_one_default', 'user_id', unique=True,
              postgresql_where=text('is_default'), sqlite_where=text('is_default')),
    )
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey('users.id', ondelete='CASCADE'), index=True)
    street_address: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str] = mapped_column(String(120), nullable=False)
    state: Mapped[str | None] = mapped_column(String(120), nullable=True)
    postal_code: Mapped[str | None] = mapped_column(String(32), nullable=True)
    country: Mapped[str] = mapped_column(String(120), nullable=False)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(), default=now_utc)
    updated_at: Mapped[datetime] = mapped_column(DateTime(), default=now_utc)
    user = relationship('User', back_populates='addresses')

    def one_line(self) -> str:
        parts = [self.street_address, self.city, self.state, self.country]
        return ', '.join(p for p in parts if p)

class Category(Base):
    __tablename__ = 'categories'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(120), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    menu_items = relationship('MenuItem', back_populates='category')

class MenuItem(Base):
    __tablename__ = 'menu_items'
    __table_args__ = (CheckConstraint('price > 0', name='ck_menu_items_price_positive'),)
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    category_id: Mapped[int] = mapped_column(ForeignKey('categories.id'), nullable=False)
    name: Mapped[str] = mapped_column(String(240), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    image_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(), default=now_utc)
    updated_at: Mapped[datetime] = mapped_column(DateTime(), default=now_utc)
    category = relationship('Category', back_populates='menu_items')

class Order(Base):
    __tablename__ = 'orders'
    __table_args__ = (
        CheckConstraint('subtotal >= 0', name='ck_orders_subtotal_non_negative'),
        CheckConstraint('delivery_fee >= 0', name='ck_orders_delivery_fee_non_negative'),
        CheckConstraint('total_amount = subtotal + delivery_fee', name='ck_orders_total_matches'),
        CheckConstraint('is_pickup OR address_id IS NOT NULL', name='ck_orders_address_unless_pickup'),
        CheckConstraint(f"status IN {tuple(s.value for s in OrderStatus)}", name='ck_orders_status'),
        CheckConstraint(f"payment_status IN {tuple(s.value for s in PaymentStatus)}", name='ck_orders_payment_status'),
    )
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    order_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    user_id: Mapped[int] = mapped_column(ForeignKey('users.id'), index=True)
    address_id: Mapped[int | None] = mapped_column(ForeignKey('user_addresses.id'), nullable=True)
    delivery_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_pickup: Mapped[bool] = mapped_column(Boolean, default=False)
    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    delivery_fee: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    status: Mapped[OrderStatus] = mapped_column(_str_enum(OrderStatus), default=OrderStatus.PENDING)
    payment_status: Mapped[PaymentStatus] = mapped_column(_str_enum(PaymentStatus), default=PaymentStatus.PENDING)
    payment_reference: Mapped[str | None] = mapped_column(String(128), unique=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(), default=now_utc)
    updated_at: Mapped[datetime] = mapped_column(DateTime(), default=now_utc)

    user = relationship('User', back_populates='orders')
    address = relationship('Address')
    items = relationship('OrderItem', back_populates='order', cascade='all, delete-orphan')
    payment_attempts = relationship('PaymentAttempt', back_populates='order', cascade='all, delete-orphan',
                                    order_by='PaymentAttempt.id')

class OrderItem(Base):
    __tablename__ = 'order_items'
    __table_args__ = (CheckConstraint('quantity > 0', name='ck_order_items_quantity_positive'),)
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey('orders.id', ondelete='CASCADE'), index=True)
    menu_item_id: Mapped[int] = mapped_column(ForeignKey('menu_items.id'))
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price_at_order: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    special_instructions: Mapped[str | None] = mapped_column(Text, nullable=True)

    order = relationship('Order', back_populates='items')
    menu_item = relationship('MenuItem')

class PaymentAttempt(Base):
    """Every gateway transaction issued for an order; any of them may still settle."""
    __tablename__ = 'payment_attempts'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey('orders.id', ondelete='CASCADE'), index=True)
    reference: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    authorization_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(), default=now_utc)

    order = relationship('Order', back_populates='payment_attempts')

import secrets
import string
import uuid
from datetime import datetime

from sqlalchemy import (
    Column,
    Integer,
    String,
    Boolean,
    DateTime,
    ForeignKey,
    Text,
    Index,
    event,
    func,
    select,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

PAYMENT_CODE_ALPHABET = string.ascii_uppercase + string.digits
PAYMENT_CODE_LENGTH = 6


def _uuid() -> str:
    return str(uuid.uuid4())


def generate_payment_code() -> str:
    """Human-readable code customers type on the payment screen."""
    return "".join(secrets.choice(PAYMENT_CODE_ALPHABET) for _ in range(PAYMENT_CODE_LENGTH))


def start_of_local_day(now: datetime = None) -> datetime:
    """Local midnight as an aware datetime."""
    now = (now or datetime.now()).astimezone()
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


class MenuCategory(Base):
    __tablename__ = "menu_categories"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String, nullable=False)

    menus = relationship("Menu", back_populates="category")


class Menu(Base):
    __tablename__ = "menus"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Integer, nullable=False)  # whole rupiah
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    category_id = Column(String(36), ForeignKey("menu_categories.id"), nullable=True, index=True)
    photo_url = Column(String, nullable=True)

    category = relationship("MenuCategory", back_populates="menus")
    order_items = relationship("OrderItem", back_populates="menu")


class DiningTable(Base):
    __tablename__ = "tables"

    label = Column(String, primary_key=True)
    status = Column(String, nullable=False, default="empty")  # empty / occupied / reserved
    capacity = Column(Integer, nullable=True)


class Order(Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=_uuid)
    source = Column(String, nullable=False, default="web")
    service_type = Column(String, nullable=False)  # dine_in / takeaway
    table_no = Column(String, nullable=True)
    status = Column(String, nullable=False, default="placed", index=True)
    guest_name = Column(String, nullable=True)
    contact = Column(String, nullable=True)
    payment_method = Column(String, nullable=False)  # cash / qris / transfer / ewallet
    payment_code = Column(String(16), nullable=False, unique=True, default=generate_payment_code)
    queue_no = Column(Integer, nullable=True)
    total_amount = Column(Integer, nullable=False, default=0)
    proof_url = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=True)
    active = Column(Boolean, nullable=False, default=True)

    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_orders_created_at_queue_no", "created_at", "queue_no"),
    )


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    menu_id = Column(String(36), ForeignKey("menus.id"), nullable=True)
    qty = Column(Integer, nullable=False)
    unit_price = Column(Integer, nullable=False)
    note = Column(Text, nullable=True)

    order = relationship("Order", back_populates="items")
    menu = relationship("Menu", back_populates="order_items")


class Setting(Base):
    """Key/value reference data; payment methods live under payment.* keys."""
    __tablename__ = "settings"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=True)  # JSON document
    image_path = Column(String, nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=True)
    updated_by = Column(String, nullable=True)


@event.listens_for(Order, "before_insert")
def _assign_queue_number(mapper, connection, target):
    """Give new orders today's next queue number when the database did not."""
    if target.created_at is None:
        target.created_at = datetime.now().astimezone()
    if target.queue_no is not None:
        return
    day_start = start_of_local_day(target.created_at)
    current = connection.execute(
        select(func.max(Order.queue_no)).where(Order.created_at >= day_start)
    ).scalar()
    target.queue_no = (current or 0) + 1

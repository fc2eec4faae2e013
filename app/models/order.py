from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from app.db.base import Base
from app.models.enums import (
    LogisticsStatus, LogisticsType, OrderPaymentStatus, PaymentRecordStatus, ShippingStatus,
)

# orders table
class Order(Base):
    __tablename__ = "orders"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    # Sum of quantity * unit_price over the order's items
    total_price = Column(Integer, nullable=False)
    discount_amount = Column(Integer, nullable=False, default=0)
    shipping_fee = Column(Integer, nullable=False, default=0)
    shipping_discount = Column(Integer, nullable=False, default=0)
    points_used = Column(Integer, nullable=False, default=0)
    points_got = Column(Integer, nullable=False, default=0)
    amount_due = Column(Integer, nullable=False)
    coupon_id = Column(Integer, ForeignKey("coupons.id"), nullable=True)
    payment_status = Column(String(20), nullable=False, default=OrderPaymentStatus.PENDING.value, index=True)
    shipping_status = Column(String(20), nullable=False, default=ShippingStatus.PROCESSING.value, index=True)
    recipient_name = Column(String(100), nullable=False)
    recipient_phone = Column(String(30), nullable=False)
    recipient_email = Column(String(255), nullable=True)
    shipping_address = Column(String(500), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    # Relationships
    user = relationship("User", back_populates="orders")
    coupon = relationship("Coupon")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")
    payment_record = relationship("PaymentRecord", back_populates="order", uselist=False, cascade="all, delete-orphan")
    logistics_info = relationship("LogisticsInfo", back_populates="order", uselist=False, cascade="all, delete-orphan")

    @property
    def order_no(self) -> str:
        return f"ORDER_{self.id}"

# order_items table
class OrderItem(Base):
    __tablename__ = "order_items"
    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    vinyl_id = Column(Integer, ForeignKey("vinyl.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    order = relationship("Order", back_populates="items")
    vinyl = relationship("Vinyl")

    @property
    def subtotal(self) -> int:
        return self.quantity * self.unit_price

# payment_records table
class PaymentRecord(Base):
    __tablename__ = "payment_records"
    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)
    payment_method = Column(String(20), nullable=False)
    merchant_trade_no = Column(String(20), nullable=True, index=True)
    gateway_trade_no = Column(String(50), nullable=True)
    payment_status = Column(String(20), nullable=False, default=PaymentRecordStatus.PENDING.value)
    trade_amount = Column(Integer, nullable=False)
    payment_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))
    __table_args__ = (
        Index('ix_payment_records_order_id_status', 'order_id', 'payment_status'),
    )

    order = relationship("Order", back_populates="payment_record")

# logistics_info table
class LogisticsInfo(Base):
    __tablename__ = "logistics_info"
    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)
    type = Column(String(10), nullable=False, default=LogisticsType.HOME.value)
    store_id = Column(String(20), nullable=True)
    store_name = Column(String(100), nullable=True)
    store_telephone = Column(String(30), nullable=True)
    tracking_number = Column(String(50), nullable=True)
    status = Column(String(20), nullable=False, default=LogisticsStatus.PENDING.value)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    order = relationship("Order", back_populates="logistics_info")

# checkout_requests table: one row per (user, idempotency key)
class CheckoutRequest(Base):
    __tablename__ = "checkout_requests"
    __table_args__ = (UniqueConstraint("user_id", "idempotency_key", name="uq_checkout_requests_user_key"),)
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    idempotency_key = Column(String(100), nullable=False)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

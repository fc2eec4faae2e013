from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Boolean, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from app.db.base import Base
from app.models.enums import CouponStatus, CouponTargetType, DiscountType

class Coupon(Base):
    __tablename__ = "coupons"

    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    content = Column(Text, nullable=True)

    # Campaign window
    start_at = Column(DateTime(timezone=True), nullable=True)
    end_at = Column(DateTime(timezone=True), nullable=False)
    # 0 means a claim expires together with the campaign (end_at)
    validity_days = Column(Integer, nullable=False, default=0)

    status = Column(String(10), nullable=False, default=CouponStatus.ACTIVE.value)
    # -1 = unlimited supply, otherwise remaining claimable count
    total_quantity = Column(Integer, nullable=False, default=-1)
    # -1 = unlimited uses per claim
    usage_limit = Column(Integer, nullable=False, default=1)

    min_spend = Column(Integer, nullable=False, default=0)
    min_items = Column(Integer, nullable=False, default=1)

    discount_type = Column(String(20), nullable=False, default=DiscountType.FIXED.value)
    discount_value = Column(Integer, nullable=False, default=0)
    target_type = Column(String(10), nullable=False, default=CouponTargetType.ALL.value)
    target_value = Column(String(20), nullable=True)

    # Soft delete flag
    is_valid = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    claims = relationship("UserCoupon", back_populates="coupon")
    usages = relationship("CouponUsage", back_populates="coupon")

class UserCoupon(Base):
    __tablename__ = "user_coupons"
    __table_args__ = (UniqueConstraint("user_id", "coupon_code", name="uq_user_coupons_user_code"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    coupon_code = Column(String(50), ForeignKey("coupons.code"), nullable=False, index=True)
    # Mirrors Coupon.usage_limit at claim time; -1 = unlimited
    remaining_uses = Column(Integer, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    is_valid = Column(Boolean, nullable=False, default=True)
    claimed_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    user = relationship("User", back_populates="coupons")
    coupon = relationship("Coupon", back_populates="claims")

class CouponUsage(Base):
    __tablename__ = "coupon_usages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    coupon_code = Column(String(50), ForeignKey("coupons.code"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    used_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    coupon = relationship("Coupon", back_populates="usages")

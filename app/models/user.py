from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.orm import relationship
from app.db.base import Base
from datetime import datetime, timezone

from app.models.enums import MemberLevel

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    account = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=True)
    email = Column(String, nullable=True)
    member_level = Column(String(4), nullable=False, default=MemberLevel.CLASSIC.value)
    # Cached balance; always equals the sum of the user's points ledger entries
    points = Column(Integer, nullable=False, default=0)
    is_admin = Column(Boolean, default=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    coupons = relationship("UserCoupon", back_populates="user")
    orders = relationship("Order", back_populates="user")
    points_entries = relationship("UserPointsEntry", back_populates="user")
    cart = relationship("Cart", back_populates="user", uselist=False)

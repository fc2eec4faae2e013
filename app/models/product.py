# models/product.py
from datetime import datetime, timezone
from sqlalchemy import CheckConstraint, Column, Integer, String, ForeignKey, Boolean, DateTime
from sqlalchemy.orm import relationship
from app.db.base import Base

class Vinyl(Base):
    __tablename__ = "vinyl"
    __table_args__ = (CheckConstraint("stock >= 0", name="ck_vinyl_stock_non_negative"),)

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    artist = Column(String(255), nullable=True)
    price = Column(Integer, nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    # 1 classical, 2 jazz, 3 western, 4 mandarin, 5 j/k-pop, 6 soundtrack
    main_category_id = Column(Integer, nullable=True, index=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    stock_movements = relationship("StockMovement", back_populates="vinyl")

class StockMovement(Base):
    __tablename__ = "stock_movements"

    id = Column(Integer, primary_key=True)
    vinyl_id = Column(Integer, ForeignKey("vinyl.id"), nullable=False, index=True)
    is_stock_in = Column(Boolean, default=False)
    quantity = Column(Integer, nullable=False)
    source = Column(String(20), nullable=False)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=True, index=True)
    note = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    vinyl = relationship("Vinyl", back_populates="stock_movements")

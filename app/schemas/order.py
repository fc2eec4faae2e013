from pydantic import BaseModel, Field
from typing import List, Optional, Literal
from datetime import datetime

from app.models.enums import LogisticsType

class CheckoutItem(BaseModel):
    vinyl_id: int
    quantity: int = Field(..., gt=0)
    unit_price: int = Field(..., ge=0)

class RecipientIn(BaseModel):
    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    email: Optional[str] = None
    address: Optional[str] = None

class LogisticsInfoIn(BaseModel):
    type: LogisticsType = LogisticsType.HOME
    store_id: Optional[str] = None
    store_name: Optional[str] = None
    store_telephone: Optional[str] = None
    tracking_number: Optional[str] = None

class CheckoutIn(BaseModel):
    items: List[CheckoutItem]
    recipient: RecipientIn
    coupon_code: Optional[str] = None
    points_to_use: int = Field(0, ge=0)
    payment_method: str
    logistics_info: Optional[LogisticsInfoIn] = None

class CheckoutPreviewIn(BaseModel):
    coupon_code: Optional[str] = None
    points_to_use: int = Field(0, ge=0)
    logistics_type: LogisticsType = LogisticsType.HOME

class PointsReward(BaseModel):
    points_got: int
    description: Optional[str] = None

class PaymentSummary(BaseModel):
    status: str
    method: str
    amount: int

class CheckoutResult(BaseModel):
    order_id: int
    order_no: str
    total_price: int
    discount_amount: int
    shipping_fee: int
    points_used: int
    amount_due: int
    points_got: int
    payment_status: str
    shipping_status: str
    merchant_trade_no: Optional[str] = None
    payment: PaymentSummary
    logistics_info: Optional[LogisticsInfoIn] = None
    points_reward: PointsReward
    replayed: bool = False

class RedeemCouponIn(BaseModel):
    order_id: int

class PaymentStatusUpdate(BaseModel):
    status: Literal['pending', 'success', 'failed', 'cancelled']
    gateway_trade_no: Optional[str] = None

class ShippingStatusUpdate(BaseModel):
    status: Literal['processing', 'shipped', 'delivered']
    tracking_number: Optional[str] = None

class OrderFilters(BaseModel):
    status: Optional[Literal['pending', 'confirmed', 'cancelled']] = None
    search: Optional[str] = None                       # order id or recipient name
    from_date: Optional[datetime] = None
    to_date: Optional[datetime] = None
    page: int = Field(1, ge=1)
    page_size: int = Field(10, ge=1, le=100)

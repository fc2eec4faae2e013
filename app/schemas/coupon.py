from pydantic import BaseModel, Field, model_validator
from typing import List, Optional, Literal
from datetime import datetime

from app.helpers.utils import as_utc
from app.models.enums import CouponStatus, CouponTargetType, DiscountType

def check_coupon_rules(values: dict) -> None:
    """Raise ``ValueError`` when a coupon's fields break the discount/target rules."""
    discount_type = getattr(values.get("discount_type"), "value", values.get("discount_type"))
    target_type = getattr(values.get("target_type"), "value", values.get("target_type"))
    target_value = values.get("target_value")
    discount_value = values.get("discount_value") or 0

    if values.get("usage_limit") == 0:
        raise ValueError("usage_limit must be -1 or positive")
    if discount_type == DiscountType.PERCENT.value and not 0 < discount_value <= 100:
        raise ValueError("percent discount_value must be between 1 and 100")
    if target_type != CouponTargetType.ALL.value and not target_value:
        raise ValueError("target_value is required for member and product coupons")
    if target_type == CouponTargetType.PRODUCT.value and target_value and not str(target_value).isdigit():
        raise ValueError("target_value must be a category id for product coupons")
    start_at, end_at = as_utc(values.get("start_at")), as_utc(values.get("end_at"))
    if start_at and end_at and start_at > end_at:
        raise ValueError("start_at must be before end_at")

class CouponBase(BaseModel):
    name: str = Field(..., min_length=1)
    code: str = Field(..., min_length=3, max_length=50)
    content: Optional[str] = None
    start_at: Optional[datetime] = None
    end_at: datetime
    validity_days: int = Field(0, ge=0)
    status: CouponStatus = CouponStatus.ACTIVE
    total_quantity: int = Field(-1, ge=-1)
    usage_limit: int = Field(1, ge=-1)
    min_spend: int = Field(0, ge=0)
    min_items: int = Field(1, ge=0)
    discount_type: DiscountType = DiscountType.FIXED
    discount_value: int = Field(0, ge=0)
    target_type: CouponTargetType = CouponTargetType.ALL
    target_value: Optional[str] = None

    @model_validator(mode="after")
    def check_rules(self):
        check_coupon_rules(self.model_dump())
        return self

class CreateCoupon(CouponBase):
    pass

class UpdateCoupon(BaseModel):
    name: Optional[str] = None
    content: Optional[str] = None
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    validity_days: Optional[int] = Field(None, ge=0)
    total_quantity: Optional[int] = Field(None, ge=-1)
    usage_limit: Optional[int] = Field(None, ge=-1)
    min_spend: Optional[int] = Field(None, ge=0)
    min_items: Optional[int] = Field(None, ge=0)
    discount_type: Optional[DiscountType] = None
    discount_value: Optional[int] = Field(None, ge=0)
    target_type: Optional[CouponTargetType] = None
    target_value: Optional[str] = None

class CouponStatusUpdate(BaseModel):
    code: str
    status: Optional[CouponStatus] = None  # toggles when omitted

class BulkCouponStatusUpdate(BaseModel):
    codes: List[str] = Field(..., min_length=1)
    status: CouponStatus

class CouponCodes(BaseModel):
    codes: List[str] = Field(..., min_length=1)

class CouponFilters(BaseModel):
    search: Optional[str] = None                        # search in code/name
    discount_type: Optional[DiscountType] = None
    status: Optional[CouponStatus] = None
    target_type: Optional[CouponTargetType] = None
    include_deleted: bool = False

    sort_by: Optional[str] = 'created_at'               # created_at, code, end_at
    sort_dir: Optional[Literal['asc', 'desc']] = 'desc'
    page: int = Field(1, ge=1)
    page_size: int = Field(10, ge=1, le=100)

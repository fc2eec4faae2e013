from datetime import timedelta
from typing import List, Optional

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.helpers.utils import paginate, utc_now
from app.models.coupon import Coupon, CouponUsage, UserCoupon
from app.models.enums import CouponStatus, UserCouponState
from app.schemas.coupon import (
    BulkCouponStatusUpdate, CouponFilters, CreateCoupon, UpdateCoupon, check_coupon_rules,
)
from app.services.coupons.allocation_service import claimable_coupons_query

SORTABLE_FIELDS = {"id", "name", "code", "created_at", "start_at", "end_at", "total_quantity", "usage_limit"}
RULE_FIELDS = ("start_at", "end_at", "usage_limit", "discount_type", "discount_value", "target_type", "target_value")

def _enum_value(value):
    return getattr(value, "value", value)

def get_coupon_or_404(db: Session, code: str, include_deleted: bool = False) -> Coupon:
    query = db.query(Coupon).filter(Coupon.code == code)
    if not include_deleted:
        query = query.filter(Coupon.is_valid == True)
    coupon = query.first()
    if not coupon:
        raise NotFoundError("coupon_not_found", {"code": code})
    return coupon

def create_coupon(db: Session, data: CreateCoupon) -> Coupon:
    if db.query(Coupon.id).filter(Coupon.code == data.code).first():
        raise ConflictError("coupon_code_exists", {"code": data.code})

    coupon = Coupon(
        name=data.name,
        code=data.code,
        content=data.content,
        start_at=data.start_at or utc_now(),
        end_at=data.end_at,
        validity_days=data.validity_days,
        status=data.status.value if data.total_quantity != 0 else CouponStatus.INACTIVE.value,
        total_quantity=data.total_quantity,
        usage_limit=data.usage_limit,
        min_spend=data.min_spend,
        min_items=data.min_items,
        discount_type=data.discount_type.value,
        discount_value=data.discount_value,
        target_type=data.target_type.value,
        target_value=data.target_value,
        is_valid=True,
    )
    db.add(coupon)
    db.commit()
    db.refresh(coupon)
    return coupon

def update_coupon(db: Session, code: str, data: UpdateCoupon) -> Coupon:
    coupon = get_coupon_or_404(db, code)
    data_dict = data.model_dump(exclude_unset=True)

    if "total_quantity" in data_dict and data_dict["total_quantity"] is not None:
        new_quantity = data_dict["total_quantity"]
        # Supply can be reduced but never topped back up
        if new_quantity == -1 and coupon.total_quantity != -1:
            raise ValidationError("total_quantity_cannot_increase")
        if coupon.total_quantity != -1 and new_quantity > coupon.total_quantity:
            raise ValidationError("total_quantity_cannot_increase")
        if new_quantity == 0:
            coupon.status = CouponStatus.INACTIVE.value

    if data_dict.get("usage_limit") == 0:
        raise ValidationError("invalid_usage_limit")

    merged = {column: getattr(coupon, column) for column in RULE_FIELDS}
    merged.update({field: value for field, value in data_dict.items() if field in RULE_FIELDS and value is not None})
    try:
        check_coupon_rules(merged)
    except ValueError as e:
        raise ValidationError("invalid_coupon_rules", {"code": code, "detail": str(e)})

    for field, value in data_dict.items():
        if value is None:
            continue
        if hasattr(coupon, field):
            setattr(coupon, field, _enum_value(value))

    db.commit()
    db.refresh(coupon)
    return coupon

def toggle_status(db: Session, code: str, status: Optional[CouponStatus] = None) -> Coupon:
    coupon = get_coupon_or_404(db, code)
    if status is None:
        new_status = CouponStatus.INACTIVE.value if coupon.status == CouponStatus.ACTIVE.value else CouponStatus.ACTIVE.value
    else:
        new_status = status.value

    if new_status == CouponStatus.ACTIVE.value and coupon.total_quantity == 0:
        raise ValidationError("coupon_supply_exhausted", {"code": code})

    coupon.status = new_status
    db.commit()
    db.refresh(coupon)
    return coupon

def bulk_update_status(db: Session, data: BulkCouponStatusUpdate) -> dict:
    codes = list(dict.fromkeys(data.codes))
    status = data.status.value
    existing = db.query(Coupon.code, Coupon.status, Coupon.total_quantity).filter(Coupon.code.in_(codes)).all()
    existing_codes = {row.code for row in existing}

    unchanged = [row.code for row in existing if row.status == status]
    # Sold out coupons stay inactive
    blocked = [row.code for row in existing if row.status != status and status == CouponStatus.ACTIVE.value and row.total_quantity == 0]
    updatable = [row.code for row in existing if row.status != status and row.code not in blocked]
    not_found = [code for code in codes if code not in existing_codes]

    updated_count = 0
    if updatable:
        updated_count = (
            db.query(Coupon)
            .filter(Coupon.code.in_(updatable))
            .update({Coupon.status: status}, synchronize_session=False)
        )
    db.commit()

    return {
        "total_codes": len(codes),
        "updated_count": updated_count,
        "unchanged_count": len(unchanged) + len(blocked),
        "not_found_count": len(not_found),
        "not_found_codes": not_found,
    }

def soft_delete_coupon(db: Session, code: str) -> None:
    coupon = get_coupon_or_404(db, code)
    coupon.is_valid = False
    db.commit()

def bulk_soft_delete(db: Session, codes: List[str]) -> dict:
    updated_count = (
        db.query(Coupon)
        .filter(Coupon.code.in_(codes), Coupon.is_valid == True)
        .update({Coupon.is_valid: False}, synchronize_session=False)
    )
    db.commit()
    return {"updated_count": updated_count}

def count_coupons(db: Session) -> int:
    return db.query(func.count(Coupon.id)).filter(Coupon.is_valid == True).scalar()

def _usage_stats(used_count: int, user_count: int) -> int:
    if not user_count:
        return 0
    return round(used_count * 100 / user_count)

def get_admin_coupons(db: Session, filters: CouponFilters) -> dict:
    used_counts = (
        db.query(CouponUsage.coupon_code, func.count(CouponUsage.id).label("used_count"))
        .group_by(CouponUsage.coupon_code)
        .subquery()
    )
    user_counts = (
        db.query(UserCoupon.coupon_code, func.count(UserCoupon.id).label("user_count"))
        .group_by(UserCoupon.coupon_code)
        .subquery()
    )
    query = (
        db.query(
            Coupon,
            func.coalesce(used_counts.c.used_count, 0).label("used_count"),
            func.coalesce(user_counts.c.user_count, 0).label("user_count"),
        )
        .outerjoin(used_counts, used_counts.c.coupon_code == Coupon.code)
        .outerjoin(user_counts, user_counts.c.coupon_code == Coupon.code)
    )

    conditions = []
    if not filters.include_deleted:
        conditions.append(Coupon.is_valid == True)
    if filters.status:
        conditions.append(Coupon.status == filters.status.value)
    if filters.discount_type:
        conditions.append(Coupon.discount_type == filters.discount_type.value)
    if filters.target_type:
        conditions.append(Coupon.target_type == filters.target_type.value)
    if filters.search:
        conditions.append(or_(
            Coupon.code.ilike(f"%{filters.search}%"),
            Coupon.name.ilike(f"%{filters.search}%"),
            Coupon.content.ilike(f"%{filters.search}%"),
        ))
    if conditions:
        query = query.filter(and_(*conditions))

    sort_by = filters.sort_by if filters.sort_by in SORTABLE_FIELDS else "created_at"
    sort_field = getattr(Coupon, sort_by)
    query = query.order_by(sort_field.desc() if filters.sort_dir == "desc" else sort_field.asc(), Coupon.id.desc())

    total, rows = paginate(query, filters.page, filters.page_size)
    items = []
    for coupon, used_count, user_count in rows:
        items.append({
            **coupon_to_dict(coupon),
            "used_count": used_count,
            "user_count": user_count,
            "remaining_quantity": coupon.total_quantity,
            "usage_rate": _usage_stats(used_count, user_count),
        })
    return {"total": total, "items": items}

def coupon_to_dict(coupon: Coupon) -> dict:
    return {
        "id": coupon.id,
        "name": coupon.name,
        "code": coupon.code,
        "content": coupon.content,
        "start_at": coupon.start_at,
        "end_at": coupon.end_at,
        "validity_days": coupon.validity_days,
        "status": coupon.status,
        "total_quantity": coupon.total_quantity,
        "usage_limit": coupon.usage_limit,
        "min_spend": coupon.min_spend,
        "min_items": coupon.min_items,
        "discount_type": coupon.discount_type,
        "discount_value": coupon.discount_value,
        "target_type": coupon.target_type,
        "target_value": coupon.target_value,
        "is_valid": coupon.is_valid,
        "created_at": coupon.created_at,
        "updated_at": coupon.updated_at,
    }

def get_claimable_coupons(
    db: Session,
    user_id: Optional[int],
    discount_type: Optional[str] = None,
    target_value: Optional[str] = None,
    page: int = 1,
    page_size: int = 12,
) -> dict:
    query = claimable_coupons_query(db, utc_now(), discount_type, target_value).order_by(Coupon.id)
    total, coupons = paginate(query, page, page_size)

    held = set()
    if user_id is not None and coupons:
        held = {
            row.coupon_code
            for row in db.query(UserCoupon.coupon_code).filter(
                UserCoupon.user_id == user_id,
                UserCoupon.coupon_code.in_([c.code for c in coupons]),
            ).all()
        }
    items = [{**coupon_to_dict(c), "has_coupon": c.code in held} for c in coupons]
    return {"total": total, "items": items}

def get_coupon_details(db: Session, codes: List[str]) -> List[dict]:
    codes = [code.strip() for code in codes if code and code.strip()]
    if not codes:
        raise ValidationError("coupon_codes_required")
    coupons = db.query(Coupon).filter(Coupon.code.in_(codes), Coupon.is_valid == True).all()
    return [coupon_to_dict(c) for c in coupons]

def get_user_coupons(db: Session, user_id: int, state: UserCouponState, page: int = 1, page_size: int = 4) -> dict:
    now = utc_now()
    window_start = now - timedelta(days=settings.COUPON_HISTORY_DAYS)

    if state == UserCouponState.USED:
        query = (
            db.query(Coupon, CouponUsage.order_id, CouponUsage.used_at)
            .join(CouponUsage, CouponUsage.coupon_code == Coupon.code)
            .filter(CouponUsage.user_id == user_id, CouponUsage.used_at > window_start)
            .order_by(CouponUsage.used_at.desc())
        )
        total, rows = paginate(query, page, page_size)
        items = [
            {**coupon_to_dict(coupon), "order_id": order_id, "used_at": used_at}
            for coupon, order_id, used_at in rows
        ]
        return {"total": total, "items": items}

    query = (
        db.query(Coupon, UserCoupon)
        .join(UserCoupon, UserCoupon.coupon_code == Coupon.code)
        .filter(
            UserCoupon.user_id == user_id,
            or_(UserCoupon.remaining_uses > 0, UserCoupon.remaining_uses == -1),
            UserCoupon.is_valid == True,
        )
    )
    if state == UserCouponState.EXPIRED:
        query = query.filter(UserCoupon.expires_at < now, UserCoupon.expires_at >= window_start)
    else:
        query = query.filter(UserCoupon.expires_at > now)
    query = query.order_by(UserCoupon.expires_at.asc())

    total, rows = paginate(query, page, page_size)
    items = [
        {
            **coupon_to_dict(coupon),
            "remaining_uses": claim.remaining_uses,
            "claimed_at": claim.claimed_at,
            "expires_at": claim.expires_at,
        }
        for coupon, claim in rows
    ]
    return {"total": total, "items": items}

def get_usable_coupons(db: Session, user_id: int) -> List[dict]:
    """Claims the cart can apply right now."""
    now = utc_now()
    rows = (
        db.query(Coupon, UserCoupon)
        .join(UserCoupon, UserCoupon.coupon_code == Coupon.code)
        .filter(
            UserCoupon.user_id == user_id,
            or_(UserCoupon.remaining_uses > 0, UserCoupon.remaining_uses == -1),
            UserCoupon.is_valid == True,
            UserCoupon.expires_at > now,
            Coupon.is_valid == True,
        )
        .order_by(UserCoupon.expires_at.asc())
        .all()
    )
    return [
        {**coupon_to_dict(coupon), "remaining_uses": claim.remaining_uses, "expires_at": claim.expires_at}
        for coupon, claim in rows
    ]

# app/services/coupons/allocation_service.py
"""
Claiming coupons out of their global supply.

``total_quantity`` is only ever changed through :func:`decrement_supply`, a
single conditional UPDATE that re-checks availability against the row as it
is at write time. Two requests racing for the last unit cannot both succeed.
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import case, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import ConflictError, ExhaustedError, NotFoundError, ValidationError
from app.helpers.utils import as_utc, utc_now
from app.models.coupon import Coupon, UserCoupon
from app.models.enums import CouponStatus, CouponTargetType
from app.models.user import User

logger = logging.getLogger(__name__)

# Coupons that can be claimed from the public listing; member coupons are
# handed out by the back office.
CLAIMABLE_TARGETS = (CouponTargetType.ALL.value, CouponTargetType.PRODUCT.value)


def claim_expiry(coupon: Coupon, now: datetime) -> datetime:
    """A claim expires ``validity_days`` after claiming, or with the campaign when that is 0."""
    if coupon.validity_days and coupon.validity_days > 0:
        return now + timedelta(days=coupon.validity_days)
    return as_utc(coupon.end_at)


def ensure_in_window(coupon: Coupon, now: datetime) -> None:
    start_at = as_utc(coupon.start_at)
    end_at = as_utc(coupon.end_at)
    if start_at and now < start_at:
        raise ValidationError("coupon_not_started", {"code": coupon.code})
    if end_at and now > end_at:
        raise ValidationError("coupon_expired", {"code": coupon.code})


def decrement_supply(db: Session, code: str) -> None:
    """Take one unit of supply; the last unit switches the coupon to inactive."""
    updated = (
        db.query(Coupon)
        .filter(
            Coupon.code == code,
            or_(Coupon.total_quantity > 0, Coupon.total_quantity == -1),
            Coupon.status == CouponStatus.ACTIVE.value,
            Coupon.is_valid == True,
        )
        .update(
            {
                Coupon.status: case(
                    (Coupon.total_quantity == 1, CouponStatus.INACTIVE.value),
                    else_=Coupon.status,
                ),
                Coupon.total_quantity: case(
                    (Coupon.total_quantity == -1, -1),
                    else_=Coupon.total_quantity - 1,
                ),
            },
            synchronize_session=False,
        )
    )
    if updated == 0:
        logger.warning("Coupon %s has no supply left", code)
        raise ExhaustedError("coupon_exhausted", {"code": code})


def _insert_claim(db: Session, user_id: int, coupon: Coupon, now: datetime) -> UserCoupon:
    claim = UserCoupon(
        user_id=user_id,
        coupon_code=coupon.code,
        remaining_uses=coupon.usage_limit,
        expires_at=claim_expiry(coupon, now),
        is_valid=True,
        claimed_at=now,
    )
    db.add(claim)
    db.flush()
    return claim


def claim(db: Session, user_id: int, code: str) -> UserCoupon:
    now = utc_now()

    existing = db.query(UserCoupon.id).filter(
        UserCoupon.user_id == user_id,
        UserCoupon.coupon_code == code,
    ).first()
    if existing:
        raise ConflictError("coupon_already_claimed", {"code": code})

    if not db.query(User.id).filter(User.id == user_id).first():
        raise NotFoundError("user_not_found", {"user_id": user_id})

    coupon = db.query(Coupon).filter(Coupon.code == code, Coupon.is_valid == True).first()
    if not coupon:
        raise NotFoundError("coupon_not_found", {"code": code})
    ensure_in_window(coupon, now)

    try:
        decrement_supply(db, code)
        user_coupon = _insert_claim(db, user_id, coupon, now)
        db.commit()
    except IntegrityError:
        # Same user claiming concurrently: the unique (user, code) key rejects it
        db.rollback()
        raise ConflictError("coupon_already_claimed", {"code": code})
    except Exception:
        db.rollback()
        raise

    db.refresh(user_coupon)
    logger.info("User %s claimed coupon %s", user_id, code)
    return user_coupon


def claimable_coupons_query(db: Session, now: datetime, discount_type: Optional[str] = None, target_value: Optional[str] = None):
    query = db.query(Coupon).filter(
        Coupon.target_type.in_(CLAIMABLE_TARGETS),
        or_(Coupon.start_at == None, Coupon.start_at <= now),
        Coupon.end_at >= now,
        Coupon.status == CouponStatus.ACTIVE.value,
        Coupon.is_valid == True,
    )
    if discount_type == "limit":
        query = query.filter(Coupon.total_quantity > 0)
    elif discount_type:
        query = query.filter(Coupon.discount_type == discount_type)
    if target_value:
        query = query.filter(Coupon.target_value == target_value)
    return query


def claim_all(db: Session, user_id: int, discount_type: Optional[str] = None, target_value: Optional[str] = None) -> List[UserCoupon]:
    """
    Claim every currently claimable coupon the user does not hold yet.
    Each coupon is committed on its own; one sold-out coupon does not undo
    the others.
    """
    now = utc_now()
    if not db.query(User.id).filter(User.id == user_id).first():
        raise NotFoundError("user_not_found", {"user_id": user_id})

    coupons = claimable_coupons_query(db, now, discount_type, target_value).order_by(Coupon.id).all()
    if not coupons:
        raise NotFoundError("no_claimable_coupons")

    held = {
        row.coupon_code
        for row in db.query(UserCoupon.coupon_code).filter(UserCoupon.user_id == user_id).all()
    }

    claimed = []
    for coupon in coupons:
        if coupon.code in held:
            continue
        try:
            decrement_supply(db, coupon.code)
            user_coupon = _insert_claim(db, user_id, coupon, now)
            db.commit()
            claimed.append(user_coupon)
        except (ExhaustedError, IntegrityError):
            db.rollback()
            continue
        except Exception:
            db.rollback()
            raise

    if not claimed:
        raise NotFoundError("all_coupons_already_claimed")

    for user_coupon in claimed:
        db.refresh(user_coupon)
    logger.info("User %s claimed %s coupons", user_id, len(claimed))
    return claimed

# app/services/coupons/redemption_service.py
import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import case, or_
from sqlalchemy.orm import Session

from app.core.errors import ConflictError, NoUsesRemainingError, NotFoundError, ValidationError
from app.helpers.utils import as_utc, utc_now
from app.models.coupon import Coupon, CouponUsage, UserCoupon
from app.models.enums import OrderPaymentStatus
from app.models.order import Order
from app.models.product import Vinyl
from app.models.user import User
from app.services.coupons.discount import CartLine, compute_coupon_discount

logger = logging.getLogger(__name__)


def check_redeemable(db: Session, user_id: int, code: str, now: Optional[datetime] = None) -> Tuple[Coupon, UserCoupon]:
    """Run the redemption preconditions in order and return the coupon and the user's claim."""
    now = now or utc_now()

    if not db.query(User.id).filter(User.id == user_id).first():
        raise NotFoundError("user_not_found", {"user_id": user_id})

    coupon = db.query(Coupon).filter(Coupon.code == code, Coupon.is_valid == True).first()
    if not coupon:
        raise NotFoundError("coupon_not_found", {"code": code})

    user_coupon = db.query(UserCoupon).filter(
        UserCoupon.user_id == user_id,
        UserCoupon.coupon_code == code,
        or_(UserCoupon.remaining_uses > 0, UserCoupon.remaining_uses == -1),
        UserCoupon.is_valid == True,
    ).first()
    if not user_coupon:
        raise NoUsesRemainingError("coupon_no_uses_remaining", {"code": code})

    if as_utc(user_coupon.expires_at) < now:
        raise ValidationError("coupon_claim_expired", {"code": code})

    return coupon, user_coupon


def decrement_uses(db: Session, user_id: int, code: str) -> None:
    """Consume one use of a claim; the last use invalidates it for good."""
    updated = (
        db.query(UserCoupon)
        .filter(
            UserCoupon.user_id == user_id,
            UserCoupon.coupon_code == code,
            or_(UserCoupon.remaining_uses > 0, UserCoupon.remaining_uses == -1),
            UserCoupon.is_valid == True,
        )
        .update(
            {
                UserCoupon.remaining_uses: case(
                    (UserCoupon.remaining_uses == -1, -1),
                    else_=UserCoupon.remaining_uses - 1,
                ),
                UserCoupon.is_valid: case(
                    (UserCoupon.remaining_uses == 1, False),
                    else_=UserCoupon.is_valid,
                ),
            },
            synchronize_session=False,
        )
    )
    if updated == 0:
        logger.warning("Claim for coupon %s by user %s has no uses left", code, user_id)
        raise NoUsesRemainingError("coupon_no_uses_remaining", {"code": code})


def redeem_for_order(db: Session, user_id: int, code: str, order_id: int) -> CouponUsage:
    """Redeem inside the caller's transaction; nothing is committed here."""
    check_redeemable(db, user_id, code)
    decrement_uses(db, user_id, code)

    usage = CouponUsage(coupon_code=code, user_id=user_id, order_id=order_id)
    db.add(usage)
    db.flush()
    return usage


def _order_lines(db: Session, order: Order) -> List[CartLine]:
    categories = dict(
        db.query(Vinyl.id, Vinyl.main_category_id)
        .filter(Vinyl.id.in_([item.vinyl_id for item in order.items]))
        .all()
    )
    return [
        CartLine(
            vinyl_id=item.vinyl_id,
            quantity=item.quantity,
            unit_price=item.unit_price,
            category_id=categories.get(item.vinyl_id),
        )
        for item in order.items
    ]


def apply_discount(db: Session, order: Order, coupon: Coupon, member_level: Optional[str]) -> None:
    """Reprice an unpaid order with ``coupon`` and keep its payment record in step."""
    discount = compute_coupon_discount(coupon, _order_lines(db, order), member_level, order.shipping_fee)

    payable_goods = order.total_price - discount.discount_amount
    if order.points_used > payable_goods:
        raise ValidationError("points_exceed_total", {"points_to_use": order.points_used, "payable": payable_goods})

    order.discount_amount = discount.discount_amount
    order.shipping_discount = discount.shipping_discount
    order.amount_due = payable_goods - order.points_used + order.shipping_fee - discount.shipping_discount
    if order.payment_record is not None:
        order.payment_record.trade_amount = order.amount_due


def redeem(db: Session, user_id: int, code: str, order_id: int) -> CouponUsage:
    """
    Apply a claimed coupon to one of the user's existing, unpaid orders.

    The order's discount, amount due and payment record trade amount are
    recomputed from the coupon's rule in the same transaction as the use.
    """
    order = db.query(Order).filter(Order.id == order_id, Order.user_id == user_id).first()
    if not order:
        raise NotFoundError("order_not_found", {"order_id": order_id})

    if order.payment_status == OrderPaymentStatus.CANCELLED.value:
        raise ConflictError("order_cancelled", {"order_id": order_id})
    if order.payment_status == OrderPaymentStatus.CONFIRMED.value:
        raise ConflictError("order_already_paid", {"order_id": order_id})
    if order.coupon_id is not None:
        raise ConflictError("order_already_has_coupon", {"order_id": order_id})

    try:
        coupon, _ = check_redeemable(db, user_id, code)
        member_level = db.query(User.member_level).filter(User.id == user_id).scalar()
        apply_discount(db, order, coupon, member_level)
        usage = redeem_for_order(db, user_id, code, order_id)
        order.coupon_id = coupon.id
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(usage)
    logger.info("User %s redeemed coupon %s on order %s", user_id, code, order_id)
    return usage

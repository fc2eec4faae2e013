# app/services/orders/checkout_service.py
"""
Checkout: turn a snapshot of the user's checked cart lines into an order.

Everything below runs in one database transaction. Stock, coupon uses and
points are taken with guarded UPDATEs; any failure rolls the whole
transaction back, so a failed checkout leaves no order, item, payment,
logistics or ledger rows behind and no stock or points moved.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.helpers.utils import format_shipping_address
from app.models.cart import Cart, CartItem
from app.models.coupon import Coupon
from app.models.enums import (
    LogisticsType, OrderPaymentStatus, PaymentMethod, ShippingStatus,
)
from app.models.order import CheckoutRequest, Order, OrderItem
from app.models.product import Vinyl
from app.models.user import User
from app.schemas.order import (
    CheckoutIn, CheckoutPreviewIn, CheckoutResult, LogisticsInfoIn, PaymentSummary, PointsReward,
)
from app.services.coupons import redemption_service
from app.services.coupons.discount import CartLine, DiscountResult, compute_coupon_discount
from app.services.inventory import inventory_service
from app.services.orders import records_service
from app.services.points import points_service

logger = logging.getLogger(__name__)


def validate_payment_method(payment_method: str) -> PaymentMethod:
    if payment_method not in settings.ALLOWED_PAYMENT_METHODS:
        raise ValidationError(
            "invalid_payment_method",
            {"payment_method": payment_method, "allowed": list(settings.ALLOWED_PAYMENT_METHODS)},
        )
    return PaymentMethod(payment_method)


def shipping_fee_for(logistics_type: LogisticsType) -> int:
    if logistics_type == LogisticsType.STORE_711:
        return settings.STORE_PICKUP_SHIPPING_FEE
    return settings.HOME_SHIPPING_FEE


def reward_description(total_price: int, points_got: int) -> Optional[str]:
    if points_got <= 0:
        return None
    return f"Spent {total_price} and earned {points_got} points"


def _build_lines(db: Session, data: CheckoutIn) -> List[CartLine]:
    vinyl_ids = sorted({item.vinyl_id for item in data.items})
    categories = dict(
        db.query(Vinyl.id, Vinyl.main_category_id).filter(Vinyl.id.in_(vinyl_ids)).all()
    )
    missing = [vinyl_id for vinyl_id in vinyl_ids if vinyl_id not in categories]
    if missing:
        raise NotFoundError("product_not_found", {"vinyl_id": missing[0]})

    return [
        CartLine(
            vinyl_id=item.vinyl_id,
            quantity=item.quantity,
            unit_price=item.unit_price,
            category_id=categories[item.vinyl_id],
        )
        for item in data.items
    ]


@dataclass(frozen=True)
class Quote:
    coupon: Optional[Coupon]
    discount: DiscountResult
    total_price: int
    shipping_fee: int
    amount_due: int


def quote(
    db: Session,
    user: User,
    lines: List[CartLine],
    coupon_code: Optional[str],
    points_to_use: int,
    logistics_type: LogisticsType,
) -> Quote:
    """Price the lines with an optional coupon and points; reads only."""
    total_price = sum(line.subtotal for line in lines)
    shipping_fee = shipping_fee_for(logistics_type)

    coupon = None
    discount = DiscountResult(discount_amount=0, shipping_discount=0, applicable_amount=total_price)
    if coupon_code:
        coupon, _ = redemption_service.check_redeemable(db, user.id, coupon_code)
        discount = compute_coupon_discount(coupon, lines, user.member_level, shipping_fee)

    payable_goods = total_price - discount.discount_amount
    if points_to_use > payable_goods:
        raise ValidationError("points_exceed_total", {"points_to_use": points_to_use, "payable": payable_goods})
    amount_due = payable_goods - points_to_use + shipping_fee - discount.shipping_discount
    return Quote(coupon=coupon, discount=discount, total_price=total_price, shipping_fee=shipping_fee, amount_due=amount_due)


def _claim_idempotency_key(db: Session, user_id: int, key: str) -> CheckoutRequest:
    request_row = CheckoutRequest(user_id=user_id, idempotency_key=key)
    db.add(request_row)
    try:
        db.flush()
    except IntegrityError:
        # Another request with the same key is committing right now
        raise ConflictError("duplicate_checkout_request", {"idempotency_key": key})
    return request_row


def _find_replay(db: Session, user_id: int, key: str) -> Optional[Order]:
    existing = db.query(CheckoutRequest).filter(
        CheckoutRequest.user_id == user_id,
        CheckoutRequest.idempotency_key == key,
    ).first()
    if not existing:
        return None
    if existing.order_id is None:
        raise ConflictError("duplicate_checkout_request", {"idempotency_key": key})
    return db.query(Order).filter(Order.id == existing.order_id).first()


def build_checkout_result(order: Order, replayed: bool = False) -> CheckoutResult:
    record = order.payment_record
    logistics = order.logistics_info
    return CheckoutResult(
        order_id=order.id,
        order_no=order.order_no,
        total_price=order.total_price,
        discount_amount=order.discount_amount,
        shipping_fee=order.shipping_fee - order.shipping_discount,
        points_used=order.points_used,
        amount_due=order.amount_due,
        points_got=order.points_got,
        payment_status=order.payment_status,
        shipping_status=order.shipping_status,
        merchant_trade_no=record.merchant_trade_no if record else None,
        payment=PaymentSummary(
            status=record.payment_status if record else order.payment_status,
            method=record.payment_method if record else "",
            amount=record.trade_amount if record else order.amount_due,
        ),
        logistics_info=LogisticsInfoIn(
            type=LogisticsType(logistics.type),
            store_id=logistics.store_id,
            store_name=logistics.store_name,
            store_telephone=logistics.store_telephone,
            tracking_number=logistics.tracking_number,
        ) if logistics else None,
        points_reward=PointsReward(
            points_got=order.points_got,
            description=reward_description(order.total_price, order.points_got),
        ),
        replayed=replayed,
    )


def checkout(db: Session, user: User, data: CheckoutIn, idempotency_key: Optional[str] = None) -> CheckoutResult:
    # Step 1: validate the request
    payment_method = validate_payment_method(data.payment_method)
    if not data.items:
        raise ValidationError("order_items_missing")

    if idempotency_key:
        replay = _find_replay(db, user.id, idempotency_key)
        if replay:
            logger.info("Replaying checkout %s for user %s", idempotency_key, user.id)
            return build_checkout_result(replay, replayed=True)

    logistics_in = data.logistics_info or LogisticsInfoIn()
    points_to_use = data.points_to_use or 0

    try:
        request_row = _claim_idempotency_key(db, user.id, idempotency_key) if idempotency_key else None

        # Step 2: read-only checks before anything is reserved
        if points_to_use > 0:
            points_service.ensure_balance(db, user.id, points_to_use)

        lines = _build_lines(db, data)
        priced = quote(db, user, lines, data.coupon_code, points_to_use, logistics_in.type)
        coupon, discount = priced.coupon, priced.discount
        total_price, shipping_fee, amount_due = priced.total_price, priced.shipping_fee, priced.amount_due

        # Step 3: reserve stock for every line
        movements = [inventory_service.reserve(db, line.vinyl_id, line.quantity) for line in lines]

        # Step 4: the order row, points_got is finalised below
        order = Order(
            user_id=user.id,
            total_price=total_price,
            discount_amount=discount.discount_amount,
            shipping_fee=shipping_fee,
            shipping_discount=discount.shipping_discount,
            points_used=points_to_use,
            points_got=0,
            amount_due=amount_due,
            payment_status=OrderPaymentStatus.PENDING.value,
            shipping_status=ShippingStatus.PROCESSING.value,
            recipient_name=data.recipient.name,
            recipient_phone=data.recipient.phone,
            recipient_email=data.recipient.email,
            shipping_address=format_shipping_address(data.recipient.address, logistics_in.type.value),
        )
        db.add(order)
        db.flush()
        for movement in movements:
            movement.order_id = order.id

        # Step 5: item snapshots
        for line in lines:
            db.add(OrderItem(
                order_id=order.id,
                vinyl_id=line.vinyl_id,
                quantity=line.quantity,
                unit_price=line.unit_price,
            ))

        if coupon is not None:
            redemption_service.redeem_for_order(db, user.id, coupon.code, order.id)
            order.coupon_id = coupon.id

        # Step 6: drop the purchased lines from the cart
        purchased_ids = [line.vinyl_id for line in lines]
        db.query(CartItem).filter(
            CartItem.cart_id.in_(select(Cart.id).where(Cart.user_id == user.id)),
            CartItem.vinyl_id.in_(purchased_ids),
        ).delete(synchronize_session=False)

        # Step 7: points
        if points_to_use > 0:
            points_service.debit(db, user.id, points_to_use, f"Used {points_to_use} points on order {order.order_no}", order_id=order.id)
        points_got = points_service.compute_reward(total_price)
        if points_got > 0:
            points_service.credit(db, user.id, points_got, reward_description(total_price, points_got), order_id=order.id)
        order.points_got = points_got

        # Step 8: payment and logistics rows
        records_service.create_payment_record(db, order, payment_method)
        records_service.create_logistics_info(db, order, logistics_in)

        if request_row is not None:
            request_row.order_id = order.id

        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(order)
    logger.info(
        "Checkout completed for user %s: order %s total %s due %s points +%s/-%s",
        user.id, order.id, order.total_price, order.amount_due, order.points_got, order.points_used,
    )
    return build_checkout_result(order)


def preview(db: Session, user: User, data: CheckoutPreviewIn) -> dict:
    """Summarise the checked cart lines at current prices without reserving anything."""
    rows = (
        db.query(CartItem, Vinyl)
        .join(Cart, Cart.id == CartItem.cart_id)
        .join(Vinyl, Vinyl.id == CartItem.vinyl_id)
        .filter(Cart.user_id == user.id, CartItem.is_checked == True)
        .order_by(CartItem.id)
        .all()
    )
    if not rows:
        raise ValidationError("checked_items_missing")

    if data.points_to_use > 0:
        points_service.ensure_balance(db, user.id, data.points_to_use)

    lines = [
        CartLine(vinyl_id=vinyl.id, quantity=item.quantity, unit_price=vinyl.price, category_id=vinyl.main_category_id)
        for item, vinyl in rows
    ]
    priced = quote(db, user, lines, data.coupon_code, data.points_to_use, data.logistics_type)

    return {
        "items": [
            {
                "vinyl_id": vinyl.id,
                "vinyl_name": vinyl.name,
                "artist": vinyl.artist,
                "unit_price": vinyl.price,
                "quantity": item.quantity,
                "current_stock": vinyl.stock,
                "subtotal": vinyl.price * item.quantity,
            }
            for item, vinyl in rows
        ],
        "total_price": priced.total_price,
        "discount_amount": priced.discount.discount_amount,
        "shipping_fee": priced.shipping_fee - priced.discount.shipping_discount,
        "points_used": data.points_to_use,
        "amount_due": priced.amount_due,
        "points_got": points_service.compute_reward(priced.total_price),
    }

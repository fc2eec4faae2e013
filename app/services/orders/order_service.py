# app/services/orders/order_service.py
import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.helpers.utils import utc_now
from app.models.enums import (
    LogisticsStatus, OrderPaymentStatus, PaymentRecordStatus, ShippingStatus,
)
from app.models.order import LogisticsInfo, Order, PaymentRecord
from app.services.inventory import inventory_service

logger = logging.getLogger(__name__)

CANCELLABLE_STATUSES = (OrderPaymentStatus.PENDING.value, OrderPaymentStatus.CONFIRMED.value)
SHIPPING_FLOW = [ShippingStatus.PROCESSING.value, ShippingStatus.SHIPPED.value, ShippingStatus.DELIVERED.value]


def _get_order(db: Session, order_id: int, user_id: Optional[int] = None) -> Order:
    query = db.query(Order).filter(Order.id == order_id)
    if user_id is not None:
        query = query.filter(Order.user_id == user_id)
    order = query.first()
    if not order:
        raise NotFoundError("order_not_found", {"order_id": order_id})
    return order


def cancel_order(db: Session, order_id: int, user_id: Optional[int] = None) -> Order:
    """
    Cancel an order that has not shipped yet and put its items back in stock.

    The status change is a guarded UPDATE so two concurrent cancellations
    release stock only once. Points and coupon uses are not returned.
    """
    order = _get_order(db, order_id, user_id)
    now = utc_now()

    try:
        updated = (
            db.query(Order)
            .filter(
                Order.id == order_id,
                Order.payment_status.in_(CANCELLABLE_STATUSES),
                Order.shipping_status == ShippingStatus.PROCESSING.value,
            )
            .update(
                {
                    Order.payment_status: OrderPaymentStatus.CANCELLED.value,
                    Order.cancelled_at: now,
                    Order.updated_at: now,
                },
                synchronize_session=False,
            )
        )
        if updated == 0:
            raise ConflictError("order_not_cancellable", {"order_id": order_id})

        for item in order.items:
            inventory_service.release(db, item.vinyl_id, item.quantity, order_id=order_id)

        db.query(PaymentRecord).filter(PaymentRecord.order_id == order_id).update(
            {PaymentRecord.payment_status: PaymentRecordStatus.CANCELLED.value},
            synchronize_session=False,
        )
        db.query(LogisticsInfo).filter(LogisticsInfo.order_id == order_id).update(
            {LogisticsInfo.status: LogisticsStatus.CANCELLED.value},
            synchronize_session=False,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(order)
    logger.info("Order %s cancelled, %s lines returned to stock", order_id, len(order.items))
    return order


def update_payment_status(
    db: Session,
    order_id: int,
    status: str,
    gateway_trade_no: Optional[str] = None,
    user_id: Optional[int] = None,
) -> Order:
    """Apply a payment gateway outcome to the order and its payment record."""
    try:
        status = PaymentRecordStatus(status)
    except ValueError:
        raise ValidationError("invalid_payment_status", {"status": status})

    if status == PaymentRecordStatus.CANCELLED:
        return cancel_order(db, order_id, user_id)

    order = _get_order(db, order_id, user_id)
    if order.payment_status == OrderPaymentStatus.CANCELLED.value:
        raise ConflictError("order_cancelled", {"order_id": order_id})
    # A confirmed payment only leaves success through cancellation
    if order.payment_status == OrderPaymentStatus.CONFIRMED.value and status != PaymentRecordStatus.SUCCESS:
        raise ConflictError("payment_already_confirmed", {"order_id": order_id, "status": status.value})

    record = order.payment_record
    if not record:
        raise NotFoundError("payment_record_not_found", {"order_id": order_id})

    try:
        record.payment_status = status.value
        if gateway_trade_no:
            record.gateway_trade_no = gateway_trade_no
            if not record.merchant_trade_no:
                record.merchant_trade_no = gateway_trade_no[:20]
        if status == PaymentRecordStatus.SUCCESS:
            record.payment_date = utc_now()
            order.payment_status = OrderPaymentStatus.CONFIRMED.value
        else:
            order.payment_status = OrderPaymentStatus.PENDING.value
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(order)
    logger.info("Order %s payment status set to %s", order_id, status.value)
    return order


def update_shipping_status(db: Session, order_id: int, status: str, tracking_number: Optional[str] = None) -> Order:
    order = _get_order(db, order_id)
    if order.payment_status == OrderPaymentStatus.CANCELLED.value:
        raise ConflictError("order_cancelled", {"order_id": order_id})
    if status not in SHIPPING_FLOW:
        raise ValidationError("invalid_shipping_status", {"status": status})
    if SHIPPING_FLOW.index(status) < SHIPPING_FLOW.index(order.shipping_status):
        raise ValidationError("invalid_shipping_transition", {"from": order.shipping_status, "to": status})

    try:
        order.shipping_status = status
        logistics = order.logistics_info
        if logistics:
            if status == ShippingStatus.SHIPPED.value:
                logistics.status = LogisticsStatus.SHIPPED.value
            elif status == ShippingStatus.DELIVERED.value:
                logistics.status = LogisticsStatus.DELIVERED.value
            if tracking_number:
                logistics.tracking_number = tracking_number
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(order)
    return order

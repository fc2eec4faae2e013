from typing import Optional

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session, selectinload

from app.core.errors import NotFoundError
from app.helpers.utils import paginate
from app.models.enums import OrderPaymentStatus, ShippingStatus
from app.models.order import Order, OrderItem, PaymentRecord
from app.models.user import User
from app.schemas.order import OrderFilters

def order_to_dict(order: Order, with_items: bool = True) -> dict:
    data = {
        "id": order.id,
        "order_no": order.order_no,
        "user_id": order.user_id,
        "total_price": order.total_price,
        "discount_amount": order.discount_amount,
        "shipping_fee": order.shipping_fee,
        "shipping_discount": order.shipping_discount,
        "points_used": order.points_used,
        "points_got": order.points_got,
        "amount_due": order.amount_due,
        "coupon_id": order.coupon_id,
        "payment_status": order.payment_status,
        "shipping_status": order.shipping_status,
        "recipient_name": order.recipient_name,
        "recipient_phone": order.recipient_phone,
        "recipient_email": order.recipient_email,
        "shipping_address": order.shipping_address,
        "cancelled_at": order.cancelled_at,
        "created_at": order.created_at,
        "updated_at": order.updated_at,
    }
    if with_items:
        data["items"] = [
            {
                "vinyl_id": item.vinyl_id,
                "name": item.vinyl.name if item.vinyl else None,
                "quantity": item.quantity,
                "unit_price": item.unit_price,
                "subtotal": item.subtotal,
            }
            for item in order.items
        ]
        record = order.payment_record
        data["payment"] = {
            "payment_method": record.payment_method,
            "payment_status": record.payment_status,
            "trade_amount": record.trade_amount,
            "payment_date": record.payment_date,
            "merchant_trade_no": record.merchant_trade_no,
            "gateway_trade_no": record.gateway_trade_no,
        } if record else None
        logistics = order.logistics_info
        data["logistics_info"] = {
            "type": logistics.type,
            "store_id": logistics.store_id,
            "store_name": logistics.store_name,
            "store_telephone": logistics.store_telephone,
            "tracking_number": logistics.tracking_number,
            "status": logistics.status,
        } if logistics else None
    return data

def _apply_filters(query, filters: OrderFilters):
    conditions = []
    if filters.status:
        conditions.append(Order.payment_status == filters.status)
    if filters.from_date:
        conditions.append(Order.created_at >= filters.from_date)
    if filters.to_date:
        conditions.append(Order.created_at <= filters.to_date)
    if filters.search:
        search_conditions = [Order.recipient_name.ilike(f"%{filters.search}%")]
        if filters.search.isdigit():
            search_conditions.append(Order.id == int(filters.search))
        conditions.append(or_(*search_conditions))
    if conditions:
        query = query.filter(and_(*conditions))
    return query

def get_user_orders(db: Session, user_id: int, filters: OrderFilters) -> dict:
    query = (
        db.query(Order)
        .options(selectinload(Order.items))
        .filter(Order.user_id == user_id)
    )
    query = _apply_filters(query, filters).order_by(Order.created_at.desc(), Order.id.desc())
    total, orders = paginate(query, filters.page, filters.page_size)
    return {
        "total": total,
        "items": [
            {**order_to_dict(order, with_items=False), "item_count": len(order.items)}
            for order in orders
        ],
    }

def get_order_detail(db: Session, user_id: Optional[int], order_ref: str) -> dict:
    """Look an order up by id, or by merchant trade number as gateways report it."""
    query = db.query(Order)
    if order_ref.isdigit():
        query = query.filter(Order.id == int(order_ref))
    else:
        query = query.join(PaymentRecord, PaymentRecord.order_id == Order.id).filter(
            PaymentRecord.merchant_trade_no == order_ref
        )
    if user_id is not None:
        query = query.filter(Order.user_id == user_id)
    order = query.first()
    if not order:
        raise NotFoundError("order_not_found", {"order_ref": order_ref})
    return order_to_dict(order)

def get_admin_orders(db: Session, filters: OrderFilters) -> dict:
    item_counts = (
        db.query(OrderItem.order_id, func.count(OrderItem.id).label("item_count"))
        .group_by(OrderItem.order_id)
        .subquery()
    )
    query = (
        db.query(Order, User.account, User.name, User.email, func.coalesce(item_counts.c.item_count, 0))
        .outerjoin(User, User.id == Order.user_id)
        .outerjoin(item_counts, item_counts.c.order_id == Order.id)
    )
    query = _apply_filters(query, filters).order_by(Order.created_at.desc(), Order.id.desc())
    total, rows = paginate(query, filters.page, filters.page_size)

    items = [
        {
            **order_to_dict(order, with_items=False),
            "customer_account": account,
            "customer_name": name,
            "customer_email": email,
            "item_count": item_count,
        }
        for order, account, name, email, item_count in rows
    ]
    return {"total": total, "items": items, "meta": get_order_meta(db)}

def get_order_meta(db: Session) -> dict:
    by_shipping = dict(
        db.query(Order.shipping_status, func.count(Order.id))
        .filter(Order.payment_status != OrderPaymentStatus.CANCELLED.value)
        .group_by(Order.shipping_status)
        .all()
    )
    cancelled = db.query(func.count(Order.id)).filter(Order.payment_status == OrderPaymentStatus.CANCELLED.value).scalar()
    revenue = (
        db.query(func.coalesce(func.sum(Order.amount_due), 0))
        .filter(Order.payment_status != OrderPaymentStatus.CANCELLED.value)
        .scalar()
    )
    return {
        "total": db.query(func.count(Order.id)).scalar(),
        "processing": by_shipping.get(ShippingStatus.PROCESSING.value, 0),
        "shipped": by_shipping.get(ShippingStatus.SHIPPED.value, 0),
        "delivered": by_shipping.get(ShippingStatus.DELIVERED.value, 0),
        "cancelled": cancelled,
        "total_revenue": revenue,
    }

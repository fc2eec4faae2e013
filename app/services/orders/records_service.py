# app/services/orders/records_service.py
"""Payment and logistics rows created alongside an order."""
from typing import Optional

from sqlalchemy.orm import Session

from app.helpers.utils import build_merchant_trade_no, utc_now
from app.models.enums import LogisticsStatus, LogisticsType, PaymentMethod, PaymentRecordStatus
from app.models.order import LogisticsInfo, Order, PaymentRecord
from app.schemas.order import LogisticsInfoIn


def create_payment_record(db: Session, order: Order, payment_method: PaymentMethod) -> PaymentRecord:
    now = utc_now()
    merchant_trade_no = build_merchant_trade_no(order.id, now)

    record = PaymentRecord(
        order_id=order.id,
        payment_method=payment_method.value,
        # LINE Pay fills this in with its transaction id on confirmation
        merchant_trade_no=None if payment_method == PaymentMethod.LINE_PAY else merchant_trade_no,
        gateway_trade_no=merchant_trade_no if payment_method == PaymentMethod.ECPAY else None,
        payment_status=PaymentRecordStatus.PENDING.value,
        trade_amount=order.amount_due,
        payment_date=now,
    )
    db.add(record)
    return record


def create_logistics_info(db: Session, order: Order, info: Optional[LogisticsInfoIn]) -> LogisticsInfo:
    info = info or LogisticsInfoIn()
    logistics = LogisticsInfo(
        order_id=order.id,
        type=(info.type or LogisticsType.HOME).value,
        store_id=info.store_id,
        store_name=info.store_name,
        store_telephone=info.store_telephone,
        tracking_number=info.tracking_number,
        status=LogisticsStatus.PENDING.value,
    )
    db.add(logistics)
    return logistics

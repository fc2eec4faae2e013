import logging
from fastapi import APIRouter, Depends, Request
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session
from app.core.dependencies import require_admin
from app.core.errors import AppError
from app.helpers.response import ResponseHandler
from app.crud import order as crud_order
from app.db.session import get_db
from app.helpers.translator import Translator
from app.helpers.utils import get_lang_from_request
from app.schemas.order import OrderFilters, PaymentStatusUpdate, ShippingStatusUpdate
from app.services.orders import order_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/admin/v1/order",
    tags=["Admin Order"],
    dependencies=[Depends(require_admin)]
)
translator = Translator()

@router.post("/get-orders")
def get_orders(filters: OrderFilters, request: Request, db: Session = Depends(get_db)):
    lang = get_lang_from_request(request)
    try:
        data = crud_order.get_admin_orders(db, filters)
        return ResponseHandler.success(message=translator.t("orders_retrieved", lang), data=jsonable_encoder(data))
    except AppError as e:
        return ResponseHandler.from_error(e, translator.t(e.key, lang))
    except Exception as e:
        logger.exception("Listing orders failed")
        return ResponseHandler.internal_error(message=translator.t("something_went_wrong", lang), error=str(e))

@router.get("/order-detail/{order_ref}")
def get_order_detail(order_ref: str, request: Request, db: Session = Depends(get_db)):
    lang = get_lang_from_request(request)
    try:
        data = crud_order.get_order_detail(db, None, order_ref)
        return ResponseHandler.success(message=translator.t("order_retrieved", lang), data=jsonable_encoder(data))
    except AppError as e:
        return ResponseHandler.from_error(e, translator.t(e.key, lang))
    except Exception as e:
        logger.exception("Loading order %s failed", order_ref)
        return ResponseHandler.internal_error(message=translator.t("something_went_wrong", lang), error=str(e))

@router.patch("/payment-status/{order_id}")
def update_payment_status(order_id: int, payload: PaymentStatusUpdate, request: Request, db: Session = Depends(get_db)):
    lang = get_lang_from_request(request)
    try:
        order = order_service.update_payment_status(db, order_id, payload.status, gateway_trade_no=payload.gateway_trade_no)
        data = {"order_id": order.id, "payment_status": order.payment_status}
        return ResponseHandler.success(message=translator.t("payment_status_updated", lang), data=data)
    except AppError as e:
        return ResponseHandler.from_error(e, translator.t(e.key, lang))
    except Exception as e:
        logger.exception("Payment status update for order %s failed", order_id)
        return ResponseHandler.internal_error(message=translator.t("something_went_wrong", lang), error=str(e))

@router.patch("/shipping-status/{order_id}")
def update_shipping_status(order_id: int, payload: ShippingStatusUpdate, request: Request, db: Session = Depends(get_db)):
    lang = get_lang_from_request(request)
    try:
        order = order_service.update_shipping_status(db, order_id, payload.status, tracking_number=payload.tracking_number)
        data = {"order_id": order.id, "shipping_status": order.shipping_status}
        return ResponseHandler.success(message=translator.t("shipping_status_updated", lang), data=data)
    except AppError as e:
        return ResponseHandler.from_error(e, translator.t(e.key, lang))
    except Exception as e:
        logger.exception("Shipping status update for order %s failed", order_id)
        return ResponseHandler.internal_error(message=translator.t("something_went_wrong", lang), error=str(e))

@router.patch("/cancel/{order_id}")
def cancel_order(order_id: int, request: Request, db: Session = Depends(get_db)):
    lang = get_lang_from_request(request)
    try:
        order = order_service.cancel_order(db, order_id)
        data = {"order_id": order.id, "payment_status": order.payment_status, "cancelled_at": order.cancelled_at}
        return ResponseHandler.success(message=translator.t("order_cancelled_successfully", lang), data=jsonable_encoder(data))
    except AppError as e:
        return ResponseHandler.from_error(e, translator.t(e.key, lang))
    except Exception as e:
        logger.exception("Cancelling order %s failed", order_id)
        return ResponseHandler.internal_error(message=translator.t("something_went_wrong", lang), error=str(e))

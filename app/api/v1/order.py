import logging
from typing import Optional
from fastapi import APIRouter, Depends, Header, Request
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session
from app.core.dependencies import get_current_user
from app.core.errors import AppError
from app.helpers.response import ResponseHandler
from app.crud import order as crud_order
from app.db.session import get_db
from app.helpers.translator import Translator
from app.helpers.utils import get_lang_from_request
from app.schemas.order import CheckoutIn, CheckoutPreviewIn, OrderFilters, PaymentStatusUpdate
from app.services.notifications.notification_service import LoggingNotifier, get_notifier
from app.services.orders import checkout_service, order_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/orders",
    tags=["Order"],
    dependencies=[Depends(get_current_user)]
)
translator = Translator()

@router.post("/checkout")
def checkout(
    payload: CheckoutIn,
    request: Request,
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key"),
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
    notifier: LoggingNotifier = Depends(get_notifier),
):
    lang = get_lang_from_request(request)
    try:
        result = checkout_service.checkout(db, current_user, payload, idempotency_key=idempotency_key)
        if payload.recipient.email and not result.replayed:
            notifier.send_order_confirmation(payload.recipient.email, result.order_no, result.amount_due)
        return ResponseHandler.success(
            message=translator.t("order_created", lang),
            data=jsonable_encoder(result),
            code=200 if result.replayed else 201,
        )
    except AppError as e:
        return ResponseHandler.from_error(e, translator.t(e.key, lang))
    except Exception as e:
        logger.exception("Checkout failed for user %s", current_user.id)
        return ResponseHandler.internal_error(message=translator.t("something_went_wrong", lang), error=str(e))

@router.post("/preview")
def preview_order(payload: CheckoutPreviewIn, request: Request, db: Session = Depends(get_db), current_user=Depends(get_current_user)):
    lang = get_lang_from_request(request)
    try:
        data = checkout_service.preview(db, current_user, payload)
        return ResponseHandler.success(message=translator.t("order_preview_ready", lang), data=jsonable_encoder(data))
    except AppError as e:
        return ResponseHandler.from_error(e, translator.t(e.key, lang))
    except Exception as e:
        logger.exception("Order preview failed for user %s", current_user.id)
        return ResponseHandler.internal_error(message=translator.t("something_went_wrong", lang), error=str(e))

@router.get("")
def get_orders(request: Request, filters: OrderFilters = Depends(), db: Session = Depends(get_db), current_user=Depends(get_current_user)):
    lang = get_lang_from_request(request)
    try:
        data = crud_order.get_user_orders(db, current_user.id, filters)
        return ResponseHandler.success(message=translator.t("orders_retrieved", lang), data=jsonable_encoder(data))
    except AppError as e:
        return ResponseHandler.from_error(e, translator.t(e.key, lang))
    except Exception as e:
        logger.exception("Failed to list orders of user %s", current_user.id)
        return ResponseHandler.internal_error(message=translator.t("something_went_wrong", lang), error=str(e))

@router.get("/{order_ref}")
def get_order(order_ref: str, request: Request, db: Session = Depends(get_db), current_user=Depends(get_current_user)):
    lang = get_lang_from_request(request)
    try:
        data = crud_order.get_order_detail(db, current_user.id, order_ref)
        return ResponseHandler.success(message=translator.t("order_retrieved", lang), data=jsonable_encoder(data))
    except AppError as e:
        return ResponseHandler.from_error(e, translator.t(e.key, lang))
    except Exception as e:
        logger.exception("Failed to load order %s", order_ref)
        return ResponseHandler.internal_error(message=translator.t("something_went_wrong", lang), error=str(e))

@router.patch("/{order_id}/cancel")
def cancel_order(order_id: int, request: Request, db: Session = Depends(get_db), current_user=Depends(get_current_user)):
    lang = get_lang_from_request(request)
    try:
        order = order_service.cancel_order(db, order_id, user_id=current_user.id)
        data = {"order_id": order.id, "payment_status": order.payment_status, "cancelled_at": order.cancelled_at}
        return ResponseHandler.success(message=translator.t("order_cancelled_successfully", lang), data=jsonable_encoder(data))
    except AppError as e:
        return ResponseHandler.from_error(e, translator.t(e.key, lang))
    except Exception as e:
        logger.exception("Cancelling order %s failed", order_id)
        return ResponseHandler.internal_error(message=translator.t("something_went_wrong", lang), error=str(e))

@router.patch("/{order_id}/payment-status")
def update_payment_status(order_id: int, payload: PaymentStatusUpdate, request: Request, db: Session = Depends(get_db), current_user=Depends(get_current_user)):
    lang = get_lang_from_request(request)
    try:
        order = order_service.update_payment_status(
            db, order_id, payload.status, gateway_trade_no=payload.gateway_trade_no, user_id=current_user.id
        )
        data = {"order_id": order.id, "payment_status": order.payment_status}
        return ResponseHandler.success(message=translator.t("payment_status_updated", lang), data=jsonable_encoder(data))
    except AppError as e:
        return ResponseHandler.from_error(e, translator.t(e.key, lang))
    except Exception as e:
        logger.exception("Payment status update for order %s failed", order_id)
        return ResponseHandler.internal_error(message=translator.t("something_went_wrong", lang), error=str(e))

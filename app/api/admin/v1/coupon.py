import logging
from fastapi import APIRouter, Depends, Request
from fastapi.encoders import jsonable_encoder # type: ignore
from sqlalchemy.orm import Session
from app.core.dependencies import require_admin
from app.core.errors import AppError
from app.helpers.response import ResponseHandler
from app.crud import coupon as crud_coupon
from app.db.session import get_db
from app.helpers.translator import Translator
from app.helpers.utils import get_lang_from_request
from app.schemas.coupon import (
    BulkCouponStatusUpdate, CouponCodes, CouponFilters, CouponStatusUpdate, CreateCoupon, UpdateCoupon,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/admin/v1/coupon",
    tags=["Admin Coupon"],
    dependencies=[Depends(require_admin)]
)
translator = Translator()

@router.post("/create-coupon")
def create_coupon(coupon_in: CreateCoupon, request: Request, db: Session = Depends(get_db)):
    lang = get_lang_from_request(request)
    try:
        coupon = crud_coupon.create_coupon(db, coupon_in)
        return ResponseHandler.success(
            message=translator.t("coupon_created", lang),
            data=jsonable_encoder(crud_coupon.coupon_to_dict(coupon)),
            code=201,
        )
    except AppError as e:
        return ResponseHandler.from_error(e, translator.t(e.key, lang))
    except Exception as e:
        logger.exception("Creating coupon %s failed", coupon_in.code)
        return ResponseHandler.internal_error(message=translator.t("something_went_wrong", lang), error=str(e))

@router.get("/get-coupon/{code}")
def get_coupon(code: str, request: Request, db: Session = Depends(get_db)):
    lang = get_lang_from_request(request)
    try:
        coupon = crud_coupon.get_coupon_or_404(db, code, include_deleted=True)
        return ResponseHandler.success(
            message=translator.t("coupon_retrieved", lang),
            data=jsonable_encoder(crud_coupon.coupon_to_dict(coupon)),
        )
    except AppError as e:
        return ResponseHandler.from_error(e, translator.t(e.key, lang))
    except Exception as e:
        logger.exception("Loading coupon %s failed", code)
        return ResponseHandler.internal_error(message=translator.t("something_went_wrong", lang), error=str(e))

@router.put("/update-coupon/{code}")
def update_coupon(code: str, coupon_in: UpdateCoupon, request: Request, db: Session = Depends(get_db)):
    lang = get_lang_from_request(request)
    try:
        coupon = crud_coupon.update_coupon(db, code, coupon_in)
        return ResponseHandler.success(
            message=translator.t("coupon_updated", lang),
            data=jsonable_encoder(crud_coupon.coupon_to_dict(coupon)),
        )
    except AppError as e:
        return ResponseHandler.from_error(e, translator.t(e.key, lang))
    except Exception as e:
        logger.exception("Updating coupon %s failed", code)
        return ResponseHandler.internal_error(message=translator.t("something_went_wrong", lang), error=str(e))

@router.patch("/toggle-status")
def toggle_status(payload: CouponStatusUpdate, request: Request, db: Session = Depends(get_db)):
    lang = get_lang_from_request(request)
    try:
        coupon = crud_coupon.toggle_status(db, payload.code, payload.status)
        return ResponseHandler.success(
            message=translator.t("coupon_status_updated", lang),
            data={"code": coupon.code, "status": coupon.status},
        )
    except AppError as e:
        return ResponseHandler.from_error(e, translator.t(e.key, lang))
    except Exception as e:
        logger.exception("Toggling coupon %s failed", payload.code)
        return ResponseHandler.internal_error(message=translator.t("something_went_wrong", lang), error=str(e))

@router.patch("/bulk-status")
def bulk_status(payload: BulkCouponStatusUpdate, request: Request, db: Session = Depends(get_db)):
    lang = get_lang_from_request(request)
    try:
        data = crud_coupon.bulk_update_status(db, payload)
        return ResponseHandler.success(message=translator.t("coupon_status_updated", lang), data=data)
    except AppError as e:
        return ResponseHandler.from_error(e, translator.t(e.key, lang))
    except Exception as e:
        logger.exception("Bulk coupon status update failed")
        return ResponseHandler.internal_error(message=translator.t("something_went_wrong", lang), error=str(e))

@router.delete("/delete-coupon/{code}")
def delete_coupon(code: str, request: Request, db: Session = Depends(get_db)):
    lang = get_lang_from_request(request)
    try:
        crud_coupon.soft_delete_coupon(db, code)
        return ResponseHandler.success(message=translator.t("coupon_deleted", lang), data=True)
    except AppError as e:
        return ResponseHandler.from_error(e, translator.t(e.key, lang))
    except Exception as e:
        logger.exception("Deleting coupon %s failed", code)
        return ResponseHandler.internal_error(message=translator.t("something_went_wrong", lang), error=str(e))

@router.post("/bulk-delete")
def bulk_delete(payload: CouponCodes, request: Request, db: Session = Depends(get_db)):
    lang = get_lang_from_request(request)
    try:
        data = crud_coupon.bulk_soft_delete(db, payload.codes)
        return ResponseHandler.success(message=translator.t("coupon_deleted", lang), data=data)
    except AppError as e:
        return ResponseHandler.from_error(e, translator.t(e.key, lang))
    except Exception as e:
        logger.exception("Bulk coupon delete failed")
        return ResponseHandler.internal_error(message=translator.t("something_went_wrong", lang), error=str(e))

@router.post("/get-coupons")
def get_coupons(filters: CouponFilters, request: Request, db: Session = Depends(get_db)):
    lang = get_lang_from_request(request)
    try:
        data = crud_coupon.get_admin_coupons(db, filters)
        return ResponseHandler.success(message=translator.t("coupons_retrieved", lang), data=jsonable_encoder(data))
    except AppError as e:
        return ResponseHandler.from_error(e, translator.t(e.key, lang))
    except Exception as e:
        logger.exception("Listing coupons failed")
        return ResponseHandler.internal_error(message=translator.t("something_went_wrong", lang), error=str(e))

@router.get("/count")
def count_coupons(request: Request, db: Session = Depends(get_db)):
    lang = get_lang_from_request(request)
    try:
        return ResponseHandler.success(
            message=translator.t("coupons_retrieved", lang),
            data={"count": crud_coupon.count_coupons(db)},
        )
    except Exception as e:
        logger.exception("Counting coupons failed")
        return ResponseHandler.internal_error(message=translator.t("something_went_wrong", lang), error=str(e))

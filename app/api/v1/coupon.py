import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request
from fastapi.encoders import jsonable_encoder # type: ignore
from sqlalchemy.orm import Session
from app.core.dependencies import get_current_user, get_optional_user
from app.core.errors import AppError
from app.helpers.response import ResponseHandler
from app.crud import coupon as crud_coupon
from app.db.session import get_db
from app.helpers.translator import Translator
from app.helpers.utils import get_lang_from_request
from app.models.enums import UserCouponState
from app.schemas.order import RedeemCouponIn
from app.services.coupons import allocation_service, redemption_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/coupons",
    tags=["Coupon"],
)
translator = Translator()

@router.get("")
def get_claimable_coupons(
    request: Request,
    discount_type: Optional[str] = None,
    target_value: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(12, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user=Depends(get_optional_user),
):
    lang = get_lang_from_request(request)
    try:
        data = crud_coupon.get_claimable_coupons(
            db, current_user.id if current_user else None, discount_type, target_value, page, page_size
        )
        return ResponseHandler.success(message=translator.t("coupons_retrieved", lang), data=jsonable_encoder(data))
    except AppError as e:
        return ResponseHandler.from_error(e, translator.t(e.key, lang))
    except Exception as e:
        logger.exception("Failed to list claimable coupons")
        return ResponseHandler.internal_error(message=translator.t("something_went_wrong", lang), error=str(e))

@router.get("/details")
def get_coupon_details(request: Request, codes: str = Query(...), db: Session = Depends(get_db)):
    lang = get_lang_from_request(request)
    try:
        data = crud_coupon.get_coupon_details(db, codes.split(","))
        return ResponseHandler.success(message=translator.t("coupons_retrieved", lang), data=jsonable_encoder(data))
    except AppError as e:
        return ResponseHandler.from_error(e, translator.t(e.key, lang))
    except Exception as e:
        logger.exception("Failed to load coupon details")
        return ResponseHandler.internal_error(message=translator.t("something_went_wrong", lang), error=str(e))

@router.get("/mine")
def get_my_coupons(
    request: Request,
    state: UserCouponState = UserCouponState.ACTIVE,
    page: int = Query(1, ge=1),
    page_size: int = Query(4, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    lang = get_lang_from_request(request)
    try:
        data = crud_coupon.get_user_coupons(db, current_user.id, state, page, page_size)
        return ResponseHandler.success(message=translator.t("coupons_retrieved", lang), data=jsonable_encoder(data))
    except AppError as e:
        return ResponseHandler.from_error(e, translator.t(e.key, lang))
    except Exception as e:
        logger.exception("Failed to list coupons of user %s", current_user.id)
        return ResponseHandler.internal_error(message=translator.t("something_went_wrong", lang), error=str(e))

@router.get("/usable")
def get_usable_coupons(request: Request, db: Session = Depends(get_db), current_user=Depends(get_current_user)):
    lang = get_lang_from_request(request)
    try:
        data = crud_coupon.get_usable_coupons(db, current_user.id)
        return ResponseHandler.success(message=translator.t("coupons_retrieved", lang), data=jsonable_encoder(data))
    except AppError as e:
        return ResponseHandler.from_error(e, translator.t(e.key, lang))
    except Exception as e:
        logger.exception("Failed to list usable coupons of user %s", current_user.id)
        return ResponseHandler.internal_error(message=translator.t("something_went_wrong", lang), error=str(e))

@router.post("/claim-all")
def claim_all_coupons(
    request: Request,
    discount_type: Optional[str] = None,
    target_value: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    lang = get_lang_from_request(request)
    try:
        claims = allocation_service.claim_all(db, current_user.id, discount_type, target_value)
        data = [
            {"coupon_code": c.coupon_code, "remaining_uses": c.remaining_uses, "expires_at": c.expires_at}
            for c in claims
        ]
        return ResponseHandler.success(message=translator.t("coupons_claimed", lang), data=jsonable_encoder(data), code=201)
    except AppError as e:
        return ResponseHandler.from_error(e, translator.t(e.key, lang))
    except Exception as e:
        logger.exception("Claim-all failed for user %s", current_user.id)
        return ResponseHandler.internal_error(message=translator.t("something_went_wrong", lang), error=str(e))

@router.post("/{code}/claim")
def claim_coupon(code: str, request: Request, db: Session = Depends(get_db), current_user=Depends(get_current_user)):
    lang = get_lang_from_request(request)
    try:
        claim = allocation_service.claim(db, current_user.id, code)
        coupon = claim.coupon
        data = {
            "coupon_code": claim.coupon_code,
            "name": coupon.name,
            "discount_type": coupon.discount_type,
            "discount_value": coupon.discount_value,
            "remaining_uses": claim.remaining_uses,
            "expires_at": claim.expires_at,
            "claimed_at": claim.claimed_at,
        }
        return ResponseHandler.success(message=translator.t("coupon_claimed", lang), data=jsonable_encoder(data), code=201)
    except AppError as e:
        return ResponseHandler.from_error(e, translator.t(e.key, lang))
    except Exception as e:
        logger.exception("Claim of %s failed for user %s", code, current_user.id)
        return ResponseHandler.internal_error(message=translator.t("something_went_wrong", lang), error=str(e))

@router.post("/{code}/redeem")
def redeem_coupon(code: str, payload: RedeemCouponIn, request: Request, db: Session = Depends(get_db), current_user=Depends(get_current_user)):
    lang = get_lang_from_request(request)
    try:
        usage = redemption_service.redeem(db, current_user.id, code, payload.order_id)
        data = {
            "coupon_code": usage.coupon_code,
            "order_id": usage.order_id,
            "used_at": usage.used_at,
        }
        return ResponseHandler.success(message=translator.t("coupon_redeemed", lang), data=jsonable_encoder(data), code=201)
    except AppError as e:
        return ResponseHandler.from_error(e, translator.t(e.key, lang))
    except Exception as e:
        logger.exception("Redemption of %s failed for user %s", code, current_user.id)
        return ResponseHandler.internal_error(message=translator.t("something_went_wrong", lang), error=str(e))

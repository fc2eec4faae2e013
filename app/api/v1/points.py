import logging
from fastapi import APIRouter, Depends, Query, Request
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session
from app.core.dependencies import get_current_user
from app.core.errors import AppError
from app.helpers.response import ResponseHandler
from app.crud import points as crud_points
from app.db.session import get_db
from app.helpers.translator import Translator
from app.helpers.utils import get_lang_from_request
from app.services.points import points_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/points",
    tags=["Points"],
    dependencies=[Depends(get_current_user)]
)
translator = Translator()

@router.get("/balance")
def get_balance(request: Request, db: Session = Depends(get_db), current_user=Depends(get_current_user)):
    lang = get_lang_from_request(request)
    try:
        data = {"user_id": current_user.id, "points": points_service.get_balance(db, current_user.id)}
        return ResponseHandler.success(message=translator.t("points_retrieved", lang), data=data)
    except AppError as e:
        return ResponseHandler.from_error(e, translator.t(e.key, lang))
    except Exception as e:
        logger.exception("Failed to read points balance of user %s", current_user.id)
        return ResponseHandler.internal_error(message=translator.t("something_went_wrong", lang), error=str(e))

@router.get("/summary")
def get_summary(request: Request, db: Session = Depends(get_db), current_user=Depends(get_current_user)):
    lang = get_lang_from_request(request)
    try:
        data = crud_points.get_points_summary(db, current_user.id)
        return ResponseHandler.success(message=translator.t("points_retrieved", lang), data=jsonable_encoder(data))
    except AppError as e:
        return ResponseHandler.from_error(e, translator.t(e.key, lang))
    except Exception as e:
        logger.exception("Failed to build points summary of user %s", current_user.id)
        return ResponseHandler.internal_error(message=translator.t("something_went_wrong", lang), error=str(e))

@router.get("/history")
def get_history(
    request: Request,
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    lang = get_lang_from_request(request)
    try:
        data = crud_points.get_points_history(db, current_user.id, page, page_size)
        return ResponseHandler.success(message=translator.t("points_retrieved", lang), data=jsonable_encoder(data))
    except AppError as e:
        return ResponseHandler.from_error(e, translator.t(e.key, lang))
    except Exception as e:
        logger.exception("Failed to read points history of user %s", current_user.id)
        return ResponseHandler.internal_error(message=translator.t("something_went_wrong", lang), error=str(e))

import logging
from fastapi import APIRouter, Depends, Request
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session
from app.core.dependencies import require_admin
from app.core.errors import AppError
from app.helpers.response import ResponseHandler
from app.db.session import get_db
from app.helpers.translator import Translator
from app.helpers.utils import get_lang_from_request
from app.schemas.points import AdjustPoints
from app.services.points import points_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/admin/v1/points",
    tags=["Admin Points"],
    dependencies=[Depends(require_admin)]
)
translator = Translator()

@router.post("/adjust")
def adjust_points(payload: AdjustPoints, request: Request, db: Session = Depends(get_db)):
    lang = get_lang_from_request(request)
    try:
        entry = points_service.adjust(db, payload.user_id, payload.delta, payload.reason)
        data = {
            "entry_id": entry.id,
            "user_id": entry.user_id,
            "points": entry.points,
            "balance": points_service.get_balance(db, payload.user_id),
            "created_at": entry.created_at,
        }
        return ResponseHandler.success(message=translator.t("points_adjusted", lang), data=jsonable_encoder(data))
    except AppError as e:
        return ResponseHandler.from_error(e, translator.t(e.key, lang))
    except Exception as e:
        logger.exception("Adjusting points for user %s failed", payload.user_id)
        return ResponseHandler.internal_error(message=translator.t("something_went_wrong", lang), error=str(e))

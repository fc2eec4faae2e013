import logging
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from app.core.errors import AppError
from app.helpers.response import ResponseHandler
from app.db.session import get_db
from app.helpers.translator import Translator
from app.helpers.utils import get_lang_from_request
from app.schemas.verification import IssueCode, VerifyCode
from app.services.notifications.notification_service import LoggingNotifier, get_notifier
from app.services.verification.code_store import SqlVerificationCodeStore, VerificationCodeStore

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/verification",
    tags=["Verification"],
)
translator = Translator()

def get_code_store(db: Session = Depends(get_db)) -> VerificationCodeStore:
    return SqlVerificationCodeStore(db)

@router.post("/issue")
def issue_code(
    payload: IssueCode,
    request: Request,
    store: VerificationCodeStore = Depends(get_code_store),
    notifier: LoggingNotifier = Depends(get_notifier),
):
    lang = get_lang_from_request(request)
    try:
        code = store.issue(payload.subject, payload.purpose.value)
        notifier.send_verification_code(payload.subject, payload.purpose.value, code)
        return ResponseHandler.success(message=translator.t("code_sent", lang))
    except AppError as e:
        return ResponseHandler.from_error(e, translator.t(e.key, lang))
    except Exception as e:
        logger.exception("Issuing a verification code failed")
        return ResponseHandler.internal_error(message=translator.t("something_went_wrong", lang), error=str(e))

@router.post("/verify")
def verify_code(payload: VerifyCode, request: Request, store: VerificationCodeStore = Depends(get_code_store)):
    lang = get_lang_from_request(request)
    try:
        store.verify(payload.subject, payload.purpose.value, payload.code)
        return ResponseHandler.success(message=translator.t("code_verified", lang), data=True)
    except AppError as e:
        return ResponseHandler.from_error(e, translator.t(e.key, lang))
    except Exception as e:
        logger.exception("Verifying a code failed")
        return ResponseHandler.internal_error(message=translator.t("something_went_wrong", lang), error=str(e))

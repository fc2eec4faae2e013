import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from starlette.exceptions import HTTPException as StarletteHTTPException
from app.api.admin.v1 import coupon as admin_coupon, order as admin_order, points as admin_points
from app.api.v1 import coupon, order, points, verification
from app.core.errors import AppError, ErrorKind
from app.helpers.response import ResponseHandler
from app.helpers.translator import Translator
from app.helpers.utils import get_lang_from_request

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

translator = Translator()

def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema
    openapi_schema = get_openapi(
        title="Groove Store API",
        version="1.0",
        description="Coupons, points and checkout for the record store",
        routes=app.routes,
    )
    openapi_schema.setdefault("components", {})["securitySchemes"] = {
        "BearerAuth": {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
        }
    }
    for path in openapi_schema["paths"].values():
        for operation in path.values():
            operation["security"] = [{"BearerAuth": []}]
    app.openapi_schema = openapi_schema
    return app.openapi_schema

app = FastAPI(title="Groove Store API", version="1.0")

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    lang = get_lang_from_request(request)
    return ResponseHandler.from_error(exc, translator.t(exc.key, lang))

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    lang = get_lang_from_request(request)
    return ResponseHandler.bad_request(
        message=translator.t("validation_error", lang),
        error={
            "kind": ErrorKind.VALIDATION.value,
            "key": "validation_error",
            "errors": [{"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]} for err in exc.errors()],
        },
    )

@app.exception_handler(StarletteHTTPException)
async def custom_http_exception_handler(request: Request, exc: StarletteHTTPException):
    lang = get_lang_from_request(request)
    if exc.status_code == 401:
        return ResponseHandler.unauthorized(message=translator.t("unauthorized", lang))
    if exc.status_code == 404:
        return ResponseHandler.not_found(message=translator.t("not_found", lang), data={"detail": exc.detail})
    return ResponseHandler.bad_request(
        message=translator.t("something_went_wrong", lang),
        data={"detail": exc.detail},
        code=exc.status_code,
    )

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.openapi = custom_openapi

app.include_router(coupon.router)
app.include_router(order.router)
app.include_router(points.router)
app.include_router(verification.router)
app.include_router(admin_coupon.router)
app.include_router(admin_order.router)
app.include_router(admin_points.router)

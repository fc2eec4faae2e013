from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from typing import Any
from pydantic import BaseModel

def safe_serialize(obj: Any) -> Any:
    if isinstance(obj, BaseModel):
        return jsonable_encoder(obj.model_dump())
    if obj is None:
        return obj
    return jsonable_encoder(obj)

def _error(message: str, error: Any, data: Any, code: int) -> JSONResponse:
    return JSONResponse(
        status_code=code,
        content={
            "status": "error",
            "code": code,
            "message": message,
            "data": safe_serialize(data),
            "error": safe_serialize(error),
        },
    )

class ResponseHandler:
    @staticmethod
    def success(
        data: Any = None,
        message: str = "Success",
        code: int = 200
    ) -> JSONResponse:
        return JSONResponse(
            status_code=code,
            content={
                "status": "success",
                "code": code,
                "message": message,
                "data": safe_serialize(data),
            },
        )

    @staticmethod
    def bad_request(message: str = "Bad Request", error: Any = None, data: Any = None, code: int = 400) -> JSONResponse:
        return _error(message, error or {}, data, code)

    @staticmethod
    def unauthorized(message: str = "Unauthorized", error: Any = None, data: Any = None, code: int = 401) -> JSONResponse:
        return _error(message, error or {}, data, code)

    @staticmethod
    def forbidden(message: str = "Forbidden", error: Any = None, data: Any = None, code: int = 403) -> JSONResponse:
        return _error(message, error or {}, data, code)

    @staticmethod
    def not_found(message: str = "Not Found", error: Any = None, data: Any = None, code: int = 404) -> JSONResponse:
        return _error(message, error or {}, data, code)

    @staticmethod
    def conflict(message: str = "Conflict", error: Any = None, data: Any = None, code: int = 409) -> JSONResponse:
        return _error(message, error or {}, data, code)

    @staticmethod
    def internal_error(message: str = "Internal Server Error", error: Any = None, data: Any = None, code: int = 500) -> JSONResponse:
        return _error(message, error or {}, data, code)

    @staticmethod
    def from_error(exc, message: str) -> JSONResponse:
        """Render an AppError with the status code its kind maps to."""
        return _error(message, exc.to_error(), None, exc.status_code)

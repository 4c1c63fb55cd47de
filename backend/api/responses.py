"""
Response envelopes and exception handlers.

Two API surfaces share the service layer but answer in different shapes:

    CRUD  /api/...     {"success", "message", "data", "errors"}
    AI    /api/ai/...  {"success", "data"} or {"success": false, "error_code", "message"}

The CRUD surface reports AccessDenied as a 404 so that other users' ids are
indistinguishable from missing ones; the AI surface keeps 403 and 404 apart.
"""
import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from services.errors import AccessDenied, ServiceError, StorageError

logger = logging.getLogger(__name__)

AI_PREFIX = "/api/ai/"

HTTP_STATUS_CODES = {
    400: "VALIDATION_ERROR",
    401: "UNAUTHORIZED",
    403: "ACCESS_DENIED",
    404: "ENTITY_NOT_FOUND",
    405: "VALIDATION_ERROR",
    409: "CONFLICT",
}


def is_ai_request(request: Request) -> bool:
    path = request.url.path
    return path.startswith(AI_PREFIX) or path == AI_PREFIX.rstrip("/")


# --- CRUD surface ---

def crud_success(data: Any = None, message: str = "Success") -> dict:
    return {"success": True, "message": message, "data": data, "errors": None}


def crud_error(message: str, status_code: int = 400, errors: Any = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder({"success": False, "message": message, "data": None, "errors": errors}),
    )


# --- AI surface ---

def ai_success(data: Any = None) -> dict:
    return {"success": True, "data": data}


def ai_error(error_code: str, message: str, status_code: int = 400) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error_code": error_code, "message": message},
    )


def render_service_error(request: Request, exc: ServiceError) -> JSONResponse:
    if is_ai_request(request):
        return ai_error(exc.error_code, exc.message, exc.status_code)
    if isinstance(exc, AccessDenied) and exc.entity:
        return crud_error(f"{exc.entity} not found", status.HTTP_404_NOT_FOUND)
    return crud_error(exc.message, exc.status_code, exc.details)


def _validation_messages(exc: RequestValidationError) -> list[dict]:
    messages = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        messages.append({"field": ".".join(loc) or None, "message": err.get("msg", "Invalid value")})
    return messages


async def service_error_handler(request: Request, exc: ServiceError):
    if exc.status_code >= 500:
        logger.error("Service error on %s %s: %s", request.method, request.url.path, exc.message)
    return render_service_error(request, exc)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    messages = _validation_messages(exc)
    summary = "; ".join(
        f"{m['field']}: {m['message']}" if m["field"] else m["message"] for m in messages
    ) or "Invalid request"
    if is_ai_request(request):
        return ai_error("VALIDATION_ERROR", summary, status.HTTP_400_BAD_REQUEST)
    return crud_error(summary, status.HTTP_400_BAD_REQUEST, messages)


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    if is_ai_request(request):
        code = HTTP_STATUS_CODES.get(exc.status_code, "INTERNAL_ERROR" if exc.status_code >= 500 else "VALIDATION_ERROR")
        return ai_error(code, message, exc.status_code)
    return crud_error(message, exc.status_code)


async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return render_service_error(request, StorageError())


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception on %s %s: %s", request.method, request.url.path, exc, exc_info=True)
    if is_ai_request(request):
        return ai_error("INTERNAL_ERROR", "Internal server error", status.HTTP_500_INTERNAL_SERVER_ERROR)
    return crud_error("Internal server error", status.HTTP_500_INTERNAL_SERVER_ERROR)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

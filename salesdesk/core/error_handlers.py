from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from salesdesk.constants.error_codes import ErrorCode
from salesdesk.core.exceptions import AppException, NetworkError
import logging

logger = logging.getLogger(__name__)

# Seconds a client should wait before retrying a failed collaborator call
RETRY_AFTER_SECONDS = 2


def _error_response(
    status_code: int,
    message: str,
    error_code: ErrorCode,
    details=None,
    headers: dict | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "message": message,
            "error_code": error_code,
            "details": jsonable_encoder(details),
        },
        headers=headers,
    )


# -------------------------
# APP EXCEPTIONS
# -------------------------
async def app_exception_handler(request: Request, exc: AppException):
    headers = None

    if isinstance(exc, NetworkError):
        # state was left untouched; the same intent can be sent again
        logger.warning(
            "Collaborator failure",
            extra={"path": request.url.path, "error_code": exc.error_code},
        )
        headers = {"Retry-After": str(RETRY_AFTER_SECONDS)}
    elif exc.status_code == 409:
        logger.info(
            "Conflict",
            extra={"path": request.url.path, "error_code": exc.error_code},
        )

    return _error_response(exc.status_code, exc.detail, exc.error_code, exc.details, headers)


# -------------------------
# FASTAPI VALIDATION
# -------------------------
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
):
    return _error_response(422, "Invalid request data", ErrorCode.VALIDATION_ERROR, exc.errors())


# -------------------------
# HTTP EXCEPTIONS (mapped)
# -------------------------
HTTP_STATUS_TO_ERROR_CODE = {
    400: ErrorCode.VALIDATION_ERROR,
    401: ErrorCode.UNAUTHORIZED,
    403: ErrorCode.PERMISSION_DENIED,
    404: ErrorCode.NOT_FOUND,
    409: ErrorCode.CONFLICT,
    422: ErrorCode.VALIDATION_ERROR,
    502: ErrorCode.NETWORK_ERROR,
    504: ErrorCode.TIMEOUT,
}


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
):
    error_code = HTTP_STATUS_TO_ERROR_CODE.get(
        exc.status_code,
        ErrorCode.INTERNAL_ERROR,
    )
    return _error_response(exc.status_code, exc.detail, error_code)


# -------------------------
# DB INTEGRITY ERRORS
# -------------------------
async def integrity_error_handler(
    request: Request, exc: IntegrityError
):
    # quotation and invoice numbers are unique; a race on either lands here
    logger.exception("DB Integrity error", extra={"path": request.url.path})
    return _error_response(409, "Database constraint violation", ErrorCode.CONFLICT)


# -------------------------
# LAST RESORT
# -------------------------
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(
        "Unhandled exception",
        extra={
            "path": request.url.path,
            "method": request.method,
        },
    )
    return _error_response(500, "Something went wrong. Please try again.", ErrorCode.INTERNAL_ERROR)

"""
Exception hierarchy shared by every router.

Each exception is an ``HTTPException`` carrying a fixed status code and a
machine-readable ``code``; ``register_exception_handlers`` turns them into
``ErrorResponse`` bodies at the request boundary.
"""
import logging
from typing import Optional, Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)


class AppException(HTTPException):
    code = "APP_ERROR"

    def __init__(
        self,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        detail: str = "An error occurred",
        headers: Optional[dict] = None,
        details: Optional[Any] = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.details = details

# --- 400 ---
class ValidationException(AppException):
    code = "VALIDATION_ERROR"

    def __init__(self, detail: str = "Invalid request", details: Optional[Any] = None):
        super().__init__(status.HTTP_400_BAD_REQUEST, detail, details=details)

class InvalidAmountException(ValidationException):
    code = "INVALID_AMOUNT"

    def __init__(self, detail: str = "Invalid amount"):
        super().__init__(detail)

class EmptyCartException(ValidationException):
    code = "EMPTY_CART"

    def __init__(self, detail: str = "Cart items required"):
        super().__init__(detail)

class NoValidItemsException(ValidationException):
    code = "NO_VALID_ITEMS"

    def __init__(self, detail: str = "Invalid cart items"):
        super().__init__(detail)

class AmountMismatchException(ValidationException):
    code = "AMOUNT_MISMATCH"

class DuplicateEmailException(ValidationException):
    code = "DUPLICATE_EMAIL"

    def __init__(self, detail: str = "Email already in use"):
        super().__init__(detail)

class SignatureMismatchException(AppException):
    code = "SIGNATURE_MISMATCH"

    def __init__(self, detail: str = "Signature mismatch"):
        super().__init__(status.HTTP_400_BAD_REQUEST, detail)

class ExternalAuthRequiredException(AppException):
    code = "EXTERNAL_AUTH_REQUIRED"

    def __init__(self, detail: str = "This account signs in with Google"):
        super().__init__(status.HTTP_400_BAD_REQUEST, detail)

# --- 401 / 403 ---
class UnauthorizedException(AppException):
    code = "UNAUTHORIZED"

    def __init__(self, detail: str = "Unauthorized"):
        super().__init__(
            status.HTTP_401_UNAUTHORIZED,
            detail,
            headers={"WWW-Authenticate": "Bearer"},
        )

class ForbiddenException(AppException):
    code = "FORBIDDEN"

    def __init__(self, detail: str = "Forbidden"):
        super().__init__(status.HTTP_403_FORBIDDEN, detail)

# --- 404 ---
class NotFoundException(AppException):
    code = "NOT_FOUND"

    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status.HTTP_404_NOT_FOUND, detail)

class UserNotFoundException(NotFoundException):
    code = "USER_NOT_FOUND"

    def __init__(self, detail: str = "User not found"):
        super().__init__(detail)

# --- 5xx ---
class GatewayException(AppException):
    code = "GATEWAY_ERROR"

    def __init__(self, detail: str = "Payment gateway error"):
        super().__init__(status.HTTP_500_INTERNAL_SERVER_ERROR, detail)

class PersistenceException(AppException):
    code = "PERSISTENCE_ERROR"

    def __init__(self, detail: str = "Database error"):
        super().__init__(status.HTTP_500_INTERNAL_SERVER_ERROR, detail)

class DeliveryException(AppException):
    code = "EMAIL_DELIVERY_ERROR"

    def __init__(self, detail: str = "Could not send email"):
        super().__init__(status.HTTP_500_INTERNAL_SERVER_ERROR, detail)


def _error_body(detail: str, code: str, details: Optional[Any] = None) -> dict:
    return jsonable_encoder({"success": False, "error": detail, "code": code, "details": details})


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.detail, exc.code, exc.details),
        headers=exc.headers,
    )

async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(str(exc.detail), "HTTP_ERROR"),
        headers=getattr(exc, "headers", None),
    )

async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=_error_body("Validation failed", "VALIDATION_ERROR", exc.errors()),
    )

async def persistence_exception_handler(request: Request, exc: PyMongoError) -> JSONResponse:
    logger.error("Database operation failed", exc_info=exc)
    wrapped = PersistenceException()
    return JSONResponse(status_code=wrapped.status_code, content=_error_body(wrapped.detail, wrapped.code))


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(PyMongoError, persistence_exception_handler)

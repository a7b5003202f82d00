"""
Error codes and exceptions returned by the API.

Every domain failure is raised as an ApiError carrying an HTTP status and a
numeric code. The handlers registered in main.py render it as {"code": n}.
"""
from enum import IntEnum
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import logging

logger = logging.getLogger(__name__)


class Code(IntEnum):
    """Numeric error codes exposed to API clients."""
    UNEXPECTED_ERR = 10000
    UNAUTHORIZED = 10001
    ACCESS_DENIED = 10002
    INVALID_PAGE_SIZE = 10003
    INVALID_REQUEST = 10004

    CONSULTATION_ID_IS_NOT_POSITIVE = 20001
    SETTLEMENT_ID_IS_NOT_POSITIVE = 20002
    STOPPED_SETTLEMENT_ID_IS_NOT_POSITIVE = 20003
    RATING_ID_IS_NOT_POSITIVE = 20004
    USER_ACCOUNT_ID_IS_NOT_POSITIVE = 20005
    CREDIT_FACILITIES_ALREADY_EXPIRED = 20006
    NO_AWAITING_PAYMENT_FOUND = 20007
    NO_AWAITING_WITHDRAWAL_FOUND = 20008
    CONSULTATION_HAS_NOT_BEEN_RATED_YET = 20009
    INVALID_QUERY_PARAMETER = 20010
    NO_IDENTITY_FOUND = 20011

    INVALID_RATING = 30001
    END_OF_CONSULTATION_DATE_TIME_HAS_NOT_PASSED_YET = 30002
    USER_ACCOUNT_HAS_ALREADY_BEEN_RATED = 30003
    CONSULTANT_HAS_ALREADY_BEEN_RATED = 30004
    NO_CONSULTATION_FOUND = 30005

    CONSULTANT_ID_IS_NOT_POSITIVE = 40001
    CONSULTANT_IS_THE_SAME_AS_USER_ACCOUNT = 40002
    INVALID_CARD_TOKEN = 40003
    ILLEGAL_CONSULTATION_DATE_TIME = 40004
    ILLEGAL_CONSULTATION_HOUR = 40005
    INVALID_CONSULTATION_DATE_TIME = 40006
    DUPLICATE_DATE_TIME_CANDIDATES = 40007
    CONSULTANT_IS_NOT_AVAILABLE = 40008
    FEE_PER_HOUR_IN_YEN_WAS_UPDATED = 40009
    CONSULTATION_REQ_ID_IS_NOT_POSITIVE = 40010
    INVALID_CANDIDATE = 40011
    USER_DOES_NOT_CHECK_CONFIRMATION_ITEMS = 40012
    NO_CONSULTATION_REQ_FOUND = 40013
    NO_ENOUGH_SPARE_TIME_BEFORE_MEETING = 40014
    CONSULTANT_HAS_SAME_MEETING_DATE_TIME = 40015
    USER_HAS_SAME_MEETING_DATE_TIME = 40016


class ApiError(Exception):
    """Error reported to the client with a status and a code."""

    def __init__(self, code: Code, status_code: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(f"{code.name} ({int(code)})")
        self.code = code
        self.status_code = status_code


class UnexpectedError(ApiError):
    """Opaque server-side failure. Details go to the log, never to the client."""

    def __init__(self, message: str = "unexpected error"):
        super().__init__(Code.UNEXPECTED_ERR, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.message = message

    def __str__(self) -> str:
        return self.message


class RowNotFoundError(UnexpectedError):
    """A row addressed by its own id vanished, e.g. consumed by a concurrent move."""


class IntegrityViolationError(UnexpectedError):
    """More rows than the data model allows were found."""


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    """Render ApiError as {"code": n}."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=exc.status_code, content={"code": int(exc.code)})


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed query parameters or bodies; the raw input is not echoed back."""
    logger.info(f"{request.method} {request.url.path} rejected: {[error.get('loc') for error in exc.errors()]}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"code": int(Code.INVALID_REQUEST)},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log anything else and hide it behind the opaque code."""
    logger.error(f"{request.method} {request.url.path} failed: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"code": int(Code.UNEXPECTED_ERR)},
    )

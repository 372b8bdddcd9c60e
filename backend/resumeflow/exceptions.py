import logging

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from resumeflow.gemini_client import (
    AIInvalidResponseError,
    AIQuotaError,
    AIServiceError,
    AIUnavailableError,
)

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Internal server error. Please try again."
CAPACITY_ERROR = "Service temporarily at capacity. Please try again in a few minutes."
INVALID_AI_DATA_ERROR = "AI service returned invalid data. Please try again."


class BaseHTTPException(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_error: str = GENERIC_ERROR

    def __init__(self, error: str | None = None):
        self.error = error or self.default_error
        super().__init__(self.error)


class BadRequestError(BaseHTTPException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_error = "Invalid request"


class UnauthorizedError(BaseHTTPException):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_error = "Unauthorized - Missing or invalid token"


class NotFoundError(BaseHTTPException):
    status_code = status.HTTP_404_NOT_FOUND
    default_error = "Not found"


class UpstreamCapacityError(BaseHTTPException):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_error = CAPACITY_ERROR


class InternalServerError(BaseHTTPException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_error = GENERIC_ERROR


class BadGatewayError(BaseHTTPException):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_error = INVALID_AI_DATA_ERROR


class ServiceUnavailableError(BaseHTTPException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_error = "AI service temporarily unavailable. Please try again."


async def common_exception_handler(request: Request, exc: BaseHTTPException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.error}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.error})


async def starlette_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        error = "Method not allowed"
    else:
        error = str(exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"error": error}, headers=exc.headers)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info(f"Rejected request body for {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid request body"},
    )


def to_http_error(exc: AIServiceError, unavailable_error: str) -> BaseHTTPException:
    """Map a tagged AI client failure onto the HTTP error the caller should see."""
    if isinstance(exc, AIQuotaError):
        return UpstreamCapacityError()
    if isinstance(exc, AIInvalidResponseError):
        return BadGatewayError()
    if isinstance(exc, AIUnavailableError):
        return ServiceUnavailableError(unavailable_error)
    return InternalServerError()


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error in {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": GENERIC_ERROR},
    )

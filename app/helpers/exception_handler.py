import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from app.gesture_engine.core.exceptions import (
    ConcurrentOperationRejectedError, GestureEngineError, InvalidInputError,
    NotFoundError, ResourceUnavailableError,
)

logger = logging.getLogger(__name__)


class CustomException(Exception):
    http_code: int
    code: str
    message: str

    def __init__(self, http_code: int = None, code: str = None, message: str = None):
        self.http_code = http_code if http_code else 500
        self.code = code if code else str(self.http_code)
        self.message = message
        super().__init__(message)

    @classmethod
    def from_engine_error(cls, error: GestureEngineError) -> "CustomException":
        """Map lỗi của gesture engine sang HTTP status tương ứng."""
        http_code = 500
        if isinstance(error, InvalidInputError):
            http_code = 400
        elif isinstance(error, NotFoundError):
            http_code = 404
        elif isinstance(error, ConcurrentOperationRejectedError):
            http_code = 409
        elif isinstance(error, ResourceUnavailableError):
            http_code = 503
        return cls(http_code=http_code, code=str(http_code), message=str(error))


async def http_exception_handler(request: Request, exc: CustomException):
    logger.debug(f"{request.method} {request.url.path} -> {exc.http_code}: {exc.message}")
    return JSONResponse(
        status_code=exc.http_code,
        content={
            "success": False,
            "code": exc.code,
            "message": exc.message,
            "data": None,
        }
    )

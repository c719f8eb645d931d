"""Exception Handlers.

서비스 예외를 구조화된 JSON 응답으로 변환합니다.
본문: {"status": <int>, "code": <실패 종류>, "detail": <메시지>}
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from image_delivery.core.exceptions import ImageServiceError, TransformInternalError

logger = logging.getLogger(__name__)


def error_response(status_code: int, code: str, detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"status": status_code, "code": code, "detail": detail},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """예외 핸들러 등록."""

    @app.exception_handler(ImageServiceError)
    async def image_service_error_handler(request: Request, exc: ImageServiceError):
        extra = {
            "url_path": request.url.path,
            "status_code": exc.status_code,
            "error_code": exc.code,
        }
        if exc.status_code >= 500:
            logger.error("Request failed", exc_info=exc, extra=extra)
        else:
            logger.info("Request rejected", extra=extra)
        return error_response(exc.status_code, exc.code, exc.message)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error", extra={"url_path": request.url.path})
        fallback = TransformInternalError("Unexpected error.")
        return error_response(fallback.status_code, fallback.code, fallback.message)

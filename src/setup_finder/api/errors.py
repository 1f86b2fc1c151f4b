"""예외 → HTTP 응답 매핑

라우트는 도메인 예외를 그대로 raise 하고, 여기 등록된 핸들러가
{error, type, code, details} 형태의 JSON으로 변환합니다.
"""
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from setup_finder.core.exceptions import (
    CONFIGURATION_ERROR,
    EXTERNAL_API_ERROR,
    INTERNAL_ERROR,
    NETWORK_ERROR,
    RATE_LIMIT_ERROR,
    VALIDATION_ERROR,
    SetupFinderException,
)
from setup_finder.core.logging import logger

_STATUS_BY_TYPE = {
    VALIDATION_ERROR: 400,
    EXTERNAL_API_ERROR: 502,
    RATE_LIMIT_ERROR: 429,
    NETWORK_ERROR: 503,
    CONFIGURATION_ERROR: 500,
    INTERNAL_ERROR: 500,
}

_FRIENDLY_MESSAGES = {
    VALIDATION_ERROR: "Please check your input and try again.",
    EXTERNAL_API_ERROR: "Having trouble connecting to our services. Please try again in a moment.",
    RATE_LIMIT_ERROR: "We're getting lots of requests! Please wait a moment and try again.",
    NETWORK_ERROR: "Having trouble connecting. Please check your internet and try again.",
    INTERNAL_ERROR: "Something went wrong on our end. Please try again later.",
}

# 사용자에게 원문 메시지를 그대로 보여주는 에러 코드
_PASSTHROUGH_CODES = {"SWAP_NO_RESULTS", "SWAP_NO_NEW_RESULTS", "MISSING_CONFIGURATION"}


def status_for(exc: SetupFinderException) -> int:
    return _STATUS_BY_TYPE.get(exc.error_type, 500)


def friendly_message(exc: SetupFinderException) -> str:
    if exc.error_code in _PASSTHROUGH_CODES:
        return exc.message
    return _FRIENDLY_MESSAGES.get(exc.error_type, "An unexpected error occurred. Please try again.")


def error_response(
    error: str,
    error_type: str,
    status_code: int,
    code: Optional[str] = None,
    details: Any = None,
    retryable: Optional[bool] = None,
) -> JSONResponse:
    """에러 JSON 응답 생성 (값이 None인 필드는 생략)"""
    body: dict[str, Any] = {"error": error, "type": error_type}
    if code is not None:
        body["code"] = code
    if retryable is not None:
        body["retryable"] = retryable
    if details is not None:
        body["details"] = details
    return JSONResponse(status_code=status_code, content=body)


def exception_response(exc: SetupFinderException) -> JSONResponse:
    """도메인 예외를 HTTP 응답으로 변환"""
    return error_response(
        friendly_message(exc),
        exc.error_type,
        status_for(exc),
        code=exc.error_code,
        retryable=exc.retryable,
    )


def _format_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        location = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    return "; ".join(parts)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = _format_validation_errors(exc)
    logger.warning(f"[API] Invalid request data on {request.url.path}: {details}")
    return error_response("Invalid request data", VALIDATION_ERROR, 400, details=details)


async def setup_finder_exception_handler(request: Request, exc: SetupFinderException) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error(f"[API] {request.url.path} failed: {exc}")
    else:
        logger.warning(f"[API] {request.url.path} rejected: {exc}")
    return exception_response(exc)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"[API] Unhandled error on {request.url.path}: {type(exc).__name__}: {exc}", exc_info=True)
    return error_response("Internal server error", INTERNAL_ERROR, 500)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SetupFinderException, setup_finder_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

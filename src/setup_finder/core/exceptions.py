"""커스텀 예외 정의 (Structured Exception Hierarchy)"""
from typing import Any, Optional


# 에러 타입 (HTTP 응답의 type 필드)
VALIDATION_ERROR = "VALIDATION_ERROR"
EXTERNAL_API_ERROR = "EXTERNAL_API_ERROR"
RATE_LIMIT_ERROR = "RATE_LIMIT_ERROR"
NETWORK_ERROR = "NETWORK_ERROR"
INTERNAL_ERROR = "INTERNAL_ERROR"
CONFIGURATION_ERROR = "configuration"


# 기본 예외 클래스
class SetupFinderException(Exception):
    """기본 예외 클래스 - 모든 커스텀 예외의 부모

    Attributes:
        error_type: API 응답에 노출되는 에러 분류
        retryable: 재시도 정책이 다시 시도해도 되는지 여부
    """

    error_type: str = INTERNAL_ERROR
    retryable: bool = False

    def __init__(self, message: str, error_code: str = "UNKNOWN_ERROR", details: Optional[dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.error_type,
            "message": self.message,
            "code": self.error_code,
            "retryable": self.retryable,
        }


# 유효성 검증 관련 예외
class ValidationException(SetupFinderException):
    """유효성 검증 예외 (재시도하지 않음)"""

    error_type = VALIDATION_ERROR

    def __init__(self, field: str, reason: str, details: Optional[dict[str, Any]] = None):
        message = f"Validation failed for '{field}': {reason}"
        super().__init__(message, "VALIDATION_FAILED",
                         details or {"field": field, "reason": reason})


# 외부 API 관련 예외
class ExternalAPIException(SetupFinderException):
    """외부 API(SerpAPI/Gemini) 호출 실패

    retryable=True 인 경우에만 RetryPolicy가 백오프 후 재시도합니다.
    """

    error_type = EXTERNAL_API_ERROR

    def __init__(
        self,
        message: str,
        error_code: str = "EXTERNAL_API_FAILED",
        retryable: bool = True,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, error_code or "EXTERNAL_API_FAILED", details)
        self.retryable = retryable


class RateLimitException(SetupFinderException):
    """429 / 쿼터 초과

    플래너는 재시도하지 않고 즉시 템플릿 폴백으로 전환합니다.
    """

    error_type = RATE_LIMIT_ERROR
    retryable = True

    def __init__(self, message: str, error_code: str = "RATE_LIMIT_EXCEEDED", details: Optional[dict[str, Any]] = None):
        super().__init__(message, error_code or "RATE_LIMIT_EXCEEDED", details)


class NetworkException(SetupFinderException):
    """네트워크/전송 계층 오류"""

    error_type = NETWORK_ERROR
    retryable = True

    def __init__(self, message: str, error_code: str = "NETWORK_FAILED", details: Optional[dict[str, Any]] = None):
        super().__init__(message, error_code or "NETWORK_FAILED", details)


class ConfigurationException(SetupFinderException):
    """필수 외부 설정 누락 (예: SerpAPI 키)"""

    error_type = CONFIGURATION_ERROR

    def __init__(self, setting: str, message: Optional[str] = None, details: Optional[dict[str, Any]] = None):
        super().__init__(message or f"{setting} not configured", "MISSING_CONFIGURATION",
                         details or {"setting": setting})


class PlanningException(SetupFinderException):
    """플랜 생성 완전 실패 (AI와 템플릿 폴백 모두 실패)"""

    def __init__(self, reason: str, details: Optional[dict[str, Any]] = None):
        super().__init__(f"Planning failed: {reason}", "PLANNING_FAILED",
                         details or {"reason": reason})


class TimeoutException(SetupFinderException):
    """단계별 타임아웃 (need 단위의 soft failure)"""

    retryable = True

    def __init__(self, operation: str, timeout_s: float, details: Optional[dict[str, Any]] = None):
        message = f"Operation '{operation}' timed out after {timeout_s}s"
        super().__init__(message, "TIMEOUT",
                         details or {"operation": operation, "timeout_s": timeout_s})


class OperationCancelledException(SetupFinderException):
    """CancellationToken에 의해 취소된 외부 호출"""

    def __init__(self, operation: str, details: Optional[dict[str, Any]] = None):
        super().__init__(f"Operation '{operation}' was cancelled", "CANCELLED",
                         details or {"operation": operation})


# 캐시 관련 예외
class CacheException(SetupFinderException):
    """캐시 관련 예외"""

    def __init__(self, message: str, error_code: str = "CACHE_ERROR", details: Optional[dict[str, Any]] = None):
        super().__init__(message, error_code or "CACHE_ERROR", details)


class CacheConnectionException(CacheException):
    """캐시 연결/IO 실패"""

    def __init__(self, reason: str, error_code: str = "CACHE_CONNECTION_ERROR", details: Optional[dict[str, Any]] = None):
        super().__init__(f"Cache connection failed: {reason}", error_code,
                         details or {"reason": reason})


class CacheSerializationException(CacheException):
    """캐시 직렬화/역직렬화 오류"""

    def __init__(self, operation: str, reason: str, details: Optional[dict[str, Any]] = None):
        message = f"Cache {operation} failed: {reason}"
        super().__init__(message, "CACHE_SERIALIZATION_ERROR",
                         details or {"operation": operation, "reason": reason})

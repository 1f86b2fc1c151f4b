"""Execution Strategy - Retry / Fallback Decision Logic

에러 유형에 따라 재시도 또는 폴백을 결정하고,
외부 호출마다 전달되는 취소 토큰과 재시도 정책을 제공합니다.
"""

import asyncio
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from setup_finder.core.config import settings
from setup_finder.core.exceptions import (
    OperationCancelledException,
    RateLimitException,
    SetupFinderException,
    TimeoutException,
    ValidationException,
)
from setup_finder.core.logging import logger

T = TypeVar("T")


class CancellationToken:
    """협력적 취소 토큰 (asyncio.Event 래퍼)

    요청 단위로 생성되어 모든 외부 호출에 전달됩니다.
    RetryPolicy는 시도 사이와 대기 전에 토큰을 확인합니다.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    def raise_if_cancelled(self, operation: str) -> None:
        """취소된 경우 OperationCancelledException"""
        if self.is_cancelled:
            raise OperationCancelledException(operation)

    async def sleep(self, delay_s: float) -> bool:
        """delay_s 동안 대기. 도중에 취소되면 즉시 깨어남

        Returns:
            bool: 취소되어 깨어났으면 True
        """
        if delay_s <= 0:
            return self.is_cancelled
        try:
            await asyncio.wait_for(self._event.wait(), timeout=delay_s)
            return True
        except asyncio.TimeoutError:
            return False


class ExecutionStrategy:
    """실행 전략 결정

    Usage:
        strategy = ExecutionStrategy()

        try:
            plan = await gemini.generate_plan(...)
        except Exception as e:
            if strategy.should_fall_back(e):
                plan = templates.build(...)
    """

    @staticmethod
    def is_retryable(error: Exception, retry_rate_limits: bool = True) -> bool:
        """재시도 가능 여부

        - ValidationException: 재시도하지 않음
        - RateLimitException: retry_rate_limits가 False면 즉시 포기 (플래너)
        - 그 외 SetupFinderException: retryable 플래그를 따름
        - 알 수 없는 예외: 재시도하지 않음
        """
        if isinstance(error, ValidationException):
            return False
        if isinstance(error, RateLimitException):
            return retry_rate_limits
        if isinstance(error, SetupFinderException):
            return bool(error.retryable)
        return False

    @staticmethod
    def should_fall_back(error: Exception) -> bool:
        """AI 호출 실패 시 결정적 폴백(템플릿, 휴리스틱) 사용 여부

        AI 실패는 요청 실패가 아니므로 취소를 제외한 모든 오류에서 폴백합니다.
        """
        return not isinstance(error, OperationCancelledException)

    @staticmethod
    def describe(error: BaseException) -> str:
        if isinstance(error, asyncio.TimeoutError):
            return "timeout"
        if isinstance(error, TimeoutException):
            return "timeout"
        if isinstance(error, SetupFinderException):
            return error.error_code
        return type(error).__name__


@dataclass
class RetryPolicy:
    """지수 백오프 + 지터 재시도 정책

    Attributes:
        max_attempts: 최대 시도 횟수 (첫 시도 포함)
        initial_delay_s: 첫 재시도 전 대기
        multiplier: 백오프 배수
        max_delay_s: 대기 상한
        jitter_s: 0~jitter_s 사이 무작위 추가 대기
        rate_limit_extra_s: 429 이후 추가 대기
        retry_rate_limits: False면 RateLimitException을 즉시 전파
    """

    max_attempts: int = 3
    initial_delay_s: float = 0.8
    multiplier: float = 2.0
    max_delay_s: float = 10.0
    jitter_s: float = 0.25
    rate_limit_extra_s: float = 1.0
    retry_rate_limits: bool = True

    def __post_init__(self):
        """설정 검증"""
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.initial_delay_s < 0 or self.max_delay_s < 0 or self.jitter_s < 0:
            raise ValueError("retry delays must be non-negative")

    @classmethod
    def from_settings(cls, retry_rate_limits: bool = True) -> "RetryPolicy":
        return cls(
            max_attempts=settings.retry_max_attempts,
            initial_delay_s=settings.retry_initial_delay_s,
            multiplier=settings.retry_backoff_multiplier,
            max_delay_s=settings.retry_max_delay_s,
            jitter_s=settings.retry_jitter_s,
            rate_limit_extra_s=settings.retry_rate_limit_extra_s,
            retry_rate_limits=retry_rate_limits,
        )

    def compute_delay(self, attempt: int, error: Optional[Exception] = None,
                      rng: Optional[random.Random] = None) -> float:
        """attempt번째 실패 후 대기 시간 (attempt는 1부터)"""
        chooser = rng or random
        delay = min(self.initial_delay_s * (self.multiplier ** (attempt - 1)), self.max_delay_s)
        delay += chooser.uniform(0, self.jitter_s) if self.jitter_s else 0.0
        if isinstance(error, RateLimitException):
            delay += self.rate_limit_extra_s
        return delay

    async def run(
        self,
        operation: str,
        func: Callable[[], Awaitable[T]],
        token: Optional[CancellationToken] = None,
        rng: Optional[random.Random] = None,
    ) -> T:
        """func를 재시도 정책에 따라 실행

        Args:
            operation: 로깅용 작업 이름
            func: 인자 없는 코루틴 팩토리
            token: 취소 토큰

        Returns:
            func 결과

        Raises:
            OperationCancelledException: 시도 전/대기 중 취소
            Exception: 재시도 불가 오류 또는 마지막 시도의 오류
        """
        for attempt in range(1, self.max_attempts + 1):
            if token is not None:
                token.raise_if_cancelled(operation)

            try:
                return await func()
            except Exception as e:
                retryable = ExecutionStrategy.is_retryable(e, self.retry_rate_limits)
                if not retryable or attempt >= self.max_attempts:
                    if retryable:
                        logger.warning(f"[RETRY] {operation}: all {self.max_attempts} attempts failed ({e})")
                    raise

                delay = self.compute_delay(attempt, e, rng)
                logger.info(
                    f"[RETRY] {operation}: attempt {attempt}/{self.max_attempts} failed ({e}); "
                    f"retrying in {delay:.2f}s"
                )

                if token is not None:
                    if await token.sleep(delay):
                        raise OperationCancelledException(operation) from e
                else:
                    await asyncio.sleep(delay)

        # max_attempts >= 1 이므로 도달하지 않음
        raise RuntimeError(f"{operation}: retry loop exited unexpectedly")

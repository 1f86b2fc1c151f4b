"""엣지 케이스 처리 유틸리티 (외부 API 페이로드 Null-safety)"""
import math
from typing import Any, Optional, TypeVar

from setup_finder.core.logging import logger

T = TypeVar("T")


class EdgeCaseHandler:
    """SerpAPI/Gemini 응답처럼 형태가 보장되지 않는 값을 안전하게 다룹니다."""

    @staticmethod
    def safe_float(value: Any, default: Optional[float] = None,
                   min_val: Optional[float] = None,
                   max_val: Optional[float] = None) -> Optional[float]:
        """안전한 실수 변환

        Args:
            value: 변환할 값 (숫자 또는 "1,299.00" 같은 문자열)
            default: 변환 실패 시 기본값
            min_val: 최소값 (미만이면 default)
            max_val: 최대값 (초과하면 default)

        Returns:
            유한한 실수 또는 기본값
        """
        if value is None or isinstance(value, bool):
            return default

        try:
            if isinstance(value, str):
                value = value.replace(",", "").strip()
            float_val = float(value)
        except (ValueError, TypeError):
            logger.debug(f"Failed to convert '{value}' to float")
            return default

        if not math.isfinite(float_val):
            return default

        if min_val is not None and float_val < min_val:
            return default

        if max_val is not None and float_val > max_val:
            return default

        return float_val

    @staticmethod
    def safe_int(value: Any, default: Optional[int] = 0, min_val: Optional[int] = None,
                 max_val: Optional[int] = None) -> Optional[int]:
        """안전한 정수 변환 ("1,024" 허용)

        Args:
            value: 변환할 값
            default: 변환 실패 시 기본값
            min_val: 최소값
            max_val: 최대값

        Returns:
            정수값
        """
        float_val = EdgeCaseHandler.safe_float(value)
        if float_val is None:
            return default

        int_val = int(float_val)

        if min_val is not None and int_val < min_val:
            logger.debug(f"Value {int_val} is below minimum {min_val}")
            return default

        if max_val is not None and int_val > max_val:
            logger.debug(f"Value {int_val} exceeds maximum {max_val}")
            return default

        return int_val

    @staticmethod
    def safe_str(value: Any, default: str = "", max_length: Optional[int] = None) -> str:
        """안전한 문자열 변환

        Args:
            value: 변환할 값
            default: 변환 실패 시 기본값
            max_length: 최대 길이

        Returns:
            공백 제거된 문자열
        """
        if value is None:
            return default

        str_val = str(value).strip()
        if not str_val:
            return default

        if max_length and len(str_val) > max_length:
            return str_val[:max_length]

        return str_val

    @staticmethod
    def safe_list(value: Any, default: Optional[list] = None) -> list:
        """안전한 리스트 접근"""
        if value is None:
            return default or []

        if isinstance(value, list):
            return value

        if isinstance(value, (tuple, set)):
            return list(value)

        logger.warning(f"Expected list but got {type(value).__name__}")
        return default or []

    @staticmethod
    def first_present(row: dict[str, Any], keys: tuple[str, ...]) -> Any:
        """keys 순서대로 처음으로 비어있지 않은 값을 반환"""
        for key in keys:
            value = row.get(key)
            if value not in (None, "", [], {}):
                return value
        return None

    @staticmethod
    def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
        return max(low, min(high, value))

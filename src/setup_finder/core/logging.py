"""로깅 설정

SerpAPI는 api_key를, Gemini는 key를 쿼리스트링으로 받기 때문에
URL이 로그에 섞이면 키가 그대로 노출됩니다. 모든 핸들러에 SecretMaskingFilter를 붙여
메시지 단계에서 마스킹합니다.
"""
import logging
import re
import sys

from setup_finder.core.config import settings

LOGGER_NAME = "setup_finder"

_SECRET_PARAM_PATTERN = re.compile(r"\b(api_key|key|token)=([^&\s'\"]+)", re.IGNORECASE)

_DEV_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
_PROD_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def mask_secrets(text: str) -> str:
    """쿼리스트링 형태의 키 값을 *** 로 치환"""
    return _SECRET_PARAM_PATTERN.sub(lambda m: f"{m.group(1)}=***", text)


class SecretMaskingFilter(logging.Filter):
    """레코드 메시지의 api_key/key/token 값 마스킹"""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = mask_secrets(message)
        if masked != message:
            record.msg = masked
            record.args = None
        return True


def _resolve_level() -> int:
    level_name = settings.log_level.upper()
    # production 에서는 DEBUG 금지
    if settings.is_production and level_name == "DEBUG":
        level_name = "INFO"
    level = getattr(logging, level_name, None)
    return level if isinstance(level, int) else logging.INFO


def setup_logging() -> logging.Logger:
    """setup_finder 로거 초기화 (중복 핸들러 방지)"""
    logger = logging.getLogger(LOGGER_NAME)
    level = _resolve_level()
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(
            fmt=_PROD_FORMAT if settings.is_production else _DEV_FORMAT,
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        handler.addFilter(SecretMaskingFilter())
        logger.addHandler(handler)

    return logger


logger = setup_logging()


def sanitize_for_log(value: str, max_length: int = 100) -> str:
    """예외 메시지/URL을 로그에 넣기 전 마스킹 + 절단

    Args:
        value: 로깅할 문자열
        max_length: 최대 길이

    Returns:
        마스킹/절단된 문자열 (비어 있으면 "[empty]")
    """
    if not value:
        return "[empty]"

    result = mask_secrets(value)
    if len(result) > max_length:
        result = result[:max_length] + "..."
    return result

"""설정 관리 - 환경 변수 로드 및 검증"""
from pydantic_settings import BaseSettings
from pydantic import field_validator


class Settings(BaseSettings):
    """애플리케이션 설정"""

    # Redis
    redis_url: str = "redis://localhost:6379/0"
    cache_ttl: int = 3600  # 빌드 결과 1시간
    search_cache_ttl: int = 3600  # 원본 검색 결과 1시간
    swap_cache_ttl: int = 1800  # 대체 상품 30분
    search_store_ttl: int = 86400  # searchId 조회용 24시간
    cache_bucket_seconds: int = 600  # 검색 캐시 키 시간 버킷 (10분)
    cache_version: str = "v2"

    # SerpAPI (마켓플레이스 검색)
    serpapi_key: str = ""
    serpapi_base_url: str = "https://serpapi.com/search.json"
    serpapi_user_agent: str = "GhostSetupFinder/1.0"
    serpapi_default_limit: int = 15
    # URL 없는 후보에 대해 추가 조회를 허용하는 최대 개수
    url_resolve_quota: int = 5

    # Gemini (플래너/셀렉터 AI)
    gemini_api_key: str = ""
    gemini_text_model: str = "gemini-2.0-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_temperature: float = 0.4

    # 공유 HTTP 클라이언트 (curl_cffi)
    http_impersonate: str = "chrome110"
    http_max_clients: int = 20

    # 단계별 타임아웃 (초)
    # - plan: AI 플래닝 (초과 시 템플릿 폴백)
    # - search: need 하나의 검색
    # - select: need 하나의 AI 선택 (초과 시 휴리스틱)
    plan_timeout_s: float = 10.0
    search_timeout_s: float = 15.0
    select_timeout_s: float = 8.0

    # 서버 하드 캡. 모든 need가 병렬이므로 plan + search + select 합보다 약간 크게 둡니다.
    api_build_timeout_s: float = 40.0

    # 재시도 정책 (retryable 오류에만 적용)
    retry_max_attempts: int = 3
    retry_initial_delay_s: float = 0.8
    retry_backoff_multiplier: float = 2.0
    retry_max_delay_s: float = 10.0
    retry_jitter_s: float = 0.25
    retry_rate_limit_extra_s: float = 1.0

    # API
    api_title: str = "Ghost Setup Finder"
    api_version: str = "1.0.0"
    api_description: str = "예산 안에서 셋업 전체를 계획하고 상품을 골라줍니다."

    # 로깅 (production 에서는 간단한 포맷, DEBUG 금지)
    log_level: str = "INFO"
    environment: str = "development"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @field_validator("cache_ttl", "search_cache_ttl", "swap_cache_ttl", "search_store_ttl")
    @classmethod
    def validate_ttls(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("cache TTLs must be positive")
        return v

    @field_validator("cache_bucket_seconds")
    @classmethod
    def validate_cache_bucket_seconds(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("cache_bucket_seconds must be positive")
        return v

    @field_validator("plan_timeout_s", "search_timeout_s", "select_timeout_s", "api_build_timeout_s")
    @classmethod
    def validate_timeouts(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("stage timeouts must be positive")
        return v

    @field_validator("retry_max_attempts")
    @classmethod
    def validate_retry_max_attempts(cls, v: int) -> int:
        if v < 1:
            raise ValueError("retry_max_attempts must be >= 1")
        return v

    @field_validator("url_resolve_quota", "serpapi_default_limit")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("serpapi limits must be >= 0")
        return v

    @field_validator("redis_url")
    @classmethod
    def validate_redis_url(cls, v: str) -> str:
        if not v:
            raise ValueError("redis_url must not be empty")
        return v

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()

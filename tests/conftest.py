"""전역 테스트 설정

역할:
- 테스트 환경 구성 (src/ 경로, 외부 키 비활성화)
- 공통 Fake 주입 (Redis, 재시도 정책)

금지:
- 실제 네트워크/Redis 호출
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

# 프로젝트 루트(tests.fixtures)와 src/ 를 경로에 추가
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))
sys.path.insert(0, str(project_root / "src"))

# settings 는 import 시점에 생성되므로 모듈 로드 전에 설정
os.environ.setdefault("LOG_LEVEL", "INFO")
os.environ["SERPAPI_KEY"] = ""
os.environ["GEMINI_API_KEY"] = ""

from setup_finder.engine.cache_adapter import CacheAdapter  # noqa: E402
from setup_finder.engine.strategy import RetryPolicy  # noqa: E402
from setup_finder.services.impl.cache_service import CacheService  # noqa: E402
from tests.fixtures.fakes import FakeRedis  # noqa: E402


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def cache_adapter(fake_redis: FakeRedis) -> CacheAdapter:
    """메모리 Redis 위의 실제 CacheService/CacheAdapter"""
    return CacheAdapter(CacheService(redis_client=fake_redis))


@pytest.fixture
def no_retry() -> RetryPolicy:
    """대기 없이 한 번만 시도"""
    return RetryPolicy(max_attempts=1, initial_delay_s=0, jitter_s=0, rate_limit_extra_s=0,
                       retry_rate_limits=False)


@pytest.fixture
def fast_retry() -> RetryPolicy:
    """대기 없는 3회 재시도"""
    return RetryPolicy(max_attempts=3, initial_delay_s=0, jitter_s=0, rate_limit_extra_s=0)

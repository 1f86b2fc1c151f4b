"""해싱 유틸리티 (캐시 키 / 검색 ID)"""
import hashlib
import json
import random
import string
import time
from typing import Any, Optional

from setup_finder.core.config import settings


def hash_string(text: str) -> str:
    """
    문자열을 MD5 해시로 변환

    Args:
        text: 해시할 문자열

    Returns:
        MD5 해시 문자열
    """
    return hashlib.md5(text.encode()).hexdigest()


def fingerprint(data: dict[str, Any]) -> str:
    """dict를 키 정렬 JSON으로 직렬화한 뒤 해시 (순서 무관)"""
    return hash_string(json.dumps(data, sort_keys=True, ensure_ascii=False, default=str))


def generate_build_cache_key(query: str, build_settings: dict[str, Any]) -> str:
    """
    (query, settings)로 빌드 캐시 키 생성

    Args:
        query: 사용자 검색어
        build_settings: style/budget/currency/resultsMode/region/amazonOnly

    Returns:
        Redis 캐시 키 ("build:{md5}")
    """
    key_data = {
        "query": (query or "").strip().lower(),
        "style": build_settings.get("style"),
        "budget": build_settings.get("budget"),
        "currency": build_settings.get("currency"),
        "resultsMode": build_settings.get("resultsMode"),
        "region": build_settings.get("region"),
        "amazonOnly": bool(build_settings.get("amazonOnly")),
        "cacheVersion": settings.cache_version,
    }
    return f"build:{fingerprint(key_data)}"


def time_bucket(now: Optional[float] = None, bucket_seconds: Optional[int] = None) -> int:
    """현재 시각을 거친 시간 버킷으로 변환 (기본 10분)"""
    seconds = bucket_seconds or settings.cache_bucket_seconds
    current = time.time() if now is None else now
    return int(current // seconds)


def generate_search_cache_key(
    query: str,
    currency: str,
    amazon_only: bool,
    limit: int,
    category: Optional[str] = None,
    budget: Optional[float] = None,
    now: Optional[float] = None,
) -> str:
    """원본 검색 결과 캐시 키 생성 (시간 버킷 포함)"""
    key_data = {
        "query": (query or "").strip().lower(),
        "category": category,
        "budget": budget,
        "currency": currency or "USD",
        "amazonOnly": bool(amazon_only),
        "limit": limit,
        "cacheVersion": settings.cache_version,
        "bucket": time_bucket(now),
    }
    return f"search:{fingerprint(key_data)}"


def generate_swap_cache_key(product_id: str, payload: dict[str, Any]) -> str:
    """대체 상품(swap) 캐시 키 생성"""
    return f"search:swap:{product_id}:{fingerprint(payload)}"


def generate_search_id(now_ms: Optional[int] = None, rng: Optional[random.Random] = None) -> str:
    """
    빌드 결과 조회용 searchId 생성

    Returns:
        "search_{epoch_ms}_{9자리 base36}"
    """
    ms = int(time.time() * 1000) if now_ms is None else now_ms
    chooser = rng or random
    suffix = "".join(chooser.choice(string.ascii_lowercase + string.digits) for _ in range(9))
    return f"search_{ms}_{suffix}"

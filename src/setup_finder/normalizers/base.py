"""Candidate Normalizer - 공통 파싱/검증 유틸과 어댑터 프로토콜.

네트워크(fetch)와 분리된 순수 파싱 로직입니다.
마켓플레이스별 특이사항은 각 어댑터(google_shopping.py, amazon.py)에 둡니다.
"""

from __future__ import annotations

import math
import re
import time
from typing import Any, Optional, Protocol
from urllib.parse import parse_qs, urlparse

from setup_finder.engine.models import RawCandidate
from setup_finder.utils.edge_cases import EdgeCaseHandler


AMAZON_DOMAINS = (
    "amazon.com",
    "amazon.co.uk",
    "amazon.ca",
    "amazon.de",
    "amazon.fr",
    "amazon.it",
    "amazon.es",
    "amazon.in",
    "amazon.com.au",
    "amazon.co.jp",
    "amazon.cn",
    "amazon.com.br",
    "amazon.com.mx",
)

_IRRELEVANT_IMAGE_PATTERNS = (
    "no-image",
    "placeholder",
    "default",
    "missing",
    "unavailable",
    "generic",
    "stock-photo",
    "sample",
)

_MIN_IMAGE_DIMENSION = 100

_CURRENCY_SYMBOLS = r"[\$£€₹¥]"
_AMOUNT = r"(\d{1,3}(?:,\d{2,3})+(?:\.\d+)?|\d+(?:\.\d+)?)"

# 범위/from 형식을 먼저 검사하고 마지막에 숫자만 있는 경우
_PRICE_PATTERNS = (
    re.compile(rf"{_CURRENCY_SYMBOLS}?\s*{_AMOUNT}\s*(?:-|–|to)\s*{_CURRENCY_SYMBOLS}?\s*\d", re.IGNORECASE),
    re.compile(rf"from\s*{_CURRENCY_SYMBOLS}?\s*{_AMOUNT}", re.IGNORECASE),
    re.compile(rf"{_CURRENCY_SYMBOLS}\s*{_AMOUNT}"),
    re.compile(_AMOUNT),
)

# 멀티 레벨 공용 접미사 (registrable domain 계산용)
_MULTI_LEVEL_SUFFIXES = ("co.uk", "com.au", "co.jp", "com.br", "com.mx", "co.in", "co.nz")


def parse_price(value: Any) -> Optional[float]:
    """가격 값/문자열을 양의 유한 실수로 변환

    Args:
        value: extracted_price 숫자 또는 "$1,299.99", "$19.99 - $29.99", "from $5" 같은 문자열

    Returns:
        가격 또는 None (파싱 실패, 0 이하, 비유한수)
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) and number > 0 else None

    text = str(value).strip()
    if not text:
        return None

    for pattern in _PRICE_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        number = EdgeCaseHandler.safe_float(match.group(1))
        if number is not None and number > 0:
            return number

    return None


def validate_image(image_url: Optional[str]) -> Optional[str]:
    """관련 없는 이미지(placeholder, 아이콘 크기 등)를 걸러냄

    Returns:
        유효한 이미지 URL 또는 None
    """
    if not image_url or not isinstance(image_url, str):
        return None

    lowered = image_url.lower()
    if any(pattern in lowered for pattern in _IRRELEVANT_IMAGE_PATTERNS):
        return None

    query = parse_qs(urlparse(image_url).query)
    for key in ("w", "width", "h", "height"):
        raw = (query.get(key) or [None])[0]
        size = EdgeCaseHandler.safe_int(raw, default=0)
        if 0 < size < _MIN_IMAGE_DIMENSION:
            return None

    return image_url


def registrable_domain(url: Optional[str]) -> Optional[str]:
    """URL의 등록 도메인 추출 (www.bestbuy.com → bestbuy.com)"""
    if not url:
        return None

    host = (urlparse(url).hostname or "").lower()
    if not host:
        return None

    labels = host.split(".")
    if len(labels) <= 2:
        return host

    last_two = ".".join(labels[-2:])
    if last_two in _MULTI_LEVEL_SUFFIXES:
        return ".".join(labels[-3:])
    return last_two


def infer_merchant(row: dict[str, Any], url: Optional[str]) -> str:
    """source → seller → store, 없으면 URL 도메인으로 추정"""
    merchant = EdgeCaseHandler.safe_str(EdgeCaseHandler.first_present(row, ("source", "seller", "store")))
    if merchant:
        return merchant
    return registrable_domain(url) or "Unknown"


def is_amazon_url(url: Optional[str]) -> bool:
    if not url:
        return False
    host = (urlparse(url).hostname or "").lower()
    return any(host == domain or host.endswith("." + domain) for domain in AMAZON_DOMAINS)


def is_amazon_candidate(candidate: RawCandidate) -> bool:
    """Amazon 허용 목록의 판매처/URL인지 판정"""
    merchant = (candidate.merchant or "").lower()
    return "amazon" in merchant or is_amazon_url(candidate.url)


def positional_id(index: int, position: Any = None, now_ms: Optional[int] = None) -> str:
    """식별자가 없는 행의 위치 기반 ID"""
    ms = int(time.time() * 1000) if now_ms is None else now_ms
    return f"serp_{ms}_{index}_{position if position is not None else index}"


class CandidateAdapter(Protocol):
    """마켓플레이스 행 → RawCandidate 어댑터 프로토콜

    구현 예시:
        class GoogleShoppingAdapter:
            name = "google_shopping"

            def normalize(self, raw: dict, index: int, **context) -> RawCandidate | None:
                ...
    """

    name: str

    def accepts(self, raw: dict[str, Any], engine: str) -> bool:
        """이 어댑터가 처리할 수 있는 행인지 여부"""
        ...

    def normalize(self, raw: dict[str, Any], index: int, currency: str = "USD",
                  region: str = "US") -> Optional[RawCandidate]:
        """행을 정규화. 제목이 없으면 None

        Args:
            raw: SerpAPI 결과 행
            index: 결과 내 위치
            currency: 요청 통화 (행에 통화 정보가 없을 때)
            region: 배송 지역

        Returns:
            RawCandidate 또는 None
        """
        ...

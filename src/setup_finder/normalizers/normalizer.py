"""Candidate Normalizer - 어댑터를 고정 우선순위로 시도"""

from typing import Any, Iterable, Optional, Sequence

from setup_finder.core.logging import logger
from setup_finder.engine.models import RawCandidate
from setup_finder.normalizers.amazon import AmazonAdapter
from setup_finder.normalizers.base import CandidateAdapter, is_amazon_candidate
from setup_finder.normalizers.google_shopping import GoogleShoppingAdapter


class CandidateNormalizer:
    """SerpAPI 결과 행 목록 → RawCandidate 목록

    Usage:
        normalizer = CandidateNormalizer()
        candidates = normalizer.normalize_rows(data["shopping_results"], engine="google_shopping")
    """

    def __init__(self, adapters: Optional[Sequence[CandidateAdapter]] = None):
        self.adapters: list[CandidateAdapter] = list(adapters or (GoogleShoppingAdapter(), AmazonAdapter()))

    def normalize(self, raw: Any, index: int, engine: str = "google_shopping",
                  currency: str = "USD", region: str = "US") -> Optional[RawCandidate]:
        """행 하나를 정규화 (처음으로 성공한 어댑터 결과)"""
        if not isinstance(raw, dict):
            return None

        for adapter in self.adapters:
            if not adapter.accepts(raw, engine):
                continue
            candidate = adapter.normalize(raw, index, currency=currency, region=region)
            if candidate is not None:
                return candidate
        return None

    def normalize_rows(self, rows: Iterable[Any], engine: str = "google_shopping",
                       currency: str = "USD", region: str = "US") -> list[RawCandidate]:
        """행 목록 정규화. 제목 없는 행은 버립니다 (URL 없는 행은 유지)."""
        candidates: list[RawCandidate] = []
        total = 0
        for index, raw in enumerate(rows or []):
            total += 1
            candidate = self.normalize(raw, index, engine=engine, currency=currency, region=region)
            if candidate is not None:
                candidates.append(candidate)

        logger.debug(f"[NORMALIZE] {engine}: {len(candidates)}/{total} rows normalized")
        return candidates

    @staticmethod
    def filter_amazon_only(candidates: list[RawCandidate]) -> list[RawCandidate]:
        """Amazon 허용 목록 판매처/URL만 남김"""
        filtered = [c for c in candidates if is_amazon_candidate(c)]
        logger.info(f"[NORMALIZE] Amazon-only filter: {len(filtered)}/{len(candidates)} kept")
        return filtered

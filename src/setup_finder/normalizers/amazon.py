"""Amazon 엔진 결과 행(organic_results) 어댑터"""

from typing import Any, Optional

from setup_finder.core.logging import logger
from setup_finder.engine.models import RawCandidate
from setup_finder.normalizers.base import parse_price, positional_id, validate_image
from setup_finder.utils.currency import guess_currency
from setup_finder.utils.edge_cases import EdgeCaseHandler


class AmazonAdapter:
    """engine=amazon 응답 정규화

    현재가가 없으면 정가(old_price)를 가격으로 사용합니다.
    """

    name = "amazon"

    def accepts(self, raw: dict[str, Any], engine: str = "amazon") -> bool:
        return engine == self.name or "asin" in raw

    def normalize(self, raw: dict[str, Any], index: int, currency: str = "USD",
                  region: str = "US") -> Optional[RawCandidate]:
        title = EdgeCaseHandler.safe_str(raw.get("title"))
        if not title:
            logger.debug("[NORMALIZE] Skipping amazon row without title")
            return None

        price = self._extract_price(raw)
        if price is None:
            logger.debug(f"[NORMALIZE] No Amazon price for '{title[:40]}'")

        price_text = raw.get("price") if isinstance(raw.get("price"), str) else None
        identity = EdgeCaseHandler.first_present(raw, ("asin", "product_id", "link"))

        return RawCandidate(
            id=str(identity or positional_id(index, raw.get("position"))),
            title=title,
            url=EdgeCaseHandler.safe_str(raw.get("link")) or None,
            price=price,
            currency=guess_currency(price_text, currency),
            merchant="Amazon",
            rating=EdgeCaseHandler.safe_float(raw.get("rating"), min_val=0.0, max_val=5.0),
            review_count=EdgeCaseHandler.safe_int(
                EdgeCaseHandler.first_present(raw, ("reviews_count", "reviews")), default=0, min_val=0
            ) or None,
            image=validate_image(raw.get("thumbnail")),
            category=None,
            ship_region=(region or "US").upper(),
        )

    @staticmethod
    def _extract_price(raw: dict[str, Any]) -> Optional[float]:
        for key in ("extracted_price", "price", "extracted_old_price", "old_price"):
            price = parse_price(raw.get(key))
            if price is not None:
                return price
        return None

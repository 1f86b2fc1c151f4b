"""Google Shopping 결과 행(shopping_results) 어댑터"""

from typing import Any, Optional

from setup_finder.core.logging import logger
from setup_finder.engine.models import RawCandidate
from setup_finder.normalizers.base import (
    infer_merchant,
    parse_price,
    positional_id,
    validate_image,
)
from setup_finder.utils.currency import guess_currency
from setup_finder.utils.edge_cases import EdgeCaseHandler


_ID_FIELDS = ("product_id", "offer_id", "serpapi_product_id", "asin", "link")
_URL_FIELDS = ("link", "product_link", "source_link")
_IMAGE_FIELDS = ("thumbnail", "image", "thumbnail_link")


class GoogleShoppingAdapter:
    """engine=google_shopping 응답의 shopping_results 행 정규화"""

    name = "google_shopping"

    def accepts(self, raw: dict[str, Any], engine: str = "google_shopping") -> bool:
        return engine == self.name and "asin" not in raw

    def normalize(self, raw: dict[str, Any], index: int, currency: str = "USD",
                  region: str = "US") -> Optional[RawCandidate]:
        title = EdgeCaseHandler.safe_str(raw.get("title"))
        if not title:
            logger.debug("[NORMALIZE] Skipping google_shopping row without title")
            return None

        url = self._extract_url(raw)

        price = parse_price(raw.get("extracted_price"))
        if price is None:
            price = parse_price(raw.get("price"))

        raw_price_text = raw.get("price") if isinstance(raw.get("price"), str) else None
        row_currency = EdgeCaseHandler.safe_str(raw.get("currency")) or guess_currency(raw_price_text, currency)

        return RawCandidate(
            id=str(EdgeCaseHandler.first_present(raw, _ID_FIELDS) or positional_id(index, raw.get("position"))),
            title=title,
            url=url,
            price=price,
            currency=row_currency,
            merchant=infer_merchant(raw, url),
            rating=EdgeCaseHandler.safe_float(raw.get("rating"), min_val=0.0, max_val=5.0),
            review_count=EdgeCaseHandler.safe_int(raw.get("reviews"), default=0, min_val=0) or None,
            image=validate_image(self._extract_image(raw)),
            category=None,
            ship_region=(region or "US").upper(),
            serpapi_product_id=EdgeCaseHandler.safe_str(raw.get("product_id")) or None,
            serpapi_product_api=EdgeCaseHandler.safe_str(raw.get("serpapi_product_api")) or None,
        )

    @staticmethod
    def _extract_url(raw: dict[str, Any]) -> Optional[str]:
        url = EdgeCaseHandler.first_present(raw, _URL_FIELDS)
        if not url and isinstance(raw.get("product"), dict):
            url = raw["product"].get("link")
        return EdgeCaseHandler.safe_str(url) or None

    @staticmethod
    def _extract_image(raw: dict[str, Any]) -> Optional[str]:
        image = EdgeCaseHandler.first_present(raw, _IMAGE_FIELDS)
        if not image:
            images = EdgeCaseHandler.safe_list(raw.get("images"))
            image = images[0] if images else None
        return image if isinstance(image, str) else None

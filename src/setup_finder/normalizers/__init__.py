"""Candidate Normalizer - 마켓플레이스별 어댑터"""

from .amazon import AmazonAdapter
from .base import CandidateAdapter, is_amazon_candidate, parse_price, validate_image
from .google_shopping import GoogleShoppingAdapter
from .normalizer import CandidateNormalizer

__all__ = [
    "AmazonAdapter",
    "CandidateAdapter",
    "CandidateNormalizer",
    "GoogleShoppingAdapter",
    "is_amazon_candidate",
    "parse_price",
    "validate_image",
]

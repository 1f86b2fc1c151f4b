"""Utilities package - Flat structure"""

from .hash_utils import (
    hash_string,
    generate_build_cache_key,
    generate_search_cache_key,
    generate_swap_cache_key,
    generate_search_id,
)
from .currency import (
    region_from_currency,
    country_code_from_currency,
    amazon_domain_for_region,
    guess_currency,
)
from .edge_cases import EdgeCaseHandler

__all__ = [
    # hash
    "hash_string",
    "generate_build_cache_key",
    "generate_search_cache_key",
    "generate_swap_cache_key",
    "generate_search_id",
    # currency
    "region_from_currency",
    "country_code_from_currency",
    "amazon_domain_for_region",
    "guess_currency",
    # edge cases
    "EdgeCaseHandler",
]

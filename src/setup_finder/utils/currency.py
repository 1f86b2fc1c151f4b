"""통화/지역 매핑 유틸리티"""
from typing import Optional


SUPPORTED_CURRENCIES = ("USD", "EUR", "GBP", "INR", "CAD", "AUD", "JPY", "CNY", "BRL", "MXN")

_CURRENCY_TO_REGION = {
    "USD": "US",
    "EUR": "EU",
    "GBP": "UK",
    "INR": "IN",
    "CAD": "CA",
    "AUD": "AU",
    "JPY": "JP",
    "CNY": "CN",
    "BRL": "BR",
    "MXN": "MX",
}

# SerpAPI gl 파라미터 (EU는 독일 기준)
_CURRENCY_TO_COUNTRY = {
    "USD": "us",
    "EUR": "de",
    "GBP": "gb",
    "INR": "in",
    "CAD": "ca",
    "AUD": "au",
    "JPY": "jp",
    "CNY": "cn",
    "BRL": "br",
    "MXN": "mx",
}

_REGION_TO_AMAZON_DOMAIN = {
    "US": "amazon.com",
    "UK": "amazon.co.uk",
    "CA": "amazon.ca",
    "AU": "amazon.com.au",
    "IN": "amazon.in",
    "EU": "amazon.de",
}

# 가격 문자열 기호 → 통화 (멀티 문자 기호를 먼저 검사)
_SYMBOL_TO_CURRENCY = (
    ("C$", "CAD"),
    ("A$", "AUD"),
    ("R$", "BRL"),
    ("$", "USD"),
    ("₹", "INR"),
    ("€", "EUR"),
    ("£", "GBP"),
)


def region_from_currency(currency: str) -> str:
    """통화 코드 → 지역 코드 (기본 US)"""
    return _CURRENCY_TO_REGION.get((currency or "").upper(), "US")


def country_code_from_currency(currency: str) -> str:
    """통화 코드 → SerpAPI gl 국가 코드 (기본 us)"""
    return _CURRENCY_TO_COUNTRY.get((currency or "").upper(), "us")


def amazon_domain_for_region(region: str) -> str:
    """지역 코드 → Amazon 도메인 (기본 amazon.com)"""
    return _REGION_TO_AMAZON_DOMAIN.get((region or "").upper(), "amazon.com")


def guess_currency(price_text: Optional[str], fallback: str = "USD") -> str:
    """가격 문자열의 통화 기호로 통화를 추정

    Args:
        price_text: 원본 가격 문자열 (예: "£19.99")
        fallback: 추정 실패 시 반환할 통화

    Returns:
        통화 코드
    """
    if not price_text:
        return fallback
    for symbol, currency in _SYMBOL_TO_CURRENCY:
        if symbol in price_text:
            return currency
    return fallback

"""로그 마스킹 테스트"""

from __future__ import annotations

import logging

from setup_finder.core.logging import SecretMaskingFilter, mask_secrets, sanitize_for_log


def test_mask_secrets_in_query_string():
    url = "https://serpapi.com/search.json?engine=google_shopping&api_key=abc123&q=desk"
    assert mask_secrets(url) == "https://serpapi.com/search.json?engine=google_shopping&api_key=***&q=desk"


def test_sanitize_truncates_and_handles_empty():
    assert sanitize_for_log("") == "[empty]"
    assert sanitize_for_log("x" * 150, max_length=10) == "x" * 10 + "..."


def test_filter_rewrites_record_message():
    """포맷 인자에 섞인 키도 마스킹"""
    record = logging.LogRecord("setup_finder", logging.INFO, __file__, 1,
                               "GET %s failed", ("https://example.com/v1?key=secret",), None)

    assert SecretMaskingFilter().filter(record) is True
    assert record.getMessage() == "GET https://example.com/v1?key=*** failed"

"""공유 HTTP 클라이언트 (curl_cffi)

- SerpAPI/Gemini 호출마다 AsyncSession을 만들면 TLS/커넥션 오버헤드가 커지므로
  프로세스 단위로 세션을 재사용합니다.
- 앱 종료 시 lifespan에서 close()로 정리합니다.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

from curl_cffi.requests import AsyncSession

from setup_finder.core.config import settings
from setup_finder.core.exceptions import NetworkException
from setup_finder.core.logging import logger, sanitize_for_log


@dataclass
class HttpResponse:
    """상태 코드 + 파싱된 JSON (파싱 실패 시 None)"""

    status: int
    data: Optional[Any]
    text: str = ""
    reason: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class SharedHttpClient:
    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._session: Optional[AsyncSession] = None

    async def _ensure_session(self) -> AsyncSession:
        async with self._lock:
            if self._session is not None:
                return self._session
            self._session = AsyncSession(
                impersonate=settings.http_impersonate,
                headers=self.default_headers(),
                allow_redirects=True,
                max_clients=settings.http_max_clients,
                trust_env=False,
            )
            return self._session

    def default_headers(self) -> Dict[str, str]:
        return {
            "User-Agent": settings.serpapi_user_agent,
            "Accept": "application/json",
            "Accept-Language": "en-US,en;q=0.9",
        }

    async def get_json(
        self,
        url: str,
        *,
        timeout_s: float,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> HttpResponse:
        """GET 후 JSON 파싱

        Raises:
            NetworkException: 전송 계층 실패 (DNS, 연결, 타임아웃)
        """
        sess = await self._ensure_session()
        try:
            resp = await sess.get(url, params=params, headers=headers, timeout=timeout_s)
        except Exception as e:
            logger.info(f"[HTTP_CLIENT] GET failed: {type(e).__name__}: {sanitize_for_log(repr(e))}")
            raise NetworkException(f"GET {sanitize_for_log(url)} failed: {type(e).__name__}") from e
        return self._to_response(resp)

    async def post_json(
        self,
        url: str,
        payload: Dict[str, Any],
        *,
        timeout_s: float,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> HttpResponse:
        """JSON 바디 POST 후 JSON 파싱

        Raises:
            NetworkException: 전송 계층 실패
        """
        sess = await self._ensure_session()
        merged_headers = {"Content-Type": "application/json", **(headers or {})}
        try:
            resp = await sess.post(
                url,
                params=params,
                data=json.dumps(payload),
                headers=merged_headers,
                timeout=timeout_s,
            )
        except Exception as e:
            logger.info(f"[HTTP_CLIENT] POST failed: {type(e).__name__}: {sanitize_for_log(repr(e))}")
            raise NetworkException(f"POST {sanitize_for_log(url)} failed: {type(e).__name__}") from e
        return self._to_response(resp)

    @staticmethod
    def _to_response(resp: Any) -> HttpResponse:
        status = getattr(resp, "status_code", 0) or 0
        text = getattr(resp, "text", "") or ""
        reason = getattr(resp, "reason", "") or ""
        try:
            data = json.loads(text) if text else None
        except ValueError:
            data = None
        return HttpResponse(status=status, data=data, text=text, reason=str(reason))

    async def close(self) -> None:
        async with self._lock:
            if self._session is None:
                return
            try:
                await self._session.close()
            except Exception as e:
                logger.debug(f"[HTTP_CLIENT] close failed: {type(e).__name__}")
            self._session = None


_shared_http_client = SharedHttpClient()


def get_shared_http_client() -> SharedHttpClient:
    return _shared_http_client


async def shutdown_shared_http_client() -> None:
    await _shared_http_client.close()

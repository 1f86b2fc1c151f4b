"""Build Routes - /build, /reroll

HTTP Layer가 BuildOrchestrator로 요청을 위임하는 Translator 역할만 수행합니다.
"""

import asyncio

from fastapi import APIRouter, Depends, Response

from setup_finder.api.dependencies import get_orchestrator
from setup_finder.core.config import settings
from setup_finder.core.exceptions import TimeoutException
from setup_finder.core.logging import logger
from setup_finder.engine.orchestrator import BuildOrchestrator
from setup_finder.engine.result import BuildResult
from setup_finder.schemas.build_schema import BuildRequest, BuildResponse, BuildSettings, RerollRequest

router = APIRouter(tags=["build"])

FALLBACK_PLAN_HEADER = "X-Fallback-Plan"


async def _run_build(
    orchestrator: BuildOrchestrator,
    query: str,
    request_settings: BuildSettings,
    use_cache: bool,
) -> BuildResult:
    """서버 하드 캡(api_build_timeout_s) 안에서 빌드 실행"""
    timeout_s = settings.api_build_timeout_s
    try:
        return await asyncio.wait_for(
            orchestrator.build(query, request_settings.to_options(), use_cache=use_cache),
            timeout=timeout_s,
        )
    except asyncio.TimeoutError:
        logger.error(f"[API] Build exceeded {timeout_s}s for query (length: {len(query)})")
        raise TimeoutException("build", timeout_s)


@router.post("/build", response_model=BuildResponse)
async def build_setup(
    request: BuildRequest,
    response: Response,
    orchestrator: BuildOrchestrator = Depends(get_orchestrator),
):
    """셋업 빌드 API

    Flow:
        1. 요청 검증 (스키마 위반은 400 VALIDATION_ERROR)
        2. Engine에 위임 (Cache → Plan → Search/Select → Budget)
        3. 템플릿 폴백 플랜이면 X-Fallback-Plan 헤더
    """
    logger.info(f"[API] Build request: query (length: {len(request.query)}), budget={request.settings.budget}")

    result = await _run_build(orchestrator, request.query, request.settings, use_cache=True)
    if result.fallback_used:
        response.headers[FALLBACK_PLAN_HEADER] = "true"

    return BuildResponse.from_result(result)


@router.post("/reroll", response_model=BuildResponse)
async def reroll_setup(
    request: RerollRequest,
    response: Response,
    orchestrator: BuildOrchestrator = Depends(get_orchestrator),
):
    """같은 설정으로 새 셋업 생성 (캐시 조회 없이 재빌드, 제외 ID 필터)"""
    logger.info(f"[API] Reroll request: excluding {len(request.exclude_ids)} products")

    result = await _run_build(orchestrator, request.original_query, request.settings, use_cache=False)
    if result.fallback_used:
        response.headers[FALLBACK_PLAN_HEADER] = "true"

    return BuildResponse.from_result(result.rerolled(request.original_query, request.exclude_ids))

"""Engine Layer - Build pipeline core

- models: Need / RawCandidate / Product / Plan / BuildOptions
- BudgetEnforcer: 총 예산 하드 제약
- BuildResult / BuildStatus / BuildStage: 표준 결과 포맷과 상태 머신
- ExecutionStrategy / RetryPolicy / CancellationToken: 재시도·폴백·취소
- CacheAdapter: 예외를 던지지 않는 캐시 어댑터
- build_ghost_tips: 결과 품질별 안내 문구

BuildOrchestrator 는 clients/planner/selector 에 의존하므로
setup_finder.engine.orchestrator 에서 직접 import 합니다.
"""

from .budget import BudgetEnforcer, EnforcementReport
from .cache_adapter import CacheAdapter
from .models import BuildOptions, BudgetSlice, Need, Plan, Product, RawCandidate, SelectionContext
from .result import BuildResult, BuildStage, BuildStatus
from .strategy import CancellationToken, ExecutionStrategy, RetryPolicy
from .tips import build_ghost_tips

__all__ = [
    "BudgetEnforcer",
    "EnforcementReport",
    "CacheAdapter",
    "BuildOptions",
    "BudgetSlice",
    "Need",
    "Plan",
    "Product",
    "RawCandidate",
    "SelectionContext",
    "BuildResult",
    "BuildStage",
    "BuildStatus",
    "CancellationToken",
    "ExecutionStrategy",
    "RetryPolicy",
    "build_ghost_tips",
]

"""Ghost Setup Finder - 예산 기반 셋업 추천 엔진"""

__version__ = "1.0.0"

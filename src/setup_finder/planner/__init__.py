"""Need Planner - AI 플랜, 단일 상품 tier 플랜, 템플릿 폴백

clients.gemini_client 가 planner.allocation 을 사용하므로 여기서는 하위 모듈을 import 하지 않습니다.
"""

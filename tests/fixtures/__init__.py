"""테스트 자산 레이어

규칙:
- fakes: 외부 의존(Redis, HTTP) 대체와 도메인 레코드 팩토리
- serp_payloads: SerpAPI/Gemini 응답 샘플 (단순 dict)
- 네트워크 의존 없음
"""

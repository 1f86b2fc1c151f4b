"""HTTP 스키마 (camelCase pydantic 모델)"""

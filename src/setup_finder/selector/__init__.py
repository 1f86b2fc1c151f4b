"""Selector/Ranker - need별 상품 선택과 다중 상품 랭킹"""

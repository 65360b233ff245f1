"""
서울 부동산 공공데이터 대시보드
국토교통부·행정안전부·한국부동산원·NEIS 공공 API를 조회해 정규화된 JSON으로 제공합니다.
"""

__version__ = "0.3.0"

"""행정구역 코드와 고정 조회표."""

from typing import Dict, List

from .errors import ValidationError

# 서울시 구별 법정동(시군구) 코드
LAWD_CODE_MAP: Dict[str, str] = {
    "강남구": "11680",
    "강동구": "11740",
    "강북구": "11305",
    "강서구": "11500",
    "관악구": "11620",
    "광진구": "11215",
    "구로구": "11530",
    "금천구": "11545",
    "노원구": "11350",
    "도봉구": "11320",
    "동대문구": "11230",
    "동작구": "11590",
    "마포구": "11440",
    "서대문구": "11410",
    "서초구": "11650",
    "성동구": "11200",
    "성북구": "11290",
    "송파구": "11710",
    "양천구": "11470",
    "영등포구": "11560",
    "용산구": "11170",
    "은평구": "11380",
    "종로구": "11110",
    "중구": "11140",
    "중랑구": "11260",
}
SEOUL_DISTRICTS: List[str] = list(LAWD_CODE_MAP)
DEFAULT_DISTRICT = "강남구"

# R-ONE 통계표 지역명 (CLS_NM)
RONE_REGION_NAMES: List[str] = [
    "전국", "수도권", "서울", "경기", "인천", "지방", "부산", "대구", "광주", "대전",
    "울산", "세종", "강원", "충북", "충남", "전북", "전남", "경북", "경남", "제주",
]
# 시도 단위 비교 대상 17개 지역
PROVINCE_REGIONS: List[str] = [
    "서울", "경기", "인천", "부산", "대구", "광주", "대전", "울산", "세종",
    "강원", "충북", "충남", "전북", "전남", "경북", "경남", "제주",
]
DEFAULT_REGION = "서울"

# 청약홈 공급지역 코드
SUBSCRIPTION_AREA_CODES: Dict[str, str] = {
    "100": "수도권",
    "400": "대전/충청",
    "700": "부산/영남",
    "900": "광주/호남",
}

# 청약통장 예금종목 코드
DEPOSIT_TYPES: Dict[str, str] = {
    "01": "청약저축",
    "02": "청약예금",
    "03": "청약부금",
    "04": "주택청약종합저축",
}


def lawd_code_for(district: str) -> str:
    """Map a Seoul district name to its 5-digit LAWD code or fail fast."""

    code = LAWD_CODE_MAP.get((district or "").strip())
    if not code:
        raise ValidationError("유효하지 않은 구 이름입니다.", error="Invalid district")
    return code


def validate_region(region: str) -> str:
    if region not in RONE_REGION_NAMES:
        raise ValidationError("유효하지 않은 지역입니다.", error="Invalid region")
    return region


def parse_district_list(value: str, default: List[str]) -> List[str]:
    """Split a comma separated district list, validating every entry."""

    if not value:
        return list(default)
    districts = [part.strip() for part in value.split(",") if part.strip()]
    for district in districts:
        lawd_code_for(district)
    return districts


def parse_region_list(value: str, default: List[str]) -> List[str]:
    if not value:
        return list(default)
    regions = [part.strip() for part in value.split(",") if part.strip()]
    for region in regions:
        validate_region(region)
    return regions

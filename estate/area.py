"""
Area statistics: resident population per district (MOIS) and school counts
per district (NEIS).
"""

import logging
import re
from typing import Any, Dict, List

from .config import NEIS_KEY_ENV, get_api_key
from .dates import validate_year_month
from .fanout import fan_out, join_by_key
from .handler import fetch_handler
from .normalize import Field, RecordSchema, as_list, dig, find_first_text, korean_sort_key, parse_int
from .upstream import request_json

logger = logging.getLogger(__name__)

POPULATION_URL = "https://apis.data.go.kr/1741000/admmPpltnHhStus/selectAdmmPpltnHhStus"
SEOUL_ADMM_CODE = "1100000000"

NEIS_SCHOOL_URL = "https://open.neis.go.kr/hub/schoolInfo"
SEOUL_EDUCATION_OFFICE = "B10"
NEIS_PAGE_SIZE = 1000
SCHOOL_KINDS = {"elementary": "초등학교", "middle": "중학교", "high": "고등학교"}


# ===== 인구 =====
def population_schema(ym: str) -> RecordSchema:
    return RecordSchema(
        [
            Field("district", ("sggNm",), required=True),
            Field("population", ("totNmprCnt",), kind="int"),
            Field("households", ("hhCnt",), kind="int"),
            Field("popPerHousehold", ("hhNmpr",), kind="float"),
            Field("malePopulation", ("maleNmprCnt",), kind="int"),
            Field("femalePopulation", ("femlNmprCnt",), kind="int"),
            Field("maleFemlRate", ("maleFemlRate",)),
            Field("statsMonth", ("statsYm",), default=ym),
        ]
    )


@fetch_handler
def population(ym: str, admm_cd: str = SEOUL_ADMM_CODE) -> Dict[str, Any]:
    service_key = get_api_key()
    ym = validate_year_month(ym)

    payload = request_json(
        POPULATION_URL,
        {
            "serviceKey": service_key,
            "admmCd": admm_cd or SEOUL_ADMM_CODE,
            "srchFrYm": ym,
            "srchToYm": ym,
            "lv": "2",  # 시군구 단위
            "regSeCd": "1",  # 총 등록인구
            "type": "JSON",
            "numOfRows": "100",
            "pageNo": "1",
        },
    )
    rows = as_list(
        dig(
            payload,
            ("Response", "items", "item"),
            ("body", "items", "item"),
            ("items",),
        )
    )
    data = population_schema(ym).normalize(rows)
    data.sort(key=lambda item: korean_sort_key(item["district"]))
    return {
        "data": data,
        "statsMonth": ym,
        "totalPopulation": sum(item["population"] for item in data),
        "totalHouseholds": sum(item["households"] for item in data),
    }


# ===== 학교 =====
def school_district(road_address: str) -> str:
    """'서울특별시 강남구 ...' -> '강남구'; empty unless the second token ends in 구."""

    parts = re.split(r"\s+", road_address.strip())
    district = parts[1] if len(parts) >= 2 else ""
    return district if district.endswith("구") else ""


def fetch_school_counts(api_key: str, school_kind: str) -> Dict[str, Dict[str, Any]]:
    """``{district: {"count", "specialHigh", "autonomousHigh"}}`` over every NEIS page."""

    districts: Dict[str, Dict[str, Any]] = {}
    page = 1
    total = 0
    while True:
        payload = request_json(
            NEIS_SCHOOL_URL,
            {
                "KEY": api_key,
                "Type": "json",
                "pIndex": str(page),
                "pSize": str(NEIS_PAGE_SIZE),
                "ATPT_OFCDC_SC_CODE": SEOUL_EDUCATION_OFFICE,
                "SCHUL_KND_SC_NM": school_kind,
            },
        )
        if not isinstance(payload, dict) or "schoolInfo" not in payload:
            break
        total = parse_int(dig(payload, ("schoolInfo", 0, "head", 0, "list_total_count")))
        for row in as_list(dig(payload, ("schoolInfo", 1, "row"))):
            district = school_district(find_first_text(row, "ORG_RDNMA"))
            if not district:
                continue
            entry = districts.setdefault(district, {"count": 0, "specialHigh": [], "autonomousHigh": []})
            entry["count"] += 1
            if school_kind == SCHOOL_KINDS["high"]:
                high_school_type = find_first_text(row, "HS_SC_NM")
                name = find_first_text(row, "SCHUL_NM")
                if high_school_type == "특목고":
                    entry["specialHigh"].append(name)
                elif high_school_type == "자율고":
                    entry["autonomousHigh"].append(name)
        if page * NEIS_PAGE_SIZE >= total:
            break
        page += 1
    logger.debug("NEIS %s: %d districts over %d pages", school_kind, len(districts), page)
    return districts


@fetch_handler
def schools() -> Dict[str, Any]:
    api_key = get_api_key(NEIS_KEY_ENV)

    kinds = list(SCHOOL_KINDS)
    results = fan_out(
        [lambda kind=SCHOOL_KINDS[name]: fetch_school_counts(api_key, kind) for name in kinds],
        batch_size=None,
        tolerate_errors=False,
    )
    joined = join_by_key(
        {name: (result or {}) for name, result in zip(kinds, results)},
        default=None,
    )

    data: List[Dict[str, Any]] = []
    for district, by_kind in joined.items():
        high = by_kind["high"] or {}
        data.append(
            {
                "district": district,
                "elementary": (by_kind["elementary"] or {}).get("count", 0),
                "middle": (by_kind["middle"] or {}).get("count", 0),
                "high": high.get("count", 0),
                "specialHigh": high.get("specialHigh", []),
                "autonomousHigh": high.get("autonomousHigh", []),
            }
        )
    return {
        "data": data,
        "totalSchools": sum(item["elementary"] + item["middle"] + item["high"] for item in data),
    }

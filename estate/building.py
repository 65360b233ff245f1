"""
Building lookups: legal-dong codes for a district, the building register
title section (건축물대장 표제부) and monthly electricity/gas usage.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from .codes import lawd_code_for
from .config import get_api_key
from .dates import months_of_year, validate_year
from .errors import ValidationError
from .fanout import CancelToken, fan_out, join_by_key
from .format import format_usage
from .handler import fetch_handler
from .normalize import Field, RecordSchema, as_list, dedupe, dig, find_first_text, parse_float
from .upstream import request_json, request_xml_items

logger = logging.getLogger(__name__)

STAN_REGION_URL = "https://apis.data.go.kr/1741000/StanReginCd/getStanReginCdList"
BUILDING_TITLE_URL = "https://apis.data.go.kr/1613000/BldRgstHubService/getBrTitleInfo"
ELECTRICITY_URL = "https://apis.data.go.kr/1613000/BldEngyHubService/getBeElctyUsgInfo"
GAS_URL = "https://apis.data.go.kr/1613000/BldEngyHubService/getBeGasUsgInfo"
ENERGY_SOURCES = {"elec": ELECTRICITY_URL, "gas": GAS_URL}

DONG_SCHEMA = RecordSchema(
    [
        Field(
            "name",
            compute=lambda row: find_first_text(row, "locallow_nm")
            or find_first_text(row, "locatadd_nm").split(" ")[-1],
            required=True,
        ),
        Field(
            "bjdongCd",
            compute=lambda row: find_first_text(row, "region_cd")[5:],
            required=True,
        ),
    ]
)

REGISTER_SCHEMA = RecordSchema(
    [
        Field("name", ("건물명", "bldNm")),
        Field("mainPurpose", ("주용도코드명", "mainPurpsCdNm")),
        Field("structure", ("구조코드명", "strctCdNm")),
        Field("groundFloors", ("지상층수", "grndFlrCnt")),
        Field("underFloors", ("지하층수", "ugrndFlrCnt")),
        Field("totalArea", ("연면적", "totArea")),
        Field("buildingArea", ("건축면적", "archArea")),
        Field("landArea", ("대지면적", "platArea")),
        Field("approvalDate", ("사용승인일", "useAprDay")),
        Field("address", ("대지위치", "platPlc")),
    ],
    id_prefix="building",
)


def is_dong_level(region_code: str) -> bool:
    """10-digit legal-dong codes whose last five digits are not all zero."""

    return len(region_code) == 10 and region_code[5:] != "00000"


@fetch_handler
def dong_codes(district: str) -> Dict[str, Any]:
    service_key = get_api_key()
    sigungu_code = lawd_code_for(district)

    payload = request_json(
        STAN_REGION_URL,
        {
            "serviceKey": service_key,
            "locatadd_nm": f"서울특별시 {district}",
            "type": "json",
            "pageNo": "1",
            "numOfRows": "100",
        },
    )
    rows = as_list(dig(payload, ("StanReginCd", 1, "row")))
    rows = [row for row in rows if is_dong_level(find_first_text(row, "region_cd"))]
    return {
        "sigunguCd": sigungu_code,
        "district": district,
        "data": dedupe(DONG_SCHEMA.normalize(rows), "bjdongCd"),
    }


def _require_parcel(sigungu_code: str, bjdong_code: str) -> None:
    if not sigungu_code or not bjdong_code:
        raise ValidationError("시군구코드와 법정동코드는 필수입니다.", error="Missing parameters")


@fetch_handler
def building_register(sigungu_code: str, bjdong_code: str, bun: str = "", ji: str = "") -> Dict[str, Any]:
    service_key = get_api_key()
    _require_parcel(sigungu_code, bjdong_code)

    rows = request_xml_items(
        BUILDING_TITLE_URL,
        {
            "serviceKey": service_key,
            "sigunguCd": sigungu_code,
            "bjdongCd": bjdong_code,
            "platGbCd": "0",
            "bun": bun,
            "ji": ji,
            "numOfRows": "10",
            "pageNo": "1",
        },
    )
    return {"data": REGISTER_SCHEMA.normalize(rows)}


def _energy_usage(url: str, base_params: Dict[str, str], use_ym: str) -> Optional[Tuple[str, str]]:
    """(usage, address) from the first item of one monthly usage call, None when empty."""

    rows = request_xml_items(url, dict(base_params, useYm=use_ym))
    if not rows:
        return None
    return find_first_text(rows[0], "useQty") or "0", find_first_text(rows[0], "platPlc")


def merge_energy(usage: Dict[str, Dict[str, Tuple[str, str]]]) -> List[Dict[str, Any]]:
    """Join electricity and gas usage by YYYYMM into one record per month.

    ``usage`` is ``{"elec": {ym: (qty, addr)}, "gas": {...}}``; a month reported
    by only one source gets ``"0"`` for the other.
    """

    joined = join_by_key(usage, default=None)
    records: List[Dict[str, Any]] = []
    for index, (use_ym, sources) in enumerate(joined.items()):
        elec = sources.get("elec") or ("0", "")
        gas = sources.get("gas") or ("0", "")
        records.append(
            {
                "id": f"energy-{index}",
                "address": gas[1] or elec[1],
                "useYear": use_ym[:4],
                "useMonth": use_ym[4:6],
                "elecUsage": elec[0],
                "gasUsage": gas[0],
                "heatUsage": "0",
                "totalEnergy": format_usage(parse_float(elec[0]) + parse_float(gas[0])),
            }
        )
    return records


@fetch_handler
def building_energy(
    sigungu_code: str,
    bjdong_code: str,
    bun: str = "",
    ji: str = "",
    year: str = "",
    cancel_token: Optional[CancelToken] = None,
) -> Dict[str, Any]:
    service_key = get_api_key()
    _require_parcel(sigungu_code, bjdong_code)
    year = validate_year(year)

    base_params = {
        "serviceKey": service_key,
        "sigunguCd": sigungu_code,
        "bjdongCd": bjdong_code,
        "bun": bun,
        "ji": ji,
        "numOfRows": "1",
        "pageNo": "1",
    }
    axes = [(kind, use_ym) for use_ym in months_of_year(year) for kind in ENERGY_SOURCES]
    tasks = [
        (lambda url=ENERGY_SOURCES[kind], ym=use_ym: _energy_usage(url, base_params, ym))
        for kind, use_ym in axes
    ]
    results = fan_out(tasks, cancel_token=cancel_token)

    usage: Dict[str, Dict[str, Tuple[str, str]]] = {kind: {} for kind in ENERGY_SOURCES}
    for (kind, use_ym), result in zip(axes, results):
        if result is not None:
            usage[kind][use_ym] = result
    data = merge_energy(usage)
    logger.debug("Energy usage %s-%s %s: %d months", sigungu_code, bjdong_code, year, len(data))
    return {"year": year, "data": data}

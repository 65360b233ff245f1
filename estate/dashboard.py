"""
Dashboard aggregates built from the single-source handlers.

Each aggregate fans out over districts, months or regions, treats a failed or
unsuccessful envelope as zero data for that axis, and merges what remains.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from .building import building_energy, building_register
from .codes import DEFAULT_DISTRICT, PROVINCE_REGIONS, lawd_code_for, parse_district_list, parse_region_list
from .dates import iter_recent_months, normalize_month, validate_year
from .errors import NotFound, ValidationError
from .fanout import CancelToken, average, fan_out, pct_change, safe_ratio
from .format import round_half_up
from .handler import envelope_count, envelope_data, fetch_handler, is_success
from .normalize import parse_float, sort_by_date_desc
from .stats import price_stats
from .trade import apartment_trades, house_trades, officetel_trades

logger = logging.getLogger(__name__)

LISTING_DISTRICTS = ["강남구", "서초구", "송파구", "마포구", "용산구", "강동구", "영등포구", "성동구"]
VOLUME_DISTRICTS = ["강남구", "서초구", "송파구", "마포구", "용산구"]
VOLUME_MONTHS = [f"{month:02d}" for month in range(1, 7)]
RATIO_REGIONS = ["서울", "경기", "인천", "부산", "대구"]
COMPLEX_TRADE_MONTHS = 3

HIGH_RISK_RATIO = 70
MEDIUM_RISK_RATIO = 60


def _average_price(records: List[Dict[str, Any]], key: str = "price") -> int:
    return average([record.get(key) or 0 for record in records])


# ===== 시장 현황 =====
@fetch_handler
def market_listing(
    districts: str, year: str, month: str, cancel_token: Optional[CancelToken] = None
) -> Dict[str, Any]:
    targets = parse_district_list(districts, LISTING_DISTRICTS)
    year = validate_year(year)
    month = normalize_month(month)

    tasks: List[Callable[[], Any]] = []
    for district in targets:
        tasks.extend(
            [
                lambda d=district: apartment_trades(d, year, month, "sale"),
                lambda d=district: officetel_trades(d, year, month, "sale"),
                lambda d=district: house_trades(d, year, month),
            ]
        )
    results = fan_out(tasks, cancel_token=cancel_token)

    data: List[Dict[str, Any]] = []
    for index, district in enumerate(targets):
        apartments, officetels, houses = (envelope_data(result) for result in results[index * 3 : index * 3 + 3])
        data.append(
            {
                "district": district,
                "aptCount": len(apartments),
                "aptAvgPrice": _average_price(apartments),
                "officetelCount": len(officetels),
                "officetelAvgPrice": _average_price(officetels),
                "houseCount": len(houses),
                "houseAvgPrice": _average_price(houses),
                "totalCount": len(apartments) + len(officetels) + len(houses),
            }
        )
    return {
        "year": year,
        "month": month,
        "data": data,
        "totalCount": sum(item["totalCount"] for item in data),
        "aptCount": sum(item["aptCount"] for item in data),
        "officetelCount": sum(item["officetelCount"] for item in data),
        "houseCount": sum(item["houseCount"] for item in data),
    }


# ===== 거래량 추이 =====
def volume_summary(district: str, year: str, counts: List[int]) -> Dict[str, Any]:
    """Monthly volumes plus the second-quarter vs first-quarter trend in percent."""

    first_quarter = sum(counts[:3])
    second_quarter = sum(counts[3:6])
    return {
        "district": district,
        "volumes": [{"month": f"{year}.{month}", "count": count} for month, count in zip(VOLUME_MONTHS, counts)],
        "totalCount": sum(counts),
        "avgCount": average(counts),
        "trend": round_half_up(pct_change(second_quarter, first_quarter), 1),
    }


@fetch_handler
def market_volume(districts: str, year: str, cancel_token: Optional[CancelToken] = None) -> Dict[str, Any]:
    targets = parse_district_list(districts, VOLUME_DISTRICTS)
    year = validate_year(year)

    tasks = [
        (lambda d=district, m=month: apartment_trades(d, year, m, "sale"))
        for district in targets
        for month in VOLUME_MONTHS
    ]
    results = fan_out(tasks, cancel_token=cancel_token)

    span = len(VOLUME_MONTHS)
    data = [
        volume_summary(district, year, [envelope_count(r) for r in results[index * span : (index + 1) * span]])
        for index, district in enumerate(targets)
    ]
    return {"year": year, "data": data, "totalCount": sum(item["totalCount"] for item in data)}


# ===== 지역 비교 =====
def latest_index_summary(region: str, series: List[Dict[str, Any]]) -> Dict[str, Any]:
    if not series:
        return {
            "region": region,
            "saleIndex": 0,
            "jeonseIndex": 0,
            "jeonseRatio": 0,
            "saleChange": 0,
            "jeonseChange": 0,
        }
    latest = series[-1]
    sale_index = parse_float(latest.get("saleIndex"))
    jeonse_index = parse_float(latest.get("jeonseIndex"))
    return {
        "region": region,
        "saleIndex": round_half_up(sale_index, 1),
        "jeonseIndex": round_half_up(jeonse_index, 1),
        "jeonseRatio": round_half_up(safe_ratio(jeonse_index, sale_index), 1),
        "saleChange": round_half_up(parse_float(latest.get("saleChange")), 2),
        "jeonseChange": round_half_up(parse_float(latest.get("jeonseChange")), 2),
    }


@fetch_handler
def region_compare(regions: str, year: str, cancel_token: Optional[CancelToken] = None) -> Dict[str, Any]:
    targets = parse_region_list(regions, PROVINCE_REGIONS)
    year = validate_year(year)

    # 17개 시도 이하: 배치 없이 한 번에
    results = fan_out(
        [lambda r=region: price_stats(r, year) for region in targets],
        batch_size=None,
        cancel_token=cancel_token,
    )
    data = [latest_index_summary(region, envelope_data(result)) for region, result in zip(targets, results)]
    return {"year": year, "data": data}


# ===== 전세가율 =====
def format_period(period: str) -> str:
    """'202403' -> '2024.03'; other shapes pass through."""

    return f"{period[:4]}.{period[4:]}" if len(period) == 6 else period


def risk_level(ratio: float) -> str:
    if ratio >= HIGH_RISK_RATIO:
        return "high"
    if ratio >= MEDIUM_RISK_RATIO:
        return "medium"
    return "low"


def jeonse_ratio_summary(region: str, series: List[Dict[str, Any]]) -> Dict[str, Any]:
    ratios = [
        {
            "month": format_period(str(record.get("date") or "")),
            "ratio": safe_ratio(parse_float(record.get("jeonseIndex")), parse_float(record.get("saleIndex"))),
        }
        for record in series
    ]
    current = ratios[-1]["ratio"] if ratios else 0.0
    first = ratios[0]["ratio"] if ratios else 0.0
    return {
        "region": region,
        "ratios": ratios,
        "currentRatio": round_half_up(current, 1),
        "change": round_half_up(current - first, 1),
        "riskLevel": risk_level(current),
    }


@fetch_handler
def jeonse_ratio(regions: str, year: str, cancel_token: Optional[CancelToken] = None) -> Dict[str, Any]:
    targets = parse_region_list(regions, RATIO_REGIONS)
    year = validate_year(year)

    results = fan_out([lambda r=region: price_stats(r, year) for region in targets], cancel_token=cancel_token)
    data = [jeonse_ratio_summary(region, envelope_data(result)) for region, result in zip(targets, results)]
    return {"year": year, "data": data}


# ===== 단지 거래 =====
def sale_stats(sales: List[Dict[str, Any]]) -> Optional[Dict[str, int]]:
    if not sales:
        return None
    prices = [sale.get("price") or 0 for sale in sales]
    return {"count": len(sales), "avg": average(prices), "max": max(prices), "min": min(prices)}


def rent_stats(rents: List[Dict[str, Any]]) -> Optional[Dict[str, int]]:
    if not rents:
        return None
    jeonse = [rent for rent in rents if rent.get("rentType") == "전세"]
    wolse = [rent for rent in rents if rent.get("rentType") == "월세"]
    return {
        "total": len(rents),
        "jeonseCount": len(jeonse),
        "wolseCount": len(wolse),
        "avgDeposit": _average_price(jeonse, "deposit"),
    }


@fetch_handler
def complex_trades(
    district: str, name: str, now: datetime, cancel_token: Optional[CancelToken] = None
) -> Dict[str, Any]:
    district = district or DEFAULT_DISTRICT
    lawd_code_for(district)
    if not name:
        raise ValidationError("단지명(name)은 필수입니다.", error="Missing parameters")

    months = iter_recent_months(now, COMPLEX_TRADE_MONTHS)
    tasks = [
        (lambda y=year, m=month, t=trade_type: apartment_trades(district, y, m, t))
        for trade_type in ("sale", "rent")
        for year, month in months
    ]
    results = fan_out(tasks, cancel_token=cancel_token)

    span = len(months)
    sales = [item for result in results[:span] for item in envelope_data(result) if item.get("name") == name]
    rents = [item for result in results[span:] for item in envelope_data(result) if item.get("name") == name]
    sales = sort_by_date_desc(sales)
    rents = sort_by_date_desc(rents)
    return {
        "district": district,
        "name": name,
        "months": [f"{year}{month}" for year, month in months],
        "sales": sales,
        "rents": rents,
        "saleStats": sale_stats(sales),
        "rentStats": rent_stats(rents),
    }


# ===== 건물 종합 =====
def energy_stats(energy: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not energy:
        return None
    return {
        "count": len(energy),
        "totalElec": sum(parse_float(item.get("elecUsage")) for item in energy),
        "totalGas": sum(parse_float(item.get("gasUsage")) for item in energy),
    }


def pad_parcel_number(value: str) -> str:
    """본번/부번 '12' -> '0012'."""

    text = (value or "").strip()
    return text.zfill(4) if text else text


@fetch_handler
def building_overview(
    sigungu_code: str,
    bjdong_code: str,
    bun: str = "",
    ji: str = "",
    year: str = "",
    cancel_token: Optional[CancelToken] = None,
) -> Dict[str, Any]:
    if not sigungu_code or not bjdong_code:
        raise ValidationError("시군구코드와 법정동코드는 필수입니다.", error="Missing parameters")
    year = validate_year(year)
    bun = pad_parcel_number(bun)
    ji = pad_parcel_number(ji)

    register_result, energy_result = fan_out(
        [
            lambda: building_register(sigungu_code, bjdong_code, bun, ji),
            lambda: building_energy(sigungu_code, bjdong_code, bun, ji, year, cancel_token=cancel_token),
        ],
        batch_size=None,
        cancel_token=cancel_token,
    )
    if not is_success(register_result) and not is_success(energy_result):
        logger.info("Building overview %s-%s: register and energy both failed", sigungu_code, bjdong_code)
        raise NotFound("건물 정보를 찾을 수 없습니다. 주소를 확인해주세요.")

    energy = envelope_data(energy_result)
    return {
        "year": year,
        "register": envelope_data(register_result),
        "energy": energy,
        "energyStats": energy_stats(energy),
    }

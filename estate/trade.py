"""
MOLIT real-transaction (실거래) lookups: apartments, officetels, row houses
(연립다세대) and commercial buildings, for one Seoul district and one month.

Older gateways answer with Korean tag names (<아파트>, <거래금액>), newer ones
with camelCase (<aptNm>, <dealAmount>); every field lists the Korean tag first.
"""

import logging
from typing import Any, Dict, List

from .codes import lawd_code_for
from .config import get_api_key
from .dates import normalize_month, validate_year
from .errors import ValidationError
from .format import format_price
from .handler import fetch_handler
from .normalize import Field, RecordSchema, Row, deal_date, find_first_text, parse_int, sort_by_date_desc
from .upstream import request_xml_items

logger = logging.getLogger(__name__)

MOLIT_API_BASE = "https://apis.data.go.kr/1613000"
APT_TRADE_URL = f"{MOLIT_API_BASE}/RTMSDataSvcAptTrade/getRTMSDataSvcAptTrade"
APT_RENT_URL = f"{MOLIT_API_BASE}/RTMSDataSvcAptRent/getRTMSDataSvcAptRent"
OFFI_TRADE_URL = f"{MOLIT_API_BASE}/RTMSDataSvcOffiTrade/getRTMSDataSvcOffiTrade"
OFFI_RENT_URL = f"{MOLIT_API_BASE}/RTMSDataSvcOffiRent/getRTMSDataSvcOffiRent"
HOUSE_TRADE_URL = f"{MOLIT_API_BASE}/RTMSDataSvcRHTrade/getRTMSDataSvcRHTrade"
COMMERCIAL_TRADE_URL = f"{MOLIT_API_BASE}/RTMSDataSvcNrgTrade/getRTMSDataSvcNrgTrade"
NUM_OF_ROWS = "1000"
TRADE_TYPES = ("sale", "rent")

PRICE_KEYS = ("거래금액", "dealAmount")
MONTHLY_RENT_KEYS = ("월세금액", "monthlyRent")


def _price_display(row: Row) -> str:
    return format_price(parse_int(find_first_text(row, *PRICE_KEYS, "price")))


def _rent_type(row: Row) -> str:
    return "월세" if parse_int(find_first_text(row, *MONTHLY_RENT_KEYS, "monthlyRent")) > 0 else "전세"


def _location_fields() -> List[Field]:
    return [
        Field("district"),
        Field("dong", ("법정동", "umdNm")),
        Field("jibun", ("지번", "jibun")),
    ]


def _sale_schema(name_keys: tuple) -> RecordSchema:
    return RecordSchema(
        [
            Field("name", name_keys, required=True),
            *_location_fields(),
            Field("size", ("전용면적", "excluUseAr"), kind="float"),
            Field("floor", ("층", "floor"), kind="int"),
            Field("price", PRICE_KEYS, kind="int", required=True),
            Field("priceDisplay", compute=_price_display),
            Field("date", compute=deal_date),
            Field("built", ("건축년도", "buildYear"), kind="int"),
            Field("dealType", ("거래유형", "dealingGbn"), default="일반"),
        ]
    )


def _rent_schema(name_keys: tuple) -> RecordSchema:
    return RecordSchema(
        [
            Field("name", name_keys, required=True),
            *_location_fields(),
            Field("size", ("전용면적", "excluUseAr"), kind="float"),
            Field("floor", ("층", "floor"), kind="int"),
            Field("deposit", ("보증금액", "보증금", "deposit"), kind="int", required=True),
            Field("monthlyRent", MONTHLY_RENT_KEYS, kind="int"),
            Field("rentType", compute=_rent_type),
            Field("date", compute=deal_date),
            Field("built", ("건축년도", "buildYear"), kind="int"),
        ]
    )


APARTMENT_NAME_KEYS = ("아파트", "aptNm")
OFFICETEL_NAME_KEYS = ("단지", "offiNm")

APARTMENT_SOURCES = {
    "sale": (APT_TRADE_URL, _sale_schema(APARTMENT_NAME_KEYS)),
    "rent": (APT_RENT_URL, _rent_schema(APARTMENT_NAME_KEYS)),
}
OFFICETEL_SOURCES = {
    "sale": (OFFI_TRADE_URL, _sale_schema(OFFICETEL_NAME_KEYS)),
    "rent": (OFFI_RENT_URL, _rent_schema(OFFICETEL_NAME_KEYS)),
}

HOUSE_SCHEMA = RecordSchema(
    [
        Field("name", ("연립다세대", "mhouseNm"), required=True),
        *_location_fields(),
        Field("size", ("전용면적", "excluUseAr"), kind="float"),
        Field("floor", ("층", "floor"), kind="int"),
        Field("price", PRICE_KEYS, kind="int", required=True),
        Field("date", compute=deal_date),
        Field("built", ("건축년도", "buildYear"), kind="int"),
    ]
)

COMMERCIAL_SCHEMA = RecordSchema(
    [
        Field("name", ("건물주용도", "buildingUse"), default="-"),
        *_location_fields(),
        Field("buildingArea", ("건물면적", "buildingAr", "bldgAr"), kind="float"),
        Field("landArea", ("대지면적", "plottageAr", "platAr"), kind="float"),
        Field("price", PRICE_KEYS, kind="int", required=True),
        Field("date", compute=deal_date),
        Field("built", ("건축년도", "buildYear"), kind="int"),
    ]
)


def molit_trade_params(service_key: str, lawd_code: str, deal_ymd: str) -> Dict[str, str]:
    return {
        "serviceKey": service_key,
        "LAWD_CD": lawd_code,
        "DEAL_YMD": deal_ymd,
        "pageNo": "1",
        "numOfRows": NUM_OF_ROWS,
    }


def fetch_molit_transactions(
    url: str, schema: RecordSchema, district: str, year: str, month: str
) -> List[Dict[str, Any]]:
    """Fetch and normalize one district-month of MOLIT transactions, newest first."""

    service_key = get_api_key()
    lawd_code = lawd_code_for(district)
    year = validate_year(year)
    month = normalize_month(month)

    rows = request_xml_items(url, molit_trade_params(service_key, lawd_code, f"{year}{month}"))
    for row in rows:
        row.setdefault("district", district)
    transactions = schema.normalize(rows, id_prefix=district)
    logger.debug("MOLIT %s %s%s: %d of %d rows kept", district, year, month, len(transactions), len(rows))
    return sort_by_date_desc(transactions)


def _typed_source(sources: Dict[str, tuple], trade_type: str) -> tuple:
    if trade_type not in sources:
        raise ValidationError("거래 유형은 sale 또는 rent 입니다.", error="Invalid type")
    return sources[trade_type]


def _district_month_result(district: str, year: str, month: str, data: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "district": district,
        "year": year,
        "month": normalize_month(month),
        "count": len(data),
        "data": data,
    }


@fetch_handler
def apartment_trades(district: str, year: str, month: str, trade_type: str = "sale") -> Dict[str, Any]:
    url, schema = _typed_source(APARTMENT_SOURCES, trade_type)
    data = fetch_molit_transactions(url, schema, district, year, month)
    result = _district_month_result(district, year, month, data)
    result["type"] = trade_type
    return result


@fetch_handler
def officetel_trades(district: str, year: str, month: str, trade_type: str = "sale") -> Dict[str, Any]:
    url, schema = _typed_source(OFFICETEL_SOURCES, trade_type)
    data = fetch_molit_transactions(url, schema, district, year, month)
    result = _district_month_result(district, year, month, data)
    result["type"] = trade_type
    return result


@fetch_handler
def house_trades(district: str, year: str, month: str) -> Dict[str, Any]:
    data = fetch_molit_transactions(HOUSE_TRADE_URL, HOUSE_SCHEMA, district, year, month)
    return _district_month_result(district, year, month, data)


@fetch_handler
def commercial_trades(district: str, year: str, month: str) -> Dict[str, Any]:
    data = fetch_molit_transactions(COMMERCIAL_TRADE_URL, COMMERCIAL_SCHEMA, district, year, month)
    return _district_month_result(district, year, month, data)

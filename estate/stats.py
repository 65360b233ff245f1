"""
Price statistics: R-ONE monthly apartment sale/jeonse indices and the
odcloud land-price-change micro data.
"""

import logging
from typing import Any, Dict, List

from .codes import validate_region
from .config import RONE_KEY_ENV, get_api_key
from .dates import validate_year
from .fanout import fan_out, join_by_key, pct_change
from .handler import fetch_handler
from .normalize import Field, RecordSchema, as_list, dig, find_first_text, parse_float
from .odcloud import fetch_odcloud
from .upstream import request_json

logger = logging.getLogger(__name__)

RONE_URL = "https://www.reb.or.kr/r-one/openapi/SttsApiTblData.do"
# (월) 지역별 매매지수 / 전세지수 (아파트)
SALE_INDEX_TABLE = "A_2024_00178"
JEONSE_INDEX_TABLE = "A_2024_00182"

LAND_PRICE_URL = "https://api.odcloud.kr/api/LfrMasterSvc/v1/getLfrMicro"


def fetch_index_series(api_key: str, table_id: str, year: str, region: str) -> Dict[str, float]:
    """``{WRTTIME_IDTFR_ID: DTA_VAL}`` of one R-ONE table for one region and year."""

    payload = request_json(
        RONE_URL,
        {
            "KEY": api_key,
            "Type": "json",
            "STATBL_ID": table_id,
            "DTACYCLE_CD": "MM",
            "START_WRTTIME": f"{year}01",
            "END_WRTTIME": f"{year}12",
            "pIndex": "1",
            "pSize": "500",
        },
    )
    rows = as_list(dig(payload, ("SttsApiTblData", 1, "row")))
    series: Dict[str, float] = {}
    for row in rows:
        if find_first_text(row, "CLS_NM") != region:
            continue
        period = find_first_text(row, "WRTTIME_IDTFR_ID")
        if period:
            series[period] = parse_float(row.get("DTA_VAL"))
    return series


def merge_index_series(sale: Dict[str, float], jeonse: Dict[str, float], region: str) -> List[Dict[str, Any]]:
    """One record per period, oldest first, with change against the previous period."""

    records: List[Dict[str, Any]] = []
    previous_sale = previous_jeonse = 0.0
    for period, values in join_by_key({"sale": sale, "jeonse": jeonse}, default=0.0).items():
        sale_index = values["sale"]
        jeonse_index = values["jeonse"]
        records.append(
            {
                "date": period,
                "region": region,
                "saleIndex": sale_index,
                "jeonseIndex": jeonse_index,
                "saleChange": pct_change(sale_index, previous_sale),
                "jeonseChange": pct_change(jeonse_index, previous_jeonse),
            }
        )
        previous_sale, previous_jeonse = sale_index, jeonse_index
    return records


@fetch_handler
def price_stats(region: str, year: str) -> Dict[str, Any]:
    api_key = get_api_key(RONE_KEY_ENV)
    validate_region(region)
    year = validate_year(year)

    sale, jeonse = fan_out(
        [
            lambda table=table_id: fetch_index_series(api_key, table, year, region)
            for table_id in (SALE_INDEX_TABLE, JEONSE_INDEX_TABLE)
        ],
        batch_size=None,
        tolerate_errors=False,
    )
    data = merge_index_series(sale or {}, jeonse or {}, region)
    logger.debug("R-ONE %s %s: %d sale, %d jeonse periods", region, year, len(sale or {}), len(jeonse or {}))
    return {"region": region, "year": year, "count": len(data), "data": data}


# ===== 지가변동률 =====
LAND_PRICE_SCHEMA = RecordSchema(
    [
        Field("yearMonth", ("YM",)),
        Field("regionCode", ("REG",)),
        Field("landCategory", ("LAND_CATE",)),
        Field("landUse", ("LAND_USE",)),
        Field("sampleNo", ("SMPL_NO",)),
    ],
    id_prefix="land",
)


@fetch_handler
def land_price_change(year_month: str, region_code: str = "", page: str = "1", per_page: str = "100") -> Dict[str, Any]:
    result = fetch_odcloud(
        LAND_PRICE_URL,
        LAND_PRICE_SCHEMA,
        page,
        per_page,
        [("YM", "EQ", year_month.strip()), ("REG", "EQ", region_code)],
    )
    result["yearMonth"] = year_month.strip()
    result["regionCode"] = region_code or "전체"
    return result

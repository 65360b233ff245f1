"""
청약홈 (Applyhome) lookups: competition rates, subscription-account statistics,
announcement schedule (odcloud JSON) and the opening-info feed (data.go.kr XML).
"""

import logging
from typing import Any, Dict, List

from .codes import DEPOSIT_TYPES, SUBSCRIPTION_AREA_CODES
from .config import get_api_key
from .format import round_half_up
from .handler import fetch_handler
from .normalize import Field, RecordSchema, Row, find_first_text, parse_int
from .odcloud import fetch_odcloud
from .upstream import request_xml_items

logger = logging.getLogger(__name__)

ODCLOUD_API_BASE = "https://api.odcloud.kr/api"
COMPETITION_URL = f"{ODCLOUD_API_BASE}/ApplyhomeInfoCmpetRtSvc/v1/getAPTLttotPblancCmpet"
ACCOUNT_STATS_URL = f"{ODCLOUD_API_BASE}/ApplyhomeBnkbStatSvc/v1/getBnkbAcnutAllStat"
SCHEDULE_URL = f"{ODCLOUD_API_BASE}/ApplyhomeInfoDetailSvc/v1/getAPTLttotPblancDetail"
OPENING_INFO_URL = "https://apis.data.go.kr/1613000/OpeningService/getOpeningInfo"


# ===== 경쟁률 =====
def _supply_count(row: Row) -> int:
    return parse_int(row.get("TOT_SUPLY_HSHLDCO")) or parse_int(row.get("SUPLY_HSHLDCO")) or 1


def _competition_rate(row: Row) -> float:
    supply = _supply_count(row)
    applicants = parse_int(row.get("RCEPT_CNT"))
    if applicants > 0 and supply > 0:
        return round_half_up(applicants / supply, 2)
    return 0.0


COMPETITION_SCHEMA = RecordSchema(
    [
        Field("name", ("HOUSE_NM", "BSNS_MBY_NM")),
        Field("region", ("SUBSCRPT_AREA_CODE_NM", "SIDO_NM")),
        Field("supplyType", ("HOUSE_SECD_NM",), default="일반"),
        Field("supplyCount", kind="int", compute=_supply_count),
        Field("applicantCount", ("RCEPT_CNT",), kind="int"),
        Field("competitionRate", kind="float", compute=_competition_rate),
        Field("announceDate", ("RCRIT_PBLANC_DE",)),
        Field("houseManageNo", ("HOUSE_MANAGE_NO",)),
        Field("pblancNo", ("PBLANC_NO",)),
    ],
    id_prefix="comp",
)


@fetch_handler
def competition_rates(
    house_manage_no: str = "", pblanc_no: str = "", reside_secd: str = "", page: str = "1", per_page: str = "100"
) -> Dict[str, Any]:
    result = fetch_odcloud(
        COMPETITION_URL,
        COMPETITION_SCHEMA,
        page,
        per_page,
        [
            ("HOUSE_MANAGE_NO", "EQ", house_manage_no),
            ("PBLANC_NO", "EQ", pblanc_no),
            ("RESIDE_SECD", "EQ", reside_secd),
        ],
    )
    result["data"].sort(key=lambda item: item["competitionRate"], reverse=True)
    return result


# ===== 청약통장 =====
ACCOUNT_SCHEMA = RecordSchema(
    [
        Field("date", ("DELNG_OCCRRNC_YM",)),
        Field(
            "region",
            compute=lambda row: SUBSCRIPTION_AREA_CODES.get(find_first_text(row, "SUBSCRPT_AREA_CODE"))
            or find_first_text(row, "SUBSCRPT_AREA_CODE")
            or "전국",
        ),
        Field(
            "depositType",
            compute=lambda row: DEPOSIT_TYPES.get(find_first_text(row, "DPST_ITEM"))
            or find_first_text(row, "DPST_ITEM"),
        ),
        Field("totalAccounts", ("ACNUT_CNT",), kind="int"),
        Field("newAccounts", ("SBSCRB_CNT",), kind="int"),
        Field("canceledAccounts", ("CNCL_CNT",), kind="int"),
        Field("balance", ("BLNC_AMT",), kind="int"),
    ]
)


@fetch_handler
def account_stats(
    year_month: str = "", area_code: str = "", deposit_item: str = "", page: str = "1", per_page: str = "100"
) -> Dict[str, Any]:
    # areaCode 100:수도권, 400:대전/충청, 700:부산/영남, 900:광주/호남 / depositItem 01~04
    result = fetch_odcloud(
        ACCOUNT_STATS_URL,
        ACCOUNT_SCHEMA,
        page,
        per_page,
        [
            ("DELNG_OCCRRNC_YM", "EQ", year_month),
            ("SUBSCRPT_AREA_CODE", "EQ", area_code),
            ("DPST_ITEM", "EQ", deposit_item),
        ],
    )
    result["data"].sort(key=lambda item: item["date"], reverse=True)
    return result


# ===== 분양 일정 =====
SCHEDULE_SCHEMA = RecordSchema(
    [
        Field("name", ("HOUSE_NM",)),
        Field("region", ("SUBSCRPT_AREA_CODE_NM", "HSSPLY_ADRES")),
        Field("houseType", ("HOUSE_SECD_NM", "HOUSE_DTL_SECD_NM")),
        Field("totalSupply", ("TOT_SUPLY_HSHLDCO",), kind="int"),
        Field("announcementDate", ("RCRIT_PBLANC_DE",)),
        Field("subscriptionStartDate", ("RCEPT_BGNDE",)),
        Field("subscriptionEndDate", ("RCEPT_ENDDE",)),
        Field("winnerAnnouncementDate", ("PRZWNER_PRESNATN_DE",)),
        Field("contractStartDate", ("CNTRCT_CNCLS_BGNDE",)),
        Field("contractEndDate", ("CNTRCT_CNCLS_ENDDE",)),
        Field("houseManageNo", ("HOUSE_MANAGE_NO",)),
        Field("pblancNo", ("PBLANC_NO",)),
    ],
    id_prefix="schedule",
)


@fetch_handler
def subscription_schedule(
    house_name: str = "",
    area_code: str = "",
    announce_date_start: str = "",
    announce_date_end: str = "",
    page: str = "1",
    per_page: str = "100",
) -> Dict[str, Any]:
    result = fetch_odcloud(
        SCHEDULE_URL,
        SCHEDULE_SCHEMA,
        page,
        per_page,
        [
            ("HOUSE_NM", "LIKE", house_name),
            ("SUBSCRPT_AREA_CODE", "EQ", area_code),
            ("RCRIT_PBLANC_DE", "GTE", announce_date_start),
            ("RCRIT_PBLANC_DE", "LTE", announce_date_end),
        ],
    )
    result["data"].sort(key=lambda item: item["announcementDate"], reverse=True)
    return result


# ===== 분양 정보 (XML) =====
def subscription_status(recruit_date: str, announce_date: str, today: str) -> str:
    """접수예정 before the recruit date, 접수중 through the winner announcement, then 마감."""

    recruit = recruit_date.replace("-", "")
    announce = announce_date.replace("-", "")
    if today < recruit:
        return "접수예정"
    if today <= announce:
        return "접수중"
    return "마감"


RECRUIT_KEYS = ("rceptBgnde", "rcritPblancDe")
WINNER_KEYS = ("przwnerPresnatnDe", "winnerDe")


def opening_info_schema(today: str) -> RecordSchema:
    return RecordSchema(
        [
            Field("name", ("houseDtlSecdNm", "houseNm", "bsnsMbyNm"), required=True),
            Field("region", ("sidoNm", "sido")),
            Field("address", ("hssplyAdres", "adres")),
            Field("houseType", ("houseTy", "houseSecd")),
            Field("totalUnits", ("totSuplyHshldco", "totHshldco"), kind="int"),
            Field("recruitDate", RECRUIT_KEYS),
            Field("announceDate", WINNER_KEYS),
            Field("contractStart", ("cntrctCnclsBgnde", "contractBgn")),
            Field("contractEnd", ("cntrctCnclsEndde", "contractEnd")),
            Field(
                "status",
                compute=lambda row: subscription_status(
                    find_first_text(row, *RECRUIT_KEYS, "recruitDate"),
                    find_first_text(row, *WINNER_KEYS, "announceDate"),
                    today,
                ),
            ),
        ],
        id_prefix="sub",
    )


@fetch_handler
def opening_info(today: str, region: str = "", house_type: str = "APT") -> Dict[str, Any]:
    service_key = get_api_key()
    params = {"serviceKey": service_key, "numOfRows": "100", "pageNo": "1"}
    if region:
        params["sidoNm"] = region
    params["houseTy"] = house_type

    rows = request_xml_items(OPENING_INFO_URL, params)
    items: List[Dict[str, Any]] = opening_info_schema(today).normalize(rows)
    logger.debug("Opening info %s: %d of %d rows kept", region or "전체", len(items), len(rows))
    items.sort(key=lambda item: item["recruitDate"], reverse=True)
    return {
        "region": region or "전체",
        "houseType": house_type,
        "count": len(items),
        "data": items,
    }

"""공동주택 단지 식별정보 (odcloud AptIdInfoSvc)."""

from typing import Any, Dict

from .handler import fetch_handler
from .normalize import Field, RecordSchema
from .odcloud import fetch_odcloud

COMPLEX_INFO_URL = "https://api.odcloud.kr/api/AptIdInfoSvc/v1/getAptInfo"

COMPLEX_SCHEMA = RecordSchema(
    [
        Field("complexPk", ("COMPLEX_PK",)),
        Field("name", ("COMPLEX_NM",)),
        Field("address", ("ADRES",)),
        Field("sido", ("SIDO_NM",)),
        Field("sigungu", ("SIGUNGU_NM",)),
        Field("totalUnits", ("TOT_HSHLD_CNT",), kind="int"),
        Field("totalBuildings", ("TOT_DONG_CNT",), kind="int"),
        Field("approvalDate", ("USEAPR_DT",)),
    ],
    id_prefix="complex",
)


@fetch_handler
def complex_info(
    complex_pk: str = "",
    address: str = "",
    approval_date_start: str = "",
    approval_date_end: str = "",
    page: str = "1",
    per_page: str = "100",
) -> Dict[str, Any]:
    result = fetch_odcloud(
        COMPLEX_INFO_URL,
        COMPLEX_SCHEMA,
        page,
        per_page,
        [
            ("COMPLEX_PK", "EQ", complex_pk),
            ("ADRES", "LIKE", address),
            ("USEAPR_DT", "GTE", approval_date_start),
            ("USEAPR_DT", "LTE", approval_date_end),
        ],
    )
    result["data"].sort(key=lambda item: item["totalUnits"], reverse=True)
    return result

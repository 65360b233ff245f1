import pytest

from conftest import json_response, odcloud_response, query, rone_response

SALE_TABLE = "A_2024_00178"
JEONSE_TABLE = "A_2024_00182"


def rone_tables(sale_rows, jeonse_rows):
    def respond(url):
        return rone_response(sale_rows if query(url)["STATBL_ID"] == SALE_TABLE else jeonse_rows)

    return respond


def test_price_stats_merge_both_indices(client, upstream):
    upstream.add(
        "SttsApiTblData",
        rone_tables(
            [
                {"WRTTIME_IDTFR_ID": "202402", "CLS_NM": "서울", "DTA_VAL": 101.0},
                {"WRTTIME_IDTFR_ID": "202401", "CLS_NM": "서울", "DTA_VAL": 100.0},
                {"WRTTIME_IDTFR_ID": "202401", "CLS_NM": "경기", "DTA_VAL": 90.0},
            ],
            [
                {"WRTTIME_IDTFR_ID": "202401", "CLS_NM": "서울", "DTA_VAL": 60.0},
                {"WRTTIME_IDTFR_ID": "202403", "CLS_NM": "서울", "DTA_VAL": 61.0},
            ],
        ),
    )
    resp = client.get("/api/stats/price")
    assert resp.status_code == 200
    body = resp.get_json()
    assert (body["region"], body["year"], body["count"]) == ("서울", "2024", 3)
    assert [row["date"] for row in body["data"]] == ["202401", "202402", "202403"]

    january, february, march = body["data"]
    assert (january["saleChange"], january["jeonseChange"]) == (0, 0)
    assert february["saleChange"] == pytest.approx(1.0)
    assert february["jeonseIndex"] == 0
    assert february["jeonseChange"] == pytest.approx(-100.0)
    assert march["jeonseChange"] == 0

    tables = sorted(query(url)["STATBL_ID"] for url in upstream.calls)
    assert tables == [SALE_TABLE, JEONSE_TABLE]
    assert query(upstream.calls[0])["START_WRTTIME"] == "202401"
    assert query(upstream.calls[0])["END_WRTTIME"] == "202412"


def test_price_stats_validation(client, upstream, monkeypatch):
    resp = client.get("/api/stats/price", query_string={"region": "화성"})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Invalid region"

    monkeypatch.delenv("RONE_API_KEY")
    resp = client.get("/api/stats/price")
    assert resp.status_code == 500
    assert resp.get_json()["message"] == "RONE_API_KEY 환경변수를 설정해주세요."
    assert upstream.calls == []


def test_price_stats_fails_when_one_table_fails(client, upstream):
    def respond(url):
        if query(url)["STATBL_ID"] == JEONSE_TABLE:
            return json_response({"RESULT": {"CODE": "ERROR-300", "MESSAGE": "필수 값이 누락되어 있습니다."}})
        return rone_response([])

    upstream.add("SttsApiTblData", respond)
    resp = client.get("/api/stats/price")
    assert resp.status_code == 500
    assert resp.get_json()["error"] == "API error"


@pytest.mark.parametrize(
    "params, expected",
    [
        ({}, "202403"),
        ({"year": "2023"}, "202303"),
        ({"yearMonth": "202212"}, "202212"),
    ],
)
def test_land_price_change_year_month_defaults(client, upstream, params, expected):
    upstream.add("LfrMasterSvc", odcloud_response([{"YM": expected, "REG": "11", "LAND_CATE": "대", "SMPL_NO": "7"}]))
    body = client.get("/api/land/price-change", query_string=params).get_json()
    assert body["yearMonth"] == expected
    assert body["regionCode"] == "전체"
    assert body["data"] == [
        {"id": "land-0", "yearMonth": expected, "regionCode": "11", "landCategory": "대", "landUse": "", "sampleNo": "7"}
    ]
    assert query(upstream.calls[0])["cond[YM::EQ]"] == expected


def test_land_price_change_region_alias(client, upstream):
    upstream.add("LfrMasterSvc", odcloud_response([]))
    body = client.get("/api/land/price-change", query_string={"region": "11"}).get_json()
    assert body["regionCode"] == "11"
    assert query(upstream.calls[0])["cond[REG::EQ]"] == "11"


def test_complex_info_sorted_by_households(client, upstream):
    upstream.add(
        "AptIdInfoSvc",
        odcloud_response(
            [
                {"COMPLEX_PK": "A1", "COMPLEX_NM": "작은단지", "TOT_HSHLD_CNT": "120", "TOT_DONG_CNT": "2"},
                {"COMPLEX_PK": "A2", "COMPLEX_NM": "헬리오시티", "TOT_HSHLD_CNT": "9,510", "TOT_DONG_CNT": "84"},
            ],
            total=40,
        ),
    )
    resp = client.get("/api/complex/info", query_string={"address": "송파구"})
    body = resp.get_json()
    assert body["totalCount"] == 40
    assert [(item["id"], item["name"], item["totalUnits"]) for item in body["data"]] == [
        ("complex-1", "헬리오시티", 9510),
        ("complex-0", "작은단지", 120),
    ]
    assert query(upstream.calls[0])["cond[ADRES::LIKE]"] == "송파구"


def test_population_by_district(client, upstream):
    upstream.add(
        "admmPpltnHhStus",
        json_response(
            {
                "Response": {
                    "head": {"resultCode": "0", "resultMsg": "NORMAL_SERVICE"},
                    "items": {
                        "item": [
                            {
                                "sggNm": "종로구",
                                "totNmprCnt": "139,417",
                                "hhCnt": "72,000",
                                "hhNmpr": "1.94",
                                "maleNmprCnt": "67,000",
                                "femlNmprCnt": "72,417",
                                "maleFemlRate": "0.93",
                                "statsYm": "202402",
                            },
                            {"sggNm": "강남구", "totNmprCnt": "556,000", "hhCnt": "235,000"},
                            {"sggNm": " ", "totNmprCnt": "1"},
                        ]
                    },
                }
            }
        ),
    )
    resp = client.get("/api/area/population")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["statsMonth"] == "202402"
    assert [item["district"] for item in body["data"]] == ["강남구", "종로구"]
    assert body["data"][0]["statsMonth"] == "202402"
    assert body["data"][1]["popPerHousehold"] == 1.94
    assert body["totalPopulation"] == 695417
    assert body["totalHouseholds"] == 307000
    params = query(upstream.calls[0])
    assert (params["srchFrYm"], params["srchToYm"], params["admmCd"]) == ("202402", "202402", "1100000000")


def test_population_reports_header_error(client, upstream):
    upstream.add(
        "admmPpltnHhStus",
        json_response({"Response": {"head": {"resultCode": "99", "resultMsg": "SERVICE ERROR"}}}),
    )
    resp = client.get("/api/area/population", query_string={"ym": "202312"})
    assert resp.status_code == 500
    assert resp.get_json() == {"success": False, "error": "API error", "message": "SERVICE ERROR"}


def neis_page(total, rows):
    return json_response(
        {
            "schoolInfo": [
                {"head": [{"list_total_count": total}, {"RESULT": {"CODE": "INFO-000", "MESSAGE": "정상 처리되었습니다."}}]},
                {"row": rows},
            ]
        }
    )


def school(name, address, high_school_type=""):
    return {"SCHUL_NM": name, "ORG_RDNMA": address, "HS_SC_NM": high_school_type}


def test_schools_per_district(client, upstream):
    def respond(url):
        params = query(url)
        kind, page = params["SCHUL_KND_SC_NM"], params["pIndex"]
        if kind == "초등학교" and page == "1":
            return neis_page(
                1001,
                [
                    school("대치초", "서울특별시 강남구 삼성로 1"),
                    school("도곡초", "서울특별시 강남구 도곡로 2"),
                    school("분당초", "경기도 성남시 분당구 3"),
                ],
            )
        if kind == "초등학교":
            return neis_page(1001, [school("서초초", "서울특별시 서초구 서초대로 4")])
        if kind == "중학교":
            return neis_page(1, [school("대명중", "서울특별시 강남구 삼성로 5")])
        return neis_page(
            3,
            [
                school("숙명여고", "서울특별시 강남구 도곡로 6", "일반고"),
                school("서울과학고", "서울특별시 강남구 혜화로 7", "특목고"),
                school("세화고", "서울특별시 서초구 신반포로 8", "자율고"),
            ],
        )

    upstream.add("schoolInfo", respond)
    resp = client.get("/api/area/school")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["data"] == [
        {
            "district": "강남구",
            "elementary": 2,
            "middle": 1,
            "high": 2,
            "specialHigh": ["서울과학고"],
            "autonomousHigh": [],
        },
        {
            "district": "서초구",
            "elementary": 1,
            "middle": 0,
            "high": 1,
            "specialHigh": [],
            "autonomousHigh": ["세화고"],
        },
    ]
    assert body["totalSchools"] == 7
    assert sorted(query(url)["pIndex"] for url in upstream.calls_to("schoolInfo")) == ["1", "1", "1", "2"]
    assert {query(url)["ATPT_OFCDC_SC_CODE"] for url in upstream.calls} == {"B10"}


def test_schools_need_their_own_key(client, upstream, monkeypatch):
    monkeypatch.delenv("NEIS_API_KEY")
    resp = client.get("/api/area/school")
    assert resp.status_code == 500
    assert resp.get_json()["error"] == "API key not configured"
    assert upstream.calls == []

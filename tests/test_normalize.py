import pytest

from estate.errors import UpstreamMalformed
from estate.format import format_price, round_half_up
from estate.normalize import (
    Field,
    RecordSchema,
    as_list,
    deal_date,
    dedupe,
    dig,
    find_first_text,
    korean_sort_key,
    parse_float,
    parse_int,
    xml_items,
)
from estate.trade import APARTMENT_SOURCES, OFFICETEL_SOURCES


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("1,234,567", 1234567),
        ("", 0),
        ("abc", 0),
        (None, 0),
        ("12.7", 12),
        (" 42 ", 42),
        (7, 7),
        ("12,345,678,901,234,567", 12345678901234567),
        ("inf", 0),
    ],
)
def test_parse_int(raw, expected):
    assert parse_int(raw) == expected


def test_parse_float_strips_commas_and_rejects_nan():
    assert parse_float("1,234.5") == 1234.5
    assert parse_float("nan") == 0.0
    assert parse_float("-") == 0.0


def test_find_first_text_uses_first_non_empty_key():
    row = {"아파트": "", "aptNm": "  래미안대치팰리스 "}
    assert find_first_text(row, "아파트", "aptNm") == "래미안대치팰리스"
    assert find_first_text(row, "없는키") == ""


def test_dig_tries_paths_in_order():
    payload = {"body": {"items": {"item": [{"a": 1}]}}, "rows": [{"x": "y"}]}
    assert dig(payload, ("Response", "items", "item"), ("body", "items", "item")) == [{"a": 1}]
    assert dig(payload, ("rows", 0, "x")) == "y"
    assert dig(payload, ("rows", 5, "x")) is None


def test_as_list_wraps_single_mapping():
    assert as_list({"a": 1}) == [{"a": 1}]
    assert as_list(None) == []
    assert as_list("") == []


def test_xml_items_flattens_korean_tags():
    text = (
        "<response><body><items>"
        "<item><아파트>은마</아파트><거래금액> 215,000</거래금액></item>"
        "<item><아파트>래미안</아파트></item>"
        "</items></body></response>"
    )
    assert xml_items(text) == [{"아파트": "은마", "거래금액": "215,000"}, {"아파트": "래미안"}]


def test_xml_items_rejects_malformed_payload():
    with pytest.raises(UpstreamMalformed) as excinfo:
        xml_items("<response><item>")
    assert excinfo.value.error == "Invalid response"


def test_deal_date_accepts_both_naming_conventions():
    assert deal_date({"년": "2024", "월": "3", "일": "5"}) == "2024-03-05"
    assert deal_date({"dealYear": "2024", "dealMonth": "11", "dealDay": "21"}) == "2024-11-21"
    assert deal_date({"date": "2023-01-02"}) == "2023-01-02"


def test_schema_drops_rows_missing_required_field():
    schema = RecordSchema([Field("name", ("NM",), required=True), Field("count", ("CNT",), kind="int")])
    records = schema.normalize([{"NM": "a", "CNT": "1,000"}, {"CNT": "3"}, "not-a-row"])
    assert records == [{"name": "a", "count": 1000}]


def test_every_record_shares_the_schema_key_set():
    _, schema = APARTMENT_SOURCES["rent"]
    records = schema.normalize(
        [
            {"아파트": "은마", "보증금액": "50,000", "월세금액": "0"},
            {"aptNm": "래미안", "deposit": "10,000", "monthlyRent": "150"},
        ],
        id_prefix="강남구",
    )
    assert list(records[0]) == list(records[1]) == ["id"] + schema.keys
    assert [record["rentType"] for record in records] == ["전세", "월세"]


@pytest.mark.parametrize("sources", [APARTMENT_SOURCES, OFFICETEL_SOURCES])
def test_normalizing_normalized_records_is_a_no_op(sources):
    rows = [
        {
            "아파트": "은마",
            "단지": "은마",
            "district": "강남구",
            "법정동": "대치동",
            "지번": "316",
            "전용면적": "84.43",
            "층": "7",
            "거래금액": "215,000",
            "보증금액": "70,000",
            "월세금액": "0",
            "년": "2024",
            "월": "3",
            "일": "9",
            "건축년도": "1979",
        }
    ]
    for _, schema in sources.values():
        once = schema.normalize(rows, id_prefix="강남구")
        twice = schema.normalize(once, id_prefix="강남구")
        assert once == twice


def test_dedupe_keeps_first_occurrence():
    records = [
        {"name": "역삼동", "bjdongCd": "10100"},
        {"name": "역삼1동", "bjdongCd": "10100"},
        {"name": "개포동", "bjdongCd": "10300"},
    ]
    assert dedupe(records, "bjdongCd") == [records[0], records[2]]


def test_korean_sort_key_follows_syllable_order():
    assert sorted(["종로구", "강남구", "마포구"], key=korean_sort_key) == ["강남구", "마포구", "종로구"]


@pytest.mark.parametrize(
    "price, expected",
    [(12345, "1억 2,345만"), (30000, "3억"), (9500, "9,500만"), (None, "-")],
)
def test_format_price(price, expected):
    assert format_price(price) == expected


def test_round_half_up_rounds_halves_upward():
    assert round_half_up(2.5) == 3
    assert round_half_up(-2.5) == -2
    assert round_half_up(0.25, 1) == 0.3

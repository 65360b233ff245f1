"""Date defaults derived from an injected ``now`` instead of the system clock."""

import re
from datetime import datetime
from typing import List, Tuple

from .errors import ValidationError

YEAR_RE = re.compile(r"^\d{4}$")
YEAR_MONTH_RE = re.compile(r"^\d{6}$")


def current_year(now: datetime) -> str:
    return str(now.year)


def current_month(now: datetime) -> str:
    return f"{now.month:02d}"


def current_year_month(now: datetime) -> str:
    return f"{now.year}{now.month:02d}"


def previous_year_month(now: datetime) -> str:
    year, month = now.year, now.month - 1
    if month == 0:
        year, month = year - 1, 12
    return f"{year}{month:02d}"


def today_compact(now: datetime) -> str:
    return now.strftime("%Y%m%d")


def iter_recent_months(now: datetime, count: int) -> List[Tuple[str, str]]:
    """Return (year, month) pairs for the `count` most recent months including this one."""

    results: List[Tuple[str, str]] = []
    year = now.year
    month = now.month
    for _ in range(count):
        results.append((str(year), f"{month:02d}"))
        month -= 1
        if month == 0:
            month = 12
            year -= 1
    return results


def months_of_year(year: str) -> List[str]:
    return [f"{year}{month:02d}" for month in range(1, 13)]


def normalize_month(month: str) -> str:
    """'3' -> '03'; rejects anything outside 1..12."""

    text = (month or "").strip()
    if not text.isdigit() or not 1 <= int(text) <= 12:
        raise ValidationError("월은 1~12 사이여야 합니다.")
    return f"{int(text):02d}"


def validate_year(year: str) -> str:
    text = (year or "").strip()
    if not YEAR_RE.match(text):
        raise ValidationError("연도는 YYYY 형식이어야 합니다.")
    return text


def validate_year_month(value: str) -> str:
    text = re.sub(r"[^0-9]", "", value or "")
    if not YEAR_MONTH_RE.match(text):
        raise ValidationError("연월은 YYYYMM 형식이어야 합니다.")
    return text

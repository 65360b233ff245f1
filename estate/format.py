"""표시용 포맷."""

import math
from typing import Optional


def format_price(price: Optional[int]) -> str:
    """만원 단위 가격 -> '1억 2,345만' / '3억' / '9,500만'."""

    if price is None:
        return "-"
    price = int(price)
    if price >= 10000:
        eok, man = divmod(price, 10000)
        return f"{eok}억 {man:,}만" if man > 0 else f"{eok}억"
    return f"{price:,}만"


def format_usage(value: float) -> str:
    return f"{value:.2f}"


def round_half_up(value: float, digits: int = 0) -> float:
    """Round .5 upward (JavaScript Math.round semantics) instead of to even."""

    scale = 10 ** digits
    return math.floor(value * scale + 0.5) / scale

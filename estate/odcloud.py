"""api.odcloud.kr family: paged JSON with ``cond[FIELD::OP]`` filters."""

from typing import Any, Dict, Sequence, Tuple

from .config import get_api_key
from .errors import UpstreamMalformed, ValidationError
from .normalize import RecordSchema, as_list, parse_int
from .upstream import Condition, odcloud_params, request_json


def parse_paging(page: str, per_page: str) -> Tuple[int, int]:
    """Validate ``page``/``perPage`` query values as positive integers."""

    values = []
    for raw in (page, per_page):
        text = str(raw or "").strip()
        if not text.isdigit() or int(text) < 1:
            raise ValidationError("page와 perPage는 1 이상의 정수여야 합니다.")
        values.append(int(text))
    return values[0], values[1]


def fetch_odcloud(
    url: str, schema: RecordSchema, page: str, per_page: str, conditions: Sequence[Condition]
) -> Dict[str, Any]:
    """One odcloud page normalized through ``schema``, plus its paging metadata."""

    service_key = get_api_key()
    page_value, per_page_value = parse_paging(page, per_page)

    payload = request_json(url, odcloud_params(service_key, page_value, per_page_value, conditions))
    if not isinstance(payload, dict):
        raise UpstreamMalformed(f"응답 파싱 실패: {str(payload)[:200]}")
    items = schema.normalize(as_list(payload.get("data")))
    return {
        "totalCount": parse_int(payload.get("totalCount")),
        "currentCount": parse_int(payload.get("currentCount")) or len(items),
        "page": page_value,
        "perPage": per_page_value,
        "data": items,
    }

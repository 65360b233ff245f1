"""
Upstream request building and the single outbound HTTP call.

Exactly one ``requests.get`` is issued per logical fetch: no retry, no gateway
fallback. Error signalling differs per upstream family (HTTP status, a literal
``Forbidden`` body, a body-embedded result code) and is folded into the
``estate.errors`` hierarchy here.
"""

import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import requests

from . import config
from .errors import ApiNotActivated, UpstreamApiError, UpstreamMalformed, UpstreamUnavailable
from .normalize import dig, element_rows, find_first_text, parse_xml

logger = logging.getLogger(__name__)

# data.go.kr 성공 코드는 게이트웨이에 따라 "00" 또는 "000"을 사용한다.
SUCCESS_CODES = {"00", "000", "0"}
DEFAULT_HEADERS = {
    "User-Agent": config.USER_AGENT,
    "Accept": "application/json, application/xml, text/xml, */*",
}
SECRET_PARAMS = {"serviceKey", "KEY"}

Condition = Tuple[str, str, str]


def build_url(base_url: str, params: Mapping[str, Any]) -> str:
    """Fully qualified URL with every query parameter encoded."""

    return requests.Request("GET", base_url, params=dict(params)).prepare().url


def redact(params: Mapping[str, Any]) -> Dict[str, Any]:
    return {key: ("***" if key in SECRET_PARAMS else value) for key, value in params.items()}


def odcloud_params(
    service_key: str, page: int, per_page: int, conditions: Sequence[Condition] = ()
) -> Dict[str, str]:
    """Query parameters for api.odcloud.kr, using its ``cond[FIELD::OP]`` filters.

    Empty condition values are left out.
    """

    params = {"serviceKey": service_key, "page": str(page), "perPage": str(per_page)}
    for field, operator, value in conditions:
        if value:
            params[f"cond[{field}::{operator}]"] = value
    return params


def is_success_code(result_code: Optional[Any]) -> bool:
    """Return True when the API returned a documented success code (or none at all)."""

    if result_code is None:
        return True
    return str(result_code).strip() in SUCCESS_CODES


def request_response(base_url: str, params: Mapping[str, Any]) -> requests.Response:
    """Issue the single GET and fold HTTP-level failures into ``estate.errors``."""

    url = build_url(base_url, params)
    logger.debug("GET %s params=%s", base_url, redact(params))
    try:
        response = requests.get(url, headers=DEFAULT_HEADERS, timeout=config.HTTP_TIMEOUT)
    except requests.RequestException as exc:
        logger.warning("Upstream request failed via %s: %s", base_url, exc)
        raise UpstreamUnavailable(str(exc)) from exc

    text = response.text or ""
    if response.status_code == 403 or text.strip() == "Forbidden":
        logger.warning("Upstream %s not activated (status=%s)", base_url, response.status_code)
        raise ApiNotActivated()
    if response.status_code >= 400:
        logger.warning("Upstream %s returned HTTP %s", base_url, response.status_code)
        raise UpstreamUnavailable(f"HTTP {response.status_code}: {text[:200]}")
    return response


def request_text(base_url: str, params: Mapping[str, Any]) -> str:
    return request_response(base_url, params).text or ""


def check_json_header(payload: Any) -> None:
    """Raise UpstreamApiError for body-embedded error codes in JSON payloads."""

    if not isinstance(payload, Mapping):
        return
    header = dig(
        payload,
        ("Response", "head"),
        ("response", "header"),
        ("header",),
    )
    if isinstance(header, Mapping) and not is_success_code(header.get("resultCode")):
        raise UpstreamApiError(find_first_text(header, "resultMsg") or "API 오류")

    # odcloud: {"code": -4, "msg": "등록되지 않은 인증키 입니다."}
    if "code" in payload and "msg" in payload and "data" not in payload:
        raise UpstreamApiError(str(payload.get("msg") or "API 오류"))

    # NEIS / R-ONE: {"RESULT": {"CODE": "ERROR-290", ...}}; INFO-200 is "no data"
    result = payload.get("RESULT")
    if isinstance(result, Mapping):
        code = find_first_text(result, "CODE")
        if code and not code.startswith("INFO"):
            raise UpstreamApiError(find_first_text(result, "MESSAGE") or code)


def request_json(base_url: str, params: Mapping[str, Any]) -> Any:
    text = request_text(base_url, params)
    try:
        payload = json.loads(text)
    except ValueError as exc:
        raise UpstreamMalformed(f"응답 파싱 실패: {text[:200]}") from exc
    check_json_header(payload)
    return payload


def request_xml_items(base_url: str, params: Mapping[str, Any]) -> List[Dict[str, str]]:
    """Fetch an XML payload and return its ``<item>`` rows."""

    # bytes, so the XML declaration decides the charset instead of the HTTP header
    root = parse_xml(request_response(base_url, params).content)

    # 게이트웨이 인증 오류: OpenAPI_ServiceResponse/cmmMsgHeader
    reason_code = root.findtext(".//returnReasonCode")
    if reason_code is not None and not is_success_code(reason_code):
        message = root.findtext(".//returnAuthMsg") or root.findtext(".//errMsg") or reason_code
        raise UpstreamApiError(message.strip())

    result_code = root.findtext(".//resultCode")
    if not is_success_code(result_code):
        result_msg = root.findtext(".//resultMsg") or "알 수 없는 오류"
        logger.error("Upstream %s error (%s): %s", base_url, result_code, result_msg)
        raise UpstreamApiError(f"API 오류({result_code}): {result_msg}")

    return element_rows(root)

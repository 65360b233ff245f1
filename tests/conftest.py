import json
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Tuple, Union
from urllib.parse import parse_qs, urlparse

import pytest
import requests

from app import create_app

FIXED_NOW = datetime(2024, 3, 15, 10, 30)
API_KEY_ENVS = ("DATA_GO_KR_API_KEY", "NEIS_API_KEY", "RONE_API_KEY")


class FakeResponse:
    def __init__(self, text: str = "", status_code: int = 200):
        self.text = text
        self.status_code = status_code

    @property
    def content(self) -> bytes:
        return self.text.encode("utf-8")


def raw_response(body: bytes, content_type: str, status_code: int = 200) -> requests.Response:
    """A real ``requests.Response`` decoded the way requests decodes it on the wire."""

    response = requests.Response()
    response.status_code = status_code
    response._content = body
    response.headers["Content-Type"] = content_type
    response.encoding = requests.utils.get_encoding_from_headers(response.headers)
    return response


Responder = Union[FakeResponse, Exception, Callable[[str], Any]]


class FakeUpstream:
    """Stands in for ``requests.get``: answers by URL fragment and records every URL."""

    def __init__(self):
        self.routes: List[Tuple[str, Responder]] = []
        self.calls: List[str] = []

    def add(self, fragment: str, responder: Responder) -> None:
        self.routes.append((fragment, responder))

    def calls_to(self, fragment: str) -> List[str]:
        return [url for url in self.calls if fragment in url]

    def __call__(self, url, headers=None, timeout=None):
        self.calls.append(url)
        for fragment, responder in self.routes:
            if fragment not in url:
                continue
            result = responder(url) if callable(responder) else responder
            if isinstance(result, Exception):
                raise result
            return result
        return FakeResponse("Not Found", 404)


def query(url: str) -> Dict[str, str]:
    """Decoded query parameters of a recorded URL."""

    return {key: values[0] for key, values in parse_qs(urlparse(url).query).items()}


def xml_body(items: Iterable[Dict[str, Any]], result_code: str = "00", result_msg: str = "NORMAL SERVICE.") -> str:
    rows = "".join(
        "<item>" + "".join(f"<{tag}>{value}</{tag}>" for tag, value in item.items()) + "</item>"
        for item in items
    )
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        f"<response><header><resultCode>{result_code}</resultCode><resultMsg>{result_msg}</resultMsg></header>"
        f"<body><items>{rows}</items><numOfRows>1000</numOfRows><pageNo>1</pageNo></body></response>"
    )


def xml_response(items: Iterable[Dict[str, Any]] = ()) -> FakeResponse:
    return FakeResponse(xml_body(items))


def json_response(payload: Any, status_code: int = 200) -> FakeResponse:
    return FakeResponse(json.dumps(payload, ensure_ascii=False), status_code)


def odcloud_response(rows: List[Dict[str, Any]], total: int = None) -> FakeResponse:
    return json_response(
        {
            "currentCount": len(rows),
            "data": rows,
            "matchCount": len(rows) if total is None else total,
            "page": 1,
            "perPage": 100,
            "totalCount": len(rows) if total is None else total,
        }
    )


def rone_response(rows: List[Dict[str, Any]]) -> FakeResponse:
    return json_response(
        {
            "SttsApiTblData": [
                {"head": [{"list_total_count": len(rows)}, {"RESULT": {"CODE": "INFO-000", "MESSAGE": "정상 처리되었습니다."}}]},
                {"row": rows},
            ]
        }
    )


@pytest.fixture(autouse=True)
def api_keys(monkeypatch):
    for name in API_KEY_ENVS:
        monkeypatch.setenv(name, "test-service-key")


@pytest.fixture
def upstream(monkeypatch):
    fake = FakeUpstream()
    monkeypatch.setattr("estate.upstream.requests.get", fake)
    return fake


@pytest.fixture
def app():
    flask_app = create_app("testing")
    flask_app.config["CLOCK"] = lambda: FIXED_NOW
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()

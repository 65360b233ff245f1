"""
Response normalization shared by every upstream family.

Upstream APIs name the same logical field differently across versions (Korean
XML tags in older MOLIT gateways, camelCase in newer ones, UPPER_SNAKE in
odcloud), so each source declares a ``RecordSchema`` of ``Field`` fallback
chains. XML payloads are turned into flat ``tag -> text`` rows first, after
which JSON and XML rows are handled identically.
"""

import unicodedata
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from .errors import UpstreamMalformed

Row = Mapping[str, Any]
Record = Dict[str, Any]


def _clean_number(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip().replace(",", "")


def parse_int(value: Any) -> int:
    """'1,234,567' -> 1234567. Missing or non-numeric input yields 0."""

    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    text = _clean_number(value)
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return int(float(text))
    except (ValueError, OverflowError):
        return 0


def parse_float(value: Any) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    try:
        result = float(_clean_number(value))
    except (TypeError, ValueError):
        return 0.0
    # float() accepts 'nan' and 'inf'
    if result != result or result in (float("inf"), float("-inf")):
        return 0.0
    return result


def find_first_text(row: Row, *keys: str) -> str:
    """Return the first non-empty value across the provided keys, stripped."""

    for key in keys:
        if not key:
            continue
        value = row.get(key)
        if value is None:
            continue
        text = str(value).strip()
        if text != "":
            return text
    return ""


def dig(payload: Any, *paths: Sequence[Any]) -> Any:
    """Follow several property paths and return the first value that exists.

    ``dig(data, ("Response", "items", "item"), ("body", "items", "item"))``
    """

    for path in paths:
        node = payload
        for step in path:
            if isinstance(node, Mapping):
                node = node.get(step)
            elif isinstance(node, list) and isinstance(step, int):
                node = node[step] if -len(node) <= step < len(node) else None
            else:
                node = None
            if node is None:
                break
        if node is not None:
            return node
    return None


def as_list(value: Any) -> List[Any]:
    if value is None or value == "":
        return []
    if isinstance(value, list):
        return value
    return [value]


def parse_xml(payload: Union[str, bytes]) -> ET.Element:
    """Parse raw response bytes (or already decoded text) into an element tree."""

    data = payload.encode("utf-8") if isinstance(payload, str) else payload
    try:
        return ET.fromstring(data.strip())
    except ET.ParseError as exc:
        preview = data[:200].decode("utf-8", errors="replace")
        raise UpstreamMalformed(f"응답 파싱 실패: {preview}") from exc


def element_rows(root: ET.Element, tag: str = "item") -> List[Dict[str, str]]:
    rows: List[Dict[str, str]] = []
    for item in root.iter(tag):
        rows.append({child.tag: (child.text or "").strip() for child in item})
    return rows


def xml_items(payload: Union[str, bytes]) -> List[Dict[str, str]]:
    """Every ``<item>`` element of an XML payload as a flat ``tag -> text`` dict."""

    return element_rows(parse_xml(payload))


def pad2(value: str) -> str:
    return value.zfill(2) if value else value


def deal_date(row: Row) -> str:
    """YYYY-MM-DD from MOLIT year/month/day fields (Korean tag first)."""

    year = find_first_text(row, "년", "dealYear")
    month = find_first_text(row, "월", "dealMonth")
    day = find_first_text(row, "일", "dealDay")
    if not (year or month or day):
        return find_first_text(row, "date")
    return f"{year}-{pad2(month)}-{pad2(day)}"


@dataclass(frozen=True)
class Field:
    """One stable output field and how to find it in an upstream row.

    ``keys`` are tried in order; the stable ``name`` is always tried last, so a
    row that is already normalized maps onto itself.
    """

    name: str
    keys: Sequence[str] = ()
    kind: str = "str"
    default: Any = None
    compute: Optional[Callable[[Row], Any]] = None
    required: bool = False

    def extract(self, row: Row) -> Any:
        if self.compute is not None:
            raw = row[self.name] if self.name in row else self.compute(row)
        elif self.kind == "raw":
            raw = next((row[key] for key in (*self.keys, self.name) if row.get(key) is not None), None)
        else:
            raw = find_first_text(row, *self.keys, self.name)
        return raw

    def convert(self, raw: Any) -> Any:
        if self.kind == "int":
            value: Any = parse_int(raw)
        elif self.kind == "float":
            value = parse_float(raw)
        elif self.kind == "raw":
            value = raw
        else:
            value = "" if raw is None else str(raw)
        if self.default is not None and value in ("", 0, None):
            return self.default
        return value


class RecordSchema:
    """Maps upstream rows to records that all share the same key set."""

    def __init__(self, fields: Iterable[Field], id_prefix: Optional[str] = None):
        self.fields = list(fields)
        self.id_prefix = id_prefix

    @property
    def keys(self) -> List[str]:
        names = [field.name for field in self.fields]
        return (["id"] + names) if self.id_prefix is not None else names

    def normalize_row(
        self, row: Row, index: int = 0, id_prefix: Optional[str] = None
    ) -> Optional[Record]:
        record: Record = {}
        prefix = id_prefix if id_prefix is not None else self.id_prefix
        if prefix is not None:
            record["id"] = find_first_text(row, "id") or f"{prefix}-{index}"
        for field in self.fields:
            raw = field.extract(row)
            if field.required and raw in ("", None):
                return None
            record[field.name] = field.convert(raw)
        return record

    def normalize(self, rows: Iterable[Row], id_prefix: Optional[str] = None) -> List[Record]:
        """Normalize rows, dropping non-mappings and rows missing a required field."""

        records: List[Record] = []
        for row in rows:
            if not isinstance(row, Mapping):
                continue
            record = self.normalize_row(row, len(records), id_prefix)
            if record is not None:
                records.append(record)
        return records


def dedupe(records: Iterable[Record], key: str) -> List[Record]:
    """Keep the first record for every distinct ``record[key]``."""

    seen = set()
    unique: List[Record] = []
    for record in records:
        marker = record.get(key)
        if marker in seen:
            continue
        seen.add(marker)
        unique.append(record)
    return unique


def korean_sort_key(value: Any) -> str:
    # Precomposed Hangul syllables are laid out in dictionary order.
    return unicodedata.normalize("NFC", str(value or ""))


def sort_by_date_desc(records: List[Record], key: str = "date") -> List[Record]:
    return sorted(records, key=lambda item: item.get(key) or "", reverse=True)

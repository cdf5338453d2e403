"""
Decoders for provider payloads.

Each payload shape has one decoder with a declared field order for every
value it reads. Missing or malformed numeric fields decode to 0, unless
that would hide a payload with no usable valuation at all, which raises
MalformedResponseError. Unknown shapes always raise.
"""

import json
import re
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional, Sequence

from fundsync.core.exceptions import MalformedResponseError
from fundsync.core.timezone import from_epoch_ms, parse_date
from fundsync.domain.models import (
    FundInfo,
    HistoryPage,
    NetValueRecord,
    ValuationResult,
    ValuationSource,
)

ZERO = Decimal("0")

# Live estimate JSONP: jsonpgz({...}); an empty call means no estimate
LIVE_ESTIMATE_FIELDS = {
    "code": ("fundcode",),
    "name": ("name",),
    "estimate": ("gsz",),
    "growth": ("gszzl",),
    "settled": ("dwjz",),
    "time": ("gztime", "jzrq"),
}

# Settled value script: var Data_netWorthTrend = [{x, y, equityReturn}, ...];
NET_WORTH_TREND_FIELDS = {
    "timestamp": ("x",),
    "value": ("y",),
    "growth": ("equityReturn",),
}

# Fund directory script: var r = [["000001","HXCZHH","华夏成长混合","混合型",...], ...];
FUND_DIRECTORY_COLUMNS = {
    "code": 0,
    "pinyin": 1,
    "name": 2,
    "fund_type": 3,
}
FUND_DIRECTORY_LABEL = "fund directory"

# History JSON: {"Data": {"LSJZList": [...]}, "TotalCount": n, ...}
HISTORY_RECORD_FIELDS = {
    "date": ("FSRQ",),
    "net_value": ("DWJZ",),
    "accumulated": ("LJJZ",),
    "growth": ("JZZZL",),
    "purchase_status": ("SGZT",),
    "redemption_status": ("SHZT",),
}

_JSONP_RE = re.compile(r"^\s*[\w$.]+\s*\((.*)\)\s*;?\s*$", re.DOTALL)
_NET_WORTH_TREND_RE = re.compile(r"Data_netWorthTrend\s*=\s*(\[.*?\])\s*;", re.DOTALL)
_FUND_NAME_RE = re.compile(r'fS_name\s*=\s*"([^"]*)"')
_FUND_DIRECTORY_RE = re.compile(r"var\s+r\s*=\s*(\[.*\])\s*;?\s*$", re.DOTALL)


def to_decimal(value: Any) -> Decimal:
    """Parse a provider number; anything unparseable or non-finite becomes 0."""
    if value is None or isinstance(value, bool):
        return ZERO
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return ZERO
    return result if result.is_finite() else ZERO


def first_present(data: Mapping[str, Any], names: Sequence[str]) -> Optional[Any]:
    """Value of the first field in `names` that is present and non-empty."""
    for name in names:
        value = data.get(name)
        if value is not None and value != "":
            return value
    return None


def unwrap_jsonp(code: str, body: Optional[str]) -> str:
    """Return the argument text of a `callback(...)` payload."""
    match = _JSONP_RE.match(body or "")
    if not match:
        raise MalformedResponseError(code, "expected a JSONP callback payload")
    return match.group(1).strip()


def decode_live_estimate(
    code: str,
    body: Optional[str],
    fetched_at: Optional[datetime] = None,
) -> Optional[ValuationResult]:
    """
    Decode a live-estimate payload.

    Returns None when the provider has no estimate for the fund (empty
    callback, e.g. outside trading hours).
    """
    inner = unwrap_jsonp(code, body)
    if not inner:
        return None

    try:
        data = json.loads(inner)
    except ValueError:
        raise MalformedResponseError(code, "live estimate is not valid JSON") from None
    if not isinstance(data, dict):
        raise MalformedResponseError(code, "live estimate is not an object")

    fields = LIVE_ESTIMATE_FIELDS
    payload_code = first_present(data, fields["code"])
    if payload_code is not None and str(payload_code) != code:
        raise MalformedResponseError(code, f"live estimate is for fund {payload_code}")

    estimate = to_decimal(first_present(data, fields["estimate"]))
    settled = to_decimal(first_present(data, fields["settled"]))
    if estimate <= 0 and settled <= 0:
        raise MalformedResponseError(code, "live estimate carries no valuation")

    return ValuationResult(
        code=code,
        name=str(first_present(data, fields["name"]) or ""),
        estimate=estimate if estimate > 0 else None,
        day_growth=to_decimal(first_present(data, fields["growth"])),
        settled_value=settled,
        observed_at=str(first_present(data, fields["time"]) or ""),
        source=ValuationSource.LIVE_ESTIMATE,
        fetched_at=fetched_at,
    )


def decode_settled_value(
    code: str,
    body: Optional[str],
    fetched_at: Optional[datetime] = None,
) -> ValuationResult:
    """Decode the latest settled net value from the fund data script."""
    match = _NET_WORTH_TREND_RE.search(body or "")
    if not match:
        raise MalformedResponseError(code, "net worth trend not found")

    try:
        trend = json.loads(match.group(1))
    except ValueError:
        raise MalformedResponseError(code, "net worth trend is not valid JSON") from None
    if not isinstance(trend, list) or not trend:
        raise MalformedResponseError(code, "net worth trend is empty")

    latest = trend[-1]
    if not isinstance(latest, dict):
        raise MalformedResponseError(code, "net worth trend entry is not an object")

    fields = NET_WORTH_TREND_FIELDS
    value = to_decimal(first_present(latest, fields["value"]))
    if value <= 0:
        raise MalformedResponseError(code, "latest settled net value is missing")

    name_match = _FUND_NAME_RE.search(body or "")

    return ValuationResult(
        code=code,
        name=name_match.group(1) if name_match else "",
        estimate=None,
        day_growth=to_decimal(first_present(latest, fields["growth"])),
        settled_value=value,
        observed_at=_format_trend_date(first_present(latest, fields["timestamp"])),
        source=ValuationSource.SETTLED,
        fetched_at=fetched_at,
    )


def decode_history(code: str, body: Optional[str]) -> HistoryPage:
    """Decode a page of net value history (plain JSON or JSONP-wrapped)."""
    text = (body or "").strip()
    if text and not text.startswith("{"):
        text = unwrap_jsonp(code, text)

    try:
        data = json.loads(text)
    except ValueError:
        raise MalformedResponseError(code, "history is not valid JSON") from None
    if not isinstance(data, dict) or not isinstance(data.get("Data"), dict):
        raise MalformedResponseError(code, "history has no Data object")

    rows = data["Data"].get("LSJZList")
    if not isinstance(rows, list):
        raise MalformedResponseError(code, "history has no record list")

    fields = HISTORY_RECORD_FIELDS
    records = []
    for row in rows:
        if not isinstance(row, dict):
            raise MalformedResponseError(code, "history record is not an object")
        record_date = _normalize_date(code, first_present(row, fields["date"]))
        accumulated = first_present(row, fields["accumulated"])
        records.append(
            NetValueRecord(
                date=record_date,
                net_value=to_decimal(first_present(row, fields["net_value"])),
                accumulated_value=to_decimal(accumulated) if accumulated is not None else None,
                day_growth=to_decimal(first_present(row, fields["growth"])),
                purchase_status=str(first_present(row, fields["purchase_status"]) or ""),
                redemption_status=str(first_present(row, fields["redemption_status"]) or ""),
            )
        )

    return HistoryPage(
        code=code,
        records=tuple(records),
        total=_to_int(data.get("TotalCount"), len(records)),
        page_size=_to_int(data.get("PageSize"), len(records)),
        page_index=_to_int(data.get("PageIndex"), 1),
    )


def decode_fund_codes(body: Optional[str]) -> list[FundInfo]:
    """Decode the provider's fund code directory, in provider order."""
    label = FUND_DIRECTORY_LABEL
    match = _FUND_DIRECTORY_RE.search(body or "")
    if not match:
        raise MalformedResponseError(label, "fund list not found")

    try:
        rows = json.loads(match.group(1))
    except ValueError:
        raise MalformedResponseError(label, "fund list is not valid JSON") from None
    if not isinstance(rows, list):
        raise MalformedResponseError(label, "fund list is not an array")

    columns = FUND_DIRECTORY_COLUMNS
    funds = []
    for row in rows:
        if not isinstance(row, list) or len(row) <= columns["name"]:
            raise MalformedResponseError(label, f"fund entry {row!r} is incomplete")
        funds.append(
            FundInfo(
                code=str(row[columns["code"]]),
                name=str(row[columns["name"]] or ""),
                fund_type=str(row[columns["fund_type"]] or "") if len(row) > columns["fund_type"] else "",
                pinyin=str(row[columns["pinyin"]] or ""),
            )
        )
    return funds


def _normalize_date(code: str, value: Any) -> str:
    if value is None:
        raise MalformedResponseError(code, "history record has no date")
    try:
        return parse_date(str(value)).isoformat()
    except (ValueError, OverflowError):
        raise MalformedResponseError(code, f"history record date {value!r} is unreadable") from None


def _format_trend_date(timestamp: Any) -> str:
    if timestamp is None:
        return ""
    try:
        return from_epoch_ms(float(timestamp)).strftime("%Y-%m-%d")
    except (TypeError, ValueError, OverflowError, OSError):
        return ""


def _to_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default

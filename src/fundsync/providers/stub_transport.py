"""Stub transport serving deterministic provider payloads for offline use."""

import json
import random
import re
from datetime import timedelta
from decimal import Decimal
from typing import Optional

from fundsync.core.timezone import now_market
from fundsync.providers.correlator import Completion
from fundsync.providers.transport import CompletionCallback, OutboundRequest


# Deterministic fake valuations: (name, settled net value, estimate, growth %)
_STUB_FUNDS: dict[str, tuple[str, Decimal, Decimal, Decimal]] = {
    "000001": ("华夏成长混合", Decimal("1.1560"), Decimal("1.1632"), Decimal("0.62")),
    "110022": ("易方达消费行业股票", Decimal("3.4210"), Decimal("3.3891"), Decimal("-0.93")),
    "161725": ("招商中证白酒指数", Decimal("0.9874"), Decimal("0.9951"), Decimal("0.78")),
    "005827": ("易方达蓝筹精选混合", Decimal("1.8023"), Decimal("1.8110"), Decimal("0.48")),
    "320007": ("诺安成长混合", Decimal("1.5230"), Decimal("1.5012"), Decimal("-1.43")),
    "519674": ("银河创新成长混合", Decimal("5.2140"), Decimal("5.2598"), Decimal("0.88")),
}

# Fund directory extras: (pinyin initials, fund type)
_STUB_DIRECTORY: dict[str, tuple[str, str]] = {
    "000001": ("HXCZHH", "混合型-灵活"),
    "110022": ("YFDXFHYGP", "股票型"),
    "161725": ("ZSZZBJZS", "指数型-股票"),
    "005827": ("YFDLCJXHH", "混合型-偏股"),
    "320007": ("NACZHH", "混合型-偏股"),
    "519674": ("YHCXCZHH", "混合型-偏股"),
}

_CODE_IN_URL_RE = re.compile(r"(\d{6})\.js")


class StubTransport:
    """
    Transport with canned provider responses.

    Known codes return fixed values; unknown codes get seeded random values.
    With live_estimates=False the live endpoint answers with an empty
    callback, as the provider does outside trading hours. Completions are
    delivered synchronously from dispatch().
    """

    def __init__(self, seed: int = 42, live_estimates: bool = True):
        self._rng = random.Random(seed)
        self._live_estimates = live_estimates
        self._generated: dict[str, tuple[str, Decimal, Decimal, Decimal]] = {}

    def dispatch(self, request: OutboundRequest, on_complete: CompletionCallback) -> None:
        if "fundcode_search" in request.url:
            on_complete(Completion(token=request.token, body=self._directory_script()))
            return

        code = self._code_for(request)
        if code is None:
            on_complete(Completion(token=request.token, error=ConnectionError("unknown stub route")))
            return

        if "pingzhongdata" in request.url:
            body = self._settled_script(code)
        elif "lsjz" in request.url:
            body = self._history_json(code, int(request.params.get("pageSize", "20")))
        else:
            body = self._live_jsonp(code)
        on_complete(Completion(token=request.token, body=body))

    def close(self) -> None:
        """Nothing to release."""

    def _fund(self, code: str) -> tuple[str, Decimal, Decimal, Decimal]:
        if code in _STUB_FUNDS:
            return _STUB_FUNDS[code]
        if code not in self._generated:
            settled = Decimal(str(0.5 + self._rng.random() * 3)).quantize(Decimal("0.0001"))
            growth = Decimal(str((self._rng.random() - 0.5) * 4)).quantize(Decimal("0.01"))
            estimate = (settled * (1 + growth / 100)).quantize(Decimal("0.0001"))
            self._generated[code] = (f"基金{code}", settled, estimate, growth)
        return self._generated[code]

    def _live_jsonp(self, code: str) -> str:
        if not self._live_estimates:
            return "jsonpgz();"
        name, settled, estimate, growth = self._fund(code)
        now = now_market()
        payload = {
            "fundcode": code,
            "name": name,
            "jzrq": (now - timedelta(days=1)).strftime("%Y-%m-%d"),
            "dwjz": str(settled),
            "gsz": str(estimate),
            "gszzl": str(growth),
            "gztime": now.strftime("%Y-%m-%d %H:%M"),
        }
        return f"jsonpgz({json.dumps(payload, ensure_ascii=False)});"

    def _settled_script(self, code: str) -> str:
        name, settled, _, growth = self._fund(code)
        day_ms = 24 * 60 * 60 * 1000
        latest_ms = int(now_market().replace(hour=0, minute=0, second=0, microsecond=0).timestamp() * 1000)
        trend = [
            {"x": latest_ms - day_ms, "y": float(settled - Decimal("0.01")), "equityReturn": 0.1},
            {"x": latest_ms, "y": float(settled), "equityReturn": float(growth)},
        ]
        return (
            f'var fS_name = "{name}";var fS_code = "{code}";'
            f"var Data_netWorthTrend = {json.dumps(trend)};"
        )

    def _directory_script(self) -> str:
        rows = [
            [code, pinyin, _STUB_FUNDS[code][0], fund_type]
            for code, (pinyin, fund_type) in _STUB_DIRECTORY.items()
        ]
        return f"var r = {json.dumps(rows, ensure_ascii=False)};"

    def _history_json(self, code: str, page_size: int) -> str:
        _, settled, _, growth = self._fund(code)
        today = now_market().date()
        rows = []
        for offset in range(page_size):
            value = settled - Decimal("0.002") * offset
            rows.append({
                "FSRQ": (today - timedelta(days=offset)).strftime("%Y-%m-%d"),
                "DWJZ": str(value),
                "LJJZ": str(value + Decimal("1")),
                "JZZZL": str(growth if offset == 0 else Decimal("0.10")),
                "SGZT": "开放申购",
                "SHZT": "开放赎回",
            })
        return json.dumps({
            "Data": {"LSJZList": rows},
            "TotalCount": page_size,
            "PageSize": page_size,
            "PageIndex": 1,
        }, ensure_ascii=False)

    @staticmethod
    def _code_for(request: OutboundRequest) -> Optional[str]:
        if "fundCode" in request.params:
            return request.params["fundCode"]
        match = _CODE_IN_URL_RE.search(request.url)
        return match.group(1) if match else None

"""
Pytest configuration and fixtures for fund valuation sync tests.

This module provides:
- In-memory SQLite database fixtures
- A scripted provider transport with programmable delay, failure and silence
- Provider payload builders for the live, settled and history endpoints
- A controllable market-time clock
- Store, client, scheduler, service and API client fixtures
"""

import json
import threading
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Callable, Optional

import pytest
from sqlalchemy import create_engine, StaticPool
from sqlalchemy.orm import sessionmaker, Session
from fastapi.testclient import TestClient

from fundsync.config.settings import Settings, reset_settings
from fundsync.core.timezone import MARKET_TZ
from fundsync.domain.models import Holding
from fundsync.main import create_app
from fundsync.providers import (
    Completion,
    OutboundRequest,
    StubTransport,
    ValuationProviderClient,
)
from fundsync.repositories.sqlalchemy.database import Base
# Import ORM models to register them with Base before creating tables
from fundsync.repositories.sqlalchemy import orm_models  # noqa: F401
from fundsync.repositories.sqlalchemy import (
    SqlAlchemyHoldingsStore,
    SqlAlchemySettingsStore,
    SqlAlchemyTransactionRepository,
)
from fundsync.services import (
    AnalysisService,
    HoldingService,
    PortfolioState,
    RefreshScheduler,
    ValuationCache,
)
from fundsync.sync_context import SyncContext


# =============================================================================
# TIME HELPERS
# =============================================================================


def market_datetime(
    year: int,
    month: int,
    day: int,
    hour: int = 10,
    minute: int = 0,
    second: int = 0,
) -> datetime:
    """Create a localized datetime in Asia/Shanghai market time."""
    return MARKET_TZ.localize(datetime(year, month, day, hour, minute, second))


class FakeClock:
    """Callable clock whose time only moves when a test moves it."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def fixed_now() -> datetime:
    """Fixed 'now' during trading hours for deterministic tests."""
    return market_datetime(2024, 6, 14, 14, 30, 0)


@pytest.fixture
def clock(fixed_now) -> FakeClock:
    return FakeClock(fixed_now)


# =============================================================================
# PROVIDER PAYLOADS
# =============================================================================


def live_payload(
    code: str,
    estimate: str = "1.2345",
    growth: str = "0.50",
    settled: str = "1.2284",
    name: str = "测试基金",
    gztime: str = "2024-06-14 14:30",
) -> str:
    """Live-estimate JSONP body as the provider serves it."""
    data = {
        "fundcode": code,
        "name": name,
        "jzrq": "2024-06-13",
        "dwjz": settled,
        "gsz": estimate,
        "gszzl": growth,
        "gztime": gztime,
    }
    return f"jsonpgz({json.dumps(data, ensure_ascii=False)});"


EMPTY_LIVE_PAYLOAD = "jsonpgz();"


def settled_payload(
    code: str,
    value: float = 1.2284,
    growth: float = 0.31,
    day: date = date(2024, 6, 13),
    name: str = "测试基金",
) -> str:
    """Fund data script carrying the net worth trend."""
    latest = MARKET_TZ.localize(datetime(day.year, day.month, day.day))
    latest_ms = int(latest.timestamp() * 1000)
    trend = [
        {"x": latest_ms - 86_400_000, "y": value - 0.01, "equityReturn": 0.12},
        {"x": latest_ms, "y": value, "equityReturn": growth},
    ]
    return (
        f'var fS_name = "{name}";var fS_code = "{code}";'
        f"var Data_netWorthTrend = {json.dumps(trend)};"
    )


def history_payload(rows: list[tuple[str, str]], total: Optional[int] = None) -> str:
    """History JSON from (date, net value) rows, newest first."""
    records = [
        {
            "FSRQ": day,
            "DWJZ": value,
            "LJJZ": str(Decimal(value) + 1),
            "JZZZL": "0.10",
            "SGZT": "开放申购",
            "SHZT": "开放赎回",
        }
        for day, value in rows
    ]
    return json.dumps({
        "Data": {"LSJZList": records},
        "TotalCount": len(records) if total is None else total,
        "PageSize": len(records),
        "PageIndex": 1,
    }, ensure_ascii=False)


FUND_DIRECTORY_ROWS = [
    ("000001", "HXCZHH", "华夏成长混合", "混合型-灵活"),
    ("110022", "YFDXFHYGP", "易方达消费行业股票", "股票型"),
    ("161725", "ZSZZBJZS", "招商中证白酒指数", "指数型-股票"),
    ("005827", "YFDLCJXHH", "易方达蓝筹精选混合", "混合型-偏股"),
    ("000011", "HXDPJXHHA", "华夏大盘精选混合A", "混合型-偏股"),
]


def fund_directory_payload(rows=FUND_DIRECTORY_ROWS) -> str:
    """Fund code directory script: var r = [[code, pinyin, name, type], ...];"""
    return f"var r = {json.dumps([list(row) for row in rows], ensure_ascii=False)};"


# =============================================================================
# SCRIPTED TRANSPORT
# =============================================================================


@dataclass
class Reply:
    """How the scripted transport answers one route."""

    body: Optional[str] = None
    error: Optional[BaseException] = None
    delay: float = 0.0
    silent: bool = False


class ScriptedTransport:
    """
    Transport answering from per-route scripts.

    A route is a fragment matched against the request URL plus its query
    parameters. Replies can be delayed (delivered from a timer thread, like
    a real late response), fail with an error, or never arrive. Requests
    with no matching route get a ConnectionError completion.
    """

    def __init__(self):
        self._routes: dict[str, Reply] = {}
        self._timers: list[threading.Timer] = []
        self._lock = threading.Lock()
        self.requests: list[OutboundRequest] = []
        self.delivered: list[bool] = []

    def on(self, fragment: str, reply: Reply) -> "ScriptedTransport":
        self._routes[fragment] = reply
        return self

    def live(self, code: str, body: Optional[str] = None, **kwargs) -> "ScriptedTransport":
        return self.on(f"/js/{code}.js", Reply(body=body or live_payload(code), **kwargs))

    def settled(self, code: str, body: Optional[str] = None, **kwargs) -> "ScriptedTransport":
        return self.on(f"/pingzhongdata/{code}.js", Reply(body=body or settled_payload(code), **kwargs))

    def history(self, code: str, body: str, **kwargs) -> "ScriptedTransport":
        return self.on(f"fundCode={code}", Reply(body=body, **kwargs))

    def directory(self, body: Optional[str] = None, **kwargs) -> "ScriptedTransport":
        return self.on("fundcode_search", Reply(body=body or fund_directory_payload(), **kwargs))

    def dispatch(self, request: OutboundRequest, on_complete: Callable[[Completion], None]) -> None:
        with self._lock:
            self.requests.append(request)

        reply = self._match(request)
        if reply is None:
            self._deliver(on_complete, Completion(token=request.token, error=ConnectionError("no route")))
            return
        if reply.silent:
            return

        completion = Completion(token=request.token, body=reply.body, error=reply.error)
        if reply.delay > 0:
            timer = threading.Timer(reply.delay, self._deliver, args=(on_complete, completion))
            timer.daemon = True
            with self._lock:
                self._timers.append(timer)
            timer.start()
        else:
            self._deliver(on_complete, completion)

    def count(self, fragment: str) -> int:
        with self._lock:
            return sum(1 for r in self.requests if fragment in self._key(r))

    def close(self) -> None:
        with self._lock:
            timers = list(self._timers)
        for timer in timers:
            timer.cancel()

    def _deliver(self, on_complete: Callable[[Completion], None], completion: Completion) -> None:
        accepted = on_complete(completion)
        with self._lock:
            self.delivered.append(bool(accepted))

    def _match(self, request: OutboundRequest) -> Optional[Reply]:
        key = self._key(request)
        for fragment, reply in self._routes.items():
            if fragment in key:
                return reply
        return None

    @staticmethod
    def _key(request: OutboundRequest) -> str:
        query = "&".join(f"{k}={v}" for k, v in request.params.items())
        return f"{request.url}?{query}"


@pytest.fixture
def transport():
    """Provide a scripted transport; pending timers are cancelled afterwards."""
    scripted = ScriptedTransport()
    yield scripted
    scripted.close()


# =============================================================================
# DATABASE FIXTURES
# =============================================================================


@pytest.fixture(scope="function")
def test_engine():
    """Create test database engine with shared in-memory SQLite."""
    reset_settings()

    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def session_factory(test_engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture(scope="function")
def test_session(session_factory) -> Session:
    """Create test database session."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


# =============================================================================
# STORE FIXTURES
# =============================================================================


@pytest.fixture
def holdings_store(test_session) -> SqlAlchemyHoldingsStore:
    return SqlAlchemyHoldingsStore(test_session)


@pytest.fixture
def settings_store(test_session) -> SqlAlchemySettingsStore:
    return SqlAlchemySettingsStore(test_session)


@pytest.fixture
def transaction_repo(test_session) -> SqlAlchemyTransactionRepository:
    return SqlAlchemyTransactionRepository(test_session)


# =============================================================================
# ENGINE FIXTURES
# =============================================================================


LIVE_TIMEOUT = 0.3
SETTLED_TIMEOUT = 0.6


@pytest.fixture
def cache(clock) -> ValuationCache:
    return ValuationCache(ttl_minutes=5, clock=clock)


@pytest.fixture
def provider_client(transport, cache, clock) -> ValuationProviderClient:
    """Valuation client over the scripted transport with short timeouts."""
    return ValuationProviderClient(
        transport=transport,
        cache=cache,
        live_timeout_seconds=LIVE_TIMEOUT,
        settled_timeout_seconds=SETTLED_TIMEOUT,
        max_workers=4,
        clock=clock,
    )


@pytest.fixture
def state() -> PortfolioState:
    return PortfolioState()


@pytest.fixture
def scheduler(provider_client, holdings_store, state, cache, settings_store, clock) -> RefreshScheduler:
    return RefreshScheduler(
        provider=provider_client,
        holdings_store=holdings_store,
        state=state,
        cache=cache,
        interval_seconds=300,
        settings_store=settings_store,
        clock=clock,
    )


@pytest.fixture
def holding_service(state, holdings_store, transaction_repo, clock) -> HoldingService:
    return HoldingService(
        state=state,
        holdings_store=holdings_store,
        transaction_repo=transaction_repo,
        clock=clock,
    )


@pytest.fixture
def analysis_service(state, provider_client) -> AnalysisService:
    return AnalysisService(state=state, provider=provider_client)


# =============================================================================
# FACTORY HELPERS
# =============================================================================


def make_holding(
    code: str = "000001",
    shares: str = "100",
    cost_price: str = "10.00",
    last_value: Optional[str] = None,
    day_change: Optional[str] = None,
    name: Optional[str] = None,
    add_date: Optional[date] = None,
) -> Holding:
    """Build a Holding with Decimal fields from strings."""
    return Holding(
        holding_id=str(uuid.uuid4()),
        code=code,
        name=name or f"基金{code}",
        shares=Decimal(shares),
        cost_price=Decimal(cost_price),
        last_value=Decimal(last_value) if last_value is not None else None,
        day_change=Decimal(day_change) if day_change is not None else None,
        add_date=add_date,
    )


# =============================================================================
# API FIXTURES
# =============================================================================


@pytest.fixture
def api_context(session_factory, clock, tmp_path) -> SyncContext:
    """SyncContext over the test database and the offline stub transport."""
    settings = Settings(data_dir=tmp_path, use_stub_provider=True, auto_refresh=False)
    context = SyncContext(
        settings=settings,
        session_factory=session_factory,
        transport=StubTransport(),
        clock=clock,
    )
    yield context
    context.close()


@pytest.fixture
def client(api_context) -> TestClient:
    """Create test client with the test SyncContext installed."""
    app = create_app(api_context)
    with TestClient(app) as test_client:
        yield test_client

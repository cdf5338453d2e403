"""
API tests for fund lookup endpoints.

Tests cover:
- Current valuation from the live estimate
- Settled history pages
- Invalid codes (400) and provider failures (502)
- Fund search by code, name and pinyin
"""

from decimal import Decimal

from fastapi.testclient import TestClient

from fundsync.config.settings import Settings
from fundsync.main import create_app
from fundsync.sync_context import SyncContext

from tests.conftest import ScriptedTransport


class TestValuationAPI:
    """Tests for GET /funds/{code}/valuation."""

    def test_live_valuation(self, client: TestClient):
        response = client.get("/funds/000001/valuation")

        assert response.status_code == 200
        data = response.json()
        assert data["code"] == "000001"
        assert data["name"] == "华夏成长混合"
        assert data["source"] == "LIVE_ESTIMATE"
        assert Decimal(data["estimate"]) == Decimal("1.1632")
        assert Decimal(data["current_value"]) == Decimal("1.1632")
        assert Decimal(data["settled_value"]) == Decimal("1.1560")

    def test_invalid_code(self, client: TestClient):
        response = client.get("/funds/abc/valuation")

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_provider_failure_is_bad_gateway(self, session_factory, clock, tmp_path):
        """
        GIVEN a transport with no reachable endpoint
        WHEN I ask for a valuation
        THEN response is 502 with the transport failure code
        """
        context = SyncContext(
            settings=Settings(data_dir=tmp_path, auto_refresh=False),
            session_factory=session_factory,
            transport=ScriptedTransport(),
            clock=clock,
        )
        with TestClient(create_app(context)) as client:
            response = client.get("/funds/000001/valuation")
        context.close()

        assert response.status_code == 502
        assert response.json()["error"] == "TRANSPORT_FAILURE"


class TestHistoryAPI:
    """Tests for GET /funds/{code}/history."""

    def test_history_page(self, client: TestClient):
        response = client.get("/funds/161725/history", params={"page_size": 5})

        assert response.status_code == 200
        data = response.json()
        assert data["code"] == "161725"
        assert len(data["records"]) == 5
        assert data["total"] == 5
        assert data["total_pages"] == 1
        assert Decimal(data["records"][0]["net_value"]) == Decimal("0.9874")

    def test_page_size_bounds(self, client: TestClient):
        assert client.get("/funds/161725/history", params={"page_size": 0}).status_code == 422


class TestFundSearchAPI:
    """Tests for GET /funds/search."""

    def test_search_by_name(self, client: TestClient):
        """
        GIVEN the offline fund directory
        WHEN I search for "易方达"
        THEN both E Fund funds come back with their type and pinyin
        """
        response = client.get("/funds/search", params={"q": "易方达"})

        assert response.status_code == 200
        data = response.json()
        assert [f["code"] for f in data] == ["110022", "005827"]
        assert data[0]["name"] == "易方达消费行业股票"
        assert data[0]["fund_type"] == "股票型"
        assert data[0]["pinyin"] == "YFDXFHYGP"

    def test_search_by_code_and_pinyin(self, client: TestClient):
        assert [f["code"] for f in client.get("/funds/search", params={"q": "161725"}).json()] == ["161725"]
        assert [f["code"] for f in client.get("/funds/search", params={"q": "naczhh"}).json()] == ["320007"]

    def test_blank_query_returns_empty_list(self, client: TestClient):
        assert client.get("/funds/search").json() == []
        assert client.get("/funds/search", params={"q": "  "}).json() == []

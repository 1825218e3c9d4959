"""
Integration tests for the dashboard server.

Runs the FastAPI app in-process with a scripted quote source.
"""

import pytest
from fastapi.testclient import TestClient

from dexarb.config.settings import Settings
from dexarb.dashboard.server import create_app
from dexarb.execution.simulated import SimulatedExecutor
from tests.mocks import MockQuoteSource


PRICES = {
    "WBNB/BUSD": (310.45, 312.18),
    "BUSD/WBNB": (0.003223, 0.003201),
    "CAKE/BUSD": (2.45, 2.451),
}


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, poll_interval_ms=100, rotation_interval_ms=100)


@pytest.fixture
def source() -> MockQuoteSource:
    return MockQuoteSource(PRICES)


@pytest.fixture
def client(settings: Settings, source: MockQuoteSource):
    app = create_app(settings=settings, source=source, executor=SimulatedExecutor(delay_s=0))
    with TestClient(app) as client:
        yield client


class TestDashboardRoutes:
    """Tests for the HTTP API."""

    def test_index(self, client: TestClient) -> None:
        response = client.get("/")

        assert response.status_code == 200
        assert "DEX Divergence Monitor" in response.text

    def test_status_idle(self, client: TestClient) -> None:
        data = client.get("/api/status").json()

        assert data["running"] is False
        assert data["state"] == "IDLE"
        assert data["threshold_pct"] == 0.5
        assert data["alert"]["visible"] is False
        assert "counters" in data["metrics"]

    def test_refresh_and_signals(self, client: TestClient) -> None:
        refreshed = client.post("/api/refresh").json()["signals"]
        assert {s["pair"] for s in refreshed} == set(PRICES)

        signals = client.get("/api/signals").json()["signals"]
        assert [s["pair"] for s in signals] == ["BUSD/WBNB", "CAKE/BUSD", "WBNB/BUSD"]

        opportunities = client.get("/api/signals", params={"opportunities_only": True}).json()
        assert {s["pair"] for s in opportunities["signals"]} == {"WBNB/BUSD", "BUSD/WBNB"}

    def test_refresh_invalid_pair(self, client: TestClient) -> None:
        response = client.post("/api/refresh", json={"pairs": ["WBNB"]})

        assert response.status_code == 400

    def test_start_stop(self, client: TestClient, source: MockQuoteSource) -> None:
        started = client.post("/api/start", json={"pairs": ["wbnb/busd"]}).json()
        assert started == {"status": "started", "pairs": ["WBNB/BUSD"]}
        assert client.get("/api/status").json()["running"] is True

        again = client.post("/api/start").json()
        assert again["status"] == "already_running"

        assert client.post("/api/stop").json() == {"status": "stopped"}
        assert client.get("/api/status").json()["running"] is False
        assert client.post("/api/stop").json() == {"status": "not_running"}

    def test_start_with_configured_pairs(self, client: TestClient, settings: Settings) -> None:
        started = client.post("/api/start").json()

        assert started["pairs"] == settings.pairs
        client.post("/api/stop")

    def test_start_invalid_pair(self, client: TestClient) -> None:
        response = client.post("/api/start", json={"pairs": ["not-a-pair"]})

        assert response.status_code == 400
        assert client.get("/api/status").json()["running"] is False


class TestTradeRoutes:
    """Tests for estimate and execute."""

    def test_estimate(self, client: TestClient) -> None:
        client.post("/api/refresh")

        data = client.post("/api/estimate", json={"pair": "WBNB/BUSD", "amount": 10000}).json()

        assert data["direction"] == "A_TO_B"
        assert data["profit_pct"] == pytest.approx(0.5573, rel=1e-3)
        assert data["gross_profit"] == pytest.approx(55.73, rel=1e-3)

    def test_estimate_explicit_direction(self, client: TestClient) -> None:
        client.post("/api/refresh")

        data = client.post(
            "/api/estimate",
            json={"pair": "BUSD/WBNB", "amount": 100, "direction": "B_TO_A"},
        ).json()

        assert data["direction"] == "B_TO_A"
        assert data["profit_pct"] > 0

    def test_estimate_unknown_pair(self, client: TestClient) -> None:
        response = client.post("/api/estimate", json={"pair": "DOGE/BUSD", "amount": 1})

        assert response.status_code == 404

    def test_estimate_bad_input(self, client: TestClient) -> None:
        client.post("/api/refresh")

        assert client.post("/api/estimate", json={"pair": "WBNB", "amount": 1}).status_code == 400
        assert (
            client.post("/api/estimate", json={"pair": "WBNB/BUSD", "amount": 0}).status_code
            == 400
        )

    def test_execute(self, client: TestClient) -> None:
        client.post("/api/refresh")

        data = client.post("/api/execute", json={"pair": "WBNB/BUSD", "amount": 500}).json()

        assert data["tx_hash"].startswith("0x")
        assert len(data["tx_hash"]) == 66
        assert data["status"] == "CONFIRMED"
        assert data["direction"] == "A_TO_B"

    def test_execute_failure(self, settings: Settings, source: MockQuoteSource) -> None:
        app = create_app(
            settings=settings, source=source, executor=SimulatedExecutor(delay_s=0, fail=True)
        )
        with TestClient(app) as client:
            client.post("/api/refresh")
            response = client.post("/api/execute", json={"pair": "WBNB/BUSD", "amount": 500})

        assert response.status_code == 502


class TestDashboardWebSocket:
    """Tests for the WebSocket feed."""

    def test_init_message(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as ws:
            message = ws.receive_json()

        assert message["type"] == "init"
        assert message["data"]["status"]["running"] is False
        assert message["data"]["signals"] == []

    def test_start_streams_signals_and_alert(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json({"action": "start", "pairs": ["WBNB/BUSD", "CAKE/BUSD"]})

            seen: dict[str, dict] = {}
            for _ in range(10):
                message = ws.receive_json()
                seen.setdefault(message["type"], message)
                if "signals" in seen and "alert" in seen:
                    break

            ws.send_json({"action": "stop"})

        assert seen["status"]["data"]["running"] is True
        assert [s["pair"] for s in seen["signals"]["data"]] == ["WBNB/BUSD", "CAKE/BUSD"]
        alert = seen["alert"]["data"]
        assert alert["visible"] is True
        assert alert["signal"]["pair"] == "WBNB/BUSD"

    def test_invalid_action_reports_error(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json({"action": "select", "index": 5})

            message = ws.receive_json()

        assert message["type"] == "error"
        assert message["data"]["action"] == "select"

    def test_non_object_message_reports_error(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_text("[1, 2]")

            message = ws.receive_json()

        assert message["type"] == "error"
        assert message["data"]["action"] is None

    def test_non_integer_index_reports_error(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json({"action": "dismiss", "index": "1"})
            first = ws.receive_json()
            ws.send_json({"action": "select"})
            second = ws.receive_json()

        assert first["type"] == "error"
        assert first["data"]["action"] == "dismiss"
        assert second["type"] == "error"
        assert second["data"]["detail"] == "Missing index"

    def test_non_list_pairs_reports_error(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json({"action": "start", "pairs": "WBNB/BUSD"})

            message = ws.receive_json()

        assert message["type"] == "error"
        assert client.get("/api/status").json()["running"] is False

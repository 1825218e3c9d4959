"""
FastAPI server for the divergence dashboard.

Every application builds its own hub, rotator and executor in the
lifespan and keeps them on ``app.state``. The dashboard itself is one
subscriber of the hub: each delivered batch is pushed to the connected
WebSocket clients and fed to the alert rotator.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any

import orjson
from fastapi import FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import HTMLResponse
from pydantic import BaseModel

from dexarb import __version__
from dexarb.alerts.rotation import AlertRotator, AlertView
from dexarb.config.settings import Settings, get_settings
from dexarb.core.errors import ExecutionError, SubscriptionError
from dexarb.core.hub import SubscriptionHub, create_hub
from dexarb.core.types import (
    ArbitrageExecutor,
    OpportunitySignal,
    QuoteSource,
    TradeDirection,
    split_pair,
)
from dexarb.execution.simulated import SimulatedExecutor
from dexarb.quotes.source import create_quote_source
from dexarb.strategy.estimator import estimate_trade
from dexarb.telemetry.metrics import MetricsCollector


logger = logging.getLogger(__name__)


# =============================================================================
# Request Bodies
# =============================================================================


class StartRequest(BaseModel):
    pairs: list[str] | None = None


class RefreshRequest(BaseModel):
    pairs: list[str] | None = None


class TradeRequest(BaseModel):
    pair: str
    amount: float
    direction: TradeDirection | None = None


# =============================================================================
# WebSocket Clients
# =============================================================================


class ConnectionManager:
    """Tracks WebSocket clients and broadcasts JSON messages to them."""

    def __init__(self) -> None:
        self._clients: list[WebSocket] = []

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self._clients.append(websocket)

    def disconnect(self, websocket: WebSocket) -> None:
        if websocket in self._clients:
            self._clients.remove(websocket)

    async def send(self, websocket: WebSocket, event_type: str, data: Any) -> None:
        await websocket.send_text(encode_message(event_type, data))

    async def broadcast(self, event_type: str, data: Any) -> None:
        """Send to every client, dropping the ones that fail."""
        if not self._clients:
            return

        message = encode_message(event_type, data)
        disconnected = []
        for client in self._clients:
            try:
                await client.send_text(message)
            except Exception:
                disconnected.append(client)
        for client in disconnected:
            self.disconnect(client)

    @property
    def client_count(self) -> int:
        return len(self._clients)


def encode_message(event_type: str, data: Any) -> str:
    return orjson.dumps({"type": event_type, "data": data}).decode()


# =============================================================================
# Application
# =============================================================================


def normalize_pairs(pairs: list[str]) -> list[str]:
    """
    Uppercase and validate requested pairs.

    Raises:
        ValueError: If a pair is not of the form BASE/QUOTE.
    """
    if not isinstance(pairs, list) or not all(isinstance(p, str) for p in pairs):
        raise ValueError("Pairs must be a list of strings")
    normalized = [p.strip().upper() for p in pairs]
    for pair in normalized:
        split_pair(pair)
    return normalized


def parse_index(value: Any, required: bool) -> int | None:
    """
    Validate an alert index sent by a WebSocket client.

    Raises:
        ValueError: If the index is missing when required or not an integer.
    """
    if value is None:
        if required:
            raise ValueError("Missing index")
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Invalid index {value!r}")
    return value


@asynccontextmanager
async def lifespan(app: FastAPI):  # type: ignore[no-untyped-def]
    state = app.state
    settings: Settings = state.settings or get_settings()
    state.settings = settings

    source: QuoteSource = state.source or create_quote_source(settings)
    state.source = source
    state.executor = state.executor or SimulatedExecutor()
    state.metrics = MetricsCollector()
    state.manager = ConnectionManager()
    state.hub = create_hub(settings, source, metrics=state.metrics)
    state.subscription_id = None

    async def on_alert(view: AlertView) -> None:
        await state.manager.broadcast("alert", view.to_dict())

    state.rotator = AlertRotator(interval_s=settings.rotation_interval_s, on_change=on_alert)

    logger.info(
        f"Dashboard ready: {settings.venue_a_name} vs {settings.venue_b_name}, "
        f"threshold {settings.threshold_pct}%"
    )
    yield

    await stop_monitor(app)
    close = getattr(source, "close", None)
    if close is not None:
        await close()


async def start_monitor(app: FastAPI, pairs: list[str] | None = None) -> dict[str, Any]:
    """Subscribe the dashboard to the hub and start the alert rotation."""
    state = app.state
    hub: SubscriptionHub = state.hub

    if state.subscription_id is not None and hub.is_polling:
        return {"status": "already_running", "pairs": sorted(hub.pairs)}

    requested = normalize_pairs(pairs) if pairs else list(state.settings.pairs)

    async def on_signals(signals: list[OpportunitySignal]) -> None:
        await state.manager.broadcast("signals", [s.to_dict() for s in signals])
        await state.rotator.publish(signals)

    state.subscription_id = await hub.start(requested, on_signals)
    await state.rotator.start()
    await state.manager.broadcast("status", status_payload(app))
    return {"status": "started", "pairs": requested}


async def stop_monitor(app: FastAPI) -> dict[str, Any]:
    """Stop polling and the alert rotation."""
    state = app.state
    if state.subscription_id is None and not state.hub.is_polling:
        return {"status": "not_running"}

    await state.hub.stop()
    await state.rotator.stop()
    state.subscription_id = None
    await state.manager.broadcast("status", status_payload(app))
    return {"status": "stopped"}


def status_payload(app: FastAPI) -> dict[str, Any]:
    state = app.state
    hub: SubscriptionHub = state.hub
    return {
        "version": __version__,
        "running": hub.is_polling,
        "state": hub.state.value,
        "pairs": sorted(hub.pairs),
        "subscriptions": hub.subscription_count,
        "threshold_pct": hub.classifier.threshold_pct,
        "interval_s": hub.interval_s,
        "venues": [state.settings.venue_a_name, state.settings.venue_b_name],
        "alert": state.rotator.view.to_dict(),
        "clients": state.manager.client_count,
    }


def create_app(
    settings: Settings | None = None,
    source: QuoteSource | None = None,
    executor: ArbitrageExecutor | None = None,
) -> FastAPI:
    """
    Create the dashboard application.

    Args:
        settings: Settings (default: loaded from environment).
        source: Quote source (default: built from settings).
        executor: Execution collaborator (default: simulated).
    """
    app = FastAPI(title="DEX Divergence Monitor", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.source = source
    app.state.executor = executor

    app.get("/", response_class=HTMLResponse)(get_dashboard)
    app.get("/api/status")(get_status)
    app.post("/api/start")(start_bot)
    app.post("/api/stop")(stop_bot)
    app.get("/api/signals")(get_signals)
    app.post("/api/refresh")(refresh_signals)
    app.post("/api/estimate")(estimate)
    app.post("/api/execute")(execute)
    app.websocket("/ws")(websocket_endpoint)
    return app


# =============================================================================
# Routes
# =============================================================================


async def get_dashboard() -> HTMLResponse:
    return HTMLResponse(content=DASHBOARD_HTML)


async def get_status(request: Request) -> dict[str, Any]:
    payload = status_payload(request.app)
    payload["metrics"] = request.app.state.metrics.to_dict()
    return payload


async def start_bot(request: Request, body: StartRequest | None = None) -> dict[str, Any]:
    try:
        return await start_monitor(request.app, body.pairs if body else None)
    except (SubscriptionError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


async def stop_bot(request: Request) -> dict[str, Any]:
    return await stop_monitor(request.app)


async def get_signals(request: Request, opportunities_only: bool = False) -> dict[str, Any]:
    signals = request.app.state.hub.latest
    if opportunities_only:
        signals = [s for s in signals if s.is_opportunity]
    return {"signals": [s.to_dict() for s in signals]}


async def refresh_signals(request: Request, body: RefreshRequest | None = None) -> dict[str, Any]:
    """Fetch once on demand; falls back to the configured pairs when idle."""
    state = request.app.state
    hub: SubscriptionHub = state.hub
    try:
        if body and body.pairs:
            pairs = normalize_pairs(body.pairs)
        else:
            pairs = sorted(hub.pairs) or list(state.settings.pairs)
        signals = await hub.refresh(pairs)
    except (SubscriptionError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return {"signals": [s.to_dict() for s in signals]}


def _signal_for(request: Request, pair: str) -> OpportunitySignal:
    try:
        (normalized,) = normalize_pairs([pair])
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    signal = request.app.state.hub.get_signal(normalized)
    if signal is None:
        raise HTTPException(status_code=404, detail=f"No signal for {normalized}")
    return signal


async def estimate(request: Request, body: TradeRequest) -> dict[str, Any]:
    signal = _signal_for(request, body.pair)
    settings: Settings = request.app.state.settings
    try:
        result = estimate_trade(
            signal,
            body.amount,
            direction=body.direction,
            gas_cost_native=settings.gas_cost_native,
            native_price=settings.native_price,
            slippage_pct=settings.slippage_pct,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return result.to_dict()


async def execute(request: Request, body: TradeRequest) -> dict[str, Any]:
    signal = _signal_for(request, body.pair)
    if body.amount <= 0:
        raise HTTPException(status_code=400, detail=f"amount must be positive, got {body.amount}")

    executor: ArbitrageExecutor = request.app.state.executor
    try:
        handle = await executor.execute_arbitrage(
            signal.pair, body.amount, body.direction or signal.direction
        )
    except ExecutionError as e:
        logger.error(f"Execution failed for {signal.pair}: {e}")
        raise HTTPException(status_code=502, detail=str(e)) from e
    return handle.to_dict()


async def websocket_endpoint(websocket: WebSocket) -> None:
    app = websocket.app
    manager: ConnectionManager = app.state.manager
    rotator: AlertRotator = app.state.rotator

    await manager.connect(websocket)
    await manager.send(
        websocket,
        "init",
        {
            "status": status_payload(app),
            "signals": [s.to_dict() for s in app.state.hub.latest],
        },
    )

    try:
        while True:
            data = await websocket.receive_text()
            try:
                msg = orjson.loads(data)
            except orjson.JSONDecodeError:
                continue

            if not isinstance(msg, dict):
                await manager.send(
                    websocket, "error", {"action": None, "detail": "Expected a JSON object"}
                )
                continue

            action = msg.get("action")
            try:
                if action == "start":
                    await start_monitor(app, msg.get("pairs"))
                elif action == "stop":
                    await stop_monitor(app)
                elif action == "dismiss":
                    index = parse_index(msg.get("index"), required=False)
                    await manager.broadcast("alert", rotator.dismiss(index).to_dict())
                elif action == "select":
                    index = parse_index(msg.get("index"), required=True)
                    await manager.broadcast("alert", rotator.select(index).to_dict())
            except (SubscriptionError, ValueError, IndexError) as e:
                await manager.send(websocket, "error", {"action": action, "detail": str(e)})
    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(websocket)


DASHBOARD_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>DEX Divergence Monitor</title>
    <style>
        :root {
            --bg: #09090b; --bg2: #18181b; --border: #3f3f46;
            --text: #fafafa; --text2: #a1a1aa; --green: #22c55e; --red: #ef4444; --yellow: #eab308;
        }
        * { margin: 0; padding: 0; box-sizing: border-box; }
        body { font-family: -apple-system, BlinkMacSystemFont, "Inter", sans-serif; background: var(--bg); color: var(--text); }
        .app { max-width: 960px; margin: 0 auto; padding: 32px 24px; }
        header { display: flex; justify-content: space-between; align-items: center; margin-bottom: 24px; }
        h1 { font-size: 20px; font-weight: 600; }
        button { background: var(--bg2); color: var(--text); border: 1px solid var(--border); border-radius: 8px; padding: 8px 16px; cursor: pointer; }
        .status { font-size: 13px; color: var(--text2); }
        .alert { display: none; background: rgba(234,179,8,0.15); border: 1px solid var(--yellow); border-radius: 12px; padding: 16px 20px; margin-bottom: 24px; }
        .alert.visible { display: flex; justify-content: space-between; align-items: center; }
        table { width: 100%; border-collapse: collapse; background: var(--bg2); border-radius: 12px; overflow: hidden; }
        th, td { padding: 12px 16px; text-align: right; font-size: 13px; border-bottom: 1px solid var(--border); }
        th:first-child, td:first-child { text-align: left; }
        .pos { color: var(--green); } .neg { color: var(--red); }
        .opp { font-weight: 600; color: var(--yellow); }
    </style>
</head>
<body>
<div class="app">
    <header>
        <div><h1>DEX Divergence Monitor</h1><div class="status" id="status">connecting...</div></div>
        <div><button onclick="send('start')">Start</button> <button onclick="send('stop')">Stop</button></div>
    </header>
    <div class="alert" id="alert">
        <span id="alert-text"></span>
        <button onclick="send('dismiss')">Dismiss</button>
    </div>
    <table>
        <thead><tr><th>Pair</th><th id="venue-a">Venue A</th><th id="venue-b">Venue B</th><th>Delta</th><th>Profit</th><th>Signal</th></tr></thead>
        <tbody id="signals"></tbody>
    </table>
</div>
<script>
    let ws;
    function send(action, extra) { ws.send(JSON.stringify(Object.assign({action}, extra || {}))); }
    function fmt(p) { return p < 1 ? p.toFixed(6) : p.toFixed(4); }
    function renderStatus(s) {
        document.getElementById('status').textContent =
            (s.running ? 'polling ' : 'idle ') + s.pairs.join(', ') + ' | threshold ' + s.threshold_pct + '%';
        document.getElementById('venue-a').textContent = s.venues[0];
        document.getElementById('venue-b').textContent = s.venues[1];
        renderAlert(s.alert);
    }
    function renderSignals(signals) {
        document.getElementById('signals').innerHTML = signals.map(s => `<tr>
            <td>${s.pair}</td><td>${fmt(s.venue_a_price)}</td><td>${fmt(s.venue_b_price)}</td>
            <td>${s.price_delta.toFixed(6)}</td>
            <td class="${s.profitability_pct >= 0 ? 'pos' : 'neg'}">${s.profitability_pct.toFixed(3)}%</td>
            <td class="${s.is_opportunity ? 'opp' : ''}">${s.is_opportunity ? 'OPPORTUNITY' : '-'}</td></tr>`).join('');
    }
    function renderAlert(a) {
        const el = document.getElementById('alert');
        el.classList.toggle('visible', a.visible);
        if (a.visible) {
            document.getElementById('alert-text').textContent =
                `${a.index + 1}/${a.total}  ${a.signal.pair}  ${a.signal.profitability_pct.toFixed(3)}%  ${a.signal.direction}`;
        }
    }
    function connect() {
        ws = new WebSocket(`${location.protocol === 'https:' ? 'wss' : 'ws'}://${location.host}/ws`);
        ws.onmessage = (e) => {
            const msg = JSON.parse(e.data);
            if (msg.type === 'init') { renderStatus(msg.data.status); renderSignals(msg.data.signals); }
            else if (msg.type === 'status') renderStatus(msg.data);
            else if (msg.type === 'signals') renderSignals(msg.data);
            else if (msg.type === 'alert') renderAlert(msg.data);
        };
        ws.onclose = () => setTimeout(connect, 2000);
    }
    connect();
</script>
</body>
</html>
"""


app = create_app()


def main() -> None:
    import uvicorn

    from dexarb.telemetry.logger import setup_logging

    settings = get_settings()
    setup_logging(settings.log_level)

    print(
        f"""
╔═══════════════════════════════════════════════════════════════╗
║            DEX DIVERGENCE MONITOR - DASHBOARD                 ║
╚═══════════════════════════════════════════════════════════════╝

Dashboard: http://localhost:{settings.dashboard_port}
Press Ctrl+C to stop.
    """
    )
    uvicorn.run(
        "dexarb.dashboard.server:app",
        host=settings.dashboard_host,
        port=settings.dashboard_port,
        reload=False,
        log_level="warning",
    )


if __name__ == "__main__":
    main()

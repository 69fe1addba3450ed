from __future__ import annotations

import asyncio
import hmac
import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import HTMLResponse, PlainTextResponse, Response, StreamingResponse
from fastapi.staticfiles import StaticFiles

from .config import Settings
from .service import AlertService
from .types import Alert

logger = logging.getLogger(__name__)

SSE_KEEPALIVE_SECONDS = 15.0

OVERLAY_HTML = """<!doctype html>
<html>
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <title>{symbol} Overlay</title>
    <style>
      body {{ margin: 0; background: transparent; overflow: hidden; }}
      .wrap {{ font-family: Arial, sans-serif; font-size: 48px; color: white; padding: 20px;
               white-space: pre-line; text-shadow: 0 2px 6px rgba(0, 0, 0, 0.8); }}
      img {{ display: none; max-width: 600px; margin-top: 16px; }}
    </style>
  </head>
  <body>
    <div class="wrap" id="text">Overlay is live ✅</div>
    <img id="card" alt="" />
    <script>
      const text = document.getElementById("text");
      const card = document.getElementById("card");
      let hideTimer = null;
      function show(alert) {{
        if (!alert) return;
        text.textContent = alert.text;
        card.src = "/api/alert/image?id=" + encodeURIComponent(alert.alert_id);
        card.style.display = "block";
        clearTimeout(hideTimer);
        hideTimer = setTimeout(() => {{ text.textContent = ""; card.style.display = "none"; }}, 8000);
      }}
      const source = new EventSource("/api/alert/stream");
      source.onmessage = (msg) => show(JSON.parse(msg.data));
    </script>
  </body>
</html>
"""


def _secret_matches(expected: str, provided: str | None) -> bool:
    if not provided:
        return False
    value = provided.strip()
    if value.lower().startswith("bearer "):
        value = value[7:].strip()
    return hmac.compare_digest(value.encode("utf-8"), expected.encode("utf-8"))


async def _read_body(request: Request, limit: int) -> bytes:
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > limit:
        raise HTTPException(status_code=413, detail="request body too large")

    chunks: list[bytes] = []
    size = 0
    async for chunk in request.stream():
        size += len(chunk)
        if size > limit:
            raise HTTPException(status_code=413, detail="request body too large")
        chunks.append(chunk)
    return b"".join(chunks)


def _sse(alert: Alert) -> str:
    return f"id: {alert.alert_id}\ndata: {json.dumps(alert.to_dict())}\n\n"


async def alert_events(
    svc: AlertService, keepalive: float = SSE_KEEPALIVE_SECONDS
) -> AsyncIterator[str]:
    queue = svc.feed.subscribe()
    try:
        current = svc.current_alert
        if current is not None:
            yield _sse(current)
        while True:
            try:
                alert = await asyncio.wait_for(queue.get(), timeout=keepalive)
            except asyncio.TimeoutError:
                yield ": keepalive\n\n"
                continue
            yield _sse(alert)
    finally:
        svc.feed.unsubscribe(queue)


async def pump_alerts(websocket: WebSocket, queue: asyncio.Queue[Alert]) -> None:
    # Client messages are ignored; receiving only watches for the disconnect.
    receiver = asyncio.create_task(websocket.receive_text())
    getter: asyncio.Task[Alert] | None = None
    try:
        while True:
            getter = asyncio.create_task(queue.get())
            done, _ = await asyncio.wait({getter, receiver}, return_when=asyncio.FIRST_COMPLETED)
            if receiver in done:
                receiver.result()
                receiver = asyncio.create_task(websocket.receive_text())
            if getter.done():
                await websocket.send_json({"alert": getter.result().to_dict()})
            else:
                getter.cancel()
    finally:
        receiver.cancel()
        if getter is not None:
            getter.cancel()


def create_app(settings: Settings, service: AlertService | None = None) -> FastAPI:
    svc = service if service is not None else AlertService(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        svc.start()
        logger.info("Buy alert service listening for webhooks (target_mint=%s)", settings.target_mint)
        yield
        await svc.close()

    app = FastAPI(title="Buy Alert Bot", lifespan=lifespan)
    app.state.service = svc

    async def receive_webhook(request: Request) -> dict[str, Any]:
        if settings.webhook_secret:
            provided = request.headers.get(settings.webhook_secret_header)
            if not _secret_matches(settings.webhook_secret, provided):
                logger.warning("Rejected webhook with bad or missing secret from %s", request.client)
                raise HTTPException(status_code=401, detail="unauthorized")

        raw = await _read_body(request, settings.max_body_bytes)
        try:
            body = json.loads(raw)
        except (ValueError, RecursionError):
            raise HTTPException(status_code=400, detail="invalid JSON body") from None
        if not isinstance(body, (dict, list)):
            raise HTTPException(status_code=400, detail="body must be an object or a list")

        result = await svc.ingest(body)
        return {"ok": True, **result.to_dict()}

    app.add_api_route("/webhook", receive_webhook, methods=["POST"])
    app.add_api_route("/api/webhook", receive_webhook, methods=["POST"])

    @app.get("/health", response_class=PlainTextResponse)
    async def health() -> str:
        return "ok"

    @app.get("/overlay", response_class=HTMLResponse)
    async def overlay() -> str:
        return OVERLAY_HTML.format(symbol=settings.token_symbol)

    @app.get("/api/alert/latest")
    async def latest_alert() -> dict[str, Any]:
        alert = svc.current_alert
        return {"alert": alert.to_dict() if alert is not None else None}

    @app.get("/api/alert/image")
    async def latest_image() -> Response:
        image = svc.latest_image
        if image is None:
            raise HTTPException(status_code=404, detail="no alert image yet")
        return Response(content=image, media_type="image/png", headers={"Cache-Control": "no-store"})

    @app.get("/api/alert/stream")
    async def alert_stream() -> StreamingResponse:
        return StreamingResponse(
            alert_events(svc),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        )

    @app.websocket("/ws/alerts")
    async def alerts_socket(websocket: WebSocket) -> None:
        await websocket.accept()
        queue = svc.feed.subscribe()
        try:
            current = svc.current_alert
            await websocket.send_json({"alert": current.to_dict() if current is not None else None})
            await pump_alerts(websocket, queue)
        except WebSocketDisconnect:
            logger.debug("Overlay websocket disconnected")
        finally:
            svc.feed.unsubscribe(queue)

    # Mounted last so the catch-all public mount never shadows the routes above.
    if settings.assets_dir and Path(settings.assets_dir).is_dir():
        app.mount("/assets", StaticFiles(directory=settings.assets_dir), name="assets")
    if settings.public_dir and Path(settings.public_dir).is_dir():
        app.mount("/", StaticFiles(directory=settings.public_dir, html=True), name="public")

    return app

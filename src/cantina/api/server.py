"""FastAPI application exposing the order store, queue view, and HTML display."""

from __future__ import annotations

import sys
from datetime import UTC, datetime
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import Depends, FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse

from cantina import __version__
from cantina.core.logging import log_event
from cantina.core.metrics import METRICS, snapshot_kpis
from cantina.core.models import Order, OrderCreate, StatusUpdate
from cantina.core.projector import project_queue
from cantina.core.store import OrderStore
from cantina.settings import AppSettings, get_settings

BUILD_INFO = {
    "version": __version__,
    "py": sys.version.split()[0],
}
MAX_VISIBLE_LIMIT = 100


class OrderNotFound(Exception):
    """Raised by route handlers when the store reports an unknown id."""

    def __init__(self, order_id: str, action: str) -> None:
        super().__init__(order_id)
        self.order_id = order_id
        self.action = action


INDEX_HTML = """<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1">
    <title>__BRAND__ Order Queue</title>
    <style>
      :root {
        --bg: #0f172a;
        --card: #ffffff;
        --text: #1e293b;
        --muted: #94a3b8;
        --border: #334155;
        --primary: #2563eb;
        --primary-hover: #1d4ed8;
      }
      * {
        box-sizing: border-box;
      }
      body {
        font-family: "Inter", "Segoe UI", system-ui, sans-serif;
        margin: 0;
        background: var(--bg);
        color: #ffffff;
      }
      header, footer {
        position: fixed;
        left: 0;
        right: 0;
        background: rgba(15, 23, 42, 0.95);
        border-color: var(--border);
        z-index: 10;
      }
      header {
        top: 0;
        border-bottom: 1px solid var(--border);
      }
      footer {
        bottom: 0;
        border-top: 1px solid var(--border);
      }
      .wrap {
        max-width: 28rem;
        margin: 0 auto;
        padding: 1rem;
      }
      header .wrap {
        display: flex;
        justify-content: space-between;
        align-items: center;
      }
      header h1 {
        margin: 0;
        font-size: 1.25rem;
      }
      header p, .total span {
        margin: 0;
        color: var(--muted);
        font-size: 0.8rem;
      }
      .total {
        text-align: right;
      }
      .total strong {
        display: block;
        font-size: 1.5rem;
        color: #60a5fa;
      }
      main {
        padding: 6rem 0;
      }
      .card {
        background: var(--card);
        color: var(--text);
        border-radius: 12px;
        padding: 1rem;
        margin-bottom: 1rem;
        box-shadow: 0 8px 24px rgba(15, 23, 42, 0.25);
      }
      .card-top {
        display: flex;
        justify-content: space-between;
      }
      .who {
        display: flex;
        gap: 0.5rem;
        align-items: center;
        margin-bottom: 0.5rem;
      }
      .avatar {
        width: 2rem;
        height: 2rem;
        border-radius: 999px;
        display: flex;
        align-items: center;
        justify-content: center;
        font-size: 0.85rem;
        font-weight: 600;
      }
      .label {
        display: inline-block;
        padding: 0.1rem 0.5rem;
        margin-right: 0.25rem;
        border-radius: 999px;
        font-size: 0.75rem;
      }
      .details {
        font-size: 0.875rem;
        color: #475569;
      }
      .time {
        text-align: right;
        font-size: 0.75rem;
        color: var(--muted);
      }
      .time strong {
        display: block;
        color: #334155;
        font-size: 0.875rem;
      }
      .card-bottom {
        display: flex;
        justify-content: space-between;
        border-top: 1px solid #f1f5f9;
        margin-top: 0.75rem;
        padding-top: 0.75rem;
        font-size: 0.75rem;
        color: #475569;
      }
      .dot {
        display: inline-block;
        width: 0.5rem;
        height: 0.5rem;
        border-radius: 999px;
        margin-right: 0.4rem;
      }
      .c-blue { background: #dbeafe; color: #2563eb; }
      .c-purple { background: #f3e8ff; color: #9333ea; }
      .c-green { background: #dcfce7; color: #16a34a; }
      .c-indigo { background: #e0e7ff; color: #4f46e5; }
      .c-pink { background: #fce7f3; color: #db2777; }
      .c-orange { background: #ffedd5; color: #ea580c; }
      .c-teal { background: #ccfbf1; color: #0d9488; }
      .c-red { background: #fee2e2; color: #dc2626; }
      .c-emerald { background: #d1fae5; color: #047857; }
      .c-gray { background: #f1f5f9; color: #334155; }
      .dot.s-emerald { background: #34d399; }
      .dot.s-yellow { background: #facc15; }
      .dot.s-red { background: #f87171; }
      .dot.s-gray { background: #9ca3af; }
      .empty {
        text-align: center;
        color: var(--muted);
        padding-top: 4rem;
      }
      .empty h3 {
        color: #ffffff;
      }
      button {
        width: 100%;
        padding: 1rem;
        border: none;
        border-radius: 12px;
        background: var(--primary);
        color: #ffffff;
        font-weight: 600;
        font-size: 1rem;
        cursor: pointer;
      }
      button:hover {
        background: var(--primary-hover);
      }
      button:disabled {
        opacity: 0.5;
        cursor: not-allowed;
      }
    </style>
  </head>
  <body>
    <header>
      <div class="wrap">
        <div>
          <h1>Order Queue</h1>
          <p>Manage student orders</p>
        </div>
        <div class="total">
          <strong id="total">0</strong>
          <span>Total Orders</span>
        </div>
      </div>
    </header>
    <main>
      <div class="wrap" id="orders"><div class="empty">Loading orders...</div></div>
    </main>
    <footer>
      <div class="wrap">
        <button id="next" disabled>Next Order &rarr;</button>
      </div>
    </footer>
    <script>
      const POLL_MS = __POLL_MS__;
      const LIMIT = __LIMIT__;
      const list = document.getElementById("orders");
      const total = document.getElementById("total");
      const nextButton = document.getElementById("next");
      let headId = null;
      let pending = false;

      function escapeHtml(value) {
        const node = document.createElement("div");
        node.textContent = value;
        return node.innerHTML;
      }

      function renderCard(card) {
        const labels = card.labels
          .map((label) => `<span class="label c-${label.color}">${escapeHtml(label.text)}</span>`)
          .join("");
        return `
          <div class="card">
            <div class="card-top">
              <div>
                <div class="who">
                  <div class="avatar c-${card.avatarColor}">${escapeHtml(card.initials)}</div>
                  <div>
                    <strong>${escapeHtml(card.studentName)}</strong>
                    <div>${labels}</div>
                  </div>
                </div>
                <div class="details">${escapeHtml(card.details)}</div>
              </div>
              <div class="time">Ordered<strong>${card.orderedAt}</strong>${card.age}</div>
            </div>
            <div class="card-bottom">
              <span><span class="dot s-${card.statusColor}"></span>${card.statusText}</span>
              <span>${card.position}</span>
            </div>
          </div>`;
      }

      function syncButton() {
        nextButton.disabled = headId === null || pending;
        nextButton.innerHTML = pending ? "Processing..." : "Next Order &rarr;";
      }

      async function refresh() {
        const response = await fetch(`/api/queue?limit=${LIMIT}`);
        if (!response.ok) {
          return;
        }
        const view = await response.json();
        total.textContent = view.total;
        headId = view.headId;
        if (view.visible.length === 0) {
          list.innerHTML = '<div class="empty"><h3>No orders in queue</h3><p>All orders have been processed</p></div>';
        } else {
          list.innerHTML = view.visible.map(renderCard).join("");
        }
        syncButton();
      }

      nextButton.addEventListener("click", async () => {
        if (headId === null || pending) {
          return;
        }
        pending = true;
        syncButton();
        try {
          await fetch(`/api/orders/${encodeURIComponent(headId)}/next`, { method: "POST" });
        } finally {
          pending = false;
          await refresh();
        }
      });

      refresh();
      setInterval(refresh, POLL_MS);
    </script>
  </body>
</html>
"""


def _display_tz(name: str) -> Any:
    if name.upper() in {"UTC", "Z"}:
        return UTC
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        log_event("api", "settings", "unknown display timezone", level="WARN", tz=name)
        return UTC


def _store(request: Request) -> OrderStore:
    return request.app.state.store


def _settings(request: Request) -> AppSettings:
    return request.app.state.settings


def _record_action(action: str, order: Order, store: OrderStore, **fields: Any) -> None:
    METRICS.increment_counter(f"orders.{action}_total")
    METRICS.update_queue_depth(len(store))
    log_event(
        "api",
        f"order.{action}",
        "order mutation applied",
        order_id=order.id,
        status=order.status,
        **fields,
    )


def create_app(store: OrderStore | None = None, settings: AppSettings | None = None) -> FastAPI:
    """Build the API around a single store instance shared by every handler."""

    settings = settings or get_settings()
    if store is None:
        store = OrderStore()
        if settings.seed_sample_orders:
            store.seed()

    app = FastAPI(title=f"{settings.app_brand} Order Queue", version=__version__)
    app.state.store = store
    app.state.settings = settings
    app.state.tz = _display_tz(settings.display_timezone)
    METRICS.update_queue_depth(len(store))

    @app.exception_handler(RequestValidationError)
    async def handle_invalid_payload(request: Request, exc: RequestValidationError) -> JSONResponse:
        log_event(
            "api",
            "order.invalid",
            "payload rejected",
            level="WARN",
            path=request.url.path,
            errors=len(exc.errors()),
        )
        return JSONResponse(
            status_code=400,
            content={
                "ok": False,
                "error": "invalid_payload",
                "detail": jsonable_encoder(exc.errors()),
            },
        )

    @app.exception_handler(OrderNotFound)
    async def handle_not_found(_: Request, exc: OrderNotFound) -> JSONResponse:
        METRICS.increment_counter("orders.not_found_total")
        log_event(
            "api",
            "order.not_found",
            "order not found",
            level="WARN",
            order_id=exc.order_id,
            action=exc.action,
        )
        return JSONResponse(
            status_code=404,
            content={"ok": False, "error": "order_not_found", "id": exc.order_id},
        )

    @app.get("/", response_class=HTMLResponse)
    async def index(current: AppSettings = Depends(_settings)) -> HTMLResponse:
        page = (
            INDEX_HTML.replace("__BRAND__", current.app_brand)
            .replace("__POLL_MS__", str(max(current.queue_poll_interval_ms, 500)))
            .replace("__LIMIT__", str(current.queue_visible_limit))
        )
        return HTMLResponse(content=page)

    @app.get("/healthz")
    async def healthz(orders: OrderStore = Depends(_store)) -> dict[str, Any]:
        return {
            "ok": True,
            "orders": len(orders),
            "build": BUILD_INFO,
            "ts": datetime.now(UTC).isoformat(timespec="seconds"),
        }

    @app.get("/metrics")
    async def metrics() -> dict[str, Any]:
        return {
            "ok": True,
            "ts": datetime.now(UTC).isoformat(timespec="seconds"),
            "kpi": snapshot_kpis(),
            "build": BUILD_INFO,
        }

    @app.get("/api/orders")
    async def list_orders(orders: OrderStore = Depends(_store)) -> list[dict[str, Any]]:
        return [order.to_dict() for order in orders.list_orders()]

    @app.post("/api/orders", status_code=201)
    async def create_order(
        payload: OrderCreate, orders: OrderStore = Depends(_store)
    ) -> dict[str, Any]:
        order = orders.create(
            payload.student_name,
            payload.order_type,
            payload.details,
            payload.status.value if payload.status else None,
        )
        _record_action("created", order, orders, order_type=order.order_type)
        return order.to_dict()

    @app.post("/api/orders/{order_id}/next")
    async def next_order(order_id: str, orders: OrderStore = Depends(_store)) -> dict[str, Any]:
        order = orders.advance(order_id)
        if order is None:
            raise OrderNotFound(order_id, "next")
        _record_action("advanced", order, orders)
        return order.to_dict()

    @app.patch("/api/orders/{order_id}/status")
    async def update_status(
        order_id: str, payload: StatusUpdate, orders: OrderStore = Depends(_store)
    ) -> dict[str, Any]:
        order = orders.set_status(order_id, payload.status.value)
        if order is None:
            raise OrderNotFound(order_id, "status")
        _record_action("status", order, orders)
        return order.to_dict()

    @app.get("/api/queue")
    async def queue_view(
        request: Request,
        limit: int | None = Query(None, ge=0, le=MAX_VISIBLE_LIMIT),
        orders: OrderStore = Depends(_store),
        current: AppSettings = Depends(_settings),
    ) -> dict[str, Any]:
        return project_queue(
            orders.list_orders(),
            limit=current.queue_visible_limit if limit is None else limit,
            now=orders.now(),
            tz=request.app.state.tz,
        )

    return app


if __name__ == "__main__":
    import logging

    import uvicorn
    from dotenv import load_dotenv

    from cantina.utils.logging_setup import setup_logging

    load_dotenv()
    setup_logging()
    logger = logging.getLogger("cantina.api.runner")
    settings_override = AppSettings()

    config = uvicorn.Config(
        "cantina.api.server:create_app",
        host=settings_override.api_host,
        port=settings_override.api_port,
        factory=True,
        log_level="info",
    )
    server = uvicorn.Server(config)
    try:
        server.run()
    except KeyboardInterrupt:
        logger.info("API stopped cleanly")
        sys.exit(0)
    logger.info("API stopped cleanly")

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any, Tuple

import pytest

pytest.importorskip("httpx")

from fastapi.testclient import TestClient

from cantina.api import server
from cantina.core.logging import ensure_runtime_dirs
from cantina.core.metrics import METRICS
from cantina.core.store import OrderStore
from cantina.settings import AppSettings


class StepClock:
    def __init__(self) -> None:
        self.current = datetime(2024, 7, 30, 22, 0, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


def _client(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    *,
    seed: bool = False,
) -> Tuple[OrderStore, TestClient]:
    monkeypatch.chdir(tmp_path)
    ensure_runtime_dirs()
    METRICS.reset()
    store = OrderStore(clock=StepClock())
    if seed:
        store.seed()
    settings = AppSettings(seed_sample_orders=False, queue_visible_limit=5)
    return store, TestClient(server.create_app(store=store, settings=settings))


def _new_order(client: TestClient, name: str, **extra: Any) -> dict[str, Any]:
    payload = {"studentName": name, "orderType": "Lanche", "details": "Toast", **extra}
    response = client.post("/api/orders", json=payload)
    assert response.status_code == 201
    return response.json()


def test_create_and_list_orders(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    _store, client = _client(monkeypatch, tmp_path)

    first = _new_order(client, "Larissa Silva")
    second = _new_order(client, "Pedro Lima", status="ready")

    assert set(first) == {"id", "studentName", "orderType", "details", "status", "createdAt"}
    assert first["status"] == "received"
    assert second["status"] == "ready"
    assert first["createdAt"] == "2024-07-30T22:00:01.000Z"

    listed = client.get("/api/orders").json()
    assert [order["id"] for order in listed] == [first["id"], second["id"]]
    assert METRICS.get_counter("orders.created_total") == 2


@pytest.mark.parametrize(
    "payload",
    [
        {"orderType": "Lanche", "details": "Toast"},
        {"studentName": "Ana", "orderType": "Lanche", "details": "Toast", "status": "eaten"},
        {"studentName": 12, "orderType": "Lanche", "details": "Toast"},
    ],
)
def test_create_rejects_invalid_payload(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, payload: dict[str, Any]
) -> None:
    store, client = _client(monkeypatch, tmp_path)

    response = client.post("/api/orders", json=payload)
    assert response.status_code == 400
    body = response.json()
    assert body["ok"] is False
    assert body["error"] == "invalid_payload"
    assert len(store) == 0


def test_next_moves_head_to_tail(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    _store, client = _client(monkeypatch, tmp_path)
    a = _new_order(client, "Order A", status="preparing")
    b = _new_order(client, "Order B")

    response = client.post(f"/api/orders/{a['id']}/next")
    assert response.status_code == 200
    moved = response.json()
    assert moved["status"] == "preparing"
    assert moved["createdAt"] > b["createdAt"]

    listed = client.get("/api/orders").json()
    assert [order["id"] for order in listed] == [b["id"], a["id"]]


def test_status_update_keeps_position(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    _store, client = _client(monkeypatch, tmp_path)
    a = _new_order(client, "Order A")
    b = _new_order(client, "Order B")

    response = client.patch(f"/api/orders/{a['id']}/status", json={"status": "ready"})
    assert response.status_code == 200
    assert response.json()["status"] == "ready"
    assert response.json()["createdAt"] == a["createdAt"]

    listed = client.get("/api/orders").json()
    assert [order["id"] for order in listed] == [a["id"], b["id"]]

    bad = client.patch(f"/api/orders/{a['id']}/status", json={"status": "lost"})
    assert bad.status_code == 400


def test_unknown_order_returns_not_found(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    _store, client = _client(monkeypatch, tmp_path)
    existing = _new_order(client, "Order A")

    next_resp = client.post("/api/orders/missing/next")
    assert next_resp.status_code == 404
    assert next_resp.json() == {"ok": False, "error": "order_not_found", "id": "missing"}

    status_resp = client.patch("/api/orders/missing/status", json={"status": "ready"})
    assert status_resp.status_code == 404

    assert client.get("/api/orders").json() == [existing]
    assert METRICS.get_counter("orders.not_found_total") == 2

    lines = (tmp_path / "runtime/logs/cantina.jsonl").read_text(encoding="utf-8").splitlines()
    topics = [json.loads(line)["topic"] for line in lines]
    assert topics.count("order.not_found") == 2


def test_queue_view(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    _store, client = _client(monkeypatch, tmp_path, seed=True)

    view = client.get("/api/queue").json()
    assert view["total"] == 8
    assert len(view["visible"]) == 5
    assert view["visible"][0]["studentName"] == "Rafael Pinto"
    assert view["visible"][0]["orderedAt"] == "21:00:34"
    assert view["headId"] == view["visible"][0]["id"]

    client.post(f"/api/orders/{view['headId']}/next")
    after = client.get("/api/queue", params={"limit": 3}).json()
    assert len(after["visible"]) == 3
    assert after["visible"][0]["studentName"] == "Fernanda Rezende"

    assert client.get("/api/queue", params={"limit": -1}).status_code == 400


def test_empty_queue_view(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    _store, client = _client(monkeypatch, tmp_path)

    view = client.get("/api/queue").json()
    assert view["canAdvance"] is False
    assert view["headId"] is None
    assert view["visible"] == []


def test_health_metrics_and_index(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    _store, client = _client(monkeypatch, tmp_path, seed=True)

    health = client.get("/healthz").json()
    assert health["ok"] is True
    assert health["orders"] == 8

    metrics = client.get("/metrics").json()
    assert metrics["kpi"]["queue_depth"] == 8

    page = client.get("/")
    assert page.status_code == 200
    assert "Order Queue" in page.text
    assert "/api/queue?limit=" in page.text
    assert "__LIMIT__" not in page.text


def test_create_app_seeds_from_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    seeded = server.create_app(settings=AppSettings(seed_sample_orders=True))
    bare = server.create_app(settings=AppSettings(seed_sample_orders=False))

    assert len(seeded.state.store) == 8
    assert len(bare.state.store) == 0

from __future__ import annotations

import json

from cantina.core import logging as event_log
from cantina.core.logging import ensure_runtime_dirs, log_event
from cantina.core.metrics import METRICS


def test_log_event_writes_text_and_jsonl(tmp_path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    ensure_runtime_dirs()

    log_event("api", "order.created", "order mutation applied", order_id="abc", status="received")
    log_event("api", "order.not_found", "order not found", level="warn", order_id="zzz")

    text_lines = (tmp_path / "runtime/logs/cantina.log").read_text(encoding="utf-8").splitlines()
    assert len(text_lines) == 2
    assert "svc=api" in text_lines[0]
    assert "topic=order.created" in text_lines[0]
    assert "order_id=abc" in text_lines[0]
    assert 'msg="order mutation applied"' in text_lines[0]
    assert "level=WARN" in text_lines[1]

    json_lines = (tmp_path / "runtime/logs/cantina.jsonl").read_text(encoding="utf-8").splitlines()
    first = json.loads(json_lines[0])
    assert first["svc"] == "api"
    assert first["msg"] == "order mutation applied"
    assert first["extra"] == {"order_id": "abc", "status": "received"}
    assert "pid" in first
    assert json.loads(json_lines[1])["level"] == "WARN"


def test_unknown_level_falls_back_to_info(tmp_path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)

    log_event("cli", "unit", "hello", level="chatty")

    entry = json.loads((tmp_path / "runtime/logs/cantina.jsonl").read_text(encoding="utf-8"))
    assert entry["level"] == "INFO"
    assert "extra" not in entry


def test_error_events_count_towards_kpi(tmp_path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    METRICS.reset()

    log_event("api", "unit", "boom", level="ERROR")
    log_event("api", "unit", "fine")

    assert METRICS.snapshot()["errors_1m"] == 1


def test_log_rotation(tmp_path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(event_log, "LOG_MAX_BYTES", 10)

    log_event("api", "unit", "first")
    log_event("api", "unit", "second")

    rotated = tmp_path / "runtime/logs/cantina.log.1"
    assert rotated.exists()
    assert 'msg="first"' in rotated.read_text(encoding="utf-8")
    current = (tmp_path / "runtime/logs/cantina.log").read_text(encoding="utf-8")
    assert 'msg="second"' in current


def test_setup_logging_quiets_access_log() -> None:
    import logging

    from cantina.utils.logging_setup import setup_logging

    setup_logging("debug")

    assert logging.getLogger().handlers
    assert logging.getLogger("uvicorn.access").level == logging.WARNING

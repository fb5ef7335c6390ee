"""Cantina command-line interface."""

from __future__ import annotations

import json
from typing import Any, Optional
from urllib import error as urlerror
from urllib import request

import typer

from cantina.core.logging import (
    LEVEL_ORDER,
    TEXT_LOG,
    ensure_runtime_dirs,
    log_event,
    normalise_level,
)
from cantina.core.models import OrderStatus
from cantina.settings import get_settings

from . import __version__

app = typer.Typer(name="cantina", help="Cantina order queue CLI.")
orders_app = typer.Typer(help="Inspect and mutate orders on a running server.")
log_cli_app = typer.Typer(help="Log inspection utilities.")

app.add_typer(orders_app, name="orders")
app.add_typer(log_cli_app, name="log")

SETTINGS = get_settings()
REQUEST_TIMEOUT = 5.0

ensure_runtime_dirs()


class ApiError(Exception):
    """Raised when the API cannot be reached or answers with an error status."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


def _api_request(method: str, path: str, payload: dict[str, Any] | None = None) -> Any:
    url = f"{SETTINGS.base_url()}{path}"
    data = None
    headers = {"Accept": "application/json"}
    if payload is not None:
        data = json.dumps(payload).encode("utf-8")
        headers["Content-Type"] = "application/json"
    req = request.Request(url, data=data, headers=headers, method=method)
    try:
        with request.urlopen(req, timeout=REQUEST_TIMEOUT) as response:
            return json.loads(response.read().decode("utf-8"))
    except urlerror.HTTPError as exc:
        body = exc.read().decode("utf-8", errors="replace")
        try:
            detail = json.loads(body).get("error") or body
        except (json.JSONDecodeError, AttributeError):
            detail = body
        raise ApiError(f"{method} {path} failed: {exc.code} {detail}", status=exc.code) from exc
    except urlerror.URLError as exc:
        reason = exc.reason if getattr(exc, "reason", None) else exc
        raise ApiError(f"cannot reach {url}: {reason}") from exc


def _call(method: str, path: str, payload: dict[str, Any] | None = None) -> Any:
    try:
        return _api_request(method, path, payload)
    except ApiError as exc:
        log_event("cli", "api.error", "api request failed", level="WARN", path=path, error=str(exc))
        typer.secho(str(exc), err=True, fg=typer.colors.RED)
        raise typer.Exit(1) from exc


def _echo_json(data: Any) -> None:
    typer.echo(json.dumps(data, separators=(",", ":"), ensure_ascii=False))


def _render_table(headers: tuple[str, ...], rows: list[tuple[str, ...]]) -> list[str]:
    widths = [len(header) for header in headers]
    for row in rows:
        for idx, cell in enumerate(row):
            widths[idx] = max(widths[idx], len(cell))
    header_line = " ".join(header.ljust(widths[idx]) for idx, header in enumerate(headers))
    divider = " ".join("-" * widths[idx] for idx in range(len(headers)))
    lines = [header_line, divider]
    for row in rows:
        lines.append(" ".join(row[idx].ljust(widths[idx]) for idx in range(len(headers))).rstrip())
    return lines


@app.command()
def version() -> None:
    """Print the Cantina version."""

    typer.echo(__version__)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (defaults to API_HOST)."),
    port: Optional[int] = typer.Option(None, "--port", help="Bind port (defaults to API_PORT)."),
) -> None:
    """Run the API and queue display with uvicorn."""

    import uvicorn

    from cantina.utils.logging_setup import setup_logging

    setup_logging()
    bind_host = host or SETTINGS.api_host
    bind_port = port or SETTINGS.api_port
    log_event("cli", "serve", "starting api server", host=bind_host, port=bind_port)
    uvicorn.run(
        "cantina.api.server:create_app",
        host=bind_host,
        port=bind_port,
        factory=True,
        log_level="info",
    )


@orders_app.command("list")
def orders_list() -> None:
    """Print every order as JSON, in queue order."""

    orders = _call("GET", "/api/orders")
    for order in orders:
        _echo_json(order)
    log_event("cli", "orders.list", "orders listed", count=len(orders))


@orders_app.command("new")
def orders_new(
    name: str = typer.Option(..., "--name", help="Student name."),
    order_type: str = typer.Option(..., "--type", help="Slash-delimited type, e.g. Lanche/Sobremesa."),
    details: str = typer.Option(..., "--details", help="Free-text order details."),
    status: Optional[OrderStatus] = typer.Option(None, "--status", help="Initial status."),
) -> None:
    """Submit a new order."""

    payload: dict[str, Any] = {"studentName": name, "orderType": order_type, "details": details}
    if status is not None:
        payload["status"] = status.value
    order = _call("POST", "/api/orders", payload)
    log_event("cli", "orders.new", "order submitted", order_id=order.get("id"))
    _echo_json(order)


@orders_app.command("next")
def orders_next(
    order_id: Optional[str] = typer.Argument(None, help="Order to move (defaults to the head)."),
) -> None:
    """Move an order to the end of the queue."""

    if order_id is None:
        orders = _call("GET", "/api/orders")
        if not orders:
            typer.echo("queue is empty")
            raise typer.Exit(1)
        order_id = orders[0]["id"]
    order = _call("POST", f"/api/orders/{order_id}/next")
    log_event("cli", "orders.next", "order advanced", order_id=order_id)
    _echo_json(order)


@orders_app.command("status")
def orders_status(
    order_id: str = typer.Argument(..., help="Order identifier."),
    status: OrderStatus = typer.Argument(..., help="received|preparing|ready"),
) -> None:
    """Set the status of an order."""

    order = _call("PATCH", f"/api/orders/{order_id}/status", {"status": status.value})
    log_event("cli", "orders.status", "order status set", order_id=order_id, status=status.value)
    _echo_json(order)


@app.command()
def queue(
    limit: Optional[int] = typer.Option(None, "--limit", "-n", min=0, help="Visible window size."),
) -> None:
    """Render the visible queue window as a table."""

    path = "/api/queue" if limit is None else f"/api/queue?limit={limit}"
    view = _call("GET", path)
    cards = view.get("visible") or []
    if not cards:
        typer.echo("No orders in queue")
    else:
        rows = [
            (
                card["position"],
                f"[{card['initials']}] {card['studentName']}",
                ", ".join(label["text"] for label in card["labels"]),
                card["statusText"],
                card["orderedAt"],
            )
            for card in cards
        ]
        for line in _render_table(("#", "Student", "Type", "Status", "Ordered"), rows):
            typer.echo(line)
    typer.echo(f"Total orders: {view.get('total', 0)}")


@log_cli_app.command("tail")
def log_tail(
    level: str = typer.Option("INFO", "--level", "-l", help="Minimum level to include."),
    lines: int = typer.Option(20, "--lines", "-n", help="Number of lines to display."),
) -> None:
    ensure_runtime_dirs()
    min_level = normalise_level(level)
    if not TEXT_LOG.exists():
        typer.secho("log file not found", err=True, fg=typer.colors.RED)
        raise typer.Exit(1)

    def _line_level(line: str) -> str:
        for part in line.split():
            if part.startswith("level="):
                return normalise_level(part.split("=", 1)[1])
        return "INFO"

    with TEXT_LOG.open("r", encoding="utf-8") as handle:
        lines_buffer = [
            line.rstrip("\n")
            for line in handle.readlines()
            if LEVEL_ORDER.get(_line_level(line), 0) >= LEVEL_ORDER[min_level]
        ]
    for entry in lines_buffer[-lines:] if lines > 0 else lines_buffer:
        typer.echo(entry)


if __name__ == "__main__":
    app()

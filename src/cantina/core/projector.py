"""Pure display derivations for the order queue view.

Nothing here reads the clock or keeps state: callers pass ``now`` and the
display timezone explicitly, so identical input always renders identically.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime, tzinfo
from typing import Any

from .models import Order

DEFAULT_VISIBLE_LIMIT = 5

STATUS_COLORS = {
    "ready": "emerald",
    "preparing": "yellow",
    "received": "red",
}
STATUS_TEXT = {
    "ready": "Ready to serve",
    "preparing": "Preparing",
    "received": "Order received",
}
UNKNOWN_STATUS_COLOR = "gray"
UNKNOWN_STATUS_TEXT = "Unknown"

AVATAR_PALETTE = (
    "blue",
    "purple",
    "green",
    "indigo",
    "pink",
    "orange",
    "teal",
    "red",
)

SNACK_LABEL = "Lanche"
DESSERT_LABEL = "Sobremesa"


def visible_window(orders: Sequence[Order], n: int = DEFAULT_VISIBLE_LIMIT) -> list[Order]:
    """Return the first ``n`` orders in queue order."""

    return list(orders[: max(n, 0)])


def initials(name: str) -> str:
    """First letter of each word, uppercased, at most two characters."""

    return "".join(word[0] for word in name.split()).upper()[:2]


def status_color(status: str) -> str:
    return STATUS_COLORS.get(status, UNKNOWN_STATUS_COLOR)


def status_text(status: str) -> str:
    return STATUS_TEXT.get(status, UNKNOWN_STATUS_TEXT)


def type_labels(order_type: str) -> list[str]:
    """Split a slash-delimited order type into trimmed labels."""

    return [label.strip() for label in order_type.split("/")]


def type_colors(order_type: str) -> list[str]:
    has_dessert = DESSERT_LABEL in order_type
    has_snack = SNACK_LABEL in order_type
    if has_dessert and has_snack:
        return ["blue", "orange"]
    if has_dessert:
        return ["emerald"]
    if has_snack:
        return ["blue"]
    return ["gray"]


def avatar_color(index: int) -> str:
    return AVATAR_PALETTE[index % len(AVATAR_PALETTE)]


def queue_number(index: int) -> str:
    """Render a zero-based visible index as ``#001``."""

    return f"#{index + 1:03d}"


def format_time(ts: datetime, tz: tzinfo = UTC) -> str:
    """Format a timestamp as 24h ``HH:MM:SS`` in the display timezone."""

    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    return ts.astimezone(tz).strftime("%H:%M:%S")


def relative_time(ts: datetime, now: datetime) -> str:
    seconds = int((now - ts).total_seconds())
    if seconds < 60:
        return "just now"
    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes} min ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours} h ago"
    return f"{hours // 24} d ago"


def order_card(order: Order, index: int, *, now: datetime, tz: tzinfo = UTC) -> dict[str, Any]:
    """Derive the display attributes of one visible order."""

    colors = type_colors(order.order_type)
    labels = [
        {"text": text, "color": colors[idx] if idx < len(colors) else colors[0]}
        for idx, text in enumerate(type_labels(order.order_type))
    ]
    return {
        **order.to_dict(),
        "initials": initials(order.student_name),
        "avatarColor": avatar_color(index),
        "labels": labels,
        "statusColor": status_color(order.status),
        "statusText": status_text(order.status),
        "orderedAt": format_time(order.created_at, tz),
        "age": relative_time(order.created_at, now),
        "position": queue_number(index),
    }


def project_queue(
    orders: Sequence[Order],
    *,
    limit: int = DEFAULT_VISIBLE_LIMIT,
    now: datetime,
    tz: tzinfo = UTC,
) -> dict[str, Any]:
    """Build the queue view: summary count plus cards for the visible window."""

    visible = visible_window(orders, limit)
    return {
        "total": len(orders),
        "limit": limit,
        "canAdvance": bool(visible),
        "headId": visible[0].id if visible else None,
        "visible": [order_card(order, idx, now=now, tz=tz) for idx, order in enumerate(visible)],
    }

"""In-memory order storage with timestamp-based queue ordering."""

from __future__ import annotations

import itertools
import logging
import threading
import uuid
from collections.abc import Callable, Iterable
from dataclasses import replace
from datetime import UTC, datetime
from typing import Any

from .models import DEFAULT_STATUS, Order

log = logging.getLogger("cantina.store")

Clock = Callable[[], datetime]

SAMPLE_ORDERS: tuple[dict[str, Any], ...] = (
    {
        "student_name": "Rafael Pinto",
        "order_type": "Sobremesa",
        "details": "Chocolate cake slice with vanilla ice cream",
        "status": "ready",
        "created_at": datetime(2024, 7, 30, 21, 0, 34, tzinfo=UTC),
    },
    {
        "student_name": "Fernanda Rezende",
        "order_type": "Sobremesa",
        "details": "Tiramisu with coffee and mascarpone",
        "status": "preparing",
        "created_at": datetime(2024, 7, 30, 21, 0, 39, tzinfo=UTC),
    },
    {
        "student_name": "Larissa Silva",
        "order_type": "Lanche",
        "details": "Club sandwich with fries and pickle",
        "status": "received",
        "created_at": datetime(2024, 7, 30, 21, 0, 44, tzinfo=UTC),
    },
    {
        "student_name": "Felipe Antunes",
        "order_type": "Lanche/Sobremesa",
        "details": "Burger combo with brownie dessert",
        "status": "preparing",
        "created_at": datetime(2024, 7, 30, 21, 0, 49, tzinfo=UTC),
    },
    {
        "student_name": "Larissa Borges",
        "order_type": "Lanche",
        "details": "Caesar salad with grilled chicken",
        "status": "received",
        "created_at": datetime(2024, 7, 30, 21, 0, 55, tzinfo=UTC),
    },
    {
        "student_name": "João Silva",
        "order_type": "Sobremesa",
        "details": "Strawberry cheesecake",
        "status": "ready",
        "created_at": datetime(2024, 7, 30, 21, 1, 2, tzinfo=UTC),
    },
    {
        "student_name": "Maria Santos",
        "order_type": "Lanche",
        "details": "Grilled chicken wrap",
        "status": "preparing",
        "created_at": datetime(2024, 7, 30, 21, 1, 8, tzinfo=UTC),
    },
    {
        "student_name": "Pedro Lima",
        "order_type": "Lanche",
        "details": "Beef burger with onion rings",
        "status": "received",
        "created_at": datetime(2024, 7, 30, 21, 1, 15, tzinfo=UTC),
    },
)


def utcnow() -> datetime:
    return datetime.now(tz=UTC)


class OrderStore:
    """Authoritative keyed container of orders.

    Queue position is derived from ``created_at``: ``list_orders`` sorts
    ascending by it, and ``advance`` rewrites it to move a record to the tail.
    Equal timestamps fall back to an internal sequence number that is bumped on
    creation and on advance, so ties resolve in insertion order and an advanced
    record always lands after its peers.

    Unknown ids are reported by returning ``None``; nothing is mutated.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock: Clock = clock or utcnow
        self._orders: dict[str, Order] = {}
        self._seq: dict[str, int] = {}
        self._counter = itertools.count()
        self._lock = threading.Lock()

    def now(self) -> datetime:
        """Return the store's notion of the current time."""

        return self._clock()

    def _put(self, order: Order) -> None:
        self._orders[order.id] = order
        self._seq[order.id] = next(self._counter)

    def list_orders(self) -> list[Order]:
        """Return every order, oldest ordering key first."""

        with self._lock:
            return sorted(
                self._orders.values(),
                key=lambda order: (order.created_at, self._seq[order.id]),
            )

    def get(self, order_id: str) -> Order | None:
        with self._lock:
            return self._orders.get(order_id)

    def create(
        self,
        student_name: str,
        order_type: str,
        details: str,
        status: str | None = None,
    ) -> Order:
        """Store a new order stamped with the current time."""

        order = Order(
            id=str(uuid.uuid4()),
            student_name=student_name,
            order_type=order_type,
            details=details,
            status=status or DEFAULT_STATUS,
            created_at=self._clock(),
        )
        with self._lock:
            self._put(order)
        log.debug("order created id=%s", order.id)
        return order

    def set_status(self, order_id: str, status: str) -> Order | None:
        """Overwrite the status of an order; its queue position is untouched."""

        with self._lock:
            current = self._orders.get(order_id)
            if current is None:
                return None
            updated = replace(current, status=status)
            self._orders[order_id] = updated
        log.debug("order status id=%s status=%s", order_id, status)
        return updated

    def advance(self, order_id: str) -> Order | None:
        """Move an order to the tail of the queue by resetting its timestamp.

        Status and every other field are preserved; this is a reorder only.
        """

        with self._lock:
            current = self._orders.get(order_id)
            if current is None:
                return None
            updated = replace(current, created_at=self._clock())
            self._put(updated)
        log.debug("order advanced id=%s", order_id)
        return updated

    def seed(self, samples: Iterable[dict[str, Any]] = SAMPLE_ORDERS) -> list[Order]:
        """Load fixed orders, keeping the timestamps they carry."""

        created: list[Order] = []
        with self._lock:
            for sample in samples:
                order = Order(
                    id=str(uuid.uuid4()),
                    student_name=sample["student_name"],
                    order_type=sample["order_type"],
                    details=sample["details"],
                    status=sample.get("status") or DEFAULT_STATUS,
                    created_at=sample.get("created_at") or self._clock(),
                )
                self._put(order)
                created.append(order)
        return created

    def clear(self) -> None:
        """Drop every stored order (primarily for tests)."""

        with self._lock:
            self._orders.clear()
            self._seq.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._orders)

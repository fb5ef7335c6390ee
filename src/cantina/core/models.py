"""Order record and request payload schemas."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class OrderStatus(str, Enum):
    RECEIVED = "received"
    PREPARING = "preparing"
    READY = "ready"


DEFAULT_STATUS = OrderStatus.RECEIVED.value


def isoformat_utc(ts: datetime) -> str:
    """Render a timestamp as ISO-8601 UTC with millisecond precision and a ``Z`` suffix."""

    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    return ts.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True, slots=True)
class Order:
    """A single student order; ``created_at`` doubles as the queue ordering key."""

    id: str
    student_name: str
    order_type: str
    details: str
    status: str
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "studentName": self.student_name,
            "orderType": self.order_type,
            "details": self.details,
            "status": self.status,
            "createdAt": isoformat_utc(self.created_at),
        }


class OrderCreate(BaseModel):
    """Payload accepted when a new order is submitted."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    student_name: str = Field(alias="studentName")
    order_type: str = Field(alias="orderType")
    details: str
    status: OrderStatus | None = None


class StatusUpdate(BaseModel):
    status: OrderStatus

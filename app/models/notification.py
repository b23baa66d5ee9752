from datetime import datetime
from enum import Enum

from beanie import Document
from pydantic import Field


class SendStatus(str, Enum):
    IDLE = "idle"
    QUEUED = "queued"
    SENDING = "sending"
    SENT = "sent"
    FAILED = "failed"
    PARTIAL = "partial"


IN_FLIGHT_STATUSES = (SendStatus.QUEUED, SendStatus.SENDING)
TERMINAL_STATUSES = (SendStatus.SENT, SendStatus.FAILED, SendStatus.PARTIAL)


class Notification(Document):
    """One push broadcast campaign with its delivery counters."""

    title: str
    body: str
    image_url: str | None = None
    deep_link_url: str | None = None
    is_active: bool = True
    send_status: SendStatus = SendStatus.IDLE
    send_progress: int = 0
    send_total: int = 0
    success_count: int = 0
    failure_count: int = 0
    receiver_count: int = 0
    send_errors: list[str] = Field(default_factory=list)
    send_started_at: datetime | None = None
    send_completed_at: datetime | None = None
    push_log_id: str | None = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "notifications"
        indexes = [
            [("send_status", 1), ("updated_at", 1)],
            [("is_active", 1), ("created_at", -1)],
        ]

from datetime import datetime
from typing import Any, Literal

from beanie import Document
from pydantic import Field


class PushNotificationLog(Document):
    title: str
    body: str
    image_url: str | None = None
    data_payload: dict[str, Any] = Field(default_factory=dict)
    source: Literal["admin", "webhook", "system"] = "admin"
    type: Literal["general", "order", "subscription", "promotion"] = "general"
    source_id: str | None = None
    recipient_count: int = 1
    status: Literal["pending", "sent", "failed", "partial"] = "pending"
    success_count: int = 0
    failure_count: int = 0
    error_message: str | None = None
    sent_at: datetime | None = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "push_notification_logs"
        indexes = [[("created_at", -1)], [("source", 1), ("source_id", 1)]]

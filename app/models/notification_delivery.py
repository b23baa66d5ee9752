"""Per-recipient delivery ledger: one row per (campaign, token) outcome."""

from datetime import datetime

from beanie import Document
from pydantic import Field
from pymongo import ASCENDING, DESCENDING, IndexModel


class NotificationDelivery(Document):
    notification_id: str
    token: str
    success: bool
    error: str | None = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "notification_deliveries"
        indexes = [
            IndexModel([("notification_id", ASCENDING), ("token", ASCENDING)], unique=True),
            IndexModel([("created_at", DESCENDING)]),
        ]

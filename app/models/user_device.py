from datetime import datetime

from beanie import Document, Indexed
from pydantic import Field


class UserDevice(Document):
    app_user_id: str
    fcm_token: Indexed(str, unique=True)
    platform: str | None = None  # "android" | "ios" | "web"
    last_seen_at: datetime = Field(default_factory=datetime.utcnow)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "user_devices"
        indexes = [[("app_user_id", 1)]]

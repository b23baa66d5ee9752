from datetime import datetime
from typing import Literal

from beanie import Document, Indexed
from pydantic import Field


class AppUser(Document):
    email: Indexed(str, unique=True)
    name: str = ""
    status: Literal["Active", "Inactive"] = "Active"
    fcm_token: str | None = None  # legacy single-device token
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "app_users"
        indexes = [[("status", 1)], [("fcm_token", 1)]]

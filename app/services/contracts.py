"""Contracts between the notification dispatcher and its collaborators."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from app.models.notification import SendStatus
from app.services.progress import DispatchProgress


@dataclass(frozen=True)
class CampaignState:
    """Read model of a notification campaign as the dispatcher sees it."""

    id: str
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
    send_errors: list[str] = field(default_factory=list)
    send_started_at: datetime | None = None
    send_completed_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class StalledCampaign:
    id: str
    send_status: SendStatus
    send_progress: int
    send_total: int


@dataclass(frozen=True)
class PushMessage:
    """One device-level push delivery request."""

    token: str
    title: str
    body: str
    data: dict[str, str]
    image_url: str | None = None
    collapse_key: str | None = None


@dataclass(frozen=True)
class SendResult:
    success: bool
    error: str | None = None
    code: str | None = None
    invalid_token: bool = False
    message_id: str | None = None


@dataclass(frozen=True)
class DeliveryOutcome:
    token: str
    success: bool
    error: str | None = None


class NotificationStore(Protocol):
    """Durable campaign rows plus the per-recipient delivery ledger."""

    async def claim(self, notification_id: str) -> bool:
        """Atomically move an active campaign from queued to sending. False if nothing was updated."""

    async def get(self, notification_id: str) -> CampaignState | None: ...

    async def begin_run(self, notification_id: str, total: int, progress: DispatchProgress) -> None:
        """Snapshot send_total and seed counters; set send_started_at only if unset."""

    async def load_deliveries(self, notification_id: str) -> dict[str, DeliveryOutcome]: ...

    async def record_deliveries(self, notification_id: str, outcomes: list[DeliveryOutcome]) -> None: ...

    async def save_progress(self, notification_id: str, progress: DispatchProgress) -> None: ...

    async def finish(self, notification_id: str, status: SendStatus, progress: DispatchProgress) -> None: ...

    async def open_push_log(self, campaign: CampaignState, recipient_count: int, data: dict[str, str]) -> str | None: ...

    async def close_push_log(self, log_id: str, status: SendStatus, progress: DispatchProgress) -> None: ...

    async def find_stalled(self, cutoff: datetime) -> list[StalledCampaign]: ...

    async def requeue_stalled(self, notification_id: str, cutoff: datetime) -> bool:
        """Atomically reset a still-stale in-flight campaign to queued."""


class RecipientDirectory(Protocol):
    async def list_active_tokens(self) -> list[str]:
        """Device tokens of active app users, deduplicated, in stable order."""

    async def remove_tokens(self, tokens: list[str]) -> int: ...


class PushTransport(Protocol):
    def is_ready(self) -> bool: ...

    async def send(self, message: PushMessage) -> SendResult:
        """Attempt one delivery. Must not raise for a bad token."""

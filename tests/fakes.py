"""In-memory collaborators for dispatcher, sweep, and API tests."""

import asyncio
from dataclasses import replace
from datetime import datetime

from app.models.notification import IN_FLIGHT_STATUSES, SendStatus
from app.services.contracts import (
    CampaignState,
    DeliveryOutcome,
    PushMessage,
    SendResult,
    StalledCampaign,
)
from app.services.progress import DispatchProgress


class StoreUnavailable(Exception):
    pass


class InMemoryNotificationStore:
    def __init__(self):
        self.campaigns: dict[str, CampaignState] = {}
        self.deliveries: dict[str, dict[str, DeliveryOutcome]] = {}
        self.progress_history: dict[str, list[int]] = {}
        self.push_logs: dict[str, dict] = {}
        self.mutations: list[tuple[str, str]] = []
        self.fail_on_save_after: int | None = None
        self._saves = 0

    def add(self, campaign_id: str, **fields) -> CampaignState:
        fields.setdefault("title", "Hello")
        fields.setdefault("body", "World")
        fields.setdefault("send_status", SendStatus.QUEUED)
        fields.setdefault("updated_at", datetime.utcnow())
        state = CampaignState(id=campaign_id, **fields)
        self.campaigns[campaign_id] = state
        return state

    def _set(self, campaign_id: str, op: str, **fields) -> None:
        self.mutations.append((op, campaign_id))
        fields.setdefault("updated_at", datetime.utcnow())
        self.campaigns[campaign_id] = replace(self.campaigns[campaign_id], **fields)

    async def claim(self, notification_id: str) -> bool:
        c = self.campaigns.get(notification_id)
        if c is None or c.send_status != SendStatus.QUEUED or not c.is_active:
            return False
        self._set(notification_id, "claim", send_status=SendStatus.SENDING)
        return True

    async def get(self, notification_id: str) -> CampaignState | None:
        return self.campaigns.get(notification_id)

    async def begin_run(self, notification_id: str, total: int, progress: DispatchProgress) -> None:
        c = self.campaigns[notification_id]
        self._set(
            notification_id,
            "begin_run",
            send_total=total,
            send_progress=progress.progress,
            success_count=progress.success_count,
            failure_count=progress.failure_count,
            send_errors=list(progress.errors),
            send_completed_at=None,
            send_started_at=c.send_started_at or datetime.utcnow(),
        )
        self.progress_history.setdefault(notification_id, []).append(progress.progress)

    async def load_deliveries(self, notification_id: str) -> dict[str, DeliveryOutcome]:
        return dict(self.deliveries.get(notification_id, {}))

    async def record_deliveries(self, notification_id: str, outcomes: list[DeliveryOutcome]) -> None:
        ledger = self.deliveries.setdefault(notification_id, {})
        for o in outcomes:
            ledger.setdefault(o.token, o)

    async def save_progress(self, notification_id: str, progress: DispatchProgress) -> None:
        self._saves += 1
        if self.fail_on_save_after is not None and self._saves > self.fail_on_save_after:
            raise StoreUnavailable("store went away")
        self._set(
            notification_id,
            "save_progress",
            send_progress=progress.progress,
            success_count=progress.success_count,
            failure_count=progress.failure_count,
            send_errors=list(progress.errors),
        )
        self.progress_history.setdefault(notification_id, []).append(progress.progress)

    async def finish(self, notification_id: str, status: SendStatus, progress: DispatchProgress) -> None:
        self._set(
            notification_id,
            "finish",
            send_status=status,
            send_progress=progress.progress,
            success_count=progress.success_count,
            failure_count=progress.failure_count,
            send_errors=list(progress.errors),
            send_completed_at=datetime.utcnow(),
        )
        self.progress_history.setdefault(notification_id, []).append(progress.progress)

    async def open_push_log(self, campaign: CampaignState, recipient_count: int, data: dict[str, str]) -> str | None:
        log_id = f"log-{campaign.id}-{len(self.push_logs)}"
        self.push_logs[log_id] = {"recipient_count": recipient_count, "data": data, "status": "pending"}
        return log_id

    async def close_push_log(self, log_id: str, status: SendStatus, progress: DispatchProgress) -> None:
        self.push_logs[log_id].update(
            status=status.value,
            success_count=progress.success_count,
            failure_count=progress.failure_count,
        )

    async def find_stalled(self, cutoff: datetime) -> list[StalledCampaign]:
        return [
            StalledCampaign(c.id, c.send_status, c.send_progress, c.send_total)
            for c in self.campaigns.values()
            if c.send_status in IN_FLIGHT_STATUSES and c.is_active and c.updated_at < cutoff
        ]

    async def requeue_stalled(self, notification_id: str, cutoff: datetime) -> bool:
        c = self.campaigns.get(notification_id)
        if c is None or c.send_status not in IN_FLIGHT_STATUSES or c.updated_at >= cutoff:
            return False
        self._set(notification_id, "requeue", send_status=SendStatus.QUEUED)
        return True


class StaticRecipientDirectory:
    def __init__(self, tokens: list[str] | None = None, error: Exception | None = None):
        self.tokens = list(tokens or [])
        self.error = error
        self.removed: list[str] = []

    async def list_active_tokens(self) -> list[str]:
        if self.error:
            raise self.error
        return list(self.tokens)

    async def remove_tokens(self, tokens: list[str]) -> int:
        self.removed.extend(tokens)
        self.tokens = [t for t in self.tokens if t not in tokens]
        return len(tokens)


class ScriptedPushTransport:
    def __init__(
        self,
        failing: set[str] | None = None,
        invalid: set[str] | None = None,
        raising: set[str] | None = None,
        slow: set[str] | None = None,
        ready: bool = True,
    ):
        self.failing = failing or set()
        self.invalid = invalid or set()
        self.raising = raising or set()
        self.slow = slow or set()
        self.ready = ready
        self.sent: list[PushMessage] = []

    def is_ready(self) -> bool:
        return self.ready

    async def send(self, message: PushMessage) -> SendResult:
        self.sent.append(message)
        await asyncio.sleep(0)
        if message.token in self.slow:
            await asyncio.sleep(5)
        if message.token in self.raising:
            raise RuntimeError("transport exploded")
        if message.token in self.invalid:
            return SendResult(success=False, error="Requested entity was not found.", code="NOT_FOUND", invalid_token=True)
        if message.token in self.failing:
            return SendResult(success=False, error="Internal error", code="INTERNAL")
        return SendResult(success=True, message_id=f"msg-{message.token}")

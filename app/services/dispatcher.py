"""Fan a notification campaign out to every registered device.

A campaign is owned by exactly one dispatch at a time: ownership is taken with a
conditional queued -> sending update on the campaign row. Delivery outcomes are
written to a per-recipient ledger after every batch, so a dispatch that dies
mid-send can be resumed by the stall sweep without re-sending to recipients
already counted. Only the batch in flight at crash time can be delivered twice.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from urllib.parse import urlparse

from app.core.logging import get_logger
from app.models.notification import SendStatus
from app.services.contracts import (
    CampaignState,
    DeliveryOutcome,
    NotificationStore,
    PushMessage,
    PushTransport,
    RecipientDirectory,
    SendResult,
)
from app.services.progress import DispatchProgress

log = get_logger(__name__)

TRANSPORT_NOT_CONFIGURED = "Push transport not configured"
SOURCE_TAG = "admin"


@dataclass(frozen=True)
class DispatchOutcome:
    notification_id: str
    status: SendStatus
    total: int
    success_count: int
    failure_count: int
    skipped: int = 0


def resolve_image_url(image: str | None, base_url: str | None) -> str | None:
    """Absolute http(s) URL for the push image, or None if it cannot be used."""
    if not image or not image.strip():
        return None
    candidate = image.strip()
    if candidate.startswith("/") and base_url:
        candidate = base_url.rstrip("/") + candidate
    parsed = urlparse(candidate)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return None
    return candidate


def build_payload(campaign: CampaignState) -> dict[str, str]:
    data = {
        "notificationId": campaign.id,
        "type": "notification",
        "source": SOURCE_TAG,
    }
    if campaign.deep_link_url:
        data["url"] = campaign.deep_link_url
    return data


class NotificationDispatcher:
    def __init__(
        self,
        store: NotificationStore,
        directory: RecipientDirectory,
        transport: PushTransport,
        *,
        batch_size: int = 5,
        max_errors: int = 10,
        send_timeout_seconds: float = 10.0,
        directory_timeout_seconds: float = 30.0,
        public_base_url: str | None = None,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.store = store
        self.directory = directory
        self.transport = transport
        self.batch_size = batch_size
        self.max_errors = max_errors
        self.send_timeout_seconds = send_timeout_seconds
        self.directory_timeout_seconds = directory_timeout_seconds
        self.public_base_url = public_base_url

    async def dispatch(self, notification_id: str) -> DispatchOutcome | None:
        """Send one campaign to all recipients. Returns None when another dispatch owns it.

        Store and directory errors propagate; the campaign then stays in
        sending until the stall sweep picks it up again.
        """
        bound = log.bind(notification_id=notification_id)
        if not await self.store.claim(notification_id):
            bound.info("dispatch_claim_skipped")
            return None

        campaign = await self.store.get(notification_id)
        if campaign is None:
            bound.warning("dispatch_campaign_missing")
            return None

        progress = DispatchProgress(max_errors=self.max_errors)
        if not self.transport.is_ready():
            progress.errors.append(TRANSPORT_NOT_CONFIGURED)
            await self.store.finish(notification_id, SendStatus.FAILED, progress)
            bound.error("dispatch_transport_unavailable")
            return DispatchOutcome(notification_id, SendStatus.FAILED, 0, 0, 0)

        tokens = await asyncio.wait_for(
            self.directory.list_active_tokens(),
            timeout=self.directory_timeout_seconds,
        )
        total = len(tokens)
        if total == 0:
            await self.store.begin_run(notification_id, 0, progress)
            await self.store.finish(notification_id, SendStatus.SENT, progress)
            bound.info("dispatch_completed", status=SendStatus.SENT.value, total=0)
            return DispatchOutcome(notification_id, SendStatus.SENT, 0, 0, 0)

        delivered = await self.store.load_deliveries(notification_id)
        pending: list[str] = []
        for token in tokens:
            previous = delivered.get(token)
            if previous is None:
                pending.append(token)
            elif previous.success:
                progress.success_count += 1
                progress.progress += 1
            else:
                progress.failure_count += 1
                progress.progress += 1
        skipped = progress.progress
        if skipped:
            progress.errors = list(campaign.send_errors[-self.max_errors:])

        await self.store.begin_run(notification_id, total, progress)
        data = build_payload(campaign)
        log_id = await self.store.open_push_log(campaign, total, data)
        bound.info("dispatch_started", total=total, resumed_from=skipped)

        invalid_tokens: list[str] = []
        for start in range(0, len(pending), self.batch_size):
            batch = pending[start:start + self.batch_size]
            results = await asyncio.gather(*(self._deliver(campaign, token, data) for token in batch))
            outcomes = []
            for token, result in zip(batch, results):
                if result.success:
                    progress.record_success()
                else:
                    error = f"{result.code}: {result.error}" if result.code else (result.error or "Unknown error")
                    progress.record_failure(token, error)
                    if result.invalid_token:
                        invalid_tokens.append(token)
                outcomes.append(DeliveryOutcome(token=token, success=result.success, error=result.error))
            await self.store.record_deliveries(notification_id, outcomes)
            await self.store.save_progress(notification_id, progress)
            bound.debug("dispatch_batch", progress=progress.progress, total=total)

        if invalid_tokens:
            removed = await self.directory.remove_tokens(invalid_tokens)
            bound.info("dispatch_invalid_tokens_removed", count=removed)

        status = progress.final_status()
        await self.store.finish(notification_id, status, progress)
        if log_id:
            await self.store.close_push_log(log_id, status, progress)
        bound.info(
            "dispatch_completed",
            status=status.value,
            total=total,
            success=progress.success_count,
            failed=progress.failure_count,
        )
        return DispatchOutcome(
            notification_id,
            status,
            total,
            progress.success_count,
            progress.failure_count,
            skipped=skipped,
        )

    async def _deliver(self, campaign: CampaignState, token: str, data: dict[str, str]) -> SendResult:
        message = PushMessage(
            token=token,
            title=campaign.title,
            body=campaign.body,
            data=data,
            image_url=resolve_image_url(campaign.image_url, self.public_base_url),
            collapse_key=f"notif_{campaign.id}",
        )
        try:
            return await asyncio.wait_for(self.transport.send(message), timeout=self.send_timeout_seconds)
        except asyncio.TimeoutError:
            return SendResult(success=False, error="Push send timed out", code="timeout")
        except Exception as e:
            # one broken recipient must not stop the rest of the campaign
            log.warning("dispatch_transport_error", notification_id=campaign.id, error=str(e))
            return SendResult(success=False, error=str(e) or type(e).__name__, code="transport_error")

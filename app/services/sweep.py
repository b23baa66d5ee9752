"""Resume campaigns abandoned mid-send."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from app.core.logging import get_logger
from app.models.notification import SendStatus
from app.services.contracts import NotificationStore
from app.services.dispatcher import NotificationDispatcher

log = get_logger(__name__)

DEFAULT_STALE_AFTER = timedelta(minutes=5)


@dataclass
class SweepResult:
    resumed_ids: list[str] = field(default_factory=list)
    failed_ids: list[str] = field(default_factory=list)

    @property
    def resumed_count(self) -> int:
        return len(self.resumed_ids)


class StallSweeper:
    def __init__(
        self,
        store: NotificationStore,
        dispatcher: NotificationDispatcher,
        *,
        stale_after: timedelta = DEFAULT_STALE_AFTER,
    ):
        self.store = store
        self.dispatcher = dispatcher
        self.stale_after = stale_after

    async def sweep(self, now: datetime | None = None) -> SweepResult:
        """Requeue every queued/sending campaign untouched for longer than stale_after and dispatch it."""
        cutoff = (now or datetime.utcnow()) - self.stale_after
        stalled = await self.store.find_stalled(cutoff)
        result = SweepResult()
        if not stalled:
            return result
        log.info("sweep_found", count=len(stalled), cutoff=cutoff.isoformat())

        for campaign in stalled:
            try:
                if not await self.store.requeue_stalled(campaign.id, cutoff):
                    # another sweep requeued it first
                    log.info("sweep_requeue_skipped", notification_id=campaign.id)
                    continue
                log.info(
                    "sweep_resuming",
                    notification_id=campaign.id,
                    status=SendStatus(campaign.send_status).value,
                    progress=campaign.send_progress,
                    total=campaign.send_total,
                )
                result.resumed_ids.append(campaign.id)
                await self.dispatcher.dispatch(campaign.id)
            except Exception:
                log.exception("sweep_resume_failed", notification_id=campaign.id)
                result.failed_ids.append(campaign.id)

        log.info("sweep_done", resumed=result.resumed_count, failed=len(result.failed_ids))
        return result

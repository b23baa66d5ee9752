"""MongoDB-backed campaign store used by the dispatcher and the stall sweep."""

from datetime import datetime

from beanie import PydanticObjectId
from bson.errors import InvalidId
from pymongo import UpdateOne

from app.core.logging import get_logger
from app.models.notification import IN_FLIGHT_STATUSES, Notification, SendStatus
from app.models.notification_delivery import NotificationDelivery
from app.models.push_log import PushNotificationLog
from app.services.contracts import CampaignState, DeliveryOutcome, StalledCampaign
from app.services.progress import DispatchProgress

log = get_logger(__name__)

_IN_FLIGHT = [s.value for s in IN_FLIGHT_STATUSES]


def parse_object_id(value: str) -> PydanticObjectId | None:
    try:
        return PydanticObjectId(value)
    except (InvalidId, TypeError):
        return None


def to_state(doc: Notification) -> CampaignState:
    return CampaignState(
        id=str(doc.id),
        title=doc.title,
        body=doc.body,
        image_url=doc.image_url,
        deep_link_url=doc.deep_link_url,
        is_active=doc.is_active,
        send_status=SendStatus(doc.send_status),
        send_progress=doc.send_progress,
        send_total=doc.send_total,
        success_count=doc.success_count,
        failure_count=doc.failure_count,
        send_errors=list(doc.send_errors),
        send_started_at=doc.send_started_at,
        send_completed_at=doc.send_completed_at,
        updated_at=doc.updated_at,
    )


def _counters(progress: DispatchProgress) -> dict:
    return {
        "send_progress": progress.progress,
        "success_count": progress.success_count,
        "failure_count": progress.failure_count,
        "send_errors": list(progress.errors),
    }


class BeanieNotificationStore:
    async def _update(self, query: dict, update: dict) -> int:
        result = await Notification.get_motor_collection().update_one(query, update)
        return result.modified_count

    async def claim(self, notification_id: str) -> bool:
        oid = parse_object_id(notification_id)
        if oid is None:
            return False
        modified = await self._update(
            {"_id": oid, "send_status": SendStatus.QUEUED.value, "is_active": True},
            {"$set": {"send_status": SendStatus.SENDING.value, "updated_at": datetime.utcnow()}},
        )
        return modified == 1

    async def get(self, notification_id: str) -> CampaignState | None:
        oid = parse_object_id(notification_id)
        if oid is None:
            return None
        doc = await Notification.get(oid)
        return to_state(doc) if doc else None

    async def begin_run(self, notification_id: str, total: int, progress: DispatchProgress) -> None:
        oid = PydanticObjectId(notification_id)
        now = datetime.utcnow()
        await self._update(
            {"_id": oid},
            {"$set": {"send_total": total, "send_completed_at": None, "updated_at": now, **_counters(progress)}},
        )
        # first attempt wins; resumes keep the original start time
        await self._update(
            {"_id": oid, "send_started_at": None},
            {"$set": {"send_started_at": now}},
        )

    async def load_deliveries(self, notification_id: str) -> dict[str, DeliveryOutcome]:
        rows = await NotificationDelivery.find(NotificationDelivery.notification_id == notification_id).to_list()
        return {r.token: DeliveryOutcome(token=r.token, success=r.success, error=r.error) for r in rows}

    async def record_deliveries(self, notification_id: str, outcomes: list[DeliveryOutcome]) -> None:
        if not outcomes:
            return
        now = datetime.utcnow()
        ops = [
            UpdateOne(
                {"notification_id": notification_id, "token": o.token},
                {"$setOnInsert": {"success": o.success, "error": o.error, "created_at": now}},
                upsert=True,
            )
            for o in outcomes
        ]
        await NotificationDelivery.get_motor_collection().bulk_write(ops, ordered=False)

    async def save_progress(self, notification_id: str, progress: DispatchProgress) -> None:
        await self._update(
            {"_id": PydanticObjectId(notification_id)},
            {"$set": {**_counters(progress), "updated_at": datetime.utcnow()}},
        )

    async def finish(self, notification_id: str, status: SendStatus, progress: DispatchProgress) -> None:
        now = datetime.utcnow()
        await self._update(
            {"_id": PydanticObjectId(notification_id)},
            {
                "$set": {
                    **_counters(progress),
                    "send_status": status.value,
                    "receiver_count": progress.success_count,
                    "send_completed_at": now,
                    "updated_at": now,
                }
            },
        )

    async def open_push_log(self, campaign: CampaignState, recipient_count: int, data: dict[str, str]) -> str | None:
        """Best effort: a missing log entry never blocks delivery."""
        try:
            entry = PushNotificationLog(
                title=campaign.title,
                body=campaign.body,
                image_url=campaign.image_url,
                data_payload=data,
                source="admin",
                source_id=campaign.id,
                recipient_count=recipient_count,
            )
            await entry.insert()
        except Exception as e:
            log.warning("push_log_create_failed", notification_id=campaign.id, error=str(e))
            return None
        await self._update(
            {"_id": PydanticObjectId(campaign.id)},
            {"$set": {"push_log_id": str(entry.id)}},
        )
        return str(entry.id)

    async def close_push_log(self, log_id: str, status: SendStatus, progress: DispatchProgress) -> None:
        oid = parse_object_id(log_id)
        if oid is None:
            return
        try:
            await PushNotificationLog.get_motor_collection().update_one(
                {"_id": oid},
                {
                    "$set": {
                        "status": status.value,
                        "success_count": progress.success_count,
                        "failure_count": progress.failure_count,
                        "error_message": "; ".join(progress.errors[:5]) or None,
                        "sent_at": datetime.utcnow(),
                    }
                },
            )
        except Exception as e:
            log.warning("push_log_update_failed", push_log_id=log_id, error=str(e))

    async def find_stalled(self, cutoff: datetime) -> list[StalledCampaign]:
        docs = await Notification.find(
            {"send_status": {"$in": _IN_FLIGHT}, "is_active": True, "updated_at": {"$lt": cutoff}}
        ).to_list()
        return [
            StalledCampaign(
                id=str(d.id),
                send_status=SendStatus(d.send_status),
                send_progress=d.send_progress,
                send_total=d.send_total,
            )
            for d in docs
        ]

    async def requeue_stalled(self, notification_id: str, cutoff: datetime) -> bool:
        oid = parse_object_id(notification_id)
        if oid is None:
            return False
        modified = await self._update(
            {"_id": oid, "send_status": {"$in": _IN_FLIGHT}, "updated_at": {"$lt": cutoff}},
            {"$set": {"send_status": SendStatus.QUEUED.value, "updated_at": datetime.utcnow()}},
        )
        return modified == 1

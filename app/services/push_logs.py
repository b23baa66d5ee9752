"""Retention cleanup for push logs and finished delivery ledgers."""

from datetime import datetime, timedelta
from typing import Any

from app.core.logging import get_logger
from app.models.notification import TERMINAL_STATUSES, Notification
from app.models.notification_delivery import NotificationDelivery
from app.models.push_log import PushNotificationLog

log = get_logger(__name__)


def is_cleanup_hour(now: datetime, cleanup_hour: int) -> bool:
    return now.hour == cleanup_hour


async def cleanup_push_logs(retention_days: int, cleanup_hour: int, now: datetime | None = None) -> dict[str, Any]:
    """Delete push logs and ledger rows of finished campaigns older than the retention window.

    Runs only during the configured UTC hour so an hourly trigger cleans once a day.
    """
    now = now or datetime.utcnow()
    if not is_cleanup_hour(now, cleanup_hour):
        return {
            "skipped": True,
            "message": f"Not cleanup hour. Current UTC hour: {now.hour}, configured: {cleanup_hour}",
        }
    cutoff = now - timedelta(days=retention_days)
    log.info("push_log_cleanup", retention_days=retention_days, cutoff=cutoff.isoformat())

    logs = await PushNotificationLog.get_motor_collection().delete_many({"created_at": {"$lt": cutoff}})

    finished = await Notification.find(
        {"send_status": {"$in": [s.value for s in TERMINAL_STATUSES]}, "send_completed_at": {"$lt": cutoff}}
    ).to_list()
    finished_ids = [str(n.id) for n in finished]
    deliveries = 0
    if finished_ids:
        res = await NotificationDelivery.get_motor_collection().delete_many({"notification_id": {"$in": finished_ids}})
        deliveries = res.deleted_count

    log.info("push_log_cleanup_done", push_logs=logs.deleted_count, deliveries=deliveries)
    return {
        "skipped": False,
        "retention_days": retention_days,
        "cutoff": cutoff.isoformat(),
        "deleted": {"push_logs": logs.deleted_count, "deliveries": deliveries},
    }

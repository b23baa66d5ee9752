"""Notification campaigns: create-and-queue, edits, re-send, and progress reads."""

from datetime import datetime
from typing import Any

from app.core.exceptions import BadRequestError, ConflictError, NotFoundError
from app.models.notification import IN_FLIGHT_STATUSES, Notification, SendStatus
from app.models.notification_delivery import NotificationDelivery
from app.services.notification_store import parse_object_id
from app.services.progress import percent_complete

CONTENT_FIELDS = ("title", "body", "image_url", "deep_link_url")


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def serialize_notification(n: Notification) -> dict[str, Any]:
    return {
        "id": str(n.id),
        "title": n.title,
        "body": n.body,
        "image_url": n.image_url,
        "deep_link_url": n.deep_link_url,
        "is_active": n.is_active,
        "send_status": SendStatus(n.send_status).value,
        "receiver_count": n.receiver_count,
        "created_at": _iso(n.created_at),
        "updated_at": _iso(n.updated_at),
    }


def progress_payload(n: Notification) -> dict[str, Any]:
    return {
        "id": str(n.id),
        "send_status": SendStatus(n.send_status).value,
        "send_progress": n.send_progress,
        "send_total": n.send_total,
        "success_count": n.success_count,
        "failure_count": n.failure_count,
        "send_errors": list(n.send_errors),
        "send_started_at": _iso(n.send_started_at),
        "send_completed_at": _iso(n.send_completed_at),
        "percent_complete": percent_complete(n.send_progress, n.send_total),
    }


async def create_notification(
    title: str,
    body: str,
    image_url: str | None = None,
    deep_link_url: str | None = None,
    is_active: bool = True,
) -> Notification:
    """Persist a campaign. Active campaigns start queued; the caller schedules the dispatch."""
    if not title or not title.strip() or not body or not body.strip():
        raise BadRequestError("Title and body are required")
    n = Notification(
        title=title.strip(),
        body=body.strip(),
        image_url=image_url or None,
        deep_link_url=deep_link_url or None,
        is_active=is_active,
        send_status=SendStatus.QUEUED if is_active else SendStatus.IDLE,
    )
    await n.insert()
    return n


async def list_notifications() -> list[Notification]:
    return await Notification.find_all().sort("-created_at").to_list()


async def list_public_notifications(limit: int = 50) -> list[Notification]:
    return await Notification.find(Notification.is_active == True).sort("-created_at").limit(limit).to_list()  # noqa: E712


async def get_notification(notification_id: str) -> Notification:
    oid = parse_object_id(notification_id)
    n = await Notification.get(oid) if oid else None
    if not n:
        raise NotFoundError("Notification not found")
    return n


def _was_dispatched(n: Notification) -> bool:
    return SendStatus(n.send_status) != SendStatus.IDLE or n.send_started_at is not None


def _is_running(n: Notification) -> bool:
    status = SendStatus(n.send_status)
    return status == SendStatus.SENDING or (status == SendStatus.QUEUED and n.send_started_at is not None)


# matches campaigns with no dispatch running or resuming
_NOT_RUNNING = {
    "$or": [
        {"send_status": {"$nin": [s.value for s in IN_FLIGHT_STATUSES]}},
        {"send_status": SendStatus.QUEUED.value, "send_started_at": None},
    ]
}


async def update_notification(notification_id: str, changes: dict[str, Any]) -> Notification:
    """Apply only the fields present in changes.

    Content is frozen once a send has started, and `is_active` cannot flip while a
    dispatch is running. Dispatcher-owned fields are never written here.
    """
    n = await get_notification(notification_id)
    content = {k: v for k, v in changes.items() if k in CONTENT_FIELDS}
    if content and _was_dispatched(n):
        raise ConflictError("Content cannot change after the notification was sent", details={"fields": sorted(content)})
    for key in ("title", "body"):
        if key in content and (not content[key] or not str(content[key]).strip()):
            raise BadRequestError(f"{key} cannot be empty")

    query: dict[str, Any] = {"_id": n.id}
    fields: dict[str, Any] = {k: v.strip() if isinstance(v, str) else v for k, v in content.items()}
    if content:
        query.update({"send_status": SendStatus.IDLE.value, "send_started_at": None})

    active = changes.get("is_active")
    toggles = active is not None and bool(active) != n.is_active
    if toggles:
        if _is_running(n):
            raise ConflictError("Notification is being sent")
        fields["is_active"] = bool(active)
        if not content:
            query.update(_NOT_RUNNING)

    fields["updated_at"] = datetime.utcnow()
    result = await Notification.get_motor_collection().update_one(query, {"$set": fields})
    if result.matched_count != 1:
        raise ConflictError("Notification changed while updating, retry")

    if toggles and not active:
        # never dispatched while inactive
        await Notification.get_motor_collection().update_one(
            {"_id": n.id, "send_status": SendStatus.QUEUED.value, "send_started_at": None, "is_active": False},
            {"$set": {"send_status": SendStatus.IDLE.value}},
        )
    return await get_notification(notification_id)


async def delete_notification(notification_id: str) -> None:
    n = await get_notification(notification_id)
    if SendStatus(n.send_status) == SendStatus.SENDING:
        raise ConflictError("Notification is being sent")
    await NotificationDelivery.find(NotificationDelivery.notification_id == str(n.id)).delete()
    await n.delete()


async def queue_resend(notification_id: str) -> Notification:
    """Reset counters and the delivery ledger and queue the campaign for a fresh broadcast."""
    n = await get_notification(notification_id)
    if not n.is_active:
        raise BadRequestError("Cannot send inactive notification. Please activate it first.")
    if SendStatus(n.send_status) in IN_FLIGHT_STATUSES:
        raise ConflictError("Notification is already queued or sending")

    result = await Notification.get_motor_collection().update_one(
        {"_id": n.id, "is_active": True, "send_status": {"$nin": [s.value for s in IN_FLIGHT_STATUSES]}},
        {
            "$set": {
                "send_status": SendStatus.QUEUED.value,
                "send_progress": 0,
                "send_total": 0,
                "success_count": 0,
                "failure_count": 0,
                "receiver_count": 0,
                "send_errors": [],
                "send_started_at": None,
                "send_completed_at": None,
                "push_log_id": None,
                "updated_at": datetime.utcnow(),
            }
        },
    )
    if result.modified_count != 1:
        raise ConflictError("Notification is already queued or sending")
    # the dispatch is scheduled by the caller, after this returns
    await NotificationDelivery.find(NotificationDelivery.notification_id == str(n.id)).delete()
    return await get_notification(notification_id)
